"""
MotionTempo - UDP motion receiver
Accepts accelerometer datagrams from a phone sensor-streaming app.

Accepted payloads (gravity-inclusive acceleration, any consistent unit):
    {"x": 0.1, "y": 9.7, "z": 0.4}
    {"accelerationIncludingGravity": {"x": .., "y": .., "z": ..}}
    0.1,9.7,0.4           (x,y,z)
    1712345678.9,0.1,9.7,0.4   (timestamp,x,y,z)
Anything else is dropped.
"""

import asyncio
import json
from typing import Callable, Optional

from logging_utils import log_event
from motion_sampler import read_acceleration

Axes = tuple[float, float, float]


def parse_motion_payload(data: bytes) -> Optional[Axes]:
    try:
        text = data.decode("utf-8").strip()
    except UnicodeDecodeError:
        return None
    if not text:
        return None

    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        return read_acceleration(payload.get("accelerationIncludingGravity", payload))

    fields = [f.strip() for f in text.split(",")]
    if len(fields) == 4:
        fields = fields[1:]
    if len(fields) != 3:
        return None
    return read_acceleration(fields)


class MotionDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, handler: Callable[[Axes], object]):
        self.handler = handler
        self.received = 0
        self.dropped = 0

    def datagram_received(self, data: bytes, addr) -> None:
        axes = parse_motion_payload(data)
        if axes is None:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 500 == 0:
                log_event("DEBUG", "Receiver", "Dropped malformed datagram", sender=addr, dropped=self.dropped)
            return
        self.received += 1
        self.handler(axes)

    def error_received(self, exc: Exception) -> None:
        log_event("WARNING", "Receiver", f"Socket error: {exc}")


async def open_motion_receiver(host: str, port: int,
                               handler: Callable[[Axes], object]) -> tuple[asyncio.DatagramTransport, MotionDatagramProtocol]:
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: MotionDatagramProtocol(handler), local_addr=(host, port))
    log_event("INFO", "Receiver", "Listening for motion datagrams", host=host, port=port)
    return transport, protocol
