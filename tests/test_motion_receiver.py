import asyncio
import unittest

from motion_receiver import MotionDatagramProtocol, open_motion_receiver, parse_motion_payload


class TestParseMotionPayload(unittest.TestCase):
    def test_json_object(self):
        self.assertEqual(parse_motion_payload(b'{"x": 0.1, "y": 9.7, "z": 0.4}'), (0.1, 9.7, 0.4))

    def test_nested_json(self):
        payload = b'{"accelerationIncludingGravity": {"x": 1, "y": 2, "z": 3}, "interval": 16}'
        self.assertEqual(parse_motion_payload(payload), (1.0, 2.0, 3.0))

    def test_csv(self):
        self.assertEqual(parse_motion_payload(b"0.1, 9.7, 0.4\n"), (0.1, 9.7, 0.4))
        self.assertEqual(parse_motion_payload(b"1712345678.9,1,2,3"), (1.0, 2.0, 3.0))

    def test_rejects_malformed(self):
        for payload in (b"", b"   ", b"{bad json", b"[1, 2, 3]", b'{"x": 1, "y": 2}',
                        b"1,2", b"1,2,3,4,5", b"a,b,c", b"\xff\xfe", b'{"x": null, "y": 1, "z": 2}'):
            self.assertIsNone(parse_motion_payload(payload), payload)


class TestMotionDatagramProtocol(unittest.TestCase):
    def test_counts_and_forwards(self):
        received = []
        protocol = MotionDatagramProtocol(received.append)

        protocol.datagram_received(b"1,2,3", ("10.0.0.2", 5000))
        protocol.datagram_received(b"garbage", ("10.0.0.2", 5000))

        self.assertEqual(received, [(1.0, 2.0, 3.0)])
        self.assertEqual(protocol.received, 1)
        self.assertEqual(protocol.dropped, 1)


class TestOpenMotionReceiver(unittest.IsolatedAsyncioTestCase):
    async def test_udp_roundtrip(self):
        received = []
        transport, protocol = await open_motion_receiver("127.0.0.1", 0, received.append)
        port = transport.get_extra_info("sockname")[1]
        sender, _ = await asyncio.get_running_loop().create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=("127.0.0.1", port))
        try:
            sender.sendto(b'{"x": 0.0, "y": 0.0, "z": 9.8}')
            for _ in range(50):
                if received:
                    break
                await asyncio.sleep(0.01)
        finally:
            sender.close()
            transport.close()

        self.assertEqual(received, [(0.0, 0.0, 9.8)])
        self.assertEqual(protocol.received, 1)


if __name__ == "__main__":
    unittest.main()
