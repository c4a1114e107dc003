"""Motion permission gates.

The control loop asks the gate once (and again after a denial) before it
accepts any motion events. Platforms with a consent prompt plug in their own
gate; the default just reflects the `motion.enabled` setting.
"""

from logging_utils import log_event


class PermissionGate:
    async def request(self) -> bool:
        """Resolve to True when motion events may be delivered."""
        raise NotImplementedError


class StaticPermissionGate(PermissionGate):
    def __init__(self, granted: bool = True):
        self.granted = granted
        self.requests = 0

    async def request(self) -> bool:
        self.requests += 1
        if not self.granted:
            log_event("WARNING", "Motion", "Motion input disabled in config (motion.enabled=false)")
        return self.granted
