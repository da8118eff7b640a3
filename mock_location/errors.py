"""Error taxonomy for the location simulator."""

from __future__ import annotations

from typing import Any, Dict, Optional


class MockLocationError(Exception):
    code = "MOCK_LOCATION_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error_code": self.code, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class StartupError(MockLocationError):
    code = "STARTUP_ERROR"


class InvalidRouteError(StartupError, ValueError):
    code = "INVALID_ROUTE"


class ConfigError(MockLocationError, ValueError):
    code = "INVALID_CONFIG"


class PerTickError(MockLocationError):
    """A single tick failed; the loop carries on with the next one."""
    code = "TICK_ERROR"


class PublishError(PerTickError):
    code = "PUBLISH_ERROR"

    def __init__(self, message: str, *, channel: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if channel is not None:
            details.setdefault("channel", channel)
        super().__init__(message, details=details)
        self.channel = channel


class FatalRuntimeError(MockLocationError):
    """The tick loop cannot continue; the simulation is stopped."""
    code = "FATAL_RUNTIME_ERROR"
