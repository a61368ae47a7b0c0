# scriptgen/errors.py
from typing import Optional


class RecorderError(Exception):
    pass


class SelectorResolutionFailure(RecorderError):
    """No locator (accessible or structural) could be derived for a target."""

    def __init__(self, target: Optional[str]):
        super().__init__(f"failed to generate selector for {target!r}")
        self.target = target


class ProtocolCommunicationFailure(RecorderError):
    """The debugging channel rejected or dropped a request."""

    def __init__(self, method: str, reason: str):
        super().__init__(f"{method} failed: {reason}")
        self.method = method


class ConfigurationError(RecorderError):
    pass
