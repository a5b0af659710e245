"""Exceptions raised by exposecontroller."""

__all__ = [
    "ExposeControllerError",
    "ConfigurationError",
    "ExposeError",
    "TombstoneKeyError",
]


class ExposeControllerError(Exception):
    """Generic base exception used for this package."""


class ConfigurationError(ExposeControllerError):
    """Raised when the controller cannot be built from its configuration."""


class ExposeError(ExposeControllerError):
    """Raised when an exposure strategy fails to add or remove exposure."""

    def __init__(self, action: str, key: str, reason: str) -> None:
        super().__init__(f"{action} failed for {key}: {reason}")
        self.action = action
        self.key = key
        self.reason = reason


class TombstoneKeyError(ExposeControllerError):
    """Raised when a tombstone key is not of the form ``namespace/name``."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Unexpected tombstone key format: {key!r}")
        self.key = key
