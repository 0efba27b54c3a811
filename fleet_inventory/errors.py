class InventoryError(Exception):
    """Base class for inventory errors."""


class TransportError(InventoryError):
    """A remote query failed (network, auth, remote service)."""

    def __init__(self, host: str, message: str):
        super().__init__(message)
        self.host = host
        self.message = message

    def __str__(self) -> str:
        return f"{self.host}: {self.message}"


class ExportError(InventoryError, OSError):
    """An output file could not be written or a template could not be read."""

    def __init__(self, path, message: str):
        super().__init__(message)
        self.path = path
        self.message = message

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ConfigError(InventoryError):
    """External configuration is malformed. Callers fall back to defaults."""
