"""Fleet inventory: remote OS, BIOS, hardware, hotfix and application facts."""

__version__ = "0.1.0"
