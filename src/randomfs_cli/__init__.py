"""randomfs-cli: command line client for RandomFS rd:// storage."""

__version__ = "0.1.0"
