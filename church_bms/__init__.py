"""Church BMS - family and believer registry."""

__version__ = "1.0.0"
