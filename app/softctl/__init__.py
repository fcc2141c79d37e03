"""softctl - application lifecycle orchestration for desktop machines."""

__version__ = "0.1.0"
