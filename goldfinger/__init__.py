"""Clock and weather display controller for a Raspberry Pi."""

__version__ = "0.1.0"
