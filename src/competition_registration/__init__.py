"""Registration and payment backend for competition entries."""

__version__ = "0.1.0"
