"""Student online-test session engine."""

__version__ = "0.1.0"
