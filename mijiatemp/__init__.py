"""MijiaTemp - Xiaomi Mijia temperature polling via gatttool."""

__version__ = "0.3.0"
