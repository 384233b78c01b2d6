"""gatttool subprocess handling and output parsing."""

from .parser import parse_notification
from .process import build_argv, spawn_gatttool

__all__ = ["build_argv", "parse_notification", "spawn_gatttool"]
