"""Utility helpers (logging configuration)."""

from traitml.utils.logger_setup import set_log_level

__all__ = ["set_log_level"]
