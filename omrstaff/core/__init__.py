"""Core configuration for the staff analysis package."""

from .config import StaffSettings, get_settings

__all__ = ["StaffSettings", "get_settings"]
