"""Exceptions raised by the staff detection pipeline."""
from __future__ import annotations


class StaffDetectionError(RuntimeError):
    """Base exception for errors raised while analysing staff lines."""


class NoStaffSignalError(StaffDetectionError):
    """Raised when the image shows no periodic staff-line pattern.

    Callers should read it as "no staves on this page" rather than as a crash.
    """


class InconsistentGeometryError(StaffDetectionError, ValueError):
    """Raised when a staff model or staff list does not match the image."""


__all__ = [
    "InconsistentGeometryError",
    "NoStaffSignalError",
    "StaffDetectionError",
]
