"""Staff model data types and the raster helpers shared by the layout stages."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Tuple

import numpy as np

from ..errors import InconsistentGeometryError

# Pixels darker than this are ink; the rasters are black on white.
INK_THRESHOLD = 128
BACKGROUND = 255

Staffs = List[Tuple[int, int]]


def as_ink_mask(image: np.ndarray) -> np.ndarray:
    """Return a boolean mask that is ``True`` on ink pixels.

    Boolean arrays are taken to be masks already and are returned unchanged.
    """

    image = np.asarray(image)
    if image.ndim != 2:
        raise ValueError("Binary images must be 2-D arrays")
    if image.dtype == bool:
        return image
    return image < INK_THRESHOLD


@dataclass(frozen=True, eq=False)
class StaffModel:
    """Orientation of the staff lines across the columns of an image.

    ``gradient[i]`` is the vertical offset, at column ``start_col + i``, of a
    staff line relative to the row it occupies at ``start_col``.
    """

    gradient: np.ndarray
    start_col: int
    start_row: int
    staff_height: int
    staff_space: int
    rot: float = 0.0
    straight: bool = True
    staff_image: np.ndarray | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        gradient = np.array(self.gradient, dtype=np.float64)
        if gradient.ndim != 1 or gradient.size == 0:
            raise ValueError("gradient must be a non-empty 1-D sequence")
        if self.staff_height <= 0:
            raise ValueError("staff_height must be positive")
        if self.staff_space <= 0:
            raise ValueError("staff_space must be positive")
        if self.start_col < 0:
            raise ValueError("start_col must not be negative")
        gradient.setflags(write=False)
        object.__setattr__(self, "gradient", gradient)

    @property
    def width(self) -> int:
        return int(self.gradient.shape[0])

    @property
    def end_col(self) -> int:
        """One past the last modeled column."""
        return self.start_col + self.width

    def line_rows(self, row: float) -> np.ndarray:
        """Rows, per modeled column, of the line found at ``row`` on ``start_col``."""
        return row + self.gradient

    def negated(self) -> "StaffModel":
        """Return the inverse model, used to undo :func:`realign`."""
        return replace(self, gradient=-self.gradient, rot=-self.rot)

    def check_fits(self, shape: Tuple[int, ...]) -> None:
        """Raise :class:`InconsistentGeometryError` unless ``shape`` covers the modeled columns."""
        if len(shape) < 2:
            raise InconsistentGeometryError("Expected an image with at least two dimensions")
        if shape[1] < self.end_col:
            raise InconsistentGeometryError(
                f"Model covers columns {self.start_col}..{self.end_col - 1} "
                f"but the image is only {shape[1]} columns wide"
            )


def corrected_profile(
    mask: np.ndarray,
    gradient: np.ndarray,
    start_col: int = 0,
) -> tuple[np.ndarray, int]:
    """Horizontal projection of ``mask`` after undoing the per-column offsets.

    Returns ``(profile, margin)``; ``profile[i]`` counts the ink pixels that
    land on row ``i - margin`` of the ``start_col`` frame.
    """

    width = gradient.shape[0]
    region = mask[:, start_col : start_col + width]
    shifts = np.rint(gradient).astype(np.int64)
    margin = int(np.max(np.abs(shifts))) if shifts.size else 0
    rows, cols = np.nonzero(region)
    corrected = rows - shifts[cols] + margin
    profile = np.bincount(corrected, minlength=region.shape[0] + 2 * margin)
    return profile, margin


__all__ = [
    "BACKGROUND",
    "INK_THRESHOLD",
    "StaffModel",
    "Staffs",
    "as_ink_mask",
    "corrected_profile",
]
