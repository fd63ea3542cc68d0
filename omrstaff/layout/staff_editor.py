"""In-place staff-line removal and straightening of score images."""
from __future__ import annotations

import logging
import math
from typing import Sequence, Tuple

import cv2
import numpy as np

from ..core.config import StaffSettings, get_settings
from ..errors import InconsistentGeometryError
from .staff_fitter import STAFF_LINES
from .staff_model import BACKGROUND, StaffModel, as_ink_mask

logger = logging.getLogger(__name__)


def _run_extents(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """First and last row of the vertical ink run through every pixel.

    Values are only meaningful on ink pixels.
    """

    height, width = mask.shape
    rows = np.arange(height, dtype=np.int32)[:, None]
    blank = np.zeros((1, width), dtype=bool)

    starts = mask & ~np.vstack((blank, mask[:-1]))
    ends = mask & ~np.vstack((mask[1:], blank))
    top = np.maximum.accumulate(np.where(starts, rows, np.int32(-1)), axis=0)
    bottom = np.minimum.accumulate(np.where(ends, rows, np.int32(height))[::-1], axis=0)[::-1]
    return top, bottom


def _nearest_ink(
    mask: np.ndarray,
    expected: np.ndarray,
    columns: np.ndarray,
    reach: int,
) -> np.ndarray:
    """Row of the ink pixel closest to ``expected`` in each column, or -1."""

    height = mask.shape[0]
    found = np.full(columns.size, -1, dtype=np.int64)
    for delta in sorted(range(-reach, reach + 1), key=abs):
        candidate = expected + delta
        pending = np.flatnonzero((found < 0) & (candidate >= 0) & (candidate < height))
        if pending.size == 0:
            continue
        hits = pending[mask[candidate[pending], columns[pending]]]
        found[hits] = candidate[hits]
    return found


def remove_staffs(
    image: np.ndarray,
    staffs: Sequence[Tuple[int, int]],
    model: StaffModel,
    *,
    config: StaffSettings | None = None,
) -> None:
    """Erase the staff lines of ``staffs`` from ``image`` in place.

    Along each of the five lines of a staff, the vertical ink run nearest to
    the expected row is erased only when it is at most
    ``staff_height * safety_factor`` rows tall. Stems, beams and noteheads
    crossing a line are taller and survive untouched.
    """

    config = config or get_settings()
    if image.ndim != 2:
        raise InconsistentGeometryError("Staff removal expects a 2-D binary image")
    model.check_fits(image.shape)
    for first, last in staffs:
        if not 0 <= first <= last < image.shape[0]:
            raise InconsistentGeometryError(
                f"Staff ({first}, {last}) lies outside an image of height {image.shape[0]}"
            )

    mask = as_ink_mask(image).copy()
    background = False if image.dtype == bool else BACKGROUND
    top, bottom = _run_extents(mask)

    bound = model.staff_height * config.safety_factor
    reach = model.staff_height // 2 + 1
    columns = np.arange(model.start_col, model.end_col)
    erase = np.zeros_like(mask)

    for first, last in staffs:
        spacing = (last - first) / (STAFF_LINES - 1)
        for line in range(STAFF_LINES):
            expected = np.rint(model.line_rows(first + line * spacing)).astype(np.int64)
            found = _nearest_ink(mask, expected, columns, reach)
            hit = np.flatnonzero(found >= 0)
            rows, cols = found[hit], columns[hit]
            run_top, run_bottom = top[rows, cols], bottom[rows, cols]
            thin = (run_bottom - run_top + 1) <= bound
            run_top, run_bottom, cols = run_top[thin], run_bottom[thin], cols[thin]
            for step in range(int(math.floor(bound))):
                row = run_top + step
                inside = row <= run_bottom
                erase[row[inside], cols[inside]] = True

    image[erase] = background
    logger.info("Removed %d staff-line pixels from %d staffs", int(erase.sum()), len(staffs))


def _column_shifts(model: StaffModel, width: int) -> np.ndarray:
    shifts = np.zeros(width, dtype=np.int64)
    columns = np.arange(model.start_col, model.end_col)
    if model.straight:
        # Keep tan odd so that the negated model undoes the shift exactly.
        slope = math.copysign(math.tan(abs(model.rot)), model.rot)
        offsets = slope * (columns - model.start_col)
    else:
        offsets = model.gradient
    shifts[columns] = np.rint(offsets).astype(np.int64)
    return shifts


def realign(image: np.ndarray, model: StaffModel) -> None:
    """Straighten ``image`` in place so every staff line keeps one row.

    Each modeled column is shifted cyclically by its rounded offset; a
    ``straight`` model uses its rotation alone. Shifting with
    ``model.negated()`` restores the original image exactly.
    """

    if image.ndim not in (2, 3):
        raise InconsistentGeometryError("Realignment expects a grayscale or colour image")
    model.check_fits(image.shape)

    height, width = image.shape[:2]
    shifts = _column_shifts(model, width)
    map_x = np.tile(np.arange(width, dtype=np.float32), (height, 1))
    map_y = ((np.arange(height)[:, None] + shifts[None, :]) % height).astype(np.float32)

    source = image.view(np.uint8) if image.dtype == bool else image
    warped = cv2.remap(source, map_x, map_y, cv2.INTER_NEAREST, borderMode=cv2.BORDER_REPLICATE)
    image[...] = warped.astype(image.dtype, copy=False)
    logger.debug("Realigned %d columns (straight=%s)", model.width, model.straight)


__all__ = ["realign", "remove_staffs"]
