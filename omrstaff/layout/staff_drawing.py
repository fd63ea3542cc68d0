"""Debug renderings of staff models and fitted staves."""
from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from .staff_fitter import STAFF_LINES
from .staff_model import StaffModel

STAFF_COLORS: Tuple[Tuple[int, int, int], ...] = (
    (0, 0, 255),
    (0, 160, 0),
    (255, 0, 0),
    (0, 160, 255),
    (200, 0, 200),
)


def _polyline(model: StaffModel, row: float) -> np.ndarray:
    columns = np.arange(model.start_col, model.end_col)
    rows = np.rint(model.line_rows(row))
    return np.column_stack((columns, rows)).astype(np.int32)


def draw_staff_model(dst: np.ndarray, model: StaffModel) -> None:
    """Blacken ``dst`` and draw the model's line curve every ``staff_space`` rows."""

    dst[...] = 0
    color = 255 if dst.ndim == 2 else (255,) * dst.shape[2]
    first = model.start_row % model.staff_space
    curves = [_polyline(model, row) for row in range(first, dst.shape[0], model.staff_space)]
    if curves:
        cv2.polylines(dst, curves, isClosed=False, color=color, thickness=1)


def draw_staffs(
    image: np.ndarray,
    staffs: Sequence[Tuple[int, int]],
    model: StaffModel,
) -> np.ndarray:
    """Return a BGR copy of ``image`` with the lines of every staff drawn on it."""

    if image.dtype == bool:
        image = np.where(image, 0, 255).astype(np.uint8)
    if image.ndim == 2:
        canvas = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        canvas = image.copy()

    thickness = max(1, model.staff_height)
    for index, (first, last) in enumerate(staffs):
        color = STAFF_COLORS[index % len(STAFF_COLORS)]
        spacing = (last - first) / (STAFF_LINES - 1)
        curves = [_polyline(model, first + line * spacing) for line in range(STAFF_LINES)]
        cv2.polylines(canvas, curves, isClosed=False, color=color, thickness=thickness)
    return canvas


__all__ = ["STAFF_COLORS", "draw_staff_model", "draw_staffs"]
