"""Estimate how staff lines drift vertically across the columns of a page."""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..core.config import StaffSettings, get_settings
from .run_lengths import estimate_run_lengths
from .staff_model import StaffModel, as_ink_mask, corrected_profile

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _run_parallel(func: Callable[[T], R], items: Sequence[T], n_threads: int) -> List[R]:
    """Map ``func`` over ``items`` keeping the input order of the results."""

    if n_threads == 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=n_threads) as executor:
        return list(executor.map(func, items))


def _smooth_curve(curve: np.ndarray, window: int) -> np.ndarray:
    if window <= 1 or curve.size < 2:
        return curve
    window = int(max(1, window - (window % 2 == 0)))
    radius = min(window // 2, curve.size - 1)
    window = 2 * radius + 1
    # Odd reflection keeps a linear drift linear up to the borders.
    padded = np.pad(curve, (radius, radius), mode="reflect", reflect_type="odd")
    kernel = np.full(window, 1.0 / window, dtype=np.float64)
    return np.convolve(padded, kernel, mode="valid")


def _candidate_angles(center: float, half_range: float, step: float) -> List[float]:
    """Angles around ``center``, nearest first, so ties favour small corrections."""

    count = int(math.floor(half_range / step + 1e-9))
    angles = [center]
    for k in range(1, count + 1):
        angles.extend((center + k * step, center - k * step))
    return angles


def _projection(
    rows: np.ndarray,
    cols: np.ndarray,
    slope: float,
    height: int,
    margin: int,
) -> np.ndarray:
    """Row histogram of the ink pixels after removing a ``slope`` drift."""

    shifted = rows - np.rint(slope * cols).astype(np.int64) + margin
    return np.bincount(shifted, minlength=height + 2 * margin)


def _search_offsets(radius: int) -> np.ndarray:
    offsets = [0]
    for k in range(1, radius + 1):
        offsets.extend((k, -k))
    return np.asarray(offsets, dtype=np.int64)


def estimate_rotation(
    mask: np.ndarray,
    *,
    n_threads: int = 1,
    config: StaffSettings | None = None,
) -> float:
    """Return the rotation, in degrees, that gives the sharpest row profile.

    Candidates are scored by the sum of squares of their projection profile.
    A coarse sweep over ``[-max_angle_deg, max_angle_deg]`` is followed by a
    finer sweep around its winner.
    """

    config = config or get_settings()
    height, width = mask.shape
    rows, cols = np.nonzero(mask)
    limit = math.radians(config.max_angle_deg + config.angle_step_deg)
    margin = int(math.ceil(math.tan(limit) * width)) + 1

    def score(angle: float) -> int:
        profile = _projection(rows, cols, math.tan(math.radians(angle)), height, margin)
        return int(np.dot(profile, profile))

    def sweep(angles: List[float]) -> float:
        scores = _run_parallel(score, angles, n_threads)
        for angle, value in zip(angles, scores):
            logger.debug("Rotation candidate %.3f deg scored %d", angle, value)
        return angles[int(np.argmax(scores))]

    coarse = sweep(_candidate_angles(0.0, config.max_angle_deg, config.angle_step_deg))
    fine_step = config.angle_step_deg / config.refine_steps
    best = sweep(_candidate_angles(coarse, config.angle_step_deg, fine_step))
    logger.info("Coarse rotation estimate: %.3f deg", best)
    return best


def track_offsets(
    mask: np.ndarray,
    slope: float,
    *,
    staff_space: int,
    n_threads: int = 1,
    config: StaffSettings | None = None,
) -> np.ndarray:
    """Locally refine the vertical offset of the staff pattern at every column.

    Each column compares the row projection of its neighbourhood with the
    global profile de-rotated by ``slope``, at integer shifts around the
    ``slope`` prior. Columns without ink near them come back as ``nan``.
    The columns are split into one contiguous chunk per thread; every column
    only reads the image, so the split never changes the result.
    """

    config = config or get_settings()
    height, width = mask.shape
    radius = max(1, int(round(config.search_radius_spaces * staff_space)))
    half_window = max(1, int(round(config.tracking_window_spaces * staff_space)))

    rows, cols = np.nonzero(mask)
    prior = np.rint(slope * np.arange(width)).astype(np.int64)
    margin = int(np.max(np.abs(prior))) + radius + 1
    reference = _projection(rows, cols, slope, height, margin)
    windows = sliding_window_view(reference, height)

    cumulative = np.zeros((height, width + 1), dtype=np.int32)
    cumulative[:, 1:] = np.cumsum(mask, axis=1, dtype=np.int32)

    offsets = _search_offsets(radius)
    shifts = np.full(width, np.nan, dtype=np.float64)

    def track(chunk: np.ndarray) -> None:
        for column in chunk:
            low = max(0, column - half_window)
            high = min(width, column + half_window + 1)
            local = cumulative[:, high] - cumulative[:, low]
            if not local.any():
                continue
            candidates = prior[column] + offsets
            scores = windows[margin - candidates] @ local
            best = int(np.argmax(scores))
            if scores[best] > 0:
                shifts[column] = candidates[best]

    chunks = [chunk for chunk in np.array_split(np.arange(width), n_threads) if chunk.size]
    _run_parallel(track, chunks, n_threads)
    return shifts


def _merge_offsets(shifts: np.ndarray, slope: float, window: int) -> np.ndarray:
    """Fill untracked columns and smooth the merged curve, seams included."""

    columns = np.arange(shifts.size)
    known = ~np.isnan(shifts)
    if not known.any():
        filled = slope * columns
    else:
        filled = np.interp(columns, columns[known], shifts[known])
    smoothed = _smooth_curve(filled.astype(np.float64), window)
    return smoothed - smoothed[0]


def _fit_rotation(gradient: np.ndarray) -> tuple[float, float]:
    """Return ``(rot, residual variance)`` of a least-squares line through ``gradient``."""

    if gradient.size < 2:
        return 0.0, 0.0
    columns = np.arange(gradient.size, dtype=np.float64)
    slope, intercept = np.polyfit(columns, gradient, 1)
    residual = gradient - (slope * columns + intercept)
    return math.atan(slope), float(np.var(residual))


def _first_line_row(mask: np.ndarray, gradient: np.ndarray, peak_ratio: float) -> int:
    profile, margin = corrected_profile(mask, gradient)
    peak = profile.max()
    if peak == 0:
        return 0
    first = int(np.argmax(profile >= peak_ratio * peak))
    return max(0, first - margin)


def get_staff_model(
    image: np.ndarray,
    n_threads: int | None = None,
    *,
    config: StaffSettings | None = None,
) -> StaffModel:
    """Estimate a :class:`StaffModel` from a black-on-white binary image.

    Raises :class:`~omrstaff.errors.NoStaffSignalError` when the image holds
    no periodic staff-line pattern. The result does not depend on
    ``n_threads``.
    """

    config = config or get_settings()
    n_threads = config.n_threads if n_threads is None else n_threads
    if n_threads < 1:
        raise ValueError("n_threads must be at least 1")

    mask = as_ink_mask(image)
    stats = estimate_run_lengths(mask)

    angle = estimate_rotation(mask, n_threads=n_threads, config=config)
    slope = math.tan(math.radians(angle))
    shifts = track_offsets(
        mask,
        slope,
        staff_space=stats.staff_space,
        n_threads=n_threads,
        config=config,
    )
    gradient = _merge_offsets(shifts, slope, config.smoothing_window)

    rot, residual = _fit_rotation(gradient)
    straight = residual < config.straight_tolerance
    start_row = _first_line_row(mask, gradient, config.peak_ratio)

    logger.info(
        "Staff model: rot=%.4f rad straight=%s residual=%.3f start_row=%d",
        rot,
        straight,
        residual,
        start_row,
    )
    staff_image = None
    if config.keep_staff_image:
        # A boolean input is its own mask; the model must not see later edits.
        staff_image = mask.copy() if np.may_share_memory(mask, image) else mask
        staff_image.setflags(write=False)
    return StaffModel(
        gradient=gradient,
        start_col=0,
        start_row=start_row,
        staff_height=stats.staff_height,
        staff_space=stats.staff_space,
        rot=rot,
        straight=straight,
        staff_image=staff_image,
    )


__all__ = ["estimate_rotation", "get_staff_model", "track_offsets"]
