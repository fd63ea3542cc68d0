"""Locate five-line staves in the gradient-corrected projection of a page."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from ..core.config import StaffSettings, get_settings
from ..errors import InconsistentGeometryError
from .staff_model import StaffModel, Staffs, as_ink_mask, corrected_profile

logger = logging.getLogger(__name__)

STAFF_LINES = 5


@dataclass(frozen=True)
class LinePeak:
    """A band of the corrected profile that looks like one staff line."""

    row: int
    top: int
    bottom: int
    strength: int


def find_line_peaks(
    profile: np.ndarray,
    margin: int,
    *,
    staff_height: int,
    peak_ratio: float,
) -> List[LinePeak]:
    """Return the line-like bands of ``profile``, top to bottom.

    A band is a run of rows reaching ``peak_ratio`` of the profile maximum;
    bands wider than ``2 * staff_height + 1`` rows are not staff lines. The
    peak row is the rounded weighted centroid of the band.
    """

    if profile.size == 0 or profile.max() == 0:
        return []

    above = profile >= peak_ratio * profile.max()
    edges = np.diff(np.concatenate(([0], above.astype(np.int8), [0])))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)

    max_width = 2 * staff_height + 1
    peaks: List[LinePeak] = []
    for start, end in zip(starts, ends):
        if end - start > max_width:
            continue
        weights = profile[start:end]
        centroid = float(np.dot(np.arange(start, end), weights) / weights.sum())
        peaks.append(
            LinePeak(
                row=int(np.rint(centroid)) - margin,
                top=int(start) - margin,
                bottom=int(end) - margin,
                strength=int(weights.sum()),
            )
        )
    return peaks


def group_line_peaks(
    peaks: Sequence[LinePeak],
    *,
    staff_space: int,
    space_tolerance: float,
) -> List[List[LinePeak]]:
    """Chain consecutive peaks whose distance matches ``staff_space``."""

    if not peaks:
        return []

    max_deviation = space_tolerance * staff_space
    chains: List[List[LinePeak]] = [[peaks[0]]]
    for peak in peaks[1:]:
        gap = peak.row - chains[-1][-1].row
        if abs(gap - staff_space) <= max_deviation:
            chains[-1].append(peak)
        else:
            chains.append([peak])
    return chains


def select_staffs(chain: Sequence[LinePeak], lines: int = STAFF_LINES) -> Staffs:
    """Pick non-overlapping runs of ``lines`` peaks out of one chain.

    Shorter chains are noise. In longer chains, the windows with the lowest
    spacing variance win; equal variances favour the upper window.
    """

    if len(chain) < lines:
        return []

    rows = np.array([peak.row for peak in chain], dtype=np.int64)
    candidates = []
    for start in range(len(chain) - lines + 1):
        spacing = np.diff(rows[start : start + lines])
        candidates.append((float(np.var(spacing)), start))
    candidates.sort()

    taken = np.zeros(len(chain), dtype=bool)
    staffs: Staffs = []
    for _, start in candidates:
        window = slice(start, start + lines)
        if taken[window].any():
            continue
        taken[window] = True
        staffs.append((int(rows[start]), int(rows[start + lines - 1])))
    return staffs


def fit_staff_model(
    model: StaffModel,
    image: np.ndarray | None = None,
    *,
    config: StaffSettings | None = None,
) -> Staffs:
    """Return the ``(first_line_row, last_line_row)`` pair of every staff.

    Rows are measured at ``model.start_col``. ``image`` defaults to the ink
    mask stored on the model. An empty list means no staff was found.
    """

    config = config or get_settings()
    source = image if image is not None else model.staff_image
    if source is None:
        raise InconsistentGeometryError(
            "The model carries no staff image; pass the image explicitly"
        )
    mask = as_ink_mask(source)
    model.check_fits(mask.shape)

    profile, margin = corrected_profile(mask, model.gradient, model.start_col)
    peaks = find_line_peaks(
        profile,
        margin,
        staff_height=model.staff_height,
        peak_ratio=config.peak_ratio,
    )
    chains = group_line_peaks(
        peaks,
        staff_space=model.staff_space,
        space_tolerance=config.space_tolerance,
    )
    staffs = sorted(pair for chain in chains for pair in select_staffs(chain))
    logger.info("Fitted %d staffs from %d line peaks", len(staffs), len(peaks))
    return staffs


__all__ = [
    "LinePeak",
    "STAFF_LINES",
    "find_line_peaks",
    "fit_staff_model",
    "group_line_peaks",
    "select_staffs",
]
