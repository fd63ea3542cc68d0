"""Staff line thickness and spacing from vertical run-length histograms."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from ..errors import NoStaffSignalError
from .staff_model import as_ink_mask

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RunLengthStats:
    """Modal staff-line thickness and spacing, with the histograms behind them."""

    staff_height: int
    staff_space: int
    run_histogram: np.ndarray
    spacing_histogram: np.ndarray


def vertical_runs(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(columns, starts, lengths)`` of every vertical ink run.

    Runs are ordered by column, then from top to bottom inside each column.
    """

    padded = np.pad(mask, ((1, 1), (0, 0))).astype(np.int8)
    edges = np.diff(padded, axis=0).T
    columns, starts = np.nonzero(edges == 1)
    _, ends = np.nonzero(edges == -1)
    return columns, starts, ends - starts


def estimate_run_lengths(image: np.ndarray) -> RunLengthStats:
    """Estimate ``staff_height`` and ``staff_space`` from ``image``.

    ``staff_height`` is the most frequent vertical ink-run length.
    ``staff_space`` is the most frequent start-to-start distance between two
    consecutive runs of a column when both look like staff lines, that is
    when their lengths stay within ``max(1, staff_height // 2)`` of the
    modal length.
    """

    mask = as_ink_mask(image)
    columns, starts, lengths = vertical_runs(mask)
    if lengths.size == 0:
        raise NoStaffSignalError("The image does not contain any ink")

    run_histogram = np.bincount(lengths)
    staff_height = int(np.argmax(run_histogram))

    tolerance = max(1, staff_height // 2)
    line_like = np.abs(lengths - staff_height) <= tolerance
    pairs = (columns[1:] == columns[:-1]) & line_like[1:] & line_like[:-1]
    spacings = (starts[1:] - starts[:-1])[pairs]
    if spacings.size == 0:
        raise NoStaffSignalError("No pair of line-like runs shares a column")

    spacing_histogram = np.bincount(spacings)
    staff_space = int(np.argmax(spacing_histogram))
    if staff_space <= staff_height:
        raise NoStaffSignalError(
            f"Run spacing ({staff_space}) does not exceed run length ({staff_height})"
        )

    logger.info("Run lengths: staff_height=%d staff_space=%d", staff_height, staff_space)
    return RunLengthStats(
        staff_height=staff_height,
        staff_space=staff_space,
        run_histogram=run_histogram,
        spacing_histogram=spacing_histogram,
    )


__all__ = ["RunLengthStats", "estimate_run_lengths", "vertical_runs"]
