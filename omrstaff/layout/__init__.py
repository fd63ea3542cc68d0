"""Staff-line modelling, fitting, removal and straightening."""

from .gradient_field import estimate_rotation, get_staff_model, track_offsets
from .run_lengths import RunLengthStats, estimate_run_lengths, vertical_runs
from .staff_drawing import draw_staff_model, draw_staffs
from .staff_editor import realign, remove_staffs
from .staff_fitter import (
    STAFF_LINES,
    LinePeak,
    find_line_peaks,
    fit_staff_model,
    group_line_peaks,
    select_staffs,
)
from .staff_model import StaffModel, Staffs, as_ink_mask, corrected_profile

__all__ = [
    "LinePeak",
    "RunLengthStats",
    "STAFF_LINES",
    "StaffModel",
    "Staffs",
    "as_ink_mask",
    "corrected_profile",
    "draw_staff_model",
    "draw_staffs",
    "estimate_rotation",
    "estimate_run_lengths",
    "find_line_peaks",
    "fit_staff_model",
    "get_staff_model",
    "group_line_peaks",
    "realign",
    "remove_staffs",
    "select_staffs",
    "track_offsets",
    "vertical_runs",
]
