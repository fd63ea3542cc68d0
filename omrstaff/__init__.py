"""Staff-line analysis for optical music recognition.

The pipeline estimates how staff lines run across a binary score, finds the
five-line staves and then erases or straightens them::

    >>> from omrstaff import get_staff_model, fit_staff_model, remove_staffs
    >>> model = get_staff_model(binary, n_threads=4)
    >>> staffs = fit_staff_model(model)
    >>> remove_staffs(binary, staffs, model)
"""

from .errors import InconsistentGeometryError, NoStaffSignalError, StaffDetectionError
from .io import load_from_disk, save_to_disk
from .layout import (
    StaffModel,
    Staffs,
    draw_staff_model,
    draw_staffs,
    fit_staff_model,
    get_staff_model,
    realign,
    remove_staffs,
)

__all__ = [
    "InconsistentGeometryError",
    "NoStaffSignalError",
    "StaffDetectionError",
    "StaffModel",
    "Staffs",
    "draw_staff_model",
    "draw_staffs",
    "fit_staff_model",
    "get_staff_model",
    "load_from_disk",
    "realign",
    "remove_staffs",
    "save_to_disk",
]
