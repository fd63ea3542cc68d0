"""Persist detected staves and their staff model as OpenCV XML documents."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Tuple

import cv2
import numpy as np

from ..layout.staff_model import StaffModel, Staffs

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("start_col", "start_row", "staff_height", "staff_space")


def save_to_disk(
    path: Path | str,
    staffs: Sequence[Tuple[int, int]],
    model: StaffModel,
) -> Path:
    """Write ``staffs`` and ``model`` to ``path``.

    The format follows the file extension understood by
    :class:`cv2.FileStorage` (``.xml`` in practice). The diagnostic
    ``staff_image`` is not stored.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    storage = cv2.FileStorage(str(path), cv2.FILE_STORAGE_WRITE)
    if not storage.isOpened():
        raise OSError(f"Unable to open {path} for writing")
    try:
        for name in _SCALAR_FIELDS:
            storage.write(name, int(getattr(model, name)))
        storage.write("rot", float(model.rot))
        storage.write("straight", int(model.straight))
        storage.write("gradient", np.array(model.gradient, dtype=np.float64).reshape(-1, 1))
        storage.write("staff_count", len(staffs))
        if staffs:
            storage.write("staffs", np.array(staffs, dtype=np.int32).reshape(-1, 2))
    finally:
        storage.release()

    logger.info("Saved %d staffs to %s", len(staffs), path)
    return path


def load_from_disk(path: Path | str) -> tuple[Staffs, StaffModel]:
    """Read back a document written by :func:`save_to_disk`."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    storage = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    if not storage.isOpened():
        raise OSError(f"Unable to open {path} for reading")
    try:
        scalars = {name: int(storage.getNode(name).real()) for name in _SCALAR_FIELDS}
        gradient = storage.getNode("gradient").mat().ravel()
        model = StaffModel(
            gradient=gradient,
            rot=storage.getNode("rot").real(),
            straight=bool(int(storage.getNode("straight").real())),
            **scalars,
        )
        staffs: Staffs = []
        if int(storage.getNode("staff_count").real()) > 0:
            matrix = storage.getNode("staffs").mat().reshape(-1, 2)
            staffs = [(int(first), int(last)) for first, last in matrix]
    finally:
        storage.release()
    return staffs, model


__all__ = ["load_from_disk", "save_to_disk"]
