"""Run the staff pipeline over a single page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from ..core.config import StaffSettings, get_settings
from ..errors import NoStaffSignalError
from ..layout import fit_staff_model, get_staff_model, realign, remove_staffs
from ..layout.staff_model import StaffModel, Staffs

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PageResult:
    """Outcome of processing one page.

    ``model`` is ``None`` when the page carries no staff signal. ``image`` is
    the edited copy of the page; the caller's array is never touched.
    """

    image: np.ndarray
    model: StaffModel | None = None
    staffs: Staffs = field(default_factory=list)
    removed: bool = False
    straightened: bool = False

    @property
    def has_staffs(self) -> bool:
        return bool(self.staffs)


def process_page(
    image: np.ndarray,
    *,
    n_threads: int | None = None,
    remove: bool = True,
    straighten: bool = False,
    config: StaffSettings | None = None,
) -> PageResult:
    """Estimate, fit and optionally remove or straighten the staves of a page.

    A page without staff signal is not an error: it is logged and reported
    as a result without model or staves.
    """

    config = config or get_settings()
    page = np.array(image, copy=True)

    try:
        model = get_staff_model(page, n_threads, config=config)
    except NoStaffSignalError as exc:
        logger.warning("No staff lines on this page: %s", exc)
        return PageResult(image=page)

    staffs = fit_staff_model(model, page, config=config)
    result = PageResult(image=page, model=model, staffs=staffs)

    if remove and staffs:
        remove_staffs(page, staffs, model, config=config)
        result.removed = True
    if straighten:
        realign(page, model)
        result.straightened = True

    logger.info(
        "Processed page: %d staffs, removed=%s, straightened=%s",
        len(staffs),
        result.removed,
        result.straightened,
    )
    return result
