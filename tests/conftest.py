from __future__ import annotations

import os
from typing import Callable, Sequence

import numpy as np
import pytest

from omrstaff.core.config import get_settings


def _draw_score(
    width: int = 1000,
    height: int = 200,
    *,
    tops: Sequence[int] = (40, 120),
    lines: int = 5,
    staff_height: int = 2,
    staff_space: int = 8,
    slope: float = 0.0,
    left: int = 50,
    right: int = 950,
) -> np.ndarray:
    image = np.full((height, width), 255, dtype=np.uint8)
    xs = np.arange(left, right)
    drift = np.rint(slope * xs).astype(int)
    for top in tops:
        for line in range(lines):
            ys = top + line * staff_space + drift
            for dy in range(staff_height):
                image[ys + dy, xs] = 0
    return image


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("STAFF_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def score_factory() -> Callable[..., np.ndarray]:
    """Draw black-on-white synthetic staves."""

    return _draw_score


@pytest.fixture()
def two_staff_page() -> np.ndarray:
    """1000x200 page, two staves at rows 40 and 120, staff_height=2, staff_space=8."""

    return _draw_score()


@pytest.fixture()
def stem_mask() -> np.ndarray:
    mask = np.zeros((200, 1000), dtype=bool)
    mask[44:54, 300:302] = True
    return mask


@pytest.fixture()
def page_with_stem(two_staff_page, stem_mask) -> np.ndarray:
    """The two-staff page with a 10-row stem crossing the second line of the first staff."""

    page = two_staff_page.copy()
    page[stem_mask] = 0
    return page
