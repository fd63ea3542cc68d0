from __future__ import annotations

import math

import numpy as np
import pytest

from omrstaff.core.config import StaffSettings
from omrstaff.errors import InconsistentGeometryError
from omrstaff.layout import (
    StaffModel,
    fit_staff_model,
    get_staff_model,
    realign,
    remove_staffs,
)


def _flat_model(width: int = 1000) -> StaffModel:
    return StaffModel(gradient=np.zeros(width), start_col=0, start_row=40, staff_height=2, staff_space=8)


def test_remove_staffs_leaves_only_the_stem(page_with_stem, stem_mask):
    page = page_with_stem.copy()
    model = get_staff_model(page)
    staffs = fit_staff_model(model)

    result = remove_staffs(page, staffs, model)

    assert result is None
    assert np.array_equal(page < 128, stem_mask)
    assert set(np.unique(page)) == {0, 255}


def test_remove_staffs_keeps_thick_crossing_symbols(two_staff_page):
    page = two_staff_page.copy()
    page[123:142, 600:604] = 0
    page[52:61, 700:709] = 0
    symbols = np.zeros_like(page, dtype=bool)
    symbols[123:142, 600:604] = True
    symbols[52:61, 700:709] = True

    remove_staffs(page, [(40, 72), (120, 152)], _flat_model())

    assert np.all(page[symbols] == 0)
    assert np.array_equal(page < 128, symbols)


def test_safety_factor_controls_what_counts_as_a_line(two_staff_page):
    page = two_staff_page.copy()
    page[46:50, 500] = 0

    strict = page.copy()
    remove_staffs(strict, [(40, 72)], _flat_model(), config=StaffSettings(safety_factor=1.0))
    assert np.all(strict[46:50, 500] == 0)

    loose = page.copy()
    remove_staffs(loose, [(40, 72)], _flat_model(), config=StaffSettings(safety_factor=3.0))
    assert np.all(loose[46:50, 500] == 255)


def test_remove_staffs_tolerates_small_misalignment(two_staff_page):
    page = two_staff_page.copy()
    remove_staffs(page, [(41, 73)], _flat_model())
    assert not np.any(page[30:80] < 128)
    assert np.any(page[120:160] < 128)


def test_remove_staffs_follows_the_gradient(score_factory):
    page = score_factory(width=800, height=240, tops=(60, 150), slope=0.02, left=0, right=800)
    model = get_staff_model(page)
    remove_staffs(page, fit_staff_model(model), model)
    assert np.count_nonzero(page < 128) < 0.01 * 800 * 20


def test_remove_staffs_on_boolean_mask(two_staff_page):
    mask = two_staff_page < 128
    remove_staffs(mask, [(40, 72), (120, 152)], _flat_model())
    assert not mask.any()


def test_remove_staffs_rejects_mismatched_geometry(two_staff_page):
    with pytest.raises(InconsistentGeometryError):
        remove_staffs(two_staff_page, [(40, 72)], _flat_model(width=1001))
    with pytest.raises(InconsistentGeometryError):
        remove_staffs(two_staff_page, [(190, 222)], _flat_model())


def test_realign_round_trip_with_estimated_model(score_factory):
    page = score_factory(width=800, height=240, tops=(60, 150), slope=0.02, left=0, right=800)
    model = get_staff_model(page)
    original = page.copy()

    realign(page, model)
    assert not np.array_equal(page, original)
    realign(page, model.negated())
    assert np.array_equal(page, original)


@pytest.mark.parametrize("straight", [True, False])
def test_realign_round_trip_with_curved_model(straight):
    rng = np.random.default_rng(7)
    image = rng.integers(0, 256, size=(120, 300), dtype=np.uint8)
    gradient = 6.0 * np.sin(np.linspace(0.0, 3.0, 250))
    model = StaffModel(
        gradient=gradient,
        start_col=30,
        start_row=10,
        staff_height=2,
        staff_space=9,
        rot=0.05,
        straight=straight,
    )

    work = image.copy()
    realign(work, model)
    realign(work, model.negated())
    assert np.array_equal(work, image)


def test_realign_round_trip_on_colour_image():
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(60, 90, 3), dtype=np.uint8)
    model = StaffModel(gradient=np.linspace(0.0, -7.3, 90), start_col=0, start_row=0, staff_height=1, staff_space=5, straight=False)

    work = image.copy()
    realign(work, model)
    realign(work, model.negated())
    assert np.array_equal(work, image)


def test_realign_straightens_tilted_staffs(score_factory):
    page = score_factory(width=800, height=240, tops=(60, 150), slope=0.02, left=0, right=800)
    model = get_staff_model(page)

    realign(page, model)
    flattened = get_staff_model(page)

    assert abs(flattened.rot) < 0.004
    assert abs(model.rot) > 0.015


def test_realign_straight_model_uses_rotation():
    image = np.full((50, 100), 255, dtype=np.uint8)
    columns = np.arange(100)
    image[20 + np.rint(math.tan(0.1) * columns).astype(int), columns] = 0
    model = StaffModel(gradient=np.zeros(100), start_col=0, start_row=20, staff_height=1, staff_space=5, rot=0.1, straight=True)

    realign(image, model)

    assert np.all(image[20] == 0)
    assert np.count_nonzero(image == 0) == 100


def test_negated_model_flips_orientation():
    model = StaffModel(gradient=np.array([0.0, 1.5, -2.0]), start_col=0, start_row=3, staff_height=1, staff_space=4, rot=0.2, straight=False)
    inverse = model.negated()
    assert inverse.rot == -0.2
    assert inverse.gradient.tolist() == [0.0, -1.5, 2.0]
    assert inverse.straight is False
    assert (inverse.staff_height, inverse.staff_space, inverse.start_row) == (1, 4, 3)


def test_realign_rejects_model_wider_than_image():
    with pytest.raises(InconsistentGeometryError):
        realign(np.zeros((10, 10), dtype=np.uint8), _flat_model(width=11))
