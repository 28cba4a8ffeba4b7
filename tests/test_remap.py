from __future__ import annotations

import numpy as np
import pytest

from conftest import BLUE, GREEN, RED, solid
from logo_palette.core_types import Thresholds
from logo_palette.extract import extract_palette
from logo_palette.remap import nearest_palette_indices, remap_pixels


def test_single_colour_unchanged_alpha_snapped():
    img = solid((10, 20, 30), alpha=230)
    out = remap_pixels(img, extract_palette(img, 4))
    assert np.all(out[..., :3] == (10, 20, 30))
    assert np.all(out[..., 3] == 255)


def test_partial_alpha_passes_through():
    img = solid((10, 20, 30), alpha=150)
    out = remap_pixels(img, [(10, 20, 30)])
    assert np.all(out[..., 3] == 150)


def test_near_zero_alpha_becomes_fully_transparent():
    img = solid((10, 20, 30), alpha=5)
    out = remap_pixels(img, [(10, 20, 30)])
    assert not out.any()


def test_two_colour_output_unchanged(two_colour):
    palette = extract_palette(two_colour, 2)
    out = remap_pixels(two_colour, palette)
    np.testing.assert_array_equal(out, two_colour)


def test_substitution(two_colour):
    palette = extract_palette(two_colour, 2)
    out = remap_pixels(two_colour, palette, {RED: GREEN})
    assert np.all(out[:2, :, :3] == GREEN)
    assert np.all(out[2:, :, :3] == BLUE)
    assert np.all(out[..., 3] == 255)


def test_substitution_accepts_hex(two_colour):
    out = remap_pixels(two_colour, [RED, BLUE], {"#ff0000": "#00ff00"})
    assert np.all(out[:2, :, :3] == GREEN)


def test_erasure(two_colour):
    palette = extract_palette(two_colour, 2)
    out = remap_pixels(two_colour, palette, erased={BLUE})
    assert np.all(out[2:, :, 3] == 0)
    np.testing.assert_array_equal(out[:2], two_colour[:2])


def test_erased_wins_over_substitution(two_colour):
    out = remap_pixels(two_colour, [RED, BLUE], {BLUE: GREEN}, {BLUE})
    assert np.all(out[2:, :, 3] == 0)


def test_transparent_input(transparent):
    out = remap_pixels(transparent, extract_palette(transparent, 4))
    assert out.shape == transparent.shape
    assert not out.any()


def test_empty_palette_leaves_everything_transparent(two_colour):
    out = remap_pixels(two_colour, [])
    assert not out.any()


def test_ties_go_to_lowest_index():
    img = solid((10, 0, 0), (1, 1))
    out = remap_pixels(img, [(0, 0, 0), (20, 0, 0)])
    assert tuple(out[0, 0, :3]) == (0, 0, 0)
    out = remap_pixels(img, [(20, 0, 0), (0, 0, 0)])
    assert tuple(out[0, 0, :3]) == (20, 0, 0)


def test_idempotent_and_input_untouched(noisy):
    before = noisy.copy()
    palette = extract_palette(noisy, 5)
    mapping = {palette[0]: (1, 2, 3)}
    erased = {palette[-1]}
    a = remap_pixels(noisy, palette, mapping, erased)
    b = remap_pixels(noisy, palette, mapping, erased)
    assert a.tobytes() == b.tobytes()
    np.testing.assert_array_equal(noisy, before)


def test_substitution_and_erasure_properties(noisy):
    palette = extract_palette(noisy, 6)
    mapping = {palette[0]: (1, 2, 3), palette[2]: (9, 9, 9)}
    erased = {palette[1]}
    out = remap_pixels(noisy, palette, mapping, erased)

    live = noisy[..., 3] >= 10
    idx = nearest_palette_indices(noisy[..., :3], np.array(palette, dtype=np.uint8))
    idx = idx.reshape(noisy.shape[:2])
    for (y, x), j in np.ndenumerate(idx):
        px = out[y, x]
        if not live[y, x] or palette[j] in erased:
            assert px[3] == 0
            continue
        assert tuple(int(v) for v in px[:3]) == mapping.get(palette[j], palette[j])
        a = int(noisy[y, x, 3])
        assert px[3] == (255 if a > 200 else a)


def test_thresholds_are_configurable():
    img = solid((10, 20, 30), alpha=150)
    out = remap_pixels(img, [(10, 20, 30)], thresholds=Thresholds(opaque_snap_alpha=100))
    assert np.all(out[..., 3] == 255)
    out = remap_pixels(img, [(10, 20, 30)], thresholds=Thresholds(transparent_alpha_max=200))
    assert not out.any()


def test_nearest_indices_requires_palette():
    with pytest.raises(ValueError):
        nearest_palette_indices(np.zeros((2, 3), dtype=np.uint8), np.zeros((0, 3), dtype=np.uint8))


def test_rejects_bad_raster():
    with pytest.raises(TypeError):
        remap_pixels(np.zeros((2, 2, 4), dtype=np.float32), [RED])
