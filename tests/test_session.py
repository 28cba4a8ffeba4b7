from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from conftest import BLUE, GREEN, RED, WHITE, DeferredExecutor, png_bytes, solid
from logo_palette.core_types import NO_SELECTION
from logo_palette.image_io import DecodeError, decode_image
from logo_palette.session import EditorSession, EditSettings, recompute, validate_max_colors


@pytest.fixture
def session(two_colour):
    s = EditorSession(max_colors=2)
    s.load_image(png_bytes(two_colour))
    return s


def test_load_image_extracts_and_remaps(session, two_colour):
    assert session.palette == [RED, BLUE]
    np.testing.assert_array_equal(session.output, two_colour)
    assert session.palette_hex() == ["#ff0000", "#0000ff"]


def test_set_substitute(session):
    session.set_substitute(RED, GREEN)
    out = session.output
    assert np.all(out[:2, :, :3] == GREEN)
    assert np.all(out[2:, :, :3] == BLUE)
    assert session.colour_mapping_hex() == {"#ff0000": "#00ff00"}


def test_set_substitute_overwrites_and_clears(session, two_colour):
    session.set_substitute("#ff0000", GREEN)
    session.set_substitute(RED, WHITE)
    assert np.all(session.output[:2, :, :3] == WHITE)
    session.clear_substitute(RED)
    np.testing.assert_array_equal(session.output, two_colour)


def test_set_substitute_rejects_non_palette_colour(session):
    with pytest.raises(ValueError):
        session.set_substitute(GREEN, WHITE)


def test_toggle_erase(session, two_colour):
    session.toggle_erase(BLUE)
    assert np.all(session.output[2:, :, 3] == 0)
    np.testing.assert_array_equal(session.output[:2], two_colour[:2])
    session.toggle_erase(BLUE)
    np.testing.assert_array_equal(session.output, two_colour)


def test_reset_edits(session, two_colour):
    session.set_substitute(RED, GREEN)
    session.toggle_erase(BLUE)
    session.reset_edits()
    assert session.settings == EditSettings(max_colors=2)
    np.testing.assert_array_equal(session.output, two_colour)


def test_pick_at_uses_displayed_colours(session):
    session.set_substitute(RED, GREEN)
    hit = session.pick_at(0, 0)
    assert hit.index == 0 and hit.colour == RED
    assert session.pick_in_view(1, 99, 6, 100).index == 1


@pytest.mark.parametrize("k", [0, 1, 9, "3", 2.0, True, None])
def test_set_max_colors_rejects_out_of_range(session, k):
    generation = session.generation
    with pytest.raises(ValueError):
        session.set_max_colors(k)
    assert session.generation == generation


def test_constructor_validates_max_colors():
    with pytest.raises(ValueError):
        EditorSession(max_colors=12)


def test_set_max_colors_reextracts_and_prunes_edits(three_colour):
    session = EditorSession(max_colors=3)
    session.load_raster(three_colour)
    assert session.palette == [RED, BLUE, GREEN]
    session.set_substitute(GREEN, WHITE)
    session.toggle_erase(GREEN)
    session.set_substitute(RED, WHITE)

    session.set_max_colors(2)
    assert session.palette == [RED, BLUE]
    assert dict(session.settings.colour_mapping) == {RED: WHITE}
    assert session.settings.erased == frozenset()
    # Former green pixels now snap to the nearer remaining entry.
    assert session.output[0, 0, 3] == 255


def test_new_image_clears_edits(session):
    session.set_substitute(RED, GREEN)
    session.toggle_erase(BLUE)
    session.load_raster(solid((10, 200, 10)))
    assert session.palette == [(10, 200, 10)]
    assert dict(session.settings.colour_mapping) == {}
    assert session.settings.erased == frozenset()
    assert session.settings.max_colors == 2


def test_decode_failure_leaves_state(session):
    palette, generation, output = session.palette, session.generation, session.output
    with pytest.raises(DecodeError):
        session.load_image(b"definitely not an image")
    assert session.palette == palette
    assert session.generation == generation
    assert session.output is output


def test_fully_transparent_image(transparent):
    session = EditorSession()
    session.load_raster(transparent)
    assert session.palette == []
    assert not session.output.any()
    assert session.output.shape == transparent.shape
    assert session.pick_at(0, 0) is NO_SELECTION
    assert session.usage_report() == []
    assert decode_image(session.preview_png()).shape == transparent.shape


def test_no_image_yet():
    session = EditorSession()
    assert session.palette == []
    assert session.output is None
    assert session.pick_at(0, 0) is NO_SELECTION
    assert session.preview_png() is None
    assert session.refresh() is None


def test_preview_data_url_round_trip(session, two_colour):
    url = session.preview_data_url()
    assert url.startswith("data:image/png;base64,")
    np.testing.assert_array_equal(decode_image(url), two_colour)


def test_large_image_is_downscaled():
    session = EditorSession(max_side=600)
    session.load_raster(solid(RED, (500, 1000)))
    assert session.output.shape == (300, 600, 4)


def test_output_is_read_only(session):
    with pytest.raises(ValueError):
        session.output[0, 0, 0] = 1


def test_stale_result_is_discarded(two_colour):
    session = EditorSession(max_colors=2, auto_refresh=False)
    session.load_raster(two_colour)
    assert session.output is None
    session.refresh()
    assert session.palette == [RED, BLUE]

    ex = DeferredExecutor()
    old = session.recompute_in(ex)
    session.set_substitute(RED, GREEN)
    new = session.recompute_in(ex)
    # Newer work finishes first; the older result must not overwrite it.
    ex.run_all(reverse=True)

    assert old.result() is None
    assert new.result() is not None
    assert session.result is new.result()
    assert np.all(session.output[:2, :, :3] == GREEN)


def test_recompute_in_thread_pool(two_colour):
    session = EditorSession(max_colors=2, auto_refresh=False)
    session.load_raster(two_colour)
    with ThreadPoolExecutor(max_workers=2) as ex:
        result = session.recompute_in(ex).result()
    assert result is not None
    assert session.is_current(result)
    assert result.palette == [RED, BLUE]


def test_edit_waiting_on_lock_sees_newer_settings(two_colour):
    session = EditorSession(max_colors=2, auto_refresh=False)
    session.load_raster(two_colour)
    session.refresh()
    with session._lock:
        worker = threading.Thread(target=session.set_substitute, args=(BLUE, WHITE))
        worker.start()
        time.sleep(0.1)  # worker is now blocked on the lock
        session.set_substitute(RED, GREEN)
    worker.join()
    assert dict(session.settings.colour_mapping) == {RED: GREEN, BLUE: WHITE}


def test_concurrent_edits_all_land(two_colour):
    session = EditorSession(max_colors=2, auto_refresh=False)
    session.load_raster(two_colour)
    session.refresh()
    start = session.generation
    edits = [(RED, GREEN), (BLUE, WHITE)] * 50
    with ThreadPoolExecutor(max_workers=8) as ex:
        list(ex.map(lambda e: session.set_substitute(*e), edits))
        list(ex.map(lambda _i: session.toggle_erase(BLUE), range(10)))
    assert dict(session.settings.colour_mapping) == {RED: GREEN, BLUE: WHITE}
    assert session.settings.erased == frozenset()
    assert session.generation == start + len(edits) + 10


def test_recompute_is_pure(two_colour):
    settings = EditSettings(max_colors=2, colour_mapping={RED: GREEN}, erased=frozenset({BLUE}))
    a = recompute(two_colour, settings)
    b = recompute(two_colour, settings)
    assert a.palette == b.palette == [RED, BLUE]
    assert a.output.tobytes() == b.output.tobytes()


def test_validate_max_colors_bounds():
    assert validate_max_colors(2) == 2
    assert validate_max_colors(8) == 8
