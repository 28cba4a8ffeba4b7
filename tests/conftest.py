from __future__ import annotations

import io
from concurrent.futures import Executor, Future

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def solid(rgb, shape=(4, 6), alpha=255) -> np.ndarray:
    out = np.zeros(shape + (4,), dtype=np.uint8)
    out[..., :3] = rgb
    out[..., 3] = alpha
    return out


def halves(top=RED, bottom=BLUE, shape=(4, 6)) -> np.ndarray:
    """Top half one colour, bottom half another, both opaque."""
    out = solid(top, shape)
    out[shape[0] // 2 :, :, :3] = bottom
    return out


def png_bytes(rgba: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(rgba).save(buf, format="PNG")
    return buf.getvalue()


class DeferredExecutor(Executor):
    """Holds submitted calls until run_all() so tests control completion order."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        fut = Future()
        self.pending.append((fut, fn, args, kwargs))
        return fut

    def run_all(self, reverse=False):
        items = list(reversed(self.pending)) if reverse else list(self.pending)
        self.pending.clear()
        for fut, fn, args, kwargs in items:
            fut.set_result(fn(*args, **kwargs))


@pytest.fixture
def two_colour():
    return halves()


@pytest.fixture
def three_colour():
    """Red 12 px, blue 8 px, green 4 px."""
    out = solid(RED, (4, 6))
    out[2:, 2:, :3] = BLUE
    out[0, :4, :3] = GREEN
    return out


@pytest.fixture
def transparent():
    return solid((12, 34, 56), alpha=0)


@pytest.fixture
def noisy():
    rng = np.random.default_rng(1234)
    out = rng.integers(0, 256, size=(24, 32, 4), dtype=np.uint8)
    out[..., 3] = rng.choice(np.array([0, 5, 90, 150, 220, 255], dtype=np.uint8), size=(24, 32))
    return out
