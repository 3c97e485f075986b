"""
Pytest configuration and fixtures for pixgrid tests
"""

import os

import numpy as np
import pytest

from config import ENV_PREFIX, reset_settings
from imagecore.image2d import ImageBuffer2D
from imagecore.pixel_types import Luma, Rgb


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Drop PIXGRID_* overrides and the cached settings around every test"""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def gradient_u8():
    """5x4 Luma u8 image where pixel (x, y) is 10 * y + x"""
    return ImageBuffer2D.generate(5, 4, lambda xy: Luma["u8"](10 * xy[1] + xy[0]))


@pytest.fixture
def rgb_image():
    """6x5 Rgb u8 image with distinct channel values"""
    values = np.arange(6 * 5 * 3, dtype=np.uint8)
    return ImageBuffer2D.from_raw_vec(6, 5, values, Rgb["u8"])


@pytest.fixture
def random_f64():
    """12x9 Luma f64 image with seeded random content"""
    rng = np.random.default_rng(1234)
    values = rng.uniform(-50.0, 50.0, size=12 * 9)
    return ImageBuffer2D.from_raw_vec(12, 9, values, Luma["f64"])
