# tests/conftest.py
import io
from datetime import datetime

import numpy as np
import pytest
from PIL import Image

from models import CapturedImage, GeoLocation

SCENARIO_ADDRESS = "123 Nguyen Hue, District 1, Ho Chi Minh City"


def make_photo(width=1000, height=750, fmt="JPEG") -> bytes:
    """A deterministic synthetic photo: horizontal + vertical colour ramps."""
    xs = np.linspace(0, 255, width, dtype=np.float64)
    ys = np.linspace(0, 255, height, dtype=np.float64)
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = xs[None, :].astype(np.uint8)
    arr[..., 1] = ys[:, None].astype(np.uint8)
    arr[..., 2] = 128
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, fmt)
    return buf.getvalue()


def fixed_width_measure(text, _font=None):
    """10px per character, independent of the font."""
    return len(text) * 10.0


@pytest.fixture
def photo_bytes():
    return make_photo()


@pytest.fixture
def photo_factory():
    return make_photo


@pytest.fixture
def measure():
    return fixed_width_measure


@pytest.fixture
def scenario_a():
    return CapturedImage(
        captured_at=datetime(2024, 3, 1, 14, 5),
        operator_name="An",
        device_label="iPhone",
        location=GeoLocation(
            latitude=10.762622,
            longitude=106.660172,
            accuracy_m=12.0,
            fix_timestamp=1709276700000,
            address=SCENARIO_ADDRESS,
        ),
    )


@pytest.fixture
def scenario_b():
    return CapturedImage(
        captured_at=datetime(2024, 3, 1, 14, 5),
        operator_name="An",
        device_label="iPhone",
    )
