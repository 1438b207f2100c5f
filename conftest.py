import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def two_halves_image():
    """1 x 8 scalar image, four zeros then four ones."""
    return np.array([[0, 0, 0, 0, 1, 1, 1, 1]], dtype=np.float32)


@pytest.fixture
def noise_image():
    rng = np.random.default_rng(0)
    return rng.random((12, 10)).astype(np.float32)


@pytest.fixture
def red_blue_png(tmp_path):
    """8 x 8 PNG, red left half, blue right half."""
    arr = np.zeros((8, 8, 3), dtype=np.uint8)
    arr[:, :4] = (255, 0, 0)
    arr[:, 4:] = (0, 0, 255)
    path = tmp_path / "red_blue.png"
    Image.fromarray(arr).save(path)
    return path
