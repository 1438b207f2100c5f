import numpy as np
import pytest
from PIL import Image

from adaptels.visualize import (
    draw_label_border,
    label_border_mask,
    save_label_png,
    shuffle_label_colors,
)


def test_shuffle_label_colors_is_deterministic():
    labels = np.array([[0, 1], [1, 2]], dtype=np.int32)
    vis = shuffle_label_colors(labels)
    assert vis.shape == (2, 2, 3)
    assert vis.dtype == np.uint8
    assert vis[0, 0].tolist() == [199, 210, 145]
    assert np.array_equal(vis[0, 1], vis[1, 0])
    assert not np.array_equal(vis[0, 1], vis[1, 1])


def test_label_border_mask_checks_right_and_lower_neighbours():
    labels = np.array([[1, 1, 2],
                       [1, 1, 2],
                       [3, 3, 3]])
    assert label_border_mask(labels).tolist() == [
        [False, True, False],
        [True, True, True],
        [False, False, False],
    ]


def test_draw_label_border_inverts_border_pixels():
    labels = np.array([[1, 2], [1, 2]])
    image = np.zeros((2, 2, 3), dtype=np.float32)
    vis = draw_label_border(image, labels)
    assert np.all(vis[:, 0] == 1.0)
    assert np.all(vis[:, 1] == 0.0)
    # input untouched
    assert not image.any()


def test_draw_label_border_shape_mismatch():
    with pytest.raises(ValueError):
        draw_label_border(np.zeros((2, 3, 3)), np.zeros((3, 2), dtype=np.int32))


def test_save_label_png(tmp_path):
    out = tmp_path / "nested" / "labels.png"
    labels = np.arange(12, dtype=np.int32).reshape(3, 4)
    save_label_png(labels, str(out))
    back = np.asarray(Image.open(out))
    assert back.shape == (3, 4, 3)
    assert np.array_equal(back, shuffle_label_colors(labels))
