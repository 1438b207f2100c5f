"""
Rendering helpers for adaptel label maps.
"""

from pathlib import Path

import numpy as np
from PIL import Image


def shuffle_label_colors(labels: np.ndarray) -> np.ndarray:
    """
    Map every label to a pseudo-random but deterministic RGB color.

    Each channel is one step of z = (925 * z + 711) % 256 starting from the label,
    so neighbouring label ids get unrelated colors.

    Returns:
    -------
    np.ndarray
        H x W x 3 uint8 image
    """
    z = np.asarray(labels, dtype=np.int64)
    out = np.empty(z.shape + (3,), dtype=np.uint8)
    for c in range(3):
        z = (925 * z + 711) % 256
        out[..., c] = z
    return out


def label_border_mask(labels: np.ndarray) -> np.ndarray:
    """True where the right or lower neighbour carries a different label."""
    labels = np.asarray(labels)
    border = np.zeros(labels.shape, dtype=bool)
    border[:, :-1] |= labels[:, :-1] != labels[:, 1:]
    border[:-1, :] |= labels[:-1, :] != labels[1:, :]
    return border


def draw_label_border(image_rgb: np.ndarray, labels: np.ndarray) -> np.ndarray:
    """
    Invert the colors of an RGB image on adaptel borders.

    Parameters:
    ----------
    image_rgb : np.ndarray
        H x W x 3 float image in [0, 1]
    labels : np.ndarray
        H x W label map

    Returns:
    -------
    np.ndarray
        Copy of image_rgb as float32 with border pixels replaced by 1 - p
    """
    vis = np.array(image_rgb, dtype=np.float32, copy=True)
    if vis.shape[:2] != np.shape(labels):
        raise ValueError(f"Image and labels must have same shape, got {vis.shape[:2]} vs {np.shape(labels)}")
    border = label_border_mask(labels)
    vis[border] = 1.0 - vis[border]
    return vis


def save_rgb_png(rgb: np.ndarray, out_path: str) -> None:
    """Save an RGB image, float in [0, 1] or uint8, as PNG."""
    arr = np.asarray(rgb)
    if arr.dtype != np.uint8:
        arr = (np.clip(arr, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(arr).save(out_path, format="PNG")


def save_label_png(labels: np.ndarray, out_path: str) -> None:
    """Save a label map rendered with shuffle_label_colors."""
    save_rgb_png(shuffle_label_colors(labels), out_path)
