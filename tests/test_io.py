import json

import numpy as np
import pytest
from PIL import Image

import adaptel_superpixels
from adaptels import (
    load_image_grayscale,
    load_image_rgb,
    process_image_file,
    rgb_to_lab_input,
)


def test_load_image_grayscale(tmp_path):
    arr = np.array([[0, 51], [102, 255]], dtype=np.uint8)
    path = tmp_path / "gray.png"
    Image.fromarray(arr).save(path)
    img = load_image_grayscale(str(path))
    assert img.dtype == np.float32
    assert np.allclose(img, arr / 255.0)


def test_load_image_rgb(red_blue_png):
    rgb = load_image_rgb(str(red_blue_png))
    assert rgb.shape == (8, 8, 3)
    assert rgb.dtype == np.float32
    assert rgb[0, 0].tolist() == [1.0, 0.0, 0.0]


def test_rgb_to_lab_input_scales_by_128():
    lab = rgb_to_lab_input(np.ones((1, 1, 3), dtype=np.float32))
    assert lab.dtype == np.float32
    assert lab[0, 0, 0] == pytest.approx(100.0 / 128.0, abs=1e-3)
    assert np.allclose(lab[0, 0, 1:], 0.0, atol=1e-3)


def test_process_image_file_color_and_gray(red_blue_png):
    labels = process_image_file(str(red_blue_png), 1.0, color=True)
    assert labels.shape == (8, 8)
    assert labels.max() == 2
    assert len(np.unique(labels[:, :4])) == 1
    assert len(np.unique(labels[:, 4:])) == 1

    labels = process_image_file(str(red_blue_png), 0.2, color=False)
    assert labels.max() == 2
    labels = process_image_file(str(red_blue_png), 100.0, color=False)
    assert np.all(labels == 1)


def test_runner_writes_outputs(tmp_path, red_blue_png, capsys):
    images_dir = red_blue_png.parent
    Image.fromarray(np.full((5, 7), 128, dtype=np.uint8)).save(images_dir / "flat.png")
    (images_dir / "notes.txt").write_text("not an image")
    (images_dir / "broken.png").write_bytes(b"not a png")
    out_dir = tmp_path / "out"

    adaptel_superpixels.main([
        "--images_dir", str(images_dir),
        "--output_dir", str(out_dir),
        "--threshold", "1.0",
    ])

    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["total"] == 3
    assert summary["processed"] == 2
    assert summary["skipped"] == 1
    assert summary["method"] == "adaptels"

    root = out_dir / "adaptels"
    labels = np.load(root / "red_blue_labels.npy")
    assert labels.shape == (8, 8)
    assert labels.max() == 2
    assert np.all(np.load(root / "flat_labels.npy") == 1)
    for name in ("red_blue_labels.png", "red_blue_boundary.png", "flat_boundary.png"):
        assert (root / name).exists()
