#!/usr/bin/env python3
"""
adaptel_superpixels.py

Batch adaptel segmentation of every image in a directory.

For each input image the runner writes, under <output_dir>/adaptels/:
  <stem>_labels.npy     int32 label map, adaptels numbered 1..K
  <stem>_labels.png     label map with a deterministic pseudo-random color per adaptel
  <stem>_boundary.png   input image with adaptel borders inverted

Colour images are segmented in CIE L*a*b* divided by 128, grayscale images
(--gray) as intensities in [0, 1]. The threshold bounds the cumulative
information of a single adaptel, typical values are 10 to 50.

License: MIT License
"""

import argparse, json, logging, time
from pathlib import Path
from typing import List

import numpy as np
from tqdm import tqdm

from adaptels import run_adaptels, load_image_grayscale, load_image_rgb, rgb_to_lab_input
from adaptels.visualize import draw_label_border, save_label_png, save_rgb_png

METHOD_NAME = "adaptels"
IMG_EXTS = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff"}


def find_images(images_dir: str) -> List[str]:
    """Sorted image paths in images_dir, by extension."""
    images_dir = Path(images_dir)
    return [str(p) for p in sorted(images_dir.iterdir()) if p.is_file() and p.suffix.lower() in IMG_EXTS]


def run_single_image(image_path: str, args):
    """Segment one file, return (labels, rgb for the overlay, stats)."""
    rgb = load_image_rgb(image_path)
    if args.gray:
        image = load_image_grayscale(image_path)
        rgb = np.repeat(image[..., None], 3, axis=2)
    else:
        image = rgb_to_lab_input(rgb)

    labels, _, stats = run_adaptels(image, args.threshold,
                                    scale=args.scale,
                                    conn=args.conn,
                                    random_select=not args.no_random_select,
                                    rng_seed=args.rng_seed,
                                    max_regions=args.max_regions)

    H, W = labels.shape
    logging.info(f"{Path(image_path).stem}, {H}x{W}, adaptels {stats['regions']}, "
                 f"candidates {stats['candidates']}, runtime_ms {stats['runtime_ms']:.2f}")
    return labels, rgb, stats


def save_outputs(out_root: Path, base: str, labels: np.ndarray, rgb: np.ndarray) -> None:
    out_root.mkdir(parents=True, exist_ok=True)
    np.save(out_root / f"{base}_labels.npy", labels)
    save_label_png(labels, str(out_root / f"{base}_labels.png"))
    save_rgb_png(draw_label_border(rgb, labels), str(out_root / f"{base}_boundary.png"))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Adaptel superpixel segmentation of a directory of images")
    ap.add_argument("--images_dir", type=str, required=True)
    ap.add_argument("--output_dir", type=str, required=True)
    ap.add_argument("--threshold", type=float, required=True, help="information threshold of one adaptel")
    ap.add_argument("--gray", action="store_true", help="segment grayscale intensities instead of L*a*b*")
    ap.add_argument("--scale", type=float, default=2.0, help="scale k of info = k * |v - mu|")
    ap.add_argument("--conn", type=int, default=4, choices=[4, 8])
    ap.add_argument("--no-random-select", action="store_true", help="take frontier seeds in row-major order")
    ap.add_argument("--rng-seed", type=int, default=1, help="seed of the frontier shuffle")
    ap.add_argument("--max-regions", type=int, default=None, help="stop each image after this many adaptels")
    ap.add_argument("--num-images", type=int, default=0, help="0 means all")
    ap.add_argument("--start-one", type=int, default=1, help="1-indexed start position")
    ap.add_argument("--verbose", action="store_true", help="log every grown adaptel")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    images = find_images(args.images_dir)
    start_idx = max(0, int(args.start_one) - 1)
    if start_idx >= len(images):
        logging.info(json.dumps({"processed": 0, "skipped": len(images), "reason": "start index beyond input"}))
        return
    end_idx = len(images) if args.num_images == 0 else min(len(images), start_idx + int(args.num_images))
    work_list = images[start_idx:end_idx]

    out_root = Path(args.output_dir) / METHOD_NAME
    out_root.mkdir(parents=True, exist_ok=True)

    processed, skipped = 0, 0
    times, regions = [], []

    with tqdm(total=len(work_list), desc="Adaptels") as pbar:
        for img_path in work_list:
            base = Path(img_path).stem
            try:
                t0 = time.time()
                labels, rgb, stats = run_single_image(img_path, args)
                ms = (time.time() - t0) * 1000.0
                save_outputs(out_root, base, labels, rgb)
                processed += 1
                times.append(ms)
                regions.append(stats["regions"])
            except Exception as e:
                logging.error(f"Error on {base}: {e}")
                skipped += 1
            pbar.update(1)

    print(json.dumps({
        "total": len(work_list),
        "processed": processed,
        "skipped": skipped,
        "avg_runtime_ms": float(np.mean(times)) if times else None,
        "median_runtime_ms": float(np.median(times)) if times else None,
        "avg_adaptels": float(np.mean(regions)) if regions else None,
        "threshold": float(args.threshold),
        "conn": int(args.conn),
        "method": METHOD_NAME
    }))


if __name__ == "__main__":
    main()
