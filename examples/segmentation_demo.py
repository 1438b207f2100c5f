#!/usr/bin/env python3
"""
Example script demonstrating the usage of adaptel segmentation.
"""

import argparse
import time

import numpy as np
import matplotlib.pyplot as plt
from adaptels import segment_image, load_image_grayscale, load_image_rgb, rgb_to_lab_input
from adaptels.visualize import shuffle_label_colors, draw_label_border

def load_and_preprocess_image(image_path, use_color):
    """Return (segmentation input, RGB image for display)."""
    rgb = load_image_rgb(image_path)
    if use_color:
        return rgb_to_lab_input(rgb), rgb
    gray = load_image_grayscale(image_path)
    return gray, np.repeat(gray[..., None], 3, axis=2)

def visualize_results(rgb, labels):
    """Show the original image, the colored labels and the adaptel borders."""
    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    axes[0].imshow(rgb)
    axes[0].set_title('Original Image')
    axes[0].axis('off')

    axes[1].imshow(shuffle_label_colors(labels))
    axes[1].set_title('Adaptels')
    axes[1].axis('off')

    axes[2].imshow(draw_label_border(rgb, labels))
    axes[2].set_title('Boundaries')
    axes[2].axis('off')

    plt.tight_layout()
    plt.show()

def main():
    parser = argparse.ArgumentParser(description='Test adaptel segmentation on an image')
    parser.add_argument('image_path', help='Path to the input image')
    parser.add_argument('threshold', type=float, help='Information threshold of one adaptel')
    parser.add_argument('--gray', action='store_true',
                       help='Segment grayscale intensities instead of L*a*b*')
    args = parser.parse_args()

    print("Loading image...")
    image, rgb = load_and_preprocess_image(args.image_path, not args.gray)

    print("Running adaptel segmentation...")
    t0 = time.time()
    labels = segment_image(image, args.threshold)
    print(f"Adaptel {(time.time() - t0) * 1000.0:.1f} ms")

    # Every pixel must end up in an adaptel
    assert np.all(labels > 0), "Error: segmentation left unlabeled pixels!"

    sizes = np.bincount(labels.ravel())[1:]
    print("\nSegmentation Statistics:")
    print(f"Image shape: {image.shape}")
    print(f"Number of adaptels: {labels.max()}")
    print(f"Adaptel size: min {sizes.min()}, median {int(np.median(sizes))}, max {sizes.max()}")

    print("\nDisplaying visualization...")
    visualize_results(rgb, labels)

if __name__ == "__main__":
    main()
