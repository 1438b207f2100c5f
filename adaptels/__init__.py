"""
Adaptel Superpixel Segmentation
-------------------------------
Unsupervised superpixels grown best-first from seeds, each region admitting
pixels until its cumulative information under a running-mean Laplacian model
reaches a threshold.

Example:
    >>> import numpy as np
    >>> from adaptels import segment_image, rgb_to_lab_input
    >>>
    >>> # Load your RGB image as a float32 array in [0,1]
    >>> rgb = ...  # Your image loading code here
    >>>
    >>> # Segment in L*a*b* / 128, larger thresholds give larger adaptels
    >>> labels = segment_image(rgb_to_lab_input(rgb), threshold=20.0)
"""

from .core import (
    UnsupportedPixelFormat,
    ScalarInformation,
    VectorInformation,
    SeedSelector,
    information_model_for,
    grow_adaptel,
    run_adaptels,
    segment_image,
    load_image_grayscale,
    load_image_rgb,
    rgb_to_lab_input,
    process_image_file,
)
from .visualize import shuffle_label_colors, draw_label_border

__version__ = "0.1.0"
__all__ = [
    "UnsupportedPixelFormat",
    "ScalarInformation",
    "VectorInformation",
    "SeedSelector",
    "information_model_for",
    "grow_adaptel",
    "run_adaptels",
    "segment_image",
    "load_image_grayscale",
    "load_image_rgb",
    "rgb_to_lab_input",
    "process_image_file",
    "shuffle_label_colors",
    "draw_label_border",
]
