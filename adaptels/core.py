"""
Core functionality for adaptel superpixel segmentation.

An adaptel is a region grown best-first from a seed pixel, admitting the
cheapest neighbouring pixel first, until every remaining candidate would push
the cumulative information of the region past a threshold. The information of
a pixel is measured against a running mean of the region under a Laplacian
model, info(v) = k * ||v - mu||.
"""

import heapq
import logging
import math
import time
from typing import Optional, Tuple

import numpy as np
from PIL import Image
from skimage.color import rgb2lab
from skimage.morphology import dilation

DEFAULT_SCALE = 2.0
SUPPORTED_DTYPES = (np.uint8, np.float32)


class UnsupportedPixelFormat(ValueError):
    """Raised when an image is not 1 or 3 channels of uint8 or float32."""


# --------------------------- Information models ---------------------------

class ScalarInformation:
    """Running-mean information model for single channel pixels."""

    def __init__(self, scale: float = DEFAULT_SCALE):
        self.scale = scale
        self.info = 0.0
        self.sum = 0.0
        self.mu = 0.0
        self.count = 0

    def probe(self, value) -> float:
        # mu is not recomputed for the earlier pixels, the cost is additive
        return self.info + abs(value - self.mu) * self.scale

    def commit(self, value) -> float:
        self.sum += value
        self.count += 1
        self.mu = self.sum / self.count
        self.info = self.probe(value)
        return self.info


class VectorInformation:
    """Running-mean information model for 3 channel pixels (euclidean norm)."""

    def __init__(self, scale: float = DEFAULT_SCALE):
        self.scale = scale
        self.info = 0.0
        self.sum = (0.0, 0.0, 0.0)
        self.mu = (0.0, 0.0, 0.0)
        self.count = 0

    def probe(self, value) -> float:
        m0, m1, m2 = self.mu
        d0, d1, d2 = value[0] - m0, value[1] - m1, value[2] - m2
        return self.info + math.sqrt(d0 * d0 + d1 * d1 + d2 * d2) * self.scale

    def commit(self, value) -> float:
        s0, s1, s2 = self.sum
        self.sum = (s0 + value[0], s1 + value[1], s2 + value[2])
        self.count += 1
        n = float(self.count)
        self.mu = (self.sum[0] / n, self.sum[1] / n, self.sum[2] / n)
        self.info = self.probe(value)
        return self.info


def information_model_for(image: np.ndarray):
    """
    Select the information model class for an image buffer.

    Parameters:
    ----------
    image : np.ndarray
        Image shaped (H, W), (H, W, 1) or (H, W, 3), dtype uint8 or float32

    Returns:
    -------
    type
        ScalarInformation or VectorInformation

    Raises:
    ------
    UnsupportedPixelFormat
        For any other dtype or channel layout.
    """
    if image.dtype not in SUPPORTED_DTYPES:
        raise UnsupportedPixelFormat(f"Unsupported pixel dtype {image.dtype}, expected uint8 or float32")
    if image.ndim == 2:
        return ScalarInformation
    if image.ndim == 3 and image.shape[2] == 1:
        return ScalarInformation
    if image.ndim == 3 and image.shape[2] == 3:
        return VectorInformation
    raise UnsupportedPixelFormat(f"Unsupported image shape {image.shape}, expected 1 or 3 channels")


def _pixel_values(image: np.ndarray, model_cls) -> list:
    """Flatten the image into a row-major list of python floats or float tuples."""
    H, W = image.shape[:2]
    arr = np.asarray(image, dtype=np.float64)
    if model_cls is ScalarInformation:
        return arr.reshape(H * W).tolist()
    return [tuple(p) for p in arr.reshape(H * W, 3).tolist()]


# --------------------------- Region growing ---------------------------

def _neighbors_offsets(conn: int = 4):
    if conn == 4:
        return [(-1, 0), (0, -1), (0, 1), (1, 0)]
    if conn == 8:
        return [(-1, 0), (0, -1), (0, 1), (1, 0), (-1, -1), (-1, 1), (1, -1), (1, 1)]
    raise ValueError(f"Connectivity must be 4 or 8, got {conn}")


def grow_adaptel(values: list,
                 shape: Tuple[int, int],
                 labels: np.ndarray,
                 least_information: np.ndarray,
                 threshold: float,
                 seed: Tuple[int, int],
                 model_cls=ScalarInformation,
                 scale: float = DEFAULT_SCALE,
                 conn: int = 4) -> Tuple[np.ndarray, int]:
    """
    Grow one adaptel from a seed, cheapest candidate first.

    A neighbour is pushed only when its probed information is below both the
    threshold and the least information it was ever offered with. Stale heap
    entries for pixels already in the region are discarded on pop.

    Parameters:
    ----------
    values : list
        Row-major pixel values from _pixel_values
    shape : tuple
        (H, W) of the image
    labels : np.ndarray
        H x W int32 label map; pixels with a non-zero label are not admitted
    least_information : np.ndarray
        H x W float32 map, updated in place
    threshold : float
        Information threshold. Non-positive values give single pixel regions.
    seed : tuple
        (row, col) of the seed pixel
    model_cls : type
        Information model class from information_model_for
    scale : float
        Scale constant k of the information metric
    conn : int
        Neighborhood connectivity, 4 or 8

    Returns:
    -------
    (np.ndarray, int)
        Boolean membership mask of the new region and number of candidates pushed.
    """
    H, W = shape
    N = H * W
    mask = np.zeros(N, dtype=bool)
    claimed = labels.ravel() != 0
    # non C-ordered maps are updated on a copy and written back at the end
    least = np.ascontiguousarray(least_information).reshape(N)
    offs = _neighbors_offsets(conn)

    model = model_cls(scale)
    heap = []
    push = heapq.heappush
    pop = heapq.heappop

    start = seed[0] * W + seed[1]
    least[start] = min(least[start], 0.0)
    push(heap, (0.0, start))
    candidates = 0

    while heap:
        _, idx = pop(heap)
        if mask[idx]:
            continue
        mask[idx] = True
        info = model.commit(values[idx])
        if info < least[idx]:
            least[idx] = info

        y, x = divmod(idx, W)
        for dy, dx in offs:
            ny, nx = y + dy, x + dx
            if 0 <= ny < H and 0 <= nx < W:
                j = ny * W + nx
                if mask[j] or claimed[j]:
                    continue
                probe = model.probe(values[j])
                if probe < threshold and probe < least[j]:
                    least[j] = probe
                    push(heap, (probe, j))
                    candidates += 1

    if not np.shares_memory(least, least_information):
        least_information[...] = least.reshape(H, W)
    return mask.reshape(H, W), candidates


# --------------------------- Seed selection ---------------------------

class SeedSelector:
    """
    Pick the next seed on the shell of the labeled territory.

    The shell is the dilation of the labeled mask minus the mask itself. In
    random mode the shell coordinates are shuffled with a generator owned by
    the selector, so a run is reproducible for a fixed seed.
    """

    def __init__(self, random_select: bool = True, seed: int = 1, conn: int = 4):
        if conn == 4:
            self.footprint = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)
        elif conn == 8:
            self.footprint = np.ones((3, 3), dtype=bool)
        else:
            raise ValueError(f"Connectivity must be 4 or 8, got {conn}")
        self.random_select = random_select
        self.rng = np.random.default_rng(seed)

    def shell(self, labels: np.ndarray) -> np.ndarray:
        mask = labels != 0
        return (dilation(mask.astype(np.uint8), self.footprint) > 0) & ~mask

    def next_seed(self, labels: np.ndarray) -> Optional[Tuple[int, int]]:
        coords = np.argwhere(self.shell(labels))
        if len(coords) == 0:
            return None
        if self.random_select:
            self.rng.shuffle(coords)
        y, x = coords[0]
        return int(y), int(x)


# --------------------------- Driver ---------------------------

def run_adaptels(image: np.ndarray,
                 threshold: float,
                 scale: float = DEFAULT_SCALE,
                 conn: int = 4,
                 random_select: bool = True,
                 rng_seed: int = 1,
                 seed: Optional[Tuple[int, int]] = None,
                 max_regions: Optional[int] = None,
                 model_cls=None):
    """
    Grow adaptels until no unlabeled pixel touches the labeled territory.

    model_cls replaces the information model chosen from the pixel format,
    e.g. one that recomputes the mean instead of the additive approximation.

    Returns (labels, least_information, stats). Raises UnsupportedPixelFormat
    before any growth for an unsupported image buffer.
    """
    image = np.asarray(image)
    format_cls = information_model_for(image)
    model_cls = model_cls or format_cls
    if conn not in (4, 8):
        raise ValueError(f"Connectivity must be 4 or 8, got {conn}")
    if max_regions is not None and max_regions < 0:
        raise ValueError(f"max_regions must be non-negative, got {max_regions}")

    H, W = image.shape[:2]
    labels = np.zeros((H, W), dtype=np.int32)
    least_information = np.full((H, W), np.inf, dtype=np.float32)
    stats = {"regions": 0, "candidates": 0, "pixels": 0, "runtime_ms": 0.0}
    if H * W == 0:
        return labels, least_information, stats

    if seed is None:
        seed = (H // 2, W // 2)
    elif not (0 <= seed[0] < H and 0 <= seed[1] < W):
        raise ValueError(f"Seed {seed} is outside image bounds ({H}x{W})")

    values = _pixel_values(image, format_cls)
    selector = SeedSelector(random_select=random_select, seed=rng_seed, conn=conn)

    t0 = time.time()
    ilabel = 0
    while seed is not None:
        if max_regions is not None and ilabel >= max_regions:
            break
        ilabel += 1
        t_iter = time.time()
        mask, candidates = grow_adaptel(values, (H, W), labels, least_information,
                                        threshold, seed, model_cls, scale, conn)
        labels[mask] = ilabel
        size = int(mask.sum())
        stats["candidates"] += candidates
        stats["pixels"] += size
        logging.debug(f"label={ilabel}, seed={seed}, candidates={candidates}, "
                      f"size={size} ({(time.time() - t_iter) * 1e6:.0f} us)")
        seed = selector.next_seed(labels)

    stats["regions"] = ilabel
    stats["runtime_ms"] = (time.time() - t0) * 1000.0
    logging.debug(f"adaptels {H}x{W}, regions {ilabel}, candidates {stats['candidates']}, "
                  f"runtime_ms {stats['runtime_ms']:.2f}")
    return labels, least_information, stats


def segment_image(image: np.ndarray,
                  threshold: float,
                  scale: float = DEFAULT_SCALE,
                  conn: int = 4,
                  random_select: bool = True,
                  rng_seed: int = 1,
                  seed: Optional[Tuple[int, int]] = None,
                  max_regions: Optional[int] = None,
                  model_cls=None,
                  strict: bool = False) -> np.ndarray:
    """
    Perform adaptel superpixel segmentation.

    Parameters:
    ----------
    image : np.ndarray
        Input image, shape [height, width] or [height, width, 1 or 3],
        dtype uint8 or float32. Colour images are usually given as L*a*b*
        divided by 128 (see rgb_to_lab_input).

    threshold : float
        Information threshold of a single adaptel. Larger values give larger
        adaptels. A non-positive threshold gives one adaptel per pixel.

    scale : float, optional
        Scale constant k of info(v) = k * ||v - mu||
        Default: 2.0

    conn : int, optional
        Neighborhood connectivity, either 4 or 8
        Default: 4

    random_select : bool, optional
        Shuffle the frontier before picking the next seed, otherwise take the
        first frontier pixel in row-major order
        Default: True

    rng_seed : int, optional
        Seed of the frontier shuffle
        Default: 1

    seed : tuple, optional
        (row, col) of the first seed. Default: image centre

    max_regions : int, optional
        Stop after this many adaptels; the result is then partially labeled

    model_cls : type, optional
        Information model class with probe/commit, used instead of the one
        chosen from the pixel format. The built-in models add each pixel's
        cost against the running mean without recomputing earlier terms.

    strict : bool, optional
        Raise UnsupportedPixelFormat instead of returning an all-zero map

    Returns:
    -------
    np.ndarray
        Label map with adaptels numbered 1..K, 0 only where unlabeled.
        Shape: [height, width]
        dtype: int32
    """
    image = np.asarray(image)
    try:
        labels, _, _ = run_adaptels(image, threshold, scale=scale, conn=conn,
                                    random_select=random_select, rng_seed=rng_seed,
                                    seed=seed, max_regions=max_regions, model_cls=model_cls)
    except UnsupportedPixelFormat as e:
        if strict:
            raise
        logging.error(f"Cannot segment image: {e}")
        shape = image.shape[:2] if image.ndim >= 2 else (0, 0)
        return np.zeros(shape, dtype=np.int32)
    return labels


# --------------------------- I O helpers ---------------------------

def load_image_grayscale(path: str) -> np.ndarray:
    """Return float32 grayscale in [0, 1]."""
    img = Image.open(path)
    if img.mode not in ("L", "I;16", "I", "F"):
        img = img.convert("L")
    arr = np.ascontiguousarray(np.asarray(img))
    if np.issubdtype(arr.dtype, np.integer):
        arr = arr.astype(np.float32) / float(np.iinfo(arr.dtype).max)
    else:
        arr = arr.astype(np.float32)
        vmin, vmax = float(arr.min()), float(arr.max())
        arr = np.zeros_like(arr, dtype=np.float32) if vmax <= vmin else (arr - vmin) / (vmax - vmin)
    return arr


def load_image_rgb(path: str) -> np.ndarray:
    """Return H x W x 3 float32 RGB in [0, 1]."""
    img = Image.open(path).convert("RGB")
    return np.asarray(img, dtype=np.float32) / 255.0


def rgb_to_lab_input(rgb: np.ndarray) -> np.ndarray:
    """Convert float RGB in [0, 1] to L*a*b* scaled by 1/128."""
    lab = rgb2lab(np.asarray(rgb, dtype=np.float64))
    return (lab / 128.0).astype(np.float32)


def process_image_file(image_path: str, threshold: float, color: bool = True, **kwargs) -> np.ndarray:
    """
    Load an image file and perform adaptel segmentation.

    Parameters:
    ----------
    image_path : str
        Path to the input image file

    threshold : float
        Information threshold, see segment_image

    color : bool, optional
        Segment in L*a*b* / 128 if True, in grayscale [0, 1] otherwise
        Default: True

    **kwargs
        Forwarded to segment_image

    Returns:
    -------
    np.ndarray
        Label map from segmentation
    """
    if color:
        image = rgb_to_lab_input(load_image_rgb(image_path))
    else:
        image = load_image_grayscale(image_path)
    return segment_image(image, threshold, **kwargs)
