"""Brightness histogram analysis for the color-filtering strategy."""

import numpy as np

from .utils import ImageArray, brightness, setup_logger

logger = setup_logger(__name__)

HISTOGRAM_BINS = 256

def brightness_histogram(image: ImageArray) -> np.ndarray:
    """Count pixels per truncated (R+G+B)/3 brightness level.

    Args:
        image: Input image in RGB format

    Returns:
        Array of 256 bucket counts
    """
    return np.bincount(brightness(image).ravel(), minlength=HISTOGRAM_BINS)

def find_watermark_levels(histogram: np.ndarray, threshold: int, band: int = 30) -> np.ndarray:
    """Flag brightness levels that look like a watermark's.

    A level qualifies when it is a strict local peak of the histogram and
    lies within threshold ± band. Levels 0 and 255 have only one neighbour
    and are never flagged.

    Args:
        histogram: 256 bucket counts
        threshold: Expected watermark brightness
        band: Allowed distance from threshold

    Returns:
        Boolean array of 256 flags
    """
    levels = np.zeros(HISTOGRAM_BINS, dtype=bool)
    inner = histogram[1:-1]
    peaks = (inner > histogram[:-2]) & (inner > histogram[2:])

    candidates = np.arange(1, HISTOGRAM_BINS - 1)
    in_band = (candidates >= threshold - band) & (candidates <= threshold + band)
    levels[1:-1] = peaks & in_band

    logger.debug(f"Histogram peaks near {threshold}: {np.flatnonzero(levels).tolist()}")
    return levels

def levels_near_watermark(levels: np.ndarray, tolerance: int) -> np.ndarray:
    """For each brightness, whether a flagged level lies within ± tolerance.

    Args:
        levels: Boolean flags from find_watermark_levels
        tolerance: Half-width of the search range, clamped to 0-255

    Returns:
        Boolean lookup table indexed by brightness
    """
    cumulative = np.concatenate(([0], np.cumsum(levels.astype(np.int64))))
    values = np.arange(HISTOGRAM_BINS)
    low = np.maximum(0, values - tolerance)
    high = np.minimum(HISTOGRAM_BINS - 1, values + tolerance)
    return (cumulative[high + 1] - cumulative[low]) > 0
