"""Edge map construction for the edge-reconstruction strategy.

Gradient magnitude comes from 3×3 Sobel kernels convolved without edge
extension: taps falling outside the raster contribute zero, so pixels on the
image border receive attenuated gradients.
"""

import cv2
import numpy as np

from .utils import ImageArray, brightness, setup_logger

logger = setup_logger(__name__)

def to_grayscale(image: ImageArray) -> np.ndarray:
    """Convert an RGB raster to single-channel brightness.

    Args:
        image: Input image in RGB format

    Returns:
        H×W uint8 array of (R+G+B)/3, truncated
    """
    return brightness(image).astype(np.uint8)

def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Compute the Sobel gradient magnitude of a grayscale image.

    Args:
        gray: H×W grayscale array

    Returns:
        H×W uint8 edge map, round(sqrt(gx² + gy²)) clamped to 255
    """
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3, borderType=cv2.BORDER_CONSTANT)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3, borderType=cv2.BORDER_CONSTANT)
    magnitude = np.rint(np.sqrt(gx * gx + gy * gy))
    return np.minimum(magnitude, 255).astype(np.uint8)

def build_edge_map(image: ImageArray) -> np.ndarray:
    """Grayscale conversion followed by Sobel magnitude."""
    edges = sobel_magnitude(to_grayscale(image))
    logger.debug(f"Edge map: mean magnitude {edges.mean():.1f}, max {int(edges.max())}")
    return edges

def local_edge_density(edges: np.ndarray, radius: int = 5) -> np.ndarray:
    """Mean edge magnitude over a (2·radius+1)² window around every pixel.

    Windows are clipped to the raster, so boundary pixels average over fewer
    samples instead of being zero-padded.

    Args:
        edges: H×W uint8 edge map
        radius: Half-size of the averaging window

    Returns:
        H×W int32 array of truncated window means
    """
    h, w = edges.shape[:2]
    integral = cv2.integral(edges).astype(np.int64)

    rows = np.arange(h)
    cols = np.arange(w)
    top = np.clip(rows - radius, 0, h)
    bottom = np.clip(rows + radius + 1, 0, h)
    left = np.clip(cols - radius, 0, w)
    right = np.clip(cols + radius + 1, 0, w)

    sums = (
        integral[np.ix_(bottom, right)]
        - integral[np.ix_(top, right)]
        - integral[np.ix_(bottom, left)]
        + integral[np.ix_(top, left)]
    )
    counts = (bottom - top)[:, None] * (right - left)[None, :]

    return (sums // counts).astype(np.int32)
