"""Mask generation module for locating watermark pixels.

Two builders share one interface. The color-filtering builder flags pixels
whose brightness sits near a histogram peak around the expected watermark
level, or whose channels look like a translucent overlay. The flat-region
builder flags textureless pixels at roughly the watermark brightness. Both
raw masks are cleaned with a single morphological closing.
"""

import cv2
import numpy as np

from .config import RemovalConfig, DEFAULT_CONFIG
from .edges import build_edge_map, local_edge_density
from .histogram import brightness_histogram, find_watermark_levels, levels_near_watermark
from .raster import to_mask, watermark_pixels, count_mask_pixels, validate_image
from .utils import ImageArray, MaskArray, brightness, setup_logger

logger = setup_logger(__name__)

# 3×3 neighbourhood for dilation and erosion
MORPH_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))

class MaskBuilder:
    """Base class for watermark mask builders.

    Subclasses implement create_raw_mask; build_mask adds the shared
    morphological refinement.
    """

    name = "base"

    def __init__(self, config: RemovalConfig = DEFAULT_CONFIG):
        self.config = config

    def create_raw_mask(self, image: ImageArray, threshold: int, tolerance: int) -> MaskArray:
        raise NotImplementedError

    def build_mask(self, image: ImageArray, threshold: int, tolerance: int) -> MaskArray:
        """Build the refined watermark mask for an image.

        Args:
            image: Input image in RGB format
            threshold: Expected watermark brightness (0-255)
            tolerance: Similarity band (0-255)

        Returns:
            Binary mask as H×W uint8 numpy array (255 = watermark, 0 = keep)
        """
        validate_image(image)
        raw = self.create_raw_mask(image, threshold, tolerance)
        logger.debug(f"{self.name}: raw mask has {count_mask_pixels(raw)} pixels")
        return refine_mask(raw)

class ColorFilterMaskBuilder(MaskBuilder):
    """Flags pixels near a watermark-like brightness peak or with overlay-like color."""

    name = "color-filter"

    def create_raw_mask(self, image: ImageArray, threshold: int, tolerance: int) -> MaskArray:
        histogram = brightness_histogram(image)
        levels = find_watermark_levels(histogram, threshold, self.config.peak_band)
        near_level = levels_near_watermark(levels, tolerance)

        by_brightness = near_level[brightness(image)]
        translucent = semi_transparent_pixels(image, tolerance)

        logger.debug(
            f"Color filter: {int(by_brightness.sum())} pixels near peaks, "
            f"{int(translucent.sum())} semi-transparent"
        )
        return to_mask(by_brightness | translucent)

class FlatRegionMaskBuilder(MaskBuilder):
    """Flags low-texture pixels whose brightness is close to the watermark level."""

    name = "edge-reconstruction"

    def create_raw_mask(self, image: ImageArray, threshold: int, tolerance: int) -> MaskArray:
        edges = build_edge_map(image)
        density = local_edge_density(edges, self.config.edge_radius)

        level = brightness(image)
        band = self.config.edge_band
        flat = density < tolerance
        in_band = (level >= threshold - band) & (level <= threshold + band)

        return to_mask(flat & in_band)

def semi_transparent_pixels(image: ImageArray, tolerance: int) -> np.ndarray:
    """Find pixels with the look of a translucent overlay.

    A pixel qualifies when its channels are mutually within tolerance
    (near-gray), or when blue or red exceeds both other channels by more
    than tolerance (a color cast).

    Args:
        image: Input image in RGB format
        tolerance: Channel similarity band

    Returns:
        H×W boolean array
    """
    pixels = image.astype(np.int32)
    r, g, b = pixels[..., 0], pixels[..., 1], pixels[..., 2]

    near_gray = (
        (np.abs(r - g) < tolerance)
        & (np.abs(r - b) < tolerance)
        & (np.abs(g - b) < tolerance)
    )
    blue_cast = (b > r + tolerance) & (b > g + tolerance)
    red_cast = (r > b + tolerance) & (r > g + tolerance)

    return near_gray | blue_cast | red_cast

def morph_dilate(mask: MaskArray) -> MaskArray:
    """Binary dilation over the 8-neighbourhood; pixels outside the raster are ignored."""
    return cv2.dilate(to_mask(watermark_pixels(mask)), MORPH_KERNEL)

def morph_erode(mask: MaskArray) -> MaskArray:
    """Binary erosion over the 8-neighbourhood; pixels outside the raster never block."""
    return cv2.erode(to_mask(watermark_pixels(mask)), MORPH_KERNEL)

def refine_mask(mask: MaskArray) -> MaskArray:
    """Morphological closing: one dilation, then one erosion.

    Fills one-pixel gaps between watermark fragments and smooths ragged
    edges of the mask.

    Args:
        mask: Binary mask (H×W uint8)

    Returns:
        Refined binary mask
    """
    dilated = morph_dilate(mask)
    logger.debug(f"After dilation: {count_mask_pixels(dilated)} mask pixels")

    refined = morph_erode(dilated)
    logger.debug(f"After erosion: {count_mask_pixels(refined)} mask pixels")
    return refined
