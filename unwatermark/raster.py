"""Raster and mask containers with bounds-safe access.

Every stage of the pipeline works on plain numpy arrays; this module owns the
rules those arrays must satisfy (shape, dtype, non-zero geometry) and the
error types raised when they are violated.
"""

import numpy as np
from typing import Optional, Tuple

from .utils import ImageArray, MaskArray, Color

# Mask values above this level mark watermark pixels
MASK_THRESHOLD = 200
MASK_ON = 255
MASK_OFF = 0


class InvalidGeometryError(ValueError):
    """Raised when a raster or mask has unusable dimensions."""


class WatermarkRemovalError(RuntimeError):
    """Raised when the pipeline cannot produce an output for an image."""


class RasterBuffer:
    """An owned H×W×3 RGB raster with guarded pixel access.

    The buffer always holds its own copy of the pixel data, so stages that
    receive one can never mutate another stage's input.
    """

    def __init__(self, pixels: ImageArray, copy: bool = True):
        validate_image(pixels)
        self.pixels = np.array(pixels, dtype=np.uint8, copy=True) if copy else pixels

    @classmethod
    def blank(cls, width: int, height: int, color: Color = (0, 0, 0)) -> "RasterBuffer":
        """Create a raster filled with a single color."""
        if width <= 0 or height <= 0:
            raise InvalidGeometryError(f"Raster must be non-empty, got {width}×{height}")
        pixels = np.empty((height, width, 3), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels, copy=False)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width) of the raster."""
        return self.pixels.shape[:2]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_pixel(self, x: int, y: int) -> Optional[Color]:
        """Return the RGB triple at (x, y), or None outside the raster."""
        if not self.in_bounds(x, y):
            return None
        r, g, b = self.pixels[y, x]
        return int(r), int(g), int(b)

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        """Set the pixel at (x, y).

        Raises:
            IndexError: If (x, y) lies outside the raster
        """
        if not self.in_bounds(x, y):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}×{self.height} raster")
        self.pixels[y, x] = color

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(self.pixels)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"RasterBuffer({self.width}×{self.height})"


def validate_image(image: ImageArray) -> None:
    """Check that an array is a non-empty H×W×3 raster.

    Raises:
        InvalidGeometryError: If the array cannot be processed
    """
    if not isinstance(image, np.ndarray):
        raise InvalidGeometryError(f"Expected a numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != 3:
        raise InvalidGeometryError(f"Expected an H×W×3 RGB raster, got shape {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidGeometryError(f"Raster must be non-empty, got {image.shape[1]}×{image.shape[0]}")
    if image.dtype != np.uint8:
        raise InvalidGeometryError(f"Expected 8-bit channels, got dtype {image.dtype}")


def validate_mask(mask: MaskArray, image: ImageArray) -> None:
    """Check that a mask matches the raster it describes.

    Raises:
        InvalidGeometryError: If the mask is not H×W for the given raster
    """
    if mask.shape != image.shape[:2]:
        raise InvalidGeometryError(
            f"Mask shape {mask.shape} does not match raster shape {image.shape[:2]}"
        )


def watermark_pixels(mask: MaskArray) -> np.ndarray:
    """Boolean view of a 0/255 mask (True = watermark)."""
    return mask > MASK_THRESHOLD


def to_mask(flags: np.ndarray) -> MaskArray:
    """Convert a boolean array into a 0/255 uint8 mask."""
    return np.where(flags, MASK_ON, MASK_OFF).astype(np.uint8)


def count_mask_pixels(mask: MaskArray) -> int:
    """Number of watermark pixels in a mask."""
    return int(np.count_nonzero(watermark_pixels(mask)))
