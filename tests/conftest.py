"""Common test fixtures."""

import pytest
import numpy as np

from unwatermark.utils import ImageArray


def solid_image(height: int, width: int, color) -> ImageArray:
    """Create an RGB raster filled with one color."""
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :] = color
    return image


@pytest.fixture
def gray_block_image():
    """10×10 light gray raster with a darker 3×3 block starting at (4, 4)."""
    image = solid_image(10, 10, (250, 250, 250))
    image[4:7, 4:7] = (180, 180, 180)
    return image


@pytest.fixture
def tinted_block_image():
    """10×10 pale yellow raster with a gray 3×3 block starting at (4, 4).

    The background channels are too far apart to look like a translucent
    overlay, so only the block is picked up by color filtering.
    """
    image = solid_image(10, 10, (255, 255, 200))
    image[4:7, 4:7] = (180, 180, 180)
    return image


@pytest.fixture
def random_image():
    """Deterministic noisy RGB raster."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(12, 15, 3), dtype=np.uint8)
