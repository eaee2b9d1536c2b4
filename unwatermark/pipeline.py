"""Watermark removal pipeline.

One invocation takes a single RGB raster through mask building, morphological
refinement, inpainting and a final blur, producing a new raster of the same
size. All intermediate arrays are local to the call, so independent images
(for example the pages of one document) can be processed concurrently.
"""

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Iterator, List, NamedTuple, Optional, Union

from .config import (
    RemovalConfig, DEFAULT_CONFIG, DEFAULT_THRESHOLD, DEFAULT_TOLERANCE, validate_levels
)
from .inpaint import InpaintMethod, inpaint_image
from .mask_generator import MaskBuilder, ColorFilterMaskBuilder, FlatRegionMaskBuilder
from .postprocess import apply_post_processing
from .raster import (
    RasterBuffer, InvalidGeometryError, WatermarkRemovalError, count_mask_pixels, validate_image
)
from .utils import ImageArray, MaskArray, setup_logger

logger = setup_logger(__name__)

class RemovalStrategy:
    """A mask builder paired with the fill method used on its mask."""

    name = "base"
    mask_builder_class = MaskBuilder
    inpaint_method: InpaintMethod = "directional"

    def __init__(self, config: RemovalConfig = DEFAULT_CONFIG):
        self.config = config
        self.mask_builder = self.mask_builder_class(config)

    def build_mask(self, image: ImageArray, threshold: int, tolerance: int) -> MaskArray:
        return self.mask_builder.build_mask(image, threshold, tolerance)

    def fill(self, image: ImageArray, mask: MaskArray) -> ImageArray:
        return inpaint_image(image, mask, method=self.inpaint_method, config=self.config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

class ColorFilterStrategy(RemovalStrategy):
    """Light watermarks: histogram/color mask, directional fill."""

    name = "color-filter"
    mask_builder_class = ColorFilterMaskBuilder
    inpaint_method = "directional"

class EdgeReconstructionStrategy(RemovalStrategy):
    """Dark or textured watermarks: flat-region mask, patch fill."""

    name = "edge-reconstruction"
    mask_builder_class = FlatRegionMaskBuilder
    inpaint_method = "patch"

class RemovalResult(NamedTuple):
    """Output of one pipeline run, with the mask kept for inspection."""
    image: ImageArray
    mask: MaskArray
    strategy: str
    replaced_pixels: int

def select_strategy(threshold: int, config: RemovalConfig = DEFAULT_CONFIG) -> RemovalStrategy:
    """Pick the removal strategy for an expected watermark brightness.

    Thresholds above config.strategy_split are treated as light watermarks
    on a varied background. This is a tunable heuristic, not a classifier.
    """
    if threshold > config.strategy_split:
        return ColorFilterStrategy(config)
    return EdgeReconstructionStrategy(config)

def run_pipeline(
    image: Union[ImageArray, RasterBuffer],
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None
) -> RemovalResult:
    """Detect and remove a watermark from one raster.

    Args:
        image: Input image in RGB format (H×W×3 uint8) or a RasterBuffer
        threshold: Expected watermark brightness (0-255)
        tolerance: Color similarity band and edge density cutoff (0-255)
        config: Heuristic parameters, defaults to DEFAULT_CONFIG

    Returns:
        RemovalResult holding the new image and the refined mask

    Raises:
        InvalidGeometryError: If the raster is empty or not H×W×3 uint8
        ValueError: If threshold, tolerance or config are out of range
        WatermarkRemovalError: If processing fails for any other reason
    """
    if isinstance(image, RasterBuffer):
        image = image.pixels

    config = (config or DEFAULT_CONFIG).validate()
    validate_image(image)
    validate_levels(threshold, tolerance)

    strategy = select_strategy(threshold, config)
    h, w = image.shape[:2]
    logger.info(f"Removing watermark from {w}×{h} raster with {strategy.name} strategy "
                f"(threshold={threshold}, tolerance={tolerance})")

    try:
        mask = strategy.build_mask(image, threshold, tolerance)
        replaced = count_mask_pixels(mask)
        logger.info(f"Mask covers {replaced} pixels ({100 * replaced / (h * w):.2f}% of image)")

        filled = strategy.fill(image, mask)
        result = apply_post_processing(filled)
    except Exception as e:
        raise WatermarkRemovalError(f"Watermark removal failed: {e}") from e

    return RemovalResult(result, mask, strategy.name, replaced)

def remove_watermark(
    image: ImageArray,
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None
) -> ImageArray:
    """Return a copy of the image with the detected watermark removed.

    See run_pipeline for arguments and errors.
    """
    return run_pipeline(image, threshold, tolerance, config).image

def remove_watermark_or_original(
    image: ImageArray,
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None
) -> ImageArray:
    """Like remove_watermark, but degrade to the unprocessed image on failure.

    Callers that must always produce output use this; the failure is logged
    and a copy of the input is returned.
    """
    try:
        return remove_watermark(image, threshold, tolerance, config)
    except (WatermarkRemovalError, InvalidGeometryError, ValueError) as e:
        logger.warning(f"Using original image: {e}")
        return image.copy()

def iter_processed_pages(
    pages: Iterable[ImageArray],
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None,
    max_workers: int = 1
) -> Iterator[ImageArray]:
    """Lazily run the pipeline over a stream of rasters, e.g. document pages.

    Pages are pulled from the input only as workers free up, so at most
    max_workers pages are in flight at once. Results are yielded in input
    order, and each page degrades to its original on failure.

    Args:
        pages: Input rasters, consumed lazily
        threshold: Expected watermark brightness (0-255)
        tolerance: Similarity band (0-255)
        config: Heuristic parameters
        max_workers: Worker threads; 1 processes pages serially

    Yields:
        Processed rasters in input order
    """
    def process_one(page: ImageArray) -> ImageArray:
        return remove_watermark_or_original(page, threshold, tolerance, config)

    if max_workers <= 1:
        for page in pages:
            yield process_one(page)
        return

    logger.info(f"Processing pages with {max_workers} workers")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        pending = deque()
        for page in pages:
            pending.append(executor.submit(process_one, page))
            if len(pending) >= max_workers:
                yield pending.popleft().result()
        while pending:
            yield pending.popleft().result()

def process_pages(
    pages: Iterable[ImageArray],
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None,
    max_workers: int = 1
) -> List[ImageArray]:
    """Run the pipeline over a sequence of rasters and collect the results.

    See iter_processed_pages for arguments.
    """
    return list(iter_processed_pages(pages, threshold, tolerance, config, max_workers))
