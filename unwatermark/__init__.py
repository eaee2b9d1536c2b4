"""Unwatermark: detect and remove overlaid watermarks from rasters.

This package provides a deterministic pipeline that locates watermark pixels
by histogram or edge analysis, refines the mask morphologically, and fills
the masked pixels from surrounding content, plus helpers for running it over
image files and PDF pages.
"""

__version__ = "0.1.0"
__author__ = "Unwatermark Team"

# Main pipeline components
from .raster import RasterBuffer, InvalidGeometryError, WatermarkRemovalError
from .config import RemovalConfig, DEFAULT_CONFIG
from .edges import build_edge_map, sobel_magnitude, local_edge_density
from .histogram import brightness_histogram, find_watermark_levels
from .mask_generator import (
    MaskBuilder,
    ColorFilterMaskBuilder,
    FlatRegionMaskBuilder,
    semi_transparent_pixels,
    morph_dilate,
    morph_erode,
    refine_mask,
)
from .inpaint import inpaint_image, directional_inpaint, patch_inpaint
from .postprocess import apply_post_processing
from .pipeline import (
    ColorFilterStrategy,
    EdgeReconstructionStrategy,
    RemovalResult,
    select_strategy,
    run_pipeline,
    remove_watermark,
    remove_watermark_or_original,
    iter_processed_pages,
    process_pages,
)
from .utils import load_image, save_image, setup_logger

__all__ = [
    "RasterBuffer",
    "InvalidGeometryError",
    "WatermarkRemovalError",
    "RemovalConfig",
    "DEFAULT_CONFIG",
    "build_edge_map",
    "sobel_magnitude",
    "local_edge_density",
    "brightness_histogram",
    "find_watermark_levels",
    "MaskBuilder",
    "ColorFilterMaskBuilder",
    "FlatRegionMaskBuilder",
    "semi_transparent_pixels",
    "morph_dilate",
    "morph_erode",
    "refine_mask",
    "inpaint_image",
    "directional_inpaint",
    "patch_inpaint",
    "apply_post_processing",
    "ColorFilterStrategy",
    "EdgeReconstructionStrategy",
    "RemovalResult",
    "select_strategy",
    "run_pipeline",
    "remove_watermark",
    "remove_watermark_or_original",
    "iter_processed_pages",
    "process_pages",
    "load_image",
    "save_image",
    "setup_logger",
]
