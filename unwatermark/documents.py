"""File-level processing for images and paged documents.

PDF pages are rasterized with PyMuPDF, passed through the pipeline, and drawn
as JPEG images onto new pages of the original physical size. Pages stream
through one at a time, or a window of max_workers pages when processed
concurrently, so memory does not grow with page count. Text and vector
structure of the source document are not preserved.

Whenever a file cannot be processed, the original is copied to the output
path so callers always get a file back.
"""

import io
import shutil
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
import numpy as np
from PIL import Image

from .config import RemovalConfig, DEFAULT_CONFIG, DEFAULT_THRESHOLD, DEFAULT_TOLERANCE
from .pipeline import RemovalResult, iter_processed_pages, run_pipeline
from .utils import ImageArray, ImagePath, load_image, save_image, setup_logger

logger = setup_logger(__name__)

def rasterize_page(doc: fitz.Document, page_index: int, dpi: int = 300) -> ImageArray:
    """Render one page of a document as an RGB raster.

    Args:
        doc: Open PyMuPDF document
        page_index: Zero-indexed page number
        dpi: Render resolution

    Returns:
        H×W×3 uint8 RGB array

    Raises:
        ValueError: If the page does not exist
    """
    if not 0 <= page_index < len(doc):
        raise ValueError(f"Page {page_index} not found (document has {len(doc)} pages)")

    pix = doc[page_index].get_pixmap(dpi=dpi, colorspace=fitz.csRGB, alpha=False)
    samples = np.frombuffer(pix.samples, dtype=np.uint8)
    rows = samples.reshape(pix.height, pix.stride)
    return rows[:, :pix.width * pix.n].reshape(pix.height, pix.width, pix.n)[..., :3].copy()

def embed_page(
    out_doc: fitz.Document,
    image: ImageArray,
    width: float,
    height: float,
    jpeg_quality: int = 90
) -> fitz.Page:
    """Append a page of the given size showing the raster across the full page.

    Args:
        out_doc: Document to append to
        image: RGB raster of the processed page
        width: Page width in points
        height: Page height in points
        jpeg_quality: JPEG quality of the embedded image

    Returns:
        The new page
    """
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="JPEG", quality=jpeg_quality)

    page = out_doc.new_page(width=width, height=height)
    page.insert_image(page.rect, stream=buffer.getvalue(), keep_proportion=False)
    return page

def remove_watermark_from_pdf(
    input_path: ImagePath,
    output_path: ImagePath,
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None,
    max_workers: int = 1
) -> bool:
    """Remove watermarks from every page of a PDF.

    Args:
        input_path: Source PDF
        output_path: Where to write the processed PDF
        threshold: Expected watermark brightness (0-255)
        tolerance: Similarity band (0-255)
        config: Heuristic parameters (dpi and jpeg_quality are read here)
        max_workers: Pages processed concurrently

    Returns:
        True if the document was processed, False if the original was copied
    """
    config = config or DEFAULT_CONFIG
    input_path = Path(input_path)
    output_path = Path(output_path)

    try:
        with fitz.open(str(input_path)) as doc, fitz.open() as out_doc:
            rasters = (rasterize_page(doc, i, config.dpi) for i in range(len(doc)))
            processed = iter_processed_pages(rasters, threshold, tolerance, config, max_workers)

            for i, image in enumerate(processed):
                rect = doc[i].rect
                embed_page(out_doc, image, rect.width, rect.height, config.jpeg_quality)
                logger.debug(f"Embedded page {i + 1}/{len(doc)} of {input_path.name}")

            out_doc.save(str(output_path))
            logger.info(f"Processed {len(out_doc)} pages of {input_path.name} at {config.dpi} DPI")

        logger.info(f"Saved result to: {output_path.name}")
        return True

    except Exception as e:
        logger.error(f"Error processing {input_path.name}: {e}")
        shutil.copyfile(input_path, output_path)
        logger.warning(f"Copied original document to {output_path.name}")
        return False

def remove_watermark_from_image(
    input_path: ImagePath,
    output_path: ImagePath,
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: Optional[RemovalConfig] = None
) -> Optional[RemovalResult]:
    """Remove a watermark from an image file.

    Returns:
        The pipeline result, or None if the original was copied instead
    """
    config = config or DEFAULT_CONFIG
    input_path = Path(input_path)
    output_path = Path(output_path)

    try:
        image = load_image(input_path)
        result = run_pipeline(image, threshold, tolerance, config)
        save_image(result.image, output_path, quality=config.jpeg_quality)
        logger.info(f"Saved result to: {output_path.name}")
        return result

    except Exception as e:
        logger.error(f"Error processing {input_path.name}: {e}")
        shutil.copyfile(input_path, output_path)
        logger.warning(f"Copied original image to {output_path.name}")
        return None
