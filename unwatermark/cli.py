"""Command-line interface for unwatermark.

Processes a single image or PDF, or every supported file in a directory,
writing `<name>_nowatermark<ext>` files to the output directory.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .config import (
    DEFAULT_CONFIG, DEFAULT_THRESHOLD, DEFAULT_TOLERANCE, RemovalConfig, validate_levels
)
from .documents import remove_watermark_from_image, remove_watermark_from_pdf
from .utils import get_input_files, is_document, output_name, save_image, setup_logger

logger = setup_logger(__name__)

def process_single_file(
    input_file: Path,
    output_dir: Path,
    threshold: int = DEFAULT_THRESHOLD,
    tolerance: int = DEFAULT_TOLERANCE,
    config: RemovalConfig = DEFAULT_CONFIG,
    workers: int = 1,
    keep_masks: bool = False
) -> bool:
    """Process one image or PDF into the output directory.

    Args:
        input_file: Image or PDF to process
        output_dir: Directory for results
        threshold: Expected watermark brightness
        tolerance: Similarity band
        config: Heuristic parameters
        workers: Concurrent pages for PDFs
        keep_masks: Save the refined mask next to processed images (ignored for PDFs)

    Returns:
        True if processed, False if the original was copied instead
    """
    output_file = output_dir / output_name(input_file)

    if is_document(input_file):
        if keep_masks:
            logger.info(f"{input_file.name}: masks are not saved for PDF pages")
        return remove_watermark_from_pdf(
            input_file, output_file, threshold, tolerance, config, max_workers=workers
        )

    result = remove_watermark_from_image(input_file, output_file, threshold, tolerance, config)
    if result is None:
        return False

    logger.info(f"{input_file.name}: {result.strategy} strategy replaced {result.replaced_pixels} pixels")
    if keep_masks:
        mask_path = output_dir / f"{input_file.stem}_mask.png"
        save_image(result.mask, mask_path)
        logger.info(f"Saved mask to: {mask_path.name}")
    return True

def main(argv: Optional[list] = None) -> None:
    """Main entry point for the watermark removal tool."""
    args = parse_args(argv)

    # Setup logging
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        for name in list(logging.root.manager.loggerDict):
            if name.startswith("unwatermark"):
                logging.getLogger(name).setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

    # Setup file logging if requested
    if args.logfile:
        log_path = Path(args.logfile)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='w')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info(f"Logging to file: {log_path}")

    try:
        config = DEFAULT_CONFIG.with_overrides(dpi=args.dpi, jpeg_quality=args.quality)
        validate_levels(args.threshold, args.tolerance)
    except ValueError as e:
        logger.error(f"Invalid parameters: {e}")
        sys.exit(1)

    # Validate input path
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input path '{args.input}' does not exist")
        sys.exit(1)

    input_files = get_input_files(input_path)
    if not input_files:
        logger.error(f"No supported image or PDF files found in '{args.input}'")
        sys.exit(1)

    output_path = Path(args.output)
    output_path.mkdir(parents=True, exist_ok=True)

    logger.info(f"Found {len(input_files)} file(s) to process")
    logger.info(f"Using threshold {args.threshold}, tolerance {args.tolerance}")

    start_time = time.time()
    success_count = 0
    is_batch_mode = len(input_files) > 1

    # Use TQDM only for batch mode and when not verbose
    use_tqdm = is_batch_mode and not args.verbose
    files_iter = tqdm(input_files, desc="Removing watermarks") if use_tqdm else input_files

    for i, input_file in enumerate(files_iter, 1):
        if is_batch_mode and not use_tqdm:
            logger.info(f"[{i}/{len(input_files)}] Processing {input_file.name}")

        if process_single_file(
            input_file,
            output_path,
            args.threshold,
            args.tolerance,
            config,
            args.workers,
            args.keep_masks
        ):
            success_count += 1

        if use_tqdm:
            files_iter.set_postfix({'processed': success_count, 'copied': i - success_count})

    total_time = time.time() - start_time
    logger.info(f"Completed: {success_count}/{len(input_files)} files processed in {total_time:.1f} seconds")
    if success_count < len(input_files):
        logger.info(f"Copied {len(input_files) - success_count} original file(s) unchanged")

def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Remove overlaid watermarks from images and PDF pages."
    )

    parser.add_argument(
        "-i", "--input",
        required=True,
        help="Path to input image/PDF file or directory"
    )

    parser.add_argument(
        "-o", "--output",
        required=True,
        help="Path to output directory"
    )

    parser.add_argument(
        "--threshold",
        type=int,
        default=DEFAULT_THRESHOLD,
        help=f"Expected watermark brightness 0-255; above {DEFAULT_CONFIG.strategy_split} "
             f"uses color filtering, otherwise edge reconstruction (default: {DEFAULT_THRESHOLD})"
    )

    parser.add_argument(
        "--tolerance",
        type=int,
        default=DEFAULT_TOLERANCE,
        help=f"Color similarity band and edge density cutoff 0-255 (default: {DEFAULT_TOLERANCE})"
    )

    parser.add_argument(
        "--dpi",
        type=int,
        default=DEFAULT_CONFIG.dpi,
        help=f"Rasterization resolution for PDF pages (default: {DEFAULT_CONFIG.dpi})"
    )

    parser.add_argument(
        "-q", "--quality",
        type=int,
        default=DEFAULT_CONFIG.jpeg_quality,
        help=f"JPEG quality for outputs and PDF pages (default: {DEFAULT_CONFIG.jpeg_quality})"
    )

    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Number of PDF pages to process concurrently (default: 1)"
    )

    parser.add_argument(
        "-k", "--keep-masks",
        action="store_true",
        help="Save watermark masks alongside output images (image inputs only; "
             "PDF pages are not written out as masks)"
    )

    parser.add_argument(
        "-l", "--logfile",
        help="Path to log file for detailed logging"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)

if __name__ == "__main__":
    main()
