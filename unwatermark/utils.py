"""Shared utilities and type definitions for unwatermark."""

import cv2
import numpy as np
from pathlib import Path
from typing import List, Tuple, Union
import logging

# Type aliases for clarity
ImageArray = np.ndarray  # H×W×3 RGB uint8
MaskArray = np.ndarray   # H×W uint8 (255 = watermark, 0 = keep)
Color = Tuple[int, int, int]  # RGB color tuple
ImagePath = Union[str, Path]

# Supported input extensions
IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif', '.webp'}
DOCUMENT_EXTENSIONS = {'.pdf'}

def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Set up a logger with consistent formatting.
    
    Args:
        name: Logger name
        level: Logging level
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    
    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        
    logger.setLevel(level)
    return logger

def load_image(image_path: ImagePath) -> ImageArray:
    """Load an image from file path as an RGB array.
    
    Args:
        image_path: Path to image file
        
    Returns:
        Image array in RGB format
        
    Raises:
        ValueError: If image cannot be loaded
    """
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Could not load image: {image_path}")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

def save_image(image: np.ndarray, output_path: ImagePath, quality: int = 90) -> None:
    """Save an RGB image (or a single-channel mask) to file.
    
    Args:
        image: Image array in RGB format, or H×W mask
        output_path: Path where to save the image
        quality: JPEG quality used for .jpg/.jpeg outputs
        
    Raises:
        ValueError: If image cannot be saved
    """
    output_path = Path(output_path)
    
    if output_path.suffix.lower() in {'.jpg', '.jpeg'}:
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    elif output_path.suffix.lower() == '.png':
        params = [cv2.IMWRITE_PNG_COMPRESSION, 8]
    else:
        params = []
    
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    
    success = cv2.imwrite(str(output_path), image, params)
    if not success:
        raise ValueError(f"Could not save image to: {output_path}")

def get_input_files(path: Path) -> List[Path]:
    """Get list of image and PDF files from path (file or directory).
    
    Args:
        path: Path to file or directory
        
    Returns:
        Sorted list of supported input paths
    """
    supported = IMAGE_EXTENSIONS | DOCUMENT_EXTENSIONS
    if path.is_file():
        if path.suffix.lower() in supported:
            return [path]
        else:
            return []
    
    return sorted(f for f in path.glob("*") if f.suffix.lower() in supported)

def is_document(path: Path) -> bool:
    """Return True if the path names a paged document (PDF)."""
    return path.suffix.lower() in DOCUMENT_EXTENSIONS

def output_name(path: Path) -> str:
    """Name of the processed file for an input path."""
    return f"{path.stem}_nowatermark{path.suffix}"

def brightness(image: ImageArray) -> np.ndarray:
    """Per-pixel brightness as the truncated mean of the three channels.
    
    Args:
        image: Input image in RGB format
        
    Returns:
        H×W int32 array with values 0-255
    """
    return image.astype(np.int32).sum(axis=2) // 3

