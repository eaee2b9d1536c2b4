"""Image inpainting module for watermark pixels.

Two fill methods replace masked pixels using only unmasked content of the
original image:

- directional: scan outward along the 8 compass directions and take a
  distance-weighted average of the first unmasked pixel in each.
- patch: compare the known neighbourhood of the pixel against patches
  sampled on a coarse grid and copy the center of the best match, falling
  back to the directional fill when nothing can be compared.

Neither method reads pixels it has already filled, so the output does not
depend on processing order.
"""

import numpy as np
from typing import Literal, NamedTuple, Optional

from .config import RemovalConfig, DEFAULT_CONFIG
from .raster import validate_image, validate_mask, watermark_pixels
from .utils import ImageArray, MaskArray, setup_logger

logger = setup_logger(__name__)

# (dx, dy) for N, NE, E, SE, S, SW, W, NW
DIRECTIONS = (
    (0, -1), (1, -1), (1, 0), (1, 1),
    (0, 1), (-1, 1), (-1, 0), (-1, -1),
)

# Weight of a directional hit at distance d is DISTANCE_WEIGHT // d
DISTANCE_WEIGHT = 100

# Candidate patches compared per vectorized batch
CANDIDATE_CHUNK = 65536

InpaintMethod = Literal["directional", "patch"]

class Pattern(NamedTuple):
    """A flattened square neighbourhood of RGB samples.

    ``values`` holds n×3 channel values and ``known`` flags which of the n
    positions carry real samples. Unknown positions (outside the raster or
    masked) have their values zeroed and never take part in matching.
    """
    values: np.ndarray  # n×3 int16
    known: np.ndarray   # n bool

def inpaint_image(
    image: ImageArray,
    mask: MaskArray,
    method: InpaintMethod = "directional",
    config: RemovalConfig = DEFAULT_CONFIG
) -> ImageArray:
    """Replace masked pixels in an image.

    Args:
        image: Input image in RGB format
        mask: Binary mask (255 = regions to replace, 0 = keep original)
        method: Fill method ("directional" or "patch")
        config: Scan and patch parameters

    Returns:
        New image with masked pixels replaced and all others unchanged

    Raises:
        ValueError: If method parameter is invalid
    """
    if method not in ["directional", "patch"]:
        raise ValueError(f"Invalid inpainting method: {method}. Must be 'directional' or 'patch'")

    validate_image(image)
    validate_mask(mask, image)

    if not _has_pixels_to_inpaint(mask):
        logger.info("No pixels to inpaint found in mask - returning original image unchanged")
        return image.copy()

    if method == "directional":
        return directional_inpaint(image, mask, config.max_scan_steps)
    else:  # method == "patch"
        return patch_inpaint(image, mask, config.patch_size, config.search_stride, config.max_scan_steps)

def directional_inpaint(image: ImageArray, mask: MaskArray, max_steps: int = 50) -> ImageArray:
    """Fill every masked pixel with a directional weighted average."""
    is_watermark = watermark_pixels(mask)
    ys, xs = np.nonzero(is_watermark)

    result = image.copy()
    result[ys, xs] = directional_fill_colors(image, is_watermark, ys, xs, max_steps)
    logger.info(f"Directional fill replaced {len(ys)} pixels")
    return result

def directional_fill_colors(
    image: ImageArray,
    is_watermark: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
    max_steps: int = 50
) -> np.ndarray:
    """Compute directional replacement colors for a set of pixels.

    From each target pixel, every direction is scanned for at most max_steps
    steps, stopping at the raster edge. The first unmasked pixel found is
    weighted by DISTANCE_WEIGHT // distance. Channels are averaged separately
    with integer division. A pixel with no hit in any direction keeps its
    original color.

    Args:
        image: Original image in RGB format
        is_watermark: H×W boolean mask
        ys: Row indices of target pixels
        xs: Column indices of target pixels
        max_steps: Longest scan in each direction

    Returns:
        len(ys)×3 uint8 array of replacement colors
    """
    h, w = is_watermark.shape
    count = len(ys)
    ys = ys.astype(np.int64)
    xs = xs.astype(np.int64)

    weighted = np.zeros((count, 3), dtype=np.int64)
    total_weight = np.zeros(count, dtype=np.int64)

    for dx, dy in DIRECTIONS:
        searching = np.ones(count, dtype=bool)
        for step in range(1, max_steps + 1):
            nx = xs + dx * step
            ny = ys + dy * step
            searching &= (nx >= 0) & (nx < w) & (ny >= 0) & (ny < h)

            active = np.flatnonzero(searching)
            if len(active) == 0:
                break

            hits = active[~is_watermark[ny[active], nx[active]]]
            if len(hits) == 0:
                continue

            weight = DISTANCE_WEIGHT // step
            weighted[hits] += image[ny[hits], nx[hits]].astype(np.int64) * weight
            total_weight[hits] += weight
            searching[hits] = False

    colors = image[ys, xs].copy()
    found = total_weight > 0
    colors[found] = (weighted[found] // total_weight[found, None]).astype(np.uint8)

    if count:
        logger.debug(f"Directional fill: {int((~found).sum())}/{count} pixels kept their original color")
    return colors

def _patch_offsets(patch_size: int):
    radius = patch_size // 2
    dy, dx = np.mgrid[-radius:radius + 1, -radius:radius + 1]
    return dy.ravel(), dx.ravel()

def context_pattern(
    image: ImageArray,
    is_watermark: np.ndarray,
    x: int,
    y: int,
    patch_size: int = 5
) -> Pattern:
    """Build the known neighbourhood of a target pixel.

    Positions outside the raster or under the mask are unknown.
    """
    h, w = is_watermark.shape
    dy, dx = _patch_offsets(patch_size)
    ny = y + dy
    nx = x + dx

    known = (ny >= 0) & (ny < h) & (nx >= 0) & (nx < w)
    known[known] = ~is_watermark[ny[known], nx[known]]

    values = np.zeros((len(dy), 3), dtype=np.int16)
    values[known] = image[ny[known], nx[known]]
    return Pattern(values, known)

def full_patterns(image: ImageArray, ys: np.ndarray, xs: np.ndarray, patch_size: int = 5) -> Pattern:
    """Build complete patches around many centers at once.

    Only positions outside the raster are unknown.

    Returns:
        Pattern with values of shape K×n×3 and known of shape K×n
    """
    h, w = image.shape[:2]
    dy, dx = _patch_offsets(patch_size)
    ny = ys[:, None] + dy[None, :]
    nx = xs[:, None] + dx[None, :]

    known = (ny >= 0) & (ny < h) & (nx >= 0) & (nx < w)
    values = image[np.clip(ny, 0, h - 1), np.clip(nx, 0, w - 1)].astype(np.int16)
    values[~known] = 0
    return Pattern(values, known)

def match_scores(context: Pattern, candidates: Pattern) -> np.ndarray:
    """Mean Euclidean RGB distance over positions known in both patterns.

    Args:
        context: Target neighbourhood (n positions)
        candidates: K candidate patches

    Returns:
        K scores, lower is better; inf where no position is shared
    """
    shared = candidates.known & context.known[None, :]
    diff = np.asarray(candidates.values, dtype=np.float64) - context.values.astype(np.float64)[None, :, :]
    distance = np.sqrt((diff * diff).sum(axis=2))

    counts = shared.sum(axis=1)
    totals = np.where(shared, distance, 0.0).sum(axis=1)

    scores = np.full(len(counts), np.inf)
    scored = counts > 0
    scores[scored] = totals[scored] / counts[scored]
    return scores

def candidate_centers(is_watermark: np.ndarray, patch_size: int = 5, stride: int = 3):
    """Unmasked patch centers on the search grid, in row-major order.

    The grid starts patch_size pixels in from the top-left corner and stops
    patch_size pixels short of the opposite edges.
    """
    h, w = is_watermark.shape
    rows = np.arange(patch_size, h - patch_size, stride)
    cols = np.arange(patch_size, w - patch_size, stride)
    if len(rows) == 0 or len(cols) == 0:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty

    grid_y, grid_x = np.meshgrid(rows, cols, indexing="ij")
    grid_y = grid_y.ravel()
    grid_x = grid_x.ravel()
    keep = ~is_watermark[grid_y, grid_x]
    return grid_y[keep], grid_x[keep]

def best_match(context: Pattern, candidates: Pattern) -> Optional[int]:
    """Index of the best scoring candidate, or None if none could be scored.

    Ties go to the earliest candidate.
    """
    if not context.known.any():
        return None

    best_index = None
    best_score = np.inf
    for start in range(0, len(candidates.known), CANDIDATE_CHUNK):
        chunk = Pattern(
            candidates.values[start:start + CANDIDATE_CHUNK],
            candidates.known[start:start + CANDIDATE_CHUNK],
        )
        scores = match_scores(context, chunk)
        index = int(np.argmin(scores))
        if scores[index] < best_score:
            best_score = scores[index]
            best_index = start + index

    return best_index

def patch_inpaint(
    image: ImageArray,
    mask: MaskArray,
    patch_size: int = 5,
    stride: int = 3,
    max_steps: int = 50
) -> ImageArray:
    """Fill every masked pixel by patch-based texture matching.

    Cost grows with (masked pixels × grid candidates); the stride keeps the
    candidate set bounded.
    """
    is_watermark = watermark_pixels(mask)
    ys, xs = np.nonzero(is_watermark)

    cand_y, cand_x = candidate_centers(is_watermark, patch_size, stride)
    candidates = full_patterns(image, cand_y, cand_x, patch_size)
    # Shared by every match_scores call below
    candidates = Pattern(candidates.values.astype(np.float64), candidates.known)
    logger.debug(f"Patch search: {len(cand_y)} candidate centers for {len(ys)} pixels")

    result = image.copy()
    fallback = []
    for i, (y, x) in enumerate(zip(ys, xs)):
        context = context_pattern(image, is_watermark, int(x), int(y), patch_size)
        index = best_match(context, candidates)
        if index is None:
            fallback.append(i)
        else:
            result[y, x] = image[cand_y[index], cand_x[index]]

    if fallback:
        fallback = np.array(fallback)
        result[ys[fallback], xs[fallback]] = directional_fill_colors(
            image, is_watermark, ys[fallback], xs[fallback], max_steps
        )

    logger.info(f"Patch fill replaced {len(ys)} pixels ({len(fallback)} via directional fallback)")
    return result

def _has_pixels_to_inpaint(mask: MaskArray) -> bool:
    """Check if the mask contains any pixels to inpaint."""
    return bool(np.any(watermark_pixels(mask)))
