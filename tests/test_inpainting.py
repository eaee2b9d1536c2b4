"""Tests for directional and patch-based inpainting."""

import pytest
import numpy as np

from unwatermark import inpaint
from unwatermark.config import RemovalConfig
from unwatermark.inpaint import (
    inpaint_image,
    directional_inpaint,
    patch_inpaint,
    context_pattern,
    full_patterns,
    match_scores,
    candidate_centers,
    Pattern,
)
from unwatermark.raster import InvalidGeometryError
from conftest import solid_image


def single_pixel_mask(shape, y, x):
    mask = np.zeros(shape, dtype=np.uint8)
    mask[y, x] = 255
    return mask


def test_equal_distance_hits_average_evenly():
    image = np.zeros((3, 3, 3), dtype=np.uint8)
    neighbours = [(0, 0), (0, 1), (0, 2), (1, 0), (1, 2), (2, 0), (2, 1), (2, 2)]
    for i, (y, x) in enumerate(neighbours):
        image[y, x] = (10 * i + 3, 255 - 20 * i, 7 * i)
    image[1, 1] = (99, 99, 99)

    result = directional_inpaint(image, single_pixel_mask((3, 3), 1, 1))

    colors = np.array([image[y, x] for y, x in neighbours], dtype=np.int64)
    expected = colors.sum(axis=0) // 8
    assert result[1, 1].tolist() == expected.tolist()


def test_directional_weights_by_distance():
    image = np.array([[[100, 100, 100], [0, 0, 0], [0, 0, 0], [10, 10, 10]]], dtype=np.uint8)
    mask = np.array([[0, 255, 255, 0]], dtype=np.uint8)

    result = directional_inpaint(image, mask)

    # x=1: west hit at 1 (weight 100), east hit at 2 (weight 50)
    assert result[0, 1].tolist() == [70, 70, 70]
    # x=2 reads the original image, not the freshly filled x=1
    assert result[0, 2].tolist() == [40, 40, 40]
    assert result[0, 0].tolist() == [100, 100, 100]
    assert result[0, 3].tolist() == [10, 10, 10]


def test_directional_scan_is_capped():
    image = np.zeros((1, 60, 3), dtype=np.uint8)
    image[0, 0] = (200, 0, 0)
    mask = np.full((1, 60), 255, dtype=np.uint8)
    mask[0, 0] = 0

    result = directional_inpaint(image, mask, max_steps=50)

    assert result[0, 10].tolist() == [200, 0, 0]
    assert result[0, 50].tolist() == [200, 0, 0]
    assert result[0, 51].tolist() == [0, 0, 0]


def test_fully_masked_image_keeps_original_colors(random_image):
    mask = np.full(random_image.shape[:2], 255, dtype=np.uint8)
    result = directional_inpaint(random_image, mask)
    assert np.array_equal(result, random_image)


def test_unmasked_pixels_are_copied(random_image):
    mask = single_pixel_mask(random_image.shape[:2], 5, 5)
    result = inpaint_image(random_image, mask, method="directional")

    unchanged = np.ones(random_image.shape[:2], dtype=bool)
    unchanged[5, 5] = False
    assert np.array_equal(result[unchanged], random_image[unchanged])


def test_empty_mask_returns_copy(random_image):
    mask = np.zeros(random_image.shape[:2], dtype=np.uint8)
    result = inpaint_image(random_image, mask)
    assert np.array_equal(result, random_image)
    assert result is not random_image


def test_inpaint_rejects_bad_arguments(random_image):
    with pytest.raises(ValueError):
        inpaint_image(random_image, np.zeros(random_image.shape[:2], dtype=np.uint8), method="telea")
    with pytest.raises(InvalidGeometryError):
        inpaint_image(random_image, np.zeros((3, 3), dtype=np.uint8))


def test_context_pattern_marks_unknown_positions():
    image = solid_image(4, 4, (50, 60, 70))
    is_watermark = np.zeros((4, 4), dtype=bool)
    is_watermark[1, 1] = True

    pattern = context_pattern(image, is_watermark, 0, 0, patch_size=3)

    # Row-major 3×3 around (0, 0): only (0,0), (0,1), (1,0) are known
    assert pattern.known.tolist() == [False, False, False, False, True, True, False, True, False]
    assert pattern.values[4].tolist() == [50, 60, 70]
    assert pattern.values[0].tolist() == [0, 0, 0]


def test_full_patterns_mark_only_out_of_bounds():
    image = solid_image(4, 4, (1, 2, 3))
    patterns = full_patterns(image, np.array([0, 2]), np.array([0, 2]), patch_size=3)

    assert patterns.known.shape == (2, 9)
    assert patterns.known[0].sum() == 4
    assert patterns.known[1].all()


def test_match_scores():
    context = Pattern(
        np.array([[0, 0, 0], [10, 0, 0]], dtype=np.int16),
        np.array([True, False]),
    )
    candidates = Pattern(
        np.array([[[3, 4, 0], [10, 0, 0]], [[0, 0, 0], [99, 99, 99]], [[0, 0, 0], [0, 0, 0]]], dtype=np.int16),
        np.array([[True, True], [True, True], [False, True]]),
    )

    scores = match_scores(context, candidates)

    assert scores[0] == pytest.approx(5.0)
    assert scores[1] == pytest.approx(0.0)
    assert np.isinf(scores[2])


def test_candidate_grid_skips_masked_centers():
    is_watermark = np.zeros((20, 20), dtype=bool)
    is_watermark[8, 8] = True

    ys, xs = candidate_centers(is_watermark, patch_size=5, stride=3)

    grid = set(zip(ys.tolist(), xs.tolist()))
    assert (5, 5) in grid
    assert (14, 14) in grid
    assert (8, 8) not in grid
    assert len(grid) == 15
    assert ys.tolist() == sorted(ys.tolist())


def test_patch_fill_copies_uniform_region_color():
    image = solid_image(30, 30, (200, 60, 60))
    image[:, :15] = (40, 90, 160)
    image[10:13, 5:8] = (128, 128, 128)
    mask = np.zeros((30, 30), dtype=np.uint8)
    mask[10:13, 5:8] = 255

    result = patch_inpaint(image, mask)

    assert np.all(result[10:13, 5:8] == (40, 90, 160))
    assert np.array_equal(result[mask == 0], image[mask == 0])


def test_patch_fill_falls_back_without_candidates():
    image = solid_image(8, 8, (30, 40, 50))
    image[4, 4] = (220, 220, 220)
    mask = single_pixel_mask((8, 8), 4, 4)

    result = inpaint_image(image, mask, method="patch", config=RemovalConfig())

    assert result[4, 4].tolist() == [30, 40, 50]


def test_patch_fill_falls_back_when_context_unknown():
    image = solid_image(30, 30, (30, 40, 50))
    image[10:17, 10:17] = (220, 220, 220)
    mask = np.zeros((30, 30), dtype=np.uint8)
    mask[10:17, 10:17] = 255

    result = patch_inpaint(image, mask)

    # Center has a fully masked 5×5 context; the directional scan still
    # reaches the surrounding color
    assert result[13, 13].tolist() == [30, 40, 50]


def test_patch_fill_converts_candidates_once(monkeypatch):
    image = solid_image(20, 20, (90, 120, 150))
    mask = np.zeros((20, 20), dtype=np.uint8)
    mask[8:10, 8:10] = 255

    seen = []
    original = inpaint.best_match

    def recording_best_match(context, candidates):
        seen.append(candidates.values)
        return original(context, candidates)

    monkeypatch.setattr(inpaint, "best_match", recording_best_match)
    result = patch_inpaint(image, mask)

    assert len(seen) == 4
    assert all(values.dtype == np.float64 for values in seen)
    assert all(values is seen[0] for values in seen)
    assert np.all(result == (90, 120, 150))


def test_match_scores_accepts_float_candidates():
    context = Pattern(np.array([[10, 20, 30], [0, 0, 0]], dtype=np.int16), np.array([True, False]))
    values = np.array([[[13, 24, 30], [99, 99, 99]]], dtype=np.int16)
    known = np.array([[True, True]])

    as_int = match_scores(context, Pattern(values, known))
    as_float = match_scores(context, Pattern(values.astype(np.float64), known))

    assert as_float[0] == pytest.approx(5.0)
    assert np.array_equal(as_int, as_float)
