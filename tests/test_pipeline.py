"""Tests for strategy selection and the end-to-end removal pipeline."""

import pytest
import numpy as np

from unwatermark import pipeline
from unwatermark.config import RemovalConfig
from unwatermark.histogram import brightness_histogram, find_watermark_levels
from unwatermark.pipeline import (
    ColorFilterStrategy,
    EdgeReconstructionStrategy,
    select_strategy,
    run_pipeline,
    remove_watermark,
    remove_watermark_or_original,
    iter_processed_pages,
    process_pages,
)
from unwatermark.postprocess import apply_post_processing
from unwatermark.raster import RasterBuffer, InvalidGeometryError, WatermarkRemovalError
from unwatermark.utils import brightness
from conftest import solid_image


def test_strategy_selection_threshold():
    assert isinstance(select_strategy(151), ColorFilterStrategy)
    assert isinstance(select_strategy(200), ColorFilterStrategy)
    assert isinstance(select_strategy(150), EdgeReconstructionStrategy)
    assert isinstance(select_strategy(0), EdgeReconstructionStrategy)


def test_strategy_split_is_configurable():
    config = RemovalConfig(strategy_split=100)
    assert isinstance(select_strategy(120, config), ColorFilterStrategy)


@pytest.mark.parametrize("threshold", [200, 100])
def test_output_has_input_dimensions(random_image, threshold):
    result = remove_watermark(random_image, threshold=threshold, tolerance=30)
    assert result.shape == random_image.shape
    assert result.dtype == np.uint8


@pytest.mark.parametrize("threshold", [200, 100])
def test_pipeline_is_deterministic(random_image, threshold):
    first = remove_watermark(random_image, threshold=threshold, tolerance=30)
    second = remove_watermark(random_image, threshold=threshold, tolerance=30)
    assert np.array_equal(first, second)


def test_input_is_not_modified(random_image):
    original = random_image.copy()
    remove_watermark(random_image)
    assert np.array_equal(random_image, original)


def test_gray_block_removed_from_tinted_background(tinted_block_image):
    result = run_pipeline(tinted_block_image, threshold=200, tolerance=30)

    assert result.strategy == "color-filter"
    assert result.replaced_pixels == 9

    block = result.image[4:7, 4:7].astype(int)
    assert np.all(np.abs(block - np.array([255, 255, 200])) <= 1)
    assert not np.any(np.abs(brightness(result.image[4:7, 4:7]) - 180) < 20)


def test_gray_background_is_fully_masked_and_only_blurred(gray_block_image):
    # The background itself looks like a translucent overlay, leaving no
    # unmasked pixel to fill from
    result = run_pipeline(gray_block_image, threshold=200, tolerance=30)

    assert result.replaced_pixels == 100
    assert np.array_equal(result.image, apply_post_processing(gray_block_image))


@pytest.mark.parametrize("color", [(0, 0, 0), (255, 255, 255)])
def test_single_color_image_is_only_blurred(color):
    image = solid_image(8, 8, color)
    assert not find_watermark_levels(brightness_histogram(image), 200).any()

    result = remove_watermark(image, threshold=200, tolerance=30)
    assert np.array_equal(result, apply_post_processing(image))


def test_edge_reconstruction_on_flat_region():
    image = solid_image(40, 40, (120, 120, 120))
    result = run_pipeline(image, threshold=100, tolerance=30)

    assert result.strategy == "edge-reconstruction"
    assert result.replaced_pixels > 0
    assert np.all(result.image == 120)


def test_zero_size_raster_is_rejected():
    with pytest.raises(InvalidGeometryError):
        remove_watermark(np.zeros((0, 4, 3), dtype=np.uint8))


def test_parameters_out_of_range_are_rejected(random_image):
    with pytest.raises(ValueError):
        remove_watermark(random_image, threshold=256)
    with pytest.raises(ValueError):
        remove_watermark(random_image, tolerance=-1)
    with pytest.raises(ValueError):
        remove_watermark(random_image, config=RemovalConfig(patch_size=4))


def test_failure_is_reported_once(random_image, monkeypatch):
    def boom(image):
        raise RuntimeError("blur exploded")

    monkeypatch.setattr(pipeline, "apply_post_processing", boom)

    with pytest.raises(WatermarkRemovalError, match="blur exploded"):
        run_pipeline(random_image)


def test_failure_degrades_to_original(random_image, monkeypatch):
    def boom(image):
        raise RuntimeError("blur exploded")

    monkeypatch.setattr(pipeline, "apply_post_processing", boom)

    result = remove_watermark_or_original(random_image)
    assert np.array_equal(result, random_image)
    assert result is not random_image


def test_invalid_raster_degrades_to_original():
    image = np.zeros((0, 3, 3), dtype=np.uint8)
    result = remove_watermark_or_original(image)
    assert result.shape == image.shape


def test_process_pages_preserves_order(random_image, tinted_block_image):
    pages = [random_image, tinted_block_image, random_image[::-1].copy()]

    serial = process_pages(pages, threshold=200, tolerance=30)
    parallel = process_pages(pages, threshold=200, tolerance=30, max_workers=3)

    assert len(parallel) == 3
    for a, b in zip(serial, parallel):
        assert np.array_equal(a, b)
    assert parallel[1].shape == tinted_block_image.shape


def _counting_pages(pages, pulled):
    for page in pages:
        pulled.append(len(pulled))
        yield page


@pytest.mark.parametrize("workers", [1, 2])
def test_pages_are_pulled_lazily(random_image, workers):
    pages = [random_image[:, :, ::-1].copy() if i % 2 else random_image for i in range(5)]
    pulled = []
    seen = []

    for result in pipeline.iter_processed_pages(_counting_pages(pages, pulled), max_workers=workers):
        seen.append(len(pulled))
        assert result.shape == random_image.shape

    # No more than max_workers pages are taken before each result comes back
    assert seen[0] <= workers
    assert all(count <= i + workers for i, count in enumerate(seen))
    assert len(seen) == 5


def test_iter_processed_pages_keeps_order_beyond_worker_count(random_image):
    pages = [np.roll(random_image, i, axis=1) for i in range(6)]

    serial = list(iter_processed_pages(pages, threshold=100, tolerance=30))
    parallel = list(iter_processed_pages(iter(pages), threshold=100, tolerance=30, max_workers=2))

    assert len(parallel) == 6
    for a, b in zip(serial, parallel):
        assert np.array_equal(a, b)


def test_pipeline_accepts_raster_buffer(tinted_block_image):
    buffer = RasterBuffer(tinted_block_image)
    result = run_pipeline(buffer, threshold=200, tolerance=30)

    assert result.image.shape == (10, 10, 3)
    assert np.array_equal(result.image, remove_watermark(tinted_block_image))
