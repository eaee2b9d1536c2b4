"""Tunable constants for watermark detection and removal.

The numeric bands below are heuristics rather than derived values. They are
kept together so a run can be reproduced exactly from its configuration.
"""

from dataclasses import dataclass, replace

DEFAULT_THRESHOLD = 200
DEFAULT_TOLERANCE = 30
DEFAULT_DPI = 300
DEFAULT_JPEG_QUALITY = 90


@dataclass(frozen=True)
class RemovalConfig:
    """Heuristic parameters shared by every stage of one pipeline run.

    Attributes:
        strategy_split: Thresholds above this use color filtering, otherwise
            edge reconstruction. A proxy for "light watermark", not a classifier.
        peak_band: Histogram peaks must lie within threshold ± peak_band
        edge_band: Flat pixels must have brightness within threshold ± edge_band
        edge_radius: Half-size of the edge density window
        patch_size: Side of the square texture patch (odd)
        search_stride: Step between candidate patch centers
        max_scan_steps: Longest directional scan from a watermark pixel
        dpi: Rasterization resolution for paged documents
        jpeg_quality: Quality used when re-embedding pages
    """
    strategy_split: int = 150
    peak_band: int = 30
    edge_band: int = 50
    edge_radius: int = 5
    patch_size: int = 5
    search_stride: int = 3
    max_scan_steps: int = 50
    dpi: int = DEFAULT_DPI
    jpeg_quality: int = DEFAULT_JPEG_QUALITY

    def validate(self) -> "RemovalConfig":
        """Check parameter consistency.

        Returns:
            The config itself, for chaining

        Raises:
            ValueError: If any parameter is out of range
        """
        if self.patch_size <= 0 or self.patch_size % 2 == 0:
            raise ValueError(f"patch_size must be a positive odd number, got {self.patch_size}")
        for name in ("search_stride", "max_scan_steps", "edge_radius", "dpi"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("peak_band", "edge_band"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in 1-100, got {self.jpeg_quality}")
        return self

    def with_overrides(self, **overrides) -> "RemovalConfig":
        """Return a copy with the given fields replaced, ignoring None values."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()


DEFAULT_CONFIG = RemovalConfig()


def validate_levels(threshold: int, tolerance: int) -> None:
    """Check the per-run threshold and tolerance parameters.

    Raises:
        ValueError: If either value lies outside 0-255
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"threshold must be in 0-255, got {threshold}")
    if not 0 <= tolerance <= 255:
        raise ValueError(f"tolerance must be in 0-255, got {tolerance}")
