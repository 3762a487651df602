"""Snapshot intake: per-record validation of raw storage data."""

from finflow.validation.normalizer import NormalizationResult, SnapshotNormalizer

__all__ = [
    "NormalizationResult",
    "SnapshotNormalizer",
]
