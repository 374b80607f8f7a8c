"""Normalization of declaration documents into resource trees."""

from .unit_normalizer import NormalizationError, UnitNormalizer

__all__ = ["NormalizationError", "UnitNormalizer"]
