"""Exceptions raised by the geohash codec and the coverage helpers.

Every error is a ``ValueError`` so callers can treat any of them as an
invalid-argument failure without importing this module.
"""
from __future__ import annotations


class GeohashError(ValueError):
    """Base exception for geohash operations."""


class InvalidGeohashError(GeohashError):
    """Raised when geohash string contains invalid characters."""


class InvalidCoordinateError(GeohashError):
    """Raised when latitude or longitude is out of valid range."""


class InvalidPrecisionError(GeohashError):
    """Raised when a geohash length is out of range."""


class InvalidPolygonError(GeohashError):
    """Raised when a polygon or circle cannot be covered."""


class InvalidPathError(GeohashError):
    """Raised when a line or path has too few distinct points."""


__all__ = [
    "GeohashError",
    "InvalidGeohashError",
    "InvalidCoordinateError",
    "InvalidPrecisionError",
    "InvalidPolygonError",
    "InvalidPathError",
]
