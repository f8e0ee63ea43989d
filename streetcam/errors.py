"""
Exception hierarchy for streetcam.

Every remote failure is reported as a ``ServiceError`` carrying the
``DataType`` it belongs to, so the search handler can map it onto the
matching suppression flag without inspecting the cause.  Network errors,
non-2xx responses and undecodable payloads are not distinguished.
"""
from __future__ import annotations

from typing import Optional

from .model.entities import DataType


class StreetcamError(Exception):
    """Base exception for all streetcam errors."""


class ConfigurationError(StreetcamError):
    """Raised when a configuration file is missing keys or holds bad values."""


class ServiceError(StreetcamError):
    """A remote fetch for one data type failed."""

    data_type: DataType = DataType.PHOTO

    def __init__(self, message: str, data_type: Optional[DataType] = None):
        super().__init__(message)
        if data_type is not None:
            self.data_type = data_type


class PhotoServiceError(ServiceError):
    data_type = DataType.PHOTO


class DetectionServiceError(ServiceError):
    data_type = DataType.DETECTION


class ClusterServiceError(ServiceError):
    data_type = DataType.CLUSTER


class SegmentServiceError(ServiceError):
    data_type = DataType.SEGMENT

