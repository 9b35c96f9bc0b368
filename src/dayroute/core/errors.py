# src/dayroute/core/errors.py

"""
Error kinds raised by the itinerary core.

Each kind carries the HTTP status a consuming web layer should map it to.
"""

from __future__ import annotations


class DayrouteError(Exception):
    http_status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(DayrouteError):
    """Malformed or out-of-range input (non-positive delay, bad time, ...)."""

    http_status = 400


class NotFoundError(DayrouteError):
    """Unknown task/schedule id, or no schedule for the requested date."""

    http_status = 404


class UnauthorizedError(DayrouteError):
    http_status = 401


class UnreachableError(DayrouteError):
    """No travel-time edge between two locations. Recovered inside the generator."""

    http_status = 500


class StorageError(DayrouteError):
    http_status = 500
