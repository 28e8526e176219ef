"""Stored file domain module."""

from .models import ALLOWED_FILE_TYPES, StoredFile

__all__ = ["StoredFile", "ALLOWED_FILE_TYPES"]
