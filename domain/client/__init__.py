"""Client domain module."""

from .models import Client, ClientType

__all__ = ["Client", "ClientType"]
