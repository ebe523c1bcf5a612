"""Completion providers."""

from .base import Cancel, Provider

__all__ = ["Cancel", "Provider"]
