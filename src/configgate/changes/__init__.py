"""Versioned change records and the registry holding them."""

from .registry import ChangeRecord, ChangeRegistry, validate_registry

__all__ = ["ChangeRecord", "ChangeRegistry", "validate_registry"]
