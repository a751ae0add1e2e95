"""Schema validation for tool payloads and phase decisions."""

from .validator import SchemaValidator

__all__ = ["SchemaValidator"]
