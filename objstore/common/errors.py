class ObjectStoreError(RuntimeError):
    """Base class for object storage failures."""


class ConfigValidationError(ObjectStoreError, ValueError):
    """Raised when required connection settings are missing."""
