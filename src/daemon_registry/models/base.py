"""Base Pydantic model configuration for daemon registry models.

All registry models inherit from RegistryBaseModel to ensure consistent behavior:
- Immutability (frozen=True); updates go through ``model_copy(update=...)``
- Strict validation (extra="forbid") for inputs built in-process
- Flexible field naming (populate_by_name=True) for alias support

Models decoded from the key-value store inherit from StoredModel instead, which
ignores unknown keys so blobs written by newer or older versions still decode.
"""

from pydantic import BaseModel, ConfigDict


class RegistryBaseModel(BaseModel):
    """Base model for all daemon registry entities.

    Example:
        >>> class Point(RegistryBaseModel):
        ...     x: int
        >>> p = Point(x=1)
        >>> p.model_copy(update={"x": 2}).x
        2
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=False,
        validate_default=True,
    )


class StoredModel(RegistryBaseModel):
    """Base model for payloads persisted as opaque KV blobs."""

    model_config = ConfigDict(extra="ignore")
