"""Strict base model shared by every KRPC value type."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """
    A strict, immutable pydantic base model.

    Instances are plain values: frozen after construction, hashable,
    and rejecting unknown fields or implicit type coercion.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        validate_default=True,
    )
