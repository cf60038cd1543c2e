"""Shared base model definitions for Reciplan domain objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ReciplanBaseModel(BaseModel):
    """Base model configured for Reciplan-wide defaults."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ReciplanSnapshot(BaseModel):
    """Immutable base for values published to observers."""

    model_config = ConfigDict(extra="forbid", frozen=True)


__all__ = ["ReciplanBaseModel", "ReciplanSnapshot"]
