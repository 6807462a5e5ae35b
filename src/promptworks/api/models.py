"""Pydantic request models for the Promptworks API.

The compile endpoint accepts :class:`~promptworks.core.models.CompileRequest`
directly; the models here cover the user-blueprint endpoints.

Models
------
UserBlueprintCreateRequest
    Payload for ``POST /api/user-blueprints``.
UserBlueprintRevisionRequest
    Payload for ``PUT /api/user-blueprints/{id}``; stores a new version.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserBlueprintCreateRequest(BaseModel):
    """Request body for ``POST /api/user-blueprints``.

    Attributes:
        name: Display name of the blueprint.
        blocks: Ordered block keys.  Every key must exist in the catalog.
        constraints: Constraint strings appended as ``Constraints: ...``.
        category: Free-form category label.
        owner_id: Identifier of the owning user, if known.
        compatible_profiles: Optional allowlist of profile ids.
    """

    name: str = Field(..., min_length=1, description="Blueprint display name.")
    blocks: list[str] = Field(..., min_length=1, description="Ordered block keys.")
    constraints: list[str] = Field(default_factory=list, description="Constraint strings.")
    category: str = Field(default="custom", description="Category label.")
    owner_id: str | None = Field(default=None, description="Owning user id.")
    compatible_profiles: list[str] | None = Field(
        default=None,
        description="Profile ids this blueprint is meant for (None = any).",
    )


class UserBlueprintRevisionRequest(BaseModel):
    """Request body for ``PUT /api/user-blueprints/{id}``.

    Attributes:
        blocks: Ordered block keys of the new version.
        constraints: Constraint strings of the new version.
    """

    blocks: list[str] = Field(..., min_length=1, description="Ordered block keys.")
    constraints: list[str] = Field(default_factory=list, description="Constraint strings.")
