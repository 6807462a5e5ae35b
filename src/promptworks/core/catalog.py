"""In-memory record catalog backed by a JSON file.

:class:`RecordCatalog` implements the compiler's
:class:`~promptworks.core.compiler.Lookups` interface over plain
dictionaries.  It stands in for the external persistence layer: the
application loads it once from ``catalog.json`` (the packaged defaults, or
``PROMPTWORKS_CATALOG_PATH``) and route handlers read from it.

Catalog File Format
-------------------
::

    {
      "profiles":   [{"id": "...", "name": "...", "preferred_order": [...], ...}],
      "blueprints": [{"id": "...", "name": "...", "blocks": [...], ...}],
      "blocks":     [{"key": "...", "type": "style", "template": "..."}],
      "filters":    [{"key": "...", "schema": {...}, "effect": {...}}],
      "lora_versions": [{"id": "...", "model_name": "...", "artifact_url": "..."}]
    }

Every section is optional.

User Blueprints
---------------
User blueprints are versioned: :meth:`RecordCatalog.create_user_blueprint`
stores version 1 and :meth:`RecordCatalog.revise_user_blueprint` stores a
new record with one more immutable :class:`BlueprintVersion`.  Existing
versions are never edited, so a compile pinned to an older version keeps
producing the same prompt.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path

from .errors import (
    BlockNotFoundError,
    BlueprintNotFoundError,
    FilterNotFoundError,
    LoraVersionNotFoundError,
    ProfileNotFoundError,
    UserBlueprintNotFoundError,
)
from .models import (
    Block,
    Blueprint,
    BlueprintSnapshot,
    BlueprintVersion,
    Filter,
    LoraVersion,
    Profile,
    UserBlueprint,
)

logger = logging.getLogger(__name__)


class RecordCatalog:
    """Dictionary-backed profiles, blueprints, blocks, filters and LoRA versions."""

    def __init__(
        self,
        profiles: Iterable[Profile] = (),
        blueprints: Iterable[Blueprint] = (),
        blocks: Iterable[Block] = (),
        filters: Iterable[Filter] = (),
        lora_versions: Iterable[LoraVersion] = (),
        user_blueprints: Iterable[UserBlueprint] = (),
    ) -> None:
        self.profiles: dict[str, Profile] = {p.id: p for p in profiles}
        self.blueprints: dict[str, Blueprint] = {b.id: b for b in blueprints}
        self.blocks: dict[str, Block] = {b.key: b for b in blocks}
        self.filters: dict[str, Filter] = {f.key: f for f in filters}
        self.lora_versions: dict[str, LoraVersion] = {v.id: v for v in lora_versions}
        self.user_blueprints: dict[str, UserBlueprint] = {u.id: u for u in user_blueprints}

    @classmethod
    def from_dict(cls, data: Mapping) -> RecordCatalog:
        """Build a catalog from the parsed ``catalog.json`` structure."""
        return cls(
            profiles=[Profile.model_validate(p) for p in data.get("profiles", [])],
            blueprints=[Blueprint.model_validate(b) for b in data.get("blueprints", [])],
            blocks=[Block.model_validate(b) for b in data.get("blocks", [])],
            filters=[Filter.model_validate(f) for f in data.get("filters", [])],
            lora_versions=[LoraVersion.model_validate(v) for v in data.get("lora_versions", [])],
            user_blueprints=[UserBlueprint.model_validate(u) for u in data.get("user_blueprints", [])],
        )

    # ------------------------------------------------------------------
    # Lookups interface.
    # ------------------------------------------------------------------

    def get_profile(self, profile_id: str) -> Profile:
        try:
            return self.profiles[profile_id]
        except KeyError:
            raise ProfileNotFoundError(profile_id) from None

    def get_blueprint(self, blueprint_id: str) -> BlueprintSnapshot:
        try:
            return BlueprintSnapshot.from_blueprint(self.blueprints[blueprint_id])
        except KeyError:
            raise BlueprintNotFoundError(blueprint_id) from None

    def get_user_blueprint(self, user_blueprint_id: str, version: int | None = None) -> BlueprintSnapshot:
        """Snapshot a user blueprint at ``version`` (default: latest).

        Raises:
            UserBlueprintNotFoundError: Unknown blueprint id or version.
        """
        blueprint = self.user_blueprints.get(user_blueprint_id)
        if blueprint is None:
            raise UserBlueprintNotFoundError(user_blueprint_id)
        if version is not None and all(v.version != version for v in blueprint.versions):
            raise UserBlueprintNotFoundError(f"{user_blueprint_id}@v{version}")
        return BlueprintSnapshot.from_user_blueprint(blueprint, version)

    def get_blocks(self, keys: Iterable[str]) -> dict[str, Block]:
        found: dict[str, Block] = {}
        for key in keys:
            block = self.blocks.get(key)
            if block is None:
                raise BlockNotFoundError(key)
            found[key] = block
        return found

    def get_filters(self, keys: Iterable[str]) -> dict[str, Filter]:
        found: dict[str, Filter] = {}
        for key in keys:
            definition = self.filters.get(key)
            if definition is None:
                raise FilterNotFoundError(key)
            found[key] = definition
        return found

    def get_lora_version(self, version_id: str) -> LoraVersion:
        try:
            return self.lora_versions[version_id]
        except KeyError:
            raise LoraVersionNotFoundError(version_id) from None

    # ------------------------------------------------------------------
    # User blueprints.
    # ------------------------------------------------------------------

    def create_user_blueprint(
        self,
        name: str,
        blocks: list[str],
        constraints: list[str] | None = None,
        *,
        owner_id: str | None = None,
        category: str = "custom",
        compatible_profiles: list[str] | None = None,
    ) -> UserBlueprint:
        """Store a new user blueprint at version 1.

        Raises:
            BlockNotFoundError: A block key does not exist.
        """
        self.get_blocks(blocks)
        blueprint = UserBlueprint(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=name,
            category=category,
            compatible_profiles=compatible_profiles,
            versions=[BlueprintVersion(version=1, blocks=blocks, constraints=constraints or [])],
        )
        self.user_blueprints[blueprint.id] = blueprint
        logger.info(f"Created user blueprint {blueprint.id} ({name})")
        return blueprint

    def revise_user_blueprint(
        self, user_blueprint_id: str, blocks: list[str], constraints: list[str] | None = None
    ) -> UserBlueprint:
        """Supersede a user blueprint with a new version.

        Raises:
            UserBlueprintNotFoundError: Unknown blueprint id.
            BlockNotFoundError: A block key does not exist.
        """
        current = self.user_blueprints.get(user_blueprint_id)
        if current is None:
            raise UserBlueprintNotFoundError(user_blueprint_id)
        self.get_blocks(blocks)
        revised = current.with_revision(blocks, constraints or [])
        self.user_blueprints[user_blueprint_id] = revised
        logger.info(f"User blueprint {user_blueprint_id} now at version {revised.current_version.version}")
        return revised


def load_catalog(path: Path | None = None) -> RecordCatalog:
    """Load a catalog from ``path``, or the packaged defaults when ``None``.

    Args:
        path: A ``catalog.json`` file.

    Returns:
        The populated catalog.
    """
    if path is None:
        text = resources.files("promptworks.data").joinpath("catalog.json").read_text(encoding="utf-8")
        source = "packaged defaults"
    else:
        text = Path(path).read_text(encoding="utf-8")
        source = str(path)

    catalog = RecordCatalog.from_dict(json.loads(text))
    logger.info(
        f"Loaded catalog from {source}: {len(catalog.profiles)} profiles, "
        f"{len(catalog.blueprints)} blueprints, {len(catalog.blocks)} blocks, "
        f"{len(catalog.filters)} filters"
    )
    return catalog
