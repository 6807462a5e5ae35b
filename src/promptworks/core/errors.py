"""Exceptions raised by the prompt compiler.

Only non-recoverable conditions are raised.  Everything else (bad filter
values, unknown placeholders, truncation, forbidden patterns, filter
conflicts) is reported as a warning on the compile result instead.
"""

from __future__ import annotations


class CompileError(Exception):
    """Base class for errors that abort a compilation.

    The message is intended to be shown directly to the API client.
    """

    pass


class BlueprintReferenceError(CompileError):
    """Neither (or both) of ``blueprint_id`` and ``user_blueprint_id`` was supplied."""

    pass


class RecordNotFoundError(CompileError):
    """A referenced record does not exist in the backing store.

    Attributes:
        kind: Human-readable record kind (``"Profile"``, ``"Block"``, ...).
        record_id: The identifier that could not be resolved.
    """

    kind = "Record"

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"{self.kind} not found: {record_id}")


class ProfileNotFoundError(RecordNotFoundError):
    kind = "Profile"


class BlueprintNotFoundError(RecordNotFoundError):
    kind = "Blueprint"


class UserBlueprintNotFoundError(RecordNotFoundError):
    kind = "User blueprint"


class BlockNotFoundError(RecordNotFoundError):
    kind = "Block"


class FilterNotFoundError(RecordNotFoundError):
    kind = "Filter"


class LoraVersionNotFoundError(RecordNotFoundError):
    kind = "LoRA version"


class LoraNotReadyError(CompileError):
    """The requested LoRA version has no trained artifact yet."""

    def __init__(self, version_id: str) -> None:
        self.version_id = version_id
        super().__init__(f"LoRA version not trained yet: {version_id}")
