"""Template block resolution.

Turns a blueprint's ordered block keys into text fragments by substituting
the free-text input fields into each block template.

Placeholders
------------
Templates reference input fields as ``{subject}``, ``{context}``,
``{items}``, ``{environment}`` and ``{restrictions}``.  Substitution is a
plain regular-expression replacement: templates are never passed to
``str.format`` or evaluated in any way.  Unknown placeholder names are left
in the text verbatim and reported as warnings.

Joining
-------
:func:`join_fragments` trims each fragment, drops empty ones, joins with a
single space and collapses any run of spaces.  Running it again on its own
output returns the same string.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .errors import BlockNotFoundError
from .models import INPUT_FIELDS, Block, PromptInputs

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_SPACE_RUN = re.compile(r" {2,}")


@dataclass(frozen=True)
class Fragment:
    """One piece of the prompt and the block type it came from.

    ``block_type`` is ``None`` for fragments that did not come from a block
    (filter effects).
    """

    text: str
    block_type: str | None = None
    source: str = ""


@dataclass(frozen=True)
class ResolvedBlocks:
    fragments: tuple[Fragment, ...]
    warnings: tuple[str, ...] = ()
    used_fields: frozenset[str] = field(default_factory=frozenset)


def join_fragments(texts: Iterable[str]) -> str:
    """Join fragment texts with single spaces.

    Args:
        texts: Fragment texts in output order.

    Returns:
        The normalised, space-joined text.
    """
    parts = [text.strip() for text in texts]
    joined = " ".join(part for part in parts if part)
    return _SPACE_RUN.sub(" ", joined)


def substitute_placeholders(template: str, inputs: PromptInputs) -> tuple[str, list[str], set[str]]:
    """Replace known ``{field}`` tokens in ``template``.

    Returns:
        Tuple of ``(text, unknown_names, used_fields)``.  ``unknown_names``
        lists each unknown placeholder once, in order of first appearance.
    """
    unknown: list[str] = []
    used: set[str] = set()

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in INPUT_FIELDS:
            used.add(name)
            return getattr(inputs, name)
        if name not in unknown:
            unknown.append(name)
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, template), unknown, used


def resolve_blocks(
    block_keys: Sequence[str],
    blocks: Mapping[str, Block],
    inputs: PromptInputs,
) -> ResolvedBlocks:
    """Resolve a blueprint's blocks into fragments, in blueprint order.

    Args:
        block_keys: The blueprint's ordered block keys.
        blocks: Block records by key.
        inputs: Free-text fields substituted into the templates.

    Returns:
        The resolved fragments plus one warning per unknown placeholder
        name per block.

    Raises:
        BlockNotFoundError: A key is missing from ``blocks``.
    """
    fragments: list[Fragment] = []
    warnings: list[str] = []
    used_fields: set[str] = set()

    for key in block_keys:
        block = blocks.get(key)
        if block is None:
            logger.warning(f"Blueprint references missing block: {key}")
            raise BlockNotFoundError(key)

        text, unknown, used = substitute_placeholders(block.template, inputs)
        used_fields |= used
        for name in unknown:
            warnings.append(f"Unknown placeholder {{{name}}} in block '{key}'")
        fragments.append(Fragment(text=text.strip(), block_type=block.type, source=key))

    logger.debug(f"Resolved {len(fragments)} blocks with {len(warnings)} warnings")
    return ResolvedBlocks(
        fragments=tuple(fragments),
        warnings=tuple(warnings),
        used_fields=frozenset(used_fields),
    )


def constraint_fragments(
    constraints: Sequence[str],
    restrictions: str,
    used_fields: Iterable[str] = (),
) -> list[Fragment]:
    """Build the trailing constraint fragments of a blueprint.

    Blueprint constraints are listed as ``Constraints: a, b``.  The
    ``restrictions`` input becomes ``Avoid: ...`` unless a block template
    already placed it via ``{restrictions}``.
    """
    fragments: list[Fragment] = []
    cleaned = [c.strip() for c in constraints if c.strip()]
    if cleaned:
        fragments.append(
            Fragment(text=f"Constraints: {', '.join(cleaned)}", block_type="constraint", source="constraints")
        )
    restrictions = restrictions.strip()
    if restrictions and "restrictions" not in set(used_fields):
        fragments.append(Fragment(text=f"Avoid: {restrictions}", block_type="constraint", source="restrictions"))
    return fragments
