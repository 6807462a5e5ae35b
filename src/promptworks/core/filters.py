"""Filter effect application.

Each applied filter contributes one effect fragment, appended after the
resolved block fragments.  Effects are emitted in lexicographic filter-key
order so the output never depends on mapping iteration order.

Conflicts
---------
A filter declares the prompt *dimension* its effect targets (by default its
own key).  When two or more applied filters target the same dimension with
different effect text, the filter whose key sorts last wins, the others are
dropped, and a single warning names every filter involved and the winner.

Invalid values are skipped with a warning rather than failing the compile.
Entitlement (premium filters) is checked by the caller before this stage.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .errors import FilterNotFoundError
from .models import Filter
from .resolver import Fragment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedFilters:
    fragments: tuple[Fragment, ...]
    warnings: tuple[str, ...] = ()


def _parse_number(value: str) -> float | None:
    try:
        number = float(value)
    except ValueError:
        return None
    # float() also accepts "nan" and "inf".
    return number if math.isfinite(number) else None


def effect_for(definition: Filter, value: str) -> tuple[str | None, str | None]:
    """Validate ``value`` against a filter and look up its effect text.

    Returns:
        Tuple of ``(effect_text, warning)``; exactly one is ``None``.
    """
    value = value.strip()
    key = definition.key
    schema = definition.schema_

    if schema.type == "range":
        number = _parse_number(value)
        if number is None:
            return None, f"Filter '{key}': value '{value}' is not a number; filter skipped"
        if (schema.min is not None and number < schema.min) or (
            schema.max is not None and number > schema.max
        ):
            return None, (
                f"Filter '{key}': value '{value}' is outside "
                f"[{schema.min}, {schema.max}]; filter skipped"
            )
    elif schema.options is not None and value not in schema.options:
        return None, f"Filter '{key}': invalid value '{value}'; filter skipped"

    effect = definition.effect.get(value)
    if effect is None and "*" in definition.effect:
        effect = definition.effect["*"].replace("{value}", value)
    if not effect or not effect.strip():
        return None, f"Filter '{key}': no effect defined for value '{value}'; filter skipped"
    return effect.strip(), None


def apply_filters(
    fragments: Sequence[Fragment],
    applied_filters: Mapping[str, str],
    filter_defs: Mapping[str, Filter],
) -> AppliedFilters:
    """Append filter effects to the resolved fragments.

    Args:
        fragments: Fragments from the block resolver.
        applied_filters: Filter key to chosen value.  Empty or blank values
            mean "not applied"; other values are trimmed.
        filter_defs: Filter definitions by key.

    Returns:
        The augmented fragment list and the warnings raised by this stage,
        validation warnings first (in key order), then conflict warnings.

    Raises:
        FilterNotFoundError: An applied key has no definition.
    """
    warnings: list[str] = []
    # dimension -> [(key, effect)] in key order
    by_dimension: dict[str, list[tuple[str, str]]] = {}

    for key in sorted(applied_filters):
        value = applied_filters[key]
        value = "" if value is None else str(value).strip()
        if not value:
            continue
        definition = filter_defs.get(key)
        if definition is None:
            logger.warning(f"Applied filter has no definition: {key}")
            raise FilterNotFoundError(key)

        effect, warning = effect_for(definition, value)
        if warning:
            warnings.append(warning)
            continue
        by_dimension.setdefault(definition.target_dimension, []).append((key, effect))

    effects: list[Fragment] = []
    for dimension, candidates in by_dimension.items():
        winner_key, winner_effect = candidates[-1]
        if len({effect for _, effect in candidates}) > 1:
            keys = ", ".join(f"'{k}'" for k, _ in candidates)
            warnings.append(
                f"Filter conflict on '{dimension}': {keys} target the same dimension; "
                f"'{winner_key}' wins"
            )
        effects.append(Fragment(text=winner_effect, block_type=None, source=winner_key))
    effects.sort(key=lambda fragment: fragment.source)

    logger.debug(f"Applied {len(effects)} filter effects with {len(warnings)} warnings")
    return AppliedFilters(fragments=(*fragments, *effects), warnings=tuple(warnings))
