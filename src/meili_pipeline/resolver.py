"""Field Resolution Module

Resolves a canonical index configuration and a record's content type into
an `ExtractionPlan`, and decides which index configurations a record
belongs to.

Admin-authored configuration is often partial: unknown handles, paths with
too few segments and paths for other groups are skipped, never raised.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .config import WILDCARD, dedupe
from .models import ExtractionPlan, IndexConfig, Record
from .paths import leaf, split_path

logger = logging.getLogger(__name__)


def resolve(
    config: Optional[IndexConfig],
    type_handle: Optional[str],
    group_handle: Optional[str] = None,
) -> ExtractionPlan:
    """Build the extraction plan for one content type.

    When `group_handle` is given, only paths namespaced under that group
    count; the same field handle can exist under several groups and their
    image transform bindings must not leak into each other.
    """
    if config is None or not type_handle:
        return ExtractionPlan()

    # --- image transforms ---
    image_transforms: Dict[str, List[str]] = {}
    for key, refs in config.image_transforms.items():
        parts = split_path(key)
        if parts.type != type_handle or not parts.field:
            continue
        if group_handle and parts.group != group_handle:
            continue
        merged = image_transforms.get(parts.field, []) + [str(r) for r in refs]
        image_transforms[parts.field] = dedupe(merged)

    # --- fields + nested fields ---
    fields: List[str] = []
    fields_nested: Dict[str, Dict[str, List[str]]] = {}
    for path in config.fields.get(type_handle, []):
        parts = split_path(path)
        if not parts.field:
            logger.debug("Skipping field path %r: fewer than three segments", path)
            continue
        if group_handle and parts.group != group_handle:
            continue

        fields.append(parts.field)

        if len(parts.rest) >= 2:
            block_type, nested_field = parts.rest[0], parts.rest[1]
            nested = fields_nested.setdefault(parts.field, {}).setdefault(block_type, [])
            if nested_field not in nested:
                nested.append(nested_field)

    return ExtractionPlan(
        fields=dedupe(fields),
        fields_nested=fields_nested,
        image_transforms=image_transforms,
    )


def resolve_for_record(config: Optional[IndexConfig], record: Record) -> ExtractionPlan:
    return resolve(config, record.type, record.group)


def _is_id_list(values: List[str]) -> bool:
    return bool(values) and values[0].isdigit()


def matches_record(config: IndexConfig, record: Record) -> bool:
    """Whether a record belongs in the indexes of `config`.

    Disabled configs and configs with no groups selected index nothing.
    Groups and types may be stored as numeric ids or as handles; types may
    also be namespaced as ``group.type``.
    """
    if not config.enabled or not config.groups:
        return False

    if _is_id_list(config.groups):
        if record.group_id not in {int(g) for g in config.groups if g.isdigit()}:
            return False
    elif record.group not in config.groups:
        return False

    if config.types == [WILDCARD]:
        return True

    if _is_id_list(config.types):
        return record.type_id in {int(t) for t in config.types if t.isdigit()}

    type_handles = {leaf(t) for t in config.types}
    return record.type in type_handles


def indexes_for_record(configs: Iterable[IndexConfig], record: Record) -> List[IndexConfig]:
    return [config for config in configs if matches_record(config, record)]
