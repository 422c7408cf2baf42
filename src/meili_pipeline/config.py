"""Index Configuration Normalization Module

Turns index configuration in any of its historically stored shapes into
the canonical `IndexConfig`:

  - builder form submissions (flat lists plus ``path::transform`` tokens)
  - flat namespaced maps (``group.type.field -> [...]``)
  - legacy nested image transform maps (``group -> type -> field -> [...]``)
  - legacy keys (``sections``/``entryTypes`` for ``groups``/``types``)

Legacy shape detection runs here, once, when a configuration is loaded.
Nothing downstream re-inspects the shape.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import IndexConfig
from .paths import dot_count, leaf

logger = logging.getLogger(__name__)

WILDCARD = "*"
DEFAULT_MAX_VALUES_PER_FACET = 500
TRANSFORM_TOKEN_SEPARATOR = "::"

# Stored configuration key -> legacy key it replaced
_LEGACY_KEYS = {
    "groups": "sections",
    "types": "entryTypes",
}

_FALSE_STRINGS = {"", "0", "false", "no", "off"}

# Renderer config sections that commonly hold named transforms
_PRESET_SECTIONS = ("transformPresets", "namedTransforms", "transforms")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def dedupe(items: Iterable[Any]) -> List[Any]:
    """Remove duplicates while preserving first-seen order."""
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _strings(values: Iterable[Any]) -> List[str]:
    """Coerce to strings and drop empties."""
    out = []
    for value in values:
        if value is None:
            continue
        s = str(value).strip()
        if s:
            out.append(s)
    return out


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_mapping(config: Any) -> Dict[str, Any]:
    if isinstance(config, IndexConfig):
        return config.model_dump(by_alias=True)
    if isinstance(config, Mapping):
        return dict(config)
    return {}


def _first_present(source: Mapping, *keys: str) -> Any:
    for key in keys:
        if source.get(key) is not None:
            return source[key]
    return None


def _fields_map(value: Any) -> Dict[str, List[str]]:
    if not isinstance(value, Mapping):
        return {}
    return {
        str(type_handle): dedupe(_strings(_as_list(paths)))
        for type_handle, paths in value.items()
    }


def parse_list(value: Any) -> List[str]:
    """Parse a list-ish setting.

    Lists are coerced to strings with empties dropped; strings are treated
    as comma-separated; anything else yields [].
    """
    if isinstance(value, (list, tuple)):
        return dedupe(_strings(value))
    if isinstance(value, str):
        return dedupe(_strings(value.split(",")))
    return []


# ---------------------------------------------------------------------------
# Builder submissions
# ---------------------------------------------------------------------------


def parse_builder_submission(
    form: Mapping[str, Any],
    previous: Any = None,
) -> Tuple[List[str], List[str], Dict[str, List[str]], Dict[str, List[str]]]:
    """Parse an index builder submission.

    For groups, types and fields the submitted value wins when present,
    otherwise the previous configuration's value is kept. Image transforms
    arrive as ``"<namespacedPath>::<transformRef>"`` tokens; when any are
    submitted they replace the previous map entirely.

    Returns:
        (groups, types, fields, image_transforms)
    """
    form = form or {}
    prev = _as_mapping(previous)

    def pick(key: str) -> Any:
        legacy = _LEGACY_KEYS.get(key)
        keys = (key, legacy) if legacy else (key,)
        submitted = _first_present(form, *keys)
        if submitted is not None:
            return submitted
        return _first_present(prev, *keys)

    groups = dedupe(_strings(_as_list(pick("groups"))))
    types = dedupe(_strings(_as_list(pick("types"))))
    fields = _fields_map(pick("fields"))

    image_transforms = prev.get("imageTransforms")
    image_transforms = dict(image_transforms) if isinstance(image_transforms, Mapping) else {}

    tokens = _strings(_as_list(form.get("imageTransforms")))
    if tokens:
        image_transforms = {}
        for token in tokens:
            path, _, ref = token.partition(TRANSFORM_TOKEN_SEPARATOR)
            path, ref = path.strip(), ref.strip()
            if not path or not ref:
                logger.debug("Discarding incomplete image transform token %r", token)
                continue
            refs = image_transforms.setdefault(path, [])
            if ref not in refs:
                refs.append(ref)

    return groups, types, fields, image_transforms


# ---------------------------------------------------------------------------
# Image transforms
# ---------------------------------------------------------------------------


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def _first_value(node: Any) -> Any:
    if isinstance(node, Mapping):
        return next(iter(node.values()))
    return node[0]


def flatten_legacy_image_transforms(nested: Any, prefix: str = "") -> Dict[str, List[str]]:
    """Flatten ``group -> type -> field -> [refs]`` into ``"group.type.field" -> [refs]``.

    A node is a leaf once its first value is no longer a container.
    """
    out: Dict[str, List[str]] = {}
    items = nested.items() if isinstance(nested, Mapping) else enumerate(nested)

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if not _is_container(value) or not value:
            continue

        if not _is_container(_first_value(value)):
            out[path] = _strings(_as_list(value))
        else:
            for sub_path, refs in flatten_legacy_image_transforms(value, path).items():
                out.setdefault(sub_path, refs)

    return out


def normalize_image_transforms(value: Any) -> Dict[str, List[str]]:
    """Return the flat namespaced form of an image transform map.

    A map is already flat when its first key has at least two dots and maps
    to a list; anything else is treated as the legacy nested shape.
    """
    if not isinstance(value, Mapping) or not value:
        return {}

    first_key = next(iter(value))
    if (
        isinstance(first_key, str)
        and dot_count(first_key) >= 2
        and isinstance(value[first_key], (list, tuple))
    ):
        return {str(k): dedupe(_strings(_as_list(v))) for k, v in value.items()}

    logger.debug("Flattening legacy nested image transform map (%d top-level keys)", len(value))
    return flatten_legacy_image_transforms(value)


# ---------------------------------------------------------------------------
# Filterable / sortable attributes
# ---------------------------------------------------------------------------


def normalize_filterable(config: Any) -> List[str]:
    """Namespace every filterable entry.

    Entries with two or more dots pass through. Anything shorter (usually a
    bare field handle) expands to every selected field path ending with it,
    so one handle can fan out across several groups and types.
    """
    index = _as_mapping(config)
    entries = parse_list(index.get("filterable"))
    if not entries:
        return []

    selected = dedupe(
        path
        for paths in _fields_map(index.get("fields")).values()
        for path in paths
    )

    out = set()
    for entry in entries:
        if dot_count(entry) >= 2:
            out.add(entry)
            continue

        suffix = "." + entry
        matches = [path for path in selected if path.endswith(suffix)]
        if not matches:
            logger.debug("Filterable %r matches no selected field path", entry)
        out.update(matches)

    return sorted(out)


def leaf_attributes(paths: Iterable[Any]) -> List[str]:
    """Map namespaced paths to the flat attribute names stored in the index."""
    return dedupe(leaf(path) for path in _strings(paths))


# ---------------------------------------------------------------------------
# Whole-config normalization
# ---------------------------------------------------------------------------


def _default_label(handle: str) -> str:
    label = handle.replace("-", " ")
    return label[:1].upper() + label[1:]


def normalize_for_display(config: Any) -> Dict[str, Any]:
    """Coerce every known key for editing, keeping unknown keys untouched."""
    index = _as_mapping(config)

    index["siteAware"] = as_bool(index.get("siteAware"))
    index["siteId"] = _as_int(index.get("siteId"))
    index["siteIds"] = dedupe(_as_int(v) for v in _as_list(index.get("siteIds")))

    index["groups"] = dedupe(_strings(_as_list(_first_present(index, "groups", "sections"))))
    index["types"] = dedupe(_strings(_as_list(_first_present(index, "types", "entryTypes"))))
    for legacy in _LEGACY_KEYS.values():
        index.pop(legacy, None)

    index["fields"] = _fields_map(index.get("fields"))
    index["attributes"] = parse_list(index.get("attributes"))
    index["filterable"] = normalize_filterable(index)
    index["sortable"] = parse_list(index.get("sortable"))
    index["imageTransforms"] = normalize_image_transforms(index.get("imageTransforms"))

    return index


def normalize(config: Any) -> IndexConfig:
    """Normalize a stored index configuration into the canonical shape.

    Types default to the wildcard and fields to an empty map; filterable
    entries are always namespaced afterwards.
    """
    index = _as_mapping(config)

    handle = str(index.get("handle") or "").strip()
    raw_types = _first_present(index, "types", "entryTypes")
    types = dedupe(_strings(_as_list(raw_types))) if isinstance(raw_types, (list, tuple)) else []

    fields = _fields_map(index.get("fields"))

    return IndexConfig(
        handle=handle,
        label=str(index.get("label") or "").strip() or _default_label(handle),
        groups=dedupe(_strings(_as_list(_first_present(index, "groups", "sections")))),
        types=types or [WILDCARD],
        fields=fields,
        image_transforms=normalize_image_transforms(index.get("imageTransforms")),
        site_aware=as_bool(index.get("siteAware")),
        site_id=_as_int(index.get("siteId")),
        site_ids=dedupe(i for i in (_as_int(v) for v in _as_list(index.get("siteIds"))) if i > 0),
        attributes=parse_list(index.get("attributes")),
        filterable=normalize_filterable({"fields": fields, "filterable": index.get("filterable")}),
        sortable=parse_list(index.get("sortable")),
        enabled=as_bool(index.get("enabled")),
        max_values_per_facet=_as_int(index.get("maxValuesPerFacet"), DEFAULT_MAX_VALUES_PER_FACET),
    )


def index_settings(config: IndexConfig) -> Dict[str, Any]:
    """Build the settings payload applied to every physical index of a config."""
    settings: Dict[str, Any] = {
        "primaryKey": "objectID",
        "filterableAttributes": leaf_attributes(config.filterable),
        "sortableAttributes": leaf_attributes(config.sortable),
    }
    if config.max_values_per_facet > 0:
        settings["faceting"] = {"maxValuesPerFacet": config.max_values_per_facet}
    return settings


def transform_presets_from_config(
    config: Mapping[str, Any],
    presets: Optional[Iterable[str]] = None,
) -> List[str]:
    """Collect named transform handles declared in a renderer config."""
    found = list(presets or [])
    if not isinstance(config, Mapping):
        return dedupe(_strings(found))

    for section in _PRESET_SECTIONS:
        declared = config.get(section)
        if isinstance(declared, Mapping) and declared:
            found.extend(declared.keys())

    # Some configs declare presets at the top level
    found.extend(key for key in config.keys() if key not in _PRESET_SECTIONS)

    return dedupe(_strings(found))
