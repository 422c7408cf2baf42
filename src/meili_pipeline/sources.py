"""In-memory collaborators backed by plain data.

These implement the collaborator protocols over JSON-style dicts, which is
how offline record dumps are fed through the pipeline (and how the tests
build records).
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import BlockItem, FieldDescriptor, FieldKind, Record, RelatedElement

logger = logging.getLogger(__name__)

CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return CAMEL_RE.sub("_", name).lower()


class RecordValuesAccessor:
    """Reads attributes and field values straight off a `Record`."""

    def get_attribute(self, record: Record, name: str) -> Any:
        if name in record.attributes:
            return record.attributes[name]
        field_name = _snake(name)
        if field_name in Record.model_fields:
            return getattr(record, field_name)
        return None

    def get_field_value(self, record: Record, handle: str) -> Any:
        return record.values.get(handle)


class StaticRelationQuery:
    """Relation query over fixed lists of related elements.

    `any_locale_items` is what the query yields once the locale scope is
    relaxed; it defaults to the locale-scoped items.
    """

    def __init__(
        self,
        items: Iterable[RelatedElement] = (),
        any_locale_items: Optional[Iterable[RelatedElement]] = None,
        locale_scoped: bool = True,
    ):
        self.items = list(items)
        self.any_locale_items = list(any_locale_items) if any_locale_items is not None else None
        self.locale_scoped = locale_scoped

    def all(self, any_locale: bool = False) -> List[RelatedElement]:
        if any_locale and self.any_locale_items is not None:
            return list(self.any_locale_items)
        return list(self.items)


class InMemoryLayoutProvider:
    """Field layouts keyed by type handle, or by ``group.type`` to scope one group."""

    def __init__(self, layouts: Optional[Mapping] = None):
        self.layouts: Dict[str, List[FieldDescriptor]] = {
            key: list(fields) for key, fields in (layouts or {}).items()
        }

    def get_fields(self, type_handle: str, group_handle: Optional[str] = None) -> List[FieldDescriptor]:
        if group_handle:
            scoped = self.layouts.get(f"{group_handle}.{type_handle}")
            if scoped is not None:
                return list(scoped)
        return list(self.layouts.get(type_handle, []))

    def get_field(self, type_handle: str, handle: str, group_handle: Optional[str] = None) -> Optional[FieldDescriptor]:
        for descriptor in self.get_fields(type_handle, group_handle):
            if descriptor.handle == handle:
                return descriptor
        return None


class StaticSiteRegistry:
    def __init__(self, site_ids: Sequence[int] = (1,), primary: Optional[int] = None):
        self.site_ids = [int(site_id) for site_id in site_ids]
        self.primary = primary

    def all_site_ids(self) -> List[int]:
        return list(self.site_ids)

    def primary_site_id(self) -> int:
        if self.primary:
            return self.primary
        return self.site_ids[0] if self.site_ids else 1


class PrecomputedTransformRenderer:
    """Serves transform URLs that were rendered ahead of time.

    Record dumps ship them on each asset as ``"transforms": {handle: url}``.
    """

    def resolve(self, handle: str) -> Optional[str]:
        return handle or None

    def render(self, asset: RelatedElement, transform: Any) -> Optional[str]:
        return asset.transforms.get(str(transform))


# ---------------------------------------------------------------------------
# Dump parsing
# ---------------------------------------------------------------------------


def layouts_from_dict(content_types: Mapping) -> InMemoryLayoutProvider:
    """Build a layout provider from ``{typeKey: {"fields": [descriptor, ...]}}``.

    A bare list of descriptors is accepted in place of the wrapping object.
    """
    layouts: Dict[str, List[FieldDescriptor]] = {}
    for key, content_type in (content_types or {}).items():
        raw_fields = content_type.get("fields", []) if isinstance(content_type, Mapping) else content_type
        layouts[str(key)] = [FieldDescriptor.model_validate(f) for f in raw_fields or []]
    return InMemoryLayoutProvider(layouts)


def _parse_datetime(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value


def _related(raw: Any) -> RelatedElement:
    if isinstance(raw, RelatedElement):
        return raw
    if isinstance(raw, Mapping):
        data = {_snake(str(key)): value for key, value in raw.items()}
        return RelatedElement.model_validate(data)
    return RelatedElement(id=raw) if isinstance(raw, int) else RelatedElement(title=str(raw))


def _relation_query(raw: Any) -> StaticRelationQuery:
    if isinstance(raw, Mapping):
        any_locale = raw.get("anyLocale")
        return StaticRelationQuery(
            items=[_related(item) for item in raw.get("items") or []],
            any_locale_items=[_related(item) for item in any_locale] if any_locale is not None else None,
            locale_scoped=bool(raw.get("localeScoped", True)),
        )
    return StaticRelationQuery(items=[_related(item) for item in raw or []])


def _block(raw: Mapping, descriptor: FieldDescriptor) -> BlockItem:
    type_handle = raw.get("type")
    block_type = descriptor.block_types.get(type_handle or "")
    nested = {f.handle: f for f in block_type.fields} if block_type is not None else {}
    values = {
        handle: convert_value(value, nested.get(handle))
        for handle, value in (raw.get("fields") or raw.get("values") or {}).items()
    }
    return BlockItem(
        type_handle=type_handle,
        type_name=raw.get("typeName") or (block_type.name if block_type is not None else None),
        title=raw.get("title"),
        values=values,
    )


def convert_value(raw: Any, descriptor: Optional[FieldDescriptor]) -> Any:
    """Turn a JSON field value into the typed value the mapper expects."""
    if descriptor is None or raw is None:
        return raw
    if descriptor.kind is FieldKind.RELATION:
        return _relation_query(raw)
    if descriptor.kind is FieldKind.BLOCK_LIKE:
        return [_block(item, descriptor) for item in raw if isinstance(item, Mapping)]
    if descriptor.kind is FieldKind.DATETIME:
        return _parse_datetime(raw)
    return raw


def record_from_dict(raw: Mapping, layouts: InMemoryLayoutProvider) -> Record:
    """Build a `Record` from a dumped entry.

    Accepts the CMS's own key names (``section``/``entryType``/``siteId``)
    as well as the model's.
    """
    group = raw.get("group") or raw.get("section")
    type_handle = raw.get("type") or raw.get("entryType")
    layout = {f.handle: f for f in layouts.get_fields(type_handle, group)}

    raw_values = raw.get("fields") or raw.get("values") or {}
    values = {handle: convert_value(value, layout.get(handle)) for handle, value in raw_values.items()}

    return Record(
        id=raw["id"],
        site_id=raw.get("siteId") or raw.get("site_id") or 1,
        group=group,
        type=type_handle,
        group_id=raw.get("groupId") or raw.get("sectionId"),
        type_id=raw.get("typeId"),
        title=raw.get("title"),
        url=raw.get("url"),
        uri=raw.get("uri"),
        slug=raw.get("slug"),
        post_date=raw.get("postDate"),
        date_created=raw.get("dateCreated"),
        date_updated=raw.get("dateUpdated"),
        attributes=dict(raw.get("attributes") or {}),
        values=values,
    )
