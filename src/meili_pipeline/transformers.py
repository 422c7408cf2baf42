"""Document Transformation Module

Maps a content record and its extraction plan into a flat search document.

Key responsibilities:
  - Copy static record attributes and the mandatory identity keys
  - Normalize each configured field by its declared kind (relations,
    block-like fields, tables, booleans, dates, plain scalars)
  - Render image transform URLs for related assets
  - Strip empty values so the search engine never stores "" or []

Mapping one record never raises for missing or malformed data: absent
layout fields are skipped and failing values are logged and dropped, so a
single bad record cannot abort a batch.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from . import settings
from .config import WILDCARD, as_bool, dedupe
from .images import TransformUrlBuilder
from .interfaces import FieldLayoutProvider, RecordAccessor, RelationQuery
from .models import (
    BlockItem,
    ExtractionPlan,
    FieldDescriptor,
    FieldKind,
    Record,
    RelatedElement,
    RelationTarget,
)
from .sources import RecordValuesAccessor

logger = logging.getLogger(__name__)

# Regex patterns (define at module level for performance)
WHITESPACE_RE = re.compile(r"\s+")
POSITIONAL_KEY_RE = re.compile(r"^col\d+$")  # auto-generated table column keys

# Attribute fallback order per relation label mode
LABEL_CHAINS = {
    "title": ("title", "full_name", "username", "name", "slug", "email"),
    "slug": ("slug", "username", "title", "name"),
}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _collapse(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def element_label(element: RelatedElement, mode: str = "title") -> str:
    """Label for a related record, falling back to its id."""
    ident = "" if element.id is None else str(element.id)
    if mode == "id":
        return ident

    for attr in LABEL_CHAINS.get(mode, LABEL_CHAINS["title"]):
        value = getattr(element, attr)
        if value is not None and value != "":
            return str(value)
    return ident


def asset_value(asset: RelatedElement, mode: str = "url") -> str:
    if mode == "id":
        return "" if asset.id is None else str(asset.id)
    if mode == "title":
        return asset.title or ""
    return asset.url or ""


def _row_text(row: Any) -> str:
    """Flatten one table row, preferring named columns over colN keys."""
    if not isinstance(row, (Mapping, list, tuple)):
        return _collapse(scalarize(row))
    if isinstance(row, Mapping):
        named = [
            value for key, value in row.items()
            if isinstance(key, str) and not POSITIONAL_KEY_RE.match(key)
        ]
        values = named or list(row.values())
    else:
        values = list(row)

    cells = [_collapse(scalarize(value)) for value in values]
    return " ".join(cell for cell in cells if cell)


def scalarize(value: Any) -> str:
    """Render any field value as a single line of text.

    Used for values nested inside blocks and for array-valued fields:
    table rows are flattened and de-duplicated, simple lists are trimmed,
    de-duplicated and space-joined.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, RelatedElement):
        return element_label(value)
    if isinstance(value, Mapping):
        return _row_text(value)
    if isinstance(value, (list, tuple)):
        if value and isinstance(value[0], (Mapping, list, tuple)):
            rows = [_row_text(row) for row in value]
            return " ".join(dedupe(row for row in rows if row))
        items = [_collapse(scalarize(item)) for item in value]
        return " ".join(dedupe(item for item in items if item))
    return str(value)


def normalize_value(value: Any) -> Any:
    """Normalize a non-relational field value for the search engine."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple, Mapping)):
        return scalarize(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return value
    return str(value).strip()


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


def _described(handle: str, value: Any) -> FieldDescriptor:
    """Descriptor for a nested value whose block type has no layout."""
    is_relation = isinstance(value, RelationQuery) or (
        isinstance(value, (list, tuple))
        and bool(value)
        and all(isinstance(item, RelatedElement) for item in value)
    )
    kind = FieldKind.RELATION if is_relation else FieldKind.SCALAR
    return FieldDescriptor(handle=handle, kind=kind)


def remove_empty_keys(document: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys holding "", None, [] or {}; False and 0 are kept."""
    return {key: value for key, value in document.items() if not _is_empty(value)}


# ---------------------------------------------------------------------------
# Mapper
# ---------------------------------------------------------------------------


class DocumentMapper:
    """Converts records into search documents.

    Args:
        layouts: field layout provider for content types
        accessor: reads attributes and raw field values from records
        transforms: renders image transform URLs for related assets
        asset_mode: url|id|title emitted per related asset
        relation_mode: title|slug|id emitted per related record
    """

    def __init__(
        self,
        layouts: FieldLayoutProvider,
        accessor: Optional[RecordAccessor] = None,
        transforms: Optional[TransformUrlBuilder] = None,
        asset_mode: str = settings.ASSET_MODE,
        relation_mode: str = settings.RELATION_MODE,
    ):
        self.layouts = layouts
        self.accessor = accessor or RecordValuesAccessor()
        self.transforms = transforms or TransformUrlBuilder()

        if asset_mode not in settings.ASSET_MODES:
            logger.warning("Unknown asset mode %r; using 'url'", asset_mode)
            asset_mode = "url"
        if relation_mode not in settings.RELATION_MODES:
            logger.warning("Unknown relation mode %r; using 'title'", relation_mode)
            relation_mode = "title"
        self.asset_mode = asset_mode
        self.relation_mode = relation_mode

    def clear_cache(self) -> None:
        """Forget memoized transform lookups; call between mapping passes."""
        self.transforms.clear_cache()

    def _layout(self, record: Record) -> Dict[str, FieldDescriptor]:
        try:
            fields = self.layouts.get_fields(record.type, record.group)
        except Exception:
            logger.warning(
                "Could not load field layout for %s.%s (record %s)",
                record.group,
                record.type,
                record.id,
                exc_info=True,
            )
            return {}
        return {descriptor.handle: descriptor for descriptor in fields}

    def map_record(
        self,
        record: Record,
        plan: ExtractionPlan,
        attributes: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Build the search document for one record."""
        layout = self._layout(record)

        fields = list(plan.fields)
        if fields == [WILDCARD]:
            fields = list(layout)

        document: Dict[str, Any] = {}

        for attribute in attributes:
            try:
                value = self.accessor.get_attribute(record, attribute)
            except Exception:
                logger.warning("Could not read attribute %r of record %s", attribute, record.id, exc_info=True)
                value = None
            document[attribute] = "" if value is None else value

        for handle in fields:
            descriptor = layout.get(handle)
            if descriptor is None:
                logger.debug("Field %r not on layout of %s.%s; skipping", handle, record.group, record.type)
                continue

            try:
                value = self.accessor.get_field_value(record, handle)
                document[handle] = self.normalize_field(value, descriptor, plan)
            except Exception:
                logger.warning(
                    "Failed to normalize field %r of record %s; leaving it out",
                    handle,
                    record.id,
                    exc_info=True,
                )

        document.update({
            "id": record.id,
            "objectID": f"{record.id}-{record.site_id}",
            "localeId": record.site_id,
            "url": record.url or "",
            "uri": record.uri or "",
            "slug": record.slug or "",
            "postDate": _iso(record.post_date),
            "dateCreated": _iso(record.date_created),
            "dateUpdated": _iso(record.date_updated),
        })

        # Strip empty values at the very end
        return remove_empty_keys(document)

    def normalize_field(self, value: Any, descriptor: FieldDescriptor, plan: ExtractionPlan) -> Any:
        kind = descriptor.kind

        if kind is FieldKind.RELATION:
            items = self._materialize(value, descriptor.handle)
            if not items:
                return []
            if descriptor.relation_target is RelationTarget.ASSET:
                return self._assets(items, plan.image_transforms.get(descriptor.handle, []))
            labels = [element_label(item, self.relation_mode) for item in items]
            return [label for label in labels if label]

        if kind is FieldKind.BLOCK_LIKE:
            return self._blocks(value, descriptor, plan.fields_nested.get(descriptor.handle))

        if kind is FieldKind.BOOLEAN and value is not None:
            return value if isinstance(value, bool) else as_bool(value)

        return normalize_value(value)

    def _materialize(self, value: Any, handle: str) -> List[Any]:
        """Load related items, retrying once against any locale."""
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)

        items: List[Any] = []
        try:
            items = list(value.all())
        except Exception:
            logger.warning("Could not load related items for field %r", handle, exc_info=True)

        if not items and getattr(value, "locale_scoped", False):
            try:
                items = list(value.all(any_locale=True))
            except Exception:
                logger.warning(
                    "Could not load related items for field %r in any locale",
                    handle,
                    exc_info=True,
                )
                items = []

        return items

    def _assets(self, assets: List[RelatedElement], refs: List[str]) -> List[Any]:
        mode = self.asset_mode

        if not refs:
            values = [asset_value(asset, mode) for asset in assets]
            return [value for value in values if value]

        return [
            {
                mode: asset_value(asset, mode),
                "imageTransforms": self.transforms.urls_for_asset(asset, refs),
            }
            for asset in assets
        ]

    def _nested_text(self, value: Any, descriptor: FieldDescriptor) -> str:
        if descriptor.kind is FieldKind.RELATION:
            items = self._materialize(value, descriptor.handle)
            return ",".join(element_label(item) for item in items)
        return scalarize(value)

    def _blocks(
        self,
        value: Any,
        descriptor: FieldDescriptor,
        selection: Optional[Dict[str, List[str]]],
    ) -> str:
        """Concatenate block items into one text value.

        `selection` maps block type -> nested fields to include; block types
        without a selection include every nested field.
        """
        chunks: List[str] = []

        for block in self._materialize(value, descriptor.handle):
            if not isinstance(block, BlockItem):
                logger.debug("Skipping non-block item in field %r", descriptor.handle)
                continue

            block_type = descriptor.block_types.get(block.type_handle or "")
            nested_fields = (
                block_type.fields if block_type is not None
                else [_described(handle, nested_value) for handle, nested_value in block.values.items()]
            )

            allowed = None
            if selection and block.type_handle in selection:
                allowed = set(selection[block.type_handle])

            block_chunks: List[str] = []

            title = (block.title or "").strip()
            if title:
                block_chunks.append(title)

            for nested in nested_fields:
                if allowed is not None and nested.handle not in allowed:
                    continue
                text = self._nested_text(block.values.get(nested.handle), nested).strip()
                if text:
                    block_chunks.append(text)

            # Fall back to the block type label
            if not block_chunks:
                label = (
                    (block_type.name if block_type is not None else None)
                    or block.type_name
                    or block.type_handle
                )
                if label:
                    block_chunks.append(label)

            block_chunks = dedupe(block_chunks)
            if block_chunks:
                chunks.append(" ".join(block_chunks))

        return " ".join(chunks)
