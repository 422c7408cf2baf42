"""Data Models Module

Defines Pydantic models for the three shapes the engine passes around:
the canonical index configuration, the per-type extraction plan resolved
from it, and the content records (with their field descriptors) that get
mapped into search documents.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldKind(str, Enum):
    """Closed set of field kinds the document mapper knows how to normalize."""
    SCALAR = "scalar"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    RELATION = "relation"
    BLOCK_LIKE = "block_like"
    TABLE = "table"


class RelationTarget(str, Enum):
    ASSET = "asset"
    GENERIC = "generic"


class PathParts(BaseModel):
    """A decoded namespaced path: group.type.field[.blockType.nestedField]."""
    group: Optional[str] = None
    type: Optional[str] = None
    field: Optional[str] = None
    rest: List[str] = []


class FieldDescriptor(BaseModel):
    """A custom field on a content type's field layout.

    `relation_target` is only meaningful for RELATION fields and
    `block_types` only for BLOCK_LIKE fields.
    """
    handle: str
    name: Optional[str] = None
    kind: FieldKind = FieldKind.SCALAR
    relation_target: Optional[RelationTarget] = None
    block_types: Dict[str, "BlockTypeDescriptor"] = {}


class BlockTypeDescriptor(BaseModel):
    """Sub-layout of one block type inside a block-like field."""
    handle: str
    name: Optional[str] = None
    fields: List[FieldDescriptor] = []


FieldDescriptor.model_rebuild()


class IndexConfig(BaseModel):
    """Canonical index configuration.

    Attribute names are snake_case; the stored configuration uses the
    camelCase aliases, so `model_dump(by_alias=True)` round-trips it.
    """
    model_config = ConfigDict(populate_by_name=True)

    handle: str = ""
    label: str = ""
    groups: List[str] = []
    types: List[str] = ["*"]
    fields: Dict[str, List[str]] = {}
    image_transforms: Dict[str, List[str]] = Field(default_factory=dict, alias="imageTransforms")
    site_aware: bool = Field(default=False, alias="siteAware")
    site_id: int = Field(default=0, alias="siteId")
    site_ids: List[int] = Field(default_factory=list, alias="siteIds")
    attributes: List[str] = []
    filterable: List[str] = []
    sortable: List[str] = []
    enabled: bool = False
    max_values_per_facet: int = Field(default=500, alias="maxValuesPerFacet")


class ExtractionPlan(BaseModel):
    """Resolved per-type extraction plan.

    fields: top-level field handles, deduped in first-seen order
    fields_nested: parent field -> block type -> nested field handles
    image_transforms: field handle -> transform references
    """
    fields: List[str] = []
    fields_nested: Dict[str, Dict[str, List[str]]] = {}
    image_transforms: Dict[str, List[str]] = {}


class RelatedElement(BaseModel):
    """A linked record (entry, category, tag, user or asset).

    `transforms` holds pre-rendered transform URLs keyed by transform
    handle, as shipped in offline record dumps.
    """
    id: Optional[int] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None
    transforms: Dict[str, str] = {}


class BlockItem(BaseModel):
    """One item of a block-like field."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type_handle: Optional[str] = None
    type_name: Optional[str] = None
    title: Optional[str] = None
    values: Dict[str, Any] = {}


class Record(BaseModel):
    """A content record as seen by the mapper.

    Custom field values live in `values` and may hold relation queries,
    block items, table rows, dates or plain scalars.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int
    site_id: int
    group: Optional[str] = None
    type: str
    group_id: Optional[int] = None
    type_id: Optional[int] = None
    title: Optional[str] = None
    url: Optional[str] = None
    uri: Optional[str] = None
    slug: Optional[str] = None
    post_date: Optional[datetime] = None
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None
    attributes: Dict[str, Any] = {}
    values: Dict[str, Any] = {}
