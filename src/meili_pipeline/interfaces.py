"""Collaborator interfaces.

The engine reads content types, sites, record values, transform renderers
and stored configuration through these protocols and never talks to a
CMS, a search engine or the network itself.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .models import FieldDescriptor, Record, RelatedElement


class FieldLayoutProvider(Protocol):
    def get_fields(self, type_handle: str, group_handle: Optional[str] = None) -> List[FieldDescriptor]:
        """Custom fields on the layout of a content type, in layout order."""
        ...


class SiteRegistry(Protocol):
    def all_site_ids(self) -> List[int]:
        ...

    def primary_site_id(self) -> int:
        ...


@runtime_checkable
class RelationQuery(Protocol):
    """Lazy collection of linked records."""

    locale_scoped: bool

    def all(self, any_locale: bool = False) -> Sequence[RelatedElement]:
        ...


class RecordAccessor(Protocol):
    def get_attribute(self, record: Record, name: str) -> Any:
        ...

    def get_field_value(self, record: Record, handle: str) -> Any:
        ...


class ImageTransformRenderer(Protocol):
    """Renders named transforms for one transform source.

    `resolve` looks up a transform's configuration by handle (None when
    unknown); its result is memoized by the caller for a mapping pass.
    """

    def resolve(self, handle: str) -> Optional[Any]:
        ...

    def render(self, asset: RelatedElement, transform: Any) -> Optional[str]:
        ...


class ConfigStore(Protocol):
    def load(self) -> Dict[str, Dict[str, Any]]:
        """Raw stored index configurations keyed by store key."""
        ...
