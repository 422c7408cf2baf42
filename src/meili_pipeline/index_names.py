"""Index naming.

Physical index names are the configuration handle, plus ``_site<N>`` for
site-aware configurations. Nothing else is ever appended, so
`parse_index_name` can always recover ``(handle, site_id)``.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from .config import dedupe
from .interfaces import SiteRegistry
from .models import IndexConfig

logger = logging.getLogger(__name__)

SITE_SUFFIX_RE = re.compile(r"^(.*)_site(\d+)$")

# Keys where a later stored variant overrides an earlier one when non-empty
_MERGED_KEYS = (
    "groups",
    "sections",
    "types",
    "entryTypes",
    "fields",
    "imageTransforms",
    "attributes",
    "filterable",
    "sortable",
)


def index_name(config: IndexConfig, site_id: Optional[int] = None) -> str:
    """Name of the physical index for a config and optional site."""
    if config.site_aware and site_id:
        return f"{config.handle}_site{site_id}"
    return config.handle


def index_names(config: IndexConfig, site_registry: Optional[SiteRegistry] = None) -> List[str]:
    """All physical index names for a config.

    Site-aware configs get one name per configured site id, or per known
    site when none are configured.
    """
    if not config.site_aware:
        return [config.handle]

    site_ids = list(config.site_ids)
    if not site_ids and site_registry is not None:
        site_ids = list(site_registry.all_site_ids())

    return [index_name(config, site_id) for site_id in site_ids]


def parse_index_name(name: str) -> Tuple[str, Optional[int]]:
    match = SITE_SUFFIX_RE.match(name)
    if match:
        return match.group(1), int(match.group(2))
    return name, None


def rebuild_site_ids(config: IndexConfig, site_registry: SiteRegistry) -> List[int]:
    """Site ids a full rebuild of this config walks through."""
    if config.site_aware:
        return list(config.site_ids) or list(site_registry.all_site_ids())
    return [config.site_id or site_registry.primary_site_id()]


def consolidate_stored_indexes(raw: Mapping) -> Dict[str, Dict[str, Any]]:
    """Fold legacy per-site store keys into their base handle.

    Older stores kept one entry per site under ``<handle>_site<N>``. Those
    entries are merged into ``<handle>``: the site id joins ``siteIds``, the
    config becomes site-aware, and non-empty lists from later entries win.
    """
    indexes: Dict[str, Dict[str, Any]] = {}

    for key, stored in (raw or {}).items():
        if not isinstance(stored, Mapping):
            logger.debug("Skipping stored index %r: not a mapping", key)
            continue

        index = dict(stored)
        match = SITE_SUFFIX_RE.match(str(key))
        handle = index.get("handle") or (match.group(1) if match else str(key))
        index["handle"] = handle

        if match:
            site_id = int(match.group(2))
            index["siteAware"] = True
            index["siteIds"] = dedupe(list(index.get("siteIds") or []) + [site_id])
            if not index.get("siteId"):
                index["siteId"] = site_id

        if handle not in indexes:
            indexes[handle] = index
            continue

        merged = indexes[handle]
        merged["siteAware"] = bool(merged.get("siteAware")) or bool(index.get("siteAware"))
        merged["siteIds"] = dedupe(list(merged.get("siteIds") or []) + list(index.get("siteIds") or []))
        if not merged.get("siteId") and index.get("siteId"):
            merged["siteId"] = index["siteId"]

        for merged_key in _MERGED_KEYS:
            if index.get(merged_key):
                merged[merged_key] = index[merged_key]

    return {handle: index for handle, index in indexes.items() if not SITE_SUFFIX_RE.match(handle)}
