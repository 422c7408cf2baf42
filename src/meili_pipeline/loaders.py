"""Data Loader Module

Loads the two pipeline inputs from JSON files: the stored index
configurations and a dump of content records (with the content type
layouts and sites they belong to). Supports the container shapes the
stores have used over time.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict

from .index_names import consolidate_stored_indexes
from .interfaces import ConfigStore
from .models import Record
from .sources import InMemoryLayoutProvider, StaticSiteRegistry, layouts_from_dict, record_from_dict

logger = logging.getLogger(__name__)


class RecordDump(BaseModel):
    """Everything read from a record dump file."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    records: List[Record]
    layouts: InMemoryLayoutProvider
    sites: StaticSiteRegistry
    skipped: int = 0


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


class JsonConfigStore:
    """Read-only index configuration store backed by a JSON file.

    Supports flexible input formats:
      - Map of store key to config: {"news": {...}, "news_site2": {...}}
      - List of configs carrying their own handle: [{"handle": "news", ...}]
      - Either of the above wrapped in an 'indexes' key
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Dict[str, Any]]:
        data = _read_json(self.path)
        if isinstance(data, Mapping) and "indexes" in data:
            data = data["indexes"]

        if isinstance(data, list):
            data = {
                str(item.get("handle")): item
                for item in data
                if isinstance(item, Mapping) and item.get("handle")
            }
        if not isinstance(data, Mapping):
            logger.warning("Config store %s holds no index configurations", self.path)
            return {}
        return dict(data)


def load_config_store(store: ConfigStore | str | Path) -> Dict[str, Dict[str, Any]]:
    """Load stored index configurations keyed by handle.

    Accepts any `ConfigStore`, or a path to a JSON store file. Legacy
    per-site keys are folded into their base handle.

    Raises:
        FileNotFoundError: If file does not exist
        json.JSONDecodeError: If file is not valid JSON
    """
    if isinstance(store, (str, Path)):
        store = JsonConfigStore(store)
    return consolidate_stored_indexes(store.load())


def load_record_dump(path: str | Path) -> RecordDump:
    """Load a record dump.

    Supports flexible input formats:
      - Direct list of records: [{...}, {...}, ...]
      - Object with 'records' (or 'entries') plus optional 'contentTypes'
        and 'sites': {"sites": [1, 2], "contentTypes": {...}, "records": [...]}

    Records that cannot be parsed are logged and counted as skipped.

    Raises:
        FileNotFoundError: If file does not exist
        json.JSONDecodeError: If file is not valid JSON
    """
    data = _read_json(Path(path))
    if isinstance(data, list):
        data = {"records": data}

    layouts = layouts_from_dict(data.get("contentTypes") or {})

    raw_sites = data.get("sites") or []
    site_ids = [s.get("id") if isinstance(s, Mapping) else s for s in raw_sites]
    sites = StaticSiteRegistry(site_ids or [1], primary=data.get("primarySiteId"))

    records: List[Record] = []
    skipped = 0
    for idx, raw in enumerate(data.get("records") or data.get("entries") or []):
        try:
            records.append(record_from_dict(raw, layouts))
        except Exception:
            logger.warning("Skipping unreadable record at position %d", idx, exc_info=True)
            skipped += 1

    return RecordDump(records=records, layouts=layouts, sites=sites, skipped=skipped)
