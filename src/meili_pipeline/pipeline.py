"""
Index Rebuild Pipeline

Maps a dump of content records into search documents for every stored
index configuration, the same way a full rebuild pass would, and writes
one documents file per physical index.

Features:
- Per-site physical indexes for site-aware configurations
- Batched mapping with one transform cache per batch
- Timestamped outputs for history, or overwrite mode
- Per-record error isolation (a failing record is logged and skipped)
- Index settings payload written alongside the documents
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from . import settings
from .config import index_settings, normalize
from .images import TransformUrlBuilder
from .index_names import index_name, rebuild_site_ids
from .loaders import load_config_store, load_record_dump
from .models import IndexConfig, Record
from .resolver import matches_record, resolve_for_record
from .sources import PrecomputedTransformRenderer
from .transformers import DocumentMapper

logger = logging.getLogger(__name__)


def default_transforms() -> TransformUrlBuilder:
    """Transform builder for offline dumps: every source serves pre-rendered URLs."""
    renderer = PrecomputedTransformRenderer()
    return TransformUrlBuilder({"craft": renderer, "imager-x": renderer})


def map_records(
    mapper: DocumentMapper,
    config: IndexConfig,
    records: List[Record],
    batch_size: int = settings.BATCH_SIZE,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Map records for one physical index, in batches.

    Returns:
        (documents, failed_count)
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    documents: List[Dict[str, Any]] = []
    failed = 0
    total_batches = (len(records) + batch_size - 1) // batch_size

    for batch_idx in range(0, len(records), batch_size):
        batch = records[batch_idx:batch_idx + batch_size]
        batch_num = (batch_idx // batch_size) + 1

        # Transform lookups are only memoized for the duration of one batch
        mapper.clear_cache()

        for record in batch:
            try:
                plan = resolve_for_record(config, record)
                documents.append(mapper.map_record(record, plan, config.attributes))
            except Exception:
                logger.exception("Failed to map record %s for index %r", record.id, config.handle)
                failed += 1

        logger.debug(
            "Batch %d/%d mapped for %r (%d records)",
            batch_num,
            total_batches,
            config.handle,
            len(batch),
        )

    return documents, failed


def run_pipeline(
    config_path: Path | str = "data/indexes.json",
    input_path: Path | str = "data/records.json",
    output_dir: Path | str = "output",
    handles: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    dry_run: bool = False,
    keep_history: bool = True,
    batch_size: int = settings.BATCH_SIZE,
    transforms: Optional[TransformUrlBuilder] = None,
) -> Tuple[int, int, Dict[str, Path]]:
    """
    Run a full rebuild of every selected index from a record dump.

    Pipeline Steps:
    1. Load and normalize stored index configurations
    2. Load the record dump (records, layouts, sites)
    3. For each enabled index and each of its sites: gate records, map
       them, and write the documents file plus its index settings

    Args:
        config_path: JSON file with stored index configurations
        input_path: JSON record dump
        output_dir: Directory for all output files
        handles: Only rebuild these index handles (None = all)
        limit: Maximum records to read from the dump (None = all)
        dry_run: Map everything but write nothing
        keep_history: Timestamp output file names instead of overwriting
        batch_size: Records mapped per batch
        transforms: Image transform builder (defaults to pre-rendered URLs)

    Returns:
        Tuple of (total_records, documents_written, output_paths_dict)

    Raises:
        FileNotFoundError: If an input file doesn't exist
        json.JSONDecodeError: If an input file is invalid JSON
    """
    output_dir = Path(output_dir)
    run_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    job_start = time.time()

    # ========== STEP 1: LOAD INDEX CONFIGURATIONS ==========
    logger.info("STEP 1/3: Loading index configurations")
    try:
        stored = load_config_store(config_path)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.exception("Failed to load index configurations from %s", config_path)
        raise

    wanted = set(handles) if handles else None
    configs: List[IndexConfig] = []
    for handle, raw in stored.items():
        if wanted is not None and handle not in wanted:
            continue
        try:
            config = normalize(raw)
        except Exception:
            logger.exception("Skipping index %r: configuration could not be normalized", handle)
            continue
        if not config.enabled:
            logger.info("Skipping index %r: disabled", handle)
            continue
        configs.append(config)

    logger.info("✓ Loaded %d enabled index configurations", len(configs))

    # ========== STEP 2: LOAD RECORDS ==========
    logger.info("STEP 2/3: Loading records")
    try:
        dump = load_record_dump(input_path)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.exception("Failed to load records from %s", input_path)
        raise

    records = dump.records
    if limit is not None:
        logger.info("Applying limit: %d records", limit)
        records = records[:limit]
    total_records = len(records) + dump.skipped
    logger.info("✓ Loaded %d records (%d unreadable)", len(records), dump.skipped)

    # ========== STEP 3: MAP + WRITE PER INDEX ==========
    logger.info("STEP 3/3: Mapping records for %d indexes", len(configs))
    mapper = DocumentMapper(
        dump.layouts,
        transforms=transforms or default_transforms(),
    )

    if not dry_run:
        output_dir.mkdir(parents=True, exist_ok=True)

    output_paths: Dict[str, Path] = {}
    written = 0
    failed_total = 0
    per_index: Dict[str, int] = {}

    for config in configs:
        for site_id in rebuild_site_ids(config, dump.sites):
            name = index_name(config, site_id)
            selected = [
                record for record in records
                if record.site_id == site_id and matches_record(config, record)
            ]

            documents, failed = map_records(mapper, config, selected, batch_size=batch_size)
            failed_total += failed
            per_index[name] = len(documents)

            logger.info(
                "✓ Index %s: %d documents (%d records selected, %d failed)",
                name,
                len(documents),
                len(selected),
                failed,
            )

            if dry_run:
                continue

            suffix = f"_{run_timestamp}" if keep_history else ""
            documents_path = output_dir / f"{name}{suffix}.json"
            settings_path = output_dir / f"{name}{suffix}.settings.json"
            try:
                _write_json(documents_path, documents)
                _write_json(settings_path, index_settings(config))
            except OSError:
                logger.exception("Failed to write documents for index %s", name)
                raise

            output_paths[name] = documents_path
            written += len(documents)

    if dry_run:
        logger.info("DRY RUN: no files written")
        return total_records, sum(per_index.values()), output_paths

    if keep_history:
        _save_metadata(output_dir, run_timestamp, {
            "config_file": str(config_path),
            "input_file": str(input_path),
            "total_records": total_records,
            "documents": per_index,
            "failed": failed_total,
            "outputs": {k: str(v) for k, v in output_paths.items()},
            "duration_seconds": time.time() - job_start,
        })

    logger.debug(
        "Pipeline completed: %d records → %d documents across %d indexes",
        total_records,
        written,
        len(output_paths),
    )
    return total_records, written, output_paths


def _write_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)


def _save_metadata(output_dir: Path, run_timestamp: str, metadata: Dict[str, Any]) -> None:
    """Save pipeline run metadata."""
    meta_path = output_dir / f"run_metadata_{run_timestamp}.json"
    metadata["timestamp"] = run_timestamp

    try:
        _write_json(meta_path, metadata)
        logger.info("✓ Saved: %s", meta_path.name)
    except Exception:
        logger.warning("Failed to save metadata (non-fatal)", exc_info=True)
