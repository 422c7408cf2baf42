"""Output Validation Script

Validates that a generated documents JSON file is safe to hand to the
search engine:
  - Required identity keys present and correctly typed (id, objectID, localeId)
  - objectID agrees with id and localeId
  - No key holds an empty value ("" / [] / {} / null)
  - Timestamps parse as ISO-8601

Usage:
    python -m meili_pipeline.scripts.validate_output \\
        --path output/news_site1.json

Exits with code 0 on success, 1 on validation failure, 2 on argument error.
"""

#!/usr/bin/env python
import argparse
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

OBJECT_ID_RE = re.compile(r"^(\d+)-(\d+)$")
TIMESTAMP_KEYS = ("postDate", "dateCreated", "dateUpdated")
EXPECTED_KEYS = ("url", "uri", "slug")


def load_documents(path: Path) -> List[Dict[str, Any]]:
    """Load documents from a JSON file.

    Supports:
      - a JSON array of objects
      - newline-delimited JSON (JSONL)
    """
    with path.open("r", encoding="utf-8") as f:
        content = f.read().strip()

    # Try: full file is a single JSON array
    try:
        data = json.loads(content)
        if isinstance(data, list):
            return data
        else:
            raise ValueError("Top-level JSON is not a list of documents.")
    except json.JSONDecodeError:
        pass  # fall through to JSONL

    # Try: JSON Lines (one JSON object per line)
    documents: List[Dict[str, Any]] = []
    for line_no, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse JSON on line {line_no}: {e}"
            ) from e
        if not isinstance(obj, dict):
            raise ValueError(
                f"Line {line_no} JSON is not an object (got {type(obj)})"
            )
        documents.append(obj)

    return documents


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def validate_document(
    document: Dict[str, Any],
    idx: int,
) -> Tuple[List[str], List[str]]:
    """Validate a single document.

    Returns:
        (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(document, dict):
        errors.append(
            f"[idx={idx}] document should be an object, got {type(document).__name__}"
        )
        return errors, warnings

    # --- id / localeId ---
    doc_id = document.get("id")
    if doc_id is None:
        errors.append(f"[idx={idx}] missing 'id'")
    elif isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)):
        errors.append(
            f"[idx={idx}] 'id' should be str or int, got {type(doc_id).__name__}"
        )

    locale_id = document.get("localeId")
    if locale_id is None:
        errors.append(f"[idx={idx}] missing 'localeId'")

    # --- objectID ---
    object_id = document.get("objectID")
    if object_id is None:
        errors.append(f"[idx={idx}] missing 'objectID'")
    elif not isinstance(object_id, str):
        errors.append(
            f"[idx={idx}] 'objectID' should be a string, got {type(object_id).__name__}"
        )
    else:
        match = OBJECT_ID_RE.match(object_id)
        if not match:
            errors.append(f"[idx={idx}] 'objectID' {object_id!r} is not '<id>-<localeId>'")
        elif doc_id is not None and locale_id is not None and (
            match.group(1) != str(doc_id) or match.group(2) != str(locale_id)
        ):
            errors.append(
                f"[idx={idx}] 'objectID' {object_id!r} disagrees with id={doc_id!r} localeId={locale_id!r}"
            )

    # --- no empty values ---
    for key, value in document.items():
        if is_empty_value(value):
            errors.append(f"[idx={idx}] key '{key}' holds an empty value {value!r}")

    # --- timestamps ---
    for key in TIMESTAMP_KEYS:
        value = document.get(key)
        if value is None:
            warnings.append(f"[idx={idx}] missing timestamp '{key}'")
            continue
        try:
            datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            errors.append(f"[idx={idx}] '{key}' is not ISO-8601 (got {value!r})")

    # Could be legitimately missing (e.g. records without URLs) -> warning only
    for key in EXPECTED_KEYS:
        if key not in document:
            warnings.append(f"[idx={idx}] document missing expected field '{key}'")

    return errors, warnings


def main(argv: list[str] | None = None) -> None:
    """Validate a documents output file.

    Raises:
        SystemExit: With code 0 on success, 1 on validation failure
    """
    parser = argparse.ArgumentParser(
        description="Validate search documents JSON output."
    )
    parser.add_argument(
        "--path",
        type=str,
        required=True,
        help="Path to a documents file written by the pipeline",
    )
    args = parser.parse_args(argv)

    path = Path(args.path)

    try:
        documents = load_documents(path)
    except Exception as e:
        print(f"FAILED TO LOAD FILE: {e}")
        raise SystemExit(1)

    total = len(documents)
    all_errors: List[str] = []
    all_warnings: List[str] = []

    seen_object_ids = set()
    for idx, document in enumerate(documents):
        errors, warnings = validate_document(document, idx)
        all_errors.extend(errors)
        all_warnings.extend(warnings)

        object_id = document.get("objectID") if isinstance(document, dict) else None
        if object_id is not None:
            if object_id in seen_object_ids:
                all_errors.append(f"[idx={idx}] duplicate objectID {object_id!r}")
            seen_object_ids.add(object_id)

    if all_errors:
        print("VALIDATION FAILED:\n")
        for err in all_errors:
            print(err)
        print(f"\nTotal errors: {len(all_errors)}")
        if all_warnings:
            print(f"Total warnings: {len(all_warnings)}")
        raise SystemExit(1)

    # Success path
    print("VALIDATION PASSED")
    print(f"Total documents: {total}")
    if all_warnings:
        print("\nWarnings (non-fatal):")
        for w in all_warnings:
            print(w)
        print(f"\nTotal warnings: {len(all_warnings)}")

    # Explicit success exit code so tests can assert on it
    raise SystemExit(0)


if __name__ == "__main__":
    main()
