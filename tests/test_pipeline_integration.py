# tests/test_pipeline_integration.py

"""
End-to-end tests for the rebuild pipeline: config store + record dump in,
one documents file (plus index settings) per physical index out.
"""

import json
from pathlib import Path

import pytest

import run_pipeline
from meili_pipeline.pipeline import run_pipeline as run_pipeline_fn
from meili_pipeline.scripts.validate_output import main as validate_main


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_run_pipeline_writes_one_file_per_site_index(pipeline_inputs, tmp_path):
    config_path, input_path = pipeline_inputs
    output_dir = tmp_path / "output"

    total, written, paths = run_pipeline_fn(
        config_path=config_path,
        input_path=input_path,
        output_dir=output_dir,
        keep_history=False,
    )

    assert total == 4  # three readable records plus one unreadable
    assert written == 2
    assert set(paths) == {"news_site1", "news_site2"}
    assert paths["news_site1"] == output_dir / "news_site1.json"

    site1 = read_json(paths["news_site1"])
    assert site1 == [
        {
            "title": "First story",
            "summary": "A short summary",
            "heroImage": [
                {
                    "url": "https://cdn.example.com/hero.jpg",
                    "imageTransforms": {"craft:thumb": "https://cdn.example.com/hero-thumb.jpg"},
                }
            ],
            "categories": ["World"],
            "body": "Body copy",
            "id": 101,
            "objectID": "101-1",
            "localeId": 1,
            "url": "https://example.com/first",
            "uri": "news/first",
            "slug": "first",
            "postDate": "2024-03-01T10:00:00+00:00",
            "dateCreated": "2024-03-01T09:00:00+00:00",
            "dateUpdated": "2024-03-02T09:00:00+00:00",
        }
    ]

    site2 = read_json(paths["news_site2"])
    assert len(site2) == 1
    assert site2[0]["objectID"] == "101-2"
    assert "summary" not in site2[0]
    assert "url" not in site2[0]

    settings = read_json(output_dir / "news_site1.settings.json")
    assert settings == {
        "primaryKey": "objectID",
        "filterableAttributes": ["categories"],
        "sortableAttributes": ["postDate"],
        "faceting": {"maxValuesPerFacet": 500},
    }

    # No history: no metadata file either
    assert not list(output_dir.glob("run_metadata_*.json"))


def test_run_pipeline_keeps_history(pipeline_inputs, tmp_path):
    config_path, input_path = pipeline_inputs
    output_dir = tmp_path / "output"

    _, _, paths = run_pipeline_fn(config_path=config_path, input_path=input_path, output_dir=output_dir)

    assert paths["news_site1"].name.startswith("news_site1_")
    metadata_files = list(output_dir.glob("run_metadata_*.json"))
    assert len(metadata_files) == 1

    metadata = read_json(metadata_files[0])
    assert metadata["documents"] == {"news_site1": 1, "news_site2": 1}
    assert metadata["failed"] == 0


def test_run_pipeline_index_filter_and_limit(pipeline_inputs, tmp_path):
    config_path, input_path = pipeline_inputs

    total, written, paths = run_pipeline_fn(
        config_path=config_path,
        input_path=input_path,
        output_dir=tmp_path / "output",
        handles=["pages"],
        limit=1,
        keep_history=False,
    )

    # "pages" is disabled, so nothing is rebuilt
    assert total == 2
    assert written == 0
    assert paths == {}


def test_dry_run_writes_nothing(pipeline_inputs, tmp_path):
    config_path, input_path = pipeline_inputs
    output_dir = tmp_path / "output"

    total, mapped, paths = run_pipeline_fn(
        config_path=config_path,
        input_path=input_path,
        output_dir=output_dir,
        dry_run=True,
    )

    assert total == 4
    assert mapped == 2
    assert paths == {}
    assert not output_dir.exists()


def test_cli_output_passes_validation(pipeline_inputs, tmp_path, capsys):
    """The CLI's output files should satisfy the standalone validator."""
    config_path, input_path = pipeline_inputs
    output_dir = tmp_path / "output"

    exit_code = run_pipeline.main(
        [
            "--config",
            str(config_path),
            "--input",
            str(input_path),
            "--output-dir",
            str(output_dir),
            "--no-history",
            "--batch-size",
            "1",
        ]
    )
    assert exit_code == 0

    for name in ("news_site1", "news_site2"):
        # validate_output.main raises SystemExit on both success and failure
        with pytest.raises(SystemExit) as excinfo:
            validate_main(["--path", str(output_dir / f"{name}.json")])
        assert excinfo.value.code == 0, f"validator failed for {name}"

    captured = capsys.readouterr()
    assert "VALIDATION PASSED" in captured.out
