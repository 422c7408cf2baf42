import json
from pathlib import Path

import pytest


INDEX_STORE = {
    "news": {
        "label": "News",
        "sections": ["news"],
        "entryTypes": ["article"],
        "siteAware": True,
        "siteIds": [1],
        "enabled": True,
        "attributes": ["title"],
        "fields": {
            "article": [
                "news.article.summary",
                "news.article.heroImage",
                "news.article.categories",
                "news.article.body",
                "news.article.body.text.copy",
            ]
        },
        "filterable": ["categories"],
        "sortable": ["postDate"],
        "imageTransforms": {"news": {"article": {"heroImage": ["craft:thumb"]}}},
    },
    "news_site2": {"fields": {}},
    "pages": {"groups": ["pages"], "enabled": False},
}

RECORD_DUMP = {
    "sites": [{"id": 1}, {"id": 2}],
    "primarySiteId": 1,
    "contentTypes": {
        "article": {
            "fields": [
                {"handle": "summary"},
                {"handle": "heroImage", "kind": "relation", "relation_target": "asset"},
                {"handle": "categories", "kind": "relation", "relation_target": "generic"},
                {
                    "handle": "body",
                    "kind": "block_like",
                    "block_types": {
                        "text": {"handle": "text", "name": "Text", "fields": [{"handle": "copy"}]},
                    },
                },
            ]
        }
    },
    "records": [
        {
            "id": 101,
            "siteId": 1,
            "section": "news",
            "entryType": "article",
            "title": "First story",
            "url": "https://example.com/first",
            "uri": "news/first",
            "slug": "first",
            "postDate": "2024-03-01T10:00:00+00:00",
            "dateCreated": "2024-03-01T09:00:00+00:00",
            "dateUpdated": "2024-03-02T09:00:00+00:00",
            "fields": {
                "summary": "  A short summary  ",
                "heroImage": [
                    {
                        "id": 7,
                        "title": "Hero",
                        "url": "https://cdn.example.com/hero.jpg",
                        "transforms": {"thumb": "https://cdn.example.com/hero-thumb.jpg"},
                    }
                ],
                "categories": {"items": [], "anyLocale": [{"id": 3, "title": "World"}]},
                "body": [{"type": "text", "fields": {"copy": "Body copy"}}],
            },
        },
        {
            "id": 101,
            "siteId": 2,
            "section": "news",
            "entryType": "article",
            "title": "Première histoire",
            "slug": "premiere",
            "dateCreated": "2024-03-01T09:00:00+00:00",
            "fields": {"summary": ""},
        },
        {
            "id": 102,
            "siteId": 1,
            "section": "pages",
            "entryType": "page",
            "title": "About",
        },
        {"title": "No id, unreadable"},
    ],
}


@pytest.fixture
def index_store():
    return json.loads(json.dumps(INDEX_STORE))


@pytest.fixture
def record_dump():
    return json.loads(json.dumps(RECORD_DUMP))


@pytest.fixture
def pipeline_inputs(tmp_path: Path, index_store, record_dump):
    """Write a config store and a record dump to disk; return their paths."""
    config_path = tmp_path / "indexes.json"
    input_path = tmp_path / "records.json"
    config_path.write_text(json.dumps(index_store), encoding="utf-8")
    input_path.write_text(json.dumps(record_dump), encoding="utf-8")
    return config_path, input_path
