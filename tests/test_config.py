import pytest

from meili_pipeline.config import (
    flatten_legacy_image_transforms,
    index_settings,
    leaf_attributes,
    normalize,
    normalize_filterable,
    normalize_for_display,
    normalize_image_transforms,
    parse_builder_submission,
    parse_list,
    transform_presets_from_config,
)
from meili_pipeline.models import IndexConfig


# --- parse_list ----------------------------------------------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        (["a", " b ", "", None, "a"], ["a", "b"]),
        ("title, slug ,,title", ["title", "slug"]),
        (None, []),
        (42, []),
    ],
)
def test_parse_list(value, expected):
    assert parse_list(value) == expected


# --- parse_builder_submission --------------------------------------------------


def test_builder_submission_coerces_and_dedupes():
    """Submitted lists are stringified, emptied entries dropped, order kept."""
    form = {
        "groups": ["news", "", "news", 5],
        "types": ["article", None, "article"],
        "fields": {"article": ["news.article.title", "", "news.article.title"]},
    }

    groups, types, fields, transforms = parse_builder_submission(form, None)

    assert groups == ["news", "5"]
    assert types == ["article"]
    assert fields == {"article": ["news.article.title"]}
    assert transforms == {}


def test_builder_submission_falls_back_to_previous_config():
    previous = {
        "groups": ["news"],
        "types": ["article"],
        "fields": {"article": ["news.article.title"]},
        "imageTransforms": {"news.article.heroImage": ["craft:thumb"]},
    }

    groups, types, fields, transforms = parse_builder_submission({"groups": ["press"]}, previous)

    assert groups == ["press"]
    assert types == ["article"]
    assert fields == {"article": ["news.article.title"]}
    # No tokens submitted: previous map is kept
    assert transforms == {"news.article.heroImage": ["craft:thumb"]}


def test_builder_submission_accepts_legacy_keys():
    groups, types, _, _ = parse_builder_submission(
        {"sections": ["news"], "entryTypes": ["article"]},
        None,
    )

    assert groups == ["news"]
    assert types == ["article"]


def test_builder_submission_transform_tokens_replace_previous_map():
    """Any submitted transform token replaces the whole previous map."""
    previous = IndexConfig(image_transforms={"press.article.heroImage": ["craft:hero"]})
    form = {
        "imageTransforms": [
            "news.article.heroImage::craft:thumb",
            "news.article.heroImage::craft:thumb",
            "news.article.heroImage::imager-x:wide::2x",
            "missing-ref::",
            "::craft:orphan",
            "no-separator",
        ]
    }

    _, _, _, transforms = parse_builder_submission(form, previous)

    assert transforms == {
        "news.article.heroImage": ["craft:thumb", "imager-x:wide::2x"],
    }


# --- image transforms ----------------------------------------------------------


def test_flatten_legacy_image_transforms():
    nested = {
        "news": {
            "article": {
                "heroImage": ["craft:thumb", "craft:hero"],
                "gallery": ["imager-x:square"],
            }
        },
        "press": {"release": {"logo": ["craft:thumb"]}},
    }

    assert flatten_legacy_image_transforms(nested) == {
        "news.article.heroImage": ["craft:thumb", "craft:hero"],
        "news.article.gallery": ["imager-x:square"],
        "press.release.logo": ["craft:thumb"],
    }


def test_normalize_image_transforms_keeps_flat_map():
    flat = {"news.article.heroImage": ["craft:thumb", "craft:thumb"]}

    assert normalize_image_transforms(flat) == {"news.article.heroImage": ["craft:thumb"]}


def test_normalize_image_transforms_flattens_legacy_map():
    nested = {"news": {"article": {"heroImage": ["craft:thumb"]}}}

    assert normalize_image_transforms(nested) == {"news.article.heroImage": ["craft:thumb"]}


@pytest.mark.parametrize("value", [None, [], "craft:thumb", {}])
def test_normalize_image_transforms_non_mapping_is_empty(value):
    assert normalize_image_transforms(value) == {}


# --- filterable / leaf attributes ----------------------------------------------


def test_normalize_filterable_fans_out_bare_handles():
    """A bare handle expands to every selected path ending with it, sorted."""
    config = {
        "fields": {
            "article": ["news.article.category", "news.article.title"],
            "release": ["press.release.category"],
        },
        "filterable": ["category", "news.article.title", "category", "unknown"],
    }

    assert normalize_filterable(config) == [
        "news.article.category",
        "news.article.title",
        "press.release.category",
    ]


def test_normalize_filterable_empty_input():
    assert normalize_filterable({"fields": {}, "filterable": None}) == []


def test_leaf_attributes_dedupes_in_order():
    paths = ["news.article.category", "press.release.category", "postDate", "news.article.title"]

    assert leaf_attributes(paths) == ["category", "postDate", "title"]


# --- normalize -----------------------------------------------------------------


def test_normalize_applies_defaults():
    config = normalize({"handle": "news-index"})

    assert config.handle == "news-index"
    assert config.label == "News index"
    assert config.types == ["*"]
    assert config.fields == {}
    assert config.image_transforms == {}
    assert config.enabled is False
    assert config.max_values_per_facet == 500


def test_normalize_empty_types_becomes_wildcard():
    assert normalize({"handle": "news", "types": []}).types == ["*"]


def test_normalize_coerces_stored_values():
    raw = {
        "handle": "news",
        "sections": ["news", "news"],
        "entryTypes": ["article"],
        "siteAware": "1",
        "siteId": "2",
        "siteIds": ["1", "2", "0", "2"],
        "enabled": "false",
        "attributes": "title, slug",
        "sortable": ["postDate"],
        "fields": {"article": ["news.article.title", "news.article.category"]},
        "filterable": ["category"],
        "imageTransforms": {"news": {"article": {"heroImage": ["craft:thumb"]}}},
        "maxValuesPerFacet": "100",
    }

    config = normalize(raw)

    assert config.groups == ["news"]
    assert config.types == ["article"]
    assert config.site_aware is True
    assert config.site_id == 2
    assert config.site_ids == [1, 2]
    assert config.enabled is False
    assert config.attributes == ["title", "slug"]
    assert config.sortable == ["postDate"]
    assert config.filterable == ["news.article.category"]
    assert config.image_transforms == {"news.article.heroImage": ["craft:thumb"]}
    assert config.max_values_per_facet == 100


def test_normalize_is_stable_on_its_own_output():
    raw = {
        "handle": "news",
        "groups": ["news"],
        "fields": {"article": ["news.article.category"]},
        "filterable": ["category"],
        "enabled": True,
    }

    once = normalize(raw)
    twice = normalize(once)

    assert twice == once


def test_index_config_dumps_stored_key_names():
    dumped = normalize({"handle": "news", "siteAware": True}).model_dump(by_alias=True)

    assert dumped["siteAware"] is True
    assert "imageTransforms" in dumped
    assert "siteIds" in dumped


def test_normalize_for_display_keeps_unknown_keys():
    raw = {
        "handle": "news",
        "sections": ["news"],
        "siteAware": 0,
        "siteIds": ["3", 3],
        "custom": {"x": 1},
    }

    display = normalize_for_display(raw)

    assert display["groups"] == ["news"]
    assert "sections" not in display
    assert display["siteAware"] is False
    assert display["siteIds"] == [3]
    assert display["custom"] == {"x": 1}
    assert display["filterable"] == []


# --- index settings / presets --------------------------------------------------


def test_index_settings_uses_leaf_attribute_names():
    config = normalize({
        "handle": "news",
        "fields": {"article": ["news.article.category"]},
        "filterable": ["category"],
        "sortable": ["postDate"],
    })

    assert index_settings(config) == {
        "primaryKey": "objectID",
        "filterableAttributes": ["category"],
        "sortableAttributes": ["postDate"],
        "faceting": {"maxValuesPerFacet": 500},
    }


def test_transform_presets_from_config():
    renderer_config = {
        "transformPresets": {"thumb": {}, "hero": {}},
        "namedTransforms": {"hero": {}},
        "square": {},
    }

    assert transform_presets_from_config(renderer_config, ["legacy"]) == [
        "legacy",
        "thumb",
        "hero",
        "square",
    ]
