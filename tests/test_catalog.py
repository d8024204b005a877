import json

import pytest

import catalog
from catalog import (
    CatalogStore,
    classify_pricing,
    load_store,
    logo_url_for,
    normalize_record,
    parse_review_count,
    popularity,
    slugify,
)


def make_store(*raw_records):
    return CatalogStore(normalize_record(raw) for raw in raw_records)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("ChatGPT", "chatgpt"),
        ("GitHub Copilot", "github-copilot"),
        ("  Otter.ai  ", "otter-ai"),
        ("DALL·E 3", "dall-e-3"),
        ("--Hello,  World!--", "hello-world"),
        ("", ""),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("120 reviews", 120.0),
        ("1,250 reviews", 1250.0),
        ("Rated 4.5 by users", 4.5),
        (7, 7.0),
        ("no reviews yet", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_review_count(value, expected):
    assert parse_review_count(value) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Free + Paid plans", "Freemium"),
        ("Free", "Free"),
        ("Contact sales", "Contact for Pricing"),
        ("From $10/month", "Paid"),
        ("", "Paid"),
    ],
)
def test_classify_pricing(text, expected):
    assert classify_pricing(text) == expected


def test_logo_url_for_strips_www():
    assert logo_url_for("https://www.midjourney.com/home") == "https://logo.clearbit.com/midjourney.com"
    assert logo_url_for("") == ""


def test_normalize_record_accepts_scalar_and_list_categories():
    scalar = normalize_record({"id": "a", "name": "A", "description": "d", "category": "Chatbot"})
    listed = normalize_record({"id": "b", "name": "B", "description": "d", "category": ["Video", "", "Voice"]})
    empty = normalize_record({"id": "c", "name": "C", "description": "d", "category": ""})

    assert scalar.categories == ["Chatbot"]
    assert scalar.primary_category == "Chatbot"
    assert listed.categories == ["Video", "Voice"]
    assert empty.categories == []
    assert empty.primary_category == ""


def test_normalize_record_fills_defaults():
    record = normalize_record(
        {"name": "Runway", "description": "Video", "website": "https://runwayml.com", "reviews": 500}
    )

    assert record.id == "runway"
    assert record.features == []
    assert record.logo == "https://logo.clearbit.com/runwayml.com"
    assert record.reviews == "500 reviews"
    assert record.pricing.type == "Paid"
    assert record.pricing.price is None


@pytest.mark.parametrize(
    "raw,tier,price",
    [
        ({"pricing": {"type": "Freemium", "price": "$20/month"}}, "Freemium", "$20/month"),
        ({"pricing": "Free"}, "Free", None),
        ({"price": "Contact for Pricing"}, "Contact for Pricing", None),
        ({"pricing": {"type": "free and paid tiers"}}, "Freemium", None),
        ({"price": "$9/month"}, "Paid", "$9/month"),
    ],
)
def test_normalize_record_pricing_shapes(raw, tier, price):
    record = normalize_record(dict(raw, id="x", name="X"))
    assert record.pricing.type == tier
    assert record.pricing.price == price


def test_normalize_record_logs_missing_fields(caplog):
    caplog.set_level("WARNING")

    record = normalize_record({"id": "nameless", "description": "Only a description", "features": "solo"})

    assert record.name is None
    assert record.slug == ""
    assert record.features == ["solo"]
    assert any("no name" in message for message in caplog.messages)


def test_normalize_record_drops_unaddressable_entries(caplog):
    caplog.set_level("WARNING")

    assert normalize_record({"description": "who am I"}) is None
    assert normalize_record(["not", "a", "dict"]) is None
    assert len(caplog.messages) == 2


def test_normalize_record_ignores_bad_rating(caplog):
    caplog.set_level("WARNING")
    record = normalize_record({"id": "r", "name": "R", "rating": "great"})
    assert record.rating is None
    assert any("rating" in message for message in caplog.messages)


def test_popularity_prefers_reviews_then_rating():
    assert popularity(normalize_record({"id": "a", "name": "A", "reviews": "42 reviews", "rating": 4.9})) == 42.0
    assert popularity(normalize_record({"id": "b", "name": "B", "rating": 4.9})) == 4.9
    assert popularity(normalize_record({"id": "c", "name": "C"})) == 0.0


def test_store_drops_duplicate_ids(caplog):
    caplog.set_level("WARNING")
    store = make_store({"id": "dup", "name": "First"}, {"id": "dup", "name": "Second"})

    assert len(store) == 1
    assert store.get_by_id("dup").name == "First"
    assert any("Duplicate" in message for message in caplog.messages)


def test_store_categories_and_counts():
    store = make_store(
        {"id": "a", "name": "A", "category": "Video"},
        {"id": "b", "name": "B", "category": "Chatbot"},
        {"id": "c", "name": "C", "category": ["Chatbot", "Voice"]},
        {"id": "d", "name": "D", "category": ""},
    )

    assert store.get_categories() == ["Video", "Chatbot", "Voice"]
    counts = [(c.name, c.slug, c.count) for c in store.get_category_counts()]
    assert counts == [("Chatbot", "chatbot", 2), ("Video", "video", 1), ("Voice", "voice", 1)]


def test_get_by_slug_or_id_prefers_id():
    store = make_store(
        {"id": "github-copilot", "name": "Copilot Legacy"},
        {"id": "gh-2", "name": "GitHub Copilot"},
    )

    assert store.get_by_slug_or_id("github-copilot").id == "github-copilot"
    assert store.get_by_slug_or_id("copilot-legacy").id == "github-copilot"
    assert store.get_by_slug_or_id("GitHub-Copilot").id == "gh-2"
    assert store.get_by_slug_or_id("missing") is None
    assert store.get_by_slug_or_id("") is None


def test_resolve_category_accepts_url_segments():
    store = make_store({"id": "m", "name": "Midjourney", "category": "Image Generation"})

    assert store.resolve_category("Image Generation") == "Image Generation"
    assert store.resolve_category("image-generation") == "Image Generation"
    assert store.resolve_category("image generation") == "Image Generation"
    assert store.resolve_category("audio") is None
    assert store.resolve_category(None) is None


def test_shipped_snapshot_slug_round_trip():
    store = load_store(catalog.DEFAULT_CATALOG_PATH)
    assert len(store) > 0

    for record in store.get_all():
        found = store.get_by_slug_or_id(record.slug)
        assert found is not None
        assert found.slug == record.slug


def test_load_store_skips_bad_entries(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text(
        json.dumps([{"id": "ok", "name": "OK"}, "junk", {"description": "anonymous"}]),
        encoding="utf-8",
    )

    store = load_store(path)
    assert [record.id for record in store.get_all()] == ["ok"]


def test_load_store_returns_empty_store_for_unreadable_snapshot(tmp_path, caplog):
    caplog.set_level("ERROR")
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    assert len(load_store(path)) == 0
    assert len(load_store(tmp_path / "missing.json")) == 0
    assert any("Unable to load" in message for message in caplog.messages)


def test_reload_store_swaps_snapshot(tmp_path, monkeypatch):
    monkeypatch.setattr(catalog, "STORE", catalog.STORE)
    path = tmp_path / "tools.json"
    path.write_text(json.dumps([{"id": "only", "name": "Only"}]), encoding="utf-8")

    store = catalog.reload_store(path)

    assert catalog.get_store() is store
    assert [record.id for record in store.get_all()] == ["only"]
