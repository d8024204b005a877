"""Static AI tool catalog loaded from the JSON snapshot written by ``ingest.py``."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "ai_tools.json"
CATALOG_PATH = Path(os.environ.get("CATALOG_PATH", str(DEFAULT_CATALOG_PATH)))

PricingType = Literal["Free", "Freemium", "Paid", "Contact for Pricing"]
PRICING_TYPES = ("Free", "Freemium", "Paid", "Contact for Pricing")

LOGO_SERVICE = "https://logo.clearbit.com"

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")


class Pricing(BaseModel):
    """Coarse pricing tier plus the literal price text when one was found."""

    model_config = ConfigDict(frozen=True)

    type: PricingType = "Paid"
    price: Optional[str] = None


class ToolRecord(BaseModel):
    """A single catalog entry.

    Fields that the source data does not always carry are explicitly
    optional so the query pipeline can tell "absent" apart from "empty".
    ``categories`` is always a list; ``primary_category`` is the scalar view
    used by cards and breadcrumbs.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    pricing: Pricing = Field(default_factory=Pricing)
    website: str = ""
    logo: str = ""
    features: List[str] = Field(default_factory=list)
    launch_date: Optional[str] = None
    reviews: Optional[str] = None
    rating: Optional[float] = None
    emoji: Optional[str] = None

    @property
    def primary_category(self) -> str:
        return self.categories[0] if self.categories else ""

    @property
    def slug(self) -> str:
        return slugify(self.name) if self.name else ""

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["category"] = self.primary_category
        data["slug"] = self.slug
        return data


class CategoryCount(BaseModel):
    name: str
    slug: str
    count: int


def slugify(text: Optional[str]) -> str:
    """Return the URL-safe slug for *text* (``"Chat GPT 4!"`` -> ``"chat-gpt-4"``)."""

    return _SLUG_PATTERN.sub("-", (text or "").lower()).strip("-")


def logo_url_for(website: Optional[str]) -> str:
    """Derive a logo URL from the hostname of *website*."""

    if not website:
        return ""
    try:
        host = urlparse(website).hostname or ""
    except ValueError:
        return ""
    host = host.replace("www.", "", 1)
    return f"{LOGO_SERVICE}/{host}" if host else ""


def classify_pricing(text: Optional[str]) -> PricingType:
    """Map free-form pricing text onto one of the four pricing tiers."""

    lowered = (text or "").lower()
    if "free" in lowered and "paid" in lowered:
        return "Freemium"
    if "free" in lowered:
        return "Free"
    if "contact" in lowered:
        return "Contact for Pricing"
    return "Paid"


def parse_review_count(value: Any) -> Optional[float]:
    """Return the first number embedded in *value*.

    ``"1,200 reviews"`` gives ``1200.0`` and ``"4.5 stars"`` gives ``4.5``.
    Numeric input is returned as a float. ``None`` means the value was
    missing or held no number.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    match = _NUMBER_PATTERN.search(value.replace(",", ""))
    return float(match.group(0)) if match else None


def popularity(record: ToolRecord) -> float:
    """Popularity signal used for sorting: review count, then rating, then 0."""

    reviews = parse_review_count(record.reviews)
    if reviews is not None:
        return reviews
    if record.rating is not None:
        return record.rating
    return 0.0


def _optional_text(raw: Dict[str, Any], key: str, record_key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        logger.warning("Record %s: field %r is not text, ignoring it", record_key, key)
        return None
    value = value.strip()
    return value or None


def _string_list(value: Any, field: str, record_key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        logger.warning("Record %s: field %r is not a list, ignoring it", record_key, field)
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _normalize_pricing(raw: Dict[str, Any]) -> Pricing:
    pricing = raw.get("pricing")
    price = raw.get("price")

    if isinstance(pricing, dict):
        tier = pricing.get("type")
        literal = pricing.get("price")
    elif isinstance(pricing, str):
        tier, literal = pricing, None
    else:
        tier, literal = None, None

    if isinstance(price, str) and price.strip():
        if tier is None and price.strip() in PRICING_TYPES:
            tier = price.strip()
        elif literal is None:
            literal = price.strip()

    if tier not in PRICING_TYPES:
        tier = classify_pricing(tier if isinstance(tier, str) else literal)
    if not isinstance(literal, str) or not literal.strip():
        literal = None

    return Pricing(type=tier, price=literal)


def _normalize_reviews(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return f"{value:g} reviews"
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _normalize_rating(value: Any, record_key: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Record %s: unparsable rating %r", record_key, value)
        return None


def normalize_record(raw: Any) -> Optional[ToolRecord]:
    """Convert a raw snapshot entry into a :class:`ToolRecord`.

    This is the only place where loosely typed input is tolerated. Missing or
    wrong-typed fields become explicit absent values. Entries that carry
    neither an ``id`` nor a ``name`` cannot be addressed and are dropped.
    """

    if not isinstance(raw, dict):
        logger.warning("Skipping catalog entry that is not an object: %r", raw)
        return None

    raw_id = raw.get("id")
    record_key = str(raw_id) if raw_id not in (None, "") else repr(raw.get("name"))

    name = _optional_text(raw, "name", record_key)
    tool_id = str(raw_id).strip() if raw_id not in (None, "") else slugify(name)
    if not tool_id:
        logger.warning("Skipping catalog entry without id or name: %r", raw)
        return None

    if name is None:
        logger.warning("Record %s has no name", tool_id)
    description = _optional_text(raw, "description", tool_id)
    if description is None:
        logger.warning("Record %s has no description", tool_id)

    categories = _string_list(
        raw.get("categories", raw.get("category")), "category", tool_id
    )
    website = _optional_text(raw, "website", tool_id) or ""
    logo = _optional_text(raw, "logo", tool_id) or logo_url_for(website)

    return ToolRecord(
        id=tool_id,
        name=name,
        description=description,
        categories=categories,
        pricing=_normalize_pricing(raw),
        website=website,
        logo=logo,
        features=_string_list(raw.get("features"), "features", tool_id),
        launch_date=_optional_text(raw, "launchDate", tool_id)
        or _optional_text(raw, "launch_date", tool_id),
        reviews=_normalize_reviews(raw.get("reviews")),
        rating=_normalize_rating(raw.get("rating"), tool_id),
        emoji=_optional_text(raw, "emoji", tool_id),
    )


class CatalogStore:
    """Read-only view over one catalog snapshot."""

    def __init__(self, records: Iterable[ToolRecord] = ()):
        unique: List[ToolRecord] = []
        seen = set()
        for record in records:
            if record.id in seen:
                logger.warning("Duplicate tool id %s, keeping the first entry", record.id)
                continue
            seen.add(record.id)
            unique.append(record)

        self._records: Tuple[ToolRecord, ...] = tuple(unique)
        self._by_id = {record.id: record for record in self._records}

    def __len__(self) -> int:
        return len(self._records)

    def get_all(self) -> List[ToolRecord]:
        return list(self._records)

    def get_categories(self) -> List[str]:
        """Distinct category labels in first-seen order."""

        seen: Dict[str, None] = {}
        for record in self._records:
            for category in record.categories:
                seen.setdefault(category, None)
        return list(seen)

    def get_category_counts(self) -> List[CategoryCount]:
        """Categories with their tool counts, most populated first."""

        counts: Dict[str, int] = {}
        for record in self._records:
            for category in dict.fromkeys(record.categories):
                counts[category] = counts.get(category, 0) + 1

        ordered = sorted(counts.items(), key=lambda pair: -pair[1])
        return [
            CategoryCount(name=name, slug=slugify(name), count=count)
            for name, count in ordered
        ]

    def get_by_id(self, tool_id: str) -> Optional[ToolRecord]:
        return self._by_id.get(tool_id)

    def get_by_slug_or_id(self, key: Optional[str]) -> Optional[ToolRecord]:
        if not key:
            return None

        record = self._by_id.get(key)
        if record is not None:
            return record

        wanted = key.lower()
        return next((r for r in self._records if r.name and r.slug == wanted), None)

    def resolve_category(self, value: Optional[str]) -> Optional[str]:
        """Return the stored label for a category name or URL segment.

        ``"image-generation"``, ``"image generation"`` and
        ``"Image Generation"`` all resolve to ``"Image Generation"``.
        """

        if not value:
            return None

        categories = self.get_categories()
        if value in categories:
            return value

        lowered = value.lower()
        wanted_slug = slugify(value)
        for category in categories:
            if category.lower() == lowered or slugify(category) == wanted_slug:
                return category
        return None


def load_records(path: Path) -> List[ToolRecord]:
    with Path(path).open("r", encoding="utf-8") as handle:
        raw = json.load(handle)

    if not isinstance(raw, list):
        raise ValueError(f"Catalog snapshot {path} must contain a JSON array")

    records = []
    for entry in raw:
        record = normalize_record(entry)
        if record is not None:
            records.append(record)
    return records


def load_store(path: Optional[Path] = None) -> CatalogStore:
    """Load a snapshot into a store; an unreadable snapshot yields an empty one."""

    path = Path(path or CATALOG_PATH)
    try:
        records = load_records(path)
    except Exception:
        logger.exception("Unable to load catalog snapshot from %s", path)
        return CatalogStore()

    logger.info("Loaded %d tools from %s", len(records), path)
    return CatalogStore(records)


STORE: CatalogStore = load_store(CATALOG_PATH)


def get_store() -> CatalogStore:
    return STORE


def reload_store(path: Optional[Path] = None) -> CatalogStore:
    """Replace the module-level snapshot with a freshly loaded one."""

    global STORE
    STORE = load_store(path)
    return STORE
