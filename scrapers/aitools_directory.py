"""Scraper for the "There's An AI For That" tool directory."""

from __future__ import annotations

import logging
import os
import time
from datetime import date
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from catalog import classify_pricing, logo_url_for, parse_review_count, slugify

from .utils import clean_text, extract_price, render_page

logger = logging.getLogger(__name__)

BASE = "https://theresanaiforthat.com"
DIRECTORY_URL = f"{BASE}/ai-directory/"
TOOL_LINK_SELECTOR = "a[href^='/ai/']"
MAX_TOOLS = int(os.environ.get("SCRAPER_MAX_TOOLS", 50))
DELAY_SECONDS = float(os.environ.get("SCRAPER_DELAY_SECONDS", 1.0))


class IngestionError(RuntimeError):
    """The directory could not be scraped at all."""


def _parse_tool_links(html: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    links: Dict[str, None] = {}

    for anchor in soup.select(TOOL_LINK_SELECTOR):
        href = anchor.get("href")
        if href:
            links.setdefault(urljoin(BASE, href), None)

    return list(links)


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    tag = soup.select_one(selector)
    return clean_text(tag.get_text(" ")) if tag else ""


def _select_texts(soup: BeautifulSoup, selector: str) -> List[str]:
    values = (clean_text(tag.get_text(" ")) for tag in soup.select(selector))
    return [value for value in values if value]


def _parse_tool_page(html: str, url: str = "", today: Optional[date] = None) -> Optional[Dict[str, object]]:
    """Extract one catalog record from a tool detail page.

    Returns ``None`` when the page has no tool name, which is the case for
    error pages and interstitials.
    """

    soup = BeautifulSoup(html, "html.parser")

    name = _select_text(soup, "h1")
    if not name:
        logger.warning("No tool name found on %s", url or "page")
        return None

    description = _select_text(soup, ".ai-desc")
    website_tag = soup.select_one("a.website-button[href^='http']")
    website = website_tag.get("href", "") if website_tag else ""
    pricing_text = _select_text(soup, ".ai-pricing")
    rating_text = _select_text(soup, ".ai-rating")

    return {
        "id": slugify(name),
        "name": name,
        "description": description,
        "category": _select_texts(soup, ".ai-categories a"),
        "pricing": {
            "type": classify_pricing(pricing_text),
            "price": extract_price(description),
        },
        "website": website,
        "logo": logo_url_for(website),
        "features": _select_texts(soup, ".ai-features li"),
        "launchDate": (today or date.today()).isoformat(),
        "rating": parse_review_count(rating_text) if rating_text else None,
    }


def scrape_directory(max_tools: int = MAX_TOOLS, delay: float = DELAY_SECONDS) -> List[Dict[str, object]]:
    """Scrape up to *max_tools* tools from the directory, one page at a time.

    A tool page that fails to load or parse is logged and skipped. Failing to
    read the directory listing itself raises :class:`IngestionError`.
    """

    html = render_page(DIRECTORY_URL, wait_selector=TOOL_LINK_SELECTOR)
    if not html:
        raise IngestionError(f"Could not load the directory listing at {DIRECTORY_URL}")

    links = _parse_tool_links(html)
    if not links:
        raise IngestionError(f"No tool links found at {DIRECTORY_URL}")

    links = links[:max(0, max_tools)]
    logger.info("Found %d tools to scrape", len(links))

    tools: List[Dict[str, object]] = []
    for index, url in enumerate(links, start=1):
        if delay > 0:
            time.sleep(delay)

        logger.info("Scraping %d/%d: %s", index, len(links), url)
        try:
            page_html = render_page(url, wait_selector="h1")
            if not page_html:
                logger.warning("Tool page %s returned no HTML", url)
                continue
            tool = _parse_tool_page(page_html, url)
        except Exception:
            logger.exception("Error scraping %s", url)
            continue

        if tool is not None:
            tools.append(tool)

    return tools
