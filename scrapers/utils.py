import logging
import os
import re
from typing import Optional

import requests
from playwright.sync_api import sync_playwright

logger = logging.getLogger(__name__)

# Use a full desktop browser header to avoid basic bot blocking
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/113.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

TIMEOUT_SECONDS = float(os.environ.get("SCRAPER_TIMEOUT_SECONDS", 60))

PRICE_PATTERN = re.compile(r"\$[0-9]+(\.[0-9]{2})?(/month|/year)?")


def safe_get(url, params=None):
    """Fetch *url* and return the text body, or an empty string on failure."""
    try:
        resp = requests.get(url, params=params, headers=HEADERS, timeout=TIMEOUT_SECONDS)
        resp.raise_for_status()
        return resp.text
    except Exception:
        logger.warning("GET %s failed", url, exc_info=True)
        return ""


def render_page(url, wait_selector=None):
    """Return the HTML of *url* after client-side scripts have run.

    A headless Chromium loads the page and waits for the network to settle
    (and for *wait_selector*, when given). If the browser cannot be started
    or the navigation fails, the page is fetched with :func:`safe_get`.
    """

    timeout_ms = int(TIMEOUT_SECONDS * 1000)
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True, args=["--no-sandbox"])
            try:
                page = browser.new_page(user_agent=HEADERS["User-Agent"])
                page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                if wait_selector:
                    page.wait_for_selector(wait_selector, timeout=timeout_ms)
                return page.content()
            finally:
                browser.close()
    except Exception:
        logger.warning("Rendering %s in the browser failed, falling back to GET", url, exc_info=True)

    return safe_get(url)


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def extract_price(text: Optional[str]) -> Optional[str]:
    """Return the first dollar amount in *text*, e.g. ``"$20/month"``."""
    if not text:
        return None
    match = PRICE_PATTERN.search(text)
    return match.group(0) if match else None
