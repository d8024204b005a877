"""Regenerate the catalog snapshot by scraping the AI tool directory.

Usage::

    python ingest.py --max-tools 100 --output data/ai_tools.json

The snapshot is written to a temporary file and swapped into place, so a
failed run leaves the previous snapshot untouched.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from catalog import CATALOG_PATH, normalize_record
from scrapers.aitools_directory import DELAY_SECONDS, MAX_TOOLS, IngestionError, scrape_directory

logger = logging.getLogger(__name__)


def write_snapshot(tools: List[Dict[str, object]], path: Path) -> None:
    """Atomically replace the snapshot at *path* with *tools*."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(tools, handle, ensure_ascii=False, indent=2)
            handle.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _drop_invalid(tools: List[Dict[str, object]]) -> List[Dict[str, object]]:
    valid = []
    seen = set()
    for tool in tools:
        record = normalize_record(tool)
        if record is None or record.id in seen:
            continue
        seen.add(record.id)
        valid.append(tool)
    return valid


def run(output: Path, max_tools: int = MAX_TOOLS, delay: float = DELAY_SECONDS) -> int:
    """Scrape the directory and write the snapshot. Returns the number of tools written."""

    tools = _drop_invalid(scrape_directory(max_tools=max_tools, delay=delay))
    if not tools:
        raise IngestionError("Scrape finished without any usable tools")

    write_snapshot(tools, output)
    logger.info("Successfully scraped %d tools and saved to %s", len(tools), output)
    return len(tools)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the AI tool directory into a catalog snapshot")
    parser.add_argument("--output", type=Path, default=CATALOG_PATH, help="Snapshot file to write")
    parser.add_argument("--max-tools", type=int, default=MAX_TOOLS, help="Maximum number of tools to scrape")
    parser.add_argument("--delay", type=float, default=DELAY_SECONDS, help="Seconds to wait between page fetches")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        run(args.output, max_tools=args.max_tools, delay=args.delay)
    except IngestionError:
        logger.exception("Ingestion failed; keeping the existing snapshot")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
