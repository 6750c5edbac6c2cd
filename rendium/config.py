"""Global configuration constants for rendium."""

from __future__ import annotations

import os
from pathlib import Path

# Crawler-style agent: many sites serve pre-rendered meta tags to crawlers.
USER_AGENT: str = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

# Wall-clock bound (seconds) for a single metadata fetch.
DEFAULT_FETCH_TIMEOUT: float = float(os.getenv("RENDIUM_FETCH_TIMEOUT", "8.0"))

# Worker threads used for background enrichment after a bookmark is created.
DEFAULT_ENRICH_WORKERS: int = 4

# Browser-generated container names that never become user folders.
# Matching is exact and case-sensitive.
SYSTEM_FOLDER_NAMES: frozenset[str] = frozenset(
    {"Bookmarks bar", "Other bookmarks", "Mobile bookmarks", "Bookmarks"},
)

DEFAULT_STORE_PATH: Path = Path.home() / ".rendium" / "store.json"
