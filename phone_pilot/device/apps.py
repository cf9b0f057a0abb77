"""Resolve app display names to launchable package names."""

import difflib
import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from phone_pilot.config.apps import APP_PACKAGES

logger = logging.getLogger(__name__)

MIN_FUZZY_SCORE = 5


def match_score(query: str, label: str, package: str) -> int:
    """
    Fuzzy match score of a normalized query against one app.

    Containment in the label scores 10, a label prefix 5 more, and queries of
    at least three characters add their length. A package name containing
    the query adds 2.
    """
    label = label.lower()
    score = 0
    if query and query in label:
        score += 10
        if label.startswith(query):
            score += 5
        if len(query) >= 3:
            score += len(query)
    compact = query.replace(" ", "")
    if compact and compact in package.lower():
        score += 2
    return score


class AppNameResolver:
    """
    Display name to package resolution over a catalog of (label, package) pairs.

    Exact label matches win; otherwise the best fuzzy match is accepted when it
    scores at least ``MIN_FUZZY_SCORE``. Results, misses included, are cached
    per normalized name.
    """

    def __init__(self, catalog: Optional[Iterable[Tuple[str, str]]] = None):
        if catalog is None:
            catalog = APP_PACKAGES.items()
        self._entries: List[Tuple[str, str]] = []
        self._cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        self.add_entries(catalog)

    @classmethod
    def from_device(cls, device, catalog: Optional[Dict[str, str]] = None) -> "AppNameResolver":
        """Catalog entries plus every installed package the device reports."""
        entries = list((catalog if catalog is not None else APP_PACKAGES).items())
        known = {package for _, package in entries}
        installed = device.list_packages()
        entries.extend((package, package) for package in installed if package not in known)
        logger.debug("App catalog: %d entries, %d installed packages", len(entries), len(installed))
        return cls(entries)

    @property
    def entries(self) -> List[Tuple[str, str]]:
        return list(self._entries)

    def add_entries(self, entries: Iterable[Tuple[str, str]]) -> None:
        with self._lock:
            for label, package in entries:
                if label and package and (label, package) not in self._entries:
                    self._entries.append((label, package))
            self._cache.clear()

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def resolve(self, display_name: str) -> Optional[str]:
        key = (display_name or "").strip().lower()
        if not key:
            return None
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        package = self._exact(key)
        if package is not None:
            logger.debug("Exact match: %s -> %s", display_name, package)
        else:
            package = self._fuzzy(key)
            if package is None:
                logger.warning("App not found: %s", display_name)

        with self._lock:
            self._cache[key] = package
        return package

    def label_for(self, package: str) -> Optional[str]:
        """First catalog label registered for ``package``."""
        for label, candidate in self._entries:
            if candidate == package and label != package:
                return label
        return None

    def suggest_similar(self, display_name: str, limit: int = 5) -> List[Tuple[str, str]]:
        """Apps resembling ``display_name`` as (label, package) pairs, best first."""
        key = (display_name or "").strip().lower()
        if not key or limit <= 0:
            return []
        scored = [
            (match_score(key, label, package), label, package)
            for label, package in self._entries
        ]
        ranked = [(label, package) for score, label, package in sorted(scored, key=lambda s: -s[0]) if score > 0]
        if len(ranked) < limit:
            labels = [label for label, _ in self._entries]
            for close in difflib.get_close_matches(display_name, labels, n=limit, cutoff=0.4):
                entry = next(e for e in self._entries if e[0] == close)
                if entry not in ranked:
                    ranked.append(entry)
        return ranked[:limit]

    def _exact(self, key: str) -> Optional[str]:
        for label, package in self._entries:
            if label.lower() == key or package.lower() == key:
                return package
        return None

    def _fuzzy(self, key: str) -> Optional[str]:
        best_package = None
        best_score = 0
        for label, package in self._entries:
            score = match_score(key, label, package)
            if score > best_score:
                best_score = score
                best_package = package
        if best_package is not None and best_score >= MIN_FUZZY_SCORE:
            logger.debug("Fuzzy match: %s -> %s (score %d)", key, best_package, best_score)
            return best_package
        return None
