"""
Global search over the fetched row set

Fuzzy matching uses rapidfuzz. Scores are distances in [0, 1] where 0 is an
exact match; a row is accepted when its best searchable value scores at or
below the configured threshold.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from rapidfuzz import fuzz, process, utils

from tablebuddy.config.settings import settings


def value_score(text: str, value: Any) -> float:
    """
    Distance between search text and one cell value.

    Examples:
        >>> value_score("ac", "Acme")
        0.0
    """
    similarity = fuzz.partial_ratio(text, str(value), processor=utils.default_process)
    return 1 - similarity / 100


def searchable_keys(row: Dict[str, Any], identity_field: Optional[str] = None) -> List[str]:
    """
    Keys eligible for search, read from one row.

    Nested values (and empty ones) are skipped, as is any key containing the
    identity field name.
    """
    identity = (identity_field or settings.identity_field).lower()
    return [
        key for key, value in row.items()
        if value is not None
        and not isinstance(value, (dict, list))
        and identity not in key.lower()
    ]


class SearchIndex:
    """
    Fuzzy index over a row set.

    The index is immutable: build() creates a new one whenever the row set
    changes, and query() returns positions into the rows it was built from.
    """

    def __init__(self, rows: List[Dict[str, Any]], keys: List[str], threshold: Optional[float] = None):
        self.rows = rows
        self.keys = keys
        self.threshold = settings.search_threshold if threshold is None else threshold
        self._values = [
            [str(row[key]) for key in keys if row.get(key) is not None and not isinstance(row[key], (dict, list))]
            for row in rows
        ]

    @classmethod
    def build(cls, rows: List[Dict[str, Any]], threshold: Optional[float] = None) -> "SearchIndex":
        """Index rows, taking the searchable keys from the first row only."""
        rows = list(rows or [])
        keys = searchable_keys(rows[0]) if rows else []
        logger.debug(f"Built search index over {len(rows)} row(s), keys={keys}")
        return cls(rows, keys, threshold)

    def score(self, text: str, position: int) -> Optional[float]:
        """Best distance of any searchable value in the row, or None when it has none."""
        values = self._values[position]
        if not values:
            return None
        best = process.extractOne(text, values, scorer=fuzz.partial_ratio, processor=utils.default_process)
        if best is None:
            return None
        return 1 - best[1] / 100

    def query(self, text: Optional[str]) -> List[int]:
        """
        Positions of matching rows, in row order.

        Empty text or text shorter than the minimum length matches every row.
        """
        if not text or len(text) < settings.search_min_chars:
            return list(range(len(self.rows)))

        hits = []
        for position in range(len(self.rows)):
            score = self.score(text, position)
            if score is not None and score <= self.threshold:
                hits.append(position)
        logger.debug(f"Search '{text}' matched {len(hits)} of {len(self.rows)} row(s)")
        return hits

    def filter(self, text: Optional[str]) -> List[Dict[str, Any]]:
        return [self.rows[i] for i in self.query(text)]


class Debouncer:
    """
    Collapse rapid calls into one: each call cancels the pending one and
    runs only after a quiet period.
    """

    def __init__(self, delay: Optional[float] = None):
        self.delay = settings.search_debounce_seconds if delay is None else delay
        self._task: Optional[asyncio.Task] = None

    def call(self, func: Callable[..., Any], *args: Any) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.ensure_future(self._run(func, *args))
        return self._task

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        await asyncio.sleep(self.delay)
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
