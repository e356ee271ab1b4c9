from __future__ import annotations

import logging
from typing import Any, Callable, ClassVar, Iterable, TypeVar

from inventory_tap.config import AppConfig
from inventory_tap.errors import ExtractError, ParseFailure, SourceUnavailable
from inventory_tap.sources import Sources
from inventory_tap.variant import Row
from inventory_tap.wmi import CIMV2

T = TypeVar("T")


class Probe:
    """Fetch and normalize one inventory category.

    ``fetch`` returns the category's record, or raises ``ProbeError`` when a
    primary source cannot be opened or queried. Missing optional fields never
    fail a probe.
    """

    category: ClassVar[str] = ""

    def __init__(self, sources: Sources, config: AppConfig) -> None:
        self.sources = sources
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch(self) -> Any:
        raise NotImplementedError

    def _query(self, wql: str, namespace: str = CIMV2) -> list[dict[str, Any]]:
        return self.sources.query(wql, namespace)

    def _first(self, rows: list[Row], what: str) -> Row:
        if not rows:
            raise SourceUnavailable(f"No {what} found")
        return rows[0]

    def _rows(self, rows: Iterable[Row], build: Callable[[Row], T]) -> list[T]:
        """Build one item per row, skipping rows that fail extraction."""
        items: list[T] = []
        for row in rows:
            try:
                items.append(build(row))
            except (ExtractError, ParseFailure) as exc:
                self.logger.debug("Skipping %s row: %s", self.category, exc)
        return items
