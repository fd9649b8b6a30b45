"""Summary of a query execution."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass
class QueryResult:
    """Number of rows affected by one or more statements."""

    rows_affected: int = 0

    def extend(self, results: Iterable[QueryResult]) -> None:
        """Add the row counts of ``results`` to this one."""
        self.rows_affected += sum(result.rows_affected for result in results)