"""Pass number allocation.

Numbers come from a per-scope counter that is bumped inside the storage layer's
own serialization primitive (a locked counter row in MySQL, the store lock in
memory). Callers never compute "max + 1" themselves.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from ..core.constants import DEFAULT_PASS_NO_PREFIX, DEFAULT_PASS_NO_WIDTH
from ..core.exceptions import PassNumberExhausted


@dataclass(frozen=True)
class PassNumberAllocator:
    prefix: str = DEFAULT_PASS_NO_PREFIX
    width: int = DEFAULT_PASS_NO_WIDTH

    def format(self, seq: int) -> str:
        if seq <= 0:
            raise ValueError("sequence values start at 1")
        digits = str(int(seq))
        if len(digits) > self.width:
            # Wider numbers would sort before narrower ones.
            raise PassNumberExhausted(f"Pass number space exhausted for width {self.width}")
        return f"{self.prefix}-{digits.zfill(self.width)}"

    def next_in_transaction(self, cur, *, scope: str) -> tuple[int, str]:
        """Bump the MySQL counter row for `scope` on an open transaction.

        The row stays locked until the caller commits, so concurrent issuers queue
        behind each other and observe strictly increasing values.
        """

        cur.execute(
            """
            INSERT INTO gate_pass_counters(scope, last_value)
            VALUES(%s, LAST_INSERT_ID(1))
            ON DUPLICATE KEY UPDATE last_value = LAST_INSERT_ID(last_value + 1)
            """,
            (scope,),
        )
        cur.execute("SELECT LAST_INSERT_ID() AS seq")
        row = cur.fetchone()
        seq = int(row["seq"] if isinstance(row, dict) else row[0])
        return seq, self.format(seq)


class InMemorySequence:
    """Per-scope counters for the in-memory ledger."""

    def __init__(self):
        self._lock = threading.Lock()
        self._values: dict[str, int] = {}

    def next_value(self, scope: str) -> int:
        with self._lock:
            value = self._values.get(scope, 0) + 1
            self._values[scope] = value
            return value
