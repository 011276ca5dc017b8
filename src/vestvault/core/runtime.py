"""
Execution environment for vestvault contracts.

Supplies the two guarantees the release-schedule engine relies on:

- a clock that never moves backwards, and
- atomic transactions: every participant registered with the environment is
  snapshotted when the outermost transaction begins and restored if any
  exception escapes it. Nested transactions (for example a collaborator calling
  back into an instance during a transfer) join the outermost one.

Snapshots are eager: every outermost transaction copies the state of every
registered participant, including every instance a factory has created. The
cost of a transaction therefore grows linearly with the number of deployed
instances. That is acceptable for the in-process reference setup; a backend
holding many schedules should snapshot participants lazily on first write.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List

from vestvault.core.interfaces import Transactional

logger = logging.getLogger(__name__)


class ExecutionEnvironment:
    def __init__(self, time_provider: Callable[[], int] | None = None) -> None:
        self._time_provider = time_provider or (lambda: int(time.time()))
        self._last_time = 0
        self._participants: List[Transactional] = []
        self._depth = 0
        logger.debug(
            "ExecutionEnvironment initialized with deterministic time provider: %s",
            bool(time_provider),
        )

    def now(self) -> int:
        """Current timestamp, clamped so it is never lower than a previous reading."""
        timestamp = self._time_provider()
        try:
            timestamp = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc
        if timestamp < self._last_time:
            logger.warning(
                "Clock moved backwards (%s < %s); holding at last timestamp",
                timestamp,
                self._last_time,
            )
            return self._last_time
        self._last_time = timestamp
        return timestamp

    def register(self, participant: Transactional) -> None:
        """Include ``participant`` in every subsequent transaction snapshot."""
        if not isinstance(participant, Transactional):
            raise TypeError(f"{type(participant).__name__} does not implement snapshot/restore")
        if any(p is participant for p in self._participants):
            return
        self._participants.append(participant)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run the enclosed block as one transaction.

        Participants registered inside the block are dropped again on rollback.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        participants = list(self._participants)
        snapshots: List[Dict[str, Any]] = [p.snapshot() for p in participants]
        self._depth = 1
        try:
            yield
        except BaseException:
            for participant, state in zip(participants, snapshots):
                participant.restore(state)
            self._participants = participants
            logger.info(
                "Transaction rolled back",
                extra={"event": "runtime.rollback", "participants": len(participants)},
            )
            raise
        finally:
            self._depth = 0
