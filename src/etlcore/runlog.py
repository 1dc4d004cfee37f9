# src/etlcore/runlog.py
from __future__ import annotations

import os
import socket
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class RunStatus(str, Enum):
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunLog:
    """
    In-memory record of one ETL operation (e.g. one extraction).
    Owned by a single task; not meant to be shared between concurrent calls.
    """
    operation: str
    operation_type: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    parent_id: Optional[str] = None
    status: RunStatus = RunStatus.STARTED
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    elapsed_ms: Optional[int] = None
    total_items: Optional[int] = None
    processed_items: Optional[int] = None
    progress_percentage: Optional[float] = None
    items_per_second: Optional[float] = None
    source_uri: Optional[str] = None
    destination_uri: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    hostname: str = field(default_factory=socket.gethostname)
    process_id: int = field(default_factory=os.getpid)
    _t0: float = field(default_factory=time.monotonic, init=False, repr=False, compare=False)

    @classmethod
    def start(
        cls,
        operation: str,
        operation_type: str = "extract",
        *,
        source_uri: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> "RunLog":
        run = cls(operation=operation, operation_type=operation_type, source_uri=source_uri, parent_id=parent_id)
        run.started_at = run.created_at
        return run

    @property
    def finished(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED)

    def mark_in_progress(self) -> None:
        self.status = RunStatus.IN_PROGRESS
        if self.started_at is None:
            self.started_at = _now()
            self._t0 = time.monotonic()

    def update_progress(self, processed: int, total: int) -> None:
        self.processed_items = processed
        self.total_items = total
        self.progress_percentage = processed / max(total, 1) * 100.0
        elapsed = max(time.monotonic() - self._t0, 1e-6)
        self.items_per_second = processed / elapsed

    def mark_completed(self) -> None:
        self._finish(RunStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self.error_message = error
        self._finish(RunStatus.FAILED)

    def mark_cancelled(self) -> None:
        self._finish(RunStatus.CANCELLED)

    def _finish(self, status: RunStatus) -> None:
        self.status = status
        self.completed_at = _now()
        self.elapsed_ms = int((time.monotonic() - self._t0) * 1000)

    def add_tag(self, tag: str) -> None:
        self.tags.append(tag)

    def set_source_destination(self, source: Optional[str], destination: Optional[str]) -> None:
        self.source_uri = source
        self.destination_uri = destination

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view: enums and datetimes as strings."""
        out: Dict[str, Any] = {}
        for name, value in self.__dict__.items():
            if name.startswith("_"):
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            out[name] = value
        return out
