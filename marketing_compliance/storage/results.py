"""
Result persistence boundary and an append-only JSONL implementation.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from marketing_compliance.reporting.serialize import serialize_result


class ResultStore(Protocol):
    """Collaborator that receives completed analyses; never read back here."""

    def save_analysis(self, result: Any, document_id: str, actor_id: str) -> None:
        ...

    def update_document_status(self, document_id: str, status: str) -> None:
        ...


@dataclass(slots=True)
class ResultRecord:
    """One JSONL line per persisted analysis or status change."""

    timestamp: str
    event_type: str
    document_id: str
    actor_id: Optional[str] = None
    status: Optional[str] = None
    score: Optional[int] = None
    compliance_level: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonlResultStore:
    """Append-only JSONL store for analysis results and document status updates."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def save_analysis(self, result: Any, document_id: str, actor_id: str) -> None:
        breakdown = result.report.score_breakdown
        self._append(
            ResultRecord(
                timestamp=_now(),
                event_type="analysis",
                document_id=document_id,
                actor_id=actor_id,
                score=breakdown.total_score,
                compliance_level=breakdown.compliance_level.value,
                payload=serialize_result(result),
            )
        )

    def update_document_status(self, document_id: str, status: str) -> None:
        self._append(
            ResultRecord(timestamp=_now(), event_type="status", document_id=document_id, status=status)
        )

    def _append(self, record: ResultRecord) -> None:
        line = json.dumps(asdict(record), ensure_ascii=False)
        with self._lock, self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")


__all__ = ["ResultStore", "ResultRecord", "JsonlResultStore"]
