"""
JSON-friendly serialisation of analysis results.

Result objects are frozen dataclasses holding enums, datetimes and full Rule
records; the helpers here flatten them to primitives so they can be written
as JSON, JSONL or fed to the HTML template.
"""

from __future__ import annotations

from dataclasses import is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from marketing_compliance.guidelines.models import Rule


def _to_isoformat(value: datetime) -> str:
    """Return an ISO 8601 string, marking naive values as UTC."""
    if value.tzinfo:
        return value.isoformat()
    return value.isoformat() + "Z"


def _serialize(obj: Any, *, compact_rules: bool = True) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return _to_isoformat(obj)
    if isinstance(obj, Rule) and compact_rules:
        # Violations embed their rule; keep references short
        return {"rule_id": obj.rule_id, "title": obj.title, "category": obj.category}
    if is_dataclass(obj):
        return {
            key: _serialize(getattr(obj, key), compact_rules=compact_rules)
            for key in obj.__dataclass_fields__
        }
    if isinstance(obj, dict):
        return {key: _serialize(value, compact_rules=compact_rules) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(item, compact_rules=compact_rules) for item in obj]
    return obj


def serialize_result(result: Any) -> Dict[str, Any]:
    """Serialise an AnalysisResult, QuickCheckResult or ComplianceReport."""
    return _serialize(result)


def serialize_rule(rule: Rule) -> Dict[str, Any]:
    return _serialize(rule, compact_rules=False)


__all__ = ["serialize_result", "serialize_rule"]
