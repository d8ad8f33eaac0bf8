"""
Rule-based compliance detection and scoring.

The detector matches marketing text against guideline rules; the scorer turns
those findings into a cited, scored report.
"""

from .detector import ViolationDetector, risk_level_for
from .scorer import ComplianceScorer
from .types import (
    ComplianceAnalysis,
    ComplianceLevel,
    ComplianceReport,
    RiskLevel,
    ScoreBreakdown,
    ViolationKind,
    ViolationMatch,
    compliance_level_for,
)

__all__ = [
    "ComplianceAnalysis",
    "ComplianceLevel",
    "ComplianceReport",
    "ComplianceScorer",
    "RiskLevel",
    "ScoreBreakdown",
    "ViolationDetector",
    "ViolationKind",
    "ViolationMatch",
    "compliance_level_for",
    "risk_level_for",
]
