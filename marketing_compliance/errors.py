"""
Exception types raised by the compliance analysis pipeline.
"""

from __future__ import annotations


class ComplianceError(Exception):
    """Base class for all analyzer errors."""


class GuidelineLoadError(ComplianceError):
    """The guideline corpus is missing, unreadable or empty."""


class ScoringConfigurationError(ComplianceError):
    """The scoring methodology is absent or unusable at call time."""


class AnalysisError(ComplianceError):
    """A full pipeline run failed; no partial report is returned."""

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


__all__ = [
    "ComplianceError",
    "GuidelineLoadError",
    "ScoringConfigurationError",
    "AnalysisError",
]
