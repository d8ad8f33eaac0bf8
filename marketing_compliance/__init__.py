"""
marketing_compliance package bootstrap.

Rule-based compliance analysis for marketing and promotional copy, with
optional model augmentation and rewrite recommendations.
"""

from importlib import metadata


def get_version() -> str:
    """Return the package version if installed, else '0.0.0'."""
    try:
        return metadata.version("marketing-compliance")
    except metadata.PackageNotFoundError:  # pragma: no cover - best effort only
        return "0.0.0"


__all__ = ["get_version"]
