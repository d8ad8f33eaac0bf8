"""
Guideline repository: loads the rule corpus and serves indexed lookups.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from marketing_compliance.errors import GuidelineLoadError
from marketing_compliance.guidelines.models import (
    GuidelineDocument,
    GuidelineMetadata,
    GuidelineSet,
    Rule,
    ScoringMethodology,
    Severity,
    build_guideline_set,
)
from marketing_compliance.storage.cache import CacheBackend, TTLCache
from marketing_compliance.utils.checksum import sha256_of_file

logger = logging.getLogger("marketing_compliance.guidelines")

RULES_CACHE_KEY = "marketing_rules_all"


@dataclass(slots=True)
class CitationCheck:
    """Outcome of citation URL format validation."""

    valid: int
    invalid: List[str] = field(default_factory=list)


class GuidelineRepository:
    """Owns the GuidelineSet and the id/category/keyword indices built over it."""

    def __init__(
        self,
        source_path: Path,
        *,
        cache: Optional[CacheBackend] = None,
        rules_cache_ttl: int = 3600,
        expected_checksum: Optional[str] = None,
    ):
        self.source_path = Path(source_path)
        self.cache: CacheBackend = cache if cache is not None else TTLCache(default_ttl=rules_cache_ttl)
        self.rules_cache_ttl = rules_cache_ttl
        self.expected_checksum = expected_checksum
        self._lock = threading.Lock()
        self._guidelines: Optional[GuidelineSet] = None
        self._rules_index: Dict[str, Rule] = {}
        self._category_index: Dict[str, List[Rule]] = {}
        self._keyword_index: Dict[str, List[Rule]] = {}
        self._load()

    # ------------------------------------------------------------------ loading

    def _load(self) -> GuidelineSet:
        guidelines = self._read_source()
        rules_index: Dict[str, Rule] = {}
        category_index: Dict[str, List[Rule]] = {}
        keyword_index: Dict[str, List[Rule]] = {}

        for category, rules in guidelines.rules_by_category.items():
            category_index[category] = list(rules)
            for rule in rules:
                rules_index[rule.rule_id] = rule
                for keyword in (*rule.violation_keywords, *rule.prohibited_claims):
                    bucket = keyword_index.setdefault(keyword.lower(), [])
                    if rule not in bucket:
                        bucket.append(rule)

        if not rules_index:
            raise GuidelineLoadError(f"Guideline corpus at {self.source_path} contains no rules")

        with self._lock:
            self._guidelines = guidelines
            self._rules_index = rules_index
            self._category_index = category_index
            self._keyword_index = keyword_index

        logger.info(
            "Guidelines loaded: version=%s rules=%d categories=%d keywords=%d",
            guidelines.metadata.version,
            len(rules_index),
            len(category_index),
            len(keyword_index),
        )
        if guidelines.metadata.total_rules and guidelines.metadata.total_rules != len(rules_index):
            logger.warning(
                "Guideline metadata declares %d rules but %d were loaded",
                guidelines.metadata.total_rules,
                len(rules_index),
            )
        return guidelines

    def _read_source(self) -> GuidelineSet:
        if not self.source_path.exists():
            raise GuidelineLoadError(f"Marketing guidelines file not found at: {self.source_path}")

        checksum = sha256_of_file(self.source_path)
        if self.expected_checksum and checksum != self.expected_checksum:
            raise GuidelineLoadError(
                f"Guideline corpus checksum mismatch for {self.source_path}: "
                f"expected {self.expected_checksum}, got {checksum}"
            )

        try:
            payload = json.loads(self.source_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise GuidelineLoadError(f"Could not read guidelines at {self.source_path}: {exc}") from exc

        try:
            document = GuidelineDocument.model_validate(payload)
        except ValidationError as exc:
            raise GuidelineLoadError(f"Invalid guideline document at {self.source_path}: {exc}") from exc

        return build_guideline_set(document, checksum=checksum)

    def reload(self) -> bool:
        """Re-read the corpus and rebuild indices. Returns True when the content changed."""
        logger.info("Reloading marketing guidelines from %s", self.source_path)
        previous = self._guidelines.metadata.checksum if self._guidelines else None
        guidelines = self._load()
        self.cache.delete(RULES_CACHE_KEY)
        return guidelines.metadata.checksum != previous

    # ------------------------------------------------------------------ lookups

    @property
    def guidelines(self) -> GuidelineSet:
        if self._guidelines is None:  # pragma: no cover - constructor always loads
            raise GuidelineLoadError("Marketing guidelines not loaded")
        return self._guidelines

    def all_rules(self) -> List[Rule]:
        return list(self._rules_index.values())

    def cached_rules(self) -> List[Rule]:
        """Rules served through the TTL cache; any cache failure falls back to the live index."""
        try:
            cached = self.cache.get(RULES_CACHE_KEY)
            if cached:
                logger.debug("Serving marketing rules from cache")
                return list(cached)
            rules = self.all_rules()
            self.cache.set(RULES_CACHE_KEY, tuple(rules), self.rules_cache_ttl)
            return rules
        except Exception as exc:
            logger.error("Rules cache error, serving live index: %s", exc)
            return self.all_rules()

    def rules_by_category(self, category: str) -> List[Rule]:
        return list(self._category_index.get(category, []))

    def rule_by_id(self, rule_id: str) -> Optional[Rule]:
        return self._rules_index.get(rule_id)

    def rules_by_keywords(self, keywords: Iterable[str]) -> List[Rule]:
        matched: Dict[str, Rule] = {}
        for keyword in keywords:
            for rule in self._keyword_index.get(keyword.lower(), []):
                matched.setdefault(rule.rule_id, rule)
        return list(matched.values())

    def rules_by_context(self, context: str) -> List[Rule]:
        tokens = [token for token in context.lower().split() if token]
        if not tokens:
            return []
        return [
            rule
            for rule in self.all_rules()
            if any(token in rule.marketing_context.lower() for token in tokens)
        ]

    def rules_by_severity(self, severity: Severity) -> List[Rule]:
        return [rule for rule in self.all_rules() if rule.severity == severity]

    def search(self, text: str) -> List[Rule]:
        """Substring search over the concatenated text fields of every rule."""
        needle = text.strip().lower()
        if not needle:
            return []
        matches: List[Rule] = []
        for rule in self.all_rules():
            searchable = " ".join(
                [
                    rule.title,
                    rule.description,
                    rule.content,
                    rule.marketing_context,
                    *rule.violation_keywords,
                    *rule.required_elements,
                ]
            ).lower()
            if needle in searchable:
                matches.append(rule)
        return matches

    # ---------------------------------------------------------- corpus sections

    def categories(self) -> List[str]:
        return list(self._category_index)

    def high_risk_phrases(self) -> List[str]:
        return list(self.guidelines.patterns.high_risk_phrases)

    def medium_risk_phrases(self) -> List[str]:
        return list(self.guidelines.patterns.medium_risk_phrases)

    def required_disclaimers(self) -> List[str]:
        return list(self.guidelines.patterns.required_disclaimers)

    def scoring_methodology(self) -> Optional[ScoringMethodology]:
        return self.guidelines.scoring

    def metadata(self) -> GuidelineMetadata:
        return self.guidelines.metadata

    def validate_citation_urls(self) -> CitationCheck:
        """Check that every citation URL is well-formed (scheme and host present)."""
        result = CitationCheck(valid=0)
        for rule in self.all_rules():
            url = rule.citation.url
            if not url:
                continue
            parsed = urlparse(url)
            if parsed.scheme in {"http", "https"} and parsed.netloc:
                result.valid += 1
            else:
                result.invalid.append(f"{rule.rule_id}: {url}")
        logger.info("Citation URL validation completed: valid=%d invalid=%d", result.valid, len(result.invalid))
        return result


__all__ = ["GuidelineRepository", "CitationCheck", "RULES_CACHE_KEY"]
