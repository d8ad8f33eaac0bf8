"""
Analysis pipeline: detection, model augmentation, scoring and recommendations.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar, Union

from marketing_compliance.compliance.detector import ViolationDetector
from marketing_compliance.compliance.scorer import ComplianceScorer
from marketing_compliance.compliance.types import RiskLevel
from marketing_compliance.config.settings import AnalyzerSettings
from marketing_compliance.errors import AnalysisError
from marketing_compliance.guidelines.repository import GuidelineRepository
from marketing_compliance.recommendations.generator import RecommendationGenerator
from marketing_compliance.services.insights import ModelInsightsAdapter
from marketing_compliance.services.models import LLMClient
from marketing_compliance.services.types import (
    AnalysisResult,
    BatchItem,
    BatchItemResult,
    QuickCheckResult,
    QuickViolation,
    ResultMetadata,
    SetupStatus,
)
from marketing_compliance.storage.cache import CacheBackend, CacheStats, TTLCache, make_analysis_key
from marketing_compliance.storage.results import JsonlResultStore, ResultStore

logger = logging.getLogger("marketing_compliance.pipeline")

ANALYSIS_TYPE = "marketing_compliance"
ANALYZED_STATUS = "analyzed"
QUICK_CHECK_LIMIT = 5

T = TypeVar("T")

BatchInput = Union[BatchItem, Mapping[str, Any], Tuple[str, str], Tuple[str, str, Optional[str]]]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _timed(stage: str, timings: List[Tuple[str, int]], func: Callable[[], T]) -> T:
    """Run one stage, recording its duration and tagging failures with the stage name."""
    started = time.perf_counter()
    try:
        return func()
    except AnalysisError:
        raise
    except Exception as exc:
        raise AnalysisError(f"Marketing analysis failed during {stage}: {exc}", stage=stage) from exc
    finally:
        timings.append((stage, _elapsed_ms(started)))


@dataclass(slots=True)
class _InflightKey:
    """Per-key lock shared by every caller currently computing or waiting on that key."""

    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


def _item_id(item: BatchInput, index: int) -> str:
    """Best-effort id for an item that may not coerce; falls back to its position."""
    if isinstance(item, BatchItem):
        return item.id
    if isinstance(item, Mapping) and item.get("id") is not None:
        return str(item["id"])
    if isinstance(item, (tuple, list)) and item:
        return str(item[0])
    return str(index)


def _coerce_item(item: BatchInput) -> BatchItem:
    if isinstance(item, BatchItem):
        return item
    if isinstance(item, Mapping):
        if item.get("id") is None:
            raise ValueError("Batch item is missing an 'id'")
        return BatchItem(
            id=str(item["id"]),
            text=str(item.get("text", item.get("content", ""))),
            context=item.get("context"),
        )
    if not isinstance(item, (tuple, list)) or len(item) < 2:
        raise ValueError(f"Batch item must be a BatchItem, a mapping or an (id, text[, context]) tuple: {item!r}")
    identifier, text, *rest = item
    return BatchItem(id=str(identifier), text=text, context=rest[0] if rest else None)


class AnalysisPipeline:
    """Runs the four analysis stages with caching and optional persistence."""

    def __init__(
        self,
        repository: GuidelineRepository,
        insights: ModelInsightsAdapter,
        *,
        detector: Optional[ViolationDetector] = None,
        scorer: Optional[ComplianceScorer] = None,
        generator: Optional[RecommendationGenerator] = None,
        cache: Optional[CacheBackend] = None,
        result_store: Optional[ResultStore] = None,
        analysis_cache_ttl: int = 1800,
        batch_workers: int = 1,
    ):
        self.repository = repository
        self.insights = insights
        self.detector = detector or ViolationDetector(repository)
        self.scorer = scorer or ComplianceScorer(repository)
        self.generator = generator or RecommendationGenerator()
        self.cache: CacheBackend = cache if cache is not None else TTLCache(default_ttl=analysis_cache_ttl)
        self.result_store = result_store
        self.analysis_cache_ttl = analysis_cache_ttl
        self.batch_workers = max(1, batch_workers)
        self._inflight: Dict[str, _InflightKey] = {}
        self._inflight_guard = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: AnalyzerSettings,
        *,
        client: Optional[LLMClient] = None,
        cache: Optional[CacheBackend] = None,
        result_store: Optional[ResultStore] = None,
    ) -> "AnalysisPipeline":
        """Wire every collaborator from settings; raises GuidelineLoadError when the corpus is unusable."""
        repository = GuidelineRepository(settings.guidelines_path, rules_cache_ttl=settings.rules_cache_ttl)
        insights = ModelInsightsAdapter(
            settings.model,
            client=client,
            high_risk_phrases=repository.high_risk_phrases(),
        )
        if result_store is None and settings.results_log_path is not None:
            result_store = JsonlResultStore(settings.results_log_path)
        return cls(
            repository,
            insights,
            cache=cache,
            result_store=result_store,
            analysis_cache_ttl=settings.analysis_cache_ttl,
            batch_workers=settings.batch_workers,
        )

    # ----------------------------------------------------------------- analyze

    def analyze(
        self,
        text: str,
        context: Optional[str] = None,
        *,
        actor_id: str,
        document_id: Optional[str] = None,
    ) -> AnalysisResult:
        started = time.perf_counter()
        key = self.cache_key(text, context)
        logger.info(
            "Starting marketing analysis: actor=%s document=%s length=%d context=%s",
            actor_id,
            document_id,
            len(text),
            bool(context),
        )

        cached = self._from_cache(key, started, actor_id=actor_id, document_id=document_id)
        if cached is None:
            with self._key_lock(key):
                cached = self._from_cache(key, started, actor_id=actor_id, document_id=document_id)
                if cached is None:
                    result = self._run(text, context, actor_id=actor_id, document_id=document_id, started=started)
                    self._persist(result, document_id, actor_id)
                    self.cache.set(key, result, self.analysis_cache_ttl)
                    self._log_completion(result)
                    return result

        logger.info("Serving marketing analysis from cache: actor=%s document=%s", actor_id, document_id)
        self._persist(cached, document_id, actor_id)
        return cached

    def cache_key(self, text: str, context: Optional[str] = None) -> str:
        # Guideline checksum is part of the key so a reload never serves stale reports
        checksum = self.repository.metadata().checksum or self.repository.metadata().version
        return make_analysis_key(text, context, {"guidelines": checksum})

    def _run(
        self,
        text: str,
        context: Optional[str],
        *,
        actor_id: str,
        document_id: Optional[str],
        started: float,
    ) -> AnalysisResult:
        timings: List[Tuple[str, int]] = []
        try:
            analysis = _timed("rule_based_analysis", timings, lambda: self.detector.analyze(text, context))
            insights = _timed(
                "model_analysis",
                timings,
                lambda: self.insights.analyze(text, analysis.applied_rules, analysis.violations),
            )
            report = _timed("compliance_scoring", timings, lambda: self.scorer.generate_report(analysis))

            def recommend():
                rewrite = None
                if analysis.violations or analysis.missing_elements:
                    rewrite = self.insights.rewrite(text, analysis.violations, analysis.missing_elements)
                return self.generator.generate(
                    text,
                    analysis.violations,
                    analysis.missing_elements,
                    insights=insights,
                    rewrite=rewrite,
                )

            recommendations = _timed("recommendation_generation", timings, recommend)
        except AnalysisError as exc:
            logger.error(
                "Marketing analysis failed: actor=%s document=%s stage=%s elapsed_ms=%d error=%s",
                actor_id,
                document_id,
                exc.stage,
                _elapsed_ms(started),
                exc,
            )
            raise

        return AnalysisResult(
            report=report,
            insights=insights,
            recommendations=recommendations,
            metadata=ResultMetadata(
                actor_id=actor_id,
                analysis_type=ANALYSIS_TYPE,
                processing_ms=_elapsed_ms(started),
                rules_applied=len(analysis.applied_rules),
                cache_used=False,
                document_id=document_id,
                stage_ms=tuple(timings),
            ),
        )

    def _from_cache(
        self, key: str, started: float, *, actor_id: str, document_id: Optional[str]
    ) -> Optional[AnalysisResult]:
        try:
            cached = self.cache.get(key)
        except Exception as exc:
            logger.error("Analysis cache read failed, recomputing: %s", exc)
            return None
        if not isinstance(cached, AnalysisResult):
            return None
        metadata = replace(
            cached.metadata,
            actor_id=actor_id,
            document_id=document_id,
            cache_used=True,
            processing_ms=_elapsed_ms(started),
        )
        return replace(cached, metadata=metadata)

    def _persist(self, result: AnalysisResult, document_id: Optional[str], actor_id: str) -> None:
        if not document_id or self.result_store is None:
            return
        try:
            self.result_store.save_analysis(result, document_id, actor_id)
            self.result_store.update_document_status(document_id, ANALYZED_STATUS)
        except Exception as exc:
            raise AnalysisError(
                f"Failed to persist analysis for document {document_id}: {exc}", stage="persistence"
            ) from exc

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        # The entry stays registered until its last holder or waiter leaves
        with self._inflight_guard:
            entry = self._inflight.setdefault(key, _InflightKey())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._inflight_guard:
                entry.holders -= 1
                if entry.holders == 0 and self._inflight.get(key) is entry:
                    del self._inflight[key]

    def _log_completion(self, result: AnalysisResult) -> None:
        breakdown = result.report.score_breakdown
        logger.info(
            "Marketing analysis completed: document=%s score=%d level=%s violations=%d model_violations=%d "
            "fixes=%d elapsed_ms=%d",
            result.metadata.document_id,
            breakdown.total_score,
            breakdown.compliance_level.value,
            len(result.report.violations),
            len(result.insights.violations),
            len(result.recommendations.fixes),
            result.metadata.processing_ms,
        )

    # ------------------------------------------------------------- quick check

    def quick_check(self, text: str, context: Optional[str] = None) -> QuickCheckResult:
        """Rule-only screening; never raises."""
        started = time.perf_counter()
        try:
            analysis = self.detector.analyze(text, context)
            top = tuple(
                QuickViolation(text=v.text, rule=v.rule.title, severity=v.severity.value)
                for v in analysis.violations[:QUICK_CHECK_LIMIT]
            )
            result = QuickCheckResult(
                score=analysis.overall_score,
                risk_level=analysis.metadata.risk_level,
                top_violations=top,
                elapsed_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.error("Quick compliance check failed: %s", exc)
            return QuickCheckResult(
                score=50,
                risk_level=RiskLevel.MEDIUM,
                top_violations=(QuickViolation(text="Analysis failed", rule="System Error", severity="high"),),
                elapsed_ms=_elapsed_ms(started),
            )
        logger.info("Quick compliance check completed: score=%d risk=%s", result.score, result.risk_level.value)
        return result

    # ------------------------------------------------------------------- batch

    def batch_analyze(
        self,
        items: Iterable[BatchInput],
        *,
        actor_id: str,
        max_workers: Optional[int] = None,
    ) -> List[BatchItemResult]:
        """One result per item, in input order; item failures are captured, not raised."""
        batch = list(enumerate(items))
        workers = max(1, max_workers if max_workers is not None else self.batch_workers)
        logger.info("Starting batch marketing analysis: actor=%s items=%d workers=%d", actor_id, len(batch), workers)

        def run(entry: Tuple[int, BatchInput]) -> BatchItemResult:
            index, raw = entry
            item_id = _item_id(raw, index)
            try:
                item = _coerce_item(raw)
                item_id = item.id
                result = self.analyze(item.text, item.context, actor_id=actor_id, document_id=item.id)
            except Exception as exc:
                logger.error("Batch item analysis failed: id=%s error=%s", item_id, exc)
                return BatchItemResult(id=item_id, error=str(exc))
            return BatchItemResult(id=item_id, result=result)

        if workers == 1 or len(batch) <= 1:
            results = [run(item) for item in batch]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(run, batch))

        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "Batch marketing analysis completed: items=%d succeeded=%d failed=%d",
            len(results),
            len(results) - failed,
            failed,
        )
        return results

    # ------------------------------------------------------------------ status

    def validate_setup(self) -> SetupStatus:
        issues: List[str] = []
        count = 0
        version = ""
        try:
            count = len(self.repository.cached_rules())
            version = self.repository.metadata().version
            if count == 0:
                issues.append("No marketing guidelines loaded")
            if self.repository.scoring_methodology() is None:
                issues.append("Scoring methodology missing from guideline corpus")
        except Exception as exc:
            issues.append(f"Guidelines loading error: {exc}")

        model_ready = self.insights.is_ready()
        if not model_ready:
            issues.append(f"Model client not configured for mode '{self.insights.client.api_mode}'")

        return SetupStatus(
            ready=not issues,
            guideline_count=count,
            guideline_version=version,
            model_ready=model_ready,
            issues=issues,
        )

    def cache_stats(self) -> Optional[CacheStats]:
        stats = getattr(self.cache, "stats", None)
        return stats() if callable(stats) else None

    def reload_guidelines(self) -> bool:
        changed = self.repository.reload()
        self.insights.high_risk_phrases = tuple(self.repository.high_risk_phrases())
        return changed


__all__ = ["AnalysisPipeline", "ANALYSIS_TYPE", "ANALYZED_STATUS"]
