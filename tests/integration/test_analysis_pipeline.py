import json
import threading
import time

import pytest

from marketing_compliance.compliance.types import ComplianceLevel, RiskLevel
from marketing_compliance.config.settings import AnalyzerSettings, ModelConfig
from marketing_compliance.errors import AnalysisError
from marketing_compliance.guidelines.repository import GuidelineRepository
from marketing_compliance.services.pipeline import ANALYZED_STATUS, AnalysisPipeline
from marketing_compliance.services.types import BatchItem
from marketing_compliance.storage.results import JsonlResultStore

GUARANTEE_COPY = "Guaranteed loans! No documentation needed."


class RecordingStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []
        self.statuses = []

    def save_analysis(self, result, document_id, actor_id):
        if self.fail:
            raise OSError("disk full")
        self.saved.append((document_id, actor_id, result.score))

    def update_document_status(self, document_id, status):
        self.statuses.append((document_id, status))


def test_full_analysis_runs_all_stages(build_pipeline, fake_client):
    client = fake_client()
    pipeline = build_pipeline(client)

    result = pipeline.analyze(GUARANTEE_COPY, actor_id="analyst-1")

    assert result.score == 28
    assert result.report.score_breakdown.compliance_level == ComplianceLevel.NON_COMPLIANT
    assert result.insights.score == 35
    assert result.insights.fallback_used is False
    assert result.recommendations.comparisons[0].before == "Guaranteed"
    assert result.recommendations.additional_suggestions == ("Show APR",)
    assert result.recommendations.alternatives[-1].version == "AI-Enhanced Compliant"
    assert result.metadata.cache_used is False
    assert result.metadata.rules_applied == 3
    assert result.metadata.analysis_type == "marketing_compliance"
    assert [stage for stage, _ in result.metadata.stage_ms] == [
        "rule_based_analysis",
        "model_analysis",
        "compliance_scoring",
        "recommendation_generation",
    ]
    assert len(client.prompts) == 2


def test_clean_copy_skips_rewrite(build_pipeline, fake_client):
    client = fake_client()
    pipeline = build_pipeline(client)

    result = pipeline.analyze("Apply for a personal loan. Terms and conditions apply. APR 12%.", actor_id="a")

    assert result.score == 100
    assert result.report.score_breakdown.compliance_level == ComplianceLevel.COMPLIANT
    assert result.report.violations == ()
    assert len(client.prompts) == 1
    assert len(result.recommendations.alternatives) == 2


def test_repeat_analysis_served_from_cache(build_pipeline, fake_client):
    client = fake_client()
    pipeline = build_pipeline(client)

    first = pipeline.analyze(GUARANTEE_COPY, "loan", actor_id="analyst-1")
    second = pipeline.analyze(GUARANTEE_COPY, "loan", actor_id="analyst-2")

    assert second.metadata.cache_used is True
    assert second.metadata.actor_id == "analyst-2"
    assert second.report == first.report
    assert second.recommendations == first.recommendations
    assert len(client.prompts) == 2
    assert pipeline.cache_stats().hits >= 1


def test_different_context_is_a_cache_miss(build_pipeline):
    pipeline = build_pipeline()
    pipeline.analyze(GUARANTEE_COPY, actor_id="a")
    assert pipeline.analyze(GUARANTEE_COPY, "loan", actor_id="a").metadata.cache_used is False


def test_model_failure_degrades_to_fallback(build_pipeline, fake_client):
    pipeline = build_pipeline(fake_client(error=RuntimeError("connection refused")))

    result = pipeline.analyze(GUARANTEE_COPY, actor_id="analyst-1")

    assert result.insights.fallback_used is True
    assert result.insights.status == ComplianceLevel.NEEDS_REVIEW
    assert result.score == 28
    assert len(result.recommendations.alternatives) == 2
    assert result.recommendations.fallback_used is False


def test_stage_failure_raises_analysis_error(write_corpus, corpus_data, build_pipeline):
    repo = GuidelineRepository(write_corpus(corpus_data(scoring=False), name="bare.json"))
    pipeline = build_pipeline(repo=repo)

    with pytest.raises(AnalysisError) as excinfo:
        pipeline.analyze(GUARANTEE_COPY, actor_id="analyst-1")
    assert excinfo.value.stage == "rule_based_analysis"


def test_results_persisted_before_caching(build_pipeline):
    store = RecordingStore()
    pipeline = build_pipeline(result_store=store)

    pipeline.analyze(GUARANTEE_COPY, actor_id="analyst-1", document_id="doc-7")
    pipeline.analyze(GUARANTEE_COPY, actor_id="analyst-1")

    assert store.saved == [("doc-7", "analyst-1", 28)]
    assert store.statuses == [("doc-7", ANALYZED_STATUS)]


def test_persistence_failure_is_not_cached(build_pipeline):
    pipeline = build_pipeline(result_store=RecordingStore(fail=True))

    with pytest.raises(AnalysisError) as excinfo:
        pipeline.analyze(GUARANTEE_COPY, actor_id="a", document_id="doc-1")
    assert excinfo.value.stage == "persistence"
    assert pipeline.cache.get(pipeline.cache_key(GUARANTEE_COPY)) is None


def test_concurrent_identical_requests_compute_once(build_pipeline, fake_client):
    client = fake_client()
    pipeline = build_pipeline(client)
    results = []

    def worker():
        results.append(pipeline.analyze(GUARANTEE_COPY, actor_id="a"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 4
    assert sum(1 for r in results if not r.metadata.cache_used) == 1
    assert len(client.prompts) == 2


class SlowFailingDetector:
    """Fails every run after a pause, recording how many runs overlap."""

    def __init__(self, delay: float):
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.guard = threading.Lock()

    def analyze(self, text, context=None):
        with self.guard:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.delay)
        with self.guard:
            self.active -= 1
        raise RuntimeError("detector offline")


def test_failed_runs_stay_serialised_for_late_arrivals(build_pipeline):
    detector = SlowFailingDetector(delay=0.2)
    pipeline = build_pipeline(detector=detector)
    errors = []

    def worker():
        try:
            pipeline.analyze(GUARANTEE_COPY, actor_id="a")
        except AnalysisError as exc:
            errors.append(exc.stage)

    first, second, late = (threading.Thread(target=worker) for _ in range(3))
    first.start()
    time.sleep(0.05)
    second.start()
    # arrives after the first run has failed while the second is still computing
    time.sleep(0.25)
    late.start()
    for thread in (first, second, late):
        thread.join()

    assert errors == ["rule_based_analysis"] * 3
    assert detector.peak == 1
    assert pipeline._inflight == {}


def test_reload_invalidates_cached_results(corpus_path, corpus_data, build_pipeline):
    repo = GuidelineRepository(corpus_path)
    pipeline = build_pipeline(repo=repo)
    pipeline.analyze("Totally risk-free", actor_id="a")

    corpus = corpus_data()
    corpus["marketing_compliance_rules"]["payment_security_marketing"][0]["severity"] = "high"
    corpus_path.write_text(json.dumps(corpus), encoding="utf-8")

    assert pipeline.reload_guidelines() is True
    result = pipeline.analyze("Totally risk-free", actor_id="a")
    assert result.metadata.cache_used is False
    assert result.report.violations[0].scoring_impact == -22.5


def test_quick_check(build_pipeline, fake_client):
    client = fake_client()
    pipeline = build_pipeline(client)

    result = pipeline.quick_check(GUARANTEE_COPY)

    assert result.score == 28
    assert result.risk_level == RiskLevel.HIGH
    assert [v.text for v in result.top_violations] == ["Guaranteed", "No documentation"]
    assert result.top_violations[0].severity == "critical"
    assert client.prompts == []


@pytest.mark.parametrize("text", ["", "   \n\t"])
def test_quick_check_on_empty_text(build_pipeline, text):
    result = build_pipeline().quick_check(text)
    assert result.top_violations == ()
    assert result.risk_level == RiskLevel.LOW
    # two required elements are missing from empty copy
    assert result.score == 90


def test_quick_check_never_raises(write_corpus, corpus_data, build_pipeline):
    repo = GuidelineRepository(write_corpus(corpus_data(scoring=False), name="bare.json"))
    result = build_pipeline(repo=repo).quick_check(GUARANTEE_COPY)

    assert result.score == 50
    assert result.risk_level == RiskLevel.MEDIUM
    assert [(v.text, v.rule, v.severity) for v in result.top_violations] == [
        ("Analysis failed", "System Error", "high")
    ]


@pytest.mark.parametrize("workers", [1, 3])
def test_batch_preserves_order_and_captures_errors(build_pipeline, workers):
    store = RecordingStore()
    pipeline = build_pipeline(result_store=store)
    original_analyze = pipeline.analyze

    def flaky_analyze(text, context=None, *, actor_id, document_id=None):
        if text == "explode":
            raise AnalysisError("boom", stage="rule_based_analysis")
        return original_analyze(text, context, actor_id=actor_id, document_id=document_id)

    pipeline.analyze = flaky_analyze
    items = [
        BatchItem(id="a", text=GUARANTEE_COPY),
        {"id": "b", "content": "explode"},
        ("c", "Totally risk-free", "payment"),
        {"id": "d", "text": "Apply now. Terms and conditions apply. APR 10%."},
    ]

    results = pipeline.batch_analyze(items, actor_id="batch-user", max_workers=workers)

    assert [r.id for r in results] == ["a", "b", "c", "d"]
    assert [r.ok for r in results] == [True, False, True, True]
    assert results[1].error == "boom"
    assert results[0].result.score == 28
    assert results[2].result.score == 85
    assert results[3].result.score == 100
    assert sorted(doc for doc, _, _ in store.saved) == ["a", "c", "d"]


def test_batch_captures_malformed_items_without_aborting(build_pipeline):
    pipeline = build_pipeline()
    items = [
        BatchItem(id="a", text="Apply now"),
        {"text": "no id here"},
        ("lonely",),
        ("c", "Totally risk-free", "payment"),
    ]

    results = pipeline.batch_analyze(items, actor_id="batch-user")

    assert [r.id for r in results] == ["a", "1", "lonely", "c"]
    assert [r.ok for r in results] == [True, False, False, True]
    assert "missing an 'id'" in results[1].error
    assert results[3].result.score == 85


def test_batch_of_nothing(build_pipeline):
    assert build_pipeline().batch_analyze([], actor_id="a") == []


def test_validate_setup(build_pipeline, fake_client):
    ready = build_pipeline().validate_setup()
    assert ready.ready is True
    assert ready.guideline_count == 3
    assert ready.guideline_version == "1.0.0"
    assert ready.issues == []

    unready = build_pipeline(fake_client(configured=False)).validate_setup()
    assert unready.ready is False
    assert unready.model_ready is False
    assert unready.issues == ["Model client not configured for mode 'ollama'"]


def test_from_settings_wires_packaged_corpus(tmp_path, fake_client):
    settings = AnalyzerSettings(
        results_log_path=tmp_path / "results.jsonl",
        model=ModelConfig(name="test-model"),
    )
    pipeline = AnalysisPipeline.from_settings(settings, client=fake_client())

    assert isinstance(pipeline.result_store, JsonlResultStore)
    result = pipeline.analyze(
        "100% Guaranteed Approval! Apply now, no documentation needed.",
        actor_id="analyst-1",
        document_id="campaign-42",
    )

    assert result.score < 50
    assert result.report.score_breakdown.compliance_level == ComplianceLevel.NON_COMPLIANT
    assert result.report.score_breakdown.risk_indicators.level == RiskLevel.CRITICAL
    matched = {v.text.lower() for v in result.report.violations}
    assert "guaranteed approval" in matched
    assert "no documentation" in matched
    assert result.report.citations
    events = [json.loads(line)["event_type"] for line in settings.results_log_path.read_text().splitlines()]
    assert events == ["analysis", "status"]
