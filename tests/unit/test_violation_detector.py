from types import SimpleNamespace

import pytest

from marketing_compliance.compliance.detector import ViolationDetector, risk_level_for
from marketing_compliance.compliance.types import ComplianceLevel, RiskLevel, ViolationKind
from marketing_compliance.errors import ScoringConfigurationError
from marketing_compliance.guidelines.models import Severity
from marketing_compliance.guidelines.repository import GuidelineRepository


@pytest.fixture
def detector(repository):
    return ViolationDetector(repository)


def test_guarantee_copy_is_non_compliant(detector):
    analysis = detector.analyze("Guaranteed loans! No documentation needed.")

    assert [(v.kind, v.text) for v in analysis.violations] == [
        (ViolationKind.KEYWORD_VIOLATION, "Guaranteed"),
        (ViolationKind.PROHIBITED_CLAIM, "No documentation"),
    ]
    keyword, claim = analysis.violations
    assert keyword.scoring_impact == -25
    assert claim.scoring_impact == -37.5
    assert (claim.start, claim.end) == (18, 34)
    assert keyword.confidence == 1.0
    assert keyword.severity == Severity.CRITICAL

    assert analysis.missing_elements == (
        "terms and conditions (Required by: No Guaranteed Approval Claims)",
        "apr (Required by: APR Disclosure)",
    )
    # 100 - 25 - 37.5 - 2 * 5 = 27.5, rounded half-up
    assert analysis.overall_score == 28
    assert analysis.compliance_level == ComplianceLevel.NON_COMPLIANT
    assert analysis.metadata.risk_level == RiskLevel.HIGH
    assert analysis.metadata.rules_evaluated == 3
    assert analysis.metadata.text_length == len("Guaranteed loans! No documentation needed.")


def test_clean_copy_is_compliant(detector):
    analysis = detector.analyze("Apply for a personal loan. Terms and conditions apply. APR 12%.")
    assert analysis.violations == ()
    assert analysis.missing_elements == ()
    assert analysis.missing_disclaimers == ()
    assert analysis.overall_score == 100
    assert analysis.compliance_level == ComplianceLevel.COMPLIANT
    assert analysis.metadata.risk_level == RiskLevel.LOW


def test_context_limits_rules_and_prohibited_claims_weigh_more(detector):
    analysis = detector.analyze("Our wallet is risk-free", context="payment wallet")

    assert [rule.rule_id for rule in analysis.applied_rules] == ["PS-001"]
    assert len(analysis.violations) == 1
    violation = analysis.violations[0]
    assert violation.kind == ViolationKind.PROHIBITED_CLAIM
    assert violation.scoring_impact == -15
    assert violation.context == "Our wallet is risk-free"
    assert analysis.overall_score == 85
    assert analysis.compliance_level == ComplianceLevel.COMPLIANT
    assert analysis.missing_disclaimers == ("terms and conditions apply",)


def test_context_pulls_in_rules_by_keyword(detector):
    rules = detector.applicable_rules("Guaranteed returns on your payment", context="upi")
    assert [rule.rule_id for rule in rules] == ["PS-001", "DL-001"]


def test_violations_sorted_by_severity(detector):
    analysis = detector.analyze("100% safe and guaranteed with 0% interest")
    ranks = [v.severity.rank for v in analysis.violations]
    assert ranks == sorted(ranks, reverse=True)
    assert [v.rule.rule_id for v in analysis.violations] == ["DL-001", "DL-002", "PS-001"]


def test_overlapping_matches_are_all_reported(write_corpus, corpus_data):
    corpus = corpus_data()
    corpus["marketing_compliance_rules"]["payment_security_marketing"][0]["violation_keywords"] = ["no no"]
    detector = ViolationDetector(GuidelineRepository(write_corpus(corpus)))

    violations = [v for v in detector.analyze("no no no").violations if v.rule.rule_id == "PS-001"]
    assert [(v.start, v.end) for v in violations] == [(0, 5), (3, 8)]


def test_missing_elements_deduplicated(write_corpus, corpus_data):
    corpus = corpus_data()
    rule = corpus["marketing_compliance_rules"]["digital_lending_marketing"][0]
    rule["required_marketing_elements"] = ["terms and conditions", "terms and conditions"]
    detector = ViolationDetector(GuidelineRepository(write_corpus(corpus)))

    missing = detector.missing_elements("plain text", detector.repository.all_rules())
    assert missing == [
        "terms and conditions (Required by: No Guaranteed Approval Claims)",
        "apr (Required by: APR Disclosure)",
    ]


def test_score_is_clamped_at_zero(write_corpus, corpus_data):
    corpus = corpus_data()
    corpus["marketing_compliance_rules"]["digital_lending_marketing"][0]["violation_keywords"] = ["loan"]
    detector = ViolationDetector(GuidelineRepository(write_corpus(corpus)))

    analysis = detector.analyze("loan loan loan loan loan")
    assert analysis.overall_score == 0
    assert analysis.compliance_level == ComplianceLevel.NON_COMPLIANT


def test_missing_methodology_raises(write_corpus, corpus_data):
    detector = ViolationDetector(GuidelineRepository(write_corpus(corpus_data(scoring=False))))
    with pytest.raises(ScoringConfigurationError):
        detector.analyze("Guaranteed loans")


@pytest.mark.parametrize(
    "severities, expected",
    [
        ([], RiskLevel.LOW),
        (["low", "low", "low"], RiskLevel.LOW),
        (["low", "low", "low", "low"], RiskLevel.MEDIUM),
        (["high"], RiskLevel.MEDIUM),
        (["high", "high", "high"], RiskLevel.HIGH),
        (["critical"], RiskLevel.HIGH),
    ],
)
def test_risk_level_tiers(severities, expected):
    violations = [SimpleNamespace(severity=Severity(s)) for s in severities]
    assert risk_level_for(violations) == expected
