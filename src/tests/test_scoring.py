from json_sentinel.model import (
    DataQualityReport,
    SecurityIssue,
    StructuralAnalysis,
    ValidationWarning,
)
from json_sentinel.scoring import ScoringModel, describe_tier, generate_warnings


def make_issue(severity="high"):
    return SecurityIssue(
        path="$.url",
        kind="insecure-url",
        severity=severity,
        message="Insecure URL detected: http://example.com",
        recommendation="Use HTTPS instead",
    )


def test_clean_document_scores_full_marks():
    breakdown = ScoringModel().score([], [], [], DataQualityReport())

    assert breakdown.final_score == 100
    assert breakdown.deductions == []
    assert len(breakdown.bonuses) == 3
    assert breakdown.summary.startswith("Weighted score: 100/100 + 10 bonus points = 100/100.")
    assert breakdown.summary.endswith("Outstanding JSON quality with enterprise-grade standards.")


def test_insecure_url_costs_forty_security_points():
    breakdown = ScoringModel().score([], [], [make_issue()], DataQualityReport())

    security = []
    for deduction in breakdown.deductions:
        if deduction.category == "security":
            security.append(deduction)

    assert len(security) == 1
    assert security[0].impact == 40
    assert security[0].severity == "critical"
    assert "Security: 60% (25% weight)" in breakdown.summary
    # 90 weighted + 3 syntax bonus + 3 data quality bonus
    assert breakdown.final_score == 96


def test_security_deductions_are_capped():
    issues = [make_issue() for _ in range(5)]

    breakdown = ScoringModel().score([], [], issues, DataQualityReport())

    assert "Security: 0% (25% weight)" in breakdown.summary


def test_more_issues_never_raise_the_score():
    model = ScoringModel()

    scores = []
    for count in range(6):
        issues = [make_issue() for _ in range(count)]
        scores.append(model.score([], [], issues, DataQualityReport()).final_score)

    assert scores == sorted(scores, reverse=True)


def test_quality_deductions():
    quality = DataQualityReport(completeness=0.5, duplicate_count=2, anomalies=["a", "b"])

    breakdown = ScoringModel().score([], [], [], quality)

    reasons = {}
    for deduction in breakdown.deductions:
        reasons[deduction.reason] = deduction

    assert reasons["Data completeness at 50.0% (50% deduction)"].severity == "high"
    assert reasons["2 duplicate values found (10% deduction)"].impact == 10
    assert reasons["2 data anomalies detected (6% deduction)"].impact == 6
    assert "Data Quality: 34% (30% weight)" in breakdown.summary


def test_structure_warnings():
    warnings = [
        ValidationWarning(path="$", message="Circular references detected", kind="structure", severity="high"),
    ]

    breakdown = ScoringModel().score([], warnings, [], DataQualityReport())

    assert "Structure: 85% (20% weight)" in breakdown.summary


def test_invalid_breakdown():
    breakdown = ScoringModel().invalid("Expecting value: line 1 column 1 (char 0)")

    assert breakdown.final_score == 0
    assert len(breakdown.deductions) == 1
    assert breakdown.deductions[0].severity == "critical"
    assert breakdown.summary == "Invalid JSON with critical parsing errors. Unable to process."


def test_tiers():
    assert describe_tier(100).startswith("Outstanding")
    assert describe_tier(85).startswith("Excellent")
    assert describe_tier(60).startswith("Acceptable")
    assert describe_tier(50).startswith("Poor")
    assert describe_tier(0).startswith("Critical")


def test_deep_nesting_warning():
    analysis = StructuralAnalysis(depth=25)

    warnings = generate_warnings(analysis, 10, {"max_depth": 20})

    assert len(warnings) == 1
    assert warnings[0].kind == "performance"
