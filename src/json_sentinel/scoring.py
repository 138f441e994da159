"""
Scoring model.

Four component scores start at 100 and are combined with fixed weights.
Each deduction and bonus is kept as a record so the final number can be
explained line by line.
"""

from .model import (
    PerformanceMetrics,
    ScoreBonus,
    ScoreBreakdown,
    ScoreDeduction,
    ValidationWarning,
)
from .utils import plural, round_half_up

WEIGHTS = {
    "syntax": 0.25,
    "security": 0.25,
    "data_quality": 0.30,
    "structure": 0.20,
}

# severity -> (points per issue, cap, severity of the deduction)
SECURITY_TIERS = [
    ("high", 40, 100, "critical"),
    ("medium", 20, 60, "high"),
    ("low", 10, 40, "medium"),
]

# warning kind -> (points per warning, cap, deduction category, severity, noun)
STRUCTURE_TIERS = [
    ("structure", 15, 60, "structure", "medium", "structural issue"),
    ("performance", 10, 40, "performance", "medium", "performance issue"),
    ("best-practice", 8, 30, "best-practice", "low", "best practice violation"),
]

QUALITY_BONUS_THRESHOLD = 0.99
RECOMMENDATION_THRESHOLD = 0.9

TIERS = [
    (95, "Outstanding JSON quality with enterprise-grade standards."),
    (85, "Excellent JSON quality with minor room for improvement."),
    (75, "Good JSON quality with some areas needing attention."),
    (60, "Acceptable JSON with several issues requiring fixes."),
    (40, "Poor JSON quality with significant problems."),
    (0, "Critical JSON issues requiring immediate attention."),
]

INVALID_SUMMARY = "Invalid JSON with critical parsing errors. Unable to process."
BATCH_FAILURE_SUMMARY = "Invalid JSON with critical validation errors. Unable to process."
INVALID_RECOMMENDATIONS = ["Fix JSON syntax errors", "Validate JSON structure"]


def describe_tier(score):
    for threshold, text in TIERS:
        if score >= threshold:
            return text
    return TIERS[-1][1]


def generate_warnings(analysis, size_bytes, config):
    warnings = []

    max_depth = int(config.get("max_depth", 20))
    max_keys = int(config.get("max_keys", 1000))
    max_size = int(config.get("max_size_bytes", 1024 * 1024))

    if analysis.depth > max_depth:
        warnings.append(
            ValidationWarning(
                path="$",
                message="Deep nesting detected ({} levels). Consider flattening structure.".format(analysis.depth),
                kind="performance",
                severity="medium",
            )
        )

    if analysis.key_count > max_keys:
        warnings.append(
            ValidationWarning(
                path="$",
                message="Large number of keys ({}). Consider pagination or chunking.".format(analysis.key_count),
                kind="performance",
                severity="medium",
            )
        )

    if analysis.circular_paths:
        warnings.append(
            ValidationWarning(
                path=", ".join(analysis.circular_paths),
                message="Circular references detected",
                kind="structure",
                severity="high",
            )
        )

    if analysis.duplicate_key_paths:
        warnings.append(
            ValidationWarning(
                path=", ".join(analysis.duplicate_key_paths),
                message="Duplicate keys found (case-insensitive)",
                kind="structure",
                severity="medium",
            )
        )

    if size_bytes > max_size:
        warnings.append(
            ValidationWarning(
                path="$",
                message="Large file size ({:.2f}MB). Consider compression or chunking.".format(
                    size_bytes / 1024.0 / 1024.0
                ),
                kind="best-practice",
                severity="low",
            )
        )

    return warnings


def evaluate_performance(analysis, size_bytes, parse_time_ms=0.0, validation_time_ms=0.0):
    bottlenecks = []
    suggestions = []

    if analysis.circular_paths:
        bottlenecks.append("Circular references")
    if analysis.duplicate_key_paths:
        suggestions.append("Remove duplicate keys")

    return PerformanceMetrics(
        parse_time_ms=parse_time_ms,
        validation_time_ms=validation_time_ms,
        memory_estimate=analysis.primitive_count * 2 + analysis.object_count * 1.5 + analysis.array_count * 1.2,
        complexity=(
            analysis.depth * 2
            + analysis.object_count * 1.5
            + analysis.array_count * 1.2
            + analysis.key_count * 0.1
        ),
        size_bytes=size_bytes,
        bottlenecks=bottlenecks,
        suggestions=suggestions,
    )


def generate_recommendations(analysis, errors, warnings, security_issues, quality, config):
    recommendations = []

    if errors:
        recommendations.append("Fix the {} schema validation {}".format(len(errors), plural(len(errors), "error")))

    if analysis.depth > int(config.get("max_depth", 20)):
        recommendations.append("Flatten the structure to improve performance")

    if analysis.key_count > int(config.get("max_keys", 1000)):
        recommendations.append("Consider pagination or chunking to reduce the number of keys")

    if analysis.circular_paths:
        recommendations.append("Remove circular references to improve performance and security")

    if analysis.duplicate_key_paths:
        recommendations.append("Remove duplicate keys to improve data quality")

    for issue in security_issues:
        if issue.recommendation not in recommendations:
            recommendations.append(issue.recommendation)

    ratios = [
        ("completeness", quality.completeness),
        ("consistency", quality.consistency),
        ("validity", quality.validity),
        ("accuracy", quality.accuracy),
    ]
    for name, ratio in ratios:
        if ratio < RECOMMENDATION_THRESHOLD:
            recommendations.append("Improve data {} to improve data quality".format(name))

    if quality.duplicate_count > 0:
        recommendations.append("Remove duplicate entries to improve data quality")

    if quality.anomalies:
        recommendations.append("Investigate and resolve anomalies to improve data quality")

    return recommendations


class ScoringModel:
    def score(self, errors, warnings, security_issues, quality):
        deductions = []
        bonuses = []

        syntax_score = self._syntax_score(errors, deductions)
        security_score = self._security_score(security_issues, deductions)
        quality_score = self._quality_score(quality, deductions)
        structure_score = self._structure_score(warnings, deductions)

        weighted = round_half_up(
            syntax_score * WEIGHTS["syntax"]
            + security_score * WEIGHTS["security"]
            + quality_score * WEIGHTS["data_quality"]
            + structure_score * WEIGHTS["structure"]
        )

        if not errors:
            bonuses.append(ScoreBonus(category="excellence", reason="Perfect syntax validation - no errors found", impact=3))

        if not security_issues:
            bonuses.append(ScoreBonus(category="excellence", reason="No security vulnerabilities detected", impact=4))

        if (
            quality.completeness >= QUALITY_BONUS_THRESHOLD
            and quality.consistency >= QUALITY_BONUS_THRESHOLD
            and quality.validity >= QUALITY_BONUS_THRESHOLD
        ):
            bonuses.append(
                ScoreBonus(category="excellence", reason="Exceptional data quality (99%+ across all metrics)", impact=3)
            )

        bonus_points = sum(bonus.impact for bonus in bonuses)
        final_score = max(0, min(100, weighted + bonus_points))

        components = [
            "Syntax: {}% (25% weight)".format(syntax_score),
            "Security: {}% (25% weight)".format(security_score),
            "Data Quality: {}% (30% weight)".format(quality_score),
            "Structure: {}% (20% weight)".format(structure_score),
        ]

        summary = "Weighted score: {}/100".format(weighted)
        if bonus_points > 0:
            summary += " + {} bonus points".format(bonus_points)
        summary += " = {}/100. Component scores: {}.".format(final_score, ", ".join(components))
        summary += " " + describe_tier(final_score)

        return ScoreBreakdown(
            base_score=100,
            deductions=deductions,
            bonuses=bonuses,
            final_score=final_score,
            summary=summary,
        )

    def invalid(self, message, summary=INVALID_SUMMARY):
        """Breakdown for text that does not parse: a single critical deduction."""
        deduction = ScoreDeduction(category="syntax", reason=message, impact=100, severity="critical")
        return ScoreBreakdown(
            base_score=100,
            deductions=[deduction],
            bonuses=[],
            final_score=0,
            summary=summary,
        )

    # -------------------------------------------------------
    # Component scores
    # -------------------------------------------------------

    def _syntax_score(self, errors, deductions):
        if not errors:
            return 100

        count = len(errors)
        impact = min(count * 25, 100)
        deductions.append(
            ScoreDeduction(
                category="syntax",
                reason="{} validation {} found".format(count, plural(count, "error")),
                impact=impact,
                severity="critical",
            )
        )
        return max(0, 100 - impact)

    def _security_score(self, issues, deductions):
        total = 0

        for severity, points, cap, deduction_severity in SECURITY_TIERS:
            count = len([issue for issue in issues if issue.severity == severity])
            if count == 0:
                continue
            impact = min(count * points, cap)
            total += impact
            deductions.append(
                ScoreDeduction(
                    category="security",
                    reason="{} {} severity security {}".format(count, severity, plural(count, "issue")),
                    impact=impact,
                    severity=deduction_severity,
                )
            )

        return max(0, 100 - total)

    def _quality_score(self, quality, deductions):
        total = 0

        ratios = [
            ("completeness", quality.completeness, 100, "high", "medium"),
            ("consistency", quality.consistency, 80, "high", "medium"),
            ("validity", quality.validity, 60, "high", "medium"),
            ("accuracy", quality.accuracy, 40, "medium", "low"),
        ]
        for name, ratio, weight, low_severity, severity in ratios:
            impact = round_half_up((1 - ratio) * weight)
            if impact <= 0:
                continue
            total += impact
            deductions.append(
                ScoreDeduction(
                    category="data-quality",
                    reason="Data {} at {:.1f}% ({}% deduction)".format(name, ratio * 100, impact),
                    impact=impact,
                    severity=low_severity if ratio < 0.8 else severity,
                )
            )

        if quality.duplicate_count > 0:
            impact = min(quality.duplicate_count * 5, 30)
            total += impact
            deductions.append(
                ScoreDeduction(
                    category="data-quality",
                    reason="{} duplicate {} found ({}% deduction)".format(
                        quality.duplicate_count, plural(quality.duplicate_count, "value"), impact
                    ),
                    impact=impact,
                    severity="low",
                )
            )

        anomaly_count = len(quality.anomalies)
        if anomaly_count > 0:
            impact = min(anomaly_count * 3, 20)
            total += impact
            deductions.append(
                ScoreDeduction(
                    category="data-quality",
                    reason="{} data {} detected ({}% deduction)".format(
                        anomaly_count, plural(anomaly_count, "anomaly", "anomalies"), impact
                    ),
                    impact=impact,
                    severity="low",
                )
            )

        return max(0, 100 - min(total, 100))

    def _structure_score(self, warnings, deductions):
        total = 0

        for kind, points, cap, category, severity, noun in STRUCTURE_TIERS:
            count = len([warning for warning in warnings if warning.kind == kind])
            if count == 0:
                continue
            impact = min(count * points, cap)
            total += impact
            deductions.append(
                ScoreDeduction(
                    category=category,
                    reason="{} {} found ({}% deduction)".format(count, plural(count, noun), impact),
                    impact=impact,
                    severity=severity,
                )
            )

        return max(0, 100 - min(total, 100))
