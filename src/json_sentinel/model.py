from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StructuralAnalysis:
    depth: int = 0
    key_count: int = 0
    object_count: int = 0
    array_count: int = 0
    primitive_count: int = 0
    null_count: int = 0
    empty_count: int = 0
    type_histogram: Dict[str, int] = field(default_factory=dict)
    circular_paths: List[str] = field(default_factory=list)
    duplicate_key_paths: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SecurityIssue:
    path: str
    kind: str
    severity: str  # "low", "medium", "high", "critical"
    message: str
    recommendation: str


@dataclass(frozen=True)
class SchemaViolation:
    path: str
    message: str
    keyword: str
    schema_path: str
    data: Any = None
    severity: str = "error"


@dataclass(frozen=True)
class ValidationWarning:
    path: str
    message: str
    kind: str  # "performance", "structure", "best-practice"
    severity: str


@dataclass(frozen=True)
class DataQualityReport:
    completeness: float = 1.0
    consistency: float = 1.0
    validity: float = 1.0
    accuracy: float = 1.0
    duplicate_count: int = 0
    anomalies: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PerformanceMetrics:
    parse_time_ms: float = 0.0
    validation_time_ms: float = 0.0
    memory_estimate: float = 0.0
    complexity: float = 0.0
    size_bytes: int = 0
    bottlenecks: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScoreDeduction:
    category: str  # "syntax", "security", "data-quality", "performance", "structure", "best-practice"
    reason: str
    impact: int
    severity: str


@dataclass(frozen=True)
class ScoreBonus:
    category: str
    reason: str
    impact: int
    severity: str = "none"


@dataclass(frozen=True)
class ScoreBreakdown:
    base_score: int = 100
    deductions: List[ScoreDeduction] = field(default_factory=list)
    bonuses: List[ScoreBonus] = field(default_factory=list)
    final_score: int = 0
    summary: str = ""


@dataclass(frozen=True)
class RepairResult:
    text: str
    rules_applied: List[str] = field(default_factory=list)
    succeeded: bool = False
    source: Optional[str] = None  # "none", "local" or "remote"
    error: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[SchemaViolation] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    security_issues: List[SecurityIssue] = field(default_factory=list)
    data_quality: DataQualityReport = field(default_factory=DataQualityReport)
    score_breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    recommendations: List[str] = field(default_factory=list)
    structure: Optional[StructuralAnalysis] = None
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    @property
    def final_score(self):
        return self.score_breakdown.final_score


@dataclass
class SchemaInfo:
    id: str
    name: str
    description: str
    version: str
    schema: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    tags: List[str] = field(default_factory=list)
