import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import asdict, fields, is_dataclass, replace

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from .config import merge_config
from .errors import JsonSentinelError, ParseError, QueryError
from .model import (
    DataQualityReport,
    PerformanceMetrics,
    SchemaViolation,
    ValidationResult,
)
from .quality import DataQualityScanner
from .schema import SchemaValidator
from .scoring import (
    BATCH_FAILURE_SUMMARY,
    INVALID_RECOMMENDATIONS,
    INVALID_SUMMARY,
    ScoringModel,
    evaluate_performance,
    generate_recommendations,
    generate_warnings,
)
from .security import SecurityScanner
from .structure import StructuralAnalyzer
from .utils import ROOT_PATH, canonical, parse_json, serialized_size

logger = logging.getLogger(__name__)


class JsonAnalyzer:
    def __init__(self, config=None):
        self.config = merge_config(config)

        self.structure_analyzer = StructuralAnalyzer()
        self.security_scanner = SecurityScanner(self.config)
        self.quality_scanner = DataQualityScanner(self.config)
        self.scoring_model = ScoringModel()

        self.cache_size = int(self.config.get("cache_size", 0) or 0)
        self._cache = OrderedDict()

    def analyze(self, text, schema=None):
        cache_key = None
        if self.cache_size > 0:
            cache_key = self._cache_key(text, schema)
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._cache.move_to_end(cache_key)
                return _copy_result(cached)

        size_bytes = len(text.encode("utf-8"))

        start = time.perf_counter()
        try:
            value = parse_json(text)
        except ParseError as exc:
            parse_ms = (time.perf_counter() - start) * 1000.0
            logger.info("Input is not valid JSON: %s", exc)
            result = self._invalid_result(str(exc), size_bytes, parse_ms)
        else:
            parse_ms = (time.perf_counter() - start) * 1000.0
            result = self._analyze_parsed(value, schema, size_bytes, parse_ms)

        if cache_key is not None:
            self._remember(cache_key, _copy_result(result))

        return result

    def analyze_value(self, value, schema=None):
        """Analyze an already decoded value. The value may contain cycles."""
        return self._analyze_parsed(value, schema, serialized_size(value), 0.0)

    def analyze_batch(self, files):
        """
        ``files`` is a list of dicts with ``name``, ``content`` and an
        optional ``schema``. Returns a dict name -> ValidationResult.
        """
        results = {}

        for entry in files:
            name = entry["name"]
            try:
                results[name] = self.analyze(entry["content"], schema=entry.get("schema"))
            except JsonSentinelError as exc:
                logger.warning("Could not analyse %s: %s", name, exc)
                results[name] = self._invalid_result(
                    str(exc), 0, 0.0, keyword="batch", summary=BATCH_FAILURE_SUMMARY
                )

        return results

    def query(self, source, path):
        """
        Evaluate a JSONPath expression against JSON text or an already decoded
        value and return the matched values in document order.
        """
        value = source
        if isinstance(source, str):
            try:
                value = parse_json(source)
            except ParseError as exc:
                raise QueryError("JSONPath query failed: {}".format(exc)) from exc

        try:
            expression = parse_jsonpath(path)
        except JSONPathError as exc:
            raise QueryError("JSONPath query failed: {}".format(exc)) from exc

        matches = [match.value for match in expression.find(value)]
        logger.debug("JSONPath %s matched %d values", path, len(matches))
        return matches

    # -------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------

    def _analyze_parsed(self, value, schema, size_bytes, parse_ms):
        analysis = self.structure_analyzer.analyze(value)

        errors = []
        validation_ms = 0.0
        if schema is not None:
            start = time.perf_counter()
            errors = self._validate_schema(value, schema, analysis)
            validation_ms = (time.perf_counter() - start) * 1000.0

        warnings = generate_warnings(analysis, size_bytes, self.config)
        security_issues = self.security_scanner.scan(value)
        quality = self.quality_scanner.scan(value)

        breakdown = self.scoring_model.score(errors, warnings, security_issues, quality)
        recommendations = generate_recommendations(
            analysis, errors, warnings, security_issues, quality, self.config
        )
        performance = evaluate_performance(analysis, size_bytes, parse_ms, validation_ms)

        logger.debug("Analysis finished with score %d", breakdown.final_score)

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            security_issues=security_issues,
            data_quality=quality,
            score_breakdown=breakdown,
            recommendations=recommendations,
            structure=analysis,
            performance=performance,
        )

    def _validate_schema(self, value, schema, analysis):
        validator = SchemaValidator(schema)

        if analysis.circular_paths:
            # jsonschema would recurse forever on a cyclic value
            violation = SchemaViolation(
                path=analysis.circular_paths[0],
                message="Value contains a reference cycle and cannot be validated against a schema",
                keyword="cycle",
                schema_path="",
            )
            return [violation]

        return validator.validate(value)

    def _invalid_result(self, message, size_bytes, parse_ms, keyword="parse", summary=INVALID_SUMMARY):
        error = SchemaViolation(
            path=ROOT_PATH,
            message=message,
            keyword=keyword,
            schema_path="",
            data=None,
            severity="error",
        )

        return ValidationResult(
            is_valid=False,
            errors=[error],
            warnings=[],
            security_issues=[],
            data_quality=DataQualityReport(
                completeness=0.0,
                consistency=0.0,
                validity=0.0,
                accuracy=0.0,
                duplicate_count=0,
                anomalies=[],
            ),
            score_breakdown=self.scoring_model.invalid(message, summary=summary),
            recommendations=list(INVALID_RECOMMENDATIONS),
            structure=None,
            performance=PerformanceMetrics(parse_time_ms=parse_ms, size_bytes=size_bytes),
        )

    def _cache_key(self, text, schema):
        digest = hashlib.sha256()
        digest.update(text.encode("utf-8"))
        digest.update(b"\0")
        digest.update(canonical(schema).encode("utf-8"))
        return digest.hexdigest()

    def _remember(self, key, result):
        self._cache[key] = result
        self._cache.move_to_end(key)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)


def _copy_result(result):
    # violation `data` is the decoded instance and stays shared
    if is_dataclass(result):
        changes = {}
        for item in fields(result):
            if item.name != "data":
                changes[item.name] = _copy_result(getattr(result, item.name))
        return replace(result, **changes)
    if isinstance(result, list):
        return [_copy_result(item) for item in result]
    if isinstance(result, dict):
        return {key: _copy_result(item) for key, item in result.items()}
    return result


def query(source, path, config=None):
    analyzer = JsonAnalyzer(config)
    return analyzer.query(source, path)


def analyze(text, schema=None, config=None):
    analyzer = JsonAnalyzer(config)
    return analyzer.analyze(text, schema=schema)


def result_to_json_dict(result):
    """
    Convert a ValidationResult (or RepairResult) into a normal dict that can
    be dumped as JSON.
    """
    data = asdict(result)
    return data
