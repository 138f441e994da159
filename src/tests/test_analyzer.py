import json

import pytest

from json_sentinel.analyzer import JsonAnalyzer, analyze, query, result_to_json_dict
from json_sentinel.config import DEFAULT_CONFIG
from json_sentinel.errors import QueryError, SchemaDefinitionError
from json_sentinel.scoring import BATCH_FAILURE_SUMMARY, INVALID_SUMMARY


def make_analyzer(**overrides):
    config_copy = DEFAULT_CONFIG.copy()
    config_copy.update(overrides)
    analyzer = JsonAnalyzer(config_copy)
    return analyzer


def make_nested_list(depth):
    value = []
    for _ in range(depth - 1):
        value = [value]
    return value


def test_unparseable_text_scores_zero():
    analyzer = make_analyzer()

    result = analyzer.analyze("not json at all {")

    assert result.final_score == 0
    assert not result.is_valid
    assert len(result.score_breakdown.deductions) == 1
    assert result.score_breakdown.deductions[0].severity == "critical"
    assert result.errors[0].keyword == "parse"
    assert result.structure is None


def test_clean_document():
    analyzer = make_analyzer()

    result = analyzer.analyze('{"name": "Ada", "email": "ada@example.com"}')

    assert result.is_valid
    assert result.final_score == 100
    assert result.security_issues == []
    assert result.structure.key_count == 2


def test_insecure_url_document():
    result = make_analyzer().analyze('{"url":"http://example.com"}')

    assert result.final_score == 96
    assert len(result.security_issues) == 1
    assert "Use HTTPS instead" in result.recommendations


def test_nan_is_not_json():
    result = make_analyzer().analyze('{"a": NaN}')

    assert result.final_score == 0


def test_schema_violations():
    schema = {
        "type": "object",
        "properties": {"age": {"type": "integer"}},
    }

    result = make_analyzer().analyze('{"age": "x"}', schema=schema)

    assert not result.is_valid
    assert len(result.errors) == 1
    assert result.errors[0].path == "$.age"
    assert result.errors[0].keyword == "type"
    assert "Syntax: 75% (25% weight)" in result.score_breakdown.summary


def test_invalid_schema_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        make_analyzer().analyze("{}", schema={"type": "nope"})


def test_cyclic_value():
    value = {"a": 1}
    value["self"] = value

    result = make_analyzer().analyze_value(value)

    assert result.structure.circular_paths == ["$.self"]
    assert "Remove circular references to improve performance and security" in result.recommendations
    assert "Structure: 85% (20% weight)" in result.score_breakdown.summary


def test_cyclic_value_with_schema():
    value = {"a": 1}
    value["self"] = value

    result = make_analyzer().analyze_value(value, schema={"type": "object"})

    assert not result.is_valid
    assert result.errors[0].keyword == "cycle"


def test_results_are_cached():
    analyzer = make_analyzer(cache_size=2)

    first = analyzer.analyze('{"a": 1}')
    second = analyzer.analyze('{"a": 1}')

    assert first == second
    assert first is not second


def test_cache_is_bounded():
    analyzer = make_analyzer(cache_size=1)

    first = analyzer.analyze('{"a": 1}')
    analyzer.analyze('{"b": 2}')

    assert len(analyzer._cache) == 1
    assert analyzer.analyze('{"a": 1}') == first


def test_batch():
    analyzer = make_analyzer()

    results = analyzer.analyze_batch(
        [
            {"name": "good.json", "content": '{"a": 1}'},
            {"name": "bad.json", "content": "{"},
        ]
    )

    assert results["good.json"].final_score == 100
    assert results["bad.json"].final_score == 0
    assert results["bad.json"].errors[0].keyword == "parse"
    assert results["bad.json"].score_breakdown.summary == INVALID_SUMMARY


def test_cached_result_cannot_be_changed_by_a_caller():
    analyzer = make_analyzer(cache_size=2)

    first = analyzer.analyze('{"url":"http://example.com"}')
    first.security_issues.clear()
    first.score_breakdown.deductions.clear()

    again = analyzer.analyze('{"url":"http://example.com"}')

    assert len(again.security_issues) == 1
    assert len(again.score_breakdown.deductions) > 0


def test_batch_schema_failure_is_not_a_syntax_failure():
    analyzer = make_analyzer()

    results = analyzer.analyze_batch(
        [{"name": "doc.json", "content": '{"a": 1}', "schema": {"type": "nope"}}]
    )

    result = results["doc.json"]
    assert result.final_score == 0
    assert result.errors[0].keyword == "batch"
    assert result.score_breakdown.summary == BATCH_FAILURE_SUMMARY


def test_deeply_nested_text_does_not_raise():
    text = "[" * 950 + "]" * 950

    result = make_analyzer(cache_size=2).analyze(text)

    assert 0 <= result.final_score <= 100


def test_value_nested_deeper_than_the_encoder_allows():
    deep = make_nested_list(3000)

    result = make_analyzer().analyze_value([deep, deep])

    assert result.structure.depth >= 2999
    assert result.data_quality.duplicate_count == 1
    assert result.performance.size_bytes >= 0


def test_query_matches_values_in_order():
    text = '{"users": [{"name": "Ada", "age": 36}, {"name": "Linus", "age": 28}]}'

    assert make_analyzer().query(text, "$.users[*].name") == ["Ada", "Linus"]


def test_query_accepts_a_decoded_value():
    value = {"store": {"books": [{"price": 8}, {"price": 22}]}}

    assert query(value, "$.store.books[?price > 10].price") == [22]
    assert query(value, "$.missing") == []


def test_query_rejects_bad_input():
    analyzer = make_analyzer()

    with pytest.raises(QueryError):
        analyzer.query("{not json", "$.a")

    with pytest.raises(QueryError):
        analyzer.query('{"a": 1}', "$.[[[")


def test_result_to_json_dict():
    result = analyze('{"url":"http://example.com"}')

    data = result_to_json_dict(result)
    text = json.dumps(data)

    assert data["score_breakdown"]["final_score"] == 96
    assert "insecure-url" in text
