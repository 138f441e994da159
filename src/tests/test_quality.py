from json_sentinel.config import merge_config
from json_sentinel.quality import DataQualityScanner


def make_scanner(**overrides):
    config = merge_config(overrides)
    scanner = DataQualityScanner(config)
    return scanner


def test_mismatched_key_sets_lower_consistency():
    scanner = make_scanner()

    report = scanner.scan([{"id": 1}, {"id": 2, "name": "x"}])

    assert report.consistency == 0.9
    assert report.completeness == 1.0
    assert report.duplicate_count == 0
    assert report.anomalies == [
        "Structure inconsistency at $[1]: fields don't match other array items"
    ]


def test_type_inconsistency_ignores_nulls():
    report = make_scanner().scan([1, "a", None, 2])

    assert report.consistency == 0.9
    assert report.anomalies == ["Type inconsistency at $[1]: expected number, got string"]


def test_completeness_counts_null_and_empty_leaves():
    report = make_scanner().scan({"a": None, "b": "", "c": 1, "d": 2})

    assert report.completeness == 0.5


def test_invalid_email_lowers_validity():
    report = make_scanner().scan({"email": "nope"})

    assert report.validity == 0.9
    assert report.anomalies == ["Invalid email format at $.email: nope"]


def test_email_under_unrelated_key():
    report = make_scanner().scan({"contact": "someone@@example.com"})

    assert report.validity == 0.9
    assert report.anomalies[0].startswith("Possible invalid email at $.contact")


def test_valid_formats_are_accepted():
    report = make_scanner().scan(
        {
            "email": "ada@example.com",
            "website": "https://example.com",
            "created_date": "2024-03-01",
            "updated_time": "2024-03-01T12:00:00Z",
        }
    )

    assert report.validity == 1.0
    assert report.anomalies == []


def test_range_checks():
    scanner = make_scanner(current_year=2024)

    report = scanner.scan({"age": 150, "year": 1800, "percent": 120, "ok_year": 2030})

    assert round(report.accuracy, 6) == 0.7
    assert len(report.anomalies) == 3
    assert "Suspicious age value at $.age: 150" in report.anomalies


def test_year_window_is_configurable():
    scanner = make_scanner(current_year=2024, year_future_window=0)

    report = scanner.scan({"year": 2025})

    assert report.accuracy == 0.9


def test_duplicate_primitives():
    report = make_scanner().scan([1, 1, 1, 2])

    assert report.duplicate_count == 2


def test_duplicate_objects_count_pairs():
    report = make_scanner().scan([{"a": 1}, {"a": 1}, {"a": 1}, {"a": 2}])

    # three equal objects form three pairs
    assert report.duplicate_count == 3


def test_duplicates_ignore_key_order():
    report = make_scanner().scan([{"a": 1, "b": 2}, {"b": 2, "a": 1}])

    assert report.duplicate_count == 1


def test_ratios_stay_in_range():
    items = [{"email": "bad{}".format(i)} for i in range(30)]

    report = make_scanner().scan(items)

    assert report.validity == 0.0
    assert len(report.anomalies) == 5


def test_empty_root_yields_zeroed_report():
    report = make_scanner().scan(None)

    assert report.completeness == 0.0
    assert report.consistency == 0.0
    assert report.validity == 0.0
    assert report.accuracy == 0.0


def test_cyclic_value_terminates():
    value = {"age": 30}
    value["self"] = value

    report = make_scanner().scan(value)

    assert report.accuracy == 1.0
