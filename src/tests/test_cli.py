import json

import pytest

from json_sentinel.cli import main


def test_analyze_text_report(capsys):
    main(["analyze", "--text", '{"a": 1}'])

    out = capsys.readouterr().out

    assert "Quality score    : 100 / 100" in out


def test_analyze_json_output(capsys):
    main(["analyze", "--text", '{"url": "http://example.com"}', "--output", "json"])

    data = json.loads(capsys.readouterr().out)

    assert data["score_breakdown"]["final_score"] == 96


def test_analyze_file(tmp_path, capsys):
    path = tmp_path / "doc.json"
    path.write_text("not json", encoding="utf-8")

    main(["analyze", "--file", str(path)])

    out = capsys.readouterr().out

    assert "Quality score    : 0 / 100" in out


def test_repair(capsys):
    main(["repair", "--text", "{a: 'x'}", "--output", "json"])

    data = json.loads(capsys.readouterr().out)

    assert data["text"] == '{"a": "x"}'
    assert data["succeeded"] is True


def test_failed_repair_exits_non_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["repair", "--text", "@@@"])

    assert exc_info.value.code == 1
    assert "Repair failed" in capsys.readouterr().out


def test_convert_to_csv(capsys):
    main(["convert", "--text", '[{"a": 1}]', "--to", "csv"])

    assert capsys.readouterr().out.splitlines() == ["a", "1"]


def test_convert_shape_error(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["convert", "--text", "[1, 2]", "--to", "toml"])

    assert exc_info.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_schema_inference(capsys):
    main(["schema", "--text", '{"email": "ada@example.com"}', "--required"])

    schema = json.loads(capsys.readouterr().out)

    assert schema["required"] == ["email"]


def test_missing_input(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["analyze"])

    assert exc_info.value.code == 1
    assert "either --text or --file" in capsys.readouterr().err


def test_query(capsys):
    main(["query", "--text", '{"items": [{"id": 1}, {"id": 2}]}', "--path", "$.items[*].id"])

    assert json.loads(capsys.readouterr().out) == [1, 2]


def test_query_bad_path_exits_non_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["query", "--text", '{"a": 1}', "--path", "$.[[["])

    assert exc_info.value.code == 1
    assert "JSONPath query failed" in capsys.readouterr().err
