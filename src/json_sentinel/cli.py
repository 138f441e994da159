import argparse
import json
import logging
import sys

from . import __version__
from .analyzer import JsonAnalyzer, result_to_json_dict
from .config import load_config
from .convert import FORMATS, convert
from .errors import ConversionError, ParseError, QueryError, SchemaDefinitionError
from .repair import RepairEngine
from .schema import infer_schema
from .utils import parse_json


def _fail(message):
    print("Error: {}".format(message), file=sys.stderr)
    sys.exit(1)


def _read_file(path):
    if path == "-":
        return sys.stdin.read()

    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as exc:
        _fail("could not read file: {}".format(exc))


def _load_input_from_args(args):
    if args.text is not None:
        return args.text

    if args.file is not None:
        return _read_file(args.file)

    _fail("either --text or --file must be provided.")


def _load_schema_from_args(args):
    if args.schema is None:
        return None

    try:
        return parse_json(_read_file(args.schema))
    except ParseError as exc:
        _fail("schema file is not valid JSON: {}".format(exc))


def _format_text_report(result):
    lines = []

    lines.append("JSON Quality Report")
    lines.append("===================")
    lines.append("")

    breakdown = result.score_breakdown
    lines.append("Valid            : {}".format(result.is_valid))
    lines.append("Quality score    : {} / 100".format(breakdown.final_score))
    lines.append("")
    lines.append(breakdown.summary)
    lines.append("")

    if result.structure is not None:
        structure = result.structure
        lines.append("Structure:")
        lines.append("  depth={} keys={} objects={} arrays={} primitives={} nulls={} empty={}".format(
            structure.depth,
            structure.key_count,
            structure.object_count,
            structure.array_count,
            structure.primitive_count,
            structure.null_count,
            structure.empty_count,
        ))
        lines.append("")

    quality = result.data_quality
    lines.append("Data quality:")
    lines.append("  completeness={:.2f} consistency={:.2f} validity={:.2f} accuracy={:.2f} duplicates={}".format(
        quality.completeness,
        quality.consistency,
        quality.validity,
        quality.accuracy,
        quality.duplicate_count,
    ))
    for anomaly in quality.anomalies:
        lines.append("  - {}".format(anomaly))
    lines.append("")

    lines.append("Deductions:")
    if len(breakdown.deductions) == 0:
        lines.append("  None.")
    for deduction in breakdown.deductions:
        lines.append("  - [{}] -{} {} ({})".format(
            deduction.severity.upper(), deduction.impact, deduction.reason, deduction.category
        ))

    lines.append("Bonuses:")
    if len(breakdown.bonuses) == 0:
        lines.append("  None.")
    for bonus in breakdown.bonuses:
        lines.append("  - +{} {}".format(bonus.impact, bonus.reason))
    lines.append("")

    if result.errors:
        lines.append("Errors:")
        for error in result.errors:
            lines.append("  - {}: {} ({})".format(error.path, error.message, error.keyword))
        lines.append("")

    lines.append("Security issues:")
    if len(result.security_issues) == 0:
        lines.append("  None. No rules fired (this does not guarantee security).")
    else:
        for issue in result.security_issues:
            lines.append("  - [{}] {} (path={})".format(issue.severity.upper(), issue.message, issue.path))
            lines.append("      Recommendation: {}".format(issue.recommendation))
    lines.append("")

    if result.recommendations:
        lines.append("Recommendations:")
        for recommendation in result.recommendations:
            lines.append("  - {}".format(recommendation))

    text = "\n".join(lines)
    return text


def _format_repair_report(result):
    lines = []

    if result.succeeded:
        lines.append("Repair succeeded (source: {})".format(result.source))
    else:
        lines.append("Repair failed")

    if result.rules_applied:
        lines.append("Rules applied: {}".format(", ".join(result.rules_applied)))
    if result.error:
        lines.append("Repair service: {}".format(result.error))

    lines.append("")
    lines.append(result.text)

    text = "\n".join(lines)
    return text


# -------------------------------------------------------
# Commands
# -------------------------------------------------------


def _run_analyze(args, config):
    text = _load_input_from_args(args)
    schema = _load_schema_from_args(args)

    analyzer = JsonAnalyzer(config)

    try:
        result = analyzer.analyze(text, schema=schema)
    except SchemaDefinitionError as exc:
        _fail(str(exc))

    if args.output == "json":
        data = result_to_json_dict(result)
        print(json.dumps(data, indent=2, sort_keys=True, default=str))
    else:
        print(_format_text_report(result))


def _run_repair(args, config):
    text = _load_input_from_args(args)

    if args.remote_url:
        config["repair_endpoint"] = args.remote_url

    engine = RepairEngine(config)
    result = engine.repair(text)

    if args.output == "json":
        print(json.dumps(result_to_json_dict(result), indent=2, sort_keys=True))
    else:
        print(_format_repair_report(result))

    if not result.succeeded:
        sys.exit(1)


def _run_convert(args, config):
    text = _load_input_from_args(args)

    try:
        value = parse_json(text)
    except ParseError as exc:
        _fail("input is not valid JSON: {}".format(exc))

    options = {}
    if args.to == "json":
        options = {"indent": args.indent, "sort_keys": args.sort_keys, "minify": args.minify}

    try:
        output = convert(value, args.to, **options)
    except ConversionError as exc:
        _fail(str(exc))

    sys.stdout.write(output)
    if not output.endswith("\n"):
        sys.stdout.write("\n")


def _run_query(args, config):
    text = _load_input_from_args(args)

    analyzer = JsonAnalyzer(config)

    try:
        matches = analyzer.query(text, args.path)
    except QueryError as exc:
        _fail(str(exc))

    print(json.dumps(matches, indent=2, ensure_ascii=False))


def _run_schema(args, config):
    text = _load_input_from_args(args)

    try:
        value = parse_json(text)
    except ParseError as exc:
        _fail("input is not valid JSON: {}".format(exc))

    schema = infer_schema(
        value,
        title=args.title,
        description=args.description,
        required=args.required,
        additional_properties=args.additional_properties,
    )
    print(json.dumps(schema, indent=2))


def _add_input_arguments(parser):
    parser.add_argument(
        "--text",
        help="JSON text to process.",
    )
    parser.add_argument(
        "--file",
        help="Path to a file containing the JSON text ('-' reads stdin).",
    )


def build_arg_parser():
    parser = argparse.ArgumentParser(
        prog="json-sentinel",
        description="Repair, analyse, score and convert JSON documents.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="json-sentinel {}".format(__version__),
    )

    parser.add_argument(
        "--config",
        help="Path to a JSON config file to override defaults.",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Defaults to WARNING.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Shortcut for --log-level DEBUG.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Analyse and score a JSON document.")
    _add_input_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--schema",
        help="Path to a JSON Schema to validate against.",
    )
    analyze_parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format. Defaults to 'text'.",
    )
    analyze_parser.set_defaults(handler=_run_analyze)

    repair_parser = subparsers.add_parser("repair", help="Repair malformed JSON.")
    _add_input_arguments(repair_parser)
    repair_parser.add_argument(
        "--remote-url",
        help="Repair service endpoint used when local heuristics fail.",
    )
    repair_parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format. Defaults to 'text'.",
    )
    repair_parser.set_defaults(handler=_run_repair)

    convert_parser = subparsers.add_parser("convert", help="Convert JSON to another format.")
    _add_input_arguments(convert_parser)
    convert_parser.add_argument(
        "--to",
        required=True,
        choices=FORMATS,
        help="Target format.",
    )
    convert_parser.add_argument("--indent", type=int, default=2, help="Indentation for JSON output.")
    convert_parser.add_argument("--sort-keys", action="store_true", help="Sort object keys (JSON output).")
    convert_parser.add_argument("--minify", action="store_true", help="Minify JSON output.")
    convert_parser.set_defaults(handler=_run_convert)

    schema_parser = subparsers.add_parser("schema", help="Infer a JSON Schema from a sample document.")
    _add_input_arguments(schema_parser)
    schema_parser.add_argument("--title", help="Schema title.")
    schema_parser.add_argument("--description", help="Schema description.")
    schema_parser.add_argument("--required", action="store_true", help="Mark non-null properties as required.")
    schema_parser.add_argument(
        "--additional-properties",
        action="store_true",
        help="Allow properties not present in the sample.",
    )
    schema_parser.set_defaults(handler=_run_schema)

    query_parser = subparsers.add_parser("query", help="Select values with a JSONPath expression.")
    _add_input_arguments(query_parser)
    query_parser.add_argument(
        "--path",
        required=True,
        help="JSONPath expression, e.g. '$.users[*].name'.",
    )
    query_parser.set_defaults(handler=_run_query)

    return parser


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else args.log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args.config)
    except Exception as exc:
        print("Error loading config: {}".format(exc), file=sys.stderr)
        sys.exit(1)

    args.handler(args, config)


if __name__ == "__main__":
    main()
