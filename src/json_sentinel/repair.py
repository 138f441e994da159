"""Heuristic repair of near-JSON text with an optional remote fallback."""

import logging
import re
from bisect import bisect_right
from datetime import datetime, timezone

from .errors import ParseError, RepairUnavailable
from .model import RepairResult
from .remote import build_repair_service
from .utils import parse_json

logger = logging.getLogger(__name__)


# -------------------------------------------------------
# Literal scanning
# -------------------------------------------------------

_QUOTE_OPENERS = "{[,:(+"


class _Literals:
    """String literals and comments of a text, as sorted spans.

    A span is ``(start, end, kind, closed)`` where kind is ``"`` or ``'``
    for strings and ``comment`` for comments.
    """

    def __init__(self, text):
        self.text = text
        self.spans = _scan_literals(text)
        self.starts = [span[0] for span in self.spans]

    def is_code(self, pos):
        index = bisect_right(self.starts, pos) - 1
        if index < 0:
            return True
        start, end, _kind, _closed = self.spans[index]
        return pos == start or pos >= end

    def segments(self):
        """Yield ``(start, end, span)``; span is None for code segments."""
        pos = 0
        for span in self.spans:
            if span[0] > pos:
                yield pos, span[0], None
            yield span[0], span[1], span
            pos = span[1]
        if pos < len(self.text):
            yield pos, len(self.text), None

    def code_has(self, chars):
        for start, end, span in self.segments():
            if span is None:
                for ch in self.text[start:end]:
                    if ch in chars:
                        return True
        return False


def _previous_code_char(text, pos):
    index = pos - 1
    while index >= 0 and text[index] in " \t\r":
        index -= 1
    if index < 0:
        return ""
    return text[index]


def _scan_literals(text):
    spans = []
    n = len(text)
    i = 0

    while i < n:
        ch = text[i]

        if ch == '"' or (ch == "'" and _previous_code_char(text, i) in ("", "\n") + tuple(_QUOTE_OPENERS)):
            j = i + 1
            while j < n and text[j] != ch:
                if text[j] == "\\":
                    j += 1
                j += 1
            closed = j < n
            end = min(j + 1, n)
            spans.append((i, end, ch, closed))
            i = end
        elif text.startswith("//", i) and (i == 0 or text[i - 1] != ":"):
            newline = text.find("\n", i)
            end = n if newline == -1 else newline
            spans.append((i, end, "comment", True))
            i = end
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            end = n if close == -1 else close + 2
            spans.append((i, end, "comment", close != -1))
            i = end
        else:
            i += 1

    return spans


def _sub_code(pattern, repl, text):
    """``pattern.sub`` restricted to matches that start outside literals."""
    literals = _Literals(text)

    def replace(match):
        if not literals.is_code(match.start()):
            return match.group(0)
        if callable(repl):
            return repl(match)
        return match.expand(repl)

    return pattern.sub(replace, text)


def _map_code(text, fn):
    literals = _Literals(text)
    parts = []
    for start, end, span in literals.segments():
        chunk = text[start:end]
        if span is None:
            chunk = fn(chunk)
        parts.append(chunk)
    return "".join(parts)


def _has_stray_escapes(literals):
    return literals.code_has("\\")


def _to_double_quoted(literal, quote, closed):
    inner = literal[1:-1] if closed and len(literal) >= 2 else literal[1:]
    out = []
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner):
            nxt = inner[i + 1]
            if nxt == "'":
                out.append("'")
            else:
                out.append(ch + nxt)
            i += 2
            continue
        if ch == '"' and quote == "'":
            out.append('\\"')
        else:
            out.append(ch)
        i += 1
    return '"' + "".join(out) + '"'


# -------------------------------------------------------
# Rules
# -------------------------------------------------------

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"(?<![\w$])([A-Za-z_$][\w$]*)([ \t]*):(?!//)")
_BARE_VALUE = re.compile(
    r"(:[ \t]*)([A-Za-z][A-Za-z0-9_\- \t]*[A-Za-z0-9_]|[A-Za-z])(?=[ \t]*(?:[,}\]\n]|\Z))"
)
_UNDEFINED = re.compile(r"(?<![\w$])(undefined|NaN)(?![\w$])")
_CONCATENATION = re.compile(r'"((?:[^"\\]|\\.)*)"\s*\+\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_CONSTRUCTOR = re.compile(r"(?<![\w$])new\s+([A-Za-z_$][\w$.]*)\s*\(")
_QUOTED_LITERAL = re.compile(r'(:\s*)"(true|false|null)"(?=\s*(?:[,}\]]|\Z))')
_QUOTED_NUMBER = re.compile(r'(:\s*)"((?:0|[1-9]\d*)(?:\.\d+)?)"(?=\s*(?:[,}\]]|\Z))')
_ADJACENT_OBJECTS = re.compile(r"\}(\s*)\{")
_ADJACENT_ARRAYS = re.compile(r"\](\s*)\[")
_FOREIGN_LITERAL = re.compile(r"(?<![\w$])(True|False|None)(?![\w$])")
_DUPLICATE_COMMAS = re.compile(r",(?:\s*,)+")
_LEADING_COMMA = re.compile(r"([\[{])\s*,")
_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?$")

_RESERVED_WORDS = {"true", "false", "null", "undefined", "NaN", "Infinity", "True", "False", "None"}
_FOREIGN_VALUES = {"True": "true", "False": "false", "None": "null"}


def remove_trailing_commas(text):
    return _sub_code(_TRAILING_COMMA, r"\1", text)


def quote_object_keys(text):
    def replace(match):
        if _previous_code_char(text, match.start()) not in ("", "{", ",", "\n"):
            return match.group(0)
        return '"{}"{}:'.format(match.group(1), match.group(2))

    return _sub_code(_BARE_KEY, replace, text)


def convert_single_quotes(text):
    literals = _Literals(text)
    parts = []
    pos = 0
    for start, end, kind, closed in literals.spans:
        if kind != "'":
            continue
        parts.append(text[pos:start])
        parts.append(_to_double_quoted(text[start:end], kind, closed))
        pos = end
    parts.append(text[pos:])
    return "".join(parts)


def quote_bare_values(text):
    def replace(match):
        word = match.group(2).strip()
        if word in _RESERVED_WORDS:
            return match.group(0)
        return '{}"{}"'.format(match.group(1), word)

    return _sub_code(_BARE_VALUE, replace, text)


def strip_comments(text):
    literals = _Literals(text)
    parts = []
    pos = 0
    for start, end, kind, _closed in literals.spans:
        if kind != "comment":
            continue
        parts.append(text[pos:start])
        pos = end
    parts.append(text[pos:])
    return "".join(parts)


def replace_undefined(text):
    return _sub_code(_UNDEFINED, "null", text)


def _balance(text, opener, closer):
    literals = _Literals(text)

    # escaped JSON is handled by fix_escaped_quotes; counting is meaningless here
    if _has_stray_escapes(literals):
        return text

    other_opener = "[" if opener == "{" else "{"
    other_closer = "]" if closer == "}" else "}"

    stack = []
    missing_openers = 0
    parts = []

    for start, end, span in literals.segments():
        chunk = text[start:end]
        if span is not None:
            parts.append(chunk)
            continue

        for ch in chunk:
            if ch == opener or ch == other_opener:
                stack.append(ch)
            elif ch == closer:
                if opener in stack:
                    while stack.pop() != opener:
                        pass
                else:
                    missing_openers += 1
            elif ch == other_closer and other_opener in stack:
                while stack[-1] == opener:
                    parts.append(closer)
                    stack.pop()
                stack.pop()
            parts.append(ch)

    missing_closers = stack.count(opener)
    if missing_closers:
        last = literals.spans[-1] if literals.spans else None
        if last is not None and last[1] == len(text) and last[2] == '"' and not last[3]:
            parts.append('"')
        parts.append(closer * missing_closers)

    fixed = "".join(parts)
    if missing_openers and not fixed.startswith(opener):
        fixed = opener * missing_openers + fixed

    return fixed


def balance_braces(text):
    return _balance(text, "{", "}")


def balance_brackets(text):
    return _balance(text, "[", "]")


def insert_missing_colons(text):
    literals = _Literals(text)
    stack = []
    previous = ""
    strings = []  # (start, end, container, previous char)

    for start, end, span in literals.segments():
        if span is None:
            for ch in text[start:end]:
                if ch in "{[":
                    stack.append(ch)
                elif ch in "}]" and stack:
                    stack.pop()
                if not ch.isspace():
                    previous = ch
        elif span[2] == '"':
            container = stack[-1] if stack else ""
            strings.append((start, end, container, previous, span[3]))
            previous = '"'

    fixed = text
    for index in range(len(strings) - 2, -1, -1):
        start, end, container, before, closed = strings[index]
        next_start = strings[index + 1][0]
        gap = text[end:next_start]
        if not closed or gap.strip() or container != "{" or before not in ("{", ","):
            continue
        fixed = fixed[:end] + ": " + fixed[next_start:]

    return fixed


def merge_concatenated_strings(text):
    previous = None
    while previous != text:
        previous = text
        text = _sub_code(_CONCATENATION, lambda m: '"{}{}"'.format(m.group(1), m.group(2)), text)
    return text


def _matching_paren(text, literals, pos):
    depth = 1
    i = pos
    while i < len(text):
        index = bisect_right(literals.starts, i) - 1
        if index >= 0 and literals.spans[index][0] <= i < literals.spans[index][1]:
            i = literals.spans[index][1]
            continue
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _constructor_literal(name, args):
    if name != "Date" or not args:
        return "null"

    if len(args) >= 2 and args[0] == args[-1] and args[0] in "\"'":
        return _to_double_quoted(args, args[0], True)

    if _NUMBER.match(args):
        try:
            moment = datetime.fromtimestamp(float(args) / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return "null"
        return '"{}Z"'.format(moment.replace(tzinfo=None).isoformat(timespec="milliseconds"))

    return "null"


def replace_constructors(text):
    literals = _Literals(text)
    parts = []
    pos = 0

    for match in _CONSTRUCTOR.finditer(text):
        if match.start() < pos or not literals.is_code(match.start()):
            continue
        close = _matching_paren(text, literals, match.end())
        if close is None:
            continue
        args = text[match.end():close].strip()
        parts.append(text[pos:match.start()])
        parts.append(_constructor_literal(match.group(1), args))
        pos = close + 1

    parts.append(text[pos:])
    return "".join(parts)


def unquote_literals(text):
    return _sub_code(_QUOTED_LITERAL, r"\1\2", text)


def unquote_numbers(text):
    return _sub_code(_QUOTED_NUMBER, r"\1\2", text)


def fix_escaped_quotes(text):
    if not _has_stray_escapes(_Literals(text)):
        return text
    return text.replace('\\"', '"')


def insert_missing_commas(text):
    text = _sub_code(_ADJACENT_OBJECTS, r"},\1{", text)
    return _sub_code(_ADJACENT_ARRAYS, r"],\1[", text)


def translate_foreign_literals(text):
    return _sub_code(_FOREIGN_LITERAL, lambda m: _FOREIGN_VALUES[m.group(1)], text)


def _normalize_code(chunk):
    chunk = _DUPLICATE_COMMAS.sub(",", chunk)
    chunk = _LEADING_COMMA.sub(r"\1", chunk)
    chunk = _TRAILING_COMMA.sub(r"\1", chunk)
    return _WHITESPACE.sub(" ", chunk)


def normalize_commas_and_whitespace(text):
    text = _map_code(text, _normalize_code).strip()
    while text.endswith(",") and _Literals(text).is_code(len(text) - 1):
        text = text[:-1].rstrip()
    return text


def wrap_in_braces(text):
    if not text or text[0] in "{[" or _NUMBER.match(text):
        return text
    if not _Literals(text).code_has(":"):
        return text
    return "{" + text + "}"


RULES = [
    ("Removed trailing commas", remove_trailing_commas),
    ("Added quotes to object keys", quote_object_keys),
    ("Converted single quotes to double quotes", convert_single_quotes),
    ("Added quotes to string values", quote_bare_values),
    ("Removed JavaScript comments", strip_comments),
    ("Converted undefined/NaN to null", replace_undefined),
    ("Balanced braces", balance_braces),
    ("Balanced brackets", balance_brackets),
    ("Added missing colons", insert_missing_colons),
    ("Merged concatenated strings", merge_concatenated_strings),
    ("Converted constructor calls to valid JSON", replace_constructors),
    ("Fixed quoted boolean/null values", unquote_literals),
    ("Unquoted numeric values", unquote_numbers),
    ("Fixed escaped quotes", fix_escaped_quotes),
    ("Added missing commas between elements", insert_missing_commas),
    ("Converted Python literals to JSON", translate_foreign_literals),
    ("Normalized commas and whitespace", normalize_commas_and_whitespace),
    ("Wrapped properties in object braces", wrap_in_braces),
]


# -------------------------------------------------------
# Engine
# -------------------------------------------------------


def apply_rules(text, rules=None):
    """Run every rule once, in order. Returns ``(text, labels)``."""
    if rules is None:
        rules = RULES

    applied = []
    for label, rule in rules:
        fixed = rule(text)
        if fixed != text:
            applied.append(label)
            text = fixed

    return text, applied


def _parses(text):
    try:
        parse_json(text)
    except ParseError:
        return False
    return True


class RepairEngine:
    def __init__(self, config=None, service=None):
        self.config = config or {}
        self.service = service

        if self.service is None and self.config.get("repair_endpoint"):
            self.service = build_repair_service(self.config)

    def repair(self, text):
        stripped = text.strip()

        if not stripped:
            return RepairResult(text="", rules_applied=[], succeeded=False, source=None)

        if _parses(stripped):
            return RepairResult(text=stripped, rules_applied=[], succeeded=True, source="none")

        fixed, applied = apply_rules(stripped)

        if _parses(fixed):
            logger.info("Repaired locally: %s", ", ".join(applied))
            return RepairResult(text=fixed, rules_applied=applied, succeeded=True, source="local")

        if self.service is None:
            logger.debug("Local repair failed and no repair service is configured")
            return RepairResult(text=fixed, rules_applied=applied, succeeded=False, source="local")

        return self._repair_remotely(stripped, fixed, applied)

    def _repair_remotely(self, original, fixed, applied):
        logger.info("Local repair failed, asking the repair service")

        try:
            remote_text = self.service.request(original)
        except RepairUnavailable as exc:
            logger.warning("Repair service unavailable: %s", exc)
            return RepairResult(
                text=fixed,
                rules_applied=applied,
                succeeded=False,
                source="local",
                error=str(exc),
            )

        remote_text = remote_text.strip()
        if not _parses(remote_text):
            logger.warning("Repair service returned text that does not parse")
            return RepairResult(
                text=fixed,
                rules_applied=applied,
                succeeded=False,
                source="local",
                error="Repair service returned invalid JSON",
            )

        # local labels do not describe the remote text
        return RepairResult(text=remote_text, rules_applied=[], succeeded=True, source="remote")


def repair(text, service=None, config=None):
    engine = RepairEngine(config=config, service=service)
    return engine.repair(text)
