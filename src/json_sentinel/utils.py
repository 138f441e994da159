import json
import math
import re
from collections import namedtuple
from datetime import datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

from .errors import ParseError


ROOT_PATH = "$"

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_NETWORK_SCHEMES = ("http", "https", "ftp", "ws", "wss")

Node = namedtuple("Node", ["path", "key", "value", "depth"])

_ENTER = object()
_EXIT = object()


def to_int(value):
    """
    Try to convert a value to int. Return None if it fails.
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def round_half_up(value):
    """Round .5 away from zero for positive numbers (``round`` rounds to even)."""
    return int(math.floor(value + 0.5))


def clamp_ratio(value):
    return max(0.0, min(1.0, value))


def type_tag(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def is_container(value):
    return isinstance(value, (dict, list, tuple))


def child_path(path, key):
    if isinstance(key, int):
        return "{}[{}]".format(path, key)
    if _IDENTIFIER.match(key):
        return "{}.{}".format(path, key)
    return "{}[{}]".format(path, json.dumps(key, ensure_ascii=False))


def children(path, value):
    """Return ``(child_path, key, child)`` triples of a container, in order."""
    if isinstance(value, dict):
        return [(child_path(path, str(k)), str(k), v) for k, v in value.items()]
    return [(child_path(path, i), None, v) for i, v in enumerate(value)]


def walk(value, path=ROOT_PATH):
    """
    Yield a Node for every value inside ``value`` (pre-order, depth first).

    A container that is reached again while it is still being traversed
    (a reference cycle) is skipped, so the walk always terminates. Shared
    but acyclic references are yielded once per path that reaches them.
    """
    on_stack = set()
    stack = [(_ENTER, Node(path, None, value, 0))]

    while stack:
        action, node = stack.pop()

        if action is _EXIT:
            on_stack.discard(id(node.value))
            continue

        if not is_container(node.value):
            yield node
            continue

        if id(node.value) in on_stack:
            continue

        yield node
        on_stack.add(id(node.value))
        stack.append((_EXIT, node))

        items = children(node.path, node.value)
        for item_path, key, item in reversed(items):
            stack.append((_ENTER, Node(item_path, key, item, node.depth + 1)))


def canonical(value):
    """
    Deterministic string form of a JSON value, used for equality checks.
    Values holding a reference cycle, or nested deeper than the encoder
    allows, get an identity-based form.
    """
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    except (ValueError, RecursionError):
        return "<unencodable:{}>".format(id(value))


def serialized_size(value):
    try:
        text = json.dumps(value, ensure_ascii=False, default=str)
    except (ValueError, RecursionError):
        return 0
    return len(text.encode("utf-8"))


def is_email(text):
    return bool(_EMAIL.match(text))


def is_url(text):
    """Loose absolute-URL check: a scheme followed by something addressable."""
    if not _SCHEME.match(text):
        return False
    if any(ch.isspace() for ch in text):
        return False

    try:
        parsed = urlparse(text)
    except ValueError:
        return False

    if parsed.scheme.lower() in _NETWORK_SCHEMES:
        return bool(parsed.netloc)

    return bool(parsed.netloc or parsed.path)


def is_date(text, formats=()):
    candidate = text.strip()
    if not candidate:
        return False

    iso_candidate = candidate
    if iso_candidate[-1] in "Zz":
        iso_candidate = iso_candidate[:-1] + "+00:00"
    try:
        datetime.fromisoformat(iso_candidate)
        return True
    except ValueError:
        pass

    try:
        parsedate_to_datetime(candidate)
        return True
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in formats:
        try:
            datetime.strptime(candidate, fmt)
            return True
        except ValueError:
            continue

    return False


def key_matches(key, hints):
    """Case-insensitive substring match of ``key`` against any hint."""
    lowered = key.lower()
    for hint in hints:
        if hint.lower() in lowered:
            return True
    return False


def plural(count, singular, plural_form=None):
    if count == 1:
        return singular
    if plural_form is not None:
        return plural_form
    return singular + "s"


def _reject_constant(name):
    raise ValueError("Invalid JSON literal: {}".format(name))


def parse_json(text):
    """
    Strict JSON decoding: NaN/Infinity are rejected like any other
    non-JSON literal. Raises ParseError with the line and column.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise ParseError(str(exc), line=exc.lineno, column=exc.colno) from exc
    except ValueError as exc:
        raise ParseError(str(exc)) from exc
    except RecursionError as exc:
        raise ParseError("Maximum nesting depth exceeded") from exc
