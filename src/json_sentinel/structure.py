"""Structural analysis of a decoded JSON value."""

import enum
import logging
from collections import Counter

from .model import StructuralAnalysis
from .utils import ROOT_PATH, child_path, children, type_tag

logger = logging.getLogger(__name__)


class VisitState(enum.Enum):
    UNVISITED = 0
    ON_STACK = 1
    DONE = 2


_ENTER = "enter"
_EXIT = "exit"


class StructuralAnalyzer:
    def analyze(self, value):
        depth = 0
        key_count = 0
        object_count = 0
        array_count = 0
        primitive_count = 0
        null_count = 0
        empty_count = 0
        histogram = Counter()
        circular_paths = []
        duplicate_key_paths = []

        states = {}
        stack = [(_ENTER, ROOT_PATH, value, 0)]

        while stack:
            action, path, current, level = stack.pop()

            if action == _EXIT:
                states[id(current)] = VisitState.DONE
                continue

            depth = max(depth, level)

            if not isinstance(current, (dict, list, tuple)):
                primitive_count += 1
                histogram[type_tag(current)] += 1
                if current is None:
                    null_count += 1
                elif current == "":
                    empty_count += 1
                continue

            # only an ancestor is a cycle; shared siblings are DONE by now
            state = states.get(id(current), VisitState.UNVISITED)
            if state is VisitState.ON_STACK:
                logger.debug("Reference cycle at %s", path)
                circular_paths.append(path)
                continue

            states[id(current)] = VisitState.ON_STACK
            histogram[type_tag(current)] += 1

            if isinstance(current, dict):
                object_count += 1
                key_count += len(current)
                duplicate_key_paths.extend(self._duplicate_keys(path, current))
            else:
                array_count += 1

            stack.append((_EXIT, path, current, level))
            for item_path, _key, item in reversed(children(path, current)):
                stack.append((_ENTER, item_path, item, level + 1))

        return StructuralAnalysis(
            depth=depth,
            key_count=key_count,
            object_count=object_count,
            array_count=array_count,
            primitive_count=primitive_count,
            null_count=null_count,
            empty_count=empty_count,
            type_histogram=dict(histogram),
            circular_paths=circular_paths,
            duplicate_key_paths=duplicate_key_paths,
        )

    def _duplicate_keys(self, path, obj):
        seen = set()
        duplicates = []

        for key in obj.keys():
            lowered = str(key).lower()
            if lowered in seen:
                duplicates.append(child_path(path, lowered))
            seen.add(lowered)

        return duplicates
