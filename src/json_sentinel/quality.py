import logging
from collections import Counter
from datetime import datetime

from .model import DataQualityReport
from .utils import (
    canonical,
    clamp_ratio,
    is_container,
    is_date,
    is_email,
    is_url,
    key_matches,
    to_int,
    type_tag,
    walk,
)

logger = logging.getLogger(__name__)

# each finding costs this much of its ratio
FINDING_WEIGHT = 0.1


class DataQualityScanner:
    """
    Computes completeness, consistency, validity and accuracy of a value.

    Every ratio comes from its own traversal and is capped to [0, 1]. The
    anomaly list is a short sample for display; the ratios use the full
    counts.
    """

    def __init__(self, config=None):
        self.config = config or {}

    def scan(self, value):
        if value is None or (isinstance(value, str) and value == ""):
            return DataQualityReport(
                completeness=0.0,
                consistency=0.0,
                validity=0.0,
                accuracy=0.0,
                duplicate_count=0,
                anomalies=[],
            )

        missing, total = self._count_missing(value)
        completeness = 1.0
        if total > 0:
            completeness = clamp_ratio(1 - missing / total)

        inconsistencies = self._find_inconsistencies(value)
        invalid_formats = self._find_invalid_formats(value)
        inaccuracies = self._find_inaccuracies(value)

        duplicates = 0
        if isinstance(value, list):
            duplicates = self._count_duplicates(value)

        sample_size = int(self.config.get("anomaly_sample_size", 5))
        anomalies = (inconsistencies + invalid_formats + inaccuracies)[:sample_size]

        return DataQualityReport(
            completeness=completeness,
            consistency=clamp_ratio(1 - len(inconsistencies) * FINDING_WEIGHT),
            validity=clamp_ratio(1 - len(invalid_formats) * FINDING_WEIGHT),
            accuracy=clamp_ratio(1 - len(inaccuracies) * FINDING_WEIGHT),
            duplicate_count=duplicates,
            anomalies=anomalies,
        )

    # -------------------------------------------------------
    # Completeness
    # -------------------------------------------------------

    def _count_missing(self, value):
        missing = 0
        total = 0

        for node in walk(value):
            if is_container(node.value):
                continue
            total += 1
            if node.value is None or node.value == "":
                missing += 1

        return missing, total

    # -------------------------------------------------------
    # Consistency
    # -------------------------------------------------------

    def _find_inconsistencies(self, value):
        inconsistencies = []

        for node in walk(value):
            if not isinstance(node.value, list) or len(node.value) < 2:
                continue

            items = node.value
            present = [item for item in items if item is not None]
            if not present:
                continue

            first_type = type_tag(present[0])
            for index, item in enumerate(items):
                if item is None:
                    continue
                item_type = type_tag(item)
                if item_type != first_type:
                    inconsistencies.append(
                        "Type inconsistency at {}[{}]: expected {}, got {}".format(
                            node.path, index, first_type, item_type
                        )
                    )

            if first_type != "object":
                continue

            first_keys = sorted(present[0].keys())
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    continue
                if sorted(item.keys()) != first_keys:
                    inconsistencies.append(
                        "Structure inconsistency at {}[{}]: fields don't match other array items".format(
                            node.path, index
                        )
                    )

        return inconsistencies

    # -------------------------------------------------------
    # Validity
    # -------------------------------------------------------

    def _find_invalid_formats(self, value):
        invalid = []

        email_hints = self.config.get("email_key_hints", ["email"])
        url_hints = self.config.get("url_key_hints", ["url", "link", "website"])
        date_hints = self.config.get("date_key_hints", ["date", "time"])
        date_formats = self.config.get("date_formats", [])

        for node in walk(value):
            if node.key is None or not isinstance(node.value, str):
                continue

            key = node.key
            text = node.value

            if key_matches(key, email_hints):
                if not is_email(text):
                    invalid.append("Invalid email format at {}: {}".format(node.path, text))
            elif key_matches(key, url_hints):
                if not is_url(text):
                    invalid.append("Invalid URL format at {}: {}".format(node.path, text))
            elif key_matches(key, date_hints):
                if not is_date(text, date_formats):
                    invalid.append("Invalid date format at {}: {}".format(node.path, text))
            elif "@" in text and "." in text:
                if not is_email(text):
                    invalid.append("Possible invalid email at {}: {}".format(node.path, text))
            elif text.startswith("http"):
                if not is_url(text):
                    invalid.append("Possible invalid URL at {}: {}".format(node.path, text))

        return invalid

    # -------------------------------------------------------
    # Accuracy
    # -------------------------------------------------------

    def _current_year(self):
        year = to_int(self.config.get("current_year"))
        if year is None:
            year = datetime.now().year
        return year

    def _find_inaccuracies(self, value):
        inaccuracies = []

        age_hints = self.config.get("age_key_hints", ["age"])
        age_low, age_high = self.config.get("age_range", [0, 120])
        year_hints = self.config.get("year_key_hints", ["year"])
        year_low = self.config.get("year_min", 1900)
        year_high = self._current_year() + self.config.get("year_future_window", 10)
        percent_hints = self.config.get("percent_key_hints", ["percent", "rate"])
        percent_low, percent_high = self.config.get("percent_range", [0, 100])
        max_length = self.config.get("max_string_length", 10000)

        for node in walk(value):
            if node.key is None:
                continue

            key = node.key
            item = node.value

            if isinstance(item, (int, float)) and not isinstance(item, bool):
                if key_matches(key, age_hints):
                    if item < age_low or item > age_high:
                        inaccuracies.append("Suspicious age value at {}: {}".format(node.path, item))
                elif key_matches(key, year_hints):
                    if item < year_low or item > year_high:
                        inaccuracies.append("Suspicious year value at {}: {}".format(node.path, item))
                elif key_matches(key, percent_hints) or key.endswith("%"):
                    if item < percent_low or item > percent_high:
                        inaccuracies.append("Suspicious percentage at {}: {}".format(node.path, item))
            elif isinstance(item, str) and len(item) > max_length:
                inaccuracies.append("Unusually long string at {}: {} chars".format(node.path, len(item)))

        return inaccuracies

    # -------------------------------------------------------
    # Duplicates
    # -------------------------------------------------------

    def _count_duplicates(self, items):
        """
        Primitives: every value already seen counts once. Containers: every
        pair of equal items counts once, i.e. k*(k-1)/2 for a group of k.
        """
        if all(not is_container(item) for item in items):
            seen = set()
            count = 0
            for item in items:
                key = canonical(item)
                if key in seen:
                    count += 1
                seen.add(key)
            return count

        groups = Counter(canonical(item) for item in items)
        count = 0
        for size in groups.values():
            count += size * (size - 1) // 2
        return count
