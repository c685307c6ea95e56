import gzip
import bz2
import lzma
import re
import statistics
from collections import Counter
from functools import lru_cache

import regex
from pygrok import Grok

from .errors import PatternValidationError
from .log_core import FieldStats
from .timestamp_patterns import TIMESTAMP_FORMATS

import logging

logger = logging.getLogger(__name__)


class CompressionHandler:

    OPENERS = {".gz": gzip.open, ".bz2": bz2.open, ".xz": lzma.open, ".lzma": lzma.open}

    @classmethod
    def read_sample(cls, filepath, max_lines):
        """Read up to ``max_lines`` decoded lines, returning the sample text."""
        opener = cls.OPENERS.get(filepath.suffix.lower(), open)
        lines = []
        try:
            with opener(filepath, "rt", encoding="utf-8", errors="ignore") as f:
                for line in f:
                    if len(lines) >= max_lines:
                        break
                    lines.append(line.rstrip("\n\r"))
        except OSError as e:
            logger.error(f"Error reading file {filepath}: {e}")
            raise
        return "\n".join(lines) + ("\n" if lines else ""), len(lines)


@lru_cache(maxsize=256)
def _compile_grok(grok_pattern, definitions):
    # (?s) so GREEDYDATA and friends span the lines of multi-line messages
    return Grok("(?s)" + grok_pattern, custom_patterns=dict(definitions))


class GrokCompiler:

    @staticmethod
    def compile(grok_pattern, custom_definitions=None):
        definitions = tuple(sorted((custom_definitions or {}).items()))
        try:
            return _compile_grok(grok_pattern, definitions)
        except KeyError as e:
            raise PatternValidationError(
                f"Grok pattern [{grok_pattern}] references unknown pattern {e}",
                details={"grok_pattern": grok_pattern},
            ) from e
        except regex.error as e:
            raise PatternValidationError(
                f"Grok pattern [{grok_pattern}] is not a valid regular expression: {e}",
                details={"grok_pattern": grok_pattern},
            ) from e

    @staticmethod
    def capture_names(grok):
        return set(grok.regex_obj.groupindex)

    @staticmethod
    def match(grok, text):
        """Captures when ``grok`` matches the whole of ``text``, else None."""
        match_obj = grok.regex_obj.fullmatch(text)
        if match_obj is None:
            return None
        return match_obj.groupdict()


class MappingTypeGuesser:

    KEYWORD_MAX_LEN = 256
    KEYWORD_MAX_SPACES = 5

    _IPV4 = re.compile(r"^(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)$")
    _LONG = re.compile(r"^[+-]?\d+$")
    _DOUBLE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")

    @classmethod
    def guess_type(cls, values):
        values = [value for value in values if value is not None]
        if not values:
            return "keyword"

        if all(value in ("true", "false") for value in values):
            return "boolean"
        if all(cls._LONG.match(value) for value in values):
            return "long"
        if all(cls._DOUBLE.match(value) for value in values):
            return "double"
        if all(cls._IPV4.match(value) for value in values):
            return "ip"
        if all(cls._is_timestamp(value) for value in values):
            return "date"
        if any(cls._is_text(value) for value in values):
            return "text"
        return "keyword"

    @classmethod
    def _is_text(cls, value):
        return len(value) > cls.KEYWORD_MAX_LEN or value.count(" ") > cls.KEYWORD_MAX_SPACES

    @staticmethod
    def _is_timestamp(value):
        for timestamp_format in TIMESTAMP_FORMATS:
            if timestamp_format.is_epoch:
                continue
            match = timestamp_format.strict_pattern.fullmatch(value)
            if match and timestamp_format.parse(value) is not None:
                return True
        return False


class FieldStatsCalculator:

    MAX_TOP_HITS = 10

    def __init__(self, timeout_checker=None):
        self.timeout_checker = timeout_checker

    def calculate(self, values) -> FieldStats:
        values = [value for value in values if value is not None]
        if self.timeout_checker is not None:
            self.timeout_checker.check("field stats calculation")

        counts = Counter(values)
        top_hits = [
            {"value": value, "count": count}
            for value, count in counts.most_common(self.MAX_TOP_HITS)
        ]

        numbers = self._as_numbers(values)
        if numbers:
            return FieldStats(
                count=len(values),
                cardinality=len(counts),
                top_hits=top_hits,
                min_value=min(numbers),
                max_value=max(numbers),
                mean_value=statistics.mean(numbers),
                median_value=statistics.median(numbers),
            )

        return FieldStats(count=len(values), cardinality=len(counts), top_hits=top_hits)

    @staticmethod
    def _as_numbers(values):
        if not values:
            return []
        numbers = []
        for value in values:
            try:
                numbers.append(float(value))
            except (TypeError, ValueError):
                return []
        return numbers


def make_ingest_pipeline_definition(
    grok_pattern,
    custom_grok_pattern_definitions,
    timestamp_field,
    timestamp_formats,
    need_client_timezone,
):
    """Describe the downstream processors that apply the inferred structure."""
    if grok_pattern is None and timestamp_field is None:
        return None

    processors = []
    if grok_pattern is not None:
        grok_processor = {"field": "message", "patterns": [grok_pattern]}
        if custom_grok_pattern_definitions:
            grok_processor["pattern_definitions"] = dict(custom_grok_pattern_definitions)
        processors.append({"grok": grok_processor})

    if timestamp_field is not None:
        date_processor = {"field": timestamp_field, "formats": list(timestamp_formats)}
        if need_client_timezone:
            date_processor["timezone"] = "{{ event.timezone }}"
        processors.append({"date": date_processor})
        processors.append({"remove": {"field": timestamp_field}})

    return {
        "description": "Ingest pipeline created by log structure finder",
        "processors": processors,
    }
