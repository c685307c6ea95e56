"""Grok pattern inference from a set of sample messages.

The creator first tries whole-message patterns for well known layouts. Failing
that it seeds a pattern with the timestamp, then repeatedly splits the text
either side of each recognised value (log levels, IPs, numbers, ...) until only
literal punctuation, generalised filler and a trailing free-text message
remain.
"""
import re
from functools import cached_property

from .errors import InternalInconsistencyError, PatternValidationError
from .line_patterns import FULL_LINE_PATTERNS
from .log_core import MAPPING_TYPE_SETTING, MESSAGE_FIELD
from .utils import FieldStatsCalculator, GrokCompiler, MappingTypeGuesser

import logging

logger = logging.getLogger(__name__)

PREFACE = "preface"
VALUE = "value"
EPILOGUE = "epilogue"

# Punctuation that can be matched literally between fields, mapped to whether
# it needs a backslash in a Grok pattern.
PUNCTUATION_OR_SPACE_NEEDS_ESCAPING = {
    '"': False,
    "'": False,
    "`": False,
    "(": True,
    ")": True,
    "[": True,
    "]": True,
    "{": True,
    "}": True,
    ",": False,
    ":": False,
    ";": False,
    "=": False,
    "|": True,
    " ": False,
    "\t": False,
}


def intermediate_regex(snippets):
    """Regex matching every snippet, keeping punctuation common to all of them.

    The last snippet drives the walk; its punctuation characters that occur (in
    order) in every other snippet become literals, everything else collapses to
    lazy wildcards.
    """
    if not snippets:
        return ""

    others = list(snippets)
    driver = others.pop()
    parts = []
    wildcard_required = True
    for ch in driver:
        needs_escaping = PUNCTUATION_OR_SPACE_NEEDS_ESCAPING.get(ch)
        if needs_escaping is not None and all(ch in other for other in others):
            if wildcard_required and any(other.index(ch) > 0 for other in others):
                parts.append(".*?")
            if needs_escaping:
                parts.append("\\")
            parts.append(ch)
            wildcard_required = True
            others = [other[other.index(ch) + 1 :] for other in others]
        elif wildcard_required:
            parts.append(".*?")
            wildcard_required = False

    if wildcard_required and any(others):
        parts.append(".*?")
    return "".join(parts)


class ValueOnlyGrokPatternCandidate:
    """A Grok pattern that matches a single value somewhere inside a snippet."""

    def __init__(
        self,
        grok_pattern_name,
        mapping_type,
        field_name,
        pre_break=r"\b",
        post_break=r"\b",
        custom_definitions=None,
    ):
        self.grok_pattern_name = grok_pattern_name
        self.mapping_type = mapping_type
        self.field_name = field_name
        self.pre_break = pre_break
        self.post_break = post_break
        self.custom_definitions = custom_definitions or {}

    @cached_property
    def grok(self):
        return GrokCompiler.compile(
            f"%{{DATA:{PREFACE}}}{self.pre_break}"
            f"%{{{self.grok_pattern_name}:{VALUE}}}{self.post_break}"
            f"%{{GREEDYDATA:{EPILOGUE}}}",
            self.custom_definitions,
        )

    def matches_all(self, snippets, creator):
        for snippet in snippets:
            creator.check_timeout()
            if GrokCompiler.match(self.grok, snippet) is None:
                return False
        return True

    def process_captures(self, creator, snippets, prefaces, epilogues):
        values = []
        for snippet in snippets:
            creator.check_timeout()
            captures = GrokCompiler.match(self.grok, snippet)
            if captures is None:
                raise InternalInconsistencyError(
                    f"Grok pattern %{{{self.grok_pattern_name}}} did not match "
                    f"[{snippet}] after matching all sample snippets",
                    explanation=creator.explanation,
                    details={"grok_pattern_name": self.grok_pattern_name, "snippet": snippet},
                )
            prefaces.append(captures[PREFACE])
            values.append(captures[VALUE])
            epilogues.append(captures[EPILOGUE])

        field_name = creator.unique_field_name(self.field_name)
        if self.mapping_type is not None:
            creator.record_field(field_name, self.mapping_type, values)
        return f"%{{{self.grok_pattern_name}:{field_name}}}"


class KeyValueGrokPatternCandidate:
    """Matches a ``key=value`` pair whose key is the same in every snippet."""

    _KEY_FINDER = re.compile(r"\b(\w+)=[\w.-]+")

    def __init__(self):
        self.field_name = None
        self.grok = None

    def matches_all(self, snippets, creator):
        if not snippets:
            return False
        candidate_keys = []
        for match in self._KEY_FINDER.finditer(snippets[0]):
            if match.group(1) not in candidate_keys:
                candidate_keys.append(match.group(1))

        for key in candidate_keys:
            creator.check_timeout()
            grok = GrokCompiler.compile(
                f"%{{DATA:{PREFACE}}}\\b{key}=%{{USER:{VALUE}}}%{{GREEDYDATA:{EPILOGUE}}}"
            )
            if all(GrokCompiler.match(grok, snippet) is not None for snippet in snippets):
                self.field_name = key
                self.grok = grok
                return True
        return False

    def process_captures(self, creator, snippets, prefaces, epilogues):
        values = []
        for snippet in snippets:
            creator.check_timeout()
            captures = GrokCompiler.match(self.grok, snippet)
            prefaces.append(captures[PREFACE])
            values.append(captures[VALUE])
            epilogues.append(captures[EPILOGUE])

        field_name = creator.unique_field_name(self.field_name)
        creator.record_field(field_name, MappingTypeGuesser.guess_type(values), values)
        return f"\\b{self.field_name}=%{{USER:{field_name}}}"


# Order matters - the first candidate that matches every snippet wins.
ORDERED_CANDIDATE_GROK_PATTERNS = (
    ValueOnlyGrokPatternCandidate("TIMESTAMP_ISO8601", "date", "extra_timestamp"),
    ValueOnlyGrokPatternCandidate("DATESTAMP_RFC2822", "date", "extra_timestamp"),
    ValueOnlyGrokPatternCandidate("HTTPDATE", "date", "extra_timestamp"),
    ValueOnlyGrokPatternCandidate("SYSLOGTIMESTAMP", "date", "extra_timestamp"),
    ValueOnlyGrokPatternCandidate("LOGLEVEL", "keyword", "loglevel"),
    ValueOnlyGrokPatternCandidate("URI", "keyword", "uri"),
    ValueOnlyGrokPatternCandidate("UUID", "keyword", "uuid"),
    ValueOnlyGrokPatternCandidate("MAC", "keyword", "macaddress"),
    ValueOnlyGrokPatternCandidate("IP", "ip", "ipaddress"),
    # QUOTEDSTRING carries its own boundaries
    ValueOnlyGrokPatternCandidate("QUOTEDSTRING", "keyword", "field", "", ""),
    # No sign, dot or word character either side, so numeric suffixes of
    # identifiers are not picked up
    ValueOnlyGrokPatternCandidate(
        "INT", "long", "field", r"(?<![\w.+-])", r"(?![\w+-]|\.\d)"
    ),
    ValueOnlyGrokPatternCandidate(
        "NUMBER", "double", "field", r"(?<![\w.+-])", r"(?![\w+-]|\.\d)"
    ),
)


class GrokPatternCreator:
    """Build a Grok pattern that matches every sample message in full.

    ``mappings``, ``field_stats`` and ``custom_grok_pattern_definitions`` are
    owned by the caller and updated in place as fields are discovered.
    """

    def __init__(
        self,
        explanation,
        sample_messages,
        mappings,
        field_stats,
        custom_grok_pattern_definitions,
        timeout_checker=None,
        stats_calculator=None,
    ):
        self.explanation = explanation
        self.sample_messages = list(sample_messages)
        self.mappings = mappings
        self.field_stats = field_stats
        self.custom_grok_pattern_definitions = custom_grok_pattern_definitions
        self.timeout_checker = timeout_checker
        self.stats_calculator = stats_calculator or FieldStatsCalculator(timeout_checker)
        self._field_name_counts = {}
        self._parts = []

    def check_timeout(self):
        if self.timeout_checker is not None:
            self.timeout_checker.check("grok pattern creation")

    def unique_field_name(self, field_name):
        count = self._field_name_counts.get(field_name, 0) + 1
        self._field_name_counts[field_name] = count
        return field_name if count == 1 else f"{field_name}{count}"

    def record_field(self, field_name, mapping_type, values):
        self.mappings[field_name] = {MAPPING_TYPE_SETTING: mapping_type}
        if self.field_stats is not None:
            self.field_stats[field_name] = self.stats_calculator.calculate(values)

    def validate_full_line_grok_pattern(self, grok_pattern, timestamp_field):
        """Check a caller supplied pattern against every sample message."""
        try:
            grok = GrokCompiler.compile(grok_pattern, self.custom_grok_pattern_definitions)
        except PatternValidationError as e:
            raise self._validation_error(str(e), grok_pattern) from e
        if timestamp_field not in GrokCompiler.capture_names(grok):
            raise self._validation_error(
                f"Supplied Grok pattern [{grok_pattern}] does not contain a capture "
                f"for the timestamp field [{timestamp_field}]",
                grok_pattern,
            )

        all_captures = []
        for message in self.sample_messages:
            self.check_timeout()
            captures = GrokCompiler.match(grok, message)
            if captures is None:
                raise self._validation_error(
                    f"Supplied Grok pattern [{grok_pattern}] does not match sample "
                    f"message [{message}]",
                    grok_pattern,
                )
            if not captures.get(timestamp_field):
                raise self._validation_error(
                    f"Supplied Grok pattern [{grok_pattern}] captured no value for the "
                    f"timestamp field [{timestamp_field}] in sample message [{message}]",
                    grok_pattern,
                )
            all_captures.append(captures)

        self._record_captured_fields(all_captures, timestamp_field, {})
        self.explanation.append(
            f"Supplied Grok pattern [{grok_pattern}] matches all "
            f"{len(self.sample_messages)} sample messages"
        )

    def find_full_line_grok_pattern(self, timestamp_field=None, timestamp_grok_pattern_name=None):
        """Return ``(timestamp_field, grok_pattern)`` for a known layout, or None.

        When ``timestamp_grok_pattern_name`` is given only layouts whose
        timestamp uses that Grok pattern are considered.
        """
        for candidate in FULL_LINE_PATTERNS:
            self.check_timeout()
            if timestamp_grok_pattern_name is not None and (
                f"%{{{timestamp_grok_pattern_name}:{candidate.timestamp_field}}}"
                not in candidate.grok_pattern
            ):
                continue
            grok_pattern = candidate.grok_pattern_for(timestamp_field)
            definitions = {
                **self.custom_grok_pattern_definitions,
                **candidate.custom_definitions,
            }
            grok = GrokCompiler.compile(grok_pattern, definitions)

            all_captures = []
            for message in self.sample_messages:
                self.check_timeout()
                captures = GrokCompiler.match(grok, message)
                if captures is None:
                    break
                all_captures.append(captures)
            else:
                chosen_field = timestamp_field or candidate.timestamp_field
                self.custom_grok_pattern_definitions.update(candidate.custom_definitions)
                self._record_captured_fields(
                    all_captures, chosen_field, candidate.field_types
                )
                self.explanation.append(
                    f"A full message Grok pattern [{candidate.name}] matches all "
                    f"sample messages"
                )
                logger.info(f"Full line pattern {candidate.name} matched")
                return chosen_field, grok_pattern

            logger.debug(f"Full line pattern {candidate.name} rejected")
        return None

    def create_grok_pattern_from_examples(self, seed_grok_pattern_name, seed_field_name):
        """Generalise a pattern across the messages, seeded by the timestamp."""
        added_fields = set(self.mappings)
        self._field_name_counts = {}
        self._parts = []

        seed = ValueOnlyGrokPatternCandidate(
            seed_grok_pattern_name,
            None,
            seed_field_name,
            custom_definitions=self.custom_grok_pattern_definitions,
        )
        seed_prefaces = []
        self._process_candidate_and_split(
            seed, True, self.sample_messages, False, 0, False, 0, seed_prefaces
        )
        grok_pattern = self._escape_control_chars("".join(self._parts))

        if self._matches_all_messages(grok_pattern, seed_field_name):
            self.explanation.append(
                f"Grok pattern [{grok_pattern}] created from "
                f"{len(self.sample_messages)} sample messages"
            )
            return grok_pattern

        logger.warning(f"Generated Grok pattern {grok_pattern} missed sample messages")
        for field_name in set(self.mappings) - added_fields:
            self.mappings.pop(field_name, None)
            if self.field_stats is not None:
                self.field_stats.pop(field_name, None)

        fallback = self._escape_control_chars(
            f"{intermediate_regex(seed_prefaces)}"
            f"%{{{seed_grok_pattern_name}:{seed_field_name}}}"
            f"%{{GREEDYDATA:{MESSAGE_FIELD}}}"
        )
        if not self._matches_all_messages(fallback, seed_field_name):
            raise InternalInconsistencyError(
                f"Neither Grok pattern [{grok_pattern}] nor fallback [{fallback}] "
                f"matches every sample message",
                explanation=self.explanation,
                details={"grok_pattern": grok_pattern, "fallback": fallback},
            )
        self.explanation.append(
            f"Grok pattern [{grok_pattern}] did not match every sample message; "
            f"using [{fallback}] which leaves everything after the timestamp in "
            f"[{MESSAGE_FIELD}]"
        )
        return fallback

    def _process_candidate_and_split(
        self,
        candidate,
        is_last,
        snippets,
        ignore_key_value_left,
        ignore_value_only_left,
        ignore_key_value_right,
        ignore_value_only_right,
        prefaces=None,
    ):
        prefaces = [] if prefaces is None else prefaces
        epilogues = []
        content = candidate.process_captures(self, snippets, prefaces, epilogues)
        self._append_best_grok_match_for_strings(
            False, prefaces, ignore_key_value_left, ignore_value_only_left
        )
        self._parts.append(content)
        self._append_best_grok_match_for_strings(
            is_last, epilogues, ignore_key_value_right, ignore_value_only_right
        )

    def _append_best_grok_match_for_strings(
        self, is_last, snippets, ignore_key_value, ignore_value_only
    ):
        self.check_timeout()
        snippets = self._adjust_for_punctuation(snippets)

        best = None
        best_index = None
        if snippets and any(snippets):
            key_value = KeyValueGrokPatternCandidate()
            if not ignore_key_value and key_value.matches_all(snippets, self):
                best = key_value
            else:
                ignore_key_value = True
                for index in range(ignore_value_only, len(ORDERED_CANDIDATE_GROK_PATTERNS)):
                    candidate = ORDERED_CANDIDATE_GROK_PATTERNS[index]
                    if candidate.matches_all(snippets, self):
                        best = candidate
                        best_index = index
                        break

        if best is None:
            if is_last:
                self._finalize_grok_pattern(snippets)
            else:
                self._parts.append(intermediate_regex(snippets))
        elif best_index is None:
            self._process_candidate_and_split(
                best, is_last, snippets, True, ignore_value_only, False, ignore_value_only
            )
        else:
            # Earlier candidates matched none of the whole snippets, and the
            # chosen one matched its first occurrence, so the left side can skip
            # them all; the right side may hold another occurrence.
            self._process_candidate_and_split(
                best, is_last, snippets, True, best_index + 1, True, best_index
            )

    def _adjust_for_punctuation(self, snippets):
        """Emit punctuation every snippet starts with and strip it from them."""
        if not snippets:
            return snippets

        common = None
        for snippet in snippets:
            if common is None:
                common = ""
                for ch in snippet:
                    if ch not in PUNCTUATION_OR_SPACE_NEEDS_ESCAPING:
                        break
                    common += ch
            else:
                common = common[: len(snippet)]
                for index, ch in enumerate(common):
                    if snippet[index] != ch:
                        common = common[:index]
                        break
            if not common:
                return snippets

        for ch in common:
            self._parts.append(("\\" + ch) if PUNCTUATION_OR_SPACE_NEEDS_ESCAPING[ch] else ch)
        return [snippet[len(common) :] for snippet in snippets]

    def _finalize_grok_pattern(self, snippets):
        if all(snippet == "" for snippet in snippets):
            return
        self._parts.append(f"%{{GREEDYDATA:{self.unique_field_name(MESSAGE_FIELD)}}}")

    def _matches_all_messages(self, grok_pattern, timestamp_field):
        grok = GrokCompiler.compile(grok_pattern, self.custom_grok_pattern_definitions)
        for message in self.sample_messages:
            self.check_timeout()
            captures = GrokCompiler.match(grok, message)
            if captures is None or not captures.get(timestamp_field):
                return False
        return True

    def _record_captured_fields(self, all_captures, timestamp_field, field_types):
        if not all_captures:
            return
        for field_name in all_captures[0]:
            if field_name in (timestamp_field, MESSAGE_FIELD):
                continue
            values = [captures.get(field_name) for captures in all_captures]
            values = [None if value is None else str(value) for value in values]
            mapping_type = field_types.get(field_name) or MappingTypeGuesser.guess_type(values)
            self.record_field(field_name, mapping_type, values)

    def _validation_error(self, message, grok_pattern):
        self.explanation.append(message)
        logger.debug(message)
        return PatternValidationError(
            message, explanation=self.explanation, details={"grok_pattern": grok_pattern}
        )

    @staticmethod
    def _escape_control_chars(grok_pattern):
        return grok_pattern.replace("\t", "\\t").replace("\n", "\\n")
