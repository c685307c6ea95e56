from .errors import NoTimestampFoundError
from .log_core import FormatMatchTally, SelectedFormat
from .timestamp_patterns import TIMESTAMP_FORMATS, resolve_timestamp_format

import logging

logger = logging.getLogger(__name__)


def default_tie_break(tally):
    """Sort key used to rank formats that all matched some lines.

    More matched lines wins, then the longer (more specific) matched text, then
    timestamps nearer the start of the line, then catalog order.
    """
    return (
        -tally.match_count,
        -tally.total_match_length,
        tally.total_preface_length,
        tally.catalog_index,
    )


class TimestampFormatFinder:
    """Work out which catalog timestamp format a sample of lines uses.

    Feed every physical line through ``add_sample`` and then call ``select``.
    Decisions are appended to the caller's ``explanation`` list.
    """

    def __init__(
        self,
        explanation,
        override_format=None,
        timeout_checker=None,
        tie_break=default_tie_break,
        candidates=TIMESTAMP_FORMATS,
    ):
        self.explanation = explanation
        self.override_format = override_format
        self.timeout_checker = timeout_checker
        self.tie_break = tie_break

        if override_format is not None:
            self.candidates = (resolve_timestamp_format(override_format),)
        else:
            self.candidates = tuple(candidates)

        self.tallies = {}
        self.num_lines = 0
        self.selected = None

    def add_sample(self, line):
        self.num_lines += 1
        for index, candidate in enumerate(self.candidates):
            if self.timeout_checker is not None:
                self.timeout_checker.check("timestamp format determination")

            match = candidate.find_match(line)
            if match is None:
                continue

            start, matched_text = match
            tally = self.tallies.get(candidate.name)
            if tally is None:
                tally = FormatMatchTally(catalog_index=index)
                self.tallies[candidate.name] = tally
            tally.add_match(line[:start], matched_text)

    @property
    def num_matched_formats(self):
        return len(self.tallies)

    def select_best_match(self):
        ranked = sorted(self.tallies.items(), key=lambda item: self.tie_break(item[1]))
        best_name, best_tally = ranked[0]

        for name, tally in ranked[1:]:
            self.explanation.append(
                f"Rejected timestamp format [{name}] matching {tally.match_count} "
                f"of {self.num_lines} lines in favour of [{best_name}] matching "
                f"{best_tally.match_count}"
            )
            logger.debug(f"Rejected timestamp format {name}: {tally}")

        return self.candidates[best_tally.catalog_index], best_tally

    def select(self) -> SelectedFormat:
        num_matched = self.num_matched_formats
        if num_matched == 0:
            target = (
                "a timestamp"
                if self.override_format is None
                else "the specified timestamp format"
            )
            message = f"Could not find {target} in the sample provided"
            self.explanation.append(message)
            raise NoTimestampFoundError(
                message,
                explanation=self.explanation,
                details={
                    "lines_checked": self.num_lines,
                    "candidates": [candidate.name for candidate in self.candidates],
                },
            )

        if num_matched == 1:
            ((name, tally),) = self.tallies.items()
            timestamp_format = self.candidates[tally.catalog_index]
        else:
            timestamp_format, tally = self.select_best_match()

        self.selected = SelectedFormat(
            timestamp_format=timestamp_format,
            prefaces=tuple(tally.prefaces),
            match_count=tally.match_count,
            need_client_timezone=timestamp_format.needs_client_timezone,
        )

        lead = "Most likely timestamp" if self.override_format is None else "Timestamp"
        self.explanation.append(
            f"{lead} format is [{timestamp_format.strptime_format}] "
            f"({timestamp_format.name}), matching {tally.match_count} of "
            f"{self.num_lines} lines"
        )
        if self.selected.need_client_timezone:
            self.explanation.append(
                "Timestamp format has no zone or offset, so a client supplied "
                "timezone is needed to parse it unambiguously"
            )

        logger.info(
            f"Selected timestamp format {timestamp_format.name} "
            f"({num_matched} formats matched)"
        )
        return self.selected

    @property
    def prefaces(self):
        return list(self._require_selected().prefaces)

    @property
    def simple_regex(self):
        return self._require_selected().simple_regex

    @property
    def grok_pattern_name(self):
        return self._require_selected().grok_pattern_name

    @property
    def timestamp_formats(self):
        return self._require_selected().timestamp_formats

    @property
    def custom_grok_pattern_definitions(self):
        return self._require_selected().custom_grok_pattern_definitions

    @property
    def need_client_timezone(self):
        return self._require_selected().need_client_timezone

    def _require_selected(self):
        if self.selected is None:
            raise RuntimeError("select() must be called before reading the selected format")
        return self.selected


def find_timestamp_format(explanation, lines, override_format=None, timeout_checker=None):
    finder = TimestampFormatFinder(
        explanation, override_format=override_format, timeout_checker=timeout_checker
    )
    for line in lines:
        finder.add_sample(line)
    return finder
