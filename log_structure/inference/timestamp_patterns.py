import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import cached_property

from .errors import StructureFinderError

UNIX_FORMATS = ("unix_timestamp", "unix_timestamp_ms")

CUSTOM_TIMESTAMP_GROK_NAME = "CUSTOM_TIMESTAMP"


@dataclass(frozen=True)
class TimestampFormat:
    """One candidate timestamp layout.

    ``simple_regex`` is used to scan lines quickly and to build the multi-line
    start pattern, ``strict_regex`` must then match at the same position and
    the matched text must parse as a real date before a match is accepted.
    """

    name: str
    strptime_format: str
    simple_regex: str
    strict_regex: str
    grok_pattern_name: str
    has_timezone: bool = False
    custom_grok_definition: str = None

    @cached_property
    def simple_pattern(self):
        return re.compile(self.simple_regex)

    @cached_property
    def strict_pattern(self):
        return re.compile(self.strict_regex)

    @property
    def is_epoch(self):
        return self.strptime_format in UNIX_FORMATS

    @property
    def needs_client_timezone(self):
        return not (self.has_timezone or self.is_epoch)

    def custom_grok_pattern_definitions(self):
        if self.custom_grok_definition is None:
            return {}
        return {self.grok_pattern_name: self.custom_grok_definition}

    def find_match(self, line):
        """Return ``(start, matched_text)`` for the first valid match, or None."""
        for candidate in self.simple_pattern.finditer(line):
            strict = self.strict_pattern.match(line, candidate.start())
            if strict and self.parse(strict.group(0)) is not None:
                return strict.start(), strict.group(0)
        return None

    def parse(self, text):
        if self.is_epoch:
            return self._parse_epoch(text)

        text_to_parse, format_to_use = text, self.strptime_format
        # Year-less layouts are parsed against a leap year so Feb 29 survives
        if "%Y" not in format_to_use and "%y" not in format_to_use:
            text_to_parse = f"2000 {text}"
            format_to_use = f"%Y {format_to_use}"

        try:
            return datetime.strptime(text_to_parse, format_to_use)
        except ValueError:
            return None

    def _parse_epoch(self, text):
        try:
            value = float(text)
        except ValueError:
            return None
        if self.strptime_format == "unix_timestamp_ms":
            value /= 1000
        if value < 0 or value > 4000000000:
            return None
        return datetime.fromtimestamp(value, tz=timezone.utc)

    @classmethod
    def from_strptime(cls, strptime_format):
        """Build a candidate for a custom strptime layout supplied by the caller."""
        pieces = []
        index = 0
        while index < len(strptime_format):
            ch = strptime_format[index]
            if ch == "%":
                directive = strptime_format[index : index + 2]
                if directive not in _DIRECTIVE_REGEXES:
                    raise StructureFinderError(
                        f"Unsupported directive [{directive}] in timestamp format "
                        f"[{strptime_format}]"
                    )
                pieces.append(_DIRECTIVE_REGEXES[directive])
                index += 2
            elif ch.isspace():
                pieces.append(r"\s+")
                index += 1
            else:
                pieces.append(re.escape(ch))
                index += 1

        strict_regex = "".join(pieces)
        first = strptime_format[:2]
        starts_with_word = first in _WORD_DIRECTIVES or (
            first[:1].isalnum() and not first.startswith("%")
        )
        simple_regex = (r"\b" if starts_with_word else "") + strict_regex

        return cls(
            name="custom",
            strptime_format=strptime_format,
            simple_regex=simple_regex,
            strict_regex=strict_regex + r"(?!\d)",
            grok_pattern_name=CUSTOM_TIMESTAMP_GROK_NAME,
            has_timezone="%z" in strptime_format or "%Z" in strptime_format,
            custom_grok_definition=strict_regex,
        )


_DIRECTIVE_REGEXES = {
    "%Y": r"\d{4}",
    "%y": r"\d{2}",
    "%m": r"\d{1,2}",
    "%d": r"\d{1,2}",
    "%j": r"\d{3}",
    "%H": r"\d{1,2}",
    "%I": r"\d{1,2}",
    "%M": r"\d{2}",
    "%S": r"\d{2}",
    "%f": r"\d{1,6}",
    "%p": r"[AaPp][Mm]",
    "%b": r"[A-Z][a-z]{2}",
    "%B": r"[A-Z][a-z]+",
    "%a": r"[A-Z][a-z]{2}",
    "%A": r"[A-Z][a-z]+",
    "%z": r"(?:Z|[+-]\d{2}:?\d{2})",
    "%Z": r"[A-Z]{3,4}",
    "%%": "%",
}

_WORD_DIRECTIVES = {
    directive
    for directive in _DIRECTIVE_REGEXES
    if directive not in ("%z", "%%")
}


# Most specific layouts first; the catalog order is the final tie-break.
TIMESTAMP_FORMATS = (
    TimestampFormat(
        name="iso8601_tz_fraction",
        strptime_format="%Y-%m-%dT%H:%M:%S.%f%z",
        simple_regex=r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{1,6}(?:Z|[+-]\d{2}:?\d{2})(?![\d:])",
        grok_pattern_name="TIMESTAMP_ISO8601",
        has_timezone=True,
    ),
    TimestampFormat(
        name="iso8601_tz",
        strptime_format="%Y-%m-%dT%H:%M:%S%z",
        simple_regex=r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:Z|[+-]\d{2}:?\d{2})(?![\d:])",
        grok_pattern_name="TIMESTAMP_ISO8601",
        has_timezone=True,
    ),
    TimestampFormat(
        name="iso8601_fraction",
        strptime_format="%Y-%m-%dT%H:%M:%S.%f",
        simple_regex=r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{1,6}(?![\dZ]|[+-]\d)",
        grok_pattern_name="TIMESTAMP_ISO8601",
    ),
    TimestampFormat(
        name="iso8601",
        strptime_format="%Y-%m-%dT%H:%M:%S",
        simple_regex=r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?!\d|[.,]\d|Z|[+-]\d)",
        grok_pattern_name="TIMESTAMP_ISO8601",
    ),
    TimestampFormat(
        name="iso8601_space_comma_fraction",
        strptime_format="%Y-%m-%d %H:%M:%S,%f",
        simple_regex=r"\b\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},\d{1,6}(?!\d)",
        grok_pattern_name="TIMESTAMP_ISO8601",
    ),
    TimestampFormat(
        name="iso8601_space_fraction",
        strptime_format="%Y-%m-%d %H:%M:%S.%f",
        simple_regex=r"\b\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{1,6}(?!\d)",
        grok_pattern_name="TIMESTAMP_ISO8601",
    ),
    TimestampFormat(
        name="iso8601_space",
        strptime_format="%Y-%m-%d %H:%M:%S",
        simple_regex=r"\b\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?!\d|[.,]\d)",
        grok_pattern_name="TIMESTAMP_ISO8601",
    ),
    TimestampFormat(
        name="slash_datetime",
        strptime_format="%Y/%m/%d %H:%M:%S",
        simple_regex=r"\b\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}(?!\d)",
        grok_pattern_name="SLASH_DATESTAMP",
        custom_grok_definition=r"%{YEAR}/%{MONTHNUM}/%{MONTHDAY} %{TIME}",
    ),
    TimestampFormat(
        name="httpdate",
        strptime_format="%d/%b/%Y:%H:%M:%S %z",
        simple_regex=r"\b\d{2}/[A-Z][a-z]{2}/\d{4}:\d{2}:\d{2}:\d{2} ",
        strict_regex=r"\d{2}/[A-Z][a-z]{2}/\d{4}:\d{2}:\d{2}:\d{2} [+-]\d{4}(?!\d)",
        grok_pattern_name="HTTPDATE",
        has_timezone=True,
    ),
    TimestampFormat(
        name="rfc2822",
        strptime_format="%a, %d %b %Y %H:%M:%S %z",
        simple_regex=r"\b[A-Z][a-z]{2}, \d{1,2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2}\b",
        strict_regex=r"[A-Z][a-z]{2}, \d{1,2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2} [+-]\d{4}(?!\d)",
        grok_pattern_name="DATESTAMP_RFC2822",
        has_timezone=True,
    ),
    TimestampFormat(
        name="ctime",
        strptime_format="%a %b %d %H:%M:%S %Y",
        simple_regex=r"\b[A-Z][a-z]{2} [A-Z][a-z]{2} {1,2}\d{1,2} \d{2}:\d{2}:\d{2} \d{4}\b",
        strict_regex=r"[A-Z][a-z]{2} [A-Z][a-z]{2} {1,2}\d{1,2} \d{2}:\d{2}:\d{2} \d{4}(?!\d)",
        grok_pattern_name="HTTPDERROR_DATE",
        custom_grok_definition=r"%{DAY} %{MONTH} +%{MONTHDAY} %{TIME} %{YEAR}",
    ),
    TimestampFormat(
        name="catalina",
        strptime_format="%b %d, %Y %I:%M:%S %p",
        simple_regex=r"\b[A-Z][a-z]{2} \d{1,2}, \d{4} \d{1,2}:\d{2}:\d{2} [AP]M\b",
        strict_regex=r"[A-Z][a-z]{2} \d{1,2}, \d{4} \d{1,2}:\d{2}:\d{2} [AP]M\b",
        grok_pattern_name="CATALINA_DATESTAMP",
        custom_grok_definition=r"%{MONTH} %{MONTHDAY}, %{YEAR} %{HOUR}:%{MINUTE}:%{SECOND} (?:AM|PM)",
    ),
    TimestampFormat(
        name="syslog_with_year",
        strptime_format="%b %d %Y %H:%M:%S",
        simple_regex=r"\b[A-Z][a-z]{2} {1,2}\d{1,2} \d{4} \d{2}:\d{2}:\d{2}\b",
        strict_regex=r"[A-Z][a-z]{2} {1,2}\d{1,2} \d{4} \d{2}:\d{2}:\d{2}(?!\d)",
        grok_pattern_name="SYSLOG_YEAR_TIMESTAMP",
        custom_grok_definition=r"%{MONTH} +%{MONTHDAY} %{YEAR} %{TIME}",
    ),
    TimestampFormat(
        name="syslog",
        strptime_format="%b %d %H:%M:%S",
        simple_regex=r"\b[A-Z][a-z]{2} {1,2}\d{1,2} \d{2}:\d{2}:\d{2}\b",
        strict_regex=r"[A-Z][a-z]{2} {1,2}\d{1,2} \d{2}:\d{2}:\d{2}(?!\d)",
        grok_pattern_name="SYSLOGTIMESTAMP",
    ),
    TimestampFormat(
        name="us_slash_datetime",
        strptime_format="%m/%d/%Y %H:%M:%S",
        simple_regex=r"\b\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}(?!\d)",
        grok_pattern_name="DATESTAMP",
    ),
    TimestampFormat(
        name="eu_slash_datetime",
        strptime_format="%d/%m/%Y %H:%M:%S",
        simple_regex=r"\b\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}",
        strict_regex=r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}(?!\d)",
        grok_pattern_name="DATESTAMP",
    ),
    TimestampFormat(
        name="eventlog",
        strptime_format="%Y%m%d%H%M%S",
        simple_regex=r"\b\d{14}\b",
        strict_regex=r"\d{14}(?!\d)",
        grok_pattern_name="DATESTAMP_EVENTLOG",
    ),
    TimestampFormat(
        name="unix_ms",
        strptime_format="unix_timestamp_ms",
        simple_regex=r"\b\d{13}\b",
        strict_regex=r"\d{13}(?![\d.])",
        grok_pattern_name="UNIX_MS",
        custom_grok_definition=r"\b\d{13}\b",
    ),
    TimestampFormat(
        name="unix",
        strptime_format="unix_timestamp",
        simple_regex=r"\b\d{10}\b",
        strict_regex=r"\d{10}(?:\.\d{3,9})?(?!\d)",
        grok_pattern_name="UNIX",
        custom_grok_definition=r"\b\d{10}(?:\.\d{3,9})?\b",
    ),
)


def resolve_timestamp_format(override):
    """Map a caller supplied format name or strptime layout to a candidate."""
    for timestamp_format in TIMESTAMP_FORMATS:
        if override in (timestamp_format.name, timestamp_format.strptime_format):
            return timestamp_format
    if "%" in override:
        return TimestampFormat.from_strptime(override)
    raise StructureFinderError(
        f"Unknown timestamp format [{override}]: expected a catalog name or a "
        f"strptime layout"
    )
