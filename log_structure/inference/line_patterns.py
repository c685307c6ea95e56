from typing import Dict, Optional
from dataclasses import dataclass, field


@dataclass
class FullLinePattern:
    """A Grok pattern known to describe an entire message of a common log layout."""

    name: str
    grok_pattern: str
    timestamp_field: str
    field_types: Dict[str, Optional[str]]
    custom_definitions: Dict[str, str] = field(default_factory=dict)

    def grok_pattern_for(self, timestamp_field=None):
        if timestamp_field is None or timestamp_field == self.timestamp_field:
            return self.grok_pattern
        return self.grok_pattern.replace(
            f":{self.timestamp_field}}}", f":{timestamp_field}}}"
        )


# A field type of None means "guess from the captured values".
FULL_LINE_PATTERNS = [
    FullLinePattern(
        name="apache_combined",
        grok_pattern=(
            r"%{IPORHOST:clientip} %{USER:ident} %{USER:auth} "
            r"\[%{HTTPDATE:timestamp}\] \"%{DATA:request}\" "
            r"%{NUMBER:response} (?:%{NUMBER:bytes}|-) "
            r"%{QS:referrer} %{QS:agent}"
        ),
        timestamp_field="timestamp",
        field_types={
            "clientip": None,
            "ident": "keyword",
            "auth": "keyword",
            "request": None,
            "response": "long",
            "bytes": "long",
            "referrer": "keyword",
            "agent": "text",
        },
    ),
    FullLinePattern(
        name="apache_common",
        grok_pattern=(
            r"%{IPORHOST:clientip} %{USER:ident} %{USER:auth} "
            r"\[%{HTTPDATE:timestamp}\] \"%{DATA:request}\" "
            r"%{NUMBER:response} (?:%{NUMBER:bytes}|-)"
        ),
        timestamp_field="timestamp",
        field_types={
            "clientip": None,
            "ident": "keyword",
            "auth": "keyword",
            "request": None,
            "response": "long",
            "bytes": "long",
        },
    ),
    FullLinePattern(
        name="nginx_error",
        grok_pattern=(
            r"%{SLASH_DATESTAMP:timestamp} \[%{LOGLEVEL:loglevel}\] "
            r"%{NUMBER:pid}#%{NUMBER:tid}: %{GREEDYDATA:message}"
        ),
        timestamp_field="timestamp",
        field_types={"loglevel": "keyword", "pid": "long", "tid": "long"},
        custom_definitions={
            "SLASH_DATESTAMP": r"%{YEAR}/%{MONTHNUM}/%{MONTHDAY} %{TIME}",
        },
    ),
    FullLinePattern(
        name="syslog_rfc3164",
        grok_pattern=(
            r"(?:<%{NONNEGINT:priority}>)?%{SYSLOGTIMESTAMP:timestamp} "
            r"%{SYSLOGHOST:logsource} %{SYSLOGPROG}: %{GREEDYDATA:message}"
        ),
        timestamp_field="timestamp",
        field_types={
            "priority": "long",
            "logsource": "keyword",
            "program": "keyword",
            "pid": "long",
        },
    ),
    FullLinePattern(
        name="python_logging",
        grok_pattern=(
            r"%{TIMESTAMP_ISO8601:timestamp} - %{DATA:logger} - "
            r"%{LOGLEVEL:loglevel} - %{GREEDYDATA:message}"
        ),
        timestamp_field="timestamp",
        field_types={"logger": "keyword", "loglevel": "keyword"},
    ),
    FullLinePattern(
        name="log4j_bracketed_thread",
        grok_pattern=(
            r"%{TIMESTAMP_ISO8601:timestamp} \[%{DATA:thread}\] "
            r"%{LOGLEVEL:loglevel} +%{NOTSPACE:logger} - %{GREEDYDATA:message}"
        ),
        timestamp_field="timestamp",
        field_types={"thread": "keyword", "loglevel": "keyword", "logger": "keyword"},
    ),
]
