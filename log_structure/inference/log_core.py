from enum import Enum
from dataclasses import dataclass, field, asdict


class StructureFormat(Enum):
    SEMI_STRUCTURED_TEXT = "semi_structured_text"


MAPPING_TYPE_SETTING = "type"
DEFAULT_TIMESTAMP_FIELD = "timestamp"
MESSAGE_FIELD = "message"


@dataclass(frozen=True)
class StructureOverrides:
    """Values the caller already knows and wants to force."""

    timestamp_format: str = None
    timestamp_field: str = None
    grok_pattern: str = None


@dataclass
class FormatMatchTally:
    """Running evidence for one candidate timestamp format."""

    catalog_index: int
    match_count: int = 0
    prefaces: list = field(default_factory=list)
    total_match_length: int = 0
    total_preface_length: int = 0

    def add_match(self, preface, matched_text):
        self.match_count += 1
        self.total_match_length += len(matched_text)
        self.total_preface_length += len(preface)
        if preface not in self.prefaces:
            self.prefaces.append(preface)


@dataclass(frozen=True)
class SelectedFormat:
    timestamp_format: object
    prefaces: tuple
    match_count: int
    need_client_timezone: bool

    @property
    def simple_regex(self):
        return self.timestamp_format.simple_regex

    @property
    def grok_pattern_name(self):
        return self.timestamp_format.grok_pattern_name

    @property
    def timestamp_formats(self):
        return [self.timestamp_format.strptime_format]

    @property
    def custom_grok_pattern_definitions(self):
        return self.timestamp_format.custom_grok_pattern_definitions()


@dataclass(frozen=True)
class GroupedMessages:
    messages: tuple
    preamble: str
    lines_consumed: int
    num_message_starts: int
    start_regex: str


@dataclass(frozen=True)
class FieldStats:

    count: int
    cardinality: int
    top_hits: list = field(default_factory=list)
    min_value: float = None
    max_value: float = None
    mean_value: float = None
    median_value: float = None

    def to_dict(self):
        result = {
            "count": self.count,
            "cardinality": self.cardinality,
        }
        if self.min_value is not None:
            result.update(
                {
                    "min_value": self.min_value,
                    "max_value": self.max_value,
                    "mean_value": self.mean_value,
                    "median_value": self.median_value,
                }
            )
        result["top_hits"] = [dict(hit) for hit in self.top_hits]
        return result


@dataclass(frozen=True)
class StructureDescriptor:
    """Everything learned about a semi-structured text sample."""

    format: StructureFormat
    num_lines_analyzed: int
    num_messages_analyzed: int
    sample_start: str
    multiline_start_pattern: str
    timestamp_field: str
    timestamp_format_name: str
    timestamp_formats: list
    need_client_timezone: bool
    grok_pattern: str
    custom_grok_pattern_definitions: dict = field(default_factory=dict)
    mappings: dict = field(default_factory=dict)
    field_stats: dict = field(default_factory=dict)
    ingest_pipeline: dict = field(default_factory=dict)
    explanation: tuple = ()

    def to_dict(self):
        result = asdict(self)
        result["format"] = self.format.value
        result["field_stats"] = {
            name: stats.to_dict() for name, stats in self.field_stats.items()
        }
        result["explanation"] = list(self.explanation)
        return result
