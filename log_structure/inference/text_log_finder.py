from .base_finder import BaseStructureFinder
from .errors import StructureFinderError
from .grok_pattern_creator import GrokPatternCreator
from .log_core import (
    DEFAULT_TIMESTAMP_FIELD,
    MAPPING_TYPE_SETTING,
    MESSAGE_FIELD,
    StructureDescriptor,
    StructureFormat,
    StructureOverrides,
)
from .multiline_grouper import MultilineMessageGrouper
from .timestamp_format_finder import find_timestamp_format
from .utils import FieldStatsCalculator, GrokCompiler, make_ingest_pipeline_definition

import logging

logger = logging.getLogger(__name__)


class TextLogStructureFinder(BaseStructureFinder):
    """Structure finder for semi-structured text logs.

    Each message starts with a timestamp and may continue over several lines.
    The timestamp format is found first, then the lines are grouped into
    messages and finally a Grok pattern is derived that matches them all.
    """

    @classmethod
    def make(cls, explanation, sample, overrides=None, timeout_checker=None, lines_to_sample=None):
        try:
            return cls._make(explanation, sample, overrides, timeout_checker, lines_to_sample)
        except StructureFinderError as e:
            logger.warning(f"Could not find the structure of the sample: {e}")
            raise

    @classmethod
    def _make(cls, explanation, sample, overrides, timeout_checker, lines_to_sample):
        overrides = overrides or StructureOverrides()

        lines = cls.split_sample_lines(sample)
        logger.info(f"Finding structure of {len(lines)} sample lines")

        format_finder = find_timestamp_format(
            explanation,
            lines,
            override_format=overrides.timestamp_format,
            timeout_checker=timeout_checker,
        )
        selected = format_finder.select()

        sample_complete = lines_to_sample is not None and len(lines) < lines_to_sample
        grouper = MultilineMessageGrouper(
            selected, timeout_checker=timeout_checker, explanation=explanation
        )
        grouped = grouper.group(lines, sample_complete=sample_complete)
        del lines

        timestamp_field = overrides.timestamp_field or DEFAULT_TIMESTAMP_FIELD
        mappings = {MESSAGE_FIELD: {MAPPING_TYPE_SETTING: "text"}}
        field_stats = {}
        custom_definitions = dict(selected.custom_grok_pattern_definitions)
        stats_calculator = FieldStatsCalculator(timeout_checker)

        creator = GrokPatternCreator(
            explanation,
            grouped.messages,
            mappings,
            field_stats,
            custom_definitions,
            timeout_checker=timeout_checker,
            stats_calculator=stats_calculator,
        )

        if overrides.grok_pattern is not None:
            creator.validate_full_line_grok_pattern(overrides.grok_pattern, timestamp_field)
            grok_pattern = overrides.grok_pattern
        else:
            full_line = creator.find_full_line_grok_pattern(
                overrides.timestamp_field, selected.grok_pattern_name
            )
            if full_line is not None:
                timestamp_field, grok_pattern = full_line
            else:
                grok_pattern = creator.create_grok_pattern_from_examples(
                    selected.grok_pattern_name, timestamp_field
                )

        mappings[timestamp_field] = {MAPPING_TYPE_SETTING: "date"}
        field_stats[MESSAGE_FIELD] = stats_calculator.calculate(
            cls._message_values(grok_pattern, custom_definitions, grouped.messages)
        )

        structure = StructureDescriptor(
            format=StructureFormat.SEMI_STRUCTURED_TEXT,
            num_lines_analyzed=grouped.lines_consumed,
            num_messages_analyzed=len(grouped.messages),
            sample_start=grouped.preamble,
            multiline_start_pattern=grouped.start_regex,
            timestamp_field=timestamp_field,
            timestamp_format_name=selected.timestamp_format.name,
            timestamp_formats=selected.timestamp_formats,
            need_client_timezone=selected.need_client_timezone,
            grok_pattern=grok_pattern,
            custom_grok_pattern_definitions=custom_definitions,
            mappings=mappings,
            field_stats=field_stats,
            ingest_pipeline=make_ingest_pipeline_definition(
                grok_pattern,
                custom_definitions,
                timestamp_field,
                selected.timestamp_formats,
                selected.need_client_timezone,
            ),
            explanation=tuple(explanation),
        )

        logger.info(
            f"Structure found: {structure.num_messages_analyzed} messages, "
            f"grok pattern {grok_pattern}"
        )
        return cls(grouped.messages, structure)

    @staticmethod
    def _message_values(grok_pattern, custom_definitions, messages):
        # Without a message capture the whole message is the message field
        grok = GrokCompiler.compile(grok_pattern, custom_definitions)
        values = []
        for message in messages:
            captures = GrokCompiler.match(grok, message) or {}
            values.append(captures.get(MESSAGE_FIELD, message))
        return values
