import re

import pytest

from log_structure.inference.errors import InsufficientMessagesError, TimeoutExceededError
from log_structure.inference.multiline_grouper import (
    MultilineMessageGrouper,
    create_multiline_start_regex,
)
from log_structure.inference.timeout_checker import TimeoutChecker
from log_structure.inference.timestamp_format_finder import find_timestamp_format


def _grouper_for(lines, explanation=None, timeout_checker=None):
    explanation = [] if explanation is None else explanation
    selected = find_timestamp_format(explanation, lines).select()
    return MultilineMessageGrouper(selected, timeout_checker=timeout_checker, explanation=explanation)


@pytest.mark.parametrize(
    "prefaces,expected",
    [
        ([""], r"^\d{4}"),
        (["["], r"^\[\b\d{4}"),
        (["[main] ", "[worker-1] "], r"^\[.*?\] \b\d{4}"),
        (["host1: ", "h2: "], r"^.*?: \b\d{4}"),
    ],
)
def test_create_multiline_start_regex(prefaces, expected):
    assert create_multiline_start_regex(prefaces, r"\b\d{4}") == expected


def test_trailing_message_is_discarded(explanation):
    lines = ["2020-01-01T00:00:00Z A", "2020-01-01T00:00:01Z B", "partial tail"]
    grouped = _grouper_for(lines, explanation).group(lines)

    assert grouped.messages == ("2020-01-01T00:00:00Z A",)
    assert grouped.lines_consumed == 1
    assert grouped.num_message_starts == 2


def test_continuation_lines_join_previous_message(stack_trace_lines):
    grouped = _grouper_for(stack_trace_lines).group(stack_trace_lines)

    assert grouped.messages == (
        "2024-01-01 10:00:00,123 ERROR Failed\n"
        "java.lang.RuntimeException: boom\n"
        "\tat com.example.Foo.bar(Foo.java:10)",
        "2024-01-01 10:00:01,456 INFO Recovered",
    )
    assert grouped.lines_consumed == 4
    assert grouped.preamble == "".join(line + "\n" for line in stack_trace_lines[:4])


def test_complete_sample_keeps_last_message(stack_trace_lines):
    grouped = _grouper_for(stack_trace_lines).group(stack_trace_lines, sample_complete=True)

    assert len(grouped.messages) == 3
    assert grouped.messages[-1] == "2024-01-01 10:00:02,789 INFO Done"
    assert grouped.lines_consumed == 5


def test_lines_before_first_message_count_as_preamble():
    lines = [
        "continued from a previous chunk",
        "2020-01-01 10:00:00 first",
        "2020-01-01 10:00:01 second",
        "2020-01-01 10:00:02 third",
    ]
    grouped = _grouper_for(lines).group(lines)

    assert grouped.messages == ("2020-01-01 10:00:00 first", "2020-01-01 10:00:01 second")
    assert grouped.lines_consumed == 3
    assert grouped.preamble.startswith("continued from a previous chunk\n")


def test_grouping_is_idempotent_on_message_boundaries(stack_trace_lines):
    grouper = _grouper_for(stack_trace_lines)
    messages = grouper.split(stack_trace_lines)

    assert len(messages) == 3
    for message in messages:
        assert grouper.split(message.split("\n")) == [message]


def test_single_message_is_insufficient(explanation):
    lines = ["2020-01-01 10:00:00 only one", "  with a continuation"]
    grouper = _grouper_for(lines, explanation)

    with pytest.raises(InsufficientMessagesError, match="overriding the timestamp format") as excinfo:
        grouper.group(lines, sample_complete=True)

    assert "at least two" in explanation[-1]
    assert excinfo.value.details == {"num_message_starts": 1, "start_regex": grouper.start_regex}


def test_start_regex_matches_every_message_start(stack_trace_lines):
    grouped = _grouper_for(stack_trace_lines).group(stack_trace_lines)

    for message in grouped.messages:
        assert re.search(grouped.start_regex, message)


def test_grouping_polls_timeout(stack_trace_lines):
    ticks = iter(range(0, 1000, 10))
    checker = TimeoutChecker(timeout=15, clock=lambda: next(ticks))
    grouper = _grouper_for(stack_trace_lines, timeout_checker=checker)

    with pytest.raises(TimeoutExceededError, match="multi-line message grouping") as excinfo:
        grouper.group(stack_trace_lines)

    assert excinfo.value.details == {"stage": "multi-line message grouping", "timeout_seconds": 15}
