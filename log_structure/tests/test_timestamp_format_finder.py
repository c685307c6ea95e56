import pytest

from log_structure.inference.errors import NoTimestampFoundError, StructureFinderError
from log_structure.inference.timestamp_format_finder import (
    TimestampFormatFinder,
    default_tie_break,
    find_timestamp_format,
)
from log_structure.inference.timestamp_patterns import (
    TIMESTAMP_FORMATS,
    TimestampFormat,
    resolve_timestamp_format,
)


@pytest.mark.parametrize(
    "lines,expected_name,expected_format",
    [
        (
            ["2020-01-01T00:00:00Z A", "2020-01-01T00:00:01Z B"],
            "iso8601_tz",
            "%Y-%m-%dT%H:%M:%S%z",
        ),
        (
            ["2023-07-27T14:30:00.123456+02:00 start", "2023-07-27T14:30:01.5+02:00 stop"],
            "iso8601_tz_fraction",
            "%Y-%m-%dT%H:%M:%S.%f%z",
        ),
        (
            ["2023-07-27 14:30:00,123 - app - INFO - up", "2023-07-27 14:30:01,456 - app - INFO - down"],
            "iso8601_space_comma_fraction",
            "%Y-%m-%d %H:%M:%S,%f",
        ),
        (
            ["[2020-01-01 10:00:00] ERROR starting up", "[2020-01-01 10:00:05] INFO ready"],
            "iso8601_space",
            "%Y-%m-%d %H:%M:%S",
        ),
        (
            ["2023/07/27 14:30:00 [error] 1#0: oops", "2023/07/27 14:30:01 [error] 1#0: again"],
            "slash_datetime",
            "%Y/%m/%d %H:%M:%S",
        ),
        (
            ['10.0.0.1 - - [27/Jul/2023:14:30:00 +0000] "GET / HTTP/1.1" 200 5'],
            "httpdate",
            "%d/%b/%Y:%H:%M:%S %z",
        ),
        (
            ["Jul 27 14:30:00 host sshd[42]: Accepted", "Jul  8 04:00:01 host cron[7]: run"],
            "syslog",
            "%b %d %H:%M:%S",
        ),
        (
            ["Jul 27, 2023 2:30:00 PM org.apache.Foo start", "Jul 27, 2023 2:30:01 PM org.apache.Foo stop"],
            "catalina",
            "%b %d, %Y %I:%M:%S %p",
        ),
        (
            ["07/27/2023 14:30:00 job ran", "07/28/2023 14:30:00 job ran"],
            "us_slash_datetime",
            "%m/%d/%Y %H:%M:%S",
        ),
        (["1689871234 event a", "1689871240 event b"], "unix", "unix_timestamp"),
        (["1689871234567 event a", "1689871240000 event b"], "unix_ms", "unix_timestamp_ms"),
    ],
)
def test_single_layout_selects_only_matching_format(explanation, lines, expected_name, expected_format):
    finder = find_timestamp_format(explanation, lines)
    selected = finder.select()

    assert finder.num_matched_formats == 1
    assert selected.timestamp_format.name == expected_name
    assert finder.timestamp_formats == [expected_format]
    assert selected.match_count == len(lines)
    assert any("Most likely timestamp format" in step for step in explanation)


def test_more_specific_format_wins_when_both_match_every_line(explanation):
    # syslog also matches inside the ctime timestamps
    lines = ["Thu Jul 27 14:30:00 2023 worker started", "Thu Jul 27 14:30:05 2023 worker stopped"]

    first = find_timestamp_format(explanation, lines)
    second = find_timestamp_format([], lines)

    assert first.num_matched_formats == 2
    assert first.select().timestamp_format.name == "ctime"
    assert second.select().timestamp_format.name == "ctime"
    assert any("Rejected timestamp format [syslog]" in step for step in explanation)


def test_ambiguous_day_month_order_is_deterministic(explanation):
    lines = ["12/07/2023 14:30:00 a", "11/07/2023 14:30:00 b"]

    names = {find_timestamp_format([], lines).select().timestamp_format.name for _ in range(3)}

    assert names == {"us_slash_datetime"}


def test_prefaces_are_recorded_in_order(explanation):
    lines = ["[main] 2020-01-01 10:00:00 a", "<w1> 2020-01-01 10:00:01 b", "[main] 2020-01-01 10:00:02 c"]
    finder = find_timestamp_format(explanation, lines)
    finder.select()

    assert finder.prefaces == ["[main] ", "<w1> "]
    assert finder.grok_pattern_name == "TIMESTAMP_ISO8601"
    assert finder.need_client_timezone is True


def test_invalid_dates_are_not_counted(explanation):
    lines = ["2020-13-45 10:00:00 bad month", "2020-01-01 10:00:00 fine"]
    finder = find_timestamp_format(explanation, lines)
    selected = finder.select()

    assert selected.match_count == 1


def test_no_timestamp_raises_with_explanation(explanation):
    finder = find_timestamp_format(explanation, ["hello world", "no dates here"])

    with pytest.raises(NoTimestampFoundError) as excinfo:
        finder.select()

    assert "Could not find a timestamp" in str(excinfo.value)
    assert excinfo.value.explanation[-1] == str(excinfo.value)


def test_override_format_restricts_candidates(explanation):
    lines = ["2020-01-01 10:00:00 a", "2020-01-01 10:00:01 b"]
    finder = find_timestamp_format(explanation, lines, override_format="%Y-%m-%d %H:%M:%S")

    assert finder.select().timestamp_format.name == "iso8601_space"
    assert any(step.startswith("Timestamp format is") for step in explanation)


def test_override_format_not_present_raises(explanation):
    finder = find_timestamp_format(explanation, ["2020-01-01 10:00:00 a"], override_format="syslog")

    with pytest.raises(NoTimestampFoundError, match="the specified timestamp format"):
        finder.select()


def test_custom_strptime_override(explanation):
    lines = ["27.07.2023 14:30:00 INFO started", "27.07.2023 14:31:00 INFO stopped"]
    finder = find_timestamp_format(explanation, lines, override_format="%d.%m.%Y %H:%M:%S")
    selected = finder.select()

    assert selected.grok_pattern_name == "CUSTOM_TIMESTAMP"
    assert "CUSTOM_TIMESTAMP" in finder.custom_grok_pattern_definitions
    assert finder.timestamp_formats == ["%d.%m.%Y %H:%M:%S"]


def test_unknown_override_name_raises():
    with pytest.raises(StructureFinderError, match="Unknown timestamp format"):
        resolve_timestamp_format("not_a_format")


def test_unsupported_strptime_directive_raises():
    with pytest.raises(StructureFinderError, match="Unsupported directive"):
        TimestampFormat.from_strptime("%Y-%m-%d %Q")


def test_properties_require_selection(explanation):
    finder = TimestampFormatFinder(explanation)

    with pytest.raises(RuntimeError):
        finder.simple_regex


def test_custom_tie_break_is_honoured(explanation):
    lines = ["Thu Jul 27 14:30:00 2023 a", "Thu Jul 27 14:30:05 2023 b"]

    def prefer_later_catalog_entries(tally):
        return (-tally.match_count, -tally.catalog_index)

    finder = TimestampFormatFinder(explanation, tie_break=prefer_later_catalog_entries)
    for line in lines:
        finder.add_sample(line)

    assert finder.select().timestamp_format.name == "syslog"


def test_default_tie_break_prefers_longer_matches():
    ranked = sorted(
        [
            _tally(catalog_index=0, match_count=2, total_match_length=30),
            _tally(catalog_index=1, match_count=2, total_match_length=40),
            _tally(catalog_index=2, match_count=3, total_match_length=10),
        ],
        key=default_tie_break,
    )

    assert [t.catalog_index for t in ranked] == [2, 1, 0]


def test_epoch_formats_never_need_client_timezone():
    unix = next(f for f in TIMESTAMP_FORMATS if f.name == "unix")

    assert unix.needs_client_timezone is False
    assert unix.parse("99999999999") is None


def _tally(**kwargs):
    from log_structure.inference.log_core import FormatMatchTally

    return FormatMatchTally(**kwargs)
