import re

from .errors import InsufficientMessagesError
from .grok_pattern_creator import intermediate_regex
from .log_core import GroupedMessages

import logging

logger = logging.getLogger(__name__)


def create_multiline_start_regex(prefaces, simple_date_regex):
    """Regex matching the first line of a message: preface then timestamp."""
    start_regex = "^" + intermediate_regex(prefaces) + simple_date_regex
    # An empty preface leaves a word boundary that can only ever match at
    # position zero, which "^" already guarantees
    if start_regex.startswith("^\\b"):
        start_regex = "^" + start_regex[3:]
    return start_regex


class MultilineMessageGrouper:
    """Fold physical lines into logical messages that start with a timestamp."""

    def __init__(self, selected_format, timeout_checker=None, explanation=None):
        self.selected_format = selected_format
        self.timeout_checker = timeout_checker
        self.explanation = explanation if explanation is not None else []
        self.start_regex = create_multiline_start_regex(
            selected_format.prefaces, selected_format.simple_regex
        )
        self._start_pattern = re.compile(self.start_regex)

    def is_message_start(self, line):
        return self._start_pattern.search(line) is not None

    def split(self, lines):
        """Return every logical message in ``lines``, the last one included."""
        messages = []
        current = None
        for line in lines:
            self._check_timeout()
            if self.is_message_start(line):
                if current is not None:
                    messages.append("\n".join(current))
                current = [line]
            elif current is not None:
                current.append(line)
        if current is not None:
            messages.append("\n".join(current))
        return messages

    def group(self, lines, sample_complete=False) -> GroupedMessages:
        """Group sample lines into messages.

        The final message is dropped because a truncated sample may cut it
        short, unless ``sample_complete`` says the sample is the whole input.
        Lines before the first message start count towards ``lines_consumed``
        and, like everything else seen before the second message is complete,
        end up in the preamble.
        """
        messages = []
        preamble = []
        current = None
        lines_in_message = 0
        lines_consumed = 0
        num_message_starts = 0

        for line in lines:
            self._check_timeout()
            if self.is_message_start(line):
                num_message_starts += 1
                if current is not None:
                    messages.append("\n".join(current))
                    lines_consumed += lines_in_message
                current = [line]
                lines_in_message = 1
            elif current is not None:
                current.append(line)
                lines_in_message += 1
            else:
                lines_consumed += 1

            if len(messages) < 2:
                preamble.append(line + "\n")

        if num_message_starts < 2:
            message = (
                f"Found {num_message_starts} message start(s) matching "
                f"[{self.start_regex}]; at least two are needed to be sure of the "
                f"timestamp format. Try overriding the timestamp format."
            )
            self.explanation.append(message)
            raise InsufficientMessagesError(
                message,
                explanation=self.explanation,
                details={
                    "num_message_starts": num_message_starts,
                    "start_regex": self.start_regex,
                },
            )

        if sample_complete:
            messages.append("\n".join(current))
            lines_consumed += lines_in_message
        else:
            logger.debug(f"Discarding trailing message of {lines_in_message} line(s)")

        self.explanation.append(
            f"Multi-line start pattern is [{self.start_regex}]; grouped "
            f"{lines_consumed} lines into {len(messages)} messages"
        )
        logger.info(f"Grouped {len(messages)} messages using {self.start_regex}")

        return GroupedMessages(
            messages=tuple(messages),
            preamble="".join(preamble),
            lines_consumed=lines_consumed,
            num_message_starts=num_message_starts,
            start_regex=self.start_regex,
        )

    def _check_timeout(self):
        if self.timeout_checker is not None:
            self.timeout_checker.check("multi-line message grouping")
