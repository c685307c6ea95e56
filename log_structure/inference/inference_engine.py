from pathlib import Path
import logging

from ..config import FinderSettings
from .log_core import StructureOverrides
from .text_log_finder import TextLogStructureFinder
from .timeout_checker import TimeoutChecker
from .utils import CompressionHandler

logger = logging.getLogger(__name__)


class LogStructureInferenceEngine:
    """Front door for structure finding: reads samples and runs the finder."""

    def __init__(self, settings=None):
        self.settings = settings or FinderSettings()
        self.finder_class = TextLogStructureFinder

        logger.info(
            f"Initialized inference engine (lines_to_sample={self.settings.lines_to_sample}, "
            f"timeout={self.settings.timeout_seconds}s)"
        )

    def analyze_file(self, filepath, overrides=None):
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        if not filepath.is_file():
            raise ValueError(f"Path is not a file: {filepath}")

        sample, line_count = CompressionHandler.read_sample(
            filepath, self.settings.lines_to_sample
        )
        logger.info(f"Read {line_count} lines from {filepath}")

        return self.analyze_text(
            sample, overrides, lines_to_sample=self.settings.lines_to_sample
        )

    def analyze_text(self, sample, overrides=None, lines_to_sample=None):
        """Return the ``StructureDescriptor`` of ``sample``.

        The sample is assumed to be cut from a longer log, so its last message
        is dropped. Pass the ``lines_to_sample`` limit the sample was read with
        to keep it when the sample came in under that limit.

        Structure finding errors propagate with their explanation attached.
        """
        overrides = overrides or StructureOverrides()
        explanation = []
        timeout_checker = TimeoutChecker(
            self.settings.timeout_seconds, explanation=explanation
        )

        finder = self.finder_class.make(
            explanation,
            sample,
            overrides=overrides,
            timeout_checker=timeout_checker,
            lines_to_sample=lines_to_sample,
        )

        logger.info(
            f"Best match: {finder.structure.format.value} with "
            f"{finder.structure.num_messages_analyzed} messages"
        )
        return finder.structure
