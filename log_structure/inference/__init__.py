"""
Log Structure Finder

Infers the structure of semi-structured text logs from a sample of lines.

This package provides:
- Timestamp format detection against a catalog of common layouts
- Grouping of physical lines into multi-line messages
- Grok pattern inference with field mappings and statistics
- An explanation trail of every decision made along the way

Basic usage:
    from log_structure.inference import TextLogStructureFinder

    explanation = []
    finder = TextLogStructureFinder.make(explanation, sample_text)
    print(finder.structure.grok_pattern)
    for step in finder.structure.explanation:
        print(f"  {step}")

    Or from file:
    engine = LogStructureInferenceEngine()
    structure = engine.analyze_file("path/to/logfile.log")
"""
from .errors import (
    InsufficientMessagesError,
    InternalInconsistencyError,
    NoTimestampFoundError,
    PatternValidationError,
    StructureFinderError,
    TimeoutExceededError,
)
from .inference_engine import LogStructureInferenceEngine
from .log_core import StructureDescriptor, StructureFormat, StructureOverrides
from .text_log_finder import TextLogStructureFinder
from .timeout_checker import TimeoutChecker
