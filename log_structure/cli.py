import argparse
import json
import sys
from pathlib import Path

from log_structure.config import FinderSettings
from log_structure.inference.errors import StructureFinderError
from log_structure.inference.inference_engine import LogStructureInferenceEngine
from log_structure.inference.log_core import StructureOverrides
from log_structure.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="log-structure",
        description="Infer the timestamp format, message layout and Grok pattern of a text log.",
    )
    p.add_argument("log_path")
    p.add_argument(
        "--timestamp-format",
        default=None,
        help="Force a timestamp format: catalog name (e.g. iso8601_space) or strptime layout",
    )
    p.add_argument("--timestamp-field", default=None, help="Name of the timestamp capture (default: timestamp)")
    p.add_argument("--grok-pattern", default=None, help="Validate this Grok pattern instead of inferring one")
    p.add_argument("--lines", dest="lines_to_sample", type=int, default=None, help="Lines to sample from the file")
    p.add_argument("--timeout", dest="timeout_seconds", type=float, default=None, help="Timeout in seconds")
    p.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    p.add_argument("--log-file", default=None, help="Also write logs to this file")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    overridden = {
        name: value
        for name, value in (
            ("lines_to_sample", args.lines_to_sample),
            ("timeout_seconds", args.timeout_seconds),
            ("log_level", args.log_level),
        )
        if value is not None
    }

    overrides = StructureOverrides(
        timestamp_format=args.timestamp_format,
        timestamp_field=args.timestamp_field,
        grok_pattern=args.grok_pattern,
    )

    try:
        settings = FinderSettings(**overridden)
        setup_logging(settings.log_level, args.log_file)
        structure = LogStructureInferenceEngine(settings).analyze_file(
            Path(args.log_path), overrides
        )
    except StructureFinderError as e:
        print(f"Error: {e}", file=sys.stderr)
        for step in e.explanation:
            print(f"  - {step}", file=sys.stderr)
        return 1
    except (FileNotFoundError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 2

    print(json.dumps(structure.to_dict(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
