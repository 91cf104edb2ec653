#!/usr/bin/env python3
"""
generate_level.py: CLI entry point for the level geometry compiler.

Usage:
    python generate_level.py level.json
    python generate_level.py level.json --glb exports/level.glb --json out.json
    python generate_level.py level.json --no-align --auto-resolve --max-snap 0.3

Exit codes: 0 on success, 1 when --strict is set and issues remain,
2 when the level document cannot be read or is invalid.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from schemas import LevelDocument  # noqa: E402
from services.level_builder import GenerationSettings, generate_level  # noqa: E402
from services.model3d import generate_3d_model  # noqa: E402

logger = logging.getLogger("generate_level")


class LevelDocumentError(ValueError):
    """The level file is missing or is not JSON."""


def load_level_document(path) -> LevelDocument:
    """Read and validate a level document; raises LevelDocumentError or ValidationError."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise LevelDocumentError(f"Cannot read level file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LevelDocumentError(f"Level file {path} is not valid JSON: {e}") from e
    return LevelDocument.model_validate(raw)


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Compile a level document into placed 3D box geometry"
    )
    p.add_argument("level", type=str, help="Path to the level JSON document")

    # Output
    p.add_argument("--glb", type=str, default=None,
                   help="Export the built level as GLB/OBJ to this path")
    p.add_argument("--json", type=str, default=None,
                   help="Write the full result (rooms, solids, issues) as JSON")

    # Pipeline
    p.add_argument("--no-align", action="store_true",
                   help="Skip connector-based room alignment")
    p.add_argument("--auto-resolve", action="store_true",
                   help="Nudge rooms to close small gaps and overlaps")
    p.add_argument("--no-panels", action="store_true",
                   help="Do not emit door leaves and window glass")
    p.add_argument("--allowed-gap", type=float, default=None,
                   help="Horizontal gap tolerated between rooms (m)")
    p.add_argument("--max-snap", type=float, default=None,
                   help="Largest correction --auto-resolve may apply (m)")
    p.add_argument("--strict", action="store_true",
                   help="Exit with status 1 when connectivity issues remain")
    p.add_argument("--verbose", "-v", action="store_true")
    return p.parse_args(argv)


def settings_from_args(args) -> GenerationSettings:
    overrides = {
        "align": not args.no_align,
        "auto_resolve": args.auto_resolve,
        "panels": not args.no_panels,
    }
    if args.allowed_gap is not None:
        overrides["allowed_gap"] = args.allowed_gap
    if args.max_snap is not None:
        overrides["max_snap_distance"] = args.max_snap
    return GenerationSettings(**overrides)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        doc = load_level_document(args.level)
    except (LevelDocumentError, ValidationError) as e:
        logger.error(str(e))
        return 2

    result = generate_level(doc, settings_from_args(args))

    logger.info("=" * 60)
    logger.info(f"  Rooms: {len(result.rooms)}  Solids: {len(result.solids)}  "
                f"Connectors: {len(result.connectors)}")
    for line in result.report.splitlines():
        logger.info(line)
    for warning in result.warnings:
        logger.info(f"  warning: {warning}")
    logger.info("=" * 60)

    if args.json:
        Path(args.json).parent.mkdir(parents=True, exist_ok=True)
        Path(args.json).write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Result written: {args.json}")

    if args.glb:
        generate_3d_model(result, args.glb)

    if args.strict and result.issues:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
