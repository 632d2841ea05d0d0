#!/usr/bin/env python3
"""
Archive, restore and list workspace problems from the command line.

Usage:
    python scripts/archive_problem.py archive two-sum --language python
    python scripts/archive_problem.py restore two-sum-20240101-120000
    python scripts/archive_problem.py list
"""

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.models.schemas import CollisionPolicy, SupportedLanguage
from app.utils.config import get_settings
from app.utils.errors import WorkspaceError
from domains.workspace.archive import get_archive_engine


def parse_args(argv=None):
    """Parse CLI arguments."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Move problems between problems/ and completed/.")
    parser.add_argument(
        "--root",
        type=Path,
        default=settings.get_workspace_root(),
        help="Workspace root (default: WORKSPACE_ROOT setting).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("archive", "Move an active problem into completed/."),
        ("restore", "Move an archived problem back into problems/."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("slug", help="Problem slug")
        sub.add_argument(
            "--language",
            choices=[lang.value for lang in SupportedLanguage],
            default=settings.default_language,
        )
        sub.add_argument(
            "--on-collision",
            choices=[policy.value for policy in CollisionPolicy],
            default=None,
            help=f"Collision policy (default: {settings.collision_policy}).",
        )

    subparsers.add_parser("list", help="List archived problems.")

    return parser.parse_args(argv)


def main(argv=None):
    """Run the requested archive command."""
    args = parse_args(argv)
    engine = get_archive_engine()
    root = str(args.root)

    try:
        if args.command == "list":
            slugs = engine.list_archived(root)
            if not slugs:
                logger.info("No archived problems")
            for slug in slugs:
                print(slug)
            return 0

        operation = engine.archive if args.command == "archive" else engine.restore
        result = operation(root, args.slug, args.language, on_collision=args.on_collision)

    except WorkspaceError as e:
        logger.error(e.formatted_message())
        return 1

    if result.collision_handled:
        logger.warning(f"Destination was taken, used {Path(result.destination).name}")
    logger.success(f"✓ {result.source} -> {result.destination}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
