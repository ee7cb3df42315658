"""Command-line interface for hunk resolver."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .errors import ResolverError
from .journal import ResolutionJournal
from .models import (
    ConflictSummary,
    FileSide,
    FileStrategyRequest,
    ResolutionRequest,
    Strategy,
)
from .scanner import read_conflict_file
from .service import ConflictService
from .vcs import DEFAULT_TIMEOUT, GitBackend


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="hunk-resolver",
        description="Inspect and resolve merge conflicts one hunk at a time.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list
  %(prog)s show src/app.py
  %(prog)s resolve src/app.py 0 keep-incoming
  %(prog)s resolve src/app.py 1 manual --text-file fixed.txt
  %(prog)s take README.md theirs
        """
    )

    parser.add_argument(
        "--repo", "-C",
        type=Path,
        default=Path("."),
        help="Directory inside the working tree (default: current directory)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Timeout in seconds for each git command (default: {DEFAULT_TIMEOUT:g})"
    )
    parser.add_argument(
        "--journal",
        type=Path,
        default=None,
        help="Path to SQLite database recording applied resolutions"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List conflicted files and hunks")
    list_parser.add_argument("--json", action="store_true", help="Print the summary as JSON")

    show_parser = subparsers.add_parser("show", help="Show the hunks of one file")
    show_parser.add_argument("path", help="File path relative to the working tree")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a single hunk")
    resolve_parser.add_argument("path", help="File path relative to the working tree")
    resolve_parser.add_argument("hunk_id", type=int, help="Zero-based hunk id")
    resolve_parser.add_argument(
        "strategy",
        choices=[s.value for s in Strategy],
        help="How to resolve the hunk"
    )
    text_group = resolve_parser.add_mutually_exclusive_group()
    text_group.add_argument("--text", help="Replacement text for the manual strategy")
    text_group.add_argument(
        "--text-file",
        type=Path,
        help="File holding replacement text for the manual strategy"
    )
    resolve_parser.add_argument(
        "--fingerprint",
        help="Fingerprint reported by 'list'; refuse to resolve if the file changed"
    )

    take_parser = subparsers.add_parser("take", help="Resolve a whole file with one side")
    take_parser.add_argument("path", help="File path relative to the working tree")
    take_parser.add_argument("side", choices=[s.value for s in FileSide])

    log_parser = subparsers.add_parser("log", help="Show recorded resolutions")
    log_parser.add_argument("path", nargs="?", help="Only show entries for this file")

    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments."""
    if not args.repo.exists():
        print(f"Error: Working tree does not exist: {args.repo}")
        sys.exit(1)
    if not args.repo.is_dir():
        print(f"Error: Working tree is not a directory: {args.repo}")
        sys.exit(1)
    if args.timeout <= 0:
        print(f"Error: Timeout must be positive: {args.timeout}")
        sys.exit(1)
    if args.command == "log" and args.journal is None:
        print("Error: 'log' requires --journal")
        sys.exit(1)
    if args.command == "resolve":
        has_text = args.text is not None or args.text_file is not None
        if args.strategy == Strategy.MANUAL.value and not has_text:
            print("Error: manual strategy requires --text or --text-file")
            sys.exit(1)
        if args.strategy != Strategy.MANUAL.value and has_text:
            print("Error: --text and --text-file only apply to the manual strategy")
            sys.exit(1)


def print_summary(summary: ConflictSummary) -> None:
    """Print a human-readable conflict summary."""
    if not summary.has_merge_in_progress:
        print("No merge in progress.")
    if not summary.has_conflicts:
        print("No conflicted files.")
        return

    print(f"Conflicted files: {len(summary.files)}")
    print(f"Total hunks: {summary.total_conflicts}")
    print("-" * 20)
    for conflict_file in summary.files:
        print(f"{conflict_file.path} ({len(conflict_file.hunks)} hunks)")
        for hunk in conflict_file.hunks:
            kind = "diff3" if hunk.base_text is not None else "two-way"
            print(f"  [{hunk.id}] lines {hunk.start_line}-{hunk.end_line} ({kind})")
        for line in conflict_file.malformed_lines:
            print(f"  Warning: unterminated conflict block at line {line}")
        if conflict_file.fingerprint:
            print(f"  Fingerprint: {conflict_file.fingerprint}")

    for error in summary.errors:
        print(f"  Could not read {error.path}: {error.error}")


def print_hunks(repo: Path, path: str) -> None:
    """Print every hunk of one file with both sides."""
    conflict_file = read_conflict_file(repo, path)
    if not conflict_file.hunks:
        print(f"No conflict hunks in {path}")
    for hunk in conflict_file.hunks:
        print("=" * 60)
        print(f"HUNK {hunk.id}: lines {hunk.start_line}-{hunk.end_line}")
        print("=" * 60)
        print("--- current ---")
        print(hunk.current_text)
        if hunk.base_text is not None:
            print("--- base ---")
            print(hunk.base_text)
        print("--- incoming ---")
        print(hunk.incoming_text)


def run(args: argparse.Namespace, service: ConflictService) -> None:
    """Dispatch a parsed command to the service."""
    if args.command == "list":
        summary = service.list_conflicts()
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print_summary(summary)

    elif args.command == "show":
        print_hunks(service.root, args.path)

    elif args.command == "resolve":
        manual_text = args.text
        if args.text_file is not None:
            manual_text = args.text_file.read_text(encoding="utf-8")
            # The file's final newline ends its last line; it is not an extra empty line
            if manual_text.endswith("\n"):
                manual_text = manual_text[:-1]
        request = ResolutionRequest(
            path=args.path,
            hunk_id=args.hunk_id,
            strategy=args.strategy,
            manual_text=manual_text,
            fingerprint=args.fingerprint,
        )
        result = service.resolve_hunk(request)
        print(result.message)
        print(f"Fingerprint: {result.fingerprint}")

    elif args.command == "take":
        result = service.resolve_file(FileStrategyRequest(args.path, args.side))
        print(result.message)

    elif args.command == "log":
        entries = service.journal.history(args.path)
        if not entries:
            print("No resolutions recorded.")
        for entry in entries:
            target = "whole file" if entry.hunk_id is None else f"hunk {entry.hunk_id}"
            staged = " (staged)" if entry.staged else ""
            print(f"{entry.resolved_at}  {entry.path}  {target}  {entry.strategy}{staged}")


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    validate_args(args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    journal = ResolutionJournal(args.journal) if args.journal is not None else None

    try:
        vcs = GitBackend.discover(args.repo.absolute(), timeout=args.timeout)
        service = ConflictService(
            vcs.repo_path,
            vcs,
            journal=journal,
            progress=sys.stderr.isatty(),
        )
        run(args, service)
    except ResolverError as e:
        print(f"Error [{e.kind.value}]: {e.detail}", file=sys.stderr)
        sys.exit(1)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if journal is not None:
            journal.close()
