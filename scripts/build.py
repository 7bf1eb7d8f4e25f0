#!/usr/bin/env python3
"""
Unified entry point for bookgraph.

Checks an outline-driven markdown book (SUMMARY.md + chapters), shows its
chapter tree and link graph, and publishes validated builds.

Usage:
    python build.py handbook                    Check the book (default)
    python build.py check handbook --json-report
    python build.py check handbook --md-fallback
    python build.py tree handbook               Show the chapter tree
    python build.py graph handbook --json       Dump the link graph
    python build.py publish handbook --all      Write manifest + merged markdown

Requires: PyYAML
"""

import os
import sys
import json
import argparse
import traceback

# Ensure bookgraph is importable from the scripts/ directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from bookgraph.config import BookConfig
from bookgraph.exceptions import ConfigError, StructuralParseError
from bookgraph.models import (
    EMPTY_TARGET,
    EXTERNAL_TARGET,
    MISSING_FILE,
    PLACEHOLDER,
    RESOLVED,
)
from bookgraph.pipeline import build_book
from bookgraph.publishers import PUBLISHERS, DEFAULT_FORMATS
from bookgraph.publishers.manifest import edge_record
from bookgraph.resolve import find_book_dir


STATUS_MARK = {
    RESOLVED:     "✓",
    MISSING_FILE: "✗",
    PLACEHOLDER:  "·",
    EMPTY_TARGET: "!",
}


# ── Resolve book ───────────────────────────────────────────────────────


def resolve_book(args):
    """Find book directory, load config with CLI overrides. Exits on failure."""
    project_root = os.getcwd()
    overrides = {
        "allow_errors": True if getattr(args, "allow_errors", False) else None,
        "slash_md_fallback": getattr(args, "md_fallback", None),
    }

    # A path to the outline file itself: its directory is the book
    if os.path.isfile(args.book):
        book_dir = os.path.dirname(os.path.abspath(args.book))
        overrides["summary"] = os.path.basename(args.book)
    else:
        book_dir = find_book_dir(args.book, project_root)

    if not book_dir:
        print(f"Error: Could not find book '{args.book}'")
        print(f"  Searched in: {os.path.join(project_root, 'books')}")
        print("  Tip: Pass the book directory or its SUMMARY.md directly.")
        sys.exit(1)

    try:
        config = BookConfig.load(book_dir, overrides=overrides)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    return config


def run_build(config, verbose=False):
    """Run the pipeline. Exits if the outline cannot be parsed."""
    try:
        return build_book(config, verbose=verbose)
    except StructuralParseError as e:
        print(f"  ✗ {e}")
        sys.exit(1)


def use_color(args):
    return not getattr(args, "no_color", False) and sys.stdout.isatty()


# ── Check command ──────────────────────────────────────────────────────


def cmd_check(args):
    """Validate outline, chapters and links."""
    config = resolve_book(args)
    config.summary()
    print()

    build = run_build(config, verbose=args.verbose)
    build.report.print_report(color=use_color(args))

    if args.json_report:
        report_path = args.json_report
        if report_path is True:
            output_dir = args.output_dir or os.path.join(os.getcwd(), "output")
            os.makedirs(output_dir, exist_ok=True)
            report_path = os.path.join(output_dir, f"{config.prefix}_diagnostics.json")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(build.report.to_json())
            f.write("\n")
        print(f"  Report: {report_path}")

    if build.report.has_errors and config.allow_errors:
        print("  Errors allowed by override")

    sys.exit(build.exit_code)


# ── Tree command ───────────────────────────────────────────────────────


def cmd_tree(args):
    """Print the chapter tree with resolution status."""
    config = resolve_book(args)
    build = run_build(config, verbose=args.verbose)

    print(f"\n  {build.title}\n")
    for node in build.outline.walk():
        indent = "  " * node.depth
        if node.divider:
            print(f"  {indent}# {node.id} {node.title}")
            continue
        mark = STATUS_MARK.get(node.status, "?")
        ref = ""
        if node.content_ref:
            ref = f"  ({node.resolved_path or node.content_ref})"
        print(f"  {indent}{mark} {node.id} {node.title}{ref}")


# ── Graph command ──────────────────────────────────────────────────────


def cmd_graph(args):
    """Print the link graph between chapters."""
    config = resolve_book(args)
    build = run_build(config, verbose=args.verbose)
    edges = build.graph.edges
    if not args.external:
        edges = [e for e in edges if e.target != EXTERNAL_TARGET]

    if args.json:
        print(json.dumps([edge_record(e) for e in edges], indent=2, ensure_ascii=False))
        return

    for edge in edges:
        anchor = f"#{edge.anchor}" if edge.anchor else ""
        print(f"  {edge.source:>8} -> {edge.target}{anchor}  [{edge.kind}]")
    print(f"{'─' * 50}")
    print(
        f"  {len(build.graph.internal())} internal, {len(build.graph.broken())} broken, "
        f"{len(build.graph.external())} external"
    )


# ── Publish command ────────────────────────────────────────────────────


def cmd_publish(args):
    """Check the book, then write one or more artifacts."""
    config = resolve_book(args)

    formats = []
    if args.all:
        formats = list(DEFAULT_FORMATS)
    else:
        for fmt in PUBLISHERS:
            if getattr(args, fmt, False):
                formats.append(fmt)

    # Default to --all if nothing specified
    if not formats:
        formats = list(DEFAULT_FORMATS)

    config.summary()
    build = run_build(config, verbose=args.verbose)
    build.report.print_report(color=use_color(args))

    output_dir = args.output_dir or os.path.join(os.getcwd(), "output")
    print(f"  Output: {output_dir}")

    results = {}
    for fmt in formats:
        publisher = PUBLISHERS[fmt](
            build,
            output_dir,
            verbose=args.verbose,
            force=args.force,
        )
        results[fmt] = publisher.publish()

    # Summary
    print(f"\n{'─' * 60}")
    failed = [fmt for fmt, ok in results.items() if not ok]
    if failed:
        print(f"  Done with errors: {', '.join(failed)} not published")
        sys.exit(1)
    else:
        print(f"  Done. {len(results)} artifact(s) published.")


# ── Argument Parser ────────────────────────────────────────────────────


def build_parser():
    parser = argparse.ArgumentParser(
        description="Outline-driven markdown book checker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s handbook                     Check the book
  %(prog)s check handbook --json-report Save diagnostics as JSON
  %(prog)s tree books/handbook          Show chapters and their status
  %(prog)s graph handbook --json        Dump cross-references
  %(prog)s publish handbook --md        Merge chapters into one markdown file
        """,
    )

    sub = parser.add_subparsers(dest="command")

    # ── check (default when no subcommand) ─────────────────
    check_p = sub.add_parser("check", help="Validate outline, chapters and links (default)")
    _add_book_arg(check_p)
    _add_build_args(check_p)
    check_p.add_argument("--output-dir", help="Directory for --json-report")
    check_p.add_argument(
        "--json-report",
        nargs="?",
        const=True,
        default=None,
        help="Save diagnostics as JSON (optionally to PATH)",
    )

    # ── tree ───────────────────────────────────────────────
    tree_p = sub.add_parser("tree", help="Show the chapter tree")
    _add_book_arg(tree_p)
    _add_build_args(tree_p)

    # ── graph ──────────────────────────────────────────────
    graph_p = sub.add_parser("graph", help="Show the link graph")
    _add_book_arg(graph_p)
    _add_build_args(graph_p)
    graph_p.add_argument("--json", action="store_true", help="JSON output")
    graph_p.add_argument("--external", action="store_true", help="Include external links")

    # ── publish ────────────────────────────────────────────
    pub_p = sub.add_parser("publish", help="Write build artifacts")
    _add_book_arg(pub_p)
    _add_build_args(pub_p)
    fmt = pub_p.add_argument_group("artifacts")
    fmt.add_argument("--manifest", action="store_true", help="JSON manifest")
    fmt.add_argument("--md", action="store_true", help="Merged markdown")
    fmt.add_argument("--all", action="store_true", help="manifest + md")
    pub_p.add_argument("--output-dir", help="Override output directory")
    pub_p.add_argument("--force", action="store_true", help="Publish even with errors")

    return parser


def _add_book_arg(parser):
    parser.add_argument("book", help="Book directory, SUMMARY.md path, number, or keyword")


def _add_build_args(parser):
    """Options shared by every command that runs the pipeline."""
    opts = parser.add_argument_group("options")
    fallback = opts.add_mutually_exclusive_group()
    fallback.add_argument(
        "--md-fallback", dest="md_fallback", action="store_true", default=None,
        help="Read 'name/md' references as 'name.md' when the former is missing",
    )
    fallback.add_argument(
        "--no-md-fallback", dest="md_fallback", action="store_false", default=None,
        help="Report 'name/md' references as missing files",
    )
    opts.add_argument(
        "--allow-errors", action="store_true", help="Error findings do not fail the build"
    )
    opts.add_argument("--verbose", "-v", action="store_true")
    opts.add_argument("--no-color", action="store_true", help="Plain output")


# ── Main ───────────────────────────────────────────────────────────────


def main(argv=None):
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)

    # Allow bare "build.py handbook" without the "check" subcommand
    known_commands = {"check", "tree", "graph", "publish"}
    if argv and argv[0] not in known_commands and not argv[0].startswith("-"):
        argv = ["check"] + argv
    args = parser.parse_args(argv)

    dispatch = {
        "check": cmd_check,
        "tree": cmd_tree,
        "graph": cmd_graph,
        "publish": cmd_publish,
    }

    handler = dispatch.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)
    except Exception as e:
        log_path = "build_error.log"
        with open(log_path, "w") as f:
            traceback.print_exc(file=f)
        print(f"\nUnexpected error: {e}")
        print(f"Full traceback written to {log_path}")
        sys.exit(1)
