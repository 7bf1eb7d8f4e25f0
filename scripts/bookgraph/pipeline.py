"""
Build pipeline: outline -> resolved content -> link graph -> diagnostics.

    config = BookConfig.load(book_dir)
    build = build_book(config)
    build.report.print_report()
    sys.exit(build.exit_code)

Each stage returns a fresh snapshot; nothing upstream is modified. Only
StructuralParseError escapes. Missing files, broken links and the rest
end up in build.report.
"""

import os
from dataclasses import dataclass

from bookgraph.config import BookConfig
from bookgraph.graph import build_link_graph
from bookgraph.models import LinkGraph, Outline
from bookgraph.outline import load_outline
from bookgraph.resolve import resolve_content
from bookgraph.validate import DiagnosticReport, validate


@dataclass(frozen=True)
class BookBuild:
    """Everything a publisher needs from one build."""

    config: BookConfig
    outline: Outline
    documents: dict
    graph: LinkGraph
    report: DiagnosticReport

    @property
    def title(self):
        return (
            self.config.title
            or self.outline.title
            or os.path.basename(self.config.book_dir)
        )

    @property
    def exit_code(self):
        return self.report.exit_code(allow_errors=self.config.allow_errors)

    @property
    def publishable(self):
        return self.exit_code == 0


def build_book(config, verbose=False):
    """Run every stage for `config` and return the BookBuild."""

    def log(msg):
        if verbose:
            print(msg)

    outline = load_outline(config.outline_path)
    log(f"  Parsed {len(outline)} outline entries from {config.summary_file}")

    outline, documents = resolve_content(outline, config)
    log(f"  Loaded {len(documents)} chapters from {config.content_root}")

    graph = build_link_graph(outline, documents, config)
    log(
        f"  Linked {len(graph.internal())} internal, {len(graph.external())} external, "
        f"{len(graph.broken())} broken"
    )

    report = validate(outline, documents, graph, config)
    log(f"  Validated: {len(report.errors)} errors, {len(report.warnings)} warnings")

    return BookBuild(
        config=config,
        outline=outline,
        documents=documents,
        graph=graph,
        report=report,
    )
