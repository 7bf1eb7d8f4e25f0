"""
Book validator.

Runs a fixed battery of integrity checks over the resolved outline and
its link graph. Nothing here raises: every irregularity becomes a
Finding in the DiagnosticReport and the build always completes.
"""

import json
from dataclasses import dataclass
from typing import Optional

from bookgraph.links import is_external_url
from bookgraph.models import EMPTY_TARGET, MISSING_FILE, PLACEHOLDER
from bookgraph.resolve import iter_content_files, normalize_ref


# ── Severities and finding kinds ───────────────────────────────────────

ERROR = "Error"
WARNING = "Warning"

EMPTY_PLACEHOLDER = "EmptyPlaceholder"
EMPTY_TARGET_KIND = "EmptyTarget"
MISSING_FILE_KIND = "MissingFile"
NORMALIZED_REFERENCE = "NormalizedReference"
BROKEN_LINK = "BrokenLink"
DUPLICATE_TITLE = "DuplicateTitle"
DUPLICATE_REFERENCE = "DuplicateReference"
ORPHAN_DOCUMENT = "OrphanDocument"

SEVERITY_COLOR = {
    ERROR:   "\033[31m✗\033[0m",
    WARNING: "\033[33m!\033[0m",
}

SEVERITY_PLAIN = {
    ERROR:   "[ERROR]",
    WARNING: "[WARN]",
}


@dataclass(frozen=True)
class Finding:
    severity: str
    kind: str
    node_id: Optional[str]
    message: str
    path: Optional[str] = None

    def to_record(self):
        return {
            "severity": self.severity,
            "kind": self.kind,
            "nodeId": self.node_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class DiagnosticReport:
    """Ordered findings of one build."""

    findings: tuple = ()

    def __len__(self):
        return len(self.findings)

    def __iter__(self):
        return iter(self.findings)

    @property
    def errors(self):
        return [f for f in self.findings if f.severity == ERROR]

    @property
    def warnings(self):
        return [f for f in self.findings if f.severity == WARNING]

    @property
    def has_errors(self):
        return any(f.severity == ERROR for f in self.findings)

    def of_kind(self, kind):
        return [f for f in self.findings if f.kind == kind]

    def exit_code(self, allow_errors=False):
        """0 unless there are Error findings and they are not overridden."""
        return 1 if self.has_errors and not allow_errors else 0

    def to_records(self):
        """Flat {severity, kind, nodeId, message} dicts for any front end."""
        return [f.to_record() for f in self.findings]

    def to_json(self, indent=2):
        return json.dumps(self.to_records(), indent=indent, ensure_ascii=False)

    def print_report(self, color=True):
        """Print every finding followed by the summary line."""
        symbols = SEVERITY_COLOR if color else SEVERITY_PLAIN
        for f in self.findings:
            where = f"{f.node_id} " if f.node_id else ""
            print(f"  {symbols[f.severity]} {where}{f.kind}: {f.message}")

        print(f"{'─' * 50}")
        if not self.findings:
            print("  No issues found.")
            return

        parts = []
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        print(f"  {', '.join(parts)}")


# ── Checks ─────────────────────────────────────────────────────────────
#
# Each check yields findings in reading order. validate() runs them in
# the order of CHECKS.


def check_placeholders(outline, documents, graph, config):
    for node in outline.walk():
        if node.status == PLACEHOLDER:
            yield Finding(
                WARNING, EMPTY_PLACEHOLDER, node.id,
                f"'{node.title}' has no content yet (line {node.line})",
            )


def check_empty_targets(outline, documents, graph, config):
    for node in outline.walk():
        if node.status == EMPTY_TARGET:
            yield Finding(
                WARNING, EMPTY_TARGET_KIND, node.id,
                f"'{node.title}' links only to anchor '#{node.anchor}' (line {node.line})",
            )


def check_missing_files(outline, documents, graph, config):
    for node in outline.walk():
        if node.status == MISSING_FILE:
            yield Finding(
                ERROR, MISSING_FILE_KIND, node.id,
                node.reason or f"'{node.content_ref}' not found",
                path=node.content_ref,
            )


def check_normalized_references(outline, documents, graph, config):
    for node in outline.walk():
        if node.via_fallback:
            yield Finding(
                WARNING, NORMALIZED_REFERENCE, node.id,
                f"'{node.content_ref}' was read as '{node.resolved_path}'",
                path=node.resolved_path,
            )


def check_broken_links(outline, documents, graph, config):
    for edge in graph.broken():
        document = documents.get(edge.source)
        source = document.source_path if document else edge.source
        yield Finding(
            ERROR, BROKEN_LINK, edge.source,
            f"{source}:{edge.line} links to '{edge.raw}', which is not in the book",
            path=source,
        )


def check_duplicate_titles(outline, documents, graph, config):
    seen = set()
    for node in outline.walk():
        if node.parent in seen:
            continue
        seen.add(node.parent)
        first = {}
        for sibling in outline.siblings_of(node):
            if sibling.title in first:
                yield Finding(
                    WARNING, DUPLICATE_TITLE, sibling.id,
                    f"title '{sibling.title}' repeats sibling {first[sibling.title]}",
                )
            else:
                first[sibling.title] = sibling.id


def _reference_key(node):
    if node.resolved_path:
        return node.resolved_path
    if node.content_ref is None:
        return None
    if is_external_url(node.content_ref):
        return node.content_ref
    return normalize_ref(node.content_ref) or node.content_ref


def check_duplicate_references(outline, documents, graph, config):
    first = {}
    for node in outline.walk():
        key = _reference_key(node)
        if key is None:
            continue
        if key in first:
            yield Finding(
                WARNING, DUPLICATE_REFERENCE, node.id,
                f"'{key}' is also referenced by {first[key]}",
                path=key,
            )
        else:
            first[key] = node.id


def check_orphans(outline, documents, graph, config):
    referenced = {doc.source_path for doc in documents.values()}
    referenced.update(
        key for key in (_reference_key(node) for node in outline.walk()) if key
    )
    for path in iter_content_files(config):
        if path not in referenced:
            yield Finding(
                WARNING, ORPHAN_DOCUMENT, None,
                f"{path} is not referenced by the outline",
                path=path,
            )


CHECKS = [
    check_placeholders,
    check_empty_targets,
    check_missing_files,
    check_normalized_references,
    check_broken_links,
    check_duplicate_titles,
    check_duplicate_references,
    check_orphans,
]


def validate(outline, documents, graph, config):
    """Run every check and return the DiagnosticReport."""
    findings = []
    for check in CHECKS:
        findings.extend(check(outline, documents, graph, config))
    return DiagnosticReport(findings=tuple(findings))
