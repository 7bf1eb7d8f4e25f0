"""
Link graph builder.

Turns the raw link targets of every loaded chapter into edges between
outline nodes. A target is matched against the normalised references of
the whole outline, so a link to "params.md" reaches the node written as
"params/md" once the fallback has resolved it.
"""

import posixpath

from bookgraph.links import is_external_url
from bookgraph.models import (
    EDGE_BROKEN,
    EDGE_EXTERNAL,
    EDGE_INTERNAL,
    EXTERNAL_TARGET,
    LinkEdge,
    LinkGraph,
)
from bookgraph.resolve import INDEX_FILES, normalize_ref, slash_md_variant, split_anchor


class ReferenceIndex:
    """
    Normalised reference -> node id, for every referencing node.

    When two nodes share a reference the first in reading order wins.
    """

    def __init__(self, outline, fallback=True):
        self.fallback = fallback
        self._ids = {}
        for node in outline.walk():
            if node.content_ref is None or is_external_url(node.content_ref):
                continue
            for key in (normalize_ref(node.content_ref), node.resolved_path):
                if key:
                    self._ids.setdefault(key, node.id)

    def __contains__(self, path):
        return self.lookup(path) is not None

    def __len__(self):
        return len(self._ids)

    def lookup(self, path):
        """Node id for a normalised path, or None."""
        if path is None:
            return None
        candidates = [path]
        candidates.extend(
            name if path == "." else f"{path}/{name}" for name in INDEX_FILES
        )
        if self.fallback:
            variant = slash_md_variant(path)
            if variant:
                candidates.append(variant)
        for candidate in candidates:
            node_id = self._ids.get(candidate)
            if node_id is not None:
                return node_id
        return None


def resolve_link(link, source_id, source_path, index):
    """Classify one raw link found in the chapter at `source_path`."""
    raw = link.target

    if is_external_url(raw):
        return LinkEdge(source_id, EXTERNAL_TARGET, EDGE_EXTERNAL, raw, line=link.line)

    path, anchor = split_anchor(raw)
    if not path.strip() and anchor is not None:
        # "#section" points into the chapter itself
        return LinkEdge(source_id, source_id, EDGE_INTERNAL, raw, anchor=anchor, line=link.line)

    base_dir = posixpath.dirname(source_path)
    target_id = index.lookup(normalize_ref(path, base_dir))
    if target_id is None:
        return LinkEdge(source_id, raw, EDGE_BROKEN, raw, anchor=anchor, line=link.line)
    return LinkEdge(source_id, target_id, EDGE_INTERNAL, raw, anchor=anchor, line=link.line)


def build_link_graph(outline, documents, config):
    """Build the LinkGraph for every loaded chapter, in reading order."""
    index = ReferenceIndex(outline, fallback=config.slash_md_fallback)
    edges = []

    for node in outline.walk():
        document = documents.get(node.id)
        if document is None:
            continue
        for link in document.outbound_links:
            edges.append(resolve_link(link, node.id, document.source_path, index))

    return LinkGraph(edges=tuple(edges))
