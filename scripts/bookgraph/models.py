"""
Immutable snapshots passed between build stages.

The outline is an arena: nodes live in one tuple in reading (preorder)
order and refer to their parent and children by index. The link graph
refers to nodes by their positional id, so cycles in the graph never
become ownership cycles in the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional


# ── Node status ────────────────────────────────────────────────────────

RESOLVED = "Resolved"
MISSING_FILE = "MissingFile"
EMPTY_TARGET = "EmptyTarget"
PLACEHOLDER = "Placeholder"

NODE_STATUSES = (RESOLVED, MISSING_FILE, EMPTY_TARGET, PLACEHOLDER)

# ── Edge kinds ─────────────────────────────────────────────────────────

EDGE_INTERNAL = "Internal"
EDGE_BROKEN = "Broken"
EDGE_EXTERNAL = "External"

# Target of every edge that leaves the book
EXTERNAL_TARGET = "<external>"


@dataclass(frozen=True)
class ChapterNode:
    """One outline entry. `status` is None until the resolver has run."""

    index: int
    id: str
    title: str
    depth: int
    parent: Optional[int] = None
    children: tuple[int, ...] = ()
    content_ref: Optional[str] = None
    anchor: Optional[str] = None
    status: Optional[str] = None
    divider: bool = False
    line: int = 0
    resolved_path: Optional[str] = None
    via_fallback: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class Outline:
    """The parsed table of contents."""

    title: Optional[str]
    nodes: tuple[ChapterNode, ...]
    roots: tuple[int, ...]
    _by_id: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_by_id", {node.id: node for node in self.nodes})

    def __len__(self):
        return len(self.nodes)

    def walk(self) -> Iterator[ChapterNode]:
        """Nodes in reading order."""
        return iter(self.nodes)

    def get(self, node_id):
        return self._by_id.get(node_id)

    def root_nodes(self):
        return [self.nodes[i] for i in self.roots]

    def children_of(self, node):
        return [self.nodes[i] for i in node.children]

    def parent_of(self, node):
        return None if node.parent is None else self.nodes[node.parent]

    def siblings_of(self, node):
        """All nodes sharing `node`'s parent, `node` included."""
        parent = self.parent_of(node)
        return self.root_nodes() if parent is None else self.children_of(parent)

    def with_nodes(self, nodes):
        """Same tree shape with replacement node records."""
        return Outline(title=self.title, nodes=tuple(nodes), roots=self.roots)


@dataclass(frozen=True)
class RawLink:
    """A link target as written in a document, not yet resolved."""

    target: str
    line: int


@dataclass(frozen=True)
class ContentDocument:
    source_path: str
    raw_text: str
    outbound_links: tuple[RawLink, ...] = ()


@dataclass(frozen=True)
class LinkEdge:
    source: str
    target: str
    kind: str
    raw: str
    anchor: Optional[str] = None
    line: int = 0


@dataclass(frozen=True)
class LinkGraph:
    """Directed cross-reference graph between chapters. May contain cycles."""

    edges: tuple[LinkEdge, ...] = ()

    def __len__(self):
        return len(self.edges)

    def outbound(self, node_id):
        return [e for e in self.edges if e.source == node_id]

    def inbound(self, node_id):
        return [e for e in self.edges if e.target == node_id]

    def internal(self):
        return [e for e in self.edges if e.kind == EDGE_INTERNAL]

    def broken(self):
        return [e for e in self.edges if e.kind == EDGE_BROKEN]

    def external(self):
        return [e for e in self.edges if e.kind == EDGE_EXTERNAL]
