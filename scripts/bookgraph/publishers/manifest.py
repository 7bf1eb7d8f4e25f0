"""
Manifest publisher.

Writes the validated book as JSON: the outline tree with resolution
status, the link graph, and the diagnostics. Site generators and search
indexers read this instead of re-parsing the sources.
"""

import json

from bookgraph.publishers.base import BasePublisher


def node_record(outline, node):
    return {
        "id": node.id,
        "title": node.title,
        "depth": node.depth,
        "status": node.status,
        "divider": node.divider,
        "ref": node.content_ref,
        "anchor": node.anchor,
        "path": node.resolved_path,
        "children": [node_record(outline, child) for child in outline.children_of(node)],
    }


def edge_record(edge):
    return {
        "from": edge.source,
        "to": edge.target,
        "kind": edge.kind,
        "raw": edge.raw,
        "anchor": edge.anchor,
        "line": edge.line,
    }


class ManifestPublisher(BasePublisher):
    format_name = "Manifest"
    extension = ".json"

    def render(self):
        build = self.build
        manifest = {
            "title": build.title,
            "chapters": [node_record(build.outline, root) for root in build.outline.root_nodes()],
            "links": [edge_record(edge) for edge in build.graph.edges],
            "diagnostics": build.report.to_records(),
        }
        self.log(f"  Nodes: {len(build.outline)}  Links: {len(build.graph)}")
        return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"
