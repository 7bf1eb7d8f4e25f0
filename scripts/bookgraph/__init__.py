"""
bookgraph: outline-driven markdown book compiler core.

Public API:
    from bookgraph.config import BookConfig
    from bookgraph.pipeline import build_book
    from bookgraph.outline import parse_outline
    from bookgraph.resolve import find_book_dir, resolve_content
    from bookgraph.graph import build_link_graph
    from bookgraph.validate import validate
    from bookgraph.publishers import PUBLISHERS, DEFAULT_FORMATS
"""
