"""
Book resolution, reference normalisation, and chapter loading.

Every stage that needs to find a book directory, turn an outline or
in-chapter reference into a content-root-relative path, or list the
markdown files on disk imports from here.
"""

import os
import re
import fnmatch
import posixpath
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from urllib.parse import unquote

import yaml

from bookgraph.links import extract_links, is_external_url
from bookgraph.models import ContentDocument, MISSING_FILE, RESOLVED


# Tried in order when a reference names a directory
INDEX_FILES = ["README.md", "index.md"]


def natural_sort_key(s):
    """Sort strings with embedded numbers naturally (2.md before 10.md)."""
    return [
        int(text) if text.isdigit() else text.lower()
        for text in re.split(r"(\d+)", s)
    ]


def find_book_dir(identifier, project_root):
    """
    Resolve a book identifier to its directory.

    Accepts:
        - Direct path:  books/api_handbook  (any dir holding SUMMARY.md or book.yaml)
        - Number:       1         (matches "1_..." prefix under books/)
        - Keyword:      handbook  (matches dir name or YAML title)

    Returns: absolute path to the book directory, or None.
    """
    books_root = os.path.join(project_root, "books")

    # Direct path (absolute or relative)
    for candidate in [identifier, os.path.join(project_root, identifier)]:
        if os.path.isdir(candidate) and any(
            os.path.exists(os.path.join(candidate, name))
            for name in ("book.yaml", "SUMMARY.md")
        ):
            return os.path.abspath(candidate)

    if not os.path.isdir(books_root):
        return None

    identifier_lower = identifier.lower()

    for entry in sorted(os.listdir(books_root), key=natural_sort_key):
        book_path = os.path.join(books_root, entry)
        if not os.path.isdir(book_path):
            continue

        # Match by number prefix: "1" matches "1_api_handbook"
        match = re.match(r"^(\d+)_", entry)
        if match and match.group(1) == identifier:
            return book_path

        # Match by keyword in directory name
        if identifier_lower in entry.lower():
            return book_path

        # Match by keyword in YAML title
        yaml_path = os.path.join(book_path, "book.yaml")
        if os.path.exists(yaml_path):
            try:
                with open(yaml_path, encoding="utf-8") as f:
                    cfg = yaml.safe_load(f)
            except (OSError, yaml.YAMLError):
                continue
            if isinstance(cfg, dict) and identifier_lower in str(cfg.get("title", "")).lower():
                return book_path

    return None


# ── Reference normalisation ────────────────────────────────────────────


def split_anchor(target):
    """"a.md#x" -> ("a.md", "x"); the anchor is None when absent."""
    path, sep, anchor = target.partition("#")
    return path, (anchor if sep else None)


def normalize_ref(ref, base_dir=""):
    """
    Normalise a chapter reference to a content-root-relative POSIX path.

    Backslashes become slashes, %-escapes are decoded and "." / ".."
    segments collapse. A leading slash means "from the content root";
    otherwise the reference is relative to `base_dir`. Returns None for
    an empty reference or one that escapes the content root.
    """
    ref = unquote(ref.strip()).replace("\\", "/")
    if not ref:
        return None
    if ref.startswith("/"):
        ref = ref.lstrip("/")
    elif base_dir:
        ref = posixpath.join(base_dir, ref)
    if not ref:
        return None

    path = posixpath.normpath(ref)
    if path == ".." or path.startswith("../"):
        return None
    return path


def slash_md_variant(path):
    """"params/md" -> "params.md"; None when the path has no /md suffix."""
    if path and path.endswith("/md") and len(path) > 3:
        return path[:-3] + ".md"
    return None


def _on_disk(root, path):
    return os.path.join(root, *path.split("/"))


def locate(root, path):
    """
    Find `path` under `root`. A directory resolves to its index file.

    Returns the content-root-relative path of the file, or None.
    """
    if path == ".":
        candidates = list(INDEX_FILES)
    else:
        full = _on_disk(root, path)
        if os.path.isfile(full):
            return path
        if not os.path.isdir(full):
            return None
        candidates = [f"{path}/{name}" for name in INDEX_FILES]

    for candidate in candidates:
        if os.path.isfile(_on_disk(root, candidate)):
            return candidate
    return None


def locate_reference(ref, root, fallback=False):
    """
    Resolve an outline reference against the content root.

    The literal path is always tried first. Only if it does not exist,
    and `fallback` is enabled, a trailing "/md" is retried as ".md".

    Returns (path, via_fallback, reason); path is None when unresolved.
    """
    path = normalize_ref(ref)
    if path is None:
        return None, False, f"'{ref}' points outside the content root"

    found = locate(root, path)
    if found:
        return found, False, None

    variant = slash_md_variant(path)
    if variant and locate(root, variant):
        if fallback:
            return locate(root, variant), True, None
        return None, False, (
            f"'{ref}' not found (did you mean '{variant}'? "
            "set slash_md_fallback to accept it)"
        )

    return None, False, f"'{ref}' not found under the content root"


# ── Loading ────────────────────────────────────────────────────────────


def load_document(root, path):
    """Read one chapter verbatim and scan it for links."""
    with open(_on_disk(root, path), "rb") as f:
        raw_text = f.read().decode("utf-8")
    return ContentDocument(
        source_path=path,
        raw_text=raw_text,
        outbound_links=tuple(extract_links(raw_text)),
    )


def resolve_content(outline, config):
    """
    Load the document behind every outline reference.

    Loads run on a thread pool and are joined at one barrier bounded by
    `config.load_timeout`; anything not finished by then is MissingFile.

    Returns (outline, documents): a new Outline with every referencing
    node Resolved or MissingFile, and {node id: ContentDocument} in
    reading order.
    """
    root = config.content_root
    nodes = list(outline.nodes)
    pending = {}

    for node in outline.walk():
        if node.content_ref is None:
            continue
        if is_external_url(node.content_ref):
            nodes[node.index] = replace(node, status=RESOLVED)
            continue

        path, via_fallback, reason = locate_reference(
            node.content_ref, root, fallback=config.slash_md_fallback
        )
        if path is None:
            nodes[node.index] = replace(node, status=MISSING_FILE, reason=reason)
        else:
            nodes[node.index] = replace(node, resolved_path=path, via_fallback=via_fallback)
            pending[node.index] = path

    documents = {}
    if not pending:
        return outline.with_nodes(nodes), documents

    executor = ThreadPoolExecutor(max_workers=config.max_workers)
    try:
        futures = {
            index: executor.submit(load_document, root, path)
            for index, path in pending.items()
        }
        done, _ = wait(futures.values(), timeout=config.load_timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    for index in sorted(futures):
        node = nodes[index]
        future = futures[index]
        if future not in done:
            nodes[index] = replace(
                node, status=MISSING_FILE, resolved_path=None,
                reason=f"'{node.content_ref}' timed out after {config.load_timeout}s",
            )
            continue
        try:
            document = future.result()
        except UnicodeDecodeError:
            nodes[index] = replace(
                node, status=MISSING_FILE, resolved_path=None,
                reason=f"'{node.resolved_path}' is not valid UTF-8",
            )
        except OSError as e:
            nodes[index] = replace(
                node, status=MISSING_FILE, resolved_path=None,
                reason=f"'{node.resolved_path}' could not be read: {e.strerror or e}",
            )
        else:
            nodes[index] = replace(node, status=RESOLVED)
            documents[node.id] = document

    return outline.with_nodes(nodes), documents


# ── Content files on disk ──────────────────────────────────────────────


def iter_content_files(config):
    """
    Content-root-relative paths of every chapter-like file on disk.

    Hidden entries, the outline file and `ignore` patterns are skipped.
    Sorted naturally so reports are stable.
    """
    root = config.content_root
    extensions = tuple(ext.lower() for ext in config.extensions)
    ignore = config.ignore
    outline = os.path.relpath(config.outline_path, root).replace(os.sep, "/")

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
        for fname in filenames:
            if fname.startswith(".") or not fname.lower().endswith(extensions):
                continue
            rel = fname if rel_dir == "." else f"{rel_dir}/{fname}"
            if rel == outline:
                continue
            if any(fnmatch.fnmatch(rel, pattern) for pattern in ignore):
                continue
            found.append(rel)

    found.sort(key=natural_sort_key)
    return found
