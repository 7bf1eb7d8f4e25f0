"""
Outline (SUMMARY.md) parser.

Turns the book's table of contents into an arena of ChapterNodes:

    # Summary                      -> outline title
    [Preface](preface.md)          -> node "1", prefix chapter
    * [Intro](intro.md)            -> node "2", depth 0
        * [Setup](setup/install.md)-> node "2.1", depth 1
    * [Future topic]()             -> node "3", Placeholder
    ## Reference                   -> node "4", divider
    * [Glossary](glossary.md)      -> node "4.1", depth 1

Irregular entries are kept and tagged with a status for the validator.
Only an entry that cannot be given a depth is a parse error.
"""

import re
from dataclasses import dataclass, field

from bookgraph.exceptions import StructuralParseError
from bookgraph.links import BALANCED_TARGET, strip_angle_brackets, strip_comments
from bookgraph.models import (
    ChapterNode,
    EMPTY_TARGET,
    Outline,
    PLACEHOLDER,
    RESOLVED,
)


TAB_WIDTH = 4

LIST_ITEM = re.compile(r"^(?P<indent>[ \t]*)(?:[*+\-]|\d+[.)])(?:[ \t]+(?P<text>.*?))?\s*$")

HEADING = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?(?:[ \t]+#+)?[ \t]*$")

RULE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")

ITEM_LINK = re.compile(
    r"^\[(?P<title>(?:[^\[\]]|\[[^\[\]]*\])*)\]\((?P<target>" + BALANCED_TARGET + r")\)"
)

LINK_TITLE = re.compile(r"^(?P<path>.*?)\s+(?:\"[^\"]*\"|'[^']*')$")


@dataclass
class _Entry:
    """Mutable node record used only while parsing."""

    title: str
    depth: int
    line: int
    parent: int = None
    children: list = field(default_factory=list)
    content_ref: str = None
    anchor: str = None
    status: str = None
    divider: bool = False


def _indent_width(indent):
    return len(indent.expandtabs(TAB_WIDTH))


def parse_target(target):
    """
    Split an outline link target into (path, anchor).

    Angle brackets and a trailing "title" are removed. Either part may
    be None: "" -> (None, None), "#a" -> (None, "a").
    """
    target = target.strip()
    if not target.startswith("<"):
        titled = LINK_TITLE.match(target)
        if titled:
            target = titled.group("path")
    target = strip_angle_brackets(target)

    path, _, anchor = target.partition("#")
    return (path.strip() or None), (anchor or None)


def _parse_item(text, line_num):
    """
    Build (title, content_ref, anchor, status) for one list item's text.

    Empty items ("*", "[]()") are kept as Placeholders with a title
    naming their line, so the validator can point at them.
    """
    untitled = f"(untitled, line {line_num})"
    link = ITEM_LINK.match(text or "")
    if not link:
        # A bare entry with no link at all is a stub
        return (text or "").strip() or untitled, None, None, PLACEHOLDER

    title = link.group("title").strip()
    raw_target = link.group("target")
    path, anchor = parse_target(raw_target)

    if path is None:
        status = EMPTY_TARGET if anchor else PLACEHOLDER
        return title or untitled, None, anchor, status

    return title or path, path, anchor, None


def _assign_ids(entries, roots):
    ids = [None] * len(entries)

    def visit(indices, prefix):
        for position, index in enumerate(indices, 1):
            ids[index] = f"{prefix}{position}"
            visit(entries[index].children, f"{ids[index]}.")

    visit(roots, "")
    return ids


def parse_outline(text):
    """
    Parse outline text into an Outline.

    Raises StructuralParseError when an item's indentation matches no
    open list level.
    """
    entries = []
    roots = []
    title = None

    # Open list levels in the current block: [(column, entry index)]
    stack = []
    group = None  # divider currently collecting top-level items

    def add(entry):
        index = len(entries)
        entries.append(entry)
        if entry.parent is None:
            roots.append(index)
        else:
            entries[entry.parent].children.append(index)
        return index

    after_blank = True

    for line_num, line in enumerate(strip_comments(text).splitlines(), 1):
        if not line.strip():
            after_blank = True
            continue
        follows_blank, after_blank = after_blank, False
        if RULE.match(line):
            continue

        item = LIST_ITEM.match(line)
        if item:
            column = _indent_width(item.group("indent"))

            if stack and column > stack[-1][0]:
                parent = stack[-1][1]
            else:
                popped = False
                while stack and stack[-1][0] > column:
                    stack.pop()
                    popped = True
                if stack and stack[-1][0] == column:
                    stack.pop()
                elif stack and popped:
                    raise StructuralParseError(
                        f"indentation of {column} columns matches no enclosing list level",
                        line_num,
                    )
                parent = stack[-1][1] if stack else group

            depth = 0 if parent is None else entries[parent].depth + 1
            item_title, ref, anchor, status = _parse_item(item.group("text"), line_num)
            index = add(_Entry(
                title=item_title,
                depth=depth,
                line=line_num,
                parent=parent,
                content_ref=ref,
                anchor=anchor,
                status=status,
            ))
            stack.append((column, index))
            continue

        heading = HEADING.match(line)
        if heading:
            label = (heading.group("text") or "").strip()
            if not label:
                continue
            if not entries and title is None and len(heading.group("hashes")) == 1:
                title = label
                continue
        elif stack and (not follows_blank or line[0] in " \t"):
            # Wrapped or lazy continuation of the previous list item
            continue
        else:
            label = line.strip()
            chapter = ITEM_LINK.match(label)
            if chapter:
                # A prefix or suffix chapter outside any list closes the part
                stack = []
                group = None
                item_title, ref, anchor, status = _parse_item(label, line_num)
                add(_Entry(
                    title=item_title,
                    depth=0,
                    line=line_num,
                    content_ref=ref,
                    anchor=anchor,
                    status=status,
                ))
                continue

        # A heading or bare text line outside a list groups what follows
        stack = []
        group = add(_Entry(title=label, depth=0, line=line_num, status=RESOLVED, divider=True))

    ids = _assign_ids(entries, roots)
    nodes = tuple(
        ChapterNode(
            index=index,
            id=ids[index],
            title=entry.title,
            depth=entry.depth,
            parent=entry.parent,
            children=tuple(entry.children),
            content_ref=entry.content_ref,
            anchor=entry.anchor,
            status=entry.status,
            divider=entry.divider,
            line=entry.line,
        )
        for index, entry in enumerate(entries)
    )
    return Outline(title=title, nodes=nodes, roots=tuple(roots))


def load_outline(path):
    """Read and parse an outline file."""
    with open(path, "rb") as f:
        raw = f.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise StructuralParseError(f"{path} is not valid UTF-8 ({e.reason})")
    return parse_outline(text)
