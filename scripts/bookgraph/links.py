"""
Markdown link scanning.

Only link syntax is recognised; everything else in a chapter is opaque
text. Recognised forms:

    [text](target "optional title")     inline link
    [label]: target                     reference definition
    <https://example.com>               autolink

Images and anything inside fenced code blocks or inline code spans are
skipped.
"""

import re

from bookgraph.models import RawLink


# One level of balanced parentheses, as in "ch(1).md"
BALANCED_TARGET = r"(?:[^()\n]|\([^()\n]*\))*"

# Link text may hold one level of nested brackets (e.g. a badge image)
INLINE_LINK = re.compile(
    r"(?P<bang>!?)\[(?:[^\[\]]|\[[^\[\]]*\])*\]"
    r"\(\s*(?P<target><[^>\n]*>|[^()\s]*(?:\([^()\s]*\)[^()\s]*)*)"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)

REFERENCE_DEFINITION = re.compile(
    r"^ {0,3}\[(?P<label>[^\]^][^\]]*)\]:\s*(?P<target><[^>]*>|\S+)"
)

AUTOLINK = re.compile(r"<(?P<target>[A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")

FENCE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})")

CODE_SPAN = re.compile(r"(`+)(?:(?!\1).)+?\1")

HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)

URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:")


def is_external_url(target):
    """True for targets that leave the book (have a scheme, or start with //)."""
    target = target.strip()
    return bool(URL_SCHEME.match(target)) or target.startswith("//")


def strip_angle_brackets(target):
    target = target.strip()
    if target.startswith("<") and target.endswith(">"):
        return target[1:-1].strip()
    return target


def strip_comments(text):
    # Keep newlines so line numbers stay correct
    return HTML_COMMENT.sub(lambda m: "\n" * m.group(0).count("\n"), text)


def extract_links(text):
    """Return every link target in `text` as RawLink, in document order."""
    links = []
    fence = None

    for line_num, line in enumerate(strip_comments(text).splitlines(), 1):
        opener = FENCE.match(line)
        if fence:
            if opener and opener.group("fence")[0] == fence[0] and len(opener.group("fence")) >= len(fence):
                fence = None
            continue
        if opener:
            fence = opener.group("fence")
            continue

        line = CODE_SPAN.sub("", line)
        found = []

        definition = REFERENCE_DEFINITION.match(line)
        if definition:
            found.append((definition.start("target"), definition.group("target")))
        else:
            spans = []
            for match in INLINE_LINK.finditer(line):
                spans.append(match.span())
                if match.group("bang"):
                    continue
                found.append((match.start("target"), match.group("target")))
            for match in AUTOLINK.finditer(line):
                if any(start <= match.start() < end for start, end in spans):
                    continue
                found.append((match.start("target"), match.group("target")))

        for _, target in sorted(found, key=lambda item: item[0]):
            links.append(RawLink(target=strip_angle_brackets(target), line=line_num))

    return links
