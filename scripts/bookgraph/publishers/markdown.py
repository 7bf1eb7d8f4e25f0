"""
Markdown publisher.

Produces a single merged markdown file: every loaded chapter in reading
order, with outline dividers as part headings. Useful for word counts,
sharing with editors, or feeding into other tools.
"""

from bookgraph.publishers.base import BasePublisher


class MarkdownPublisher(BasePublisher):
    format_name = "Markdown"
    extension = ".md"

    def render(self):
        parts = []
        skipped = 0

        for node in self.build.outline.walk():
            if node.divider:
                parts.append(f"# {node.title}")
                continue
            document = self.build.documents.get(node.id)
            if document is None:
                skipped += 1
                continue
            parts.append(document.raw_text.strip("\n"))

        self.log(f"  Chapters: {len(self.build.documents)}")
        if skipped:
            self.log(f"  Skipped {skipped} entries without content")

        return "\n\n".join(parts) + "\n"
