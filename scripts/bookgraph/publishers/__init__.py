from bookgraph.publishers.manifest import ManifestPublisher
from bookgraph.publishers.markdown import MarkdownPublisher

PUBLISHERS = {
    "manifest": ManifestPublisher,
    "md": MarkdownPublisher,
}

# --all publishes these
DEFAULT_FORMATS = ["manifest", "md"]
