"""
Book configuration: load, validate, and provide defaults for book.yaml.

book.yaml is optional. A GitBook-style directory with nothing but a
SUMMARY.md and its chapters builds with the defaults below.
"""

import os
import re

import yaml

from bookgraph.exceptions import ConfigError


CONFIG_FILENAME = "book.yaml"

# Defaults applied if missing
DEFAULTS = {
    "title": "",
    "prefix": "",
    "summary": "SUMMARY.md",
    "root": ".",
    "slash_md_fallback": False,
    "allow_errors": False,
    "load_timeout": 10,
    "max_workers": 8,
    "extensions": [".md"],
    "ignore": ["_book/**", "node_modules/**"],
}

# Expected type of each field (bool is checked before int, see _check_type)
FIELD_TYPES = {
    "title": str,
    "prefix": str,
    "summary": str,
    "root": str,
    "slash_md_fallback": bool,
    "allow_errors": bool,
    "load_timeout": (int, float),
    "max_workers": int,
    "extensions": list,
    "ignore": list,
}

# Lists whose entries must all be strings
STRING_LISTS = ["extensions", "ignore"]


def slugify(text):
    """Lowercase, dash-separated file stem ("API Handbook" -> "api-handbook")."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "book"


def _check_type(key, value):
    expected = FIELD_TYPES.get(key)
    if expected is None:
        return
    # YAML booleans are ints to isinstance(); reject them for numeric fields
    if expected is not bool and isinstance(value, bool):
        raise ConfigError(f"book.yaml field '{key}' must not be a boolean")
    if not isinstance(value, expected):
        names = (
            " or ".join(t.__name__ for t in expected)
            if isinstance(expected, tuple)
            else expected.__name__
        )
        raise ConfigError(
            f"book.yaml field '{key}' must be {names}, got {type(value).__name__}"
        )
    if key in STRING_LISTS:
        bad = [item for item in value if not isinstance(item, str)]
        if bad:
            raise ConfigError(
                f"book.yaml field '{key}' must be a list of strings, got {bad[0]!r}"
            )


class BookConfig:
    """
    Loaded, validated book configuration.

    Usage:
        config = BookConfig.load(book_dir)
        config.summary_file      # "SUMMARY.md"
        config.content_root      # absolute path
        config.get("series")     # None if not set
    """

    def __init__(self, data, book_dir):
        self._data = data
        self.book_dir = book_dir

    @classmethod
    def load(cls, book_dir, overrides=None):
        """Load and validate book.yaml (if any) from a book directory."""
        if not os.path.isdir(book_dir):
            raise ConfigError(f"Book directory not found: {book_dir}")

        data = {}
        yaml_path = os.path.join(book_dir, CONFIG_FILENAME)
        if os.path.exists(yaml_path):
            with open(yaml_path, encoding="utf-8") as f:
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigError(f"Could not parse {yaml_path}: {e}")
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ConfigError(
                    f"book.yaml must be a YAML mapping, got {type(data).__name__}"
                )

        return cls.from_dict(data, book_dir, overrides)

    @classmethod
    def from_dict(cls, data, book_dir, overrides=None):
        """Validate a raw mapping and apply defaults."""
        data = dict(data)
        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value

        for key, value in data.items():
            _check_type(key, value)

        # Apply defaults (copy mutable ones so configs never share lists)
        for key, default in DEFAULTS.items():
            data.setdefault(key, default if not isinstance(default, (list, dict)) else type(default)(default))

        book_dir = os.path.abspath(book_dir)
        if not data["prefix"]:
            data["prefix"] = slugify(data["title"] or os.path.basename(book_dir))
        if data["load_timeout"] <= 0:
            raise ConfigError("book.yaml field 'load_timeout' must be positive")
        if data["max_workers"] < 1:
            raise ConfigError("book.yaml field 'max_workers' must be at least 1")
        data["extensions"] = [
            ext if ext.startswith(".") else f".{ext}" for ext in data["extensions"]
        ]

        config = cls(data, book_dir)

        if not os.path.isdir(config.content_root):
            raise ConfigError(f"Content root not found: {config.content_root}")
        if not os.path.isfile(config.outline_path):
            raise ConfigError(f"No {data['summary']} found in {book_dir}")

        return config

    def with_overrides(self, **overrides):
        """Return a new config with the given fields replaced."""
        return BookConfig.from_dict(self._data, self.book_dir, overrides)

    # ── Attribute access ───────────────────────────────────

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"BookConfig has no field '{name}'")

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    # ── Convenience ────────────────────────────────────────

    @property
    def summary_file(self):
        # `summary` itself is shadowed by summary() below
        return self._data["summary"]

    @property
    def outline_path(self):
        """Absolute path of the outline (SUMMARY) file."""
        return os.path.join(self.book_dir, self._data["summary"])

    @property
    def content_root(self):
        """Absolute path chapter references are resolved against."""
        return os.path.normpath(os.path.join(self.book_dir, self._data["root"]))

    def summary(self):
        """Print a short config summary."""
        print(f"\n  Book:     {self.title or os.path.basename(self.book_dir)}")
        print(f"  Outline:  {self.outline_path}")
        print(f"  Content:  {self.content_root}")
        fallback = "on" if self.slash_md_fallback else "off"
        print(f"  Fallback: /md -> .md {fallback}")
