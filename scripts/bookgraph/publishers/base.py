"""
Base publisher class for all output artifacts.

Subclasses implement `render()` and set `format_name` / `extension`.
Shared logic (the error gate, atomic writes, logging) lives here.
"""

import os
import tempfile
from abc import ABC, abstractmethod


class BasePublisher(ABC):
    """
    Abstract base for publishers.

    Subclasses must define:
        format_name:  str    — human-readable name ("Manifest", "Markdown")
        extension:    str    — output file extension (".json", ".md")
        render():     method — returns the artifact text for the build
    """

    format_name = None  # Override in subclass
    extension = None    # Override in subclass

    def __init__(self, build, output_dir, verbose=False, force=False):
        self.build = build
        self.config = build.config
        self.output_dir = output_dir
        self.verbose = verbose
        self.force = force

    # ── Output path ────────────────────────────────────────

    @property
    def output_file(self):
        return os.path.join(self.output_dir, f"{self.config.prefix}{self.extension}")

    # ── Logging ────────────────────────────────────────────

    def log(self, msg):
        if self.verbose:
            print(msg)

    def header(self):
        print(f"\n{'─' * 60}")
        print(f"  Publishing {self.format_name}: {self.build.title}")
        print(f"{'─' * 60}")

    # ── Publishing ─────────────────────────────────────────

    def write_atomic(self, text):
        """Write via a temp file in the output dir, then rename into place."""
        os.makedirs(self.output_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.config.prefix}_", suffix=self.extension, dir=self.output_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.output_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def publish(self):
        """
        Render and write the artifact. Returns True on success, False when
        the build has errors and neither --force nor allow_errors is set.
        """
        self.header()

        if not self.build.publishable and not self.force:
            print(f"  ✗ {len(self.build.report.errors)} error(s) in build, not publishing")
            print("    Fix them, or pass --allow-errors / --force")
            return False

        text = self.render()
        self.write_atomic(text)
        self.log(f"  {len(text)} characters")
        print(f"  ✓ {self.output_file}")
        return True

    # ── Abstract interface ─────────────────────────────────

    @abstractmethod
    def render(self):
        """Return the artifact contents as a string."""
        ...
