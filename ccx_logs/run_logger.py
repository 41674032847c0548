"""
Run Logger - Markdown report of one ccx run

Sections are appended as the run progresses; a navigation list at the top
links to every heading.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class RunLogger:
    """
    Markdown run logger.

    Usage:
        run_logger = RunLogger(
            title="Annotate prices",
            url="https://shop.example/product/1",
            command_line="ccx annotate https://shop.example/product/1",
        )

        run_logger.log_heading("Rates")
        run_logger.log_text("Fetched rates for EUR")
        run_logger.log_annotations(engine.summary())
        run_logger.finalize(success=True, duration_ms=1200)
    """

    def __init__(
        self,
        title: str,
        url: Optional[str] = None,
        command_line: Optional[str] = None,
        log_dir: str = "./logs",
        session_id: Optional[str] = None
    ):
        """
        Args:
            title: What the run does
            url: Page being annotated, if any
            command_line: Full CLI command
            log_dir: Directory for report files
            session_id: Optional session ID (timestamp by default)
        """
        self.session_id = session_id or datetime.now().strftime('%Y%m%d-%H%M%S')
        self.dir = Path(log_dir)
        self.dir.mkdir(parents=True, exist_ok=True)
        self.path = self.dir / f'ccx-run-{self.session_id}.md'

        self._toc_placeholder = "<!-- TOC_PLACEHOLDER -->"
        self._toc: List[str] = []

        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(f"# ccx Run Log ({self.session_id})\n\n")
            f.write("## Navigation\n\n")
            f.write(self._toc_placeholder + "\n\n")
            if command_line:
                f.write(f"```bash\n{command_line}\n```\n\n")
            if url:
                f.write(f"- **URL**: {url}\n")
            if title:
                f.write(f"- **Run**: {title}\n\n")

    def _write(self, text: str):
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(text)

    def log_heading(self, text: str):
        """Log a section heading and add it to the navigation list."""
        self._write("\n---\n\n")
        self._write(f"## {text}\n\n")
        self._toc.append(text)
        self._update_toc()

    def log_text(self, text: str):
        self._write(f"{text}\n\n")

    def log_kv(self, key: str, value: str):
        self._write(f"- {key}: {value}\n")

    def log_code(self, lang: str, code: str):
        self._write(f"```{lang}\n{code}\n```\n\n")

    def log_json(self, data: Any, title: str = "Data"):
        self._write(f"\n### {title}\n\n")
        self.log_code("json", json.dumps(data, indent=2, ensure_ascii=False))

    def log_table(self, headers: List[str], rows: List[List[str]], title: str = ""):
        """
        Log a Markdown table with padded columns.

        Args:
            headers: Column headers
            rows: Cell values per row; short rows are padded
            title: Optional title above the table
        """
        if title:
            self._write(f"### {title}\n\n")
        if not headers or not rows:
            return

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row[:len(headers)]):
                widths[i] = max(widths[i], len(str(cell)))

        self._write("| " + " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers)) + " |\n")
        self._write("|" + "|".join("-" * (w + 2) for w in widths) + "|\n")
        for row in rows:
            cells = (list(row) + [""] * len(headers))[:len(headers)]
            self._write("| " + " | ".join(str(c).ljust(widths[i]) for i, c in enumerate(cells)) + " |\n")
        self._write("\n")

    def log_annotations(self, annotations: List[Dict[str, str]]):
        """
        Log the annotations of a run as a table.

        Args:
            annotations: Entries with group_key, source_text, display_text
                (AnnotationEngine.summary())
        """
        if not annotations:
            self.log_text("No prices annotated.")
            return
        rows = []
        for entry in annotations:
            source = entry.get("source_text", "")
            if len(source) > 40:
                source = source[:40] + "..."
            rows.append([entry.get("group_key", ""), source, entry.get("display_text", "")])
        self.log_table(["Value", "Source", "Conversion"], rows, f"Annotations ({len(annotations)})")

    def log_error(self, message: str):
        self._write(f"**ERROR:** {message}\n\n")

    def finalize(self, success: bool, duration_ms: int = 0, error: Optional[str] = None):
        """
        Append the run summary.

        Args:
            success: Whether the run succeeded
            duration_ms: Total run time
            error: Error message if failed
        """
        self._write("\n---\n\n")
        self._write("## Summary\n\n")
        self._write(f"**Status:** {'SUCCESS' if success else 'FAILED'}\n")
        self._write(f"**Duration:** {duration_ms}ms\n")
        if error:
            self._write(f"\n**Error:** {error}\n")
        self._write("\n")

    def _slugify(self, text: str) -> str:
        s = text.strip().lower()
        s = re.sub(r"[^a-z0-9\s-]", "", s)
        return re.sub(r"\s+", "-", s)

    def _update_toc(self):
        try:
            content = self.path.read_text(encoding='utf-8')
            items = "\n".join(f"- [{title}](#{self._slugify(title)})" for title in self._toc)
            # Keep the placeholder so later headings can be added
            content = re.sub(
                r"(?s)(## Navigation\n\n).*?(" + re.escape(self._toc_placeholder) + ")",
                lambda m: m.group(1) + items + "\n" + m.group(2),
                content,
                count=1,
            )
            self.path.write_text(content, encoding='utf-8')
        except OSError as e:
            logger.debug(f"Could not update navigation in {self.path}: {e}")

    @property
    def log_path(self) -> str:
        return str(self.path)


def create_run_logger(
    title: str,
    url: Optional[str] = None,
    command_line: Optional[str] = None,
    log_dir: str = "./logs"
) -> RunLogger:
    """Create a new run logger instance"""
    return RunLogger(title=title, url=url, command_line=command_line, log_dir=log_dir)
