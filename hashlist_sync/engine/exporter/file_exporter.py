"""JSON lines exporter used for offline runs."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from ..models import ExtractedEntry
from .base import BaseExporter, ExportResult


class FileExporter(BaseExporter):
    """Write each batch to ``<index>-<run_tag>.jsonl`` under ``output_dir``."""

    def __init__(self, output_dir: Path, run_tag: str | None = None) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag
        self.paths: list[Path] = []

    def path_for(self, index: str) -> Path:
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", index.strip()) or "index"
        run_tag = self.run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        return self.output_dir / f"{slug}-{run_tag}.jsonl"

    def export_many(self, entries: Sequence[ExtractedEntry], index: str) -> ExportResult:
        path = self.path_for(index)
        with path.open("a", encoding="utf-8") as stream:
            for entry in entries:
                json.dump(entry.to_document(), stream, ensure_ascii=False)
                stream.write("\n")
        if path not in self.paths:
            self.paths.append(path)
        return ExportResult(indexed=len(entries))

    def close(self) -> None:
        return


__all__ = ["FileExporter"]
