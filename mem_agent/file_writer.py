"""
JSONL file writer for memory metrics.

Appends each batch to a daily-rotated JSONL file instead of a remote
database. Designed for rsync-based collection to a central server.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List


class FileWriter:
    """Writes metric batches to daily-rotated JSONL files."""

    def __init__(self, output_dir: str, prefix: str = 'metrics'):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix

    def _get_path(self) -> Path:
        """Get today's JSONL file path (UTC date)."""
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self.output_dir / f"{self.prefix}-{date_str}.jsonl"

    def submit_batch(self, namespace: str, records: List) -> None:
        if not records:
            return
        lines = [
            json.dumps({'namespace': namespace, **r.to_dict()}) + "\n"
            for r in records
        ]
        # Single write call so a batch lands together
        with open(self._get_path(), "a") as f:
            f.write("".join(lines))

    def close(self):
        """No-op; files are opened/closed per write."""
