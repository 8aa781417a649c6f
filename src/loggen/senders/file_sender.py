"""
File transport for offline runs.

Appends each batch to a file followed by a newline, so JSON batches end up
as JSONL and line-protocol batches stay line-oriented.
"""

import threading
from pathlib import Path

from .base import Sender, SendError


class FileSender(Sender):
    """Write batches to a local file instead of a remote endpoint."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.append = append
        self._lock = threading.Lock()
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        if not append and self.output_path.exists():
            self.output_path.unlink()

    def send(self, batch: bytes) -> None:
        data = batch if batch.endswith(b"\n") else batch + b"\n"
        try:
            with self._lock, open(self.output_path, "ab") as f:
                f.write(data)
        except OSError as e:
            raise SendError(f"Unable to write {self.output_path}: {e}") from e
