from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from archread.config.run import RunConfig
from archread.domain.channel import Channel
from archread.errors import OutputError
from archread.io.report import TableRenderer

logger = logging.getLogger(__name__)


class TableFileWriter:
    """Line writer over a text file opened once for the whole report."""

    def __init__(self, dest: Path, *, encoding: str = "utf-8") -> None:
        self.dest = Path(dest)
        try:
            self.fh = self.dest.open("w", encoding=encoding)
        except OSError as exc:
            raise OutputError(f"open file failed: {self.dest}: {exc}") from exc

    @property
    def file_path(self) -> Path:
        return self.dest

    def write_lines(self, lines: Iterable[str]) -> None:
        try:
            for line in lines:
                self.fh.write(line + "\n")
        except OSError as exc:
            raise OutputError(f"write failed: {self.dest}: {exc}") from exc

    def close(self) -> None:
        try:
            self.fh.close()
        except OSError as exc:
            raise OutputError(f"close failed: {self.dest}: {exc}") from exc

    def __enter__(self) -> "TableFileWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.fh.close()


def write_report(channels: Sequence[Channel], config: RunConfig) -> Path:
    """Render ``channels`` into ``config.output_path``; returns the path written."""
    logger.info("Outputting data to file: %s", config.output_path)
    renderer = TableRenderer(config)
    with TableFileWriter(config.output_path) as writer:
        writer.write_lines(renderer.lines(channels))
    return writer.file_path
