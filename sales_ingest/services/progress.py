from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Chunk progress display with tqdm (TTY only).

In non-TTY environments (CI, piped output) no bar is created so that the
log stream stays free of control sequences.
"""

__all__ = [
    "ChunkProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ChunkProgress:
    """Progress bar over the chunks of one sheet (or one batch)."""

    def __init__(self, total_chunks: int, *, description: str = "Importing") -> None:
        self.total_chunks = total_chunks
        self.description = description
        self.enabled = is_tty_enabled() and total_chunks > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_chunks,
                desc=description,
                unit="chunk",
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, **postfix: Any) -> None:
        if self.pbar is not None:
            if postfix:
                self.pbar.set_postfix(**postfix)
            self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ChunkProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
