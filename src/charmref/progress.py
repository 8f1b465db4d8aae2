from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from shutil import get_terminal_size


def _fmt_bytes(n: int) -> str:
    if n < 1024:
        return f"{n}B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f}KiB"
    return f"{n / (1024 * 1024):.1f}MiB"


@dataclass(slots=True)
class ProgressBar:
    """Single-line download progress for terminals.

    ``total`` may be 0 when the server does not announce a length; the bar
    then only reports the byte count.
    """

    label: str
    total: int
    enabled: bool = True
    stream: object = sys.stderr
    width: int = 28
    min_interval_s: float = 0.08
    _done: int = field(default=0, init=False, repr=False)
    _last_render: float = field(default=0.0, init=False, repr=False)
    _finished: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._render()  # initial line

    def update(self, done: int, total: int | None = None) -> None:
        if self._finished:
            return
        self._done = max(0, int(done))
        if total is not None:
            self.total = max(0, int(total))
        self._render()

    def __call__(self, done: int, total: int) -> None:
        self.update(done, total)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._render(force=True)
        self._write("\n")

    def _write(self, s: str) -> None:
        if not self.enabled:
            return
        try:
            self.stream.write(s)  # type: ignore[attr-defined]
            self.stream.flush()  # type: ignore[attr-defined]
        except Exception:
            # Progress is best-effort; never fail the CLI because of rendering.
            self.enabled = False

    def _render(self, *, force: bool = False) -> None:
        if not self.enabled:
            return

        now = time.time()
        if (not force) and (now - self._last_render) < float(self.min_interval_s):
            return
        self._last_render = now

        total = max(0, int(self.total))
        done = min(self._done, total) if total else self._done
        frac = (done / total) if total else (1.0 if self._finished else 0.0)

        fill = int(round(self.width * frac))
        fill = min(max(0, fill), self.width)
        bar = "#" * fill + "-" * (self.width - fill)

        cols = get_terminal_size(fallback=(80, 20)).columns
        if total:
            msg = f"{self.label} [{bar}] {_fmt_bytes(done)}/{_fmt_bytes(total)}"
        else:
            msg = f"{self.label} [{bar}] {_fmt_bytes(done)}"
        msg = msg[: max(0, cols - 1)]

        self._write("\r" + msg)
