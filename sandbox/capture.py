"""
Scoped capture of a script's print calls into ordered line buffers.
"""

from __future__ import annotations

import io
import json
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager, redirect_stderr, redirect_stdout
from dataclasses import dataclass, field


class Channel(io.TextIOBase):
    """Line-oriented text sink backed by a shared list of entries."""

    def __init__(self, name: str, lines: list[str]) -> None:
        super().__init__()
        self.name = name
        self._lines = lines
        self._pending = ""

    def writable(self) -> bool:  # pyright: ignore[reportImplicitOverride]
        return True

    def write(self, text: str) -> int:  # pyright: ignore[reportImplicitOverride]
        self._pending += text
        *complete, self._pending = self._pending.split("\n")
        self._lines.extend(complete)
        return len(text)

    def emit(self, message: str) -> None:
        """Append one whole entry, keeping any partial write ahead of it."""
        self.drain()
        self._lines.append(message)

    def drain(self) -> None:
        if self._pending:
            self._lines.append(self._pending)
            self._pending = ""

    def __repr__(self) -> str:
        return f"<channel {self.name}>"


def format_value(value: object) -> str:
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            return repr(value)
    return str(value)


@dataclass
class CapturedOutput:
    output: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.stdout = Channel("stdout", self.output)
        self.stderr = Channel("stderr", self.errors)

    def print(
        self,
        *args: object,
        sep: str | None = " ",
        end: str | None = "\n",
        file: object = None,
        flush: bool = False,
    ) -> None:
        message = (" " if sep is None else sep).join(format_value(arg) for arg in args)
        if file is None or file is self.stdout:
            self.stdout.emit(message)
        elif file is self.stderr:
            self.stderr.emit(message)
        else:
            write = getattr(file, "write", None)
            if not callable(write):
                raise TypeError(f"'{type(file).__name__}' object has no attribute 'write'")
            write(message + ("\n" if end is None else end))

    def close(self) -> None:
        self.stdout.drain()
        self.stderr.drain()


@contextmanager
def capture_output() -> Iterator[CapturedOutput]:
    """Redirect stdout/stderr into a fresh capture for the enclosed block.

    The previous streams are restored on every exit path, including when the
    block raises.
    """
    captured = CapturedOutput()
    with ExitStack() as stack:
        _ = stack.enter_context(redirect_stdout(captured.stdout))
        _ = stack.enter_context(redirect_stderr(captured.stderr))
        stack.callback(captured.close)
        yield captured
