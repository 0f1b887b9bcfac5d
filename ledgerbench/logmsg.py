"""Formatted diagnostic messages, panics, debug filters and blob dumps."""

from __future__ import annotations

import inspect
import os
import re
import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import IO, NoReturn, Optional, Union

__all__ = [
    "MessageType",
    "PanicError",
    "format_message",
    "emit",
    "panic",
    "warning",
    "notice",
    "not_reachable",
    "debug_enabled",
    "hexdump",
    "fmt_blob",
]


class MessageType(IntEnum):
    PANIC = 0
    WARNING = 1
    NOTICE = 2
    DEBUG = 3


class PanicError(RuntimeError):
    """Raised where the program cannot continue."""


_DESCRIPTORS = (
    ("PANIC", "1;31"),
    ("!", "1;33"),
    ("*", None),
    (" ", "22;37"),
    ("<Invalid message type>", None),
)

_lock = threading.Lock()


def format_message(
    msg_type: Union[MessageType, int],
    text: str,
    fname: Optional[str] = None,
    line: int = 0,
    func: Optional[str] = None,
    color: bool = False,
    now: Optional[datetime] = None,
    pid: Optional[int] = None,
    perror: Optional[int] = None,
) -> str:
    """Return one message line (without newline); ``perror`` is an errno to append."""
    index = min(int(msg_type), len(_DESCRIPTORS) - 1)
    prefix, code = _DESCRIPTORS[index]
    now = now or datetime.now()
    pid = os.getpid() if pid is None else pid

    parts = []
    if color and code:
        parts.append(f"\033[{code}m")
    # The month is written zero-based, as the original log format does.
    parts.append(
        f"{now.year:04d}{now.month - 1:02d}{now.day:02d}-"
        f"{now.hour:02d}{now.minute:02d}{now.second:02d}-"
        f"{now.microsecond // 100:04d} {pid:05d} "
    )
    parts.append(f"{prefix} ")
    if fname:
        base = fname.rsplit("/", 1)[-1]
        filepos = f"({base}:{line}):"[:31]
        parts.append(f"{func or '':<15} {filepos:<19} ")
    parts.append(text)
    if perror is not None:
        parts.append(f": {os.strerror(perror)}")
    if color and code:
        parts.append("\033[0m")
    return "".join(parts)


def emit(
    msg_type: Union[MessageType, int],
    text: str,
    fname: Optional[str] = None,
    line: int = 0,
    func: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Write a formatted message to ``stream`` (stderr by default)."""
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    color = bool(isatty()) if callable(isatty) else False
    formatted = format_message(msg_type, text, fname, line, func, color=color)
    with _lock:
        stream.write(formatted + "\n")
        stream.flush()


def _caller() -> tuple[str, int, str]:
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame and frame.f_back else None
    if caller is None:
        return ("", 0, "")
    return (caller.f_code.co_filename, caller.f_lineno, caller.f_code.co_name)


def panic(text: str) -> NoReturn:
    """Report a fatal condition and raise :class:`PanicError`."""
    fname, line, func = _caller()
    emit(MessageType.PANIC, text, fname, line, func)
    raise PanicError(text)


def warning(text: str) -> None:
    fname, line, func = _caller()
    emit(MessageType.WARNING, text, fname, line, func)


def notice(text: str) -> None:
    fname, line, func = _caller()
    emit(MessageType.NOTICE, text, fname, line, func)


def not_reachable() -> NoReturn:
    """Signal that a supposedly unreachable point was reached."""
    fname, line, _ = _caller()
    text = f"NOT_REACHABLE point reached: {fname}, line {line}"
    sys.stderr.write(text + "\n")
    raise PanicError(text)


def _pathname_regex(pattern: str) -> "re.Pattern[str]":
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 2 if pattern[i + 1:i + 2] in ("!", "^") else i + 1)
            if end < 0:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1:end]
                negate = body[:1] in ("!", "^")
                if negate:
                    body = body[1:]
                body = body.replace("\\", "\\\\")
                out.append(f"[^/{body}]" if negate else f"(?!/)[{body}]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


def _matches(pattern: str, name: str) -> bool:
    return _pathname_regex(pattern).match(name) is not None


def debug_enabled(fname: str, spec: Optional[str] = None) -> bool:
    """Whether debug output is on for ``fname`` under a DEBUG-style pattern list.

    ``spec`` defaults to the ``DEBUG`` environment variable. Patterns are
    separated by commas or spaces; ``^`` negates a pattern; a first pattern
    of ``all`` or a negated one enables everything not excluded.
    """
    if spec is None:
        spec = os.environ.get("DEBUG", "")
    if not spec:
        return False

    patterns = re.split(r"[, ]", spec)
    result = patterns[0] == "all" or patterns[0].startswith("^")
    basename = fname.rsplit("/", 1)[1] if "/" in fname else None

    for raw in patterns:
        negated = raw.startswith("^")
        pattern = raw[1:] if negated else raw
        if _matches(pattern, fname) or (
                basename is not None and _matches(pattern, basename)):
            result = not negated
    return result


def _printable(byte: int) -> str:
    return chr(byte) if 0x20 <= byte < 0x7F else "."


def hexdump(data: bytes) -> list[str]:
    """Return classic 16-bytes-per-line hex dump lines of ``data``."""
    lines = []
    for base in range(0, len(data), 16):
        row = data[base:base + 16]
        cells = [f" {b:02x}" for b in row] + ["   "] * (16 - len(row))
        hex_part = "".join(cells[:8]) + " " + "".join(cells[8:])
        text = "".join(_printable(b) for b in row)
        lines.append(f"{base:08x}{hex_part} |{text}|")
    return lines


def _atoi(value: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", value)
    return int(match.group(1)) if match else 0


def fmt_blob(data: bytes, blobmax: Optional[int] = None) -> str:
    """Render at most ``blobmax`` bytes between bars; ``>`` marks truncation.

    ``blobmax`` defaults to the ``BLOBMAX`` environment variable, else 32.
    """
    if blobmax is None:
        env = os.environ.get("BLOBMAX")
        blobmax = 32 if env is None else _atoi(env)
    shown = data[:max(blobmax, 0)]
    end = ">" if len(shown) != len(data) else "|"
    return "|" + "".join(_printable(b) for b in shown) + end