import errno
import io
import os
from datetime import datetime

import pytest

from ledgerbench.logmsg import (
    MessageType,
    PanicError,
    debug_enabled,
    emit,
    fmt_blob,
    format_message,
    hexdump,
    not_reachable,
    notice,
    panic,
    warning,
)

NOW = datetime(2020, 5, 17, 8, 9, 10, 123456)


def test_format_notice_pinned():
    out = format_message(MessageType.NOTICE, "hello", now=NOW, pid=42)
    assert out == "20200417-080910-1234 00042 * hello"


def test_format_with_location():
    out = format_message(MessageType.WARNING, "text", fname="a/b/file.cc",
                         line=12, func="fn", now=NOW, pid=1)
    assert "(file.cc:12):" in out
    assert "a/b" not in out
    assert out.endswith(" text")
    assert " ! fn" in out


def test_format_color_wraps():
    out = format_message(MessageType.WARNING, "w", color=True, now=NOW, pid=1)
    assert out.startswith("\033[1;33m")
    assert out.endswith("\033[0m")
    plain = format_message(MessageType.NOTICE, "n", color=True, now=NOW, pid=1)
    assert "\033[" not in plain


def test_format_invalid_type_and_perror():
    out = format_message(9, "x", now=NOW, pid=1, perror=errno.ENOENT)
    assert "<Invalid message type>" in out
    assert out.endswith(": " + os.strerror(errno.ENOENT))


def test_emit_to_stream():
    stream = io.StringIO()
    emit(MessageType.DEBUG, "payload", stream=stream)
    written = stream.getvalue()
    assert written.endswith("payload\n")
    assert "\033[" not in written


def test_panic_raises_and_reports(capsys):
    with pytest.raises(PanicError, match="boom"):
        panic("boom")
    err = capsys.readouterr().err
    assert "PANIC" in err
    assert "boom" in err


def test_warning_and_notice(capsys):
    warning("careful")
    notice("fyi")
    err = capsys.readouterr().err.splitlines()
    assert " ! " in err[0] and err[0].endswith("careful")
    assert " * " in err[1] and err[1].endswith("fyi")


def test_not_reachable():
    with pytest.raises(PanicError, match="NOT_REACHABLE point reached"):
        not_reachable()


@pytest.mark.parametrize(
    "fname, spec, expected",
    [
        ("dir/foo.cc", "foo.cc", True),
        ("dir/foo.cc", "all", True),
        ("foo.cc", "^foo.cc", False),
        ("foo.cc", "all,^foo.cc", False),
        ("bar.cc", "all,^foo.cc", True),
        ("dir/foo.cc", "*.cc", True),
        ("dir/foo.cc", "dir/*", True),
        ("dir/sub/foo.cc", "dir/*", False),
        ("dir/foo.cc", "", False),
        ("dir/foo.cc", "bar.cc baz.cc", False),
        ("dir/baz.cc", "bar.cc baz.cc", True),
    ],
)
def test_debug_enabled(fname, spec, expected):
    assert debug_enabled(fname, spec) is expected


def test_debug_enabled_reads_environment(monkeypatch):
    monkeypatch.setenv("DEBUG", "foo.cc")
    assert debug_enabled("x/foo.cc") is True
    monkeypatch.delenv("DEBUG")
    assert debug_enabled("x/foo.cc") is False


def test_hexdump_layout():
    data = bytes(range(0x41, 0x41 + 20))
    lines = hexdump(data)
    assert len(lines) == (len(data) + 15) // 16
    assert lines[0].startswith("00000000")
    assert lines[0].endswith("|ABCDEFGHIJKLMNOP|")
    assert lines[1].endswith("|QRST|")
    assert len({len(line.split("|")[0]) for line in lines}) == 1


def test_hexdump_nonprintable_and_empty():
    assert hexdump(b"") == []
    assert hexdump(b"\x00a")[0].endswith("|.a|")


def test_fmt_blob():
    assert fmt_blob(b"abc", 32) == "|abc|"
    assert fmt_blob(b"abcdef", 3) == "|abc>"
    assert fmt_blob(b"a\x00", 32) == "|a.|"


def test_fmt_blob_env(monkeypatch):
    monkeypatch.setenv("BLOBMAX", "2")
    assert fmt_blob(b"xyz") == "|xy>"
    monkeypatch.delenv("BLOBMAX")
    data = b"q" * 40
    assert fmt_blob(data).endswith(">")
    assert fmt_blob(data[:10]).endswith("|")