"""Replica group configuration: addresses, quorum sizes and the text format."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from os import PathLike
from typing import Iterable, Optional, Union

__all__ = [
    "ConfigurationError",
    "ReplicaAddress",
    "Configuration",
    "parse_configuration",
    "load_configuration",
]

_BLANK = re.compile(r"[ \t]")
_NON_BLANK = re.compile(r"[^ \t]")
_UNSIGNED = re.compile(r"\+?(\d+)")


class ConfigurationError(ValueError):
    """Raised when a configuration cannot be read or is malformed."""


@dataclass(frozen=True, order=True)
class ReplicaAddress:
    """Host and port of one replica; ordered by (host, port)."""

    host: str
    port: str


@total_ordering
@dataclass(frozen=True)
class Configuration:
    """A replica group: ``n`` replicas tolerating ``f`` failures."""

    n: int
    f: int
    replicas: tuple[ReplicaAddress, ...] = field(default_factory=tuple)
    multicast: Optional[ReplicaAddress] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "replicas", tuple(self.replicas))

    @property
    def has_multicast(self) -> bool:
        return self.multicast is not None

    def replica(self, idx: int) -> ReplicaAddress:
        """Return the address of replica ``idx``."""
        return self.replicas[idx]

    def leader_index(self, view: int) -> int:
        """Index of the leader replica in ``view``."""
        return view % self.n

    def quorum_size(self) -> int:
        return self.f + 1

    def fast_quorum_size(self) -> int:
        return self.f + (self.f + 1) // 2 + 1

    def _key(self) -> tuple:
        return (self.n, self.f, self.replicas, self.has_multicast)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        mine, theirs = self._key(), other._key()
        if mine != theirs:
            return mine < theirs
        if self.multicast is not None and other.multicast is not None:
            return self.multicast < other.multicast
        return False


def _argument_start(line: str, cmd_end: int, directive: str) -> int:
    if cmd_end >= len(line):
        raise ConfigurationError(
            f"'{directive}' configuration line requires an argument")
    match = _NON_BLANK.search(line, cmd_end)
    if match is None:
        raise ConfigurationError(
            f"'{directive}' configuration line requires an argument")
    return match.start()


def _parse_address(line: str, start: int) -> ReplicaAddress:
    colon = line.find(":", start)
    if colon < 0:
        raise ConfigurationError(
            "Configuration line format: 'replica host:port'")
    return ReplicaAddress(line[start:colon], line[colon + 1:])


def parse_configuration(lines: Iterable[str]) -> Configuration:
    """Build a configuration from lines of ``f``/``replica``/``multicast`` directives."""
    f = -1
    replicas: list[ReplicaAddress] = []
    multicast: Optional[ReplicaAddress] = None

    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line or line.startswith("#"):
            continue

        blank = _BLANK.search(line)
        cmd_end = blank.start() if blank else len(line)
        cmd = line[:cmd_end].lower()

        if cmd == "f":
            start = _argument_start(line, cmd_end, "f")
            match = _UNSIGNED.match(line, start)
            if match is None:
                raise ConfigurationError(
                    "Invalid argument to 'f' configuration line")
            f = int(match.group(1))
        elif cmd == "replica":
            start = _argument_start(line, cmd_end, "replica")
            replicas.append(_parse_address(line, start))
        elif cmd == "multicast":
            start = _argument_start(line, cmd_end, "multicast")
            multicast = _parse_address(line, start)
        else:
            raise ConfigurationError(
                f"Unknown configuration directive: {line[:cmd_end]}")

    if not replicas:
        raise ConfigurationError("Configuration did not specify any replicas")
    if f == -1:
        raise ConfigurationError(
            "Configuration did not specify a 'f' parameter")
    return Configuration(len(replicas), f, tuple(replicas), multicast)


def load_configuration(path: Union[str, PathLike]) -> Configuration:
    """Read and parse a configuration file."""
    try:
        with open(path, encoding="utf-8") as stream:
            return parse_configuration(stream)
    except OSError as exc:
        raise ConfigurationError(
            f"unable to read configuration file: {path}") from exc