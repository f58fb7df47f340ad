"""
Line-preserving editor for Java ``.properties`` files.

Kafka reads its config with java.util.Properties, so files are handled as
ISO-8859-1 and anything outside ASCII is written as a ``\\uXXXX`` escape.
Lines that are not touched by set() are written back exactly as read.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

ENCODING = "latin-1"

_UNESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}
_KEY_SPECIALS = "=: #!"
_LINE_ENDING = re.compile(r"\r\n|\r|\n")


@dataclass
class _Entry:
    """One logical line: its raw text (continuations included) and key, if any."""
    raw: str
    key: Optional[str] = None
    value: Optional[str] = None


def _ends_with_continuation(line: str) -> bool:
    body = line.rstrip("\r\n")
    trailing = len(body) - len(body.rstrip("\\"))
    return trailing % 2 == 1


def unescape(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != "\\" or i + 1 >= len(text):
            out.append(char)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == "u" and re.fullmatch(r"[0-9a-fA-F]{4}", text[i + 2:i + 6]):
            out.append(chr(int(text[i + 2:i + 6], 16)))
            i += 6
        else:
            out.append(_UNESCAPES.get(nxt, nxt))
            i += 2
    return "".join(out)


def _escape_chars(text: str, specials: str = "") -> str:
    out = []
    for char in text:
        if char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif char in specials:
            out.append("\\" + char)
        elif ord(char) > 0x7E or ord(char) < 0x20:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    return "".join(out)


def escape_key(key: str) -> str:
    return _escape_chars(key, _KEY_SPECIALS)


def escape_value(value: str) -> str:
    escaped = _escape_chars(value)
    # Leading whitespace would otherwise be eaten by the reader
    if escaped.startswith(" "):
        escaped = "\\" + escaped
    return escaped


def _split_logical(logical: str) -> "tuple[str, str]":
    """Split a joined logical line into its (escaped) key and value parts."""
    text = logical.lstrip(" \t\f")
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char in "=: \t\f":
            break
        i += 1
    key = text[:i]
    rest = text[i:].lstrip(" \t\f")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t\f")
    return key, rest


def _join_continuations(natural: List[str]) -> str:
    parts = []
    for index, line in enumerate(natural):
        body = line.rstrip("\r\n")
        if index > 0:
            body = body.lstrip(" \t\f")
        if index < len(natural) - 1:
            body = body[:-1]
        parts.append(body)
    return "".join(parts)


def _parse(text: str) -> List[_Entry]:
    lines = text.splitlines(keepends=True)
    entries: List[_Entry] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.lstrip(" \t\f").rstrip("\r\n")
        if not stripped or stripped[0] in "#!":
            entries.append(_Entry(raw=line))
            i += 1
            continue

        natural = [line]
        while _ends_with_continuation(natural[-1]) and i + len(natural) < len(lines):
            natural.append(lines[i + len(natural)])
        i += len(natural)

        key, value = _split_logical(_join_continuations(natural))
        entries.append(_Entry(raw="".join(natural), key=unescape(key), value=unescape(value)))
    return entries


class PropertiesEditor:
    """
    Edit a properties file while keeping comments, order and formatting.

    Example:
        editor = PropertiesEditor.load("server.properties")
        editor.set("log.dirs", "/tmp/kafka-logs")
        editor.save("/tmp/work/server.properties")
    """

    def __init__(self, text: str = ""):
        self._entries = _parse(text)
        match = _LINE_ENDING.search(text)
        self._newline = match.group(0) if match else "\n"

    @classmethod
    def load(cls, path: Union[str, Path]) -> "PropertiesEditor":
        with open(path, "r", encoding=ENCODING, newline="") as f:
            return cls(f.read())

    def _properties(self) -> Iterator[_Entry]:
        return (entry for entry in self._entries if entry.key is not None)

    def keys(self) -> List[str]:
        seen: Dict[str, None] = {}
        for entry in self._properties():
            seen[entry.key] = None
        return list(seen)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the effective value of ``key``; the last definition wins."""
        value = default
        for entry in self._properties():
            if entry.key == key:
                value = entry.value
        return value

    def __contains__(self, key: str) -> bool:
        return any(entry.key == key for entry in self._properties())

    def as_dict(self) -> Dict[str, str]:
        return {entry.key: entry.value for entry in self._properties()}

    def set(self, key: str, value: str) -> None:
        """
        Set ``key`` to ``value``.

        The first definition of the key is rewritten in place and any later
        duplicates are dropped. A missing key is appended at the end.
        """
        line = f"{escape_key(key)}={escape_value(value)}{self._newline}"
        new_entry = _Entry(raw=line, key=key, value=value)

        matches = [i for i, entry in enumerate(self._entries) if entry.key == key]
        if not matches:
            if self._entries and not self._entries[-1].raw.endswith(("\n", "\r")):
                self._entries[-1].raw += self._newline
            self._entries.append(new_entry)
            return

        self._entries[matches[0]] = new_entry
        for index in reversed(matches[1:]):
            del self._entries[index]

    def dumps(self) -> str:
        return "".join(entry.raw for entry in self._entries)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        with open(path, "w", encoding=ENCODING, newline="") as f:
            f.write(self.dumps())
        return path


def load_properties(path: Union[str, Path]) -> Dict[str, str]:
    """Read a properties file into a plain dict."""
    return PropertiesEditor.load(path).as_dict()
