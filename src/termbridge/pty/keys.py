"""Input encoder: host key events to the bytes a terminal program expects."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from textual.events import Key

ESCAPE = "escape"


@dataclass(frozen=True)
class KeyEvent:
    """A host key press.

    ``key`` is the host's key name (``"enter"``, ``"ctrl+a"``, ``"f5"``,
    or the character itself for printable keys); ``character`` is the
    printable text the key produced, if any.
    """

    key: str
    character: str | None = None

    @classmethod
    def from_textual(cls, event: Key) -> KeyEvent:
        return cls(key=event.key, character=event.character)

    @classmethod
    def rune(cls, char: str) -> KeyEvent:
        return cls(key=char, character=char)

    @property
    def is_escape(self) -> bool:
        return self.key == ESCAPE


_NAMED_KEYS: dict[str, bytes] = {
    "enter": b"\r",
    "backspace": b"\x7f",  # DEL, not BS
    "tab": b"\t",
    "space": b" ",
    "ctrl+c": b"\x03",
    "ctrl+d": b"\x04",
    "ctrl+z": b"\x1a",
    "up": b"\x1b[A",
    "down": b"\x1b[B",
    "right": b"\x1b[C",
    "left": b"\x1b[D",
    "home": b"\x1b[H",
    "end": b"\x1b[F",
    "pageup": b"\x1b[5~",
    "pagedown": b"\x1b[6~",
    "delete": b"\x1b[3~",
    "f1": b"\x1bOP",
    "f2": b"\x1bOQ",
    "f3": b"\x1bOR",
    "f4": b"\x1bOS",
    "f5": b"\x1b[15~",
    "f6": b"\x1b[17~",
    "f7": b"\x1b[18~",
    "f8": b"\x1b[19~",
    "f9": b"\x1b[20~",
    "f10": b"\x1b[21~",
    "f11": b"\x1b[23~",
    "f12": b"\x1b[24~",
}


def encode_key(event: KeyEvent) -> bytes:
    """Map one key event to zero or more raw bytes.

    Escape always encodes to nothing; the host uses it to ask for close
    confirmation. Keys with no mapping also encode to nothing.
    """
    if event.is_escape:
        return b""

    named = _NAMED_KEYS.get(event.key)
    if named is not None:
        return named

    if event.key.startswith("ctrl+"):
        letter = event.key[len("ctrl+") :]
        if len(letter) == 1 and letter in string.ascii_letters:
            return bytes([ord(letter.lower()) - ord("a") + 1])
        return b""

    char = event.character
    if char and char.isprintable():
        return char.encode("utf-8")
    return b""
