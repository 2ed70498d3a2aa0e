"""Tests for termbridge.pty.keys (KeyEvent, encode_key)."""

from __future__ import annotations

import pytest

from termbridge.pty.keys import KeyEvent, encode_key


# ---------------------------------------------------------------------------
# Named keys
# ---------------------------------------------------------------------------


_NAMED_CASES = [
    ("enter", b"\r"),
    ("backspace", b"\x7f"),
    ("tab", b"\t"),
    ("space", b" "),
    ("ctrl+c", b"\x03"),
    ("ctrl+d", b"\x04"),
    ("ctrl+z", b"\x1a"),
    ("up", b"\x1b[A"),
    ("down", b"\x1b[B"),
    ("right", b"\x1b[C"),
    ("left", b"\x1b[D"),
    ("home", b"\x1b[H"),
    ("end", b"\x1b[F"),
    ("pageup", b"\x1b[5~"),
    ("pagedown", b"\x1b[6~"),
    ("delete", b"\x1b[3~"),
    ("f1", b"\x1bOP"),
    ("f2", b"\x1bOQ"),
    ("f3", b"\x1bOR"),
    ("f4", b"\x1bOS"),
    ("f5", b"\x1b[15~"),
    ("f6", b"\x1b[17~"),
    ("f7", b"\x1b[18~"),
    ("f8", b"\x1b[19~"),
    ("f9", b"\x1b[20~"),
    ("f10", b"\x1b[21~"),
    ("f11", b"\x1b[23~"),
    ("f12", b"\x1b[24~"),
]


class TestNamedKeys:
    @pytest.mark.parametrize("key,expected", _NAMED_CASES)
    def test_named_key(self, key: str, expected: bytes) -> None:
        assert encode_key(KeyEvent(key=key)) == expected

    def test_named_key_wins_over_character(self) -> None:
        # Textual reports enter with character "\r" and backspace with "\x08"
        assert encode_key(KeyEvent(key="enter", character="\r")) == b"\r"
        assert encode_key(KeyEvent(key="backspace", character="\x08")) == b"\x7f"

    def test_space_with_character(self) -> None:
        assert encode_key(KeyEvent(key="space", character=" ")) == b"\x20"


# ---------------------------------------------------------------------------
# Ctrl+letter
# ---------------------------------------------------------------------------


class TestCtrlLetters:
    def test_ctrl_a(self) -> None:
        assert encode_key(KeyEvent(key="ctrl+a", character="\x01")) == b"\x01"

    def test_all_letters(self) -> None:
        for offset, letter in enumerate("abcdefghijklmnopqrstuvwxyz"):
            assert encode_key(KeyEvent(key=f"ctrl+{letter}")) == bytes([offset + 1])

    def test_uppercase_letter(self) -> None:
        assert encode_key(KeyEvent(key="ctrl+L")) == b"\x0c"

    def test_ctrl_non_letter_is_unmapped(self) -> None:
        assert encode_key(KeyEvent(key="ctrl+1")) == b""
        assert encode_key(KeyEvent(key="ctrl+shift+a")) == b""


# ---------------------------------------------------------------------------
# Printable runes
# ---------------------------------------------------------------------------


class TestRunes:
    def test_ascii(self) -> None:
        assert encode_key(KeyEvent.rune("a")) == b"a"
        assert encode_key(KeyEvent(key="A", character="A")) == b"A"

    def test_symbol(self) -> None:
        assert encode_key(KeyEvent(key="exclamation_mark", character="!")) == b"!"

    def test_multibyte_utf8(self) -> None:
        assert encode_key(KeyEvent.rune("é")) == "é".encode("utf-8")
        assert encode_key(KeyEvent.rune("中")) == b"\xe4\xb8\xad"


# ---------------------------------------------------------------------------
# Escape and unmapped keys
# ---------------------------------------------------------------------------


class TestReservedAndUnmapped:
    def test_escape_sends_nothing(self) -> None:
        event = KeyEvent(key="escape", character="\x1b")
        assert event.is_escape
        assert encode_key(event) == b""

    def test_unknown_named_key(self) -> None:
        assert encode_key(KeyEvent(key="f13")) == b""
        assert encode_key(KeyEvent(key="insert")) == b""

    def test_non_printable_character_dropped(self) -> None:
        assert encode_key(KeyEvent(key="mystery", character="\x00")) == b""

    def test_no_character(self) -> None:
        assert encode_key(KeyEvent(key="shift+tab")) == b""
