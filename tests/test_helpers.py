from __future__ import annotations

import pytest

from mrs_agent.models.session import DEFAULT_TITLE
from mrs_agent.prompts.replies import STICKER_REPLY_TEMPLATES, error_reply, make_reply_selector, sticker_reply
from mrs_agent.utils.helpers import IdGenerator, contains_code, derive_title, format_file_size, is_supported_file


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Hello", "Hello"),
        ("Help me write a poem", "Help me write a..."),
        ("  one   two  three four  ", "one two three four"),
        ("   ", DEFAULT_TITLE),
    ],
)
def test_derive_title(text: str, expected: str) -> None:
    assert derive_title(text) == expected


def test_derive_title_respects_word_limit() -> None:
    assert derive_title("a b c d e f", word_limit=5) == "a b c d e..."


def test_contains_code_detects_fences() -> None:
    assert contains_code("```python\nprint(1)\n```")
    assert not contains_code("inline `code` only")


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (10 * 1024 * 1024, "10 MB")],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


@pytest.mark.parametrize(
    ("name", "mime_type", "expected"),
    [
        ("photo.bin", "image/png", True),
        ("report.pdf", "application/pdf", True),
        ("main.RS", None, True),
        ("archive.zip", "application/zip", False),
        (None, None, False),
    ],
)
def test_is_supported_file(name, mime_type, expected: bool) -> None:
    assert is_supported_file(name, mime_type) is expected


def test_id_generator_is_strictly_increasing() -> None:
    generate = IdGenerator()
    ids = [int(generate()) for _ in range(100)]

    assert ids == sorted(set(ids))


def test_seeded_reply_selector_is_reproducible() -> None:
    picks_a = make_reply_selector(7)
    picks_b = make_reply_selector(7)

    assert [picks_a(STICKER_REPLY_TEMPLATES) for _ in range(10)] == [
        picks_b(STICKER_REPLY_TEMPLATES) for _ in range(10)
    ]
    assert "👍" in sticker_reply("👍", make_reply_selector(7))


def test_error_reply_falls_back_to_generic_reason() -> None:
    assert "Unknown error occurred" in error_reply("")
    assert "status 500" in error_reply("status 500")
