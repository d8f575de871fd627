from __future__ import annotations

import pytest

from doclint.analysis.slug import slugify, unique_slugs


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Getting Started", "getting-started"),
        ("  Trim Me  ", "trim-me"),
        ("API: v2 (beta)!", "api-v2-beta"),
        ("snake_case and  spaces", "snake-case-and-spaces"),
        ("--Leading and trailing--", "leading-and-trailing"),
        ("Ünïcode Wörds", "ünïcode-wörds"),
        ("", ""),
    ],
)
def test_slugify_examples(text: str, expected: str) -> None:
    assert slugify(text) == expected


@pytest.mark.parametrize(
    "text",
    ["Getting Started", "A -- B __ C", "Ends with ?!", "already-a-slug", "Mixed_CASE-Text"],
)
def test_slugify_is_idempotent(text: str) -> None:
    once = slugify(text)
    assert slugify(once) == once


def test_unique_slugs_numbers_repeated_headings() -> None:
    assert unique_slugs(["Setup", "Usage", "Setup", "Setup"]) == [
        "setup",
        "usage",
        "setup-1",
        "setup-2",
    ]
