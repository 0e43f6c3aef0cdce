"""Tests for the edit matching cascade."""

from tools.smart_edit import apply_edit, levenshtein, line_preview, similarity


GREET = (
    "def greet(name):\n"
    "    message = \"Hello, \" + name\n"
    "    print(message)\n"
    "    return message\n"
)


def test_exact_match():
    result = apply_edit("a = 1\nb = 2\nc = 3\n", "b = 2", "b = 20")
    assert result.success
    assert result.strategy == "exact"
    assert result.content == "a = 1\nb = 20\nc = 3\n"
    assert result.matched_range == (2, 2)


def test_exact_match_multiple_occurrences_is_ambiguous():
    result = apply_edit("x = 1\ny = 2\nx = 1\n", "x = 1", "x = 3")
    assert not result.success
    assert result.ambiguous
    assert result.content is None
    assert "Found 2 occurrences" in result.error


def test_replace_all():
    result = apply_edit("x = 1\ny = 2\nx = 1\n", "x = 1", "x = 3", replace_all=True)
    assert result.success
    assert result.content == "x = 3\ny = 2\nx = 3\n"
    assert result.lines_changed == 2


def test_line_number_disambiguates():
    result = apply_edit("a\nb\nb\n", "b", "c", line_number=3)
    assert result.success
    assert result.strategy == "line-number"
    assert result.content == "a\nb\nc\n"
    assert result.start_line == 3


def test_line_number_without_search_text_falls_through():
    result = apply_edit("a = 1\nb = 2\n", "b = 2", "b = 3", line_number=1)
    assert result.success
    assert result.strategy == "exact"
    assert result.content == "a = 1\nb = 3\n"


def test_fuzzy_match_tolerates_small_differences():
    old = "    message = \"Hello \" + name\n    print(message)"
    new = "    message = \"Hi \" + name\n    print(message)"
    result = apply_edit(GREET, old, new)
    assert result.success
    assert result.strategy == "fuzzy"
    assert result.matched_range == (2, 3)
    assert result.score > 0.9
    assert result.content == (
        "def greet(name):\n"
        "    message = \"Hi \" + name\n"
        "    print(message)\n"
        "    return message\n"
    )


def test_fuzzy_match_ignores_trailing_whitespace():
    result = apply_edit("def f():\n    return 1\n", "def f():   \n    return 1   ", "def f():\n    return 2")
    assert result.success
    assert result.strategy == "fuzzy"
    assert result.score >= 0.7
    assert result.matched_range == (1, 2)
    assert result.content == "def f():\n    return 2\n"


def test_fuzzy_tie_is_ambiguous():
    result = apply_edit("foo = 1\nbar = 2\nfoo = 1\nbar = 2", "foo = 1\nbar = 3", "foo = 1\nbar = 4")
    assert not result.success
    assert result.ambiguous
    assert result.strategy == "fuzzy"
    assert "equally similar" in result.error


def test_context_match_on_middle_line():
    content = "import os\nvalue = compute(1)\nprint(value)"
    result = apply_edit(content, "zzzzzzzzzz\nvalue = compute(1)\nqqqqqqqqqq", "value = compute(2)")
    assert result.success
    assert result.strategy == "context"
    assert result.content == "import os\nvalue = compute(2)\nprint(value)"
    assert result.matched_range == (2, 2)


def test_context_match_on_several_lines_is_ambiguous():
    content = "x = compute(1)\ny = 0\nx = compute(1)\n"
    result = apply_edit(content, "aaaa\nx = compute(1)\nbbbb", "x = compute(2)")
    assert not result.success
    assert result.ambiguous
    assert result.strategy == "context"
    assert "Found 2 potential matches" in result.error


def test_partial_match_inside_a_line():
    content = "for x in xs:\n    total += x  # accumulate\n"
    result = apply_edit(content, "  total += x  \n", "total -= x")
    assert result.success
    assert result.strategy == "partial"
    assert result.content == "for x in xs:\n    total -= x  # accumulate\n"


def test_partial_match_on_several_lines_is_ambiguous():
    content = "total += x  # a\ntotal += x  # b\n"
    result = apply_edit(content, " total += x ", "total -= x")
    assert not result.success
    assert result.ambiguous
    assert result.strategy == "partial"


def test_no_match():
    result = apply_edit("a\nb\n", "zzz", "y")
    assert not result.success
    assert not result.ambiguous
    assert "Could not find a suitable match" in result.error


def test_line_number_out_of_range_is_reported():
    result = apply_edit("a\nb\n", "zzz", "y", line_number=99)
    assert not result.success
    assert "out of range" in result.error


def test_preview_marks_edited_lines():
    result = apply_edit("a = 1\nb = 2\nc = 3\n", "b = 2", "b = 20")
    assert ">    2 | b = 20" in result.preview
    assert "     1 | a = 1" in result.preview


def test_line_preview_without_range():
    assert line_preview("a\nb", None, None) == ""


def test_levenshtein_and_similarity():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert similarity("abc", "abc") == 1.0
    assert similarity("", "a") == 0.0
    assert similarity("abcd", "abcx") == 0.75
