import itertools

import pytest

from ghosttext.context import extract_context
from ghosttext.context import find_forward_code_suffix
from ghosttext.context import is_code_line
from ghosttext.context import is_degenerate_prefix
from ghosttext.context import limit_context_by_characters
from ghosttext.context import strip_leading_comments
from ghosttext.context.buffer import TextBuffer
from ghosttext.context.buffer import TextDocument
from ghosttext.context.buffer import text_before
from ghosttext.types.completion import Position


class TestTextDocument:

    def test_with_cursor(self) -> None:
        doc, cursor = TextDocument.with_cursor("def f():\n    ret|urn 1\n")
        assert cursor == Position(2, 8)
        assert doc.line_content(2) == "    return 1"
        assert doc.line_count() == 3

    def test_with_cursor_requires_marker(self) -> None:
        with pytest.raises(ValueError):
            TextDocument.with_cursor("no marker here")

    def test_crlf_normalised(self) -> None:
        doc = TextDocument("a\r\nb\r\n")
        assert doc.text == "a\nb\n"

    def test_text_in_range_multiline(self) -> None:
        doc = TextDocument("abc\ndef\nghi")
        assert doc.text_in_range(Position(1, 2), Position(3, 2)) == "bc\ndef\ng"
        assert doc.text_in_range(Position(2, 1), Position(2, doc.line_max_column(2))) == "def"

    def test_text_in_range_clamps_out_of_bounds(self) -> None:
        doc = TextDocument("abc\ndef")
        assert doc.text_in_range(Position(0, 0), Position(99, 99)) == "abc\ndef"

    def test_text_before(self) -> None:
        doc, cursor = TextDocument.with_cursor("var x = new |Builder()")
        assert text_before(doc, cursor) == "var x = new "

    def test_position_at(self) -> None:
        doc = TextDocument("ab\ncd")
        assert doc.position_at(0) == Position(1, 1)
        assert doc.position_at(3) == Position(2, 1)
        assert doc.position_at(100) == Position(2, 3)

    def test_satisfies_protocol(self) -> None:
        assert isinstance(TextDocument(""), TextBuffer)


class TestCodeLines:

    @pytest.mark.parametrize(
        "line",
        ["", "   ", "// note", "  /* start", " * continued", " */", "# comment", "#"],
    )
    def test_not_code(self, line: str) -> None:
        assert not is_code_line(line)

    @pytest.mark.parametrize("line", ["x = 1", "  return x  # trailing", "#include <stdio.h>"])
    def test_code(self, line: str) -> None:
        assert is_code_line(line)

    def test_strip_leading_comments(self) -> None:
        suffix = "\n  // TODO\n\n  /* block\n   * more\n   */\n  return x;\n}"
        assert strip_leading_comments(suffix) == "  return x;\n}"

    def test_strip_leading_comments_keeps_code_first(self) -> None:
        assert strip_leading_comments("x = 1\n# c") == "x = 1\n# c"

    def test_strip_leading_comments_all_comments(self) -> None:
        assert strip_leading_comments("\n# a\n# b\n") == ""


class TestCharacterBudget:

    def test_under_budget_untouched(self) -> None:
        assert limit_context_by_characters("abc", "def", 10) == ("abc", "def")

    def test_zero_disables(self) -> None:
        prefix, suffix = "a" * 1000, "b" * 1000
        assert limit_context_by_characters(prefix, suffix, 0) == (prefix, suffix)

    def test_prefix_keeps_tail_suffix_keeps_head(self) -> None:
        prefix = "0123456789" * 10
        suffix = "abcdefghij" * 10
        new_prefix, new_suffix = limit_context_by_characters(prefix, suffix, 40)
        assert new_prefix == prefix[-30:]
        assert new_suffix == suffix[:10]

    def test_short_prefix_leaves_budget_to_suffix(self) -> None:
        new_prefix, new_suffix = limit_context_by_characters("abc", "x" * 100, 20)
        assert new_prefix == "abc"
        assert new_suffix == "x" * 17

    def test_budget_property(self) -> None:
        for prefix_len, suffix_len, budget in itertools.product(
            (0, 1, 7, 74, 75, 300, 1000), (0, 1, 9, 25, 250, 1000), (1, 3, 4, 10, 99, 100, 500)
        ):
            prefix, suffix = "p" * prefix_len, "s" * suffix_len
            new_prefix, new_suffix = limit_context_by_characters(prefix, suffix, budget)
            assert len(new_prefix) + len(new_suffix) <= budget
            if prefix_len + suffix_len > budget:
                assert len(new_prefix) <= int(budget * 0.75)
            assert prefix.endswith(new_prefix)
            assert suffix.startswith(new_suffix)


class TestExtractContext:

    def test_basic_window(self) -> None:
        doc, cursor = TextDocument.with_cursor("def f(x):\n    return |x + 1\n")
        context = extract_context(doc, cursor, max_lines=50, max_chars=500)
        assert context.prefix == "def f(x):\n    return "
        assert context.suffix == "x + 1\n"

    def test_line_window(self) -> None:
        lines = [f"line{i} = {i}" for i in range(1, 21)]
        lines[9] = "line10 = |10"
        doc, cursor = TextDocument.with_cursor("\n".join(lines))
        context = extract_context(doc, cursor, max_lines=2, max_chars=0)
        assert context.prefix == "line8 = 8\nline9 = 9\nline10 = "
        assert context.suffix == "10\nline11 = 11\nline12 = 12"

    def test_strips_comment_suffix(self) -> None:
        source = "def a():\n    x = 1|\n    # explain\n    return x\n"
        doc, cursor = TextDocument.with_cursor(source)
        context = extract_context(doc, cursor, max_lines=50, max_chars=500)
        assert context.suffix == "    return x\n"

    def test_lookahead_beyond_window(self) -> None:
        source = "def a():\n    x = 1|\n# comment\n# comment\n\ndef b():\n    pass\n"
        doc, cursor = TextDocument.with_cursor(source)
        context = extract_context(doc, cursor, max_lines=1, max_chars=500)
        assert context.suffix == "def b():\n    pass\n"

    def test_lookahead_finds_nothing(self) -> None:
        doc, cursor = TextDocument.with_cursor("x = 1|\n# only\n# comments\n")
        context = extract_context(doc, cursor, max_lines=50, max_chars=500)
        assert context.suffix == ""

    def test_find_forward_code_suffix_span_and_cap(self) -> None:
        doc = TextDocument("start\n\n" + "\n".join(f"code_{i}()" for i in range(10)))
        span = find_forward_code_suffix(doc, 1, span_lines=2)
        assert span == "code_0()\ncode_1()\ncode_2()"
        assert find_forward_code_suffix(doc, 1, max_chars=5) == "code_"
        assert find_forward_code_suffix(doc, 1, max_lookahead_lines=1) == ""

    def test_budget_holds_with_lookahead(self) -> None:
        source = "x = 1\n" * 200 + "y = |\n" + "# c\n" * 10 + "z = 2\n" * 50
        doc, cursor = TextDocument.with_cursor(source)
        for budget in (10, 100, 250, 500):
            context = extract_context(doc, cursor, max_lines=50, max_chars=budget)
            assert context.total_chars <= budget

    def test_empty_buffer(self) -> None:
        context = extract_context(TextDocument(""), Position(1, 1), 50, 500)
        assert context.prefix == ""
        assert context.suffix == ""

    @pytest.mark.parametrize(
        "prefix, degenerate",
        [("", True), ("   \n\t", True), ("ab", True), ("  a b ", False), ("abc", False)],
    )
    def test_is_degenerate_prefix(self, prefix: str, degenerate: bool) -> None:
        assert is_degenerate_prefix(prefix) is degenerate
