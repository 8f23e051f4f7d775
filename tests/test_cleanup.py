import pytest

from ghosttext.cleanup import clean_completion
from ghosttext.cleanup import is_echoing_suffix
from ghosttext.prompt import FimRegistry

SENTINELS = tuple(
    token for tokens in FimRegistry().all_token_sets() for token in tokens.sentinels
)


class TestCleanCompletion:

    def test_trailing_whitespace(self) -> None:
        assert clean_completion("foo()   \n\n") == "foo()"

    def test_leading_indentation_kept(self) -> None:
        assert clean_completion("    return x\n") == "    return x"

    def test_code_fences(self) -> None:
        assert clean_completion("```python\nx = 1\n```") == "x = 1"
        assert clean_completion("```\nx = 1") == "x = 1"

    @pytest.mark.parametrize(
        "raw",
        [
            "x = 1<|endoftext|>",
            "x = 1<|fim_middle|>",
            "x = 1<｜end▁of▁sentence｜>",
            "x = 1<fim_suffix>",
            "x = 1<EOT>",
            "x = 1[EOL]",
            "<file_sep>x = 1",
        ],
    )
    def test_sentinels(self, raw: str) -> None:
        assert clean_completion(raw, SENTINELS) == "x = 1"

    def test_registered_family_tokens(self) -> None:
        assert clean_completion("a[SUFFIX]b[MIDDLE]", SENTINELS) == "ab"
        assert clean_completion("a[SUFFIX]b") == "a[SUFFIX]b"

    def test_line_cap(self) -> None:
        raw = "\n".join(f"line_{i}()" for i in range(20))
        assert clean_completion(raw).split("\n") == [f"line_{i}()" for i in range(8)]
        assert clean_completion(raw, max_lines=2) == "line_0()\nline_1()"

    @pytest.mark.parametrize(
        "raw",
        [
            "```js\nconst a = 1;\n```\n",
            "<|fim_<|x|>prefix|>value",
            "x = 1\n   \n" * 10,
            "  indented <|endoftext|>  \n```",
            "<｜fim▁hole｜>```python\n<|im_end|>",
            "",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = clean_completion(raw, SENTINELS)
        assert clean_completion(once, SENTINELS) == once

    def test_only_noise_is_empty(self) -> None:
        assert clean_completion("<|endoftext|>\n```\n  ", SENTINELS) == ""


class TestEchoDetection:

    def test_echo(self) -> None:
        assert is_echoing_suffix("return true;", "return true; // tail")

    def test_case_and_whitespace_insensitive(self) -> None:
        assert is_echoing_suffix("  Return True;\n", "\n   return true; // tail\n}")

    def test_not_echo(self) -> None:
        assert not is_echoing_suffix("return false;", "return true; // tail")
        assert not is_echoing_suffix("return true; // tail and more", "return true;")

    def test_empty_sides(self) -> None:
        assert not is_echoing_suffix("", "anything")
        assert not is_echoing_suffix("x = 1", "")
        assert not is_echoing_suffix("x = 1", "   \n")
