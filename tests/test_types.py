import pydantic as pyd
import pytest

from ghosttext.exceptions import GhostTextError
from ghosttext.exceptions import InferenceError
from ghosttext.exceptions import InferenceHTTPError
from ghosttext.exceptions import RequestCancelledError
from ghosttext.types.completion import CompletionResult
from ghosttext.types.completion import Position
from ghosttext.types.completion import Range
from ghosttext.types.fim import FimTokenSet
from ghosttext.types.models import RECOMMENDED_MODELS
from ghosttext.types.wire import GenerateResponse
from ghosttext.types.wire import TagsResponse


class TestCompletionResult:

    def test_empty(self) -> None:
        result = CompletionResult.empty()
        assert not result
        assert result.insert_text == ""
        assert result.range is None

    def test_at_cursor(self) -> None:
        cursor = Position(3, 7)
        result = CompletionResult.at_cursor("x()", cursor)
        assert result
        assert result.range.start == result.range.end == cursor
        assert result.range.is_empty
        assert not result.from_cache

    def test_range(self) -> None:
        assert not Range(Position(1, 1), Position(1, 4)).is_empty
        assert Range.at(Position(2, 2)) == Range(Position(2, 2), Position(2, 2))


def test_token_set_sentinels() -> None:
    tokens = FimTokenSet("<p>", "<m>", "<s>", extra_stops=("</s>",))
    assert tokens.sentinels == ("<p>", "<m>", "<s>")


def test_recommended_models() -> None:
    ids = [model.id for model in RECOMMENDED_MODELS]
    assert ids[0] == "qwen2.5-coder:1.5b"
    assert len(ids) == len(set(ids))


class TestWire:

    def test_generate_response_ignores_extra_fields(self) -> None:
        data = GenerateResponse.model_validate_json(
            '{"model": "m", "created_at": "t", "response": "x", "done": true, "context": [1]}'
        )
        assert data.response == "x"
        assert data.done

    def test_generate_response_defaults(self) -> None:
        data = GenerateResponse.model_validate_json("{}")
        assert data.response == ""
        assert not data.done

    def test_generate_response_rejects_bad_types(self) -> None:
        with pytest.raises(pyd.ValidationError):
            GenerateResponse.model_validate_json('{"response": {"nested": 1}}')

    def test_tags_response(self) -> None:
        tags = TagsResponse.model_validate({"models": [{"name": "a", "size": 10}]})
        assert [m.name for m in tags.models] == ["a"]
        assert TagsResponse.model_validate({}).models == []


class TestExceptions:

    def test_hierarchy(self) -> None:
        assert issubclass(InferenceHTTPError, InferenceError)
        assert issubclass(RequestCancelledError, GhostTextError)

    def test_http_error_message(self) -> None:
        error = InferenceHTTPError(503, "busy")
        assert str(error) == "Inference API error: 503 - busy"
        assert repr(error) == "InferenceHTTPError('Inference API error: 503 - busy')"
        assert error.status_code == 503

    def test_cancelled_default_message(self) -> None:
        assert str(RequestCancelledError()) == "Request cancelled"
