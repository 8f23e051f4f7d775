import pathlib

import pydantic as pyd
import pytest

from ghosttext.config import CONFIG_ENV_VAR
from ghosttext.config import load_config
from ghosttext.exceptions import ConfigurationError
from ghosttext.types.config import CompletionConfig
from ghosttext.types.config import resolve_config


class TestCompletionConfig:

    def test_defaults(self) -> None:
        config = CompletionConfig()
        assert config.endpoint == "http://localhost:11434"
        assert config.model == "qwen2.5-coder:1.5b"
        assert config.debounce_ms == 300
        assert config.max_context_lines == 50
        assert config.max_context_chars == 500
        assert config.max_completion_length == 512
        assert config.temperature == 0.2
        assert config.debounce_seconds == 0.3

    @pytest.mark.parametrize(
        "field", ["debounce_ms", "max_context_lines", "max_context_chars", "max_completion_length"]
    )
    def test_rejects_negative(self, field: str) -> None:
        with pytest.raises(pyd.ValidationError):
            CompletionConfig(**{field: -1})

    def test_rejects_unknown_field(self) -> None:
        with pytest.raises(pyd.ValidationError):
            CompletionConfig(debounce=10)

    def test_immutable(self) -> None:
        config = CompletionConfig()
        with pytest.raises(pyd.ValidationError):
            config.model = "other"

    def test_endpoint_normalised(self) -> None:
        assert CompletionConfig(endpoint=" http://gpu:11434/ ").endpoint == "http://gpu:11434"
        with pytest.raises(pyd.ValidationError):
            CompletionConfig(endpoint="  ")

    @pytest.mark.parametrize(
        "budget, soft, hard",
        [(32, 757, 789), (512, 2048, 4096), (0, 725, 725), (100, 825, 925)],
    )
    def test_limits(self, budget: int, soft: int, hard: int) -> None:
        config = CompletionConfig(max_completion_length=budget)
        assert config.soft_limit == soft
        assert config.hard_limit == hard

    def test_resolve_config(self) -> None:
        config = resolve_config(model="deepseek-coder:1.3b", debounce_ms=None)
        assert config.model == "deepseek-coder:1.3b"
        assert config.debounce_ms == 300

        derived = resolve_config(config, debounce_ms=50)
        assert derived.model == "deepseek-coder:1.3b"
        assert derived.debounce_ms == 50


class TestLoadConfig:

    @pytest.fixture(autouse=True)
    def isolate(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

    def test_defaults_without_file(self) -> None:
        assert load_config() == CompletionConfig()

    def test_default_file_with_section(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "ghosttext.yml").write_text(
            "ghosttext:\n  model: starcoder2:3b\n  debounce_ms: 150\n", encoding="utf-8"
        )
        config = load_config()
        assert config.model == "starcoder2:3b"
        assert config.debounce_ms == 150

    def test_explicit_path_top_level(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("endpoint: http://gpu:11434/\nmax_context_chars: 1000\n", encoding="utf-8")
        config = load_config(path)
        assert config.endpoint == "http://gpu:11434"
        assert config.max_context_chars == 1000

    def test_env_var(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "env.yml"
        path.write_text("model: codellama:7b\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_config().model == "codellama:7b"

    def test_overrides(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.yml"
        path.write_text("debounce_ms: 150\n", encoding="utf-8")
        assert load_config(path, debounce_ms=10, model=None).debounce_ms == 10

    def test_empty_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == CompletionConfig()

    def test_missing_explicit_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yml")

    def test_malformed_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("model: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_value(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "neg.yml"
        path.write_text("debounce_ms: -5\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(path)
