"""Tests for configuration loading."""

import pytest

from modelgate.config import (
    CONFIG_ENV_VAR,
    DEFAULT_FREE_MODELS,
    find_config_path,
    load_config,
    merge_dicts,
    resolve_env_vars,
)
from modelgate.exceptions import ConfigError


def test_missing_file_gives_defaults(tmp_path) -> None:
    config = load_config(tmp_path / "nope.yaml")

    assert config.catalog.source == "bundled"
    assert config.catalog.free_models == DEFAULT_FREE_MODELS
    assert config.credentials.backend == "yaml"
    assert config.credentials.lookup_timeout is None
    assert "openai" in config.providers.supported


def test_values_from_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "catalog:\n"
        "  source: HTTP\n"
        "  url: https://catalog.test/models\n"
        "  retries: 5\n"
        "credentials:\n"
        "  backend: memory\n"
        "  lookup_timeout: 1.5\n"
        "  keys:\n"
        "    u1: [openai]\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  components:\n"
        "    store: WARNING\n"
    )
    config = load_config(path)

    assert config.catalog.source == "http"
    assert config.catalog.retries == 5
    assert config.credentials.lookup_timeout == 1.5
    assert config.credentials.keys == {"u1": ["openai"]}
    assert config.logging.components == {"store": "WARNING"}


def test_env_placeholders_are_resolved(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CATALOG_HOST", "catalog.internal")
    monkeypatch.delenv("MISSING_VAR", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "catalog:\n"
        "  source: http\n"
        "  url: https://${CATALOG_HOST}/models${MISSING_VAR}\n"
    )

    assert load_config(path).catalog.url == "https://catalog.internal/models"


def test_resolve_env_vars_recurses(monkeypatch) -> None:
    monkeypatch.setenv("TOKEN", "abc")
    value = {"a": ["${TOKEN}", 3], "b": {"c": "x-${TOKEN}"}}
    assert resolve_env_vars(value) == {"a": ["abc", 3], "b": {"c": "x-abc"}}


def test_merge_dicts_is_recursive() -> None:
    base = {"catalog": {"source": "file", "path": "a.yaml"}, "x": 1}
    merged = merge_dicts(base, {"catalog": {"path": "b.yaml"}})

    assert merged == {"catalog": {"source": "file", "path": "b.yaml"}, "x": 1}
    assert base["catalog"]["path"] == "a.yaml"


def test_overrides_win_over_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("credentials:\n  backend: yaml\n")
    config = load_config(path, overrides={"credentials": {"backend": "none"}})
    assert config.credentials.backend == "none"


@pytest.mark.parametrize(
    "content, message",
    [
        ("catalog:\n  source: ftp\n", "catalog.source"),
        ("catalog:\n  source: file\n", "catalog.path"),
        ("catalog:\n  source: http\n", "catalog.url"),
        ("catalog:\n  timeout: 0\n", "timeout"),
        ("credentials:\n  backend: redis\n", "credentials.backend"),
        ("credentials:\n  lookup_timeout: -1\n", "lookup_timeout"),
    ],
)
def test_invalid_values_raise_config_error(tmp_path, content, message) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_malformed_files_raise_config_error(tmp_path) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("catalog: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(broken)

    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_config(not_mapping)


def test_config_path_lookup_order(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / "from-env.yaml"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(env_file))

    assert find_config_path() == env_file
    assert find_config_path(tmp_path / "explicit.yaml") == tmp_path / "explicit.yaml"

    monkeypatch.delenv(CONFIG_ENV_VAR)
    assert find_config_path().name == "config.yaml"


def test_env_var_config_is_loaded(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("credentials:\n  backend: none\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert load_config().credentials.backend == "none"
