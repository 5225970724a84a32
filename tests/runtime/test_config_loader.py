from pathlib import Path

import pytest

from importvalidator.parsers.base import ConfigurationError
from importvalidator.runtime.config_loader import find_config_file, load_validator_config


def test_none_yields_defaults() -> None:
    config = load_validator_config(None)

    assert config.cache_timeout == 86400
    assert config.batch_size == 20
    assert config.retry_count == 3
    assert config.severity_level == "warning"


def test_dict_source() -> None:
    config = load_validator_config({"batch_size": 5, "ignored_packages": ["@corp/*"]})

    assert config.batch_size == 5
    assert config.ignored_packages == ["@corp/*"]


def test_toml_file_with_section(tmp_path: Path) -> None:
    path = tmp_path / "importvalidator.toml"
    path.write_text(
        '[importvalidator]\nmax_files = 50\nseverity_level = "ERROR"\n',
        encoding="utf-8",
    )

    config = load_validator_config(path)

    assert config.max_files == 50
    assert config.severity_level == "error"


def test_json_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text('{"retry_delay_ms": 250}', encoding="utf-8")

    assert load_validator_config(str(path)).retry_delay_seconds == 0.25


def test_inline_strings() -> None:
    assert load_validator_config('{"batch_size": 3}').batch_size == 3
    assert load_validator_config("request_timeout = 2.5").request_timeout == 2.5


def test_invalid_values_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_validator_config({"batch_size": 0})
    with pytest.raises(ConfigurationError):
        load_validator_config({"severity_level": "fatal"})
    with pytest.raises(ConfigurationError):
        load_validator_config({"unknown_option": True})
    with pytest.raises(ConfigurationError):
        load_validator_config({"path_aliases": ["  "]})


def test_malformed_documents_raise_configuration_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.toml"
    path.write_text("max_files = [", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_validator_config(path)
    with pytest.raises(ConfigurationError):
        load_validator_config("[1, 2]")


def test_unsupported_source_type() -> None:
    with pytest.raises(TypeError):
        load_validator_config(42)


def test_find_config_file(tmp_path: Path) -> None:
    assert find_config_file(tmp_path) is None

    hidden = tmp_path / ".importvalidator.json"
    hidden.write_text("{}", encoding="utf-8")
    assert find_config_file(tmp_path) == hidden

    visible = tmp_path / "importvalidator.toml"
    visible.write_text("", encoding="utf-8")
    assert find_config_file(tmp_path) == visible
