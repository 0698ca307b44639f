from __future__ import annotations

import pytest

from tagged_union.compiler.config import (
    CONFIG_NAME, TARGETS, ConfigError, GeneratorConfig, load_config, load_config_from_string,
)


def test_defaults() -> None:
    config = GeneratorConfig()
    assert config.targets == list(TARGETS)
    assert config.output_dir == "."
    assert config.types == []
    assert config.verify_ir and config.require_copy


def test_empty_file_gives_defaults() -> None:
    assert load_config_from_string("") == GeneratorConfig()


def test_generate_table() -> None:
    config = load_config_from_string(
        """
        [generate]
        targets = ["c", "rust"]
        output-dir = "gen"
        types = ["Message"]
        verify-ir = false
        require-copy = false
        """
    )
    assert config.targets == ["c", "rust"]
    assert config.output_dir == "gen"
    assert config.types == ["Message"]
    assert not config.verify_ir
    assert not config.require_copy


@pytest.mark.parametrize(
    "text, fragment",
    [
        ('[generate]\ntargets = ["go"]', "Unknown target 'go'"),
        ('[generate]\ntargets = []', "At least one target"),
        ('[generate]\ntargets = ["c", "c"]', "must not repeat"),
        ('[generate]\ntargets = "c"', "list of strings"),
        ('[generate]\nverify-ir = "yes"', "'verify-ir' must be a bool"),
        ('[generate]\noutput_dir = "x"', "Unknown key(s) in [generate]: output_dir"),
        ('[generate]\ntypes = ["not a name"]', "Invalid type name"),
        ("generate = 3", "must be a table"),
        ("[generate", ""),
    ],
)
def test_invalid_config(text: str, fragment: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config_from_string(text)
    assert fragment in str(excinfo.value)


def test_missing_file_in_directory_gives_defaults(tmp_path) -> None:
    assert load_config(directory=tmp_path) == GeneratorConfig()


def test_missing_explicit_path_is_an_error(tmp_path) -> None:
    with pytest.raises(ConfigError, match="No config file"):
        load_config(path=tmp_path / "absent.toml")


def test_loads_file_from_directory(tmp_path) -> None:
    (tmp_path / CONFIG_NAME).write_text('[generate]\ntargets = ["llvm"]\n', encoding="utf-8")
    assert load_config(directory=tmp_path).targets == ["llvm"]


def test_decode_error_names_the_file(tmp_path) -> None:
    path = tmp_path / CONFIG_NAME
    path.write_text("[generate\n", encoding="utf-8")
    with pytest.raises(ConfigError, match=CONFIG_NAME):
        load_config(path=path)
