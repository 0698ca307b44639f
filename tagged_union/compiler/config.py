"""Generator configuration (tagunion.toml) loading and validation."""
from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "tagunion.toml"

TARGETS = ("rust", "c", "llvm")

TARGET_SUFFIXES = {
    "rust": ".tagged.rs",
    "c": ".tagged.h",
    "llvm": ".tagged.ll",
}


class ConfigError(Exception):
    pass


@dataclass
class GeneratorConfig:
    targets: list[str] = field(default_factory=lambda: list(TARGETS))
    output_dir: str = "."
    types: list[str] = field(default_factory=list)
    verify_ir: bool = True
    require_copy: bool = True

    def validate(self) -> None:
        if not self.targets:
            raise ConfigError("At least one target is required.")
        for target in self.targets:
            if target not in TARGETS:
                raise ConfigError(
                    f"Unknown target '{target}'. Must be one of: {', '.join(TARGETS)}."
                )
        if len(set(self.targets)) != len(self.targets):
            raise ConfigError("Targets must not repeat.")
        for name in self.types:
            if not name.isidentifier():
                raise ConfigError(f"Invalid type name '{name}'.")


def load_config(directory: Path | None = None, path: Path | None = None) -> GeneratorConfig:
    """Load tagunion.toml from `path`, or from `directory` (default: cwd).

    A missing file in `directory` yields the defaults; a missing explicit
    `path` is an error.
    """
    if path is None:
        path = (directory or Path.cwd()) / CONFIG_NAME
        if not path.exists():
            return GeneratorConfig()
    elif not path.exists():
        raise ConfigError(f"No config file at {path}")
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from None
    return _parse_config(data)


def load_config_from_string(text: str) -> GeneratorConfig:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(str(e)) from None
    return _parse_config(data)


def _parse_config(data: dict) -> GeneratorConfig:
    gen = data.get("generate", {})
    if not isinstance(gen, dict):
        raise ConfigError("[generate] must be a table")
    unknown = set(gen) - {"targets", "output-dir", "types", "verify-ir", "require-copy"}
    if unknown:
        raise ConfigError(f"Unknown key(s) in [generate]: {', '.join(sorted(unknown))}")

    config = GeneratorConfig(
        targets=_string_list(gen, "targets", list(TARGETS)),
        output_dir=_typed(gen, "output-dir", str, "."),
        types=_string_list(gen, "types", []),
        verify_ir=_typed(gen, "verify-ir", bool, True),
        require_copy=_typed(gen, "require-copy", bool, True),
    )
    config.validate()
    return config


def _typed(table: dict, key: str, kind: type, default):
    value = table.get(key, default)
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' must be a {kind.__name__}")
    return value


def _string_list(table: dict, key: str, default: list[str]) -> list[str]:
    value = table.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)
