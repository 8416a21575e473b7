"""Prepper-backed configuration loader for Keyhole."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .classifier import DEFAULT_REFERENCE_LANGUAGE, DEFAULT_SKIP_PATTERN
from .errors import ConfigurationError

APP_NAME = "Keyhole"

DIALECT_SYNONYMS = {
    "vite": "rollup",
    "webpack-eval": "webpack_eval",
    "webpackeval": "webpack_eval",
    "eval": "webpack_eval",
}


class KeyholeConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    KEYHOLE_REFERENCE_LANGUAGE: str = Field(
        default=DEFAULT_REFERENCE_LANGUAGE,
        description="Language code of the reference language file.",
    )
    KEYHOLE_DIALECT: Literal["auto", "webpack", "webpack_eval", "rollup"] = Field(
        default="auto",
        description="Code generation dialect of the language files.",
    )
    KEYHOLE_SKIP_PATTERN: str = Field(
        default=DEFAULT_SKIP_PATTERN,
        description="Regular expression of artifact names to leave alone.",
    )
    KEYHOLE_EXTENSIONS: str = Field(
        default=".js,.mjs,.cjs",
        description="Comma separated extensions of artifacts to scan.",
    )
    KEYHOLE_SOURCE_MAPS: bool = Field(default=False)
    KEYHOLE_STRICT: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_dialect(data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("KEYHOLE_DIALECT")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower()
                normalized = DIALECT_SYNONYMS.get(normalized, normalized)
                if normalized not in {"auto", "webpack", "webpack_eval", "rollup"}:
                    normalized = "auto"
                data["KEYHOLE_DIALECT"] = normalized
        return data


def parse_extensions(raw: str) -> tuple[str, ...]:
    """Split a comma separated extension list, adding missing leading dots."""

    return tuple(
        extension if extension.startswith(".") else f".{extension}"
        for extension in (part.strip() for part in raw.split(","))
        if extension
    )


@lru_cache(maxsize=None)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    try:
        provenance = ProvenanceRecorder()
        combined = _load_discovered_yaml(app_dir=base_dir, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=base_dir,
            schema=KeyholeConfig,
        )

        model = KeyholeConfig.validate(combined, provenance=provenance)
        _validate_settings(model)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=None,
            schema_cls=KeyholeConfig,
        )
    except IoError as exc:
        raise ConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise ConfigurationError(f"Configuration schema error: {exc}") from exc
    except ValidationError as exc:
        issues = _format_validation_errors(exc.to_dict())
        raise ConfigurationError(issues) from exc


def _load_discovered_yaml(
    *,
    app_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    """Load YAML configuration files using Prepper's discovery rules."""

    result: dict[str, Any] = {}
    discovered = discover_file_paths(
        APP_NAME,
        "yaml",
        app_dir=app_dir,
        extra_paths=None,
    )
    for path, label in discovered:
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        source = _path_to_source(label, "yaml", path)
        merge_layer(result, parsed, provenance=provenance, source=source, layer="file")
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(schema.__field_infos__.keys())

    def merge_values(values: Mapping[str, str], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None:
                continue
            if key not in allowed:
                continue
            merge_layer(
                target,
                {key: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        dotenv_content = dotenv_values(dotenv_path)
        merge_values(
            {k: v for k, v in dotenv_content.items() if v is not None},
            source_prefix=".env",
        )

    merge_values(
        {k: v for k, v in os.environ.items() if isinstance(v, str)},
        source_prefix="process",
    )


def _validate_settings(settings: KeyholeConfig) -> None:
    errors: list[str] = []

    language = settings.KEYHOLE_REFERENCE_LANGUAGE.strip()
    if not language or not re.fullmatch(r"[A-Za-z0-9_]+(?:[-_][A-Za-z0-9]+)*", language):
        errors.append(
            "KEYHOLE_REFERENCE_LANGUAGE must be a language code such as 'en' or 'en-GB'."
        )

    if settings.KEYHOLE_SKIP_PATTERN:
        try:
            re.compile(settings.KEYHOLE_SKIP_PATTERN)
        except re.error as exc:
            errors.append(f"KEYHOLE_SKIP_PATTERN is not a valid regular expression: {exc}.")

    if not parse_extensions(settings.KEYHOLE_EXTENSIONS):
        errors.append("KEYHOLE_EXTENSIONS must name at least one file extension.")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> KeyholeConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()


def clear_cache() -> None:
    """Forget loaded configuration, e.g. after the environment changed."""

    _load_config_instance.cache_clear()
