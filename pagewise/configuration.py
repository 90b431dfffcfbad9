"""Layered configuration loader for Pagewise."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import BackendConfigurationError
from .locator import LocatorThresholds
from .providers import BackendConfig, normalise_backend_name, register_default_backends

APP_NAME = "pagewise"
CONFIG_FILENAME = "config.yaml"


class PagewiseConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    PAGEWISE_PROVIDER: Literal["openai", "local", "echo"] = Field(
        default="openai",
        description="Translation backend selection.",
    )
    PAGEWISE_MODEL: Optional[str] = Field(default=None)
    PAGEWISE_API_KEY: Optional[str] = Field(default=None, repr=False)
    PAGEWISE_API_ENDPOINT: Optional[str] = Field(default=None)
    PAGEWISE_TRANSLATION_LEVEL: Literal["plain", "simple", "easy"] = Field(default="easy")
    PAGEWISE_TARGET_LANGUAGE: str = Field(default="German")
    PAGEWISE_MAX_CHUNK_CHARS: int = Field(default=1000, ge=100)
    PAGEWISE_MAIN_MIN_WORDS: int = Field(default=10, ge=1)
    PAGEWISE_NESTED_MIN_WORDS: int = Field(default=5, ge=1)
    PAGEWISE_PARAGRAPH_MIN_WORDS: int = Field(default=3, ge=1)
    PAGEWISE_DENSE_MIN_CHARS: int = Field(default=50, ge=0)
    PAGEWISE_DENSE_MIN_WORDS: int = Field(default=10, ge=0)
    PAGEWISE_DENSE_MAX_CHILDREN: int = Field(default=5, ge=1)
    PAGEWISE_CACHE_SIZE: int = Field(default=100, ge=0)
    PAGEWISE_COMPARE_VIEW: bool = Field(default=False)
    PAGEWISE_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("PAGEWISE_PROVIDER")
            if isinstance(raw_value, str):
                data = dict(data)
                data["PAGEWISE_PROVIDER"] = normalise_backend_name(raw_value)
        return data

    def backend_config(self) -> BackendConfig:
        """Opaque backend settings handed to every dispatch."""

        return BackendConfig(
            provider=self.PAGEWISE_PROVIDER,
            model=self.PAGEWISE_MODEL,
            api_key=self.PAGEWISE_API_KEY,
            api_endpoint=self.PAGEWISE_API_ENDPOINT,
            translation_level=self.PAGEWISE_TRANSLATION_LEVEL,
            target_language=self.PAGEWISE_TARGET_LANGUAGE,
            debug=self.PAGEWISE_PROVIDER_DEBUG,
        )

    def locator_thresholds(self) -> LocatorThresholds:
        return LocatorThresholds(
            main_min_words=self.PAGEWISE_MAIN_MIN_WORDS,
            nested_min_words=self.PAGEWISE_NESTED_MIN_WORDS,
            paragraph_min_words=self.PAGEWISE_PARAGRAPH_MIN_WORDS,
            dense_min_chars=self.PAGEWISE_DENSE_MIN_CHARS,
            dense_min_words=self.PAGEWISE_DENSE_MIN_WORDS,
            dense_max_children=self.PAGEWISE_DENSE_MAX_CHILDREN,
        )


def discover_config_files(app_dir: Path, home: Optional[Path] = None) -> List[Path]:
    """Return existing YAML files, lowest precedence first."""

    home_dir = home if home is not None else Path.home()
    candidates = [
        home_dir / ".config" / APP_NAME / CONFIG_FILENAME,
        app_dir / CONFIG_FILENAME,
    ]
    return [path for path in candidates if path.is_file()]


def _load_yaml_layers(paths: Sequence[Path]) -> Dict[str, Any]:
    """Merge YAML configuration files, later files winning."""

    result: Dict[str, Any] = {}
    for path in paths:
        try:
            with path.open("r", encoding="utf-8") as handle:
                parsed = yaml.safe_load(handle)
        except OSError as exc:
            raise BackendConfigurationError(
                f"Configuration files could not be read: {exc}"
            ) from exc
        except yaml.YAMLError as exc:
            raise BackendConfigurationError(
                f"Invalid configuration file {path}: {exc}"
            ) from exc
        if parsed is None:
            continue
        if not isinstance(parsed, Mapping):
            raise BackendConfigurationError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        result.update({str(key).upper(): value for key, value in parsed.items()})
    return result


def _merge_env_sources(
    target: Dict[str, Any],
    *,
    app_dir: Path,
    environ: Mapping[str, str],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(PagewiseConfig.model_fields)

    def merge_values(values: Mapping[str, Optional[str]]) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in allowed:
                continue
            target[key] = value

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path))

    merge_values({k: v for k, v in environ.items() if isinstance(v, str)})


def _validate_provider_settings(settings: PagewiseConfig) -> None:
    errors: List[str] = []

    backend = register_default_backends().metadata(settings.PAGEWISE_PROVIDER)
    if backend.requires_key and not settings.PAGEWISE_API_KEY:
        message = f"PAGEWISE_API_KEY is required when PAGEWISE_PROVIDER is '{backend.id}'."
        if backend.key_hint:
            message += f" {backend.key_hint}."
        errors.append(message)
    if settings.PAGEWISE_NESTED_MIN_WORDS > settings.PAGEWISE_MAIN_MIN_WORDS:
        errors.append(
            "PAGEWISE_NESTED_MIN_WORDS must not exceed PAGEWISE_MAIN_MIN_WORDS."
        )
    if settings.PAGEWISE_PARAGRAPH_MIN_WORDS > settings.PAGEWISE_NESTED_MIN_WORDS:
        errors.append(
            "PAGEWISE_PARAGRAPH_MIN_WORDS must not exceed PAGEWISE_NESTED_MIN_WORDS."
        )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise BackendConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(exc: ValidationError) -> str:
    details: List[str] = []
    for entry in exc.errors():
        location = ".".join(str(part) for part in entry.get("loc", ()) if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def load_settings(
    app_dir: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PagewiseConfig:
    """Build settings from YAML files, ``.env``, the environment and overrides."""

    base_dir = app_dir or Path.cwd()
    combined = _load_yaml_layers(discover_config_files(base_dir, home))
    _merge_env_sources(
        combined,
        app_dir=base_dir,
        environ=os.environ if environ is None else environ,
    )
    if overrides:
        combined.update({key: value for key, value in overrides.items() if value is not None})

    try:
        settings = PagewiseConfig.model_validate(combined)
    except ValidationError as exc:
        raise BackendConfigurationError(_format_validation_errors(exc)) from exc
    _validate_provider_settings(settings)
    return settings


@lru_cache(maxsize=4)
def _cached_settings(app_dir: Path) -> PagewiseConfig:
    return load_settings(app_dir)


def get_settings(app_dir: Optional[Path] = None) -> PagewiseConfig:
    """Return the validated settings for ``app_dir``, loading them once."""

    return _cached_settings((app_dir or Path.cwd()).resolve())
