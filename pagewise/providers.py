"""Translation backend abstractions."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .cache import TranslationCache
from .errors import BackendConfigurationError, BackendError, UnknownBackendError

logger = logging.getLogger(__name__)

TRANSLATION_LEVELS = ("plain", "simple", "easy")

_LEVEL_INSTRUCTIONS = {
    "plain": (
        "Rewrite it in plain {language}: keep every fact, shorten long "
        "sentences, replace jargon with everyday words."
    ),
    "simple": (
        "Rewrite it in simple {language}: short sentences, common words, "
        "explain technical terms the first time they appear."
    ),
    "easy": (
        "Rewrite it in easy-to-read {language} following the rules for "
        "easy language: one statement per sentence, very short sentences, "
        "no subordinate clauses, explain every difficult word."
    ),
}

SYSTEM_PROMPT_TEMPLATE = (
    "You receive a news article as HTML. Extract the article text. {instruction} "
    "Format the result as HTML: use <h1> or <h2> for headings, <p> for "
    "paragraphs and <ul>/<li> for lists. Ignore navigation, advertising and "
    "anything else that is not part of the article. Always produce valid HTML "
    "and answer with the content only, without an introduction and without "
    "markdown code fences."
)

FENCE_PATTERN = re.compile(r"^\s*```(?:html)?\s*|\s*```\s*$", re.IGNORECASE)
LEADING_HTML_WORD = re.compile(r"^\s*html\b\s*", re.IGNORECASE)


@dataclass(frozen=True)
class BackendConfig:
    """Opaque per-session backend settings supplied by the host."""

    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)
    api_endpoint: Optional[str] = None
    translation_level: str = "easy"
    target_language: str = "German"
    debug: bool = False


def system_prompt(config: BackendConfig) -> str:
    """Select the instruction text for the configured translation level."""

    level = config.translation_level if config.translation_level in _LEVEL_INSTRUCTIONS else "easy"
    instruction = _LEVEL_INSTRUCTIONS[level].format(language=config.target_language)
    return SYSTEM_PROMPT_TEMPLATE.format(instruction=instruction)


def clean_response(text: str) -> str:
    """Strip code fences and a stray leading ``html`` from model output."""

    cleaned = FENCE_PATTERN.sub("", text)
    cleaned = LEADING_HTML_WORD.sub("", cleaned)
    return cleaned.strip()


class TranslationBackend(ABC):
    """Abstract adapter for translation backends."""

    @abstractmethod
    def translate(self, markup: str, config: BackendConfig) -> str:
        """Translate ``markup`` and return the translated markup."""


class EchoBackend(TranslationBackend):
    """A backend that returns the original markup (useful for testing)."""

    def translate(self, markup: str, config: BackendConfig) -> str:
        return markup


class OpenAIBackend(TranslationBackend):
    """Translation backend that uses OpenAI chat models."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_ENDPOINT = "https://api.openai.com/v1"
    REQUIRES_KEY = True

    def __init__(self) -> None:
        self._clients: Dict[Tuple[Optional[str], str], Any] = {}

    def translate(self, markup: str, config: BackendConfig) -> str:
        if not markup.strip():
            return ""
        client = self._client_for(config)
        prompt = system_prompt(config)
        model = config.model or self.DEFAULT_MODEL

        self._log_debug(config, "backend.request.system_prompt", prompt)
        self._log_debug(config, "backend.request.markup", markup)

        content = self._invoke_model(
            client,
            system_prompt=prompt,
            markup=markup,
            model=model,
            config=config,
        )
        translated = clean_response(content)
        self._log_debug(config, "backend.response.cleaned", translated)
        if not translated:
            raise BackendError(f"{config.provider} returned an empty translation.")
        return translated

    def _client_for(self, config: BackendConfig) -> Any:
        endpoint = config.api_endpoint or self.DEFAULT_ENDPOINT
        if self.REQUIRES_KEY and not config.api_key:
            raise BackendConfigurationError(
                f"{config.provider} API key not found in the configuration. "
                "Set PAGEWISE_API_KEY or choose a different provider."
            )
        key = (config.api_key, endpoint)
        client = self._clients.get(key)
        if client is None:
            try:
                from openai import OpenAI  # type: ignore
            except ImportError as exc:  # pragma: no cover - import guard
                raise BackendConfigurationError(
                    "OpenAI Python SDK not installed. Install with `pip install openai`."
                ) from exc
            client = OpenAI(api_key=config.api_key or "not-needed", base_url=endpoint)
            self._clients[key] = client
        return client

    def _invoke_model(
        self,
        client: Any,
        *,
        system_prompt: str,
        markup: str,
        model: str,
        config: BackendConfig,
    ) -> str:
        """Call the Chat Completions API and return the message text."""

        import openai  # type: ignore

        try:
            response = client.chat.completions.create(
                model=model,
                temperature=0.1,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": markup},
                ],
            )
        except openai.APITimeoutError as exc:
            raise BackendError(f"{config.provider} request timed out — {exc}") from exc
        except (
            openai.AuthenticationError,
            openai.PermissionDeniedError,
            openai.APIConnectionError,
        ) as exc:
            raise BackendConfigurationError(
                f"{config.provider} is not reachable with the current configuration — {exc}",
                status=getattr(exc, "status_code", None),
            ) from exc
        except openai.APIStatusError as exc:
            raise BackendError(
                f"{config.provider} API error — {exc.message}",
                status=exc.status_code,
            ) from exc
        except Exception as exc:  # pragma: no cover - network call
            raise BackendError(
                f"Translation service temporarily unavailable — {exc}"
            ) from exc

        self._log_debug(config, "backend.response.raw", self._safe_dump_response(response))
        return self._extract_content(response, config)

    def _extract_content(self, response: Any, config: BackendConfig) -> str:
        choices = getattr(response, "choices", None) or []
        for choice in choices:
            message = getattr(choice, "message", None)
            if message is None:
                continue
            message_content = getattr(message, "content", None)
            if isinstance(message_content, list):
                parts: List[str] = []
                for part in message_content:
                    text_value = getattr(part, "text", None)
                    if text_value is None and isinstance(part, dict):
                        text_value = part.get("text")
                    if text_value:
                        parts.append(str(text_value))
                if parts:
                    return "\n".join(parts)
            elif message_content:
                return str(message_content)
            fallback_text = getattr(choice, "text", None)
            if fallback_text:
                return str(fallback_text)

        raise BackendError(
            f"Invalid response from {config.provider}. Please check the backend configuration."
        )

    def _log_debug(self, config: BackendConfig, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not config.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        logger.debug("%s:\n%s", label, message)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        dump = getattr(response, "model_dump", None)
        if callable(dump):
            try:
                return dump()
            except Exception:  # pragma: no cover - diagnostics only
                pass
        return str(response)


class LocalBackend(OpenAIBackend):
    """Any OpenAI-compatible server running on the local machine."""

    DEFAULT_MODEL = "llama-2-70b"
    DEFAULT_ENDPOINT = "http://localhost:1234/v1"
    REQUIRES_KEY = False


# --- Registry --------------------------------------------------------------


@dataclass(frozen=True)
class BackendMetadata:
    """Describes a backend for help text and key validation."""

    id: str
    name: str
    models: Tuple[str, ...] = ()
    default_endpoint: Optional[str] = None
    key_hint: str = ""
    requires_key: bool = True


BackendFactory = Callable[[], TranslationBackend]

_SYNONYMS = {
    "openai": "openai",
    "open_ai": "openai",
    "open-ai": "openai",
    "gpt": "openai",
    "default": "openai",
    "local": "local",
    "ollama": "local",
    "lmstudio": "local",
    "echo": "echo",
    "noop": "echo",
    "mock": "echo",
}


def normalise_backend_name(name: Optional[str]) -> str:
    normalized = (name or "openai").strip().lower()
    return _SYNONYMS.get(normalized, normalized)


class BackendRegistry:
    """Explicit, enumerable mapping of backend keys to factories."""

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[BackendMetadata, BackendFactory]] = {}

    def register(self, metadata: BackendMetadata, factory: BackendFactory) -> None:
        if metadata.id in self._entries:
            logger.warning(
                "Backend with id %s is already registered. Overwriting.", metadata.id
            )
        self._entries[metadata.id] = (metadata, factory)
        logger.debug("Backend %s (%s) registered", metadata.name, metadata.id)

    def create(self, name: Optional[str]) -> TranslationBackend:
        _, factory = self._lookup(name)
        return factory()

    def metadata(self, name: Optional[str]) -> BackendMetadata:
        metadata, _ = self._lookup(name)
        return metadata

    def all_metadata(self) -> Dict[str, BackendMetadata]:
        return {key: metadata for key, (metadata, _) in self._entries.items()}

    @property
    def ids(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalise_backend_name(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, name: Optional[str]) -> Tuple[BackendMetadata, BackendFactory]:
        key = normalise_backend_name(name)
        try:
            return self._entries[key]
        except KeyError:
            raise UnknownBackendError(f"Unknown translation backend '{name}'.") from None


def register_default_backends(registry: Optional[BackendRegistry] = None) -> BackendRegistry:
    """Populate ``registry`` with every backend shipped with Pagewise."""

    registry = registry if registry is not None else BackendRegistry()
    registry.register(
        BackendMetadata(
            id="openai",
            name="OpenAI",
            models=("gpt-4o-mini", "gpt-4o", "gpt-4-turbo"),
            default_endpoint=OpenAIBackend.DEFAULT_ENDPOINT,
            key_hint="Create a key at https://platform.openai.com/api-keys",
        ),
        OpenAIBackend,
    )
    registry.register(
        BackendMetadata(
            id="local",
            name="Local OpenAI-compatible server",
            models=(LocalBackend.DEFAULT_MODEL,),
            default_endpoint=LocalBackend.DEFAULT_ENDPOINT,
            key_hint="Only needed if your local server enforces one.",
            requires_key=False,
        ),
        LocalBackend,
    )
    registry.register(
        BackendMetadata(
            id="echo",
            name="Echo (returns the input)",
            requires_key=False,
        ),
        EchoBackend,
    )
    return registry


class CachingBackend(TranslationBackend):
    """Serves repeated payloads from an injected :class:`TranslationCache`."""

    def __init__(self, backend: TranslationBackend, cache: TranslationCache) -> None:
        self.backend = backend
        self.cache = cache

    def translate(self, markup: str, config: BackendConfig) -> str:
        cached = self.cache.get(markup)
        if cached is not None:
            logger.debug("Found translation in cache")
            return cached
        translation = self.backend.translate(markup, config)
        self.cache.set(markup, translation)
        return translation


def build_backend(
    name: Optional[str],
    *,
    registry: Optional[BackendRegistry] = None,
    cache: Optional[TranslationCache] = None,
) -> TranslationBackend:
    """Factory to create backends by name, optionally behind a cache."""

    registry = registry if registry is not None else register_default_backends()
    backend = registry.create(name)
    if cache is not None:
        return CachingBackend(backend, cache)
    return backend
