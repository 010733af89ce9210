"""Configuration snapshot consumed by the assembly step.

Environment variables:
  AI_MODEL_CHAT=<provider id>        selects the chat provider (unset: any)
  AI_MODEL_EMBEDDING=<provider id>   selects the embedding provider (unset: any)

WatsonX.ai connection:
  WATSONX_AI_BASE_URL=https://us-south.ml.cloud.ibm.com/
  WATSONX_AI_STREAM_ENDPOINT=ml/v1/text/generation_stream?version=2023-05-29
  WATSONX_AI_TEXT_ENDPOINT=ml/v1/text/generation?version=2023-05-29
  WATSONX_AI_EMBEDDING_ENDPOINT=ml/v1/text/embeddings?version=2023-05-29
  WATSONX_AI_PROJECT_ID=...
  WATSONX_AI_IAM_TOKEN=...
  WATSONX_AI_KEYVAULT_URL=https://<kv>.vault.azure.net (token fallback)
  WATSONX_AI_SECRET_NAME=watsonx-ai-iam-token
  WATSONX_AI_TIMEOUT=60

Option defaults, one variable per field:
  WATSONX_AI_CHAT_OPTIONS_<FIELD>=...       e.g. WATSONX_AI_CHAT_OPTIONS_TEMPERATURE=0.2
  WATSONX_AI_EMBEDDING_OPTIONS_<FIELD>=...  e.g. WATSONX_AI_EMBEDDING_OPTIONS_MODEL=...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger  # type: ignore

from .errors import ModelConfigurationError
from .keyvault import fetch_secret
from .registry import Capability

load_dotenv()  # load from .env if present

DEFAULT_BASE_URL = "https://us-south.ml.cloud.ibm.com/"
DEFAULT_STREAM_ENDPOINT = "ml/v1/text/generation_stream?version=2023-05-29"
DEFAULT_TEXT_ENDPOINT = "ml/v1/text/generation?version=2023-05-29"
DEFAULT_EMBEDDING_ENDPOINT = "ml/v1/text/embeddings?version=2023-05-29"
DEFAULT_SECRET_NAME = "watsonx-ai-iam-token"

SELECTOR_ENV = {
    Capability.CHAT: "AI_MODEL_CHAT",
    Capability.EMBEDDING: "AI_MODEL_EMBEDDING",
}
OPTIONS_ENV_PREFIX = {
    Capability.CHAT: "WATSONX_AI_CHAT_OPTIONS_",
    Capability.EMBEDDING: "WATSONX_AI_EMBEDDING_OPTIONS_",
}


def _split_list(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


_OPTION_CASTERS: Dict[str, Callable[[str], Any]] = {
    "temperature": float,
    "top_p": float,
    "top_k": int,
    "max_tokens": int,
    "max_new_tokens": int,
    "min_new_tokens": int,
    "repetition_penalty": float,
    "random_seed": int,
    "num_generations": int,
    "dimensions": int,
    "stop_sequences": _split_list,
}


def _normalize_selector(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip().lower()


def _parse_timeout(raw: Any, source: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {source}={raw!r}; using 60s.")
        return 60.0


def _options_from_env(prefix: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    for env_name, raw in os.environ.items():
        if not env_name.startswith(prefix):
            continue
        key = env_name[len(prefix):].lower()
        caster = _OPTION_CASTERS.get(key)
        if caster is None:
            options[key] = raw
            continue
        try:
            options[key] = caster(raw)
        except ValueError:
            logger.warning(f"Invalid {env_name}={raw!r}; ignoring.")
    return options


@dataclass
class ConnectionSettings:
    """Connection descriptor for the WatsonX.ai backend."""

    base_url: Optional[str] = DEFAULT_BASE_URL
    stream_endpoint: Optional[str] = DEFAULT_STREAM_ENDPOINT
    text_endpoint: Optional[str] = DEFAULT_TEXT_ENDPOINT
    embedding_endpoint: Optional[str] = DEFAULT_EMBEDDING_ENDPOINT
    project_id: Optional[str] = None
    iam_token: Optional[str] = None
    timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "ConnectionSettings":
        iam_token = os.getenv("WATSONX_AI_IAM_TOKEN") or fetch_secret(
            os.getenv("WATSONX_AI_KEYVAULT_URL"),
            os.getenv("WATSONX_AI_SECRET_NAME", DEFAULT_SECRET_NAME),
        )
        timeout = _parse_timeout(os.getenv("WATSONX_AI_TIMEOUT", "60"), "WATSONX_AI_TIMEOUT")
        return cls(
            base_url=os.getenv("WATSONX_AI_BASE_URL", DEFAULT_BASE_URL),
            stream_endpoint=os.getenv("WATSONX_AI_STREAM_ENDPOINT", DEFAULT_STREAM_ENDPOINT),
            text_endpoint=os.getenv("WATSONX_AI_TEXT_ENDPOINT", DEFAULT_TEXT_ENDPOINT),
            embedding_endpoint=os.getenv(
                "WATSONX_AI_EMBEDDING_ENDPOINT", DEFAULT_EMBEDDING_ENDPOINT
            ),
            project_id=os.getenv("WATSONX_AI_PROJECT_ID"),
            iam_token=iam_token,
            timeout=timeout,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ConnectionSettings":
        known = {f.name for f in fields(cls)}
        for key in values:
            if key not in known:
                raise ModelConfigurationError(
                    f"Unknown connection setting '{key}'; expected one of: "
                    f"{', '.join(sorted(known))}."
                )
        values = dict(values)
        if "timeout" in values:
            values["timeout"] = _parse_timeout(values["timeout"], "connection.timeout")
        return cls(**values)


@dataclass
class CapabilitySettings:
    """Provider selector and option defaults for one capability."""

    selector: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.selector = _normalize_selector(self.selector)


@dataclass
class ModelSettings:
    connection: ConnectionSettings = field(default_factory=ConnectionSettings)
    chat: CapabilitySettings = field(default_factory=CapabilitySettings)
    embedding: CapabilitySettings = field(default_factory=CapabilitySettings)

    def capability(self, capability: Capability) -> CapabilitySettings:
        return self.chat if capability is Capability.CHAT else self.embedding

    @classmethod
    def from_env(cls) -> "ModelSettings":
        return cls(
            connection=ConnectionSettings.from_env(),
            chat=CapabilitySettings(
                selector=os.getenv(SELECTOR_ENV[Capability.CHAT]),
                options=_options_from_env(OPTIONS_ENV_PREFIX[Capability.CHAT]),
            ),
            embedding=CapabilitySettings(
                selector=os.getenv(SELECTOR_ENV[Capability.EMBEDDING]),
                options=_options_from_env(OPTIONS_ENV_PREFIX[Capability.EMBEDDING]),
            ),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ModelSettings":
        """Build settings from a nested dict such as a parsed YAML/JSON file.

        Expected shape::

            {"connection": {...}, "chat": {"selector": ..., "options": {...}},
             "embedding": {...}}
        """
        connection = ConnectionSettings.from_mapping(data.get("connection") or {})

        def _capability(block: Optional[Mapping[str, Any]]) -> CapabilitySettings:
            block = block or {}
            return CapabilitySettings(
                selector=block.get("selector"),
                options=dict(block.get("options") or {}),
            )

        return cls(
            connection=connection,
            chat=_capability(data.get("chat")),
            embedding=_capability(data.get("embedding")),
        )
