"""IBM WatsonX.ai chat and embedding backend.

``WatsonxAiApi`` is the connection-level client shared by the chat and the
embedding model.  Each model holds one default options record built at
startup; per-call options are merged over it into a fresh record, so the
shared default is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx
from loguru import logger  # type: ignore

from .config import ConnectionSettings
from .errors import MissingConfigurationError
from .options import ModelOptions, OptionsBuilder, merge_options, option
from .registry import WATSONX_AI

DEFAULT_CHAT_OPTIONS: Dict[str, Any] = {
    "model": "google/flan-ul2",
    "temperature": 0.7,
    "top_p": 1.0,
    "top_k": 50,
    "decoding_method": "greedy",
    "max_new_tokens": 20,
    "min_new_tokens": 0,
    "stop_sequences": [],
    "repetition_penalty": 1.0,
}
DEFAULT_EMBEDDING_OPTIONS: Dict[str, Any] = {
    "model": "ibm/slate-30m-english-rtrvr",
}


@dataclass(frozen=True)
class WatsonxAiChatOptions(ModelOptions):
    model: Optional[str] = option()
    temperature: Optional[float] = option()
    top_p: Optional[float] = option()
    top_k: Optional[int] = option()
    decoding_method: Optional[str] = option()
    max_new_tokens: Optional[int] = option()
    min_new_tokens: Optional[int] = option()
    stop_sequences: Optional[Tuple[str, ...]] = option()
    repetition_penalty: Optional[float] = option()
    random_seed: Optional[int] = option()
    # Provider parameters without a dedicated field; sent as-is.
    additional: Optional[Mapping[str, Any]] = option()

    portable_aliases = {"max_tokens": "max_new_tokens"}

    @property
    def max_tokens(self) -> Optional[int]:
        return self.max_new_tokens

    @classmethod
    def builder(cls) -> "WatsonxAiChatOptionsBuilder":
        return WatsonxAiChatOptionsBuilder()

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update(out.pop("additional", {}))
        return out


class WatsonxAiChatOptionsBuilder(OptionsBuilder[WatsonxAiChatOptions]):
    options_class = WatsonxAiChatOptions

    def model(self, model: Optional[str]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("model", model)

    def temperature(self, temperature: Optional[float]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("temperature", temperature)

    def top_p(self, top_p: Optional[float]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("top_p", top_p)

    def top_k(self, top_k: Optional[int]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("top_k", top_k)

    def decoding_method(self, decoding_method: Optional[str]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("decoding_method", decoding_method)

    def max_new_tokens(self, max_new_tokens: Optional[int]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("max_new_tokens", max_new_tokens)

    def min_new_tokens(self, min_new_tokens: Optional[int]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("min_new_tokens", min_new_tokens)

    def stop_sequences(
        self, stop_sequences: Optional[Sequence[str]]
    ) -> "WatsonxAiChatOptionsBuilder":
        return self._set("stop_sequences", stop_sequences)

    def repetition_penalty(
        self, repetition_penalty: Optional[float]
    ) -> "WatsonxAiChatOptionsBuilder":
        return self._set("repetition_penalty", repetition_penalty)

    def random_seed(self, random_seed: Optional[int]) -> "WatsonxAiChatOptionsBuilder":
        return self._set("random_seed", random_seed)

    def additional_properties(
        self, properties: Optional[Mapping[str, Any]]
    ) -> "WatsonxAiChatOptionsBuilder":
        return self._set("additional", properties)

    def additional_property(self, key: str, value: Any) -> "WatsonxAiChatOptionsBuilder":
        additional = dict(self._values.get("additional") or {})
        additional[key] = value
        return self._set("additional", additional)

    def _unknown(self, key: str, value: Any) -> None:
        self.additional_property(key, value)


@dataclass(frozen=True)
class WatsonxAiEmbeddingOptions(ModelOptions):
    model: Optional[str] = option()

    @classmethod
    def builder(cls) -> "WatsonxAiEmbeddingOptionsBuilder":
        return WatsonxAiEmbeddingOptionsBuilder()


class WatsonxAiEmbeddingOptionsBuilder(OptionsBuilder[WatsonxAiEmbeddingOptions]):
    options_class = WatsonxAiEmbeddingOptions

    def model(self, model: Optional[str]) -> "WatsonxAiEmbeddingOptionsBuilder":
        return self._set("model", model)


class WatsonxAiApi:
    """Thin HTTP client for the WatsonX.ai text generation and embedding endpoints."""

    REQUIRED_FIELDS = (
        "base_url",
        "text_endpoint",
        "embedding_endpoint",
        "project_id",
        "iam_token",
    )

    def __init__(
        self,
        connection: ConnectionSettings,
        http_client: Optional[httpx.Client] = None,
    ):
        for name in self.REQUIRED_FIELDS:
            if not getattr(connection, name):
                raise MissingConfigurationError(name, provider=WATSONX_AI)
        self.connection = connection
        self.project_id = connection.project_id
        # Endpoints are appended to the base path, never resolved against it.
        base_url = connection.base_url
        if not base_url.endswith("/"):
            base_url += "/"
        self._base_url = httpx.URL(base_url)
        self._client = http_client or httpx.Client(timeout=connection.timeout)
        self._headers = {
            "Authorization": f"Bearer {connection.iam_token}",
            "Accept": "application/json",
        }

    def generate(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._post(self.connection.text_endpoint, request)

    def embeddings(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._post(self.connection.embedding_endpoint, request)

    def close(self) -> None:
        self._client.close()

    def _post(self, endpoint: str, request: Dict[str, Any]) -> Dict[str, Any]:
        url = self._base_url.join(endpoint.lstrip("/"))
        payload = {**request, "project_id": self.project_id}
        try:
            resp = self._client.post(url, json=payload, headers=self._headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            logger.error(f"WatsonX.ai request to '{endpoint}' failed: {e}")
            raise


class WatsonxAiChatModel:
    options_class = WatsonxAiChatOptions
    provider_defaults = DEFAULT_CHAT_OPTIONS

    def __init__(self, api: WatsonxAiApi, default_options: WatsonxAiChatOptions):
        self.api = api
        self._default_options = default_options

    @property
    def default_options(self) -> WatsonxAiChatOptions:
        return self._default_options

    def resolve_options(self, options: Optional[ModelOptions] = None) -> WatsonxAiChatOptions:
        """Per-call options: ``options`` merged over the defaults into a new record."""
        return merge_options(self._default_options, options)

    def call(self, prompt: str, options: Optional[ModelOptions] = None) -> str:
        parameters = self.resolve_options(options).to_dict()
        model = parameters.pop("model", None)
        if not model:
            raise ValueError("The model parameter is mandatory for WatsonX.ai generation.")
        response = self.api.generate(
            {"input": prompt, "model_id": model, "parameters": parameters}
        )
        results = response.get("results")
        if not isinstance(results, list) or not results:
            raise ValueError("Unexpected WatsonX.ai generation response shape")
        return results[0].get("generated_text", "")


class WatsonxAiEmbeddingModel:
    options_class = WatsonxAiEmbeddingOptions
    provider_defaults = DEFAULT_EMBEDDING_OPTIONS

    def __init__(self, api: WatsonxAiApi, default_options: WatsonxAiEmbeddingOptions):
        self.api = api
        self._default_options = default_options

    @property
    def default_options(self) -> WatsonxAiEmbeddingOptions:
        return self._default_options

    def embed(
        self, texts: List[str], options: Optional[ModelOptions] = None
    ) -> List[List[float]]:
        if not texts:
            return []
        model = merge_options(self._default_options, options).model
        response = self.api.embeddings({"inputs": list(texts), "model_id": model})
        results = response.get("results")
        if not isinstance(results, list):
            raise ValueError("Unexpected WatsonX.ai embedding response shape")
        return [item.get("embedding") for item in results]
