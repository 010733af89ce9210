"""Options for the Cohere command models served through Amazon Bedrock.

Serialized names follow the Bedrock Cohere request body (``p`` and ``k`` for
nucleus and top-k sampling).  ``model``, ``frequency_penalty`` and
``presence_penalty`` are not part of this API and always read as ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .options import ModelOptions, OptionsBuilder, option


class ReturnLikelihoods(str, Enum):
    """How token likelihoods are returned with the response."""

    GENERATION = "GENERATION"
    ALL = "ALL"
    NONE = "NONE"


class Truncate(str, Enum):
    """How inputs longer than the maximum token length are handled."""

    NONE = "NONE"
    START = "START"
    END = "END"


@dataclass(frozen=True)
class LogitBias:
    token: str
    bias: float


@dataclass(frozen=True)
class CohereChatOptions(ModelOptions):
    temperature: Optional[float] = option()
    top_p: Optional[float] = option("p")
    top_k: Optional[int] = option("k")
    max_tokens: Optional[int] = option()
    # Up to four sequences; the returned text excludes the stop sequence.
    stop_sequences: Optional[Tuple[str, ...]] = option()
    return_likelihoods: Optional[ReturnLikelihoods] = option()
    num_generations: Optional[int] = option()
    logit_bias: Optional[LogitBias] = option()
    truncate: Optional[Truncate] = option()

    @classmethod
    def builder(cls) -> "CohereChatOptionsBuilder":
        return CohereChatOptionsBuilder()


class CohereChatOptionsBuilder(OptionsBuilder[CohereChatOptions]):
    options_class = CohereChatOptions

    def temperature(self, temperature: Optional[float]) -> "CohereChatOptionsBuilder":
        return self._set("temperature", temperature)

    def top_p(self, top_p: Optional[float]) -> "CohereChatOptionsBuilder":
        return self._set("top_p", top_p)

    def top_k(self, top_k: Optional[int]) -> "CohereChatOptionsBuilder":
        return self._set("top_k", top_k)

    def max_tokens(self, max_tokens: Optional[int]) -> "CohereChatOptionsBuilder":
        return self._set("max_tokens", max_tokens)

    def stop_sequences(
        self, stop_sequences: Optional[Sequence[str]]
    ) -> "CohereChatOptionsBuilder":
        return self._set("stop_sequences", stop_sequences)

    def return_likelihoods(
        self, return_likelihoods: Optional[ReturnLikelihoods]
    ) -> "CohereChatOptionsBuilder":
        return self._set("return_likelihoods", return_likelihoods)

    def num_generations(self, num_generations: Optional[int]) -> "CohereChatOptionsBuilder":
        return self._set("num_generations", num_generations)

    def logit_bias(self, logit_bias: Optional[LogitBias]) -> "CohereChatOptionsBuilder":
        return self._set("logit_bias", logit_bias)

    def truncate(self, truncate: Optional[Truncate]) -> "CohereChatOptionsBuilder":
        return self._set("truncate", truncate)
