"""Provider component assembly and immutable model options.

Exports:
  assemble(settings, registry) -> registrations added for open capabilities
  ModelRegistry / Capability    -> one active (client, options) per capability
  ModelSettings.from_env()      -> configuration snapshot
  *Options.builder()            -> immutable per-call options records

Environment overrides:
  AI_MODEL_CHAT=watsonx-ai
  AI_MODEL_EMBEDDING=watsonx-ai
  (unset: the first available provider wins)

WatsonX.ai:
  WATSONX_AI_BASE_URL, WATSONX_AI_PROJECT_ID, WATSONX_AI_IAM_TOKEN
  WATSONX_AI_KEYVAULT_URL / WATSONX_AI_SECRET_NAME (token from Azure Key Vault)
  WATSONX_AI_CHAT_OPTIONS_<FIELD>, WATSONX_AI_EMBEDDING_OPTIONS_<FIELD>

Extension:
  Add new providers by adding a ProviderAutoConfiguration entry to
  AUTO_CONFIGURATIONS, with model classes exposing options_class and
  provider_defaults.
"""

from .assembly import (
    assemble,
    get_available_providers,
    ProviderAutoConfiguration,
    AUTO_CONFIGURATIONS,
)
from .cohere import (
    CohereChatOptions,
    LogitBias,
    ReturnLikelihoods,
    Truncate,
)
from .config import CapabilitySettings, ConnectionSettings, ModelSettings
from .errors import MissingConfigurationError, ModelConfigurationError
from .options import ModelOptions, OptionsBuilder, merge_options
from .registry import WATSONX_AI, Capability, ModelRegistry, Registration

__all__ = [
    "assemble",
    "get_available_providers",
    "ProviderAutoConfiguration",
    "AUTO_CONFIGURATIONS",
    "CohereChatOptions",
    "LogitBias",
    "ReturnLikelihoods",
    "Truncate",
    "CapabilitySettings",
    "ConnectionSettings",
    "ModelSettings",
    "MissingConfigurationError",
    "ModelConfigurationError",
    "ModelOptions",
    "OptionsBuilder",
    "merge_options",
    "WATSONX_AI",
    "Capability",
    "ModelRegistry",
    "Registration",
]
