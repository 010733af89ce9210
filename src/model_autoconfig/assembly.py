"""Conditional registration of provider components.

For every capability a provider offers, the same checks run in order and
independently of the other capabilities:

  1. the implementation class must be importable, otherwise the capability
     is skipped (an optional dependency is simply not installed);
  2. the registry must not already hold that capability, otherwise the
     earlier registration is kept;
  3. the capability's selector (``AI_MODEL_CHAT`` / ``AI_MODEL_EMBEDDING``)
     must be unset or name this provider.

When all pass, the provider client is taken from ``clients`` if the caller
supplied one, else built from the connection settings.  Default options are
built from the provider defaults overlaid with the configured option block,
and the pair is registered.  A missing connection field aborts assembly with
``MissingConfigurationError``.

Usage:
    registry = ModelRegistry()
    assemble(ModelSettings.from_env(), registry)
    chat = registry.get(Capability.CHAT).client

Extension:
  Add a ProviderAutoConfiguration entry to AUTO_CONFIGURATIONS.  Entries are
  tried in order; the first eligible provider wins each capability.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger  # type: ignore

from .config import ModelSettings
from .errors import MissingConfigurationError
from .options import ModelOptions, merge_options
from .registry import WATSONX_AI, Capability, ModelRegistry, Registration

if TYPE_CHECKING:
    import httpx


def _import_class(path: str) -> Optional[type]:
    """Import ``"package.module:ClassName"``, or return None if unavailable."""
    module_path, _, class_name = path.partition(":")
    try:
        module = importlib.import_module(module_path)
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        logger.debug(f"Implementation '{path}' unavailable: {e}")
        return None


@dataclass(frozen=True)
class ProviderAutoConfiguration:
    """Declares one provider's client and the model class per capability.

    Classes are referenced by import path so that a provider whose optional
    dependencies are missing can be skipped without failing startup.  Model
    classes are constructed as ``model_class(api, default_options)`` and expose
    ``options_class`` and ``provider_defaults``.
    """

    identifier: str
    api_class: str
    capabilities: Mapping[Capability, str]

    def is_available(self) -> bool:
        return _import_class(self.api_class) is not None

    def selected_for(self, capability: Capability, settings: ModelSettings) -> bool:
        selector = settings.capability(capability).selector
        return selector is None or selector == self.identifier

    def default_options(
        self, model_class: type, configured: Mapping[str, Any]
    ) -> ModelOptions:
        options_class = model_class.options_class
        defaults = options_class.from_mapping(model_class.provider_defaults).build()
        overrides = options_class.from_mapping(configured).build()
        return merge_options(defaults, overrides)

    def apply(
        self,
        settings: ModelSettings,
        registry: ModelRegistry,
        http_client: Optional[httpx.Client] = None,
        client: Any = None,
    ) -> List[Registration]:
        """Register this provider for every open capability it is eligible for.

        ``client`` is a prebuilt provider client; when given it is shared by the
        models and the connection settings are not consulted.
        """
        api_class = _import_class(self.api_class)
        if api_class is None:
            return []

        api = client
        registered: List[Registration] = []
        for capability, model_path in self.capabilities.items():
            model_class = _import_class(model_path)
            if model_class is None:
                continue
            if registry.is_registered(capability):
                logger.debug(
                    f"Skipping {self.identifier} {capability.value}: already registered."
                )
                continue
            if not self.selected_for(capability, settings):
                logger.debug(
                    f"Skipping {self.identifier} {capability.value}: "
                    f"selector is '{settings.capability(capability).selector}'."
                )
                continue

            if api is None:
                try:
                    api = api_class(settings.connection, http_client=http_client)
                except MissingConfigurationError as e:
                    logger.error(f"Cannot configure {self.identifier}: {e}")
                    raise
            options = self.default_options(
                model_class, settings.capability(capability).options
            )
            client = model_class(api, options)
            registration = registry.register(
                capability, client, options, provider=self.identifier
            )
            registered.append(registration)
            logger.info(
                f"Registered provider='{self.identifier}' for {capability.value} "
                f"model='{options.model}'"
            )
        return registered


AUTO_CONFIGURATIONS: Dict[str, ProviderAutoConfiguration] = {
    WATSONX_AI: ProviderAutoConfiguration(
        identifier=WATSONX_AI,
        api_class="model_autoconfig.watsonx:WatsonxAiApi",
        capabilities={
            Capability.CHAT: "model_autoconfig.watsonx:WatsonxAiChatModel",
            Capability.EMBEDDING: "model_autoconfig.watsonx:WatsonxAiEmbeddingModel",
        },
    ),
}


def get_available_providers() -> List[str]:
    """Identifiers of configured providers whose client class can be imported."""
    return [name for name, auto in AUTO_CONFIGURATIONS.items() if auto.is_available()]


def assemble(
    settings: Optional[ModelSettings],
    registry: ModelRegistry,
    providers: Optional[Iterable[ProviderAutoConfiguration]] = None,
    http_client: Optional[httpx.Client] = None,
    clients: Optional[Mapping[str, Any]] = None,
) -> List[Registration]:
    """Register the default implementation for every capability still open.

    ``clients`` maps provider identifiers to prebuilt clients to reuse instead
    of building one from ``settings.connection``.
    Re-running against a registry that is already filled changes nothing.
    Returns the registrations added by this call.
    """
    if settings is None:
        settings = ModelSettings.from_env()
    if providers is None:
        providers = list(AUTO_CONFIGURATIONS.values())
    else:
        providers = list(providers)
    if clients is None:
        clients = {}

    registered: List[Registration] = []
    for auto in providers:
        registered.extend(
            auto.apply(
                settings,
                registry,
                http_client=http_client,
                client=clients.get(auto.identifier),
            )
        )

    known = {auto.identifier for auto in providers}
    for capability in Capability:
        selector = settings.capability(capability).selector
        if selector and selector not in known and not registry.is_registered(capability):
            logger.warning(
                f"{capability.value} selector '{selector}' matches no known provider; "
                f"available: {', '.join(sorted(known)) or 'none'}."
            )
    return registered
