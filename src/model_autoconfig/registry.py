"""Process-wide registry of the active implementation per capability."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger  # type: ignore

from .options import ModelOptions


# Provider identifiers accepted by the AI_MODEL_* selectors.
WATSONX_AI = "watsonx-ai"


class Capability(str, Enum):
    CHAT = "chat"
    EMBEDDING = "embedding"


@dataclass(frozen=True)
class Registration:
    """A capability bound to one provider's client and default options."""

    capability: Capability
    provider: str
    client: Any
    options: ModelOptions


class ModelRegistry:
    """Holds at most one registration per capability.

    The first registration for a capability wins; later attempts are no-ops.
    Filled once at startup and only read afterwards.
    """

    def __init__(self) -> None:
        self._registrations: Dict[Capability, Registration] = {}

    def is_registered(self, capability: Capability) -> bool:
        return capability in self._registrations

    def register(
        self,
        capability: Capability,
        client: Any,
        options: ModelOptions,
        provider: str,
    ) -> Registration:
        existing = self._registrations.get(capability)
        if existing is not None:
            logger.debug(
                f"{capability.value} already served by '{existing.provider}'; "
                f"not registering '{provider}'."
            )
            return existing
        registration = Registration(
            capability=capability, provider=provider, client=client, options=options
        )
        self._registrations[capability] = registration
        return registration

    def get(self, capability: Capability) -> Optional[Registration]:
        return self._registrations.get(capability)

    def registrations(self) -> List[Registration]:
        return list(self._registrations.values())

    def clear(self, close_clients: bool = True) -> None:
        """Drop every registration so the registry can be assembled again.

        Each distinct provider client (the ``api`` the registered models share)
        is closed once.  Pass ``close_clients=False`` to keep clients the
        caller owns, e.g. ones handed to ``assemble(clients=...)``.
        """
        if close_clients:
            closed = set()
            for registration in self._registrations.values():
                api = getattr(registration.client, "api", None)
                close = getattr(api, "close", None)
                if close is None or id(api) in closed:
                    continue
                closed.add(id(api))
                close()
                logger.debug(f"Closed {registration.provider} client.")
        self._registrations.clear()
