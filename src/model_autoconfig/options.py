"""Immutable per-call model options and their builders.

An options record carries the tunable parameters of a single model call.
Every field is optional; ``None`` means "let the provider pick its default".
Records are frozen once built, so a default record produced at startup can be
shared by many concurrent callers.  A caller that needs different values
derives a new record instead of touching the shared one:

    per_call = ChatOptions.from_options(defaults).temperature(0.2).build()
    # or
    per_call = merge_options(defaults, runtime_overrides)

No range validation happens here.  Valid ranges are provider specific and are
checked by the provider itself when the request is sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, Iterator, Mapping, Optional, Type, TypeVar

from loguru import logger  # type: ignore

# Accessors every options type answers, returning None when the concept does
# not apply to that provider or capability.
PORTABLE_ACCESSORS = (
    "model",
    "temperature",
    "top_p",
    "top_k",
    "max_tokens",
    "stop_sequences",
    "frequency_penalty",
    "presence_penalty",
    "dimensions",
)

O = TypeVar("O", bound="ModelOptions")


def option(wire: Optional[str] = None) -> Any:
    """Declare an optional options field, with its serialized name if it differs."""
    return field(default=None, metadata={"wire": wire} if wire else {})


class FrozenMap(Mapping):
    """Read-only mapping that pickles, deep-copies and hashes like a tuple."""

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def __reduce__(self):
        return (type(self), (self._data,))

    def __repr__(self) -> str:
        return f"FrozenMap({self._data!r})"


def _freeze(value: Any) -> Any:
    # Containers are copied so a record never aliases caller-owned state.
    if isinstance(value, Mapping):
        return FrozenMap({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _thaw(getattr(value, f.name)) for f in fields(value)}
    return value


@dataclass(frozen=True)
class ModelOptions:
    """Base class for provider options records."""

    # Portable accessor name -> field name, for providers that store a
    # portable concept under their own name (e.g. max_tokens).
    portable_aliases: ClassVar[Dict[str, str]] = {}

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails.
        if name in PORTABLE_ACCESSORS:
            return None
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    @classmethod
    def builder(cls) -> "OptionsBuilder":  # pragma: no cover
        raise NotImplementedError

    @classmethod
    def from_options(cls: Type[O], options: O) -> "OptionsBuilder[O]":
        """Return a new builder pre-populated with every field of ``options``."""
        builder = cls.builder()
        for f in fields(options):
            builder._set(f.name, getattr(options, f.name))
        return builder

    @classmethod
    def from_mapping(cls: Type[O], values: Mapping[str, Any]) -> "OptionsBuilder[O]":
        """Return a builder populated from a flat configuration block.

        Keys may be attribute names (``top_p``) or serialized names (``p``).
        """
        lookup: Dict[str, str] = {}
        for f in fields(cls):
            lookup[f.name] = f.name
            if f.metadata.get("wire"):
                lookup[f.metadata["wire"]] = f.name
        for accessor, name in cls.portable_aliases.items():
            lookup.setdefault(accessor, name)
        builder = cls.builder()
        for key, value in values.items():
            name = lookup.get(key)
            if name is None:
                builder._unknown(key, value)
            else:
                builder._set(name, value)
        return builder

    def copy(self: O) -> O:
        return type(self).from_options(self).build()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize set fields under their stable wire names."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.metadata.get("wire", f.name)] = _thaw(value)
        return out


class OptionsBuilder(Generic[O]):
    """Accumulates field values and snapshots them into a record on build()."""

    options_class: ClassVar[Type[ModelOptions]]

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "OptionsBuilder[O]":
        self._values[name] = value
        return self

    def _unknown(self, key: str, value: Any) -> None:
        logger.warning(
            f"Ignoring unknown option '{key}' for {self.options_class.__name__}."
        )

    def build(self) -> O:
        return self.options_class(  # type: ignore[return-value]
            **{name: _freeze(value) for name, value in self._values.items()}
        )


def merge_options(defaults: O, overrides: Optional[ModelOptions] = None) -> O:
    """Overlay the fields ``overrides`` sets onto ``defaults``.

    The result has the type of ``defaults``.  Overrides of another options type
    contribute through the portable accessors only.  Neither input changes.
    """
    builder = type(defaults).from_options(defaults)
    if overrides is None:
        return builder.build()

    own = {f.name for f in fields(defaults)}
    if isinstance(overrides, type(defaults)):
        pairs = [(name, name) for name in own]
    else:
        pairs = []
        for accessor in PORTABLE_ACCESSORS:
            target = defaults.portable_aliases.get(accessor, accessor)
            if target in own:
                pairs.append((accessor, target))

    for source, target in pairs:
        value = getattr(overrides, source, None)
        if value is not None:
            builder._set(target, value)
    return builder.build()
