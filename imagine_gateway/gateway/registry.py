"""Provider registry: catalogue of providers/models and credential resolution.

One registry is built per process (or per test) and handed to the gateway;
there is no module-level registry.

Resolution order is deterministic: presets first, then user-added providers
in insertion order. The first provider exposing a model id wins.

Usage:
    registry = ProviderRegistry.from_settings(settings)
    provider, model = registry.resolve_model("seedream-4.0")
    key = registry.resolve_credential(provider.id, user_key)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from imagine_gateway.gateway.errors import ModelNotFound, ProviderConflict
from imagine_gateway.gateway.presets import PRESET_PROVIDERS, PROVIDER_ENV_KEYS
from imagine_gateway.gateway.types import Model, ModelType, Provider, utcnow

if TYPE_CHECKING:
    from imagine_gateway.core.config import Settings

logger = logging.getLogger(__name__)


class ApiKeyStore(Protocol):
    """User settings store holding per-provider keys (simple get/set)."""

    def get(self, provider_id: str) -> str | None: ...

    def set(self, provider_id: str, api_key: str) -> None: ...

    def items(self) -> Iterable[tuple[str, str]]: ...


class InMemoryKeyStore:
    """Process-local ApiKeyStore."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._keys: dict[str, str] = dict(initial or {})

    def get(self, provider_id: str) -> str | None:
        return self._keys.get(provider_id)

    def set(self, provider_id: str, api_key: str) -> None:
        if api_key:
            self._keys[provider_id] = api_key
        else:
            self._keys.pop(provider_id, None)

    def items(self) -> Iterable[tuple[str, str]]:
        return list(self._keys.items())


class ProviderRegistry:
    """Preset + user-added providers, and key precedence for each.

    Presets are read-only. User-added providers live in an insertion-ordered
    dict; re-adding an existing custom id overwrites it in place (keeps its
    resolution slot) unless ``reject_duplicates`` is set.
    """

    def __init__(
        self,
        presets: Iterable[Provider] = PRESET_PROVIDERS,
        default_keys: dict[str, str] | None = None,
        key_store: ApiKeyStore | None = None,
        reject_duplicates: bool = False,
    ):
        self._presets: tuple[Provider, ...] = tuple(presets)
        ids = [p.id for p in self._presets]
        if len(ids) != len(set(ids)):
            raise ValueError("preset provider ids must be unique")

        self._preset_ids = frozenset(ids)
        self._custom: dict[str, Provider] = {}
        self._default_keys = {k: v for k, v in (default_keys or {}).items() if v}
        self.key_store: ApiKeyStore = key_store if key_store is not None else InMemoryKeyStore()
        self.reject_duplicates = reject_duplicates

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ProviderRegistry:
        """Build a registry whose environment defaults come from Settings."""
        default_keys = {
            provider_id: getattr(settings, attr, "") for provider_id, attr in PROVIDER_ENV_KEYS.items()
        }
        return cls(default_keys=default_keys, **kwargs)

    # -- lookup ---------------------------------------------------------------

    def all_providers(self) -> list[Provider]:
        """Presets first, then user-added in insertion order."""
        return [*self._presets, *self._custom.values()]

    def custom_providers(self) -> list[Provider]:
        return list(self._custom.values())

    def is_preset(self, provider_id: str) -> bool:
        return provider_id in self._preset_ids

    def get_provider(self, provider_id: str) -> Provider | None:
        for provider in self.all_providers():
            if provider.id == provider_id:
                return provider
        return None

    def find_model(self, model_id: str) -> tuple[Provider, Model] | None:
        for provider in self.all_providers():
            model = provider.find_model(model_id)
            if model is not None:
                return provider, model
        return None

    def resolve_model(self, model_id: str) -> tuple[Provider, Model]:
        """Return the first ``(provider, model)`` exposing ``model_id``.

        Raises:
            ModelNotFound: no provider exposes the id.
        """
        found = self.find_model(model_id)
        if found is None:
            raise ModelNotFound(model_id)
        return found

    def all_models_of_type(self, model_type: ModelType | str) -> list[tuple[Provider, Model]]:
        model_type = ModelType(model_type)
        return [
            (provider, model)
            for provider in self.all_providers()
            for model in provider.models
            if model.type == model_type
        ]

    # -- credentials ----------------------------------------------------------

    def resolve_credential(self, provider_id: str, user_key: str | None = None) -> str:
        """Explicit key > stored user key > environment default > ""."""
        if user_key:
            return user_key
        stored = self.key_store.get(provider_id)
        if stored:
            return stored
        return self._default_keys.get(provider_id, "")

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        self.key_store.set(provider_id, api_key)

    def api_key_status(self) -> dict[str, dict[str, bool]]:
        """Which providers have a user key and/or an environment key."""
        return {
            p.id: {
                "user_key": bool(self.key_store.get(p.id)),
                "env_key": bool(self._default_keys.get(p.id)),
            }
            for p in self.all_providers()
        }

    # -- admin ----------------------------------------------------------------

    def add_provider(self, definition: Provider | dict[str, Any]) -> Provider:
        """Register a user-added provider.

        Raises:
            ProviderConflict: id collides with a preset, or with a custom
                provider while ``reject_duplicates`` is set.
            ValueError: malformed definition.
        """
        provider = definition if isinstance(definition, Provider) else Provider.from_dict(definition)

        if self.is_preset(provider.id):
            raise ProviderConflict(f"Provider {provider.id} is a preset and cannot be replaced")
        if provider.id in self._custom:
            if self.reject_duplicates:
                raise ProviderConflict(f"Provider {provider.id} already exists")
            logger.info("Overwriting custom provider %s", provider.id)

        provider.custom = True
        if provider.created_at is None:
            provider.created_at = utcnow()
        self._custom[provider.id] = provider

        logger.info("Registered custom provider %s with %d models", provider.id, len(provider.models))
        return provider

    def remove_provider(self, provider_id: str) -> bool:
        """Remove a user-added provider. Returns False if it was not registered."""
        if self.is_preset(provider_id):
            raise ProviderConflict(f"Provider {provider_id} is a preset and cannot be removed")
        removed = self._custom.pop(provider_id, None)
        if removed is not None:
            logger.info("Removed custom provider %s", provider_id)
        return removed is not None

    def export_config(self) -> dict[str, Any]:
        """Serialize user-added providers and user keys for backup."""
        return {
            "providers": [p.to_dict() for p in self._custom.values()],
            "apiKeys": dict(self.key_store.items()),
            "exportedAt": utcnow().isoformat(),
        }

    def import_config(self, config: dict[str, Any]) -> bool:
        """Restore an ``export_config`` payload. Returns False on bad input."""
        try:
            providers = [Provider.from_dict(p) for p in config.get("providers") or []]
            api_keys = dict(config.get("apiKeys") or {})
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Failed to import provider config: %s", e)
            return False

        conflicts = [
            p.id for p in providers if self.is_preset(p.id) or (self.reject_duplicates and p.id in self._custom)
        ]
        if conflicts:
            logger.warning("Import rejected, conflicting provider ids: %s", ", ".join(conflicts))
            return False

        for provider in providers:
            self.add_provider(provider)
        for provider_id, api_key in api_keys.items():
            self.key_store.set(provider_id, str(api_key))

        logger.info("Imported %d providers and %d keys", len(providers), len(api_keys))
        return True
