"""Provider registry: maps provider names to LLM connection settings."""

from __future__ import annotations

import structlog

from agentshell.config import AgentShellConfig, ProviderConfig
from agentshell.exceptions import ProviderError

logger = structlog.get_logger()


class ProviderRegistry:
    """Resolves a provider name (or the default) to a ProviderConfig."""

    def __init__(
        self,
        providers: dict[str, ProviderConfig] | None = None,
        default: str | None = None,
    ) -> None:
        self._providers: dict[str, ProviderConfig] = dict(providers or {})
        self._default = default

    @classmethod
    def from_config(cls, config: AgentShellConfig) -> ProviderRegistry:
        return cls(config.providers, default=config.default_provider)

    @property
    def default(self) -> str | None:
        return self._default

    def names(self) -> list[str]:
        return sorted(self._providers)

    def register(self, name: str, provider: ProviderConfig) -> None:
        self._providers[name] = provider

    def resolve(self, name: str | None = None) -> ProviderConfig:
        """Return the provider config, raising ProviderError if unusable."""
        resolved_name = name or self._default
        if not resolved_name:
            raise ProviderError(None, "No provider given and no default provider configured")

        provider = self._providers.get(resolved_name)
        if provider is None:
            logger.warning("provider_unresolved", provider=resolved_name, known=self.names())
            raise ProviderError(resolved_name, f"Unknown provider: {resolved_name}")
        if not provider.model.strip():
            raise ProviderError(resolved_name, f"Provider {resolved_name!r} has no model configured")
        return provider
