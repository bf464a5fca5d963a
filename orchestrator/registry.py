"""Read-only lookup over the capability providers loaded at startup."""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from orchestrator.models import CapabilityProvider


class CapabilityRegistry:
    """Holds provider/tool descriptors. Built once, never mutated."""

    def __init__(self, providers: Mapping[str, CapabilityProvider]):
        self._providers: Dict[str, CapabilityProvider] = dict(providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def list_providers(self) -> Mapping[str, CapabilityProvider]:
        return MappingProxyType(self._providers)

    def filter_by_capability(self, tag: str) -> List[CapabilityProvider]:
        return [p for p in self._providers.values() if tag in p.capabilities]

    def get_provider(self, provider_id: str) -> Optional[CapabilityProvider]:
        return self._providers.get(provider_id)

    def has_tool(self, provider_id: str, tool: str) -> bool:
        provider = self._providers.get(provider_id)
        return provider is not None and tool in provider.tools

    def capabilities(self) -> List[str]:
        """All capability tags, first-seen order, without duplicates."""
        seen: Dict[str, None] = {}
        for provider in self._providers.values():
            for tag in provider.capabilities:
                seen.setdefault(tag, None)
        return list(seen)
