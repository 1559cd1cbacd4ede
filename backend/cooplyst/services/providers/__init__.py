# Metadata provider adapters
from typing import Dict, Optional, Type

import httpx

from .base import ProviderAdapter, ProviderRecord, uniq_strings
from .rawg import RawgAdapter
from .igdb import IgdbAdapter

ADAPTERS: Dict[str, Type[ProviderAdapter]] = {
    RawgAdapter.name: RawgAdapter,
    IgdbAdapter.name: IgdbAdapter,
}


def get_adapter(provider_type: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional[ProviderAdapter]:
    """Adapter instance for a provider type, or None when the type is unknown"""
    adapter_cls = ADAPTERS.get(provider_type)
    if adapter_cls is None:
        return None
    return adapter_cls(transport=transport)


__all__ = ["ADAPTERS", "ProviderAdapter", "ProviderRecord", "RawgAdapter", "IgdbAdapter", "get_adapter", "uniq_strings"]
