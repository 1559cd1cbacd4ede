"""
Metadata provider adapter interface
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import httpx

from cooplyst.core.config import settings
from cooplyst.core.utils import is_set
from cooplyst.schemas.provider_schemas import ProviderConfig, ProviderTestResponse

# Normalized provider record: scalar fields, screenshots, videos and images
ProviderRecord = Dict[str, Any]


def uniq_strings(values: Iterable[Any]) -> List[str]:
    """Trimmed, non-empty strings in first-seen order without duplicates"""
    out: List[str] = []
    seen = set()
    for value in values:
        if not is_set(value):
            continue
        normalized = str(value).strip()
        if normalized in seen:
            continue
        seen.add(normalized)
        out.append(normalized)
    return out


class ProviderAdapter(ABC):
    """Adapter over one external game database.

    Every adapter returns records already normalized to the shape the
    merge step expects, so the merge never needs to know which provider
    produced a record.
    """

    name: str = ""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        self.transport = transport
        self.timeout = timeout or settings.PROVIDER_TIMEOUT

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @abstractmethod
    async def search(self, query: str, config: ProviderConfig) -> List[ProviderRecord]:
        """Basic game cards matching a title"""

    @abstractmethod
    async def details(self, api_id: str, config: ProviderConfig) -> ProviderRecord:
        """Rich record with images, screenshots and videos for one game"""

    @abstractmethod
    async def test(self, config: ProviderConfig) -> ProviderTestResponse:
        """Check that the configured credentials work"""
