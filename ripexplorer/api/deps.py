"""
Shared collaborators for request handlers.

One Services bundle is built in the application lifespan and stored on
app.state; handlers receive it through get_services.
"""

from dataclasses import dataclass, field

import httpx
from fastapi import Request

from ripexplorer.scrapers.alchemy import AlchemyClient
from ripexplorer.services.cache import MemoryCache
from ripexplorer.services.dedup import RequestCoalescer
from ripexplorer.services.trade_analyzer import TradeAnalyzer


@dataclass
class Services:
    """Process-wide collaborators."""

    http: httpx.AsyncClient
    cache: MemoryCache = field(default_factory=MemoryCache)
    analyzer: TradeAnalyzer = field(default_factory=TradeAnalyzer)
    coalescer: RequestCoalescer = field(default_factory=RequestCoalescer)
    alchemy: AlchemyClient | None = None


def get_services(request: Request) -> Services:
    """Dependency returning the application's Services."""
    services: Services = request.app.state.services
    return services
