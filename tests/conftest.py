from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session, get_session_factory
from ripexplorer.main import app
from ripexplorer.models.db import Base


def owned_card(
    card_id: str | int | None,
    *,
    name: str = "Pikachu",
    set_id: str = "sv3pt5",
    set_name: str = "Pokemon 151",
    raw_price: float | str | None = 1.0,
    listing: dict[str, Any] | None = None,
    token_id: int | None = None,
    wrapper_id: str | int | None = None,
) -> dict[str, Any]:
    """Owned-card record in the shape the trade analyzer consumes."""
    record: dict[str, Any] = {
        "id": wrapper_id if wrapper_id is not None else token_id,
        "token_id": token_id,
        "card": {
            "name": name,
            "set_id": set_id,
            "card_number": "25",
            "rarity": "Common",
            "raw_price": raw_price,
        },
        "set": {"id": set_id, "name": set_name},
        "listing": listing,
    }
    if card_id is not None:
        record["card"]["id"] = card_id
    return record


@pytest.fixture
def make_card():
    """Factory for owned-card records."""
    return owned_card


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def bootstrap_html() -> str:
    """Profile page whose bootstrap data is a JavaScript literal."""
    return """<!doctype html>
<html><head><title>ash | rip.fun</title></head>
<body>
<script>
  {
    __app = { base: "" };
    const element = document.currentScript.parentElement;
    Promise.all([import("/app/start.js"), import("/app/app.js")]).then(([kit, app]) => {
      kit.start(app, element, {
        node_ids: [0, 4],
        data: [null,{type:"data",data:{profile:{id:42,username:"ash",bio:'Gotta catch em all',
          created_at:new Date(1700000000000),banner:void 0,
          digital_cards:[{id:1,card:{id:"c1",name:"Pikachu",raw_price:"2.50",clip_embedding:[0.1,0.2]},
            set:{id:"sv3pt5",name:"Pokemon 151"},listing:null},],
          digital_products:[]}},uses:{params:["username"]}}],
        form: null,
        error: null
      });
    });
  }
</script>
</body></html>"""


@pytest.fixture
async def services():
    """Services bundle with an unconfigured Alchemy client."""
    async with httpx.AsyncClient(follow_redirects=True) as http:
        yield Services(http=http)


@pytest.fixture
async def client(session_factory, services):
    """Provide an async test client with overridden dependencies."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_services] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
