"""Tests for trade comparison API endpoints."""

import httpx
import respx
from httpx import AsyncClient

BASE = "https://www.rip.fun"


def api_card(token_id: int, card_id: str, price: float, set_id: str = "sv4") -> dict:
    return {
        "token_id": token_id,
        "card": {
            "id": card_id,
            "name": f"Card {card_id}",
            "raw_price": price,
            "set_id": set_id,
            "set": {"id": set_id, "name": set_id.upper()},
        },
    }


def mock_collections() -> None:
    respx.get(f"{BASE}/api/user/1/owned-cards").mock(
        return_value=httpx.Response(
            200,
            json={"cards": [api_card(10, "k1", 5.0), api_card(11, "k2", 1.0, "base1")]},
        )
    )
    respx.get(f"{BASE}/api/user/2/owned-cards").mock(
        return_value=httpx.Response(
            200,
            json={"cards": [api_card(20, "k2", 1.0, "base1"), api_card(21, "k3", 8.0)]},
        )
    )


class TestCompareTrades:
    """Tests for POST /trade-compare."""

    @respx.mock
    async def test_compare(self, client: AsyncClient) -> None:
        """Unique cards on each side become one-way trades."""
        mock_collections()

        response = await client.post("/trade-compare", json={"user_a": "1", "user_b": "2"})

        assert response.status_code == 200
        data = response.json()
        analysis = data["trade_analysis"]
        assert [m["card"]["id"] for m in analysis["user_a_can_give"]] == ["k1"]
        assert [m["card"]["id"] for m in analysis["user_a_can_receive"]] == ["k3"]
        assert analysis["perfect_trades"] == []
        assert analysis["mutual_missing"] == []
        assert analysis["summary"]["trade_balance"] == "even"
        assert analysis["user_a_can_give"][0]["trade_type"] == "give"
        assert data["user_a"] == {"username": "1", "id": 1, "unique_cards": 2, "total_cards": 2}
        assert [s["id"] for s in data["available_sets"]] == ["base1", "sv4"]
        assert "1 can receive 1 cards from 2." in data["recommendations"]

    async def test_same_user(self, client: AsyncClient) -> None:
        """Comparing a user with themselves is rejected."""
        response = await client.post("/trade-compare", json={"user_a": "ash", "user_b": " ash "})

        assert response.status_code == 400
        assert response.json()["failure"]["message"] == "Cannot compare user with themselves"

    async def test_blank_user(self, client: AsyncClient) -> None:
        """Whitespace-only usernames are rejected."""
        response = await client.post("/trade-compare", json={"user_a": " ", "user_b": "misty"})

        assert response.status_code == 400
        assert response.json()["failure"]["message"] == "Both user_a and user_b are required"

    async def test_missing_field(self, client: AsyncClient) -> None:
        """Request validation rejects a missing user."""
        response = await client.post("/trade-compare", json={"user_a": "ash"})

        assert response.status_code == 422


class TestListTrades:
    """Tests for GET /trade-compare."""

    @respx.mock
    async def test_pagination(self, client: AsyncClient) -> None:
        """Receive trades come before give trades, one per page."""
        mock_collections()

        response = await client.get(
            "/trade-compare", params={"user_a": "1", "user_b": "2", "limit": 1}
        )

        assert response.status_code == 200
        data = response.json()
        assert [t["card"]["id"] for t in data["trades"]] == ["k3"]
        assert data["total_items"] == 2
        assert data["total_pages"] == 2
        assert data["has_more"] is True
        assert data["set_filter"] == "all"

    @respx.mock
    async def test_set_filter(self, client: AsyncClient) -> None:
        """Filtering by set narrows trades and recomputes the summary."""
        mock_collections()

        response = await client.get(
            "/trade-compare", params={"user_a": "1", "user_b": "2", "set_id": "base1"}
        )

        data = response.json()
        assert data["trades"] == []
        assert data["total_items"] == 0
        assert data["total_pages"] == 0
        assert data["has_more"] is False
        assert data["summary"]["total_one_way_to_a"] == 0

    async def test_invalid_limit(self, client: AsyncClient) -> None:
        """Limits above 500 are rejected."""
        response = await client.get(
            "/trade-compare", params={"user_a": "1", "user_b": "2", "limit": 501}
        )

        assert response.status_code == 422
