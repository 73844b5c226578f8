"""Tests for the MCP tool functions."""

import json

import pytest
import respx
from httpx import Response
from mcp.server.fastmcp.exceptions import ToolError

from fatsecret_nutrition import server
from fatsecret_nutrition.credentials import CredentialStore
from fatsecret_nutrition.transport import RequestExecutor

REQUEST_TOKEN_URL = "https://authentication.fatsecret.com/oauth/request_token"
ACCESS_TOKEN_URL = "https://authentication.fatsecret.com/oauth/access_token"


@pytest.fixture
async def store(settings, monkeypatch):
    """Install server state the way the lifespan does."""
    store = CredentialStore.from_settings(settings)
    async with RequestExecutor() as executor:
        monkeypatch.setattr(server, "_settings", settings)
        monkeypatch.setattr(server, "_credential_store", store)
        monkeypatch.setattr(server, "_executor", executor)
        yield store


@pytest.fixture
def connected(store, user_credentials):
    store.save(user_credentials)
    return store


def test_state_required(monkeypatch):
    monkeypatch.setattr(server, "_settings", None)

    with pytest.raises(RuntimeError):
        server._get_settings()


@respx.mock
async def test_state_shared_across_overlapping_sessions(
    settings, monkeypatch, mock_search_response
):
    """A session ending does not tear down state another session still uses."""
    monkeypatch.setattr(server, "get_settings", lambda: settings)
    monkeypatch.setattr(server, "_sessions", 0)
    respx.get(settings.api_base_url).mock(
        return_value=Response(200, json=mock_search_response)
    )

    async with server.lifespan(server.mcp):
        executor = server._get_executor()
        async with server.lifespan(server.mcp):
            assert server._get_executor() is executor

        result = json.loads(await server.search_nutrition("banana", type="foods"))
        assert result["type"] == "foods"
        assert server._get_executor() is executor

    with pytest.raises(RuntimeError):
        server._get_executor()
    assert server._sessions == 0


class TestSearchNutrition:
    @respx.mock
    async def test_all_searches_foods_and_recipes(
        self, store, settings, mock_search_response, mock_recipes_search_response
    ):
        route = respx.get(settings.api_base_url).mock(
            side_effect=[
                Response(200, json=mock_search_response),
                Response(200, json=mock_recipes_search_response),
            ]
        )

        result = json.loads(await server.search_nutrition("banana", limit=10))

        assert result["type"] == "all"
        assert result["results"]["foods"] == mock_search_response
        assert result["results"]["recipes"] == mock_recipes_search_response
        first, second = (call.request.url.params for call in route.calls)
        assert first["max_results"] == "10"
        assert second["method"] == "recipes.search"
        assert second["max_results"] == "5"

    @respx.mock
    async def test_foods_only(self, store, settings, mock_search_response):
        route = respx.get(settings.api_base_url).mock(
            return_value=Response(200, json=mock_search_response)
        )

        result = json.loads(await server.search_nutrition("banana", type="foods"))

        assert result["type"] == "foods"
        assert route.call_count == 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"query": "  "},
            {"query": "banana", "type": "drinks"},
            {"query": "banana", "limit": 0},
            {"query": "banana", "limit": 51},
        ],
    )
    @respx.mock
    async def test_invalid_input_makes_no_request(self, store, settings, kwargs):
        with pytest.raises(ToolError, match="Invalid request"):
            await server.search_nutrition(**kwargs)

    async def test_not_configured(self, settings, store, monkeypatch):
        monkeypatch.setattr(
            server, "_credential_store", CredentialStore(settings.credentials_path)
        )

        with pytest.raises(ToolError, match="not configured"):
            await server.search_nutrition("banana")

    @respx.mock
    async def test_rate_limited(self, store, settings):
        respx.get(settings.api_base_url).mock(return_value=Response(429))

        with pytest.raises(ToolError, match="rate limit"):
            await server.search_nutrition("banana", type="foods")


class TestNutritionDetails:
    @respx.mock
    async def test_food(self, store, settings, mock_food_response):
        respx.get(settings.api_base_url).mock(
            return_value=Response(200, json=mock_food_response)
        )

        result = json.loads(await server.get_nutrition_details(food_id="33691"))

        assert result == {"type": "food", "details": mock_food_response}

    @respx.mock
    async def test_recipe(self, store, settings):
        route = respx.get(settings.api_base_url).mock(
            return_value=Response(200, json={"recipe": {"recipe_id": "1"}})
        )

        result = json.loads(await server.get_nutrition_details(recipe_id="1"))

        assert result["type"] == "recipe"
        assert route.calls.last.request.url.params["method"] == "recipe.get"

    async def test_requires_an_id(self, store):
        with pytest.raises(ToolError, match="food_id or recipe_id"):
            await server.get_nutrition_details()

    @respx.mock
    async def test_api_error(self, store, settings):
        respx.get(settings.api_base_url).mock(
            return_value=Response(
                200, json={"error": {"code": 106, "message": "Invalid ID"}}
            )
        )

        with pytest.raises(ToolError, match="code 106"):
            await server.get_nutrition_details(food_id="0")


class TestDiary:
    async def test_requires_user(self, store):
        with pytest.raises(ToolError, match="User authentication required"):
            await server.get_daily_nutrition("2024-01-01")

    async def test_invalid_date(self, connected):
        with pytest.raises(ToolError, match="Invalid request"):
            await server.get_daily_nutrition("2024-13-40")

    @respx.mock
    async def test_daily_nutrition(
        self, connected, settings, mock_food_entries_response
    ):
        route = respx.get(settings.api_base_url).mock(
            return_value=Response(200, json=mock_food_entries_response)
        )

        result = json.loads(await server.get_daily_nutrition("2024-01-01"))

        assert result["date"] == "2024-01-01"
        assert result["date_int"] == 19723
        assert result["totals"]["calories"] == 270.0
        assert result["entry_count"] == 2
        assert route.calls.last.request.url.params["date"] == "19723"

    @respx.mock
    async def test_add_food_maps_snack_to_other(self, connected, settings):
        route = respx.post(settings.api_base_url).mock(
            return_value=Response(200, json={"food_entry_id": {"value": "9"}})
        )

        message = await server.add_food_to_diary(
            food_id="33691",
            serving_id="27446",
            quantity=2,
            meal_type="Snack",
            date="2024-01-01",
        )

        assert message.startswith("Food entry added successfully to Snack!")
        body = route.calls.last.request.content.decode()
        assert "meal=other" in body
        assert "date=19723" in body
        assert "number_of_units=2" in body

    @pytest.mark.parametrize(
        "quantity, meal_type", [(0.05, "lunch"), (101, "lunch"), (1, "brunch")]
    )
    @respx.mock
    async def test_add_food_validation(self, connected, settings, quantity, meal_type):
        with pytest.raises(ToolError, match="Invalid request"):
            await server.add_food_to_diary("1", "2", quantity, meal_type)

    @respx.mock
    async def test_user_profile(self, connected, settings):
        respx.get(settings.api_base_url).mock(
            return_value=Response(200, json={"profile": {"goal_weight_kg": "70"}})
        )

        result = json.loads(await server.get_user_profile())

        assert result["profile"]["goal_weight_kg"] == "70"


class TestAuthenticationTools:
    @respx.mock
    async def test_two_call_handshake(self, store):
        respx.post(REQUEST_TOKEN_URL).mock(
            return_value=Response(200, text="oauth_token=T1&oauth_token_secret=S1")
        )
        access_route = respx.get(ACCESS_TOKEN_URL).mock(
            return_value=Response(
                200, text="oauth_token=A1&oauth_token_secret=B1&user_id=7"
            )
        )

        started = await server.authenticate_fatsecret("my_key", "my_secret")

        assert "oauth/authorize?oauth_token=T1" in started
        assert "request_token: T1" in started
        assert "request_token_secret: S1" in started
        assert store.load().consumer_key == "my_key"

        finished = await server.authenticate_fatsecret(
            "my_key",
            "my_secret",
            verifier="123456",
            request_token="T1",
            request_token_secret="S1",
        )

        assert "Authentication successful" in finished
        assert "User ID: 7" in finished
        params = access_route.calls.last.request.url.params
        assert params["oauth_verifier"] == "123456"
        saved = store.load()
        assert saved.access_token == "A1"
        assert saved.consumer_secret == "my_secret"

    @respx.mock
    async def test_bad_exchange_leaves_store_untouched(self, store):
        respx.get(ACCESS_TOKEN_URL).mock(
            return_value=Response(200, text="oauth_token=A1")
        )

        with pytest.raises(ToolError, match="Authentication failed"):
            await server.authenticate_fatsecret(
                "my_key", "my_secret", "123456", "T1", "S1"
            )

        assert not store.path.exists()

    async def test_blank_client_id(self, store):
        with pytest.raises(ToolError, match="Client ID is required"):
            await server.authenticate_fatsecret("", "secret")

    async def test_check_authentication_states(self, store, user_credentials):
        status = await server.check_authentication()
        assert "Credentials set, user authentication needed" in status

        store.save(user_credentials)
        status = await server.check_authentication()
        assert "Fully authenticated" in status
        assert "User ID: 4242" in status

    async def test_check_authentication_not_configured(
        self, settings, store, monkeypatch
    ):
        monkeypatch.setattr(
            server, "_credential_store", CredentialStore(settings.credentials_path)
        )

        assert "Not configured" in await server.check_authentication()

    async def test_disconnect_account(self, connected):
        message = await server.disconnect_account()

        assert "Disconnected" in message
        credentials = connected.load()
        assert not credentials.has_access_token
        assert credentials.consumer_key == "test_consumer_key"
