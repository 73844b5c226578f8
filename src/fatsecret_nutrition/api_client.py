"""FatSecret API client implementation."""

import logging
from typing import Any

from .auth import OAuth1Signer
from .config import Settings
from .exceptions import APIError, UserNotAuthenticatedError
from .models import Credentials, RawText
from .transport import RequestExecutor

logger = logging.getLogger(__name__)

MEALS = ("breakfast", "lunch", "dinner", "other")


class FatSecretClient:
    """Client for interacting with the FatSecret API.

    Builds the parameter map for each API method, signs it and passes the
    decoded response through unchanged.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: Credentials,
        executor: RequestExecutor,
    ) -> None:
        """Initialize the FatSecret API client.

        Args:
            settings: Application settings containing API configuration.
            credentials: Consumer credentials and optional user access token.
            executor: Executor that performs the signed requests.

        Raises:
            ConfigurationError: If the consumer key or secret is missing.
        """
        self._settings = settings
        self._credentials = credentials
        self._executor = executor
        self._signer = OAuth1Signer(credentials)

    @property
    def is_user_authenticated(self) -> bool:
        """Check if client has user authentication.

        Returns:
            True if user token is configured, False otherwise.
        """
        return self._credentials.has_access_token

    def _require_user_auth(self) -> None:
        """Raise an error if user authentication is not configured.

        Raises:
            UserNotAuthenticatedError: If no user token is configured.
        """
        if not self.is_user_authenticated:
            raise UserNotAuthenticatedError(
                "User authentication required. Please complete the OAuth flow "
                "using authenticate_fatsecret first."
            )

    async def _make_request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        http_method: str = "GET",
        user_scoped: bool = False,
    ) -> dict[str, Any]:
        """Make a request to the FatSecret API.

        Args:
            method: The API method to call.
            params: Additional parameters for the API call.
            http_method: GET or POST.
            user_scoped: Sign with the user's access token.

        Returns:
            The decoded response from the API.

        Raises:
            APIError: If the API returns an error payload or an unreadable body.
            TransportError: If the HTTP request fails.
        """
        if user_scoped:
            self._require_user_auth()

        request_params: dict[str, Any] = {**(params or {})}
        request_params["method"] = method
        request_params["format"] = "json"

        token = token_secret = None
        if user_scoped:
            token = self._credentials.access_token
            token_secret = self._credentials.access_token_secret

        signed = self._signer.sign_request(
            self._settings.api_base_url,
            http_method,
            request_params,
            token=token,
            token_secret=token_secret,
        )

        body = await self._executor.execute(signed)

        if isinstance(body, RawText):
            raise APIError(f"Unexpected response from FatSecret API: {body.text}")

        data: dict[str, Any] = body.data

        # Check for API errors in the response
        error = data.get("error")
        if isinstance(error, dict):
            error_msg = error.get("message", "Unknown error")
            error_code = error.get("code")
            logger.info(
                "FatSecret API error %s for %s: %s", error_code, method, error_msg
            )
            raise APIError(error_msg, _error_code(error_code))

        return data

    async def search_foods(
        self, query: str, max_results: int = 20, page_number: int = 0
    ) -> dict[str, Any]:
        """Search for foods by keyword (``foods.search``)."""
        params = {
            "search_expression": query,
            "page_number": page_number,
            "max_results": max_results,
        }
        return await self._make_request("foods.search", params)

    async def search_recipes(
        self, query: str, max_results: int = 20, page_number: int = 0
    ) -> dict[str, Any]:
        """Search for recipes by keyword (``recipes.search``)."""
        params = {
            "search_expression": query,
            "page_number": page_number,
            "max_results": max_results,
        }
        return await self._make_request("recipes.search", params)

    async def get_food(self, food_id: str) -> dict[str, Any]:
        """Get detailed information about a specific food (``food.get``)."""
        return await self._make_request("food.get", {"food_id": food_id})

    async def get_recipe(self, recipe_id: str) -> dict[str, Any]:
        """Get detailed information about a specific recipe (``recipe.get``)."""
        return await self._make_request("recipe.get", {"recipe_id": recipe_id})

    # ========================================================================
    # User-Authenticated Methods (require 3-legged OAuth)
    # ========================================================================

    async def get_food_entries(self, date: str) -> dict[str, Any]:
        """Get food diary entries for a date.

        Args:
            date: Days since epoch, as produced by ``date_to_days``.

        Raises:
            UserNotAuthenticatedError: If user is not authenticated.
        """
        return await self._make_request(
            "food_entries.get", {"date": date}, user_scoped=True
        )

    async def create_food_entry(
        self,
        food_id: str,
        serving_id: str,
        number_of_units: float,
        meal: str,
        date: str,
        food_entry_name: str | None = None,
    ) -> dict[str, Any]:
        """Add a food entry to the diary (``food_entry.create``).

        Args:
            food_id: The FatSecret food ID.
            serving_id: The serving ID to use.
            number_of_units: Number of servings.
            meal: Meal type ("breakfast", "lunch", "dinner", "other").
            date: Days since epoch, as produced by ``date_to_days``.
            food_entry_name: Optional custom name for the entry.

        Raises:
            UserNotAuthenticatedError: If user is not authenticated.
        """
        params: dict[str, Any] = {
            "food_id": food_id,
            "serving_id": serving_id,
            "number_of_units": number_of_units,
            "meal": meal,
            "date": date,
        }

        if food_entry_name is not None:
            params["food_entry_name"] = food_entry_name

        return await self._make_request(
            "food_entry.create", params, http_method="POST", user_scoped=True
        )

    async def get_profile(self) -> dict[str, Any]:
        """Get the connected user's profile (``profile.get``).

        Raises:
            UserNotAuthenticatedError: If user is not authenticated.
        """
        return await self._make_request("profile.get", user_scoped=True)


def _error_code(value: Any) -> int | None:
    """Numeric provider error code, or None when absent or non-numeric."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def summarize_food_entries(response: dict[str, Any]) -> dict[str, Any]:
    """Total the macronutrients of a ``food_entries.get`` response by meal.

    The API returns a single entry as an object rather than a list, and
    ``null`` when the day is empty.

    Returns:
        Dictionary with ``totals`` and ``meals`` (entries grouped by meal).
    """
    meals: dict[str, list[dict[str, Any]]] = {meal: [] for meal in MEALS}
    totals = {"calories": 0.0, "protein": 0.0, "carbohydrate": 0.0, "fat": 0.0}

    entries_data = response.get("food_entries") or {}
    entry_list: Any = []
    if isinstance(entries_data, dict):
        entry_list = entries_data.get("food_entry") or []
    if not isinstance(entry_list, list):
        entry_list = [entry_list]
    entry_list = [entry for entry in entry_list if isinstance(entry, dict)]

    for entry in entry_list:
        for nutrient in totals:
            totals[nutrient] += _as_float(entry.get(nutrient))

        meal = str(entry.get("meal") or "other").lower()
        meals.setdefault(meal, []).append(entry)

    return {
        "totals": {nutrient: round(value, 2) for nutrient, value in totals.items()},
        "meals": meals,
        "entry_count": len(entry_list),
    }
