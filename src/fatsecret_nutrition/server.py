"""FatSecret Nutrition MCP Server implementation using FastMCP."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from starlette.requests import Request
from starlette.responses import JSONResponse

from .api_client import FatSecretClient, summarize_food_entries
from .config import Settings, configure_logging, get_settings
from .credentials import CredentialStore
from .dates import date_to_days, days_to_date
from .exceptions import (
    APIError,
    ConfigurationError,
    FatSecretError,
    HandshakeError,
    RateLimitError,
    TransportError,
    UserNotAuthenticatedError,
    ValidationError,
)
from .models import RequestToken
from .oauth_flow import AuthState, OAuthFlowManager
from .transport import RequestExecutor

logger = logging.getLogger(__name__)

SERVER_NAME = "fatsecret-nutrition"
SERVER_VERSION = "1.0.0"

INSTRUCTIONS = (
    "Search foods and recipes for nutrition information. Use search_nutrition "
    "before get_nutrition_details for complete data. All dates in YYYY-MM-DD "
    "format. OAuth required for user data (food diary, profile). Nutrition "
    "values in standard units (calories, grams, mg)."
)

SEARCH_TYPES = ("all", "foods", "recipes")
MEAL_TYPES = {
    "breakfast": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snack": "other",
    "other": "other",
}

# Module-level holders for lifespan management
_settings: Settings | None = None
_credential_store: CredentialStore | None = None
_executor: RequestExecutor | None = None
_sessions = 0


@asynccontextmanager
async def lifespan(app: Any):
    """Lifespan context manager for the MCP server.

    FastMCP enters this once per session, and every SSE connection is a
    session. The first session creates the settings, credential store and
    shared HTTP executor; the last one to end closes them. Credentials
    themselves are re-read on every tool call.
    """
    global _settings, _credential_store, _executor, _sessions

    if _sessions == 0:
        _settings = get_settings()
        _credential_store = CredentialStore.from_settings(_settings)
        _executor = RequestExecutor()
    _sessions += 1

    try:
        yield
    finally:
        _sessions -= 1
        if _sessions == 0:
            # Clean up on shutdown
            executor, _executor = _executor, None
            _credential_store = None
            _settings = None
            if executor:
                await executor.close()


# Create FastMCP server with lifespan
mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS, lifespan=lifespan)


def _get_settings() -> Settings:
    """Get the Settings from module state."""
    if _settings is None:
        raise RuntimeError("Settings not initialized - server not running")
    return _settings


def _get_credential_store() -> CredentialStore:
    """Get the CredentialStore from module state."""
    if _credential_store is None:
        raise RuntimeError("CredentialStore not initialized - server not running")
    return _credential_store


def _get_executor() -> RequestExecutor:
    """Get the RequestExecutor from module state."""
    if _executor is None:
        raise RuntimeError("RequestExecutor not initialized - server not running")
    return _executor


def _get_client() -> FatSecretClient:
    """Build a client from freshly loaded credentials."""
    credentials = _get_credential_store().load()
    return FatSecretClient(_get_settings(), credentials, _get_executor())


def _get_oauth_flow() -> OAuthFlowManager:
    return OAuthFlowManager(_get_settings(), _get_credential_store(), _get_executor())


def _tool_error(action: str, e: FatSecretError) -> ToolError:
    """Translate a domain error into a tool error for the MCP client."""
    if isinstance(e, ValidationError):
        return ToolError(f"Invalid request: {str(e)}")
    if isinstance(e, (ConfigurationError, UserNotAuthenticatedError)):
        return ToolError(str(e))
    if isinstance(e, RateLimitError):
        return ToolError("API rate limit exceeded. Please try again later.")
    if isinstance(e, TransportError):
        return ToolError(f"Failed to {action}: FatSecret API error: {str(e)}")
    if isinstance(e, APIError) and e.error_code is not None:
        return ToolError(f"Failed to {action}: {str(e)} (code {e.error_code})")
    return ToolError(f"Failed to {action}: {str(e)}")


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2)


# ============================================================================
# Nutrition Tools
# ============================================================================


@mcp.tool()
async def search_nutrition(query: str, type: str = "all", limit: int = 20) -> str:
    """Search for foods and recipes with nutrition information.

    Returns basic info for quick overview - use get_nutrition_details for
    complete nutritional data including vitamins, minerals, and serving sizes.

    Args:
        query: Search term (e.g., "chicken breast", "banana", "pasta carbonara")
        type: "all" (foods and recipes), "foods" or "recipes"
        limit: Maximum number of results (1-50, default 20)

    Returns:
        JSON with the provider's search results
    """
    try:
        query = (query or "").strip()
        if not query:
            raise ValidationError(
                "Search query is required and must be a non-empty string",
                field="query",
            )
        if type not in SEARCH_TYPES:
            raise ValidationError(
                f"Search type must be one of {', '.join(SEARCH_TYPES)}", field="type"
            )
        if not 1 <= limit <= 50:
            raise ValidationError("Limit must be a number between 1 and 50", "limit")

        client = _get_client()

        if type == "recipes":
            recipes = await client.search_recipes(query, max_results=limit)
            return _to_json({"type": "recipes", "query": query, "results": recipes})

        foods = await client.search_foods(query, max_results=limit)
        if type == "foods":
            return _to_json({"type": "foods", "query": query, "results": foods})

        recipes = await client.search_recipes(query, max_results=max(1, limit // 2))
        return _to_json(
            {
                "type": "all",
                "query": query,
                "results": {"foods": foods, "recipes": recipes},
            }
        )

    except FatSecretError as e:
        raise _tool_error("search nutrition", e) from e


@mcp.tool()
async def get_nutrition_details(
    food_id: str | None = None, recipe_id: str | None = None
) -> str:
    """Get complete nutritional information for a specific food or recipe.

    Includes calories, macronutrients, vitamins, minerals, and all available
    serving sizes. Use search_nutrition first to find the food_id or recipe_id.

    Args:
        food_id: FatSecret food ID (from search_nutrition results)
        recipe_id: FatSecret recipe ID (from search_nutrition results)

    Returns:
        JSON with the food or recipe details
    """
    try:
        if not food_id and not recipe_id:
            raise ValidationError("Either food_id or recipe_id must be provided")

        client = _get_client()

        if food_id:
            details = await client.get_food(food_id)
            return _to_json({"type": "food", "details": details})

        details = await client.get_recipe(recipe_id)
        return _to_json({"type": "recipe", "details": details})

    except FatSecretError as e:
        raise _tool_error("get nutrition details", e) from e


# ============================================================================
# Food Diary Tools
# ============================================================================


@mcp.tool()
async def get_daily_nutrition(date: str | None = None) -> str:
    """Get a daily nutrition summary for a specific date.

    Includes all food entries, total calories, macronutrients, and the meal
    breakdown. Requires a connected FatSecret account.

    Args:
        date: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        JSON with totals, entries grouped by meal, and the raw response
    """
    try:
        date_int = date_to_days(date)
        client = _get_client()

        response = await client.get_food_entries(date_int)
        summary = summarize_food_entries(response)

        return _to_json(
            {
                "date": days_to_date(date_int).isoformat(),
                "date_int": int(date_int),
                **summary,
                "raw_entries": response,
            }
        )

    except FatSecretError as e:
        raise _tool_error("get daily nutrition", e) from e


@mcp.tool()
async def add_food_to_diary(
    food_id: str,
    serving_id: str,
    quantity: float,
    meal_type: str,
    date: str | None = None,
    food_entry_name: str | None = None,
) -> str:
    """Add a food item to your nutrition diary.

    Use get_nutrition_details first to find the serving_id. Requires a
    connected FatSecret account.

    Args:
        food_id: FatSecret food ID (from search_nutrition)
        serving_id: Serving ID for the food (from get_nutrition_details)
        quantity: Number of servings (0.1 to 100, e.g. 1.5)
        meal_type: "breakfast", "lunch", "dinner" or "snack"
        date: Date in YYYY-MM-DD format (defaults to today)
        food_entry_name: Optional name for the entry

    Returns:
        Confirmation message with the provider's response
    """
    try:
        if not food_id:
            raise ValidationError("food_id is required", field="food_id")
        if not serving_id:
            raise ValidationError("serving_id is required", field="serving_id")
        if not 0.1 <= quantity <= 100:
            raise ValidationError(
                "Quantity must be between 0.1 and 100", field="quantity"
            )
        meal = MEAL_TYPES.get((meal_type or "").lower())
        if meal is None:
            raise ValidationError(
                "Meal type must be one of breakfast, lunch, dinner, snack",
                field="meal_type",
            )
        date_int = date_to_days(date)

        client = _get_client()
        response = await client.create_food_entry(
            food_id=food_id,
            serving_id=serving_id,
            number_of_units=quantity,
            meal=meal,
            date=date_int,
            food_entry_name=food_entry_name,
        )

        return f"Food entry added successfully to {meal_type}!\n\n{_to_json(response)}"

    except FatSecretError as e:
        raise _tool_error("add food to diary", e) from e


@mcp.tool()
async def get_user_profile() -> str:
    """Get user profile information.

    Includes weight goal, activity level, and dietary preferences. Requires a
    connected FatSecret account.

    Returns:
        JSON with the user's profile
    """
    try:
        client = _get_client()
        return _to_json(await client.get_profile())

    except FatSecretError as e:
        raise _tool_error("get user profile", e) from e


# ============================================================================
# Authentication Tools
# ============================================================================


@mcp.tool()
async def authenticate_fatsecret(
    client_id: str,
    client_secret: str,
    verifier: str | None = None,
    request_token: str | None = None,
    request_token_secret: str | None = None,
) -> str:
    """Connect a FatSecret account with OAuth.

    Call once with client_id and client_secret to get an authorization URL.
    After authorizing, call again with the same credentials plus the
    verifier, request_token and request_token_secret from the first call.

    Args:
        client_id: Your FatSecret Client ID from platform.fatsecret.com
        client_secret: Your FatSecret Client Secret from platform.fatsecret.com
        verifier: Verifier code from the authorization page (omit to start)
        request_token: Request token from the first call
        request_token_secret: Request token secret from the first call

    Returns:
        Authorization instructions, or a success message
    """
    try:
        oauth_flow = _get_oauth_flow()
        verifier = (verifier or "").strip()

        if not (verifier and request_token and request_token_secret):
            credentials = oauth_flow.set_credentials(client_id, client_secret)
            token = await oauth_flow.get_request_token(credentials)
            auth_url = oauth_flow.get_authorization_url(token)

            return (
                "OAuth flow started! Please visit this URL to authorize:\n\n"
                f"{auth_url}\n\n"
                "After authorization, copy the verifier code and call "
                "authenticate_fatsecret again with:\n"
                "- verifier: [code from authorization page]\n"
                f"- request_token: {token.oauth_token}\n"
                f"- request_token_secret: {token.oauth_token_secret}\n"
                "- client_id and client_secret: the same values as this call"
            )

        credentials = oauth_flow.consumer_credentials(client_id, client_secret)
        access_token = await oauth_flow.exchange_for_access_token(
            credentials,
            RequestToken(
                oauth_token=request_token, oauth_token_secret=request_token_secret
            ),
            verifier,
        )

        return (
            "Authentication successful! You are now connected to FatSecret.\n\n"
            f"User ID: {access_token.user_id or 'N/A'}\n\n"
            "You can now use diary operations like get_daily_nutrition and "
            "add_food_to_diary."
        )

    except HandshakeError as e:
        raise ToolError(
            f"Authentication failed: {str(e)}. Start again without a verifier."
        ) from e
    except FatSecretError as e:
        raise _tool_error("authenticate", e) from e


@mcp.tool()
async def check_authentication() -> str:
    """Check current authentication status with FatSecret.

    Shows if credentials are configured and if a user is authenticated for
    diary operations.

    Returns:
        Authentication status message
    """
    credentials = _get_credential_store().load()
    state = OAuthFlowManager.state_of(credentials)

    if state is AuthState.ACCESS_TOKEN_OBTAINED:
        status = "Fully authenticated"
        next_step = "Ready to use all nutrition tracking features!"
    elif state is AuthState.CREDENTIALS_SET:
        status = "Credentials set, user authentication needed"
        next_step = (
            "Next: Complete OAuth flow by calling authenticate_fatsecret and "
            "following the authorization URL"
        )
    else:
        status = "Not configured"
        next_step = "Next: Call authenticate_fatsecret with your Client ID and Secret"

    return (
        f"Authentication Status: {status}\n\n"
        f"API Credentials configured: {credentials.has_consumer_credentials}\n"
        f"User authenticated: {credentials.has_access_token}\n"
        f"User ID: {credentials.user_id or 'N/A'}\n\n"
        f"{next_step}"
    )


@mcp.tool()
async def disconnect_account() -> str:
    """Disconnect your FatSecret account.

    Remove the stored user token. The Client ID and Secret are kept, so you
    can connect again with authenticate_fatsecret.

    Returns:
        Confirmation message
    """
    _get_credential_store().clear_access_token()
    return (
        "Disconnected: Your FatSecret account has been unlinked.\n"
        "Food diary and profile features are no longer available.\n"
        "Use authenticate_fatsecret to connect again."
    )


# ============================================================================
# HTTP Routes (SSE transport)
# ============================================================================


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    """Health check for the SSE deployment."""
    return JSONResponse(
        {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
    )


@mcp.custom_route("/", methods=["GET"])
async def info(request: Request) -> JSONResponse:
    """Server information for the SSE deployment."""
    return JSONResponse(
        {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "status": "running",
            "endpoints": {"health": "/health", "sse": "/sse", "info": "/"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Run the FatSecret Nutrition MCP server."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting %s on %s transport", SERVER_NAME, settings.transport)
    mcp.run(transport=settings.transport)


if __name__ == "__main__":
    main()
