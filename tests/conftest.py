"""Pytest fixtures for FatSecret Nutrition tests."""

import os
import tempfile

import pytest

from fatsecret_nutrition.config import Settings
from fatsecret_nutrition.credentials import CredentialStore
from fatsecret_nutrition.models import Credentials


@pytest.fixture
def settings(temp_storage_path) -> Settings:
    """Return a Settings object with test credentials.

    Returns:
        Settings object configured with test OAuth1 credentials.
    """
    return Settings(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
        api_base_url="https://platform.fatsecret.com/rest/server.api",
        credentials_path=temp_storage_path,
    )


@pytest.fixture
def temp_storage_path():
    """Create a temporary credential file path for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "fatsecret", "credentials.json")


@pytest.fixture
def credential_store(temp_storage_path) -> CredentialStore:
    """Create a CredentialStore with temporary storage and no defaults."""
    return CredentialStore(temp_storage_path)


@pytest.fixture
def consumer_credentials() -> Credentials:
    """Credentials with a consumer key and secret but no user token."""
    return Credentials(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
    )


@pytest.fixture
def user_credentials(consumer_credentials) -> Credentials:
    """Credentials with a connected user."""
    return consumer_credentials.model_copy(
        update={
            "access_token": "user_token",
            "access_token_secret": "user_secret",
            "user_id": "4242",
        }
    )


@pytest.fixture
def mock_food_response() -> dict:
    """Return a mock food.get API response."""
    return {
        "food": {
            "food_id": "33691",
            "food_name": "Banana",
            "food_type": "Generic",
            "food_url": "https://www.fatsecret.com/calories-nutrition/generic/banana",
            "servings": {
                "serving": [
                    {
                        "serving_id": "27445",
                        "serving_description": "1 small",
                        "metric_serving_amount": "101.000",
                        "metric_serving_unit": "g",
                        "calories": "90",
                        "fat": "0.33",
                        "carbohydrate": "23.07",
                        "protein": "1.10",
                    },
                    {
                        "serving_id": "27446",
                        "serving_description": "1 medium",
                        "metric_serving_amount": "118.000",
                        "metric_serving_unit": "g",
                        "calories": "105",
                        "fat": "0.39",
                        "carbohydrate": "26.95",
                        "protein": "1.29",
                    },
                ]
            },
        }
    }


@pytest.fixture
def mock_search_response() -> dict:
    """Return a mock foods.search API response."""
    return {
        "foods": {
            "max_results": "20",
            "page_number": "0",
            "total_results": "2",
            "food": [
                {
                    "food_id": "33691",
                    "food_name": "Banana",
                    "food_type": "Generic",
                    "food_description": "Per 100g - Calories: 89kcal",
                },
                {
                    "food_id": "424791",
                    "food_name": "Banana Bread",
                    "food_type": "Generic",
                    "food_description": "Per 1 slice - Calories: 196kcal",
                },
            ],
        }
    }


@pytest.fixture
def mock_recipes_search_response() -> dict:
    """Return a mock recipes.search API response."""
    return {
        "recipes": {
            "max_results": "10",
            "page_number": "0",
            "total_results": "1",
            "recipe": [
                {
                    "recipe_id": "12345",
                    "recipe_name": "Banana Pancakes",
                    "recipe_description": "Fluffy pancakes",
                },
            ],
        }
    }


@pytest.fixture
def mock_food_entries_response() -> dict:
    """Return a mock food_entries.get response with two meals."""
    return {
        "food_entries": {
            "food_entry": [
                {
                    "food_entry_id": "1",
                    "food_entry_name": "Banana",
                    "meal": "Breakfast",
                    "calories": "105",
                    "protein": "1.29",
                    "carbohydrate": "26.95",
                    "fat": "0.39",
                },
                {
                    "food_entry_id": "2",
                    "food_entry_name": "Chicken Breast",
                    "meal": "Dinner",
                    "calories": "165",
                    "protein": "31",
                    "carbohydrate": "0",
                    "fat": "3.6",
                },
            ]
        }
    }
