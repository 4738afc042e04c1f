"""Shared fixtures: the FastAPI app with every external service replaced by a fake."""
import dataclasses
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app.
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("DATABASE_NAME", "storefront_test")
os.environ.setdefault("STATIC_DIR", str(Path(__file__).resolve().parents[1] / "public"))

from tests.fakes import FakeDocumentStore, FakeMediaHost, FakeNotifier, FakeTelegramClient  # noqa: E402


@pytest.fixture
def store():
    return FakeDocumentStore()


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def telegram():
    return FakeTelegramClient()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def app(store, media_host, notifier, telegram, upload_dir):
    from bot import StoreBot
    from config import get_settings, load_settings
    from main import app as fastapi_app, get_bot, get_media_host, get_notifier, get_store

    settings = dataclasses.replace(load_settings(), upload_dir=str(upload_dir))

    fastapi_app.dependency_overrides[get_store] = lambda: store
    fastapi_app.dependency_overrides[get_media_host] = lambda: media_host
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    fastapi_app.dependency_overrides[get_bot] = lambda: StoreBot(telegram, "https://shop.example.com")
    fastapi_app.dependency_overrides[get_settings] = lambda: settings

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def order_payload():
    return {
        "firstName": "Olena",
        "lastName": "Kovalenko",
        "email": "olena.kovalenko@gmail.com",
        "phoneNumber": "+380501234567",
        "city": "Kyiv",
        "postOfficeBranch": "12",
        "totalPrice": 45.5,
        "orderItems": [
            {"productName": "Mug", "quantity": 2},
            {"productName": "Teapot", "quantity": 1},
        ],
        "paymentMethod": "card",
    }
