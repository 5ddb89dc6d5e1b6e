"""Shared fixtures for API tests."""

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from storefront.infrastructure.config import Settings
from storefront.infrastructure.database import Database
from storefront.infrastructure.notifications import RecordingNotifier
from storefront.infrastructure.payment_gateway import FakePaymentGateway
from storefront.main import create_app

JWT_SECRET = "test-jwt-secret"
ADMIN_KEY = "test-admin-key"


class Store:
    """Seeds the application database from synchronous tests."""

    def __init__(self, database_url: str, seeder_class: type) -> None:
        self.database_url = database_url
        self.seeder_class = seeder_class

    def seed(self, build: Callable[[Any], Awaitable[Any]]) -> Any:
        """Run ``build(seeder)`` against the database and return its result."""

        async def run() -> Any:
            db = Database(self.database_url)
            try:
                await db.create_all()
                return await build(self.seeder_class(db))
            finally:
                await db.dispose()

        return asyncio.run(run())


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file and invoice directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        payment_gateway="fake",
        razorpay_key_id="rzp_test_key",
        invoice_dir=str(tmp_path / "invoices"),
        notifications_enabled=False,
        jwt_secret=JWT_SECRET,
        admin_api_key=ADMIN_KEY,
        public_base_url="https://shop.example.com",
    )


@pytest.fixture
def store(settings: Settings, seeder_class: type) -> Store:
    """Synchronous seeding facade over the application database."""
    return Store(settings.database_url, seeder_class)


@pytest.fixture
def client(
    settings: Settings,
    gateway: FakePaymentGateway,
    notifier: RecordingNotifier,
) -> Iterator[TestClient]:
    """Test client with the application lifespan running."""
    app = create_app(settings, payment_gateway=gateway, notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client


def bearer(user_id: int) -> dict[str, str]:
    """Authorization header for a user."""
    token = jwt.encode({"sub": str(user_id)}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers() -> Callable[[int], dict[str, str]]:
    """Factory for user bearer headers."""
    return bearer


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Admin key header."""
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def checkout_body() -> Callable[..., dict[str, Any]]:
    """Factory for checkout request bodies."""

    def build(session_id: str | None = None, postal_code: Any = "560001", **extra: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "customer": {
                "name": "Asha Rao",
                "email": "asha@example.com",
                "phone": "9000000000",
                "address": {
                    "line1": "1 MG Road",
                    "city": "Bengaluru",
                    "state": "KA",
                    "postalCode": postal_code,
                },
            },
            **extra,
        }
        if session_id is not None:
            body["sessionId"] = session_id
        return body

    return build
