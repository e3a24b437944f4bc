import httpx
import pytest
from httpx import ASGITransport

SUPPLIER_URL = "http://supplier.test/api"


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("SUPPLIER_BASE_URL", SUPPLIER_URL)
    monkeypatch.setenv("SUPPLIER_RETRY_DELAY", "0")
    monkeypatch.setenv("ENRICHMENT_STAGGER_SECONDS", "0")
    monkeypatch.setenv("BOOKING_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("BOOKING_POLL_MAX_ATTEMPTS", "200")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")


@pytest.fixture
async def client(mock_env):
    from app.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
