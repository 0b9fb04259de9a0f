"""
Pytest configuration and shared fixtures.

Provides an in-memory SQLite session, fake payment providers that
implement the provider contract without network calls, and an HTTP
client bound to the FastAPI app.
"""

import json
import os
from typing import Any, AsyncGenerator

# Settings are read at import time; point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-for-pytest-only-0123456789")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("PAYPAL_WEBHOOK_SECRET", "paypal_test_secret")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import payhub.models  # noqa: F401
from payhub.api.deps import get_current_user, get_provider_registry
from payhub.core.database import Base, get_db
from payhub.core.exceptions import ProviderError, WebhookVerificationError
from payhub.main import app
from payhub.models.user import User
from payhub.modules.orders import OrderRepository
from payhub.modules.payments import PaymentService, ProviderRegistry
from payhub.modules.payments.base import (
    CheckoutSessionResult,
    PaymentIntentResult,
    PaymentMethod,
    PaymentProvider,
    ProviderPrice,
    ProviderProduct,
    RefundResult,
    WebhookEvent,
    WebhookEventKind,
)

VALID_SIGNATURE = "valid-signature"


class FakeProvider(PaymentProvider):
    """
    In-process provider for orchestration tests.

    Webhook bodies are JSON with kind/type/transaction_id/order_id/
    payment_reference; the only accepted signature is VALID_SIGNATURE.
    """

    def __init__(
        self,
        method: PaymentMethod,
        redirect: bool = False,
        fail_on: set[str] | None = None,
        timeout_on: set[str] | None = None,
    ) -> None:
        super().__init__(timeout=1.0)
        self.method = method
        self.redirect = redirect
        self.fail_on = fail_on or set()
        self.timeout_on = timeout_on or set()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{self.method.value}_{prefix}_{self._counter}"

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if operation in self.fail_on:
            raise ProviderError(
                f"{self.method.value} {operation} rejected",
                provider=self.method.value,
                operation=operation,
            )
        if operation in self.timeout_on:
            raise ProviderError(
                f"{self.method.value} {operation} timed out; outcome unknown",
                provider=self.method.value,
                operation=operation,
                outcome_unknown=True,
            )

    async def create_payment_intent(self, amount, currency, metadata=None):
        self._record("create_payment_intent", amount, currency, metadata)
        tx_id = self._next_id("tx")
        if self.redirect:
            return PaymentIntentResult(id=tx_id, approval_url=f"https://pay.example/{tx_id}")
        return PaymentIntentResult(id=tx_id, client_secret=f"{tx_id}_secret")

    async def create_checkout_session(self, amount, currency, order_id):
        self._record("create_checkout_session", amount, currency, order_id)
        session_id = self._next_id("cs")
        return CheckoutSessionResult(id=session_id, url=f"https://checkout.example/{session_id}")

    async def create_refund(self, payment_id, amount=None, reason=None, currency=None):
        self._record("create_refund", payment_id, amount, reason, currency)
        return RefundResult(id=self._next_id("re"), status="pending")

    async def create_product(self, name, description=None):
        self._record("create_product", name, description)
        return ProviderProduct(id=self._next_id("prod"), name=name, description=description)

    async def create_price(self, product_id, amount, currency):
        self._record("create_price", product_id, amount, currency)
        return ProviderPrice(
            id=self._next_id("price"), product=product_id, unit_amount=amount, currency=currency
        )

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        if signature != VALID_SIGNATURE:
            raise WebhookVerificationError("Invalid signature")
        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            raise WebhookVerificationError("Invalid payload") from e

        return WebhookEvent(
            type=payload.get("type", payload.get("kind", "unknown")),
            kind=WebhookEventKind(payload.get("kind", "ignored")),
            transaction_id=payload.get("transaction_id"),
            order_id=payload.get("order_id"),
            payment_reference=payload.get("payment_reference"),
            data=payload,
        )


def webhook_body(kind: str, **fields: Any) -> bytes:
    """Build a FakeProvider webhook body."""
    return json.dumps({"kind": kind, **fields}).encode()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_maker() as session:
        yield session

    await engine.dispose()


# ── Provider Fixtures ────────────────────────────────────────────────


@pytest.fixture
def stripe_fake() -> FakeProvider:
    return FakeProvider(PaymentMethod.STRIPE)


@pytest.fixture
def paypal_fake() -> FakeProvider:
    return FakeProvider(PaymentMethod.PAYPAL, redirect=True)


@pytest.fixture
def registry(stripe_fake: FakeProvider, paypal_fake: FakeProvider) -> ProviderRegistry:
    return ProviderRegistry(
        {
            PaymentMethod.STRIPE: stripe_fake,
            PaymentMethod.PAYPAL: paypal_fake,
        }
    )


@pytest.fixture
def orders(db_session: AsyncSession) -> OrderRepository:
    return OrderRepository(db_session)


@pytest.fixture
def payments(orders: OrderRepository, registry: ProviderRegistry) -> PaymentService:
    return PaymentService(orders, registry)


# ── HTTP Fixtures ────────────────────────────────────────────────────


@pytest.fixture
async def current_user(db_session: AsyncSession) -> User:
    user = User(
        name="Admin",
        email="admin@example.com",
        hashed_password="unused",
        is_superuser=True,
    )
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
async def client(
    db_session: AsyncSession,
    registry: ProviderRegistry,
    current_user: User,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client against the app, sharing the test DB session.

    Authentication resolves to current_user (a superuser).
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_registry] = lambda: registry
    app.dependency_overrides[get_current_user] = lambda: current_user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
