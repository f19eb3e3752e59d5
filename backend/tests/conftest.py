from __future__ import annotations

import pathlib
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.billing import (
    AuthenticatedUser,
    BillingAuditEvent,
    BillingService,
    GatewayOrder,
    GatewayRequestError,
    PaymentSignatureVerifier,
)
from backend.app.billing.service import BillingEventLogger, LedgerRepository, PaymentGateway
from backend.app.billing.models import PaymentTransaction
from backend.app.entitlements import Account


GATEWAY_SECRET = "test-gateway-secret"
FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
USER_ID = "3f1c2a9e-5d7b-4c1e-9a8f-0b6d2e4f7a11"


class InMemoryLedgerRepository(LedgerRepository):
    """Ledger with the same conditional-write semantics as the SQL repository."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Account] = {}
        self.transactions: Dict[str, PaymentTransaction] = {}
        self.on_account_read: Optional[Callable[[str], None]] = None
        self.conflicts = 0
        self._lock = threading.RLock()

    def add_account(self, account: Account) -> Account:
        with self._lock:
            self.accounts[account.user_id] = account
        return account

    @contextmanager
    def atomic(self) -> Iterator["InMemoryLedgerRepository"]:
        with self._lock:
            accounts = dict(self.accounts)
            transactions = dict(self.transactions)
            try:
                yield self
            except BaseException:
                self.accounts = accounts
                self.transactions = transactions
                raise

    def get_account(self, user_id: str) -> Optional[Account]:
        with self._lock:
            account = self.accounts.get(user_id)
        if self.on_account_read is not None:
            self.on_account_read(user_id)
        return account

    def update_account(self, *, expected: Account, updated: Account) -> bool:
        with self._lock:
            current = self.accounts.get(expected.user_id)
            if (
                current is None
                or current.credits != expected.credits
                or current.subscription_expiry != expected.subscription_expiry
            ):
                self.conflicts += 1
                return False
            self.accounts[expected.user_id] = updated
            return True

    def get_transaction(self, payment_id: str) -> Optional[PaymentTransaction]:
        with self._lock:
            return self.transactions.get(payment_id)

    def insert_transaction_if_absent(self, transaction: PaymentTransaction) -> bool:
        with self._lock:
            if transaction.payment_id in self.transactions:
                return False
            self.transactions[transaction.payment_id] = transaction
            return True

    def list_transactions(self, user_id: str, *, limit: int = 20) -> Sequence[PaymentTransaction]:
        with self._lock:
            matching = [tx for tx in self.transactions.values() if tx.user_id == user_id]
        matching.sort(key=lambda tx: tx.created_at, reverse=True)
        return matching[:limit]


class FakePaymentGateway(PaymentGateway):
    def __init__(self) -> None:
        self.orders: Dict[str, GatewayOrder] = {}
        self.created: List[Dict[str, object]] = []
        self.create_error: Optional[GatewayRequestError] = None
        self.fetch_error: Optional[GatewayRequestError] = None
        self._lock = threading.Lock()

    def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder:
        if self.create_error is not None:
            raise self.create_error
        with self._lock:
            self.created.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": dict(notes)})
            order = GatewayOrder(
                id=f"order_test{len(self.created):04d}",
                amount=amount,
                currency=currency,
                receipt=receipt,
                status="created",
                notes=dict(notes),
            )
            self.orders[order.id] = order
        return order

    def register(self, order: GatewayOrder) -> GatewayOrder:
        with self._lock:
            self.orders[order.id] = order
        return order

    def fetch_order(self, order_id: str) -> GatewayOrder:
        if self.fetch_error is not None:
            raise self.fetch_error
        with self._lock:
            order = self.orders.get(order_id)
        if order is None:
            raise GatewayRequestError("The id provided does not exist", status_code=400)
        return order


class FakeEventLogger(BillingEventLogger):
    def __init__(self) -> None:
        self.events: List[BillingAuditEvent] = []
        self._lock = threading.Lock()

    def log(self, event: BillingAuditEvent) -> None:
        with self._lock:
            self.events.append(event)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(id=USER_ID, email="writer@example.com")


@pytest.fixture
def ledger(user) -> InMemoryLedgerRepository:
    repository = InMemoryLedgerRepository()
    repository.add_account(Account(user_id=user.id, credits=0))
    return repository


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def event_logger() -> FakeEventLogger:
    return FakeEventLogger()


@pytest.fixture
def verifier() -> PaymentSignatureVerifier:
    return PaymentSignatureVerifier(GATEWAY_SECRET)


@pytest.fixture
def billing_service(ledger, gateway, verifier, event_logger) -> BillingService:
    return BillingService(
        repository=ledger,
        gateway=gateway,
        signature_verifier=verifier,
        event_logger=event_logger,
        subscription_period_days=30,
        max_settle_attempts=3,
        clock=lambda: FIXED_NOW,
    )
