import asyncio
from datetime import timedelta
from typing import List, Optional

import pytest

from gift_checkout_api.app.core.exceptions import GatewayError
from gift_checkout_api.app.models.schemas import (
    CheckoutRedirect,
    CreditCardForm,
    Customer,
    PagBankCheckoutResponse,
    PaymentMethodId,
    PaymentResponse,
    PaymentStatus,
    PaymentToken,
    PixPayment,
)
from gift_checkout_api.app.utilities.helpers import utc_now


class FakeGateway:
    """Gateway em memória: respostas configuráveis por teste."""

    provider = "fake"

    def __init__(self):
        self.calls: List[str] = []
        self.pix_error: Optional[Exception] = None
        self.pix_delay = 0.0
        self.pix_count = 0
        self.charge_status = PaymentStatus.APPROVED
        self.charge_status_detail: Optional[str] = None
        self.charge_error: Optional[Exception] = None
        self.statuses: List = []
        self.status_calls: List[str] = []
        self.status_delays: List[float] = []
        self.checkout_url: Optional[str] = None
        self.checkout_amounts: List[int] = []

    def _payment(self, payment_id, status, method, amount_cents=15000, status_detail=None):
        now = utc_now()
        return PaymentResponse(
            id=payment_id,
            status=status,
            status_detail=status_detail,
            method=method,
            amount_cents=amount_cents,
            created_at=now,
            updated_at=now,
        )

    async def generate_pix_payment(self, amount_cents, description, customer, gift_id=None):
        self.calls.append("generate_pix_payment")
        if self.pix_delay:
            await asyncio.sleep(self.pix_delay)
        if self.pix_error is not None:
            raise self.pix_error
        self.pix_count += 1
        return PixPayment(
            id=f"pix-{self.pix_count}",
            qr_code_base64="iVBORw0KGgo=",
            pix_code="00020126580014BR.GOV.BCB.PIX",
            amount_cents=amount_cents,
            expires_at=utc_now() + timedelta(minutes=30),
        )

    async def create_payment_token(self, card_form):
        self.calls.append("create_payment_token")
        return PaymentToken(id="tok_1234567890abcdef")

    async def charge_credit_card(self, token, installments, amount_cents, description, customer,
                                 gift_id=None, card_form=None):
        self.calls.append("charge_credit_card")
        if self.charge_error is not None:
            raise self.charge_error
        return self._payment(
            "card-1",
            self.charge_status,
            PaymentMethodId.CREDIT_CARD,
            amount_cents,
            status_detail=self.charge_status_detail,
        )

    async def get_payment_status(self, payment_id, method=PaymentMethodId.PIX):
        self.status_calls.append(payment_id)
        current = self.statuses.pop(0) if len(self.statuses) > 1 else (self.statuses[0] if self.statuses else PaymentStatus.PENDING)
        delay = self.status_delays.pop(0) if self.status_delays else 0.0
        if delay:
            await asyncio.sleep(delay)
        if isinstance(current, Exception):
            raise current
        return self._payment(payment_id, current, method)

    async def create_checkout(self, amount_cents, description, customer, gift_id=None):
        self.calls.append("create_checkout")
        self.checkout_amounts.append(amount_cents)
        if self.checkout_url is None:
            raise GatewayError("O gateway fake não suporta checkout hospedado", code="UNSUPPORTED")
        checkout = PagBankCheckoutResponse(id="CHEC_1", links=[{"rel": "PAY", "href": self.checkout_url}])
        return CheckoutRedirect(checkout_id=checkout.id, payment_url=self.checkout_url, checkout=checkout)

    async def test_connection(self):
        return "http://fake-backend"


class CallbackRecorder:
    def __init__(self):
        self.successes: List[PaymentResponse] = []
        self.pendings: List[PaymentResponse] = []
        self.errors: List[Exception] = []

    def on_success(self, payment):
        self.successes.append(payment)

    def on_pending(self, payment):
        self.pendings.append(payment)

    def on_error(self, error):
        self.errors.append(error)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def callbacks():
    return CallbackRecorder()


@pytest.fixture
def customer():
    return Customer(name="Maria Convidada", email="maria@example.com", document="123.456.789-09")


@pytest.fixture
def card_form():
    return CreditCardForm(
        holder_name="MARIA CONVIDADA",
        card_number="4111 1111 1111 1111",
        expiration_month="7",
        expiration_year="2030",
        cvv="123",
        document_type="CPF",
        document_number="123.456.789-09",
    )
