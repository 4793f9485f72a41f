# gift_checkout_api/app/interfaces/__init__.py

from typing import Any, Optional, Protocol, runtime_checkable

from gift_checkout_api.app.models.schemas import (
    CheckoutRedirect,
    CreditCardForm,
    Customer,
    PaymentMethodId,
    PaymentResponse,
    PaymentToken,
    PixPayment,
)


# ========== CAPACIDADES INJETADAS ==========

@runtime_checkable
class CardTokenizerInterface(Protocol):
    """Converte os dados do cartão em um token de uso único."""

    async def tokenize(self, card_form: CreditCardForm) -> PaymentToken: ...


class CheckoutCallbacksInterface(Protocol):
    """
    Contrato de callbacks exposto ao front-end. Cada callback pode ser uma
    função comum ou uma corrotina.
    """

    def on_success(self, payment: PaymentResponse) -> Any: ...

    def on_pending(self, payment: PaymentResponse) -> Any: ...

    def on_error(self, error: Exception) -> Any: ...


# ========== GATEWAY DE PAGAMENTO ==========

class PaymentGatewayInterface(Protocol):
    """Interface única para Mercado Pago e PagBank."""

    provider: str

    async def generate_pix_payment(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> PixPayment: ...

    async def create_payment_token(self, card_form: CreditCardForm) -> PaymentToken: ...

    async def charge_credit_card(
        self,
        token: PaymentToken,
        installments: int,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
        card_form: Optional[CreditCardForm] = None,
    ) -> PaymentResponse: ...

    async def get_payment_status(
        self,
        payment_id: str,
        method: PaymentMethodId = PaymentMethodId.PIX,
    ) -> PaymentResponse: ...

    async def create_checkout(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> CheckoutRedirect: ...

    async def test_connection(self) -> str: ...
