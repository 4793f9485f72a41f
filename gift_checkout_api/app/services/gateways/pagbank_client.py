# gift_checkout_api/app/services/gateways/pagbank_client.py

from datetime import timedelta
from typing import Any, Dict, List, Optional

from gift_checkout_api.app.core.exceptions import GatewayError
from gift_checkout_api.app.models.schemas import (
    CheckoutRedirect,
    Customer,
    PagBankCheckoutResponse,
    PaymentMethodId,
    PaymentResponse,
    PaymentStatus,
    PixPayment,
)
from gift_checkout_api.app.services.gateways.base import BaseGatewayClient, normalize_status
from gift_checkout_api.app.services.pix_utils import render_qr_code_base64
from gift_checkout_api.app.utilities.constants import (
    GATEWAY_PAGBANK,
    PAGBANK_CHECKOUT_METHODS,
    PAGBANK_CHECKOUT_PATH,
    PAGBANK_STATUS_MAP,
    PAGBANK_WEBHOOK_PATH,
)
from gift_checkout_api.app.utilities.helpers import generate_reference_id, only_digits, utc_now
from gift_checkout_api.app.utilities.logging_config import logger


class PagBankGateway(BaseGatewayClient):
    """
    PagBank via backend próprio (`/api/pagbank/...`). Valores em centavos.

    PIX é gerado como um checkout restrito a PIX e acompanhado pelo endpoint
    de status do checkout. O checkout hospedado (redirect) aceita todos os meios.
    """

    provider = GATEWAY_PAGBANK
    status_aliases = PAGBANK_STATUS_MAP

    def __init__(
        self,
        api_base_url: str,
        token: Optional[str] = None,
        site_url: str = "http://localhost:3000",
        soft_descriptor: str = "Casamento Bruno Laura",
        installments_limit: int = 12,
        interest_free_installments: int = 1,
        checkout_expiration_hours: int = 2,
        **kwargs: Any,
    ):
        auth_token = kwargs.pop("auth_token", None) or token
        super().__init__(api_base_url, auth_token=auth_token, **kwargs)
        self.site_url = site_url.rstrip("/")
        self.soft_descriptor = soft_descriptor
        self.installments_limit = installments_limit
        self.interest_free_installments = interest_free_installments
        self.checkout_expiration_hours = checkout_expiration_hours

    def _checkout_payload(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str],
        payment_methods: List[str],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "reference_id": gift_id or generate_reference_id(),
            "customer_modifiable": False,
            "customer": {
                "name": (customer.name or "").strip(),
                "email": customer.email,
                "tax_id": only_digits(customer.document),
            },
            "items": [
                {
                    "reference_id": gift_id,
                    "name": description,
                    "quantity": 1,
                    "unit_amount": amount_cents,
                }
            ],
            "payment_methods": [{"type": method} for method in payment_methods],
            "soft_descriptor": self.soft_descriptor,
            "redirect_url": f"{self.site_url}/confirmacao",
            "notification_urls": [f"{self.api_base_url}{PAGBANK_WEBHOOK_PATH}"],
            "payment_notification_urls": [f"{self.api_base_url}{PAGBANK_WEBHOOK_PATH}/payment"],
            "expiration_date": (utc_now() + timedelta(hours=self.checkout_expiration_hours)).isoformat(),
        }
        if "CREDIT_CARD" in payment_methods:
            payload["payment_methods_configs"] = [
                {
                    "type": "CREDIT_CARD",
                    "config_options": [
                        {"option": "INSTALLMENTS_LIMIT", "value": str(self.installments_limit)},
                        {"option": "INTEREST_FREE_INSTALLMENTS", "value": str(self.interest_free_installments)},
                    ],
                }
            ]
        return payload

    async def _post_checkout(self, payload: Dict[str, Any]) -> PagBankCheckoutResponse:
        logger.info(f"🏦 [pagbank] Criando checkout {payload['reference_id']}")
        data = self._unwrap(await self._request("POST", PAGBANK_CHECKOUT_PATH, payload))
        try:
            return PagBankCheckoutResponse.model_validate(data)
        except ValueError as e:
            raise GatewayError("Formato de resposta inválido do servidor") from e

    async def generate_pix_payment(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> PixPayment:
        payload = self._checkout_payload(amount_cents, description, customer, gift_id, ["PIX"])
        checkout = await self._post_checkout(payload)

        if not checkout.qr_codes:
            raise GatewayError("QR Code PIX não retornado pelo PagBank", code="PIX_ERROR")
        qr = checkout.qr_codes[0]

        pix = PixPayment(
            id=checkout.id,
            qr_code_base64=render_qr_code_base64(qr.text),
            pix_code=qr.text,
            amount_cents=amount_cents,
            expires_at=qr.expiration_date or checkout.expiration_date or self._default_expiration(),
            status=PaymentStatus.PENDING,
        )
        logger.info(f"✅ [pagbank] PIX {pix.id} gerado")
        return pix

    async def get_payment_status(
        self,
        payment_id: str,
        method: PaymentMethodId = PaymentMethodId.PIX,
    ) -> PaymentResponse:
        # Cobranças no cartão passam por /api/payments; checkouts têm rota própria
        if method == PaymentMethodId.CREDIT_CARD:
            return await super().get_payment_status(payment_id, method)

        data = self._unwrap(
            await self._request("GET", f"{PAGBANK_CHECKOUT_PATH}/{payment_id}/status"),
            strict=False,
        )
        status = normalize_status(data.get("status"), self.status_aliases)
        amount = data.get("amount") or {}
        payment_method = data.get("payment_method") or {}
        raw_type = payment_method.get("type")
        now = utc_now()

        return PaymentResponse(
            id=str(data.get("id") or payment_id),
            status=status,
            status_detail=data.get("status"),
            method=raw_type if raw_type in (PaymentMethodId.PIX.value, PaymentMethodId.CREDIT_CARD.value) else method,
            amount_cents=int(amount.get("value") or 0),
            created_at=data.get("created_at") or now,
            updated_at=now,
            approved_at=data.get("paid_at") or (now if status == PaymentStatus.APPROVED else None),
            installments=payment_method.get("installments"),
            gift_id=data.get("reference_id"),
        )

    async def create_checkout(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> CheckoutRedirect:
        payload = self._checkout_payload(amount_cents, description, customer, gift_id, PAGBANK_CHECKOUT_METHODS)
        checkout = await self._post_checkout(payload)

        pay_link = checkout.find_link("PAY")
        if pay_link is None:
            raise GatewayError("Link de pagamento não encontrado na resposta")

        logger.info(f"✅ [pagbank] Checkout {checkout.id} criado: {pay_link.href}")
        return CheckoutRedirect(checkout_id=checkout.id, payment_url=pay_link.href, checkout=checkout)
