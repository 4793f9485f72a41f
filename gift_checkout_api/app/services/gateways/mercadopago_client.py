# gift_checkout_api/app/services/gateways/mercadopago_client.py

from typing import Any, Dict, Optional

from gift_checkout_api.app.core.exceptions import GatewayError, TokenizationError
from gift_checkout_api.app.models.schemas import (
    CreditCardForm,
    Customer,
    PaymentMethodId,
    PaymentToken,
    PixPayment,
)
from gift_checkout_api.app.services.card_info import get_card_info
from gift_checkout_api.app.services.gateways.base import (
    BaseGatewayClient,
    guest_customer_payload,
    normalize_status,
)
from gift_checkout_api.app.services.pix_utils import render_qr_code_base64
from gift_checkout_api.app.utilities.constants import (
    GATEWAY_MERCADOPAGO,
    MERCADOPAGO_STATUS_ALIASES,
    PAYMENTS_PATH,
)
from gift_checkout_api.app.utilities.helpers import cents_to_float
from gift_checkout_api.app.utilities.logging_config import logger


class MercadoPagoGateway(BaseGatewayClient):
    """
    Mercado Pago via backend próprio (`/api/payments`). Valores trafegam em
    reais; a conversão para centavos acontece aqui.

    A tokenização do cartão é delegada ao `tokenizer` injetado (SDK do
    Mercado Pago no front-end ou endpoint do backend).
    """

    provider = GATEWAY_MERCADOPAGO
    status_aliases = MERCADOPAGO_STATUS_ALIASES

    def __init__(self, api_base_url: str, public_key: Optional[str] = None, **kwargs: Any):
        auth_token = kwargs.pop("auth_token", None) or public_key
        super().__init__(api_base_url, auth_token=auth_token, **kwargs)
        self.public_key = public_key

    async def generate_pix_payment(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> PixPayment:
        payload: Dict[str, Any] = {
            "method": PaymentMethodId.PIX.value,
            "amount": cents_to_float(amount_cents),
            "description": description,
            "customer": guest_customer_payload(customer),
        }
        if gift_id:
            payload["giftId"] = gift_id

        logger.info(f"🔄 [mercadopago] Gerando PIX de {amount_cents} centavos para '{description}'")
        data = self._unwrap(await self._request("POST", PAYMENTS_PATH, payload))

        payment_id = data.get("id")
        if payment_id is None:
            raise GatewayError("Formato de resposta inválido do servidor")

        pix_code = data.get("pixQrCode") or ""
        qr_code_base64 = data.get("pixQrCodeBase64") or ""
        if pix_code and not qr_code_base64:
            qr_code_base64 = render_qr_code_base64(pix_code)

        pix = PixPayment(
            id=str(payment_id),
            qr_code_base64=qr_code_base64,
            pix_code=pix_code,
            amount_cents=amount_cents,
            expires_at=data.get("expiresAt") or self._default_expiration(),
            status=normalize_status(data.get("status"), self.status_aliases),
        )
        logger.info(f"✅ [mercadopago] PIX {pix.id} gerado, expira em {pix.expires_at.isoformat()}")
        return pix

    async def create_payment_token(self, card_form: CreditCardForm) -> PaymentToken:
        if self.tokenizer is None:
            raise TokenizationError(
                "SDK do Mercado Pago não foi carregado. Configure um tokenizador de cartão.",
                code="SDK_NOT_LOADED",
            )
        return await super().create_payment_token(card_form)

    def _charge_payload(self, token, installments, amount_cents, description, customer, gift_id, card_form):
        payload = super()._charge_payload(token, installments, amount_cents, description, customer, gift_id, card_form)
        if card_form is not None:
            payload["paymentMethodId"] = get_card_info(card_form.card_number).payment_method_id
        return payload
