# gift_checkout_api/app/services/gateways/base.py

import json
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional

import httpx

from gift_checkout_api.app.core.exceptions import GatewayError, TokenizationError
from gift_checkout_api.app.interfaces import CardTokenizerInterface
from gift_checkout_api.app.models.schemas import (
    CheckoutRedirect,
    CreditCardForm,
    Customer,
    PaymentMethodId,
    PaymentResponse,
    PaymentStatus,
    PaymentToken,
    PixPayment,
)
from gift_checkout_api.app.utilities.constants import (
    DEFAULT_DOCUMENT,
    GATEWAY_TIMEOUT,
    GUEST_EMAIL_DOMAIN,
    PAYMENTS_PATH,
)
from gift_checkout_api.app.utilities.helpers import cents_to_float, mask_token, to_cents, utc_now
from gift_checkout_api.app.utilities.logging_config import logger


def normalize_status(value: Any, aliases: Optional[Mapping[str, str]] = None) -> PaymentStatus:
    """
    Converte o status cru do provedor para `PaymentStatus`.
    Status desconhecidos são tratados como PENDING para que o polling continue.
    """
    raw = str(value or "").strip().upper()
    raw = (aliases or {}).get(raw, raw)
    try:
        return PaymentStatus(raw)
    except ValueError:
        logger.warning(f"⚠️ Status de pagamento desconhecido '{value}', tratando como PENDING")
        return PaymentStatus.PENDING


def guest_customer_payload(customer: Customer) -> Dict[str, str]:
    """Dados do convidado com os mesmos fallbacks usados pelo backend de presentes."""
    name = (customer.name or "").strip()
    return {
        "name": name,
        "email": customer.email or f"{''.join(name.lower().split())}@{GUEST_EMAIL_DOMAIN}",
        "document": customer.document or DEFAULT_DOCUMENT,
    }


class BaseGatewayClient:
    """
    Cliente HTTP comum aos gateways. Cada requisição abre um `httpx.AsyncClient`
    próprio; `transport` permite injetar um transporte fake nos testes.
    """

    provider = "base"
    status_aliases: Mapping[str, str] = {}

    def __init__(
        self,
        api_base_url: str,
        auth_token: Optional[str] = None,
        tokenizer: Optional[CardTokenizerInterface] = None,
        timeout: float = GATEWAY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        fallback_urls: Optional[List[str]] = None,
        pix_expiration_minutes: int = 30,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.auth_token = auth_token
        self.tokenizer = tokenizer
        self.timeout = timeout
        self.transport = transport
        self.fallback_urls = fallback_urls or []
        self.pix_expiration_minutes = pix_expiration_minutes

    # ─── HTTP ────────────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_base_url}{path}"
        logger.debug(f"📡 [{self.provider}] {method} {url}")
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.error(f"⏱️ [{self.provider}] Timeout em {method} {url}: {e}")
            raise GatewayError("Tempo esgotado ao contactar o servidor de pagamentos", code="TIMEOUT") from e
        except httpx.TransportError as e:
            logger.error(f"🌐 [{self.provider}] Falha de conexão em {method} {url}: {e}")
            raise GatewayError(f"Falha de conexão com o servidor (network): {e}", code="NETWORK_ERROR") from e

        if response.is_error:
            raise self._error_from_response(response)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"❌ [{self.provider}] Resposta não-JSON ({response.status_code}): {response.text[:200]}")
            raise GatewayError("Formato de resposta inválido do servidor", status=response.status_code) from e

    def _error_from_response(self, response: httpx.Response) -> GatewayError:
        """Extrai a mensagem de erro do corpo (JSON ou texto) de uma resposta não-2xx."""
        status = response.status_code
        text = response.text
        message = f"Erro HTTP: {status}"
        code = None
        try:
            data = json.loads(text)
        except ValueError:
            message = text or message
        else:
            if isinstance(data, dict):
                errors = data.get("error_messages")
                if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                    first = errors[0]
                    message = first.get("description") or first.get("detail") or first.get("message") or message
                    code = first.get("code")
                else:
                    raw_error = data.get("error")
                    message = data.get("message") or (raw_error if isinstance(raw_error, str) else None) or message
                    code = data.get("code")
            elif isinstance(data, str) and data:
                message = data

        logger.error(f"❌ [{self.provider}] HTTP {status}: {text[:500]}")
        return GatewayError(str(message), code=str(code) if code else None, status=status)

    @staticmethod
    def _unwrap(payload: Any, strict: bool = True) -> Dict[str, Any]:
        """
        O backend responde `{success: true, data: {...}}`. Com `strict=False`
        também aceita o objeto de pagamento sem envelope.
        """
        if isinstance(payload, dict) and "success" in payload:
            if not payload.get("success") or not payload.get("data"):
                raise GatewayError("Formato de resposta inválido do servidor")
            return payload["data"]
        if strict or not isinstance(payload, dict):
            raise GatewayError("Formato de resposta inválido do servidor")
        return payload

    # ─── Normalização ────────────────────────────────────────────────────────

    def _normalize_payment(
        self,
        data: Dict[str, Any],
        method: PaymentMethodId,
        amount_cents: Optional[int] = None,
        description: str = "",
        customer: Optional[Customer] = None,
        gift_id: Optional[str] = None,
    ) -> PaymentResponse:
        if data.get("id") is None:
            raise GatewayError("Formato de resposta inválido do servidor")
        raw_amount = data.get("amount", data.get("transaction_amount"))
        now = utc_now()
        raw_customer = data.get("customer")
        return PaymentResponse(
            id=str(data["id"]),
            status=normalize_status(data.get("status"), self.status_aliases),
            status_detail=data.get("statusDetail") or data.get("status_detail"),
            method=data.get("method") or method,
            amount_cents=to_cents(raw_amount) if raw_amount is not None else (amount_cents or 0),
            description=data.get("description") or description,
            customer=Customer(**raw_customer) if isinstance(raw_customer, dict) else (customer or Customer()),
            created_at=data.get("createdAt") or data.get("date_created") or now,
            updated_at=data.get("updatedAt") or data.get("date_updated") or now,
            approved_at=data.get("approvedAt") or data.get("date_approved"),
            installments=data.get("installments"),
            pix_code=data.get("pixQrCode"),
            qr_code_base64=data.get("pixQrCodeBase64"),
            expires_at=data.get("expiresAt"),
            gift_id=data.get("giftId") or gift_id,
        )

    def _default_expiration(self):
        return utc_now() + timedelta(minutes=self.pix_expiration_minutes)

    # ─── Operações comuns ────────────────────────────────────────────────────

    async def generate_pix_payment(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> PixPayment:
        raise NotImplementedError

    async def create_payment_token(self, card_form: CreditCardForm) -> PaymentToken:
        if self.tokenizer is None:
            raise TokenizationError("Tokenização de cartão não configurada para este gateway", code="CARD_INVALID")
        token = await self.tokenizer.tokenize(card_form)
        logger.info(f"🔐 [{self.provider}] Cartão tokenizado: {mask_token(token.id)}")
        return token

    def _charge_payload(
        self,
        token: PaymentToken,
        installments: int,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str],
        card_form: Optional[CreditCardForm],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "method": PaymentMethodId.CREDIT_CARD.value,
            "amount": cents_to_float(amount_cents),
            "description": description,
            "customer": guest_customer_payload(customer),
            "cardToken": token.id,
            "installments": installments,
        }
        if gift_id:
            payload["giftId"] = gift_id
        return payload

    async def charge_credit_card(
        self,
        token: PaymentToken,
        installments: int,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
        card_form: Optional[CreditCardForm] = None,
    ) -> PaymentResponse:
        payload = self._charge_payload(token, installments, amount_cents, description, customer, gift_id, card_form)
        logger.info(f"💳 [{self.provider}] Enviando cobrança no cartão: {installments}x, {amount_cents} centavos")

        data = self._unwrap(await self._request("POST", PAYMENTS_PATH, payload))
        payment = self._normalize_payment(
            data,
            method=PaymentMethodId.CREDIT_CARD,
            amount_cents=amount_cents,
            description=description,
            customer=customer,
            gift_id=gift_id,
        )
        if payment.installments is None:
            payment = payment.model_copy(update={"installments": installments})
        logger.info(f"📥 [{self.provider}] Cobrança {payment.id} com status {payment.status.value}")
        return payment

    async def get_payment_status(
        self,
        payment_id: str,
        method: PaymentMethodId = PaymentMethodId.PIX,
    ) -> PaymentResponse:
        data = self._unwrap(await self._request("GET", f"{PAYMENTS_PATH}/{payment_id}"), strict=False)
        return self._normalize_payment(data, method=method)

    async def create_checkout(
        self,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
    ) -> CheckoutRedirect:
        raise GatewayError(f"O gateway {self.provider} não suporta checkout hospedado", code="UNSUPPORTED")

    async def test_connection(self) -> str:
        """
        Procura um backend acessível entre a URL configurada e as URLs de fallback.
        2xx ou 404 em GET /api/payments indicam que o servidor está de pé.
        """
        candidates: List[str] = []
        for url in [self.api_base_url, *self.fallback_urls]:
            url = url.rstrip("/")
            if url not in candidates:
                candidates.append(url)

        async with self._client() as client:
            for url in candidates:
                logger.info(f"🔍 Testando conectividade: {url}")
                try:
                    response = await client.get(f"{url}{PAYMENTS_PATH}", headers=self._headers())
                except httpx.HTTPError as e:
                    logger.warning(f"❌ Falha: {url} - {e}")
                    continue
                if response.is_success or response.status_code == 404:
                    logger.info(f"✅ Backend encontrado: {url}")
                    return url
                logger.warning(f"❌ Falha: {url} - HTTP {response.status_code}")

        raise GatewayError("Servidor backend não encontrado. Verifique se está rodando.", code="NETWORK_ERROR")
