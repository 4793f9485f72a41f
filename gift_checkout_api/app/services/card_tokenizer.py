# gift_checkout_api/app/services/card_tokenizer.py

from typing import Optional

import httpx

from gift_checkout_api.app.core.exceptions import TokenizationError
from gift_checkout_api.app.models.schemas import CreditCardForm, PaymentToken
from gift_checkout_api.app.utilities.constants import GATEWAY_TIMEOUT
from gift_checkout_api.app.utilities.logging_config import logger


class BackendCardTokenizer:
    """
    Tokeniza o cartão chamando um endpoint do backend (ex.: `/api/mercadopago/create-token`).

    Implementa `CardTokenizerInterface`. O número do cartão nunca é logado.
    """

    def __init__(
        self,
        api_base_url: str,
        endpoint: str,
        auth_token: Optional[str] = None,
        timeout: float = GATEWAY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = f"{api_base_url.rstrip('/')}{endpoint}"
        self.auth_token = auth_token
        self.timeout = timeout
        self.transport = transport

    async def tokenize(self, card_form: CreditCardForm) -> PaymentToken:
        payload = {
            "card_number": card_form.card_number,
            "security_code": card_form.cvv,
            "expiration_month": card_form.expiration_month,
            "expiration_year": card_form.expiration_year,
            "cardholder": {
                "name": card_form.holder_name,
                "identification": {
                    "type": card_form.document_type,
                    "number": card_form.document_number,
                },
            },
        }
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        logger.info(f"🔐 Tokenizando cartão final {card_form.card_number[-4:]}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ Erro HTTP na tokenização: {e.response.status_code} - {e.response.text}")
            raise TokenizationError(
                f"Erro ao processar cartão (token): HTTP {e.response.status_code}",
                status=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise TokenizationError("Tempo esgotado ao tokenizar o cartão", code="TIMEOUT") from e
        except httpx.TransportError as e:
            raise TokenizationError(f"Falha de conexão ao tokenizar o cartão (network): {e}", code="NETWORK_ERROR") from e
        except ValueError as e:
            raise TokenizationError("Resposta inválida ao tokenizar o cartão") from e

        if isinstance(data, dict) and "success" in data:
            data = data.get("data") or {}
        if not isinstance(data, dict):
            raise TokenizationError("Resposta inválida ao tokenizar o cartão")
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise TokenizationError(message or "Erro ao processar cartão")
        if not data.get("id"):
            raise TokenizationError("Token do cartão não retornado")

        return PaymentToken(id=str(data["id"]), card_id=data.get("card_id"))
