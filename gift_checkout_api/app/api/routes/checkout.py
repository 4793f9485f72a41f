# gift_checkout_api/app/api/routes/checkout.py

from decimal import Decimal
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ...core.config import Settings
from ...core.exceptions import CheckoutValidationError
from ...dependencies import get_gateway_factory, get_session_registry, get_settings
from ...interfaces import PaymentGatewayInterface
from ...models.schemas import (
    CheckoutSnapshot,
    CreditCardForm,
    Customer,
    InstallmentOption,
    PaymentMethodId,
)
from ...services.installments import compute_installments
from ...services.pix_utils import generate_pix_payload, render_qr_code_base64
from ...services.session_registry import SessionRegistry
from ...utilities.helpers import to_cents
from ...utilities.logging_config import logger

router = APIRouter()


# ========== PAYLOADS ==========

class CreateSessionRequest(BaseModel):
    amount: Decimal = Field(..., ge=0, description="Valor do presente em reais")
    description: str = Field(..., min_length=1, max_length=255)
    customer: Customer = Field(default_factory=Customer)
    gift_id: Optional[str] = None
    gateway: Optional[str] = Field(None, description="mercadopago ou pagbank; padrão: PAYMENT_GATEWAY")


class CreateSessionResponse(BaseModel):
    session_id: str
    checkout: CheckoutSnapshot


class SelectMethodRequest(BaseModel):
    method_id: Optional[PaymentMethodId] = None


class CardPaymentRequest(BaseModel):
    card: CreditCardForm
    installments: Optional[int] = Field(None, ge=1, le=12)


class StatusCheckRequest(BaseModel):
    payment_id: Optional[str] = None


class StaticPixRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    description: str = Field("Presente", max_length=25)
    pix_key: Optional[str] = None


class StaticPixResponse(BaseModel):
    pix_code: str
    qr_code_base64: str


# ========== SESSÕES ==========

@router.post("/sessions", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
    gateway_factory: Callable[[Optional[str]], PaymentGatewayInterface] = Depends(get_gateway_factory),
):
    await registry.evict_expired()
    gateway = gateway_factory(body.gateway)
    session_id = registry.create(
        gateway,
        to_cents(body.amount),
        body.description,
        body.customer,
        gift_id=body.gift_id,
    )
    return CreateSessionResponse(session_id=session_id, checkout=registry.snapshot(session_id))


@router.get("/sessions/{session_id}", response_model=CheckoutSnapshot)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    return registry.snapshot(session_id)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    await registry.discard(session_id)


@router.post("/sessions/{session_id}/method", response_model=CheckoutSnapshot)
async def select_method(
    session_id: str,
    body: SelectMethodRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    registry.get(session_id).select_method(body.method_id)
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/pix", response_model=CheckoutSnapshot)
async def generate_pix(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    """
    Gera o PIX e inicia o polling em segundo plano. Erros de geração ficam
    em `error` / `friendly_error` do snapshot.
    """
    await registry.get(session_id).generate_pix_payment()
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/card", response_model=CheckoutSnapshot)
async def pay_with_card(
    session_id: str,
    body: CardPaymentRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    await registry.get(session_id).process_credit_card_payment(body.card, body.installments)
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/hosted-checkout", response_model=CheckoutSnapshot)
async def hosted_checkout(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    await registry.get(session_id).create_checkout()
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/status", response_model=CheckoutSnapshot)
async def check_status(
    session_id: str,
    body: Optional[StatusCheckRequest] = None,
    registry: SessionRegistry = Depends(get_session_registry),
):
    await registry.get(session_id).check_payment_status(body.payment_id if body else None)
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/reset", response_model=CheckoutSnapshot)
async def reset_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    registry.get(session_id).reset()
    return registry.snapshot(session_id)


@router.post("/sessions/{session_id}/clear-error", response_model=CheckoutSnapshot)
async def clear_error(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    registry.get(session_id).clear_error()
    return registry.snapshot(session_id)


# ========== UTILITÁRIOS ==========

@router.get("/installments", response_model=List[InstallmentOption])
async def list_installments(amount: Decimal = Query(..., description="Valor em reais")):
    return compute_installments(amount)


@router.post("/pix/static", response_model=StaticPixResponse)
async def static_pix(body: StaticPixRequest, config: Settings = Depends(get_settings)):
    """BR Code estático a partir da chave PIX configurada (sem backend)."""
    pix_key = body.pix_key or config.PIX_KEY
    if not pix_key:
        raise CheckoutValidationError("Chave PIX não configurada")

    pix_code = generate_pix_payload(
        config.PIX_RECIPIENT_NAME,
        pix_key,
        body.amount,
        body.description,
        city=config.PIX_CITY,
    )
    logger.info(f"🔑 BR Code estático gerado para {body.amount}")
    return StaticPixResponse(pix_code=pix_code, qr_code_base64=render_qr_code_base64(pix_code))


@router.get("/connection")
async def test_connection(
    gateway: Optional[str] = None,
    gateway_factory: Callable[[Optional[str]], PaymentGatewayInterface] = Depends(get_gateway_factory),
):
    client = gateway_factory(gateway)
    url = await client.test_connection()
    return {"status": "OK", "gateway": client.provider, "backend_url": url}
