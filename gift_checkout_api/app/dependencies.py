# gift_checkout_api/app/dependencies.py

from functools import lru_cache
from typing import Callable, Optional

import httpx

from .core.config import Settings, settings
from .core.exceptions import CheckoutError
from .interfaces import CardTokenizerInterface, PaymentGatewayInterface
from .services.card_tokenizer import BackendCardTokenizer
from .services.gateways.mercadopago_client import MercadoPagoGateway
from .services.gateways.pagbank_client import PagBankGateway
from .services.session_registry import SessionRegistry
from .utilities.constants import GATEWAY_PAGBANK, SUPPORTED_GATEWAYS
from .utilities.logging_config import logger


# ========== FÁBRICA DE GATEWAYS ==========

def build_tokenizer(
    config: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[CardTokenizerInterface]:
    """Tokenizador via backend, se CARD_TOKEN_ENDPOINT estiver configurado."""
    if not config.CARD_TOKEN_ENDPOINT:
        return None
    return BackendCardTokenizer(
        config.API_BASE_URL,
        config.CARD_TOKEN_ENDPOINT,
        auth_token=config.AUTH_TOKEN,
        timeout=config.HTTP_TIMEOUT,
        transport=transport,
    )


def build_gateway(
    config: Settings,
    tokenizer: Optional[CardTokenizerInterface] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    provider: Optional[str] = None,
) -> PaymentGatewayInterface:
    """
    Seleciona a implementação do gateway pela configuração (PAYMENT_GATEWAY)
    ou pelo `provider` informado na criação da sessão.
    """
    provider = (provider or config.PAYMENT_GATEWAY).strip().lower()
    if provider not in SUPPORTED_GATEWAYS:
        raise CheckoutError(
            f"Gateway não suportado: {provider}. Use um de {', '.join(SUPPORTED_GATEWAYS)}.",
            code="VALIDATION_ERROR",
            status=400,
        )

    common = dict(
        tokenizer=tokenizer if tokenizer is not None else build_tokenizer(config, transport),
        timeout=config.HTTP_TIMEOUT,
        transport=transport,
        fallback_urls=config.BACKEND_FALLBACK_URLS,
        pix_expiration_minutes=config.PIX_EXPIRATION_MINUTES,
    )

    if provider == GATEWAY_PAGBANK:
        gateway = PagBankGateway(
            config.API_BASE_URL,
            token=config.AUTH_TOKEN or config.PAGBANK_TOKEN,
            site_url=config.SITE_URL,
            soft_descriptor=config.PAGBANK_SOFT_DESCRIPTOR,
            installments_limit=config.PAGBANK_INSTALLMENTS_LIMIT,
            interest_free_installments=config.PAGBANK_INTEREST_FREE_INSTALLMENTS,
            checkout_expiration_hours=config.PAGBANK_CHECKOUT_EXPIRATION_HOURS,
            **common,
        )
    else:
        gateway = MercadoPagoGateway(
            config.API_BASE_URL,
            public_key=config.MERCADOPAGO_PUBLIC_KEY,
            auth_token=config.AUTH_TOKEN,
            **common,
        )

    logger.info(f"🏦 Gateway selecionado: {gateway.provider} ({'sandbox' if config.USE_SANDBOX else 'produção'})")
    return gateway


# ========== DEPENDENCY INJECTION COM CACHE ==========

@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    """Registro único de sessões de checkout do processo."""
    return SessionRegistry(ttl_seconds=settings.SESSION_TTL_SECONDS)


def get_settings() -> Settings:
    return settings


def get_gateway_factory() -> Callable[[Optional[str]], PaymentGatewayInterface]:
    """Fábrica usada pelas rotas; sobrescrita nos testes com gateways fake."""
    return lambda provider=None: build_gateway(settings, provider=provider)


__all__ = [
    "build_tokenizer",
    "build_gateway",
    "get_session_registry",
    "get_settings",
    "get_gateway_factory",
]
