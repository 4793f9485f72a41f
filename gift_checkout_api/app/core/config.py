from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from loguru import logger


class Settings(BaseSettings):
    """Configurações globais do checkout carregadas de variáveis de ambiente."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # 🔹 Backend de pagamentos
    API_BASE_URL: str = Field("http://localhost:3001")
    BACKEND_FALLBACK_URLS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3001", "http://localhost:3000", "http://localhost:8000"]
    )
    HTTP_TIMEOUT: float = Field(30.0)

    # 🔹 Gateway ativo ("mercadopago" ou "pagbank")
    PAYMENT_GATEWAY: str = Field("mercadopago")

    # 🔹 Credenciais
    MERCADOPAGO_PUBLIC_KEY: Optional[str] = None
    PAGBANK_TOKEN: Optional[str] = None
    AUTH_TOKEN: Optional[str] = None

    # 🔹 Controle de Ambiente
    USE_SANDBOX: bool = Field(True)

    # 🔹 Tokenização de cartão via backend
    CARD_TOKEN_ENDPOINT: Optional[str] = Field("/api/mercadopago/create-token")

    # 🔹 Polling de status
    POLL_INTERVAL_SECONDS: float = Field(5.0)
    POLL_TIMEOUT_SECONDS: float = Field(600.0)

    # 🔹 Sessões sem acesso há mais que isso são descartadas
    SESSION_TTL_SECONDS: float = Field(3600.0)

    # 🔹 PIX
    PIX_EXPIRATION_MINUTES: int = Field(30)
    PIX_KEY: Optional[str] = None
    PIX_RECIPIENT_NAME: str = Field("CASAMENTO")
    PIX_CITY: str = Field("SAO PAULO")

    # 🔹 Checkout hospedado PagBank
    PAGBANK_CHECKOUT_EXPIRATION_HOURS: int = Field(2)
    PAGBANK_SOFT_DESCRIPTOR: str = Field("Casamento Bruno Laura")
    PAGBANK_INSTALLMENTS_LIMIT: int = Field(12)
    PAGBANK_INTEREST_FREE_INSTALLMENTS: int = Field(1)
    SITE_URL: str = Field("http://localhost:3000")

    # 🔹 Logs e depuração
    LOG_LEVEL: str = Field("INFO")
    LOG_DIR: Optional[str] = None
    DEBUG: bool = Field(False)


try:
    settings = Settings()
except ValidationError as e:
    logger.error(f"❌ Erro na configuração: {e}")
    raise
