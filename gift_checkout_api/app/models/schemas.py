from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from typing import Annotated, List, Literal, Optional
from decimal import Decimal
from datetime import datetime
from enum import Enum

from gift_checkout_api.app.utilities.helpers import from_cents, only_digits


class PaymentMethodId(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    IN_PROCESS = "IN_PROCESS"


TERMINAL_STATUSES = frozenset({PaymentStatus.APPROVED, PaymentStatus.REJECTED, PaymentStatus.CANCELLED})


class CheckoutState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PIX_PENDING = "pix_pending"
    CARD_PROCESSING = "card_processing"
    CARD_PENDING = "card_pending"
    TERMINAL_APPROVED = "terminal_approved"
    TERMINAL_REJECTED = "terminal_rejected"
    TERMINAL_CANCELLED = "terminal_cancelled"
    ERROR = "error"


class ErrorCategory(str, Enum):
    NETWORK = "network"
    SERVER_UNAVAILABLE = "server-unavailable"
    PIX_GENERATION_FAILED = "pix-generation-failed"
    PIX_EXPIRED = "pix-expired"
    CARD_INVALID = "card-invalid"
    CARD_REJECTED = "card-rejected"
    INSUFFICIENT_FUNDS = "insufficient-funds"
    VALIDATION = "validation"
    CUSTOMER_NAME_REQUIRED = "customer-name-required"
    GIFT_UNAVAILABLE = "gift-unavailable"
    GIFT_NOT_FOUND = "gift-not-found"
    MERCADOPAGO_SDK_ERROR = "mercadopago-sdk-error"
    TIMEOUT = "timeout"
    AUTH_INVALID_CREDENTIALS = "auth-invalid-credentials"
    USER_NOT_FOUND = "user-not-found"
    EMAIL_EXISTS = "email-exists"
    SESSION_EXPIRED = "session-expired"
    UNAUTHORIZED = "unauthorized"
    WEAK_PASSWORD = "weak-password"
    REGISTRATION_FAILED = "registration-failed"
    UNKNOWN = "unknown"


class PaymentMethod(BaseModel):
    """Meio de pagamento exibido no checkout. Definido na configuração."""
    model_config = ConfigDict(frozen=True)

    id: PaymentMethodId
    name: str
    icon: str = "💳"
    enabled: bool = True


DEFAULT_PAYMENT_METHODS = (
    PaymentMethod(id=PaymentMethodId.PIX, name="PIX"),
    PaymentMethod(id=PaymentMethodId.CREDIT_CARD, name="Cartão de Crédito"),
)


class Customer(BaseModel):
    """
    Convidado que está presenteando.
    """
    name: str = ""
    email: Optional[str] = None
    document: Optional[str] = None

    @field_validator("document", mode="before")
    @classmethod
    def normalize_document(cls, v):
        """Remove formatação de CPF/CNPJ se presente."""
        if v:
            return only_digits(str(v))
        return v


class PixPayment(BaseModel):
    id: str
    qr_code_base64: str = ""
    pix_code: str = ""
    amount_cents: int
    expires_at: datetime
    status: PaymentStatus = PaymentStatus.PENDING

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


class InstallmentOption(BaseModel):
    installments: int
    installment_amount: Decimal
    total_amount: Decimal
    total_interest: Decimal
    interest_rate: Decimal  # em %, ex.: 12.5


class PaymentToken(BaseModel):
    """Referência opaca e de uso único para o cartão tokenizado."""
    id: str
    card_id: Optional[str] = None


class CreditCardForm(BaseModel):
    holder_name: Annotated[str, StringConstraints(min_length=2, max_length=100, strip_whitespace=True)]
    card_number: str
    expiration_month: str
    expiration_year: str
    cvv: Annotated[str, StringConstraints(min_length=3, max_length=4)]
    document_type: Literal["CPF", "CNPJ"] = "CPF"
    document_number: str
    installments: int = 1

    @field_validator("card_number", mode="before")
    @classmethod
    def strip_card_number(cls, v):
        return "".join(str(v).split())

    @field_validator("document_number", mode="before")
    @classmethod
    def normalize_document(cls, v):
        return only_digits(str(v))

    @field_validator("expiration_month", mode="before")
    @classmethod
    def normalize_month(cls, v):
        try:
            month = int(v)
        except (TypeError, ValueError):
            raise ValueError(f"Mês de validade inválido: {v}")
        if not 1 <= month <= 12:
            raise ValueError(f"Mês de validade inválido: {v}")
        return f"{month:02d}"


class PaymentResponse(BaseModel):
    """
    Resultado canônico de qualquer tentativa de pagamento (PIX ou cartão),
    independente do gateway que o produziu.
    """
    id: str
    status: PaymentStatus
    status_detail: Optional[str] = None
    method: PaymentMethodId
    amount_cents: int
    description: str = ""
    customer: Customer = Field(default_factory=Customer)
    created_at: datetime
    updated_at: datetime
    approved_at: Optional[datetime] = None
    installments: Optional[int] = None
    pix_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    expires_at: Optional[datetime] = None
    gift_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


class FriendlyError(BaseModel):
    """Erro classificado para exibição ao convidado."""
    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    title: str
    message: str
    icon: str
    type: str
    can_retry: bool
    original_error: str = ""


# ========== PAGBANK ==========

class PagBankLink(BaseModel):
    rel: str
    href: str
    method: Optional[str] = None


class PagBankQrCode(BaseModel):
    id: Optional[str] = None
    text: str
    expiration_date: Optional[datetime] = None
    links: List[PagBankLink] = Field(default_factory=list)


class PagBankCheckoutResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    reference_id: Optional[str] = None
    created_at: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    links: List[PagBankLink] = Field(default_factory=list)
    qr_codes: List[PagBankQrCode] = Field(default_factory=list)

    def find_link(self, rel: str) -> Optional[PagBankLink]:
        return next((link for link in self.links if link.rel == rel), None)


class CheckoutRedirect(BaseModel):
    """Checkout hospedado: o navegador deve ser redirecionado para `payment_url`."""
    checkout_id: str
    payment_url: str
    checkout: PagBankCheckoutResponse


# ========== SESSÃO ==========

class CheckoutEvent(BaseModel):
    kind: Literal["success", "pending", "error"]
    payment_id: Optional[str] = None
    message: Optional[str] = None
    at: datetime


class CheckoutSnapshot(BaseModel):
    session_id: Optional[str] = None
    state: CheckoutState
    is_loading: bool
    processing_step: Optional[str] = None
    amount_cents: int
    description: str
    gift_id: Optional[str] = None
    error: Optional[str] = None
    friendly_error: Optional[FriendlyError] = None
    payment_methods: List[PaymentMethod]
    selected_method: Optional[PaymentMethod] = None
    pix_payment: Optional[PixPayment] = None
    installment_options: List[InstallmentOption]
    payment_status: Optional[PaymentResponse] = None
    payment_url: Optional[str] = None
    events: List[CheckoutEvent] = Field(default_factory=list)
