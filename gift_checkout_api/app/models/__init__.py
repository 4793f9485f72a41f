from .schemas import (
    PaymentMethodId,
    PaymentStatus,
    CheckoutState,
    ErrorCategory,
    PaymentMethod,
    DEFAULT_PAYMENT_METHODS,
    Customer,
    PixPayment,
    InstallmentOption,
    PaymentToken,
    CreditCardForm,
    PaymentResponse,
    FriendlyError,
    CheckoutRedirect,
    CheckoutSnapshot,
)

__all__ = [
    "PaymentMethodId",
    "PaymentStatus",
    "CheckoutState",
    "ErrorCategory",
    "PaymentMethod",
    "DEFAULT_PAYMENT_METHODS",
    "Customer",
    "PixPayment",
    "InstallmentOption",
    "PaymentToken",
    "CreditCardForm",
    "PaymentResponse",
    "FriendlyError",
    "CheckoutRedirect",
    "CheckoutSnapshot",
]
