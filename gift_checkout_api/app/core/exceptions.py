from typing import Optional


class CheckoutError(Exception):
    """
    Erro base do checkout. Carrega a mensagem crua, um código estruturado
    opcional (do backend ou do provedor) e o status HTTP quando existir.
    """

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __str__(self) -> str:
        return self.message


class GatewayError(CheckoutError):
    """Falha ao conversar com o backend de pagamentos."""


class TokenizationError(CheckoutError):
    """Falha ao tokenizar o cartão."""


class PaymentDeclinedError(CheckoutError):
    """Pagamento chegou a um status final negativo (REJECTED / CANCELLED)."""


class CheckoutValidationError(CheckoutError):
    """Dados obrigatórios ausentes ou inválidos antes de chamar o gateway."""

    def __init__(self, message: str, code: Optional[str] = "VALIDATION_ERROR", status: Optional[int] = None):
        super().__init__(message, code=code, status=status)


class CheckoutStateError(CheckoutError):
    """Ação chamada em um estado que não a permite (ex.: pagar após aprovação sem reset)."""
