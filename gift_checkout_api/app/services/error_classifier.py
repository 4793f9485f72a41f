# gift_checkout_api/app/services/error_classifier.py

"""
Classificação de erros do checkout em mensagens amigáveis ao convidado.

Códigos estruturados (do backend ou o `status_detail` do Mercado Pago) têm
prioridade, exceto sobre uma recusa permanente (HTTP 402, "rejected"), que só
cede a outro código de recusa permanente. Sem código, a classificação cai para
heurísticas sobre o texto da mensagem e o status HTTP, em ordem de prioridade.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from gift_checkout_api.app.models.schemas import ErrorCategory, FriendlyError

# 🔹 Catálogo de mensagens (título, mensagem, ícone, tipo)
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.NETWORK: {
        "title": "Problema de Conexão",
        "message": "Não foi possível conectar com o servidor. Verifique sua conexão com a internet e tente novamente.",
        "icon": "🌐",
        "type": "network",
    },
    ErrorCategory.SERVER_UNAVAILABLE: {
        "title": "Servidor Indisponível",
        "message": "O sistema de pagamentos está temporariamente indisponível. Tente novamente em alguns minutos.",
        "icon": "🔧",
        "type": "server",
    },
    ErrorCategory.PIX_GENERATION_FAILED: {
        "title": "Erro ao Gerar PIX",
        "message": "Não foi possível gerar o código PIX para seu presente. Verifique os dados e tente novamente.",
        "icon": "💳",
        "type": "pix",
    },
    ErrorCategory.PIX_EXPIRED: {
        "title": "PIX Expirado",
        "message": "O código PIX expirou. Gere um novo código para continuar com a compra do presente.",
        "icon": "⏰",
        "type": "pix",
    },
    ErrorCategory.CARD_INVALID: {
        "title": "Dados do Cartão Inválidos",
        "message": "Por favor, verifique o número do cartão, CVV e data de validade. Todos os campos são obrigatórios.",
        "icon": "💳",
        "type": "card",
    },
    ErrorCategory.CARD_REJECTED: {
        "title": "Pagamento Não Autorizado",
        "message": "O pagamento foi rejeitado pelo banco emissor. Tente outro cartão ou entre em contato com seu banco.",
        "icon": "❌",
        "type": "card",
    },
    ErrorCategory.INSUFFICIENT_FUNDS: {
        "title": "Saldo Insuficiente",
        "message": "Não há saldo disponível no cartão para esta compra. Tente outro cartão ou forma de pagamento.",
        "icon": "💰",
        "type": "card",
    },
    ErrorCategory.VALIDATION: {
        "title": "Informações Obrigatórias",
        "message": "Por favor, preencha todos os campos obrigatórios para continuar com a compra do presente.",
        "icon": "📝",
        "type": "validation",
    },
    ErrorCategory.CUSTOMER_NAME_REQUIRED: {
        "title": "Nome Obrigatório",
        "message": "Por favor, informe seu nome para que possamos identificar quem está dando o presente.",
        "icon": "👤",
        "type": "validation",
    },
    ErrorCategory.GIFT_UNAVAILABLE: {
        "title": "Presente Indisponível",
        "message": "Este presente já foi escolhido por outro convidado. Escolha outro presente da lista.",
        "icon": "🎁",
        "type": "gift",
    },
    ErrorCategory.GIFT_NOT_FOUND: {
        "title": "Presente Não Encontrado",
        "message": "O presente selecionado não foi encontrado. Volte à lista e escolha outro presente.",
        "icon": "🔍",
        "type": "gift",
    },
    ErrorCategory.MERCADOPAGO_SDK_ERROR: {
        "title": "Erro no Sistema de Pagamento",
        "message": "Houve um problema ao carregar o sistema de pagamentos. Recarregue a página e tente novamente.",
        "icon": "🔒",
        "type": "payment",
    },
    ErrorCategory.TIMEOUT: {
        "title": "Tempo Esgotado",
        "message": "A operação demorou mais que o esperado. Tente novamente.",
        "icon": "⏱️",
        "type": "timeout",
    },
    ErrorCategory.AUTH_INVALID_CREDENTIALS: {
        "title": "Credenciais Inválidas",
        "message": "Email ou senha incorretos. Confira os dados e tente novamente.",
        "icon": "🔑",
        "type": "auth",
    },
    ErrorCategory.USER_NOT_FOUND: {
        "title": "Usuário Não Encontrado",
        "message": "Não encontramos uma conta com esses dados. Verifique o email informado ou crie uma conta.",
        "icon": "🔍",
        "type": "auth",
    },
    ErrorCategory.EMAIL_EXISTS: {
        "title": "Email Já Cadastrado",
        "message": "Este email já está em uso. Faça login ou utilize outro email.",
        "icon": "📧",
        "type": "auth",
    },
    ErrorCategory.SESSION_EXPIRED: {
        "title": "Sessão Expirada",
        "message": "Sua sessão expirou. Faça login novamente para continuar.",
        "icon": "⌛",
        "type": "auth",
    },
    ErrorCategory.UNAUTHORIZED: {
        "title": "Acesso Não Autorizado",
        "message": "Você precisa estar autenticado para realizar esta ação.",
        "icon": "🚫",
        "type": "auth",
    },
    ErrorCategory.WEAK_PASSWORD: {
        "title": "Senha Fraca",
        "message": "A senha informada é muito fraca. Use pelo menos 6 caracteres, misturando letras e números.",
        "icon": "🔐",
        "type": "auth",
    },
    ErrorCategory.REGISTRATION_FAILED: {
        "title": "Erro no Cadastro",
        "message": "Não foi possível criar sua conta agora. Tente novamente em alguns instantes.",
        "icon": "📝",
        "type": "auth",
    },
    ErrorCategory.UNKNOWN: {
        "title": "Ops! Algo deu errado",
        "message": "Ocorreu um erro inesperado ao processar sua solicitação. Tente novamente ou entre em contato conosco.",
        "icon": "⚠️",
        "type": "generic",
    },
}

# Recusas permanentes: repetir com o mesmo cartão não adianta
NON_RETRYABLE = frozenset({ErrorCategory.CARD_REJECTED, ErrorCategory.INSUFFICIENT_FUNDS})

# 🔹 Códigos estruturados conhecidos (backend + status_detail do Mercado Pago)
STRUCTURED_CODES: Dict[str, ErrorCategory] = {
    "NETWORK_ERROR": ErrorCategory.NETWORK,
    "TIMEOUT": ErrorCategory.TIMEOUT,
    "PIX_ERROR": ErrorCategory.PIX_GENERATION_FAILED,
    "PIX_EXPIRED": ErrorCategory.PIX_EXPIRED,
    "CARD_INVALID": ErrorCategory.CARD_INVALID,
    "CARD_REJECTED": ErrorCategory.CARD_REJECTED,
    "INSUFFICIENT_FUNDS": ErrorCategory.INSUFFICIENT_FUNDS,
    "VALIDATION_ERROR": ErrorCategory.VALIDATION,
    "CUSTOMER_NAME_REQUIRED": ErrorCategory.CUSTOMER_NAME_REQUIRED,
    "GIFT_UNAVAILABLE": ErrorCategory.GIFT_UNAVAILABLE,
    "GIFT_NOT_FOUND": ErrorCategory.GIFT_NOT_FOUND,
    "SDK_NOT_LOADED": ErrorCategory.MERCADOPAGO_SDK_ERROR,
    "SESSION_EXPIRED": ErrorCategory.SESSION_EXPIRED,
    "UNAUTHORIZED": ErrorCategory.UNAUTHORIZED,
    "cc_rejected_insufficient_amount": ErrorCategory.INSUFFICIENT_FUNDS,
    "cc_rejected_bad_filled_card_number": ErrorCategory.CARD_INVALID,
    "cc_rejected_bad_filled_date": ErrorCategory.CARD_INVALID,
    "cc_rejected_bad_filled_security_code": ErrorCategory.CARD_INVALID,
    "cc_rejected_bad_filled_other": ErrorCategory.CARD_INVALID,
    "cc_rejected_call_for_authorize": ErrorCategory.CARD_REJECTED,
    "cc_rejected_card_disabled": ErrorCategory.CARD_REJECTED,
    "cc_rejected_high_risk": ErrorCategory.CARD_REJECTED,
    "cc_rejected_other_reason": ErrorCategory.CARD_REJECTED,
}


def _contains(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _extract(error: Any) -> Tuple[str, str, int]:
    """Retorna (mensagem em minúsculas, código, status HTTP) de qualquer valor de erro."""
    if error is None:
        return "", "", 0
    if isinstance(error, str):
        return error.lower(), "", 0
    if isinstance(error, Mapping):
        message = error.get("message") or error.get("error") or ""
        code = error.get("code") or ""
        status = error.get("status") or error.get("status_code")
        return str(message).lower(), str(code), _as_int(status)

    message = getattr(error, "message", None) or str(error)
    code = getattr(error, "code", None) or ""
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
    return str(message).lower(), str(code), _as_int(status)


def _match_code(code: str) -> Optional[ErrorCategory]:
    if not code:
        return None
    if code in STRUCTURED_CODES:
        return STRUCTURED_CODES[code]
    return STRUCTURED_CODES.get(code.upper())


def _match_auth(message: str, status: int) -> Optional[ErrorCategory]:
    if _contains(message, "sessão expirada", "sessao expirada", "session expired"):
        return ErrorCategory.SESSION_EXPIRED
    if _contains(message, "senha incorret", "credenciais inválidas", "invalid credentials"):
        return ErrorCategory.AUTH_INVALID_CREDENTIALS
    if _contains(message, "usuário não encontrado", "usuario nao encontrado", "user not found"):
        return ErrorCategory.USER_NOT_FOUND
    if _contains(message, "já está em uso", "already in use", "email already exists", "email já cadastrado"):
        return ErrorCategory.EMAIL_EXISTS
    if _contains(message, "senha fraca", "weak password") or ("senha" in message and "caracteres" in message):
        return ErrorCategory.WEAK_PASSWORD
    if _contains(message, "erro ao criar conta", "registration failed"):
        return ErrorCategory.REGISTRATION_FAILED
    if status in (401, 403) or _contains(message, "não autenticado", "nao autenticado", "unauthorized"):
        return ErrorCategory.UNAUTHORIZED
    return None


def identify_error_category(error: Any) -> ErrorCategory:
    """
    Identifica a categoria do erro: recusa permanente, código estruturado,
    tipo da exceção, texto da mensagem e status HTTP, nessa ordem.
    """
    message, code, status = _extract(error)

    by_code = _match_code(code)

    # Recusa permanente: um código só prevalece se também for recusa permanente
    declined = None
    if status == 402 or _contains(message, "rejected", "rejeitado"):
        declined = ErrorCategory.CARD_REJECTED
    elif _contains(message, "insufficient", "saldo"):
        declined = ErrorCategory.INSUFFICIENT_FUNDS
    if declined is not None:
        return by_code if by_code in NON_RETRYABLE else declined

    if by_code is not None:
        return by_code

    if isinstance(error, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT
    if isinstance(error, httpx.TransportError):
        return ErrorCategory.NETWORK

    if _contains(message, "fetch", "network", "conexão", "servidor backend não encontrado"):
        return ErrorCategory.NETWORK

    if status >= 500 or _contains(message, "server error", "internal"):
        return ErrorCategory.SERVER_UNAVAILABLE

    by_auth = _match_auth(message, status)
    if by_auth is not None:
        return by_auth

    if "expir" in message:
        return ErrorCategory.PIX_EXPIRED

    if _contains(message, "pix", "qr code"):
        return ErrorCategory.PIX_GENERATION_FAILED

    if _contains(message, "cartão", "card", "token"):
        return ErrorCategory.CARD_INVALID

    if "nome" in message and "obrigatório" in message:
        return ErrorCategory.CUSTOMER_NAME_REQUIRED

    if "presente" in message and "indisponível" in message:
        return ErrorCategory.GIFT_UNAVAILABLE

    if "presente" in message and "não encontrado" in message:
        return ErrorCategory.GIFT_NOT_FOUND

    if _contains(message, "mercadopago", "sdk", "script"):
        return ErrorCategory.MERCADOPAGO_SDK_ERROR

    if status == 400 or _contains(message, "obrigatório", "required", "validation"):
        return ErrorCategory.VALIDATION

    if _contains(message, "timeout", "tempo esgotado"):
        return ErrorCategory.TIMEOUT

    return ErrorCategory.UNKNOWN


def _original_message(error: Any) -> str:
    if error is None:
        return "Erro desconhecido"
    if isinstance(error, str):
        return error or "Erro desconhecido"
    if isinstance(error, Mapping):
        return str(error.get("message") or error.get("error") or "Erro desconhecido")
    return str(getattr(error, "message", None) or error) or type(error).__name__


def friendly_error_for(category: ErrorCategory, original_error: str) -> FriendlyError:
    entry = ERROR_MESSAGES[category]
    return FriendlyError(
        category=category,
        title=entry["title"],
        message=entry["message"],
        icon=entry["icon"],
        type=entry["type"],
        can_retry=category not in NON_RETRYABLE,
        original_error=original_error,
    )


def classify(error: Any) -> FriendlyError:
    """Converte qualquer erro em um `FriendlyError`. Nunca retorna None."""
    return friendly_error_for(identify_error_category(error), _original_message(error))
