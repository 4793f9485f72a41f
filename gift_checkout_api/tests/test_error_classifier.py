import httpx
import pytest

from gift_checkout_api.app.core.exceptions import GatewayError, PaymentDeclinedError, TokenizationError
from gift_checkout_api.app.models.schemas import ErrorCategory
from gift_checkout_api.app.services.error_classifier import (
    ERROR_MESSAGES,
    classify,
    friendly_error_for,
    identify_error_category,
)


@pytest.mark.parametrize(
    "error, expected",
    [
        ("Pagamento rejeitado pela operadora", ErrorCategory.CARD_REJECTED),
        ("Payment rejected", ErrorCategory.CARD_REJECTED),
        ({"message": "Erro", "status": 402}, ErrorCategory.CARD_REJECTED),
        ("Saldo insuficiente", ErrorCategory.INSUFFICIENT_FUNDS),
        ("Failed to fetch", ErrorCategory.NETWORK),
        ("Servidor backend não encontrado. Verifique se está rodando.", ErrorCategory.NETWORK),
        (GatewayError("Erro HTTP: 503", status=503), ErrorCategory.SERVER_UNAVAILABLE),
        ("Internal Server Error", ErrorCategory.SERVER_UNAVAILABLE),
        ("PIX expirado", ErrorCategory.PIX_EXPIRED),
        ("Erro ao gerar QR Code", ErrorCategory.PIX_GENERATION_FAILED),
        ("Dados do cartão inválidos", ErrorCategory.CARD_INVALID),
        ("Nome do cliente é obrigatório", ErrorCategory.CUSTOMER_NAME_REQUIRED),
        ("Este presente está indisponível", ErrorCategory.GIFT_UNAVAILABLE),
        ("Presente não encontrado", ErrorCategory.GIFT_NOT_FOUND),
        ("MercadoPago SDK not loaded", ErrorCategory.MERCADOPAGO_SDK_ERROR),
        ("Campo email é obrigatório", ErrorCategory.VALIDATION),
        ({"message": "Bad request", "status": 400}, ErrorCategory.VALIDATION),
        ("Tempo esgotado", ErrorCategory.TIMEOUT),
        ("Sessão expirada", ErrorCategory.SESSION_EXPIRED),
        ({"message": "Forbidden", "status": 403}, ErrorCategory.UNAUTHORIZED),
        ("Algo estranho aconteceu", ErrorCategory.UNKNOWN),
        (None, ErrorCategory.UNKNOWN),
    ],
)
def test_identify_error_category(error, expected):
    assert identify_error_category(error) == expected


def test_structured_code_wins_over_message():
    error = GatewayError("Pagamento rejeitado", code="INSUFFICIENT_FUNDS")
    assert identify_error_category(error) == ErrorCategory.INSUFFICIENT_FUNDS


def test_mercadopago_status_detail_codes():
    error = GatewayError("Dados recusados pelo Mercado Pago", code="cc_rejected_bad_filled_security_code")
    assert identify_error_category(error) == ErrorCategory.CARD_INVALID


@pytest.mark.parametrize(
    "error",
    [
        {"message": "Payment rejected by issuer", "code": "VALIDATION_ERROR"},
        {"message": "Erro", "status": 402, "code": "TIMEOUT"},
        {"message": "Payment rejected", "code": "network"},
        {"message": "Pagamento rejeitado", "code": "unknown"},
        PaymentDeclinedError("Pagamento REJECTED", code="cc_rejected_bad_filled_security_code"),
        GatewayError("Erro HTTP: 402", code="PIX_ERROR", status=402),
    ],
)
def test_rejection_beats_unrelated_codes(error):
    friendly = classify(error)

    assert friendly.category == ErrorCategory.CARD_REJECTED
    assert friendly.can_retry is False


def test_lowercase_category_names_are_not_codes():
    assert identify_error_category({"message": "Algo estranho", "code": "network"}) == ErrorCategory.UNKNOWN
    assert identify_error_category({"message": "Erro", "code": "pix_error"}) == ErrorCategory.PIX_GENERATION_FAILED


def test_httpx_exceptions_map_to_timeout_and_network():
    request = httpx.Request("GET", "http://localhost:3001/api/payments")
    assert identify_error_category(httpx.ReadTimeout("read timed out", request=request)) == ErrorCategory.TIMEOUT
    assert identify_error_category(httpx.ConnectError("refused", request=request)) == ErrorCategory.NETWORK


def test_http_status_error_uses_response_status():
    request = httpx.Request("POST", "http://localhost:3001/api/payments")
    response = httpx.Response(502, request=request)
    error = httpx.HTTPStatusError("Bad gateway", request=request, response=response)
    assert identify_error_category(error) == ErrorCategory.SERVER_UNAVAILABLE


def test_only_permanent_declines_are_not_retryable():
    for category in ErrorCategory:
        friendly = friendly_error_for(category, "erro")
        assert friendly.category == category
        expected = category not in (ErrorCategory.CARD_REJECTED, ErrorCategory.INSUFFICIENT_FUNDS)
        assert friendly.can_retry is expected, category


def test_classify_keeps_original_message():
    friendly = classify(TokenizationError("Erro ao processar cartão (token): HTTP 400", status=400))

    assert friendly.category == ErrorCategory.CARD_INVALID
    assert friendly.original_error == "Erro ao processar cartão (token): HTTP 400"
    assert friendly.title == ERROR_MESSAGES[ErrorCategory.CARD_INVALID]["title"]


def test_every_category_has_a_message():
    for category in ErrorCategory:
        entry = ERROR_MESSAGES[category]
        assert entry["title"] and entry["message"] and entry["icon"] and entry["type"]
