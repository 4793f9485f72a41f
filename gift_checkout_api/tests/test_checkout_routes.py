from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from gift_checkout_api.app.core.config import settings
from gift_checkout_api.app.core.exceptions import GatewayError
from gift_checkout_api.app.dependencies import get_gateway_factory, get_session_registry, get_settings
from gift_checkout_api.app.main import app
from gift_checkout_api.app.models.schemas import PaymentStatus
from gift_checkout_api.app.services.session_registry import SessionRegistry

SESSION_PAYLOAD = {
    "amount": 150.0,
    "description": "Jogo de panelas",
    "customer": {"name": "Maria Convidada", "email": "maria@example.com"},
    "gift_id": "gift-42",
}

CARD_PAYLOAD = {
    "card": {
        "holder_name": "MARIA CONVIDADA",
        "card_number": "4111 1111 1111 1111",
        "expiration_month": "07",
        "expiration_year": "2030",
        "cvv": "123",
        "document_type": "CPF",
        "document_number": "123.456.789-09",
    },
    "installments": 2,
}


@pytest.fixture
def registry(gateway):
    registry = SessionRegistry()
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_gateway_factory] = lambda: (lambda provider=None: gateway)
    yield registry
    app.dependency_overrides.clear()


def api_client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def create_session(client):
    response = await client.post("/checkout/sessions", json=SESSION_PAYLOAD)
    assert response.status_code == 201
    return response.json()["session_id"]


@pytest.mark.asyncio
async def test_health_check():
    async with api_client() as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"


@pytest.mark.asyncio
async def test_create_session(registry):
    async with api_client() as client:
        response = await client.post("/checkout/sessions", json=SESSION_PAYLOAD)

    assert response.status_code == 201
    data = response.json()
    assert data["session_id"]
    assert data["checkout"]["state"] == "idle"
    assert data["checkout"]["amount_cents"] == 15000
    assert len(data["checkout"]["installment_options"]) == 12
    assert [m["id"] for m in data["checkout"]["payment_methods"]] == ["PIX", "CREDIT_CARD"]
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_pix_flow_with_manual_status_check(registry, gateway):
    gateway.statuses = [PaymentStatus.APPROVED]

    async with api_client() as client:
        session_id = await create_session(client)

        response = await client.post(f"/checkout/sessions/{session_id}/pix")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "pix_pending"
        assert data["pix_payment"]["pix_code"]
        assert data["pix_payment"]["qr_code_base64"]

        response = await client.post(f"/checkout/sessions/{session_id}/status")
        data = response.json()
        assert data["state"] == "terminal_approved"
        assert [event["kind"] for event in data["events"]] == ["success"]

        response = await client.post(f"/checkout/sessions/{session_id}/pix")
        assert response.status_code == 409

        response = await client.delete(f"/checkout/sessions/{session_id}")
        assert response.status_code == 204


@pytest.mark.asyncio
async def test_card_payment_route(registry, gateway):
    async with api_client() as client:
        session_id = await create_session(client)
        response = await client.post(f"/checkout/sessions/{session_id}/card", json=CARD_PAYLOAD)

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "terminal_approved"
    assert data["payment_status"]["id"] == "card-1"
    assert gateway.calls == ["create_payment_token", "charge_credit_card"]


@pytest.mark.asyncio
async def test_card_payment_with_invalid_cvv(registry):
    payload = {**CARD_PAYLOAD, "card": {**CARD_PAYLOAD["card"], "cvv": "1"}}

    async with api_client() as client:
        session_id = await create_session(client)
        response = await client.post(f"/checkout/sessions/{session_id}/card", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_gateway_failure_is_reported_in_snapshot(registry, gateway):
    gateway.pix_error = GatewayError("Erro HTTP: 500", status=500)

    async with api_client() as client:
        session_id = await create_session(client)
        response = await client.post(f"/checkout/sessions/{session_id}/pix")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "error"
        assert data["friendly_error"]["category"] == "server-unavailable"
        assert data["friendly_error"]["can_retry"] is True

        response = await client.post(f"/checkout/sessions/{session_id}/clear-error")
        assert response.json()["state"] == "idle"
        assert response.json()["friendly_error"] is None


@pytest.mark.asyncio
async def test_hosted_checkout_route(registry, gateway):
    gateway.checkout_url = "https://pagamento.pagbank.test/pay/CHEC_1"

    async with api_client() as client:
        session_id = await create_session(client)
        response = await client.post(f"/checkout/sessions/{session_id}/hosted-checkout")

    assert response.status_code == 200
    assert response.json()["payment_url"] == "https://pagamento.pagbank.test/pay/CHEC_1"


@pytest.mark.asyncio
async def test_select_method_and_reset(registry):
    async with api_client() as client:
        session_id = await create_session(client)

        response = await client.post(f"/checkout/sessions/{session_id}/method", json={"method_id": "CREDIT_CARD"})
        assert response.json()["selected_method"]["id"] == "CREDIT_CARD"

        response = await client.post(f"/checkout/sessions/{session_id}/reset")
        assert response.json()["selected_method"] is None
        assert response.json()["state"] == "idle"


@pytest.mark.asyncio
async def test_unknown_session_returns_404(registry):
    async with api_client() as client:
        response = await client.get("/checkout/sessions/does-not-exist")

    assert response.status_code == 404
    assert response.json()["code"] == "SESSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_installments_route():
    async with api_client() as client:
        response = await client.get("/checkout/installments", params={"amount": "100"})
        empty = await client.get("/checkout/installments", params={"amount": "0"})

    assert response.status_code == 200
    options = response.json()
    assert len(options) == 12
    assert Decimal(str(options[2]["total_amount"])) == Decimal("105")
    assert empty.json() == []


@pytest.mark.asyncio
async def test_static_pix_route():
    async with api_client() as client:
        response = await client.post(
            "/checkout/pix/static",
            json={"amount": 80, "description": "Presente", "pix_key": "noivos@example.com"},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["pix_code"].startswith("000201")
    assert "5405" in data["pix_code"] and "80.00" in data["pix_code"]
    assert data["qr_code_base64"]


@pytest.mark.asyncio
async def test_static_pix_without_key():
    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"PIX_KEY": None})
    try:
        async with api_client() as client:
            response = await client.post("/checkout/pix/static", json={"amount": 80})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 422
    assert response.json()["message"] == "Chave PIX não configurada"


@pytest.mark.asyncio
async def test_connection_route(registry):
    async with api_client() as client:
        response = await client.get("/checkout/connection")

    assert response.status_code == 200
    assert response.json()["backend_url"] == "http://fake-backend"
