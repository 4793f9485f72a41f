import base64

from gift_checkout_api.app.services.card_info import get_card_info
from gift_checkout_api.app.services.pix_utils import crc16_ccitt, generate_pix_payload, render_qr_code_base64


def test_crc16_ccitt_known_value():
    # Valor de verificação padrão do CRC-16/CCITT-FALSE
    assert crc16_ccitt("123456789") == "29B1"


def test_pix_payload_structure():
    payload = generate_pix_payload("CASAMENTO", "noivos@example.com", "150.5", "Panelas")

    assert payload.startswith("000201010212")
    assert "0014BR.GOV.BCB.PIX0118noivos@example.com" in payload
    assert "5303986" in payload
    assert "5406150.50" in payload
    assert "5802BR" in payload
    assert "5909CASAMENTO" in payload
    assert "6009SAO PAULO" in payload
    assert "62110507Panelas" in payload
    assert payload[-8:-4] == "6304"
    assert payload[-4:] == crc16_ccitt(payload[:-4])


def test_pix_payload_strips_accents_from_free_text():
    payload = generate_pix_payload("JOÃO E CONCEIÇÃO", "noivos@example.com", 80, "Cartão", city="São Paulo")

    assert payload.isascii()
    assert "5916JOAO E CONCEICAO" in payload
    assert "6009Sao Paulo" in payload
    assert "62100506Cartao" in payload
    assert payload[-4:] == crc16_ccitt(payload[:-4])


def test_render_qr_code_base64_is_png():
    encoded = render_qr_code_base64("00020101021226")

    assert not encoded.startswith("data:")
    assert base64.b64decode(encoded)[:8] == b"\x89PNG\r\n\x1a\n"


def test_card_brand_detection():
    assert get_card_info("4111 1111 1111 1111").payment_method_id == "visa"
    assert get_card_info("5555555555554444").payment_method_id == "master"
    assert get_card_info("378282246310005").payment_method_id == "amex"
    assert get_card_info("6011111111111117").payment_method_id == "discover"

    unknown = get_card_info("9999990000000000")
    assert unknown.payment_method_id == "visa"
    assert unknown.issuer == "unknown"
    assert unknown.card_bin == "999999"
