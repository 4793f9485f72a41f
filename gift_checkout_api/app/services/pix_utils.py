# gift_checkout_api/app/services/pix_utils.py

import base64
import unicodedata
from decimal import Decimal
from io import BytesIO
from typing import Any

import qrcode


def crc16_ccitt(payload: str) -> str:
    """CRC16-CCITT (polinômio 0x1021, valor inicial 0xFFFF) em 4 dígitos hexadecimais."""
    crc = 0xFFFF
    for char in payload:
        crc ^= ord(char) << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def _ascii(text: str, limit: int) -> str:
    """Remove acentos e caracteres fora do ASCII; o tamanho EMV conta bytes."""
    normalized = unicodedata.normalize("NFKD", text)
    return normalized.encode("ascii", "ignore").decode("ascii").strip()[:limit]


def _field(field_id: str, value: str) -> str:
    return f"{field_id}{len(value.encode('utf-8')):02d}{value}"


def generate_pix_payload(
    recipient_name: str,
    pix_key: str,
    amount: Any,
    description: str,
    city: str = "SAO PAULO",
) -> str:
    """
    Monta o BR Code (PIX copia e cola) no formato EMV para uma chave PIX estática.
    """
    merchant_account = _field("00", "BR.GOV.BCB.PIX") + _field("01", pix_key)

    payload = (
        _field("00", "01")
        + _field("01", "12")
        + _field("26", merchant_account)
        + _field("52", "0000")
        + _field("53", "986")  # BRL
        + _field("54", f"{Decimal(str(amount)):.2f}")
        + _field("58", "BR")
        + _field("59", _ascii(recipient_name, 25))
        + _field("60", _ascii(city, 15))
        + _field("62", _field("05", _ascii(description, 25)))
        + "6304"
    )
    return payload + crc16_ccitt(payload)


def render_qr_code_base64(text: str) -> str:
    """Gera o PNG do QR Code e retorna o conteúdo em base64 (sem prefixo data:)."""
    img = qrcode.make(text)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()
