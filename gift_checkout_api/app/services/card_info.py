import re
from typing import NamedTuple

from gift_checkout_api.app.utilities.helpers import only_digits


class CardInfo(NamedTuple):
    payment_method_id: str
    card_bin: str
    issuer: str


# Ordem importa: a primeira regra que casar define a bandeira
_BRAND_PATTERNS = (
    (re.compile(r"^4"), "visa", "visa"),
    (re.compile(r"^5[1-5]"), "master", "mastercard"),
    (re.compile(r"^3[47]"), "amex", "american_express"),
    (re.compile(r"^6"), "discover", "discover"),
)


def get_card_info(card_number: str) -> CardInfo:
    """
    Detecta a bandeira do cartão a partir do BIN (6 primeiros dígitos).
    Números desconhecidos caem em "visa" / "unknown".
    """
    clean = only_digits(card_number)
    for pattern, payment_method_id, issuer in _BRAND_PATTERNS:
        if pattern.match(clean):
            return CardInfo(payment_method_id, clean[:6], issuer)
    return CardInfo("visa", clean[:6], "unknown")
