import re
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


def to_cents(value: Any) -> int:
    """
    Converte um valor em reais (float, str, int ou Decimal) para centavos inteiros.
    """
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except Exception as e:
        raise ValueError(f"Valor inválido para amount: {value}. Erro: {e}")
    return int(amount * 100)


def from_cents(cents: int) -> Decimal:
    """
    Converte centavos inteiros para reais com duas casas decimais.
    """
    return (Decimal(int(cents)) / 100).quantize(CENT)


def cents_to_float(cents: int) -> float:
    """Valor em reais pronto para serializar em JSON."""
    return float(from_cents(cents))


def only_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_reference_id(prefix: str = "gift") -> str:
    """Referência no formato `gift-<epoch ms>` quando não há presente associado."""
    return f"{prefix}-{int(time.time() * 1000)}"


def mask_token(value: Optional[str]) -> str:
    if not value:
        return ""
    return f"{value[:8]}..."
