from .logging_config import logger
from .helpers import to_cents, from_cents, only_digits
from .constants import SUPPORTED_GATEWAYS, MAX_INSTALLMENTS

__all__ = [
    "logger",
    "to_cents",
    "from_cents",
    "only_digits",
    "SUPPORTED_GATEWAYS",
    "MAX_INSTALLMENTS",
]
