# gift_checkout_api/app/services/__init__.py

# Gateways e sessões ficam fora daqui: importam config e abrem clientes HTTP.
from .error_classifier import classify, identify_error_category
from .installments import compute_installments, find_installment_option
from .pix_utils import generate_pix_payload, render_qr_code_base64

__all__ = [
    # Classificação de erros
    "classify",
    "identify_error_category",

    # Parcelamento
    "compute_installments",
    "find_installment_option",

    # PIX
    "generate_pix_payload",
    "render_qr_code_base64",
]
