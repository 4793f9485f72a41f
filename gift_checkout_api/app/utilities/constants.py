# 🔹 Gateways suportados
GATEWAY_MERCADOPAGO = "mercadopago"
GATEWAY_PAGBANK = "pagbank"
SUPPORTED_GATEWAYS = [GATEWAY_MERCADOPAGO, GATEWAY_PAGBANK]

# 🔹 Timeout padrão para os gateways (em segundos)
GATEWAY_TIMEOUT = 30

# 🔹 Endpoints do backend de pagamentos
PAYMENTS_PATH = "/api/payments"
PAGBANK_CHECKOUT_PATH = "/api/pagbank/checkout"
PAGBANK_WEBHOOK_PATH = "/api/webhooks/pagbank"

# 🔹 Parcelamento
MAX_INSTALLMENTS = 12
INSTALLMENT_RATE_STEP_PERCENT = "2.5"  # juros por parcela após a primeira

# 🔹 Fallbacks usados quando o convidado não informa e-mail/documento
GUEST_EMAIL_DOMAIN = "guest.com"
DEFAULT_DOCUMENT = "00000000000"

# 🔹 Mapeamento de status do PagBank para o modelo comum
PAGBANK_STATUS_MAP = {
    "PAID": "APPROVED",
    "WAITING": "PENDING",
    "IN_ANALYSIS": "IN_PROCESS",
    "AUTHORIZED": "IN_PROCESS",
    "DECLINED": "REJECTED",
    "CANCELED": "CANCELLED",
    "EXPIRED": "CANCELLED",
}

# 🔹 Status crus do Mercado Pago que não existem no modelo comum
MERCADOPAGO_STATUS_ALIASES = {
    "CANCELED": "CANCELLED",
    "REFUNDED": "CANCELLED",
    "CHARGED_BACK": "CANCELLED",
    "AUTHORIZED": "IN_PROCESS",
    "IN_MEDIATION": "IN_PROCESS",
}

# 🔹 Meios aceitos no checkout hospedado do PagBank
PAGBANK_CHECKOUT_METHODS = ["CREDIT_CARD", "DEBIT_CARD", "PIX", "BOLETO", "PAGBANK_ACCOUNT"]
