from decimal import Decimal
from typing import Any, List, Sequence

from gift_checkout_api.app.core.exceptions import CheckoutValidationError
from gift_checkout_api.app.models.schemas import InstallmentOption
from gift_checkout_api.app.utilities.constants import INSTALLMENT_RATE_STEP_PERCENT, MAX_INSTALLMENTS

RATE_STEP = Decimal(INSTALLMENT_RATE_STEP_PERCENT) / 100


def compute_installments(amount: Any) -> List[InstallmentOption]:
    """
    Calcula as opções de parcelamento (1 a 12x) para um valor em reais.

    A primeira parcela não tem juros; a partir da segunda, a taxa cresce 2,5%
    por parcela: taxa(i) = (i - 1) * 2,5%. Valores ausentes ou <= 0 retornam
    lista vazia.
    """
    if amount is None:
        return []
    value = Decimal(str(amount))
    if value <= 0:
        return []

    options: List[InstallmentOption] = []
    for i in range(1, MAX_INSTALLMENTS + 1):
        rate = Decimal(0) if i == 1 else (i - 1) * RATE_STEP
        total_interest = value * rate
        total_amount = value + total_interest
        options.append(
            InstallmentOption(
                installments=i,
                installment_amount=total_amount / i,
                total_amount=total_amount,
                total_interest=total_interest,
                interest_rate=rate * 100,
            )
        )
    return options


def find_installment_option(options: Sequence[InstallmentOption], installments: int) -> InstallmentOption:
    for option in options:
        if option.installments == installments:
            return option
    raise CheckoutValidationError(
        f"Número de parcelas inválido: {installments}. Escolha entre 1 e {MAX_INSTALLMENTS}."
    )
