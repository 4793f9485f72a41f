from decimal import Decimal

import pytest

from gift_checkout_api.app.core.exceptions import CheckoutValidationError
from gift_checkout_api.app.services.installments import compute_installments, find_installment_option


def test_twelve_options_with_growing_rate():
    options = compute_installments(Decimal("100.00"))

    assert [o.installments for o in options] == list(range(1, 13))
    assert options[0].interest_rate == 0
    assert options[0].total_amount == Decimal("100.00")
    assert options[0].installment_amount == Decimal("100.00")
    assert options[1].interest_rate == Decimal("2.5")
    assert options[11].interest_rate == Decimal("27.5")


def test_three_installments_of_one_hundred():
    option = compute_installments(100)[2]

    assert option.installments == 3
    assert option.interest_rate == 5
    assert option.total_interest == Decimal("5")
    assert option.total_amount == Decimal("105")
    assert option.installment_amount == Decimal("35")


def test_totals_are_consistent():
    for option in compute_installments("237.90"):
        assert option.total_amount == Decimal("237.90") + option.total_interest
        assert option.installment_amount * option.installments == pytest.approx(option.total_amount)


@pytest.mark.parametrize("amount", [0, -10, None, "0.00"])
def test_non_positive_amount_returns_empty_list(amount):
    assert compute_installments(amount) == []


def test_find_installment_option():
    options = compute_installments(50)

    assert find_installment_option(options, 6).installments == 6
    with pytest.raises(CheckoutValidationError):
        find_installment_option(options, 13)
    with pytest.raises(CheckoutValidationError):
        find_installment_option([], 1)


def test_six_installments_of_one_hundred():
    option = compute_installments(100)[5]

    assert option.interest_rate == Decimal("12.5")
    assert option.total_amount == Decimal("112.5")
    assert option.installment_amount == Decimal("18.75")
