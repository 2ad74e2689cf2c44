from __future__ import annotations

import pytest

from storefront.core.affiliate_codes import (
    ADMIN_APPROVAL_PREFIX,
    DIGITS,
    SWEEP_APPROVAL_PREFIX,
    generate_affiliate_code,
)


@pytest.mark.parametrize("prefix", [ADMIN_APPROVAL_PREFIX, SWEEP_APPROVAL_PREFIX])
def test_code_is_prefix_plus_four_digits(prefix: str) -> None:
    code = generate_affiliate_code(prefix)
    assert code.startswith(prefix)
    assert len(code) == len(prefix) + 4
    assert set(code[len(prefix):]).issubset(set(DIGITS))


def test_prefix_is_normalized() -> None:
    assert generate_affiliate_code(" vip ", digits=2).startswith("VIP")


@pytest.mark.parametrize(("prefix", "digits"), [("VIP", 0), ("  ", 4)])
def test_invalid_arguments_are_rejected(prefix: str, digits: int) -> None:
    with pytest.raises(ValueError):
        generate_affiliate_code(prefix, digits=digits)
