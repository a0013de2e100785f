"""VAT separation for Turkish invoices and bank transactions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_VAT_RATE = 20.0
HOME_CURRENCY = "TRY"


@dataclass(frozen=True)
class VatSeparation:
    gross_amount: float
    net_amount: float
    vat_amount: float
    vat_rate: float


def _is_foreign_currency(tx: Mapping[str, Any]) -> bool:
    original = tx.get("original_currency")
    currency = tx.get("currency")
    return bool(original and original != HOME_CURRENCY) or bool(
        currency and currency != HOME_CURRENCY
    )


def _first_not_none(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return 0


def separate_vat(tx: Mapping[str, Any]) -> VatSeparation:
    """Split a transaction or receipt amount into net and VAT.

    Checked in order:

    1. Foreign invoices carry no Turkish VAT; the TRY equivalent is used
       as the gross amount when present.
    2. Stored ``net_amount`` and ``vat_amount`` are taken as is.
    3. Non-commercial transactions carry no VAT.
    4. A stored positive ``vat_amount`` is subtracted from the gross.
    5. Otherwise VAT is derived from ``vat_rate`` (20% when missing).
    """
    foreign_currency = _is_foreign_currency(tx)

    amount_try = tx.get("amount_try")
    if foreign_currency and amount_try is not None and amount_try > 0:
        gross = abs(amount_try)
    else:
        gross = abs(_first_not_none(tx.get("amount"), tx.get("total_amount")))

    is_foreign = (
        tx.get("is_foreign") is True
        or tx.get("is_foreign_invoice") is True
        or foreign_currency
    )
    if is_foreign:
        return VatSeparation(gross_amount=gross, net_amount=gross, vat_amount=0, vat_rate=0)

    vat_rate = tx.get("vat_rate")
    rate = DEFAULT_VAT_RATE if vat_rate is None else vat_rate

    net_amount = tx.get("net_amount")
    vat_amount = tx.get("vat_amount")
    if net_amount is not None and vat_amount is not None:
        return VatSeparation(
            gross_amount=gross,
            net_amount=abs(net_amount),
            vat_amount=abs(vat_amount),
            vat_rate=rate,
        )

    if tx.get("is_commercial") is False:
        return VatSeparation(gross_amount=gross, net_amount=gross, vat_amount=0, vat_rate=0)

    if vat_amount is not None and vat_amount > 0:
        vat = abs(vat_amount)
        return VatSeparation(
            gross_amount=gross, net_amount=gross - vat, vat_amount=vat, vat_rate=rate
        )

    net = gross / (1 + rate / 100)
    return VatSeparation(gross_amount=gross, net_amount=net, vat_amount=gross - net, vat_rate=rate)


def vat_from_gross(gross_amount: float, vat_rate: float = DEFAULT_VAT_RATE) -> VatSeparation:
    net = gross_amount / (1 + vat_rate / 100)
    return VatSeparation(
        gross_amount=gross_amount,
        net_amount=net,
        vat_amount=gross_amount - net,
        vat_rate=vat_rate,
    )


def vat_from_net(net_amount: float, vat_rate: float = DEFAULT_VAT_RATE) -> VatSeparation:
    vat = net_amount * vat_rate / 100
    return VatSeparation(
        gross_amount=net_amount + vat,
        net_amount=net_amount,
        vat_amount=vat,
        vat_rate=vat_rate,
    )
