from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

import settings
from errors import ValidationError

CENTS = Decimal("0.01")


def parse_brl(text: Union[str, int, float, Decimal, None]) -> Decimal:
    """'1.234,50' -> Decimal('1234.50'). Vazio ou malformado vale 0."""
    if text is None:
        return Decimal("0")
    if isinstance(text, Decimal):
        return text
    if isinstance(text, (int, float)):
        return Decimal(str(text))

    s = text.strip().replace("R$", "").replace(" ", "")
    if not s:
        return Decimal("0")
    s = s.replace(".", "").replace(",", ".")
    try:
        value = Decimal(s)
    except InvalidOperation:
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value


def format_brl(value: Union[Decimal, int, float]) -> str:
    """Decimal('1334.5') -> '1.334,50'."""
    q = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    # formata no padrão en-US e troca os separadores
    return f"{q:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")


def compute_price(base: Optional[str], helpers: int, helper_fee: Optional[Decimal] = None) -> str:
    if helpers is None:
        helpers = 0
    if int(helpers) != helpers or helpers < 0:
        raise ValidationError(["Número de ajudantes deve ser um inteiro não negativo."])
    fee = settings.helper_fee() if helper_fee is None else helper_fee
    return format_brl(parse_brl(base) + int(helpers) * fee)


def to_db_value(value: Union[str, Decimal, None]) -> Optional[float]:
    """Valor monetário para a coluna numeric (duas casas); string vazia vira None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return float(parse_brl(value).quantize(CENTS, rounding=ROUND_HALF_UP))
