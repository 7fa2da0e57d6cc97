"""
Money Module

Amounts carried by sandbox accounts and transactions. Sandbox data may use any
currency code, so the currency is kept as the plain code string from the
import document. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Any, Dict
import re

# Set global decimal context for financial precision
getcontext().prec = 28

# Plain decimal literal: optional sign, digits with optional fraction, optional exponent
_DECIMAL_LITERAL = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


@dataclass(frozen=True)
class Money:
    """
    Immutable amount in a currency. The amount keeps the scale it was
    imported with; no rounding is applied.
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

    def to_dict(self) -> Dict[str, str]:
        return {'amount': str(self.amount), 'currency': self.currency}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Money':
        return cls(Decimal(data['amount']), data['currency'])


def parse_decimal(value: str) -> Decimal:
    """
    Strictly convert an import string to Decimal.

    Only plain decimal literals are accepted (e.g. "12", "-0.50", "1E+3").
    Thousands separators, currency symbols, whitespace, NaN and Infinity are
    rejected.

    Raises:
        ValueError: If the string is not a valid decimal literal
    """
    if not isinstance(value, str) or not _DECIMAL_LITERAL.match(value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
