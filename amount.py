from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from exceptions import AmountOverflowError

# Amounts are stored as integer ten-thousandths.
SCALE = 4
QUANTUM = 10 ** SCALE

MAX_MINOR_UNITS = 2 ** 63 - 1
MIN_MINOR_UNITS = -(2 ** 63)


@dataclass(frozen=True, order=True)
class Amount:
    """Exact fixed-point money value.

    Arithmetic is done on integer minor units, so sums round-trip exactly.
    Results outside the signed 64-bit range raise AmountOverflowError.
    """

    minor_units: int = 0

    def __post_init__(self):
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(f"minor_units must be an int, got {type(self.minor_units).__name__}")
        if not MIN_MINOR_UNITS <= self.minor_units <= MAX_MINOR_UNITS:
            raise AmountOverflowError(f"amount out of range: {self.minor_units} minor units")

    @classmethod
    def from_decimal(cls, value: Union[Decimal, int, str]) -> "Amount":
        """Build an Amount from an exact value with at most four decimal places."""
        if isinstance(value, float):
            raise TypeError("floats are not accepted as amounts, use Decimal or str")
        try:
            value = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"not a decimal number: {value!r}") from None
        if not value.is_finite():
            raise ValueError(f"amount must be finite, got {value}")
        scaled = value.scaleb(SCALE)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"amount {value} has more than {SCALE} decimal places")
        return cls(int(scaled))

    @classmethod
    def parse(cls, text: str) -> "Amount":
        return cls.from_decimal(text.strip())

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    def to_decimal(self) -> Decimal:
        return Decimal(self.minor_units).scaleb(-SCALE)

    def add(self, other: "Amount") -> "Amount":
        return Amount(self.minor_units + other.minor_units)

    def sub(self, other: "Amount") -> "Amount":
        return Amount(self.minor_units - other.minor_units)

    def neg(self) -> "Amount":
        return Amount(-self.minor_units)

    def is_negative(self) -> bool:
        return self.minor_units < 0

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def __add__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        return self.sub(other)

    def __neg__(self):
        return self.neg()

    def __str__(self) -> str:
        sign = "-" if self.minor_units < 0 else ""
        whole, fraction = divmod(abs(self.minor_units), QUANTUM)
        return f"{sign}{whole}.{fraction:0{SCALE}d}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"
