"""
Bridge amount policy.

Either a fixed amount per trigger or a percentage of the detected
increase. The result never exceeds the increase itself.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from app.config.constants import AMOUNT_QUANTUM_DECIMALS


QUANTUM = Decimal(1).scaleb(-AMOUNT_QUANTUM_DECIMALS)


@dataclass(frozen=True)
class BridgePolicy:
    """How much of a detected increase to bridge."""

    fixed_amount: Decimal | None = None
    fraction: Decimal | None = None

    def __post_init__(self) -> None:
        if (self.fixed_amount is None) == (self.fraction is None):
            raise ValueError("BridgePolicy needs exactly one of fixed_amount or fraction")
        if self.fixed_amount is not None and self.fixed_amount <= 0:
            raise ValueError("Fixed bridge amount must be positive")
        if self.fraction is not None and not 0 < self.fraction <= 1:
            raise ValueError("Bridge percentage must be in (0, 100]")

    @classmethod
    def fixed(cls, amount: Decimal | str) -> "BridgePolicy":
        return cls(fixed_amount=Decimal(amount))

    @classmethod
    def percentage(cls, percent: Decimal | str) -> "BridgePolicy":
        return cls(fraction=Decimal(percent) / Decimal(100))

    @classmethod
    def parse(cls, raw: str) -> "BridgePolicy":
        """
        Parse '50%' or '0.25' style configuration.

        Args:
            raw: Percentage (trailing %) or fixed amount

        Returns:
            BridgePolicy

        Raises:
            ValueError: If the value is not a valid amount or percentage
        """
        value = raw.strip()
        try:
            if value.endswith("%"):
                return cls.percentage(value[:-1].strip())
            return cls.fixed(value)
        except InvalidOperation:
            raise ValueError(f"Invalid bridge amount: {raw!r}") from None

    def amount_for(self, delta: Decimal) -> Decimal:
        """
        Amount to bridge for an observed increase.

        Args:
            delta: Positive balance increase in native units

        Returns:
            Bridge amount, truncated to wei precision and clamped to delta
        """
        if delta <= 0:
            return Decimal(0)

        with localcontext() as ctx:
            ctx.prec = 78
            if self.fraction is not None:
                amount = (delta * self.fraction).quantize(QUANTUM, rounding=ROUND_DOWN)
            else:
                amount = self.fixed_amount

            return min(amount, delta)

    def __str__(self) -> str:
        if self.fraction is not None:
            return f"{(self.fraction * 100).normalize():f}%"
        return str(self.fixed_amount)
