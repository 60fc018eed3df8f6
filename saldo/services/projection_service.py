from dataclasses import dataclass
from decimal import Decimal

from saldo.currency import to_decimal
from saldo.errors import ValidationError

DEFAULT_SAVINGS_RATE = Decimal("0.30")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class Projection:
    projected_balance: Decimal
    percent_committed: Decimal
    suggested_savings: Decimal

    def to_dict(self) -> dict:
        return {
            "saldo_previsto": float(self.projected_balance),
            "percent_comprometido": float(self.percent_committed),
            "sugestao_para_meta": float(self.suggested_savings),
        }


def project(income_total, fixed_costs_total, subscriptions_total, savings_rate=DEFAULT_SAVINGS_RATE) -> Projection:
    income = to_decimal(income_total)
    fixed = to_decimal(fixed_costs_total)
    subscriptions = to_decimal(subscriptions_total)
    rate = to_decimal(savings_rate)
    if min(income, fixed, subscriptions) < 0:
        raise ValidationError("Projection inputs must be non-negative")

    committed = fixed + subscriptions
    balance = income - committed
    percent = committed / income * HUNDRED if income > 0 else ZERO
    savings = balance * rate if balance > 0 else ZERO
    return Projection(projected_balance=balance, percent_committed=percent, suggested_savings=savings)
