from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from saldo.categories import Category, TransactionKind


@dataclass(slots=True)
class Transaction:
    id: int | None
    user_id: str
    name: str
    amount: Decimal
    kind: TransactionKind
    category: Category
    occurred_at: datetime
    note: str | None = None


@dataclass(slots=True)
class Subscription:
    id: int | None
    user_id: str
    name: str
    amount: Decimal
    recurring: bool = True
    next_due_at: datetime | None = None
    active: bool = True


@dataclass(slots=True)
class FixedCost:
    id: int | None
    user_id: str
    name: str
    amount: Decimal
    frequency: str = "MONTHLY"
    active: bool = True


@dataclass(slots=True)
class SpendingLimit:
    id: int | None
    user_id: str
    category: Category | None
    amount: Decimal


@dataclass(slots=True)
class ChatMessage:
    role: str
    content: str
    timestamp: datetime
    metadata: dict = field(default_factory=dict)
