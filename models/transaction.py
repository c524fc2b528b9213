from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class Origin(str, Enum):
    MANUAL = "manual"
    RECURRING = "recurring"


@dataclass
class Transaction:
    id: int
    type: str               # 'income' | 'expense'
    amount: Decimal
    category: str           # expense category or income source
    description: str
    date: str               # 'YYYY-MM-DD'
    origin: Origin = Origin.MANUAL
    recurring_item_id: Optional[str] = None
    created_at: str = ""
