"""
Loan Contract Terms Module

Static contract vocabulary shared by the projection, accrual and payment
engines: interest types, installment frequencies, and late-payment penalty
configuration.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class InterestType(Enum):
    """Origination formula for the committed total"""
    SIMPLE = "simple"
    COMPOUND = "compound"
    BALANCE_BASED = "balance_based"  # Renewal cost follows the remaining principal
    DAILY = "daily"                  # Projected with the simple formula


class Frequency(Enum):
    """Installment frequency with its fixed day count"""
    WEEKLY = ("weekly", 7)
    BIWEEKLY = ("biweekly", 15)
    MONTHLY = ("monthly", 30)
    SINGLE = ("single", 30)
    
    def __init__(self, code: str, days: int):
        self.code = code
        self.days = days
    
    @classmethod
    def from_code(cls, code: str) -> 'Frequency':
        for frequency in cls:
            if frequency.code == code:
                return frequency
        raise ValueError(f"Unknown frequency: {code}")


class FixedPenaltyKind(Enum):
    """How the fixed late penalty is charged"""
    ONE_TIME = "one_time"
    PER_DAY = "per_day"


DAYS_PER_MONTH = Decimal('30')


@dataclass(frozen=True)
class PenaltyConfig:
    """Late-payment penalty configuration attached to a loan"""
    active: bool = True
    grace_days: int = 0
    mora_rate_monthly_pct: Decimal = Decimal('0')  # 10 means 10% per 30 days
    fixed_penalty_amount: Decimal = Decimal('0')
    fixed_penalty_kind: FixedPenaltyKind = FixedPenaltyKind.ONE_TIME
    
    def __post_init__(self):
        for name in ('mora_rate_monthly_pct', 'fixed_penalty_amount'):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, Decimal(str(value)))
        
        if self.grace_days < 0:
            raise ValueError("Grace days cannot be negative")
        if self.mora_rate_monthly_pct < 0:
            raise ValueError("Mora rate cannot be negative")
        if self.fixed_penalty_amount < 0:
            raise ValueError("Fixed penalty cannot be negative")
    
    @classmethod
    def from_daily_rate(cls, daily_rate_pct: Decimal, **kwargs) -> 'PenaltyConfig':
        """Build a config from a mora rate entered per day"""
        return cls(mora_rate_monthly_pct=Decimal(str(daily_rate_pct)) * DAYS_PER_MONTH, **kwargs)
    
    @property
    def daily_mora_rate(self) -> Decimal:
        """Mora rate as a fraction per overdue day"""
        return self.mora_rate_monthly_pct / Decimal('100') / DAYS_PER_MONTH
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'active': self.active,
            'grace_days': self.grace_days,
            'mora_rate_monthly_pct': str(self.mora_rate_monthly_pct),
            'fixed_penalty_amount': str(self.fixed_penalty_amount),
            'fixed_penalty_kind': self.fixed_penalty_kind.value
        }
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['PenaltyConfig']:
        if not data:
            return None
        return cls(
            active=data.get('active', True),
            grace_days=int(data.get('grace_days', 0)),
            mora_rate_monthly_pct=Decimal(data.get('mora_rate_monthly_pct', '0')),
            fixed_penalty_amount=Decimal(data.get('fixed_penalty_amount', '0')),
            fixed_penalty_kind=FixedPenaltyKind(data.get('fixed_penalty_kind', 'one_time'))
        )
