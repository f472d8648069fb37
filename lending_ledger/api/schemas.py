"""
Pydantic schemas for API requests and responses
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..currency import Money, decimal_from_string
from ..terms import InterestType, Frequency, FixedPenaltyKind, PenaltyConfig
from ..loans import Loan, Payment
from ..accrual import LoanPosition
from ..projection import LateFeeSimulation, OriginationPreview
from ..collectors import Collector, CollectorTransaction
from ..commissions import CollectorStatement, CollectorSummary
from ..reporting import PortfolioSummary


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (BRL, USD, EUR)")
    
    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


def money_dict(money: Money) -> Dict[str, str]:
    return MoneyModel.from_money(money).model_dump()


class PenaltyConfigModel(BaseModel):
    active: bool = True
    grace_days: int = 0
    mora_rate_monthly_pct: Optional[str] = None  # Decimal as string
    mora_rate_daily_pct: Optional[str] = None    # Alternative entry, x30
    fixed_penalty_amount: str = "0"
    fixed_penalty_kind: str = Field("one_time", description="one_time or per_day")
    
    def to_penalty_config(self) -> PenaltyConfig:
        kwargs = dict(
            active=self.active,
            grace_days=self.grace_days,
            fixed_penalty_amount=decimal_from_string(self.fixed_penalty_amount),
            fixed_penalty_kind=FixedPenaltyKind(self.fixed_penalty_kind)
        )
        if self.mora_rate_monthly_pct is None and self.mora_rate_daily_pct is not None:
            return PenaltyConfig.from_daily_rate(decimal_from_string(self.mora_rate_daily_pct), **kwargs)
        return PenaltyConfig(mora_rate_monthly_pct=decimal_from_string(self.mora_rate_monthly_pct or "0"), **kwargs)


# Projection schemas
class OriginationTermsRequest(BaseModel):
    principal: str = Field(..., description="Principal amount, e.g. '1000' or '1.000,00'")
    rate_pct: str = Field(..., description="Percent per installment period")
    interest_type: str = Field("simple", description="simple, compound, balance_based or daily")
    frequency: str = Field("monthly", description="weekly, biweekly, monthly or single")
    installment_count: int = Field(1, ge=1)
    origination_date: Optional[date] = None
    penalty_config: Optional[PenaltyConfigModel] = None
    
    @property
    def interest_type_enum(self) -> InterestType:
        return InterestType(self.interest_type)
    
    @property
    def frequency_enum(self) -> Frequency:
        return Frequency.from_code(self.frequency)


class PreviewRequest(OriginationTermsRequest):
    simulated_overdue_days: int = Field(0, ge=0)


class LateFeeSimulationRequest(BaseModel):
    committed_total: str
    hypothetical_overdue_days: int
    penalty_config: PenaltyConfigModel


# Loan schemas
class CreateLoanRequest(OriginationTermsRequest):
    client_id: str
    client_name: str
    observations: str = ""


class PaymentRequest(BaseModel):
    amount: str = Field(..., description="Payment amount as string")
    kind: str = Field("regular", description="regular or interest_only")
    explicit_payoff: bool = False
    description: str = ""


class AmendPaymentRequest(BaseModel):
    amount: Optional[str] = None
    description: Optional[str] = None
    timestamp: Optional[datetime] = None


# Collector schemas
class CreateCollectorRequest(BaseModel):
    name: str
    username: str
    commission_rate_pct: str = "0"


class UpdateCollectorRequest(BaseModel):
    name: Optional[str] = None
    commission_rate_pct: Optional[str] = None
    is_active: Optional[bool] = None


class CollectorTransactionRequest(BaseModel):
    kind: str = Field(..., description="payout or bonus")
    amount: str
    description: str = ""
    timestamp: Optional[datetime] = None


class CollectorTokenRequest(BaseModel):
    username: str


# Response builders
def late_fee_response(simulation: LateFeeSimulation) -> Dict[str, Any]:
    return {
        "fixed_penalty": money_dict(simulation.fixed_penalty),
        "mora_interest": money_dict(simulation.mora_interest),
        "projected_total": money_dict(simulation.projected_total),
        "within_grace": simulation.within_grace
    }


def preview_response(preview: OriginationPreview) -> Dict[str, Any]:
    return {
        "principal": money_dict(preview.principal),
        "committed_total": money_dict(preview.committed_total),
        "planned_interest": money_dict(preview.planned_interest),
        "installment_amount": money_dict(preview.installment_amount),
        "due_date": preview.due_date.isoformat(),
        "late_fee": late_fee_response(preview.late_fee) if preview.late_fee else None
    }


def payment_response(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "amount": money_dict(payment.amount),
        "timestamp": payment.timestamp.isoformat(),
        "kind": payment.kind.value,
        "collected_by": payment.collected_by,
        "collector_id": payment.collector_id,
        "commission_amount": money_dict(payment.commission_amount),
        "description": payment.description
    }


def position_response(position: LoanPosition) -> Dict[str, Any]:
    return {
        "days_overdue": position.days_overdue,
        "fixed_penalty": money_dict(position.fixed_penalty),
        "mora_interest": money_dict(position.mora_interest),
        "current_debt": money_dict(position.current_debt),
        "principal_remaining": money_dict(position.principal_remaining),
        "fees_remaining": money_dict(position.fees_remaining),
        "total_planned_interest": money_dict(position.total_planned_interest),
        "next_renewal_cost": money_dict(position.next_renewal_cost)
    }


def loan_response(loan: Loan, position: Optional[LoanPosition] = None) -> Dict[str, Any]:
    result = {
        "id": loan.id,
        "tenant_id": loan.tenant_id,
        "client_id": loan.client_id,
        "client_name": loan.client_name,
        "principal": money_dict(loan.principal),
        "interest_type": loan.interest_type.value,
        "rate_pct": str(loan.rate),
        "frequency": loan.frequency.code,
        "installment_count": loan.installment_count,
        "origination_date": loan.origination_date.isoformat(),
        "due_date": loan.due_date.isoformat(),
        "committed_total": money_dict(loan.committed_total),
        "paid_amount": money_dict(loan.paid_amount),
        "status": loan.status.value,
        "penalty_config": loan.penalty_config.to_dict() if loan.penalty_config else None,
        "observations": loan.observations,
        "version": loan.version,
        "payments": [payment_response(p) for p in loan.payments]
    }
    if position is not None:
        result["position"] = position_response(position)
    return result


def collector_response(collector: Collector) -> Dict[str, Any]:
    return {
        "id": collector.id,
        "tenant_id": collector.tenant_id,
        "name": collector.name,
        "username": collector.username,
        "commission_rate_pct": str(collector.commission_rate_pct),
        "is_active": collector.is_active
    }


def transaction_response(transaction: CollectorTransaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "collector_id": transaction.collector_id,
        "kind": transaction.kind.value,
        "amount": money_dict(transaction.amount),
        "timestamp": transaction.timestamp.isoformat(),
        "description": transaction.description
    }


def summary_response(summary: CollectorSummary) -> Dict[str, Any]:
    return {
        "collector_id": summary.collector_id,
        "total_collected": money_dict(summary.total_collected),
        "total_commission": money_dict(summary.total_commission),
        "total_payout": money_dict(summary.total_payout),
        "total_bonus": money_dict(summary.total_bonus),
        "balance": money_dict(summary.balance)
    }


def statement_response(statement: CollectorStatement) -> Dict[str, Any]:
    return {
        "collector_id": statement.collector_id,
        "collector_name": statement.collector_name,
        "lower_bound": statement.lower_bound.isoformat(),
        "items": [
            {
                "id": item.id,
                "timestamp": item.timestamp.isoformat(),
                "kind": item.kind.value,
                "amount": money_dict(item.amount),
                "description": item.description,
                "loan_id": item.loan_id
            }
            for item in statement.items
        ],
        "total_commission": money_dict(statement.total_commission),
        "total_payout": money_dict(statement.total_payout),
        "total_bonus": money_dict(statement.total_bonus),
        "balance": money_dict(statement.balance)
    }


def portfolio_response(summary: PortfolioSummary) -> Dict[str, Any]:
    return {
        "active_loans": summary.active_loans,
        "overdue_loans": summary.overdue_loans,
        "paid_loans": summary.paid_loans,
        "total_receivable": money_dict(summary.total_receivable),
        "invested_capital": money_dict(summary.invested_capital),
        "interest_collected": money_dict(summary.interest_collected),
        "interest_pending": money_dict(summary.interest_pending)
    }
