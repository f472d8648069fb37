"""
Test suite for the projection engine

Origination totals, late-fee simulation and the new-loan preview. All
figures are checked to the cent.
"""

import pytest
from decimal import Decimal
from datetime import date, timedelta

from lending_ledger.currency import Money, Currency
from lending_ledger.terms import (
    InterestType, Frequency, FixedPenaltyKind, PenaltyConfig
)
from lending_ledger.projection import (
    compute_origination_total, simulate_late_fee, compute_due_date,
    preview_origination
)


def brl(value: str) -> Money:
    return Money(Decimal(value), Currency.BRL)


class TestOriginationTotal:
    """Test committed total formulas"""
    
    def test_simple_interest(self):
        """1000 at 20% over 3 periods: 1000 * (1 + 0.20 * 3)"""
        total = compute_origination_total(brl('1000'), Decimal('20'), InterestType.SIMPLE, 3)
        assert total == brl('1600.00')
    
    def test_compound_interest(self):
        """1000 at 10% over 2 periods: 1000 * 1.10 ** 2"""
        total = compute_origination_total(brl('1000'), Decimal('10'), InterestType.COMPOUND, 2)
        assert total == brl('1210.00')
    
    def test_balance_based_and_daily_use_simple_formula(self):
        for interest_type in (InterestType.BALANCE_BASED, InterestType.DAILY):
            total = compute_origination_total(brl('500'), Decimal('10'), interest_type, 4)
            assert total == brl('700.00')
    
    def test_zero_rate(self):
        total = compute_origination_total(brl('1000'), Decimal('0'), InterestType.COMPOUND, 5)
        assert total == brl('1000.00')
    
    def test_compound_rounds_half_up(self):
        """1000 * 1.015 ** 3 = 1045.678375"""
        total = compute_origination_total(brl('1000'), Decimal('1.5'), InterestType.COMPOUND, 3)
        assert total == brl('1045.68')
    
    def test_installment_count_must_be_positive(self):
        with pytest.raises(ValueError):
            compute_origination_total(brl('1000'), Decimal('10'), InterestType.SIMPLE, 0)


class TestLateFeeSimulation:
    """Test projected late fees"""
    
    def test_fixed_and_mora(self):
        """10 days late on 1000 with 10%/month mora and a 50 one-time fee"""
        config = PenaltyConfig(
            grace_days=3,
            mora_rate_monthly_pct=Decimal('10'),
            fixed_penalty_amount=Decimal('50'),
            fixed_penalty_kind=FixedPenaltyKind.ONE_TIME
        )
        
        simulation = simulate_late_fee(brl('1000'), config, 10)
        
        assert simulation.fixed_penalty == brl('50.00')
        assert simulation.mora_interest == brl('33.33')
        assert simulation.projected_total == brl('1083.33')
        assert not simulation.within_grace
    
    def test_within_grace_period(self):
        config = PenaltyConfig(grace_days=5, mora_rate_monthly_pct=Decimal('10'),
                               fixed_penalty_amount=Decimal('50'))
        
        simulation = simulate_late_fee(brl('1000'), config, 5)
        
        assert simulation.fixed_penalty.is_zero()
        assert simulation.mora_interest.is_zero()
        assert simulation.projected_total == brl('1000.00')
        assert simulation.within_grace
    
    def test_per_day_fixed_penalty(self):
        config = PenaltyConfig(fixed_penalty_amount=Decimal('5'),
                               fixed_penalty_kind=FixedPenaltyKind.PER_DAY)
        
        simulation = simulate_late_fee(brl('1000'), config, 10)
        
        assert simulation.fixed_penalty == brl('50.00')
        assert simulation.mora_interest.is_zero()
    
    def test_inactive_config_still_simulates(self):
        """The preview shows what the fees would be if penalties were on"""
        config = PenaltyConfig(active=False, fixed_penalty_amount=Decimal('20'))
        
        simulation = simulate_late_fee(brl('100'), config, 1)
        
        assert simulation.fixed_penalty == brl('20.00')
    
    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            simulate_late_fee(brl('1000'), PenaltyConfig(), -1)


class TestPenaltyConfig:
    """Test penalty configuration"""
    
    def test_daily_rate_entry(self):
        """A daily mora rate is stored as its 30-day equivalent"""
        config = PenaltyConfig.from_daily_rate(Decimal('0.5'), grace_days=2)
        assert config.mora_rate_monthly_pct == Decimal('15.0')
        assert config.grace_days == 2
    
    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            PenaltyConfig(grace_days=-1)
        with pytest.raises(ValueError):
            PenaltyConfig(mora_rate_monthly_pct=Decimal('-1'))
        with pytest.raises(ValueError):
            PenaltyConfig(fixed_penalty_amount=Decimal('-0.01'))
    
    def test_dict_round_trip(self):
        config = PenaltyConfig(active=False, grace_days=3, mora_rate_monthly_pct=Decimal('10'),
                               fixed_penalty_amount=Decimal('2.50'),
                               fixed_penalty_kind=FixedPenaltyKind.PER_DAY)
        assert PenaltyConfig.from_dict(config.to_dict()) == config
        assert PenaltyConfig.from_dict(None) is None


class TestOriginationPreview:
    """Test the new-loan preview bundle"""
    
    def test_due_date_per_frequency(self):
        start = date(2024, 1, 1)
        assert compute_due_date(start, Frequency.WEEKLY, 4) == start + timedelta(days=28)
        assert compute_due_date(start, Frequency.BIWEEKLY, 2) == start + timedelta(days=30)
        assert compute_due_date(start, Frequency.MONTHLY, 3) == start + timedelta(days=90)
        assert compute_due_date(start, Frequency.SINGLE, 1) == start + timedelta(days=30)
    
    def test_preview(self):
        config = PenaltyConfig(mora_rate_monthly_pct=Decimal('10'), fixed_penalty_amount=Decimal('50'))
        
        preview = preview_origination(
            principal=brl('1000'),
            rate_pct=Decimal('20'),
            interest_type=InterestType.SIMPLE,
            frequency=Frequency.MONTHLY,
            installment_count=3,
            origination_date=date(2024, 1, 1),
            penalty_config=config,
            simulated_overdue_days=10
        )
        
        assert preview.committed_total == brl('1600.00')
        assert preview.planned_interest == brl('600.00')
        assert preview.installment_amount == brl('533.33')
        assert preview.due_date == date(2024, 3, 31)
        assert preview.late_fee.mora_interest == brl('53.33')
        assert preview.late_fee.projected_total == brl('1703.33')
    
    def test_preview_without_penalty(self):
        preview = preview_origination(brl('100'), Decimal('10'), InterestType.SIMPLE,
                                      Frequency.WEEKLY, 1, date(2024, 1, 1))
        assert preview.late_fee is None
        assert preview.committed_total == brl('110.00')
