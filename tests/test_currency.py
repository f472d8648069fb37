"""
Test suite for currency module

Tests Money arithmetic, precision and rounding, and parsing of user-entered
amounts. Financial calculations must be exact.
"""

import pytest
from decimal import Decimal

from lending_ledger.currency import (
    Money, Currency, money_max, money_min, decimal_from_string, parse_amount
)
from lending_ledger.errors import InvalidAmountError


class TestMoney:
    """Test Money class operations"""
    
    def test_money_creation(self):
        """Test Money object creation and rounding"""
        money = Money(Decimal('100.50'), Currency.BRL)
        assert money.amount == Decimal('100.50')
        assert money.currency == Currency.BRL
        
        # Half-up rounding to two places
        assert Money(Decimal('100.555'), Currency.BRL).amount == Decimal('100.56')
        assert Money(Decimal('1.005'), Currency.BRL).amount == Decimal('1.01')
        assert Money(Decimal('33.3333'), Currency.BRL).amount == Decimal('33.33')
    
    def test_money_from_non_decimal(self):
        assert Money('10.1', Currency.BRL).amount == Decimal('10.10')
        assert Money(5, Currency.BRL).amount == Decimal('5.00')
    
    def test_money_arithmetic(self):
        money1 = Money(Decimal('100.50'), Currency.BRL)
        money2 = Money(Decimal('50.25'), Currency.BRL)
        
        assert (money1 + money2).amount == Decimal('150.75')
        assert (money1 - money2).amount == Decimal('50.25')
        assert (money1 * Decimal('2')).amount == Decimal('201.00')
        assert (money1 / Decimal('3')).amount == Decimal('33.50')
        assert abs(Money(Decimal('-50'), Currency.BRL)).amount == Decimal('50.00')
    
    def test_money_comparison(self):
        small = Money(Decimal('50'), Currency.BRL)
        large = Money(Decimal('100'), Currency.BRL)
        
        assert small < large
        assert large >= small
        assert small == Money(Decimal('50.00'), Currency.BRL)
        assert small != Money(Decimal('50.00'), Currency.USD)
        assert money_max(small, large) == large
        assert money_min(small, large) == small
    
    def test_money_currency_mismatch(self):
        brl = Money(Decimal('10'), Currency.BRL)
        usd = Money(Decimal('10'), Currency.USD)
        
        with pytest.raises(ValueError, match="Cannot add"):
            brl + usd
        with pytest.raises(ValueError, match="Cannot subtract"):
            brl - usd
        with pytest.raises(ValueError, match="Cannot compare"):
            brl < usd
    
    def test_money_state_checks(self):
        assert Money.zero(Currency.BRL).is_zero()
        assert Money(Decimal('0.01'), Currency.BRL).is_positive()
        assert Money(Decimal('0.004'), Currency.BRL).is_zero()
    
    def test_money_string_formatting(self):
        assert Money(Decimal('1000'), Currency.BRL).to_string() == "BRL 1,000.00"
        assert Money(Decimal('1234567.891'), Currency.USD).to_string() == "USD 1,234,567.89"


class TestAmountParsing:
    """Test parsing of user-entered amounts"""
    
    @pytest.mark.parametrize("text, expected", [
        ("1000", Decimal('1000')),
        ("1,234.56", Decimal('1234.56')),
        ("1.234,56", Decimal('1234.56')),
        ("10,5", Decimal('10.5')),
        ("1,234", Decimal('1234')),
        ("1.234.567", Decimal('1234567')),
        ("R$ 1.500,00", Decimal('1500.00')),
        (" 42.10 ", Decimal('42.10')),
    ])
    def test_decimal_from_string_valid(self, text, expected):
        assert decimal_from_string(text) == expected
    
    @pytest.mark.parametrize("text", ["", "abc", "1.2.3,4,5", "--1"])
    def test_decimal_from_string_invalid(self, text):
        with pytest.raises(InvalidAmountError):
            decimal_from_string(text)
    
    def test_invalid_amount_is_value_error(self):
        with pytest.raises(ValueError):
            decimal_from_string("abc")
    
    def test_parse_amount(self):
        assert parse_amount("1.234,56", Currency.BRL) == Money(Decimal('1234.56'), Currency.BRL)
        assert parse_amount(Decimal('10'), Currency.USD).currency == Currency.USD
        assert parse_amount(5, Currency.BRL).amount == Decimal('5.00')
    
    @pytest.mark.parametrize("value", ["0", "-10", "0.001", Decimal('0'), -1])
    def test_parse_amount_rejects_non_positive(self, value):
        with pytest.raises(InvalidAmountError):
            parse_amount(value, Currency.BRL)
