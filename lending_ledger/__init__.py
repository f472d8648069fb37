"""
Lending Ledger

Loan accrual and ledger engine for short-term interest-bearing loans:
origination projections, late-fee accrual, payment application, and
collector commission accounting. All money math uses Decimal.
"""

__version__ = "1.0.0"
