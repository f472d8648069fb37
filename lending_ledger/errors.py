"""
Error taxonomy for the lending ledger.

Every error is raised synchronously by the operation that detects it and is
never retried internally. Messages are meant to be shown to users verbatim.
"""


class LedgerError(Exception):
    """Base class for all ledger errors"""


class NotFoundError(LedgerError):
    """A loan, payment or collector id did not resolve"""
    
    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")


class InvalidAmountError(LedgerError, ValueError):
    """Zero, negative, or unparseable monetary amount"""


class DuplicateIdentityError(LedgerError):
    """Collector username already taken"""


class UnauthenticatedError(LedgerError):
    """Mutating operation attempted without a resolved caller identity"""


class ConcurrentModificationError(LedgerError):
    """Record changed between read and write"""
    
    def __init__(self, table: str, record_id: str, expected_version: int):
        self.table = table
        self.record_id = record_id
        self.expected_version = expected_version
        super().__init__(
            f"{table} record {record_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class LoanSettledError(LedgerError):
    """Payment attempted on a loan that is already paid"""
    
    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} is already paid and accepts no further payments")
