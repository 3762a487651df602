"""
Exceptions raised by the finflow engine.

Most engine functions are total and never raise for bad records
(they log and fall back). These exceptions cover the few places
where the caller handed over something the engine cannot work with.
"""


class FinflowError(Exception):
    """Base class for all finflow errors."""
    pass


class MonthKeyError(FinflowError, ValueError):
    """A month key was not in canonical YYYY-MM form."""

    def __init__(self, key: object):
        self.key = key
        super().__init__(f"Invalid month key: {key!r} (expected YYYY-MM)")


class LoanPaymentError(FinflowError):
    """A payment could not be applied to a loan."""

    def __init__(self, loan_id: str, message: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id}: {message}")


class SalaryCalculationError(FinflowError):
    """Salary inputs produced nothing that can be planned."""

    def __init__(self, month_key: str, message: str):
        self.month_key = month_key
        super().__init__(f"Salary for {month_key}: {message}")
