class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced row does not exist."""


class PolicyMissingError(DomainError):
    """No active leave policy for a (category, leave type) pair.

    Treated as zero allocation by the resolver; never fatal.
    """

    def __init__(self, category_id, leave_type_id):
        super().__init__(f"No leave policy for category={category_id} leave_type={leave_type_id}")
        self.category_id = category_id
        self.leave_type_id = leave_type_id


class ConflictError(DomainError):
    """Duplicate payment for an employee+month or overlapping active salary record."""


class PartialBatchFailure(DomainError):
    """Some employees in a payroll batch failed; the others were processed."""

    def __init__(self, report):
        failed = [o.employee_id for o in report.failures]
        super().__init__(f"{len(failed)} employee(s) failed: {failed}")
        self.report = report
