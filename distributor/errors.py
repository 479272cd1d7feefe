from typing import Optional


class BadConfigException(Exception):
    pass


class MissingEnvironmentVariableException(Exception):
    pass


# input / data errors


class InputDataError(Exception):
    """Raised before anything external is touched, the pipeline halts"""

    pass


class InvalidInputData(InputDataError):
    """Raise if a balance map is not an object of address -> non-negative integer"""

    pass


class DegenerateDistribution(InputDataError):
    """Raise if a proportional split would divide by zero"""

    pass


# invariant violations


class InvariantViolation(Exception):
    """
    Always fatal to the current distribution cycle, never auto corrected.
    Carries enough detail to audit the offending entry by hand.
    """

    def __init__(
        self,
        message: str,
        recipient: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        super().__init__(message)
        self.recipient = recipient
        self.expected = expected
        self.actual = actual


class Monotonicity(InvariantViolation):
    pass


class Conservation(InvariantViolation):
    pass


class SpuriousDeletion(InvariantViolation):
    pass


class AccountingMismatch(InvariantViolation):
    pass


class RootMismatch(InvariantViolation):
    pass


class TotalMismatch(InvariantViolation):
    pass


# ledger rule violations


class LedgerRuleError(Exception):
    """Expected, recoverable by the caller"""

    pass


class AlreadyExists(LedgerRuleError):
    pass


class NotFound(LedgerRuleError):
    pass


class Paused(LedgerRuleError):
    pass


class AlreadyPaused(LedgerRuleError):
    pass


class NotPaused(LedgerRuleError):
    pass


class InvalidProof(LedgerRuleError):
    pass


class NothingToClaim(LedgerRuleError):
    pass


class LengthMismatch(LedgerRuleError):
    pass


# external collaborators


class SubmissionFailed(Exception):
    """Raise if the ledger submitter could not apply a transition"""

    pass


class DatasetNotFound(Exception):
    """Raise if the dataset store holds nothing for a pointer"""

    pass
