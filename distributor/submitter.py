from typing import Optional, Protocol

from distributor.errors import InvariantViolation, LedgerRuleError, SubmissionFailed
from distributor.ledger import apply_transition
from distributor.models import LedgerDB, LedgerState, Transition


class Submitter(Protocol):
    """Durably applies a prepared transition or raises `SubmissionFailed`. Never retries."""

    def submit(self, transition: Transition) -> None:
        ...


class LocalSubmitter:
    """
    Applies transitions to an in-process ledger, persisting it to TinyDB when a db is given.
    Used for dry runs and simulations of a distribution cycle.
    """

    def __init__(self, state: LedgerState, db: Optional[LedgerDB] = None):
        self.state = state
        self.db = db
        self.submitted: list[Transition] = []

    def submit(self, transition: Transition) -> None:
        try:
            apply_transition(self.state, transition)
        except (LedgerRuleError, InvariantViolation) as e:
            raise SubmissionFailed(
                f"{transition.kind} for {transition.token} rejected: {e}"
            ) from e

        self.submitted.append(transition)
        if self.db is not None:
            self.db.write_state(self.state)
        print(f"✅ Applied {transition.kind} for {transition.token}")
