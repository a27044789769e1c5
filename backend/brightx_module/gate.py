import logging
from dataclasses import dataclass, field

from .errors import NoPendingConfirmationError


logger = logging.getLogger(__name__)

DELETE_STUDENT = "delete_student"
UNMARK_FEE = "unmark_fee"


@dataclass(frozen=True)
class PendingAction:
    operation: str
    params: dict[str, str] = field(default_factory=dict)
    description: str = ""


class ConfirmationGate:
    """Holds at most one destructive action until the admin confirms or cancels it.

    The action is a plain tagged request; whoever resolves the gate decides how to
    run it. ``take`` and ``cancel`` both close the gate, so a request can be
    resolved only once.
    """

    def __init__(self) -> None:
        self._pending: PendingAction | None = None

    @property
    def pending(self) -> PendingAction | None:
        return self._pending

    @property
    def is_open(self) -> bool:
        return self._pending is not None

    def request(self, action: PendingAction) -> PendingAction:
        if self._pending is not None:
            logger.info(f"Replacing unresolved confirmation: {self._pending.description}")
        self._pending = action
        return action

    def take(self) -> PendingAction:
        action = self._close()
        logger.info(f"Confirmed: {action.description}")
        return action

    def cancel(self) -> PendingAction:
        action = self._close()
        logger.info(f"Cancelled: {action.description}")
        return action

    def _close(self) -> PendingAction:
        if self._pending is None:
            raise NoPendingConfirmationError("No action is awaiting confirmation")
        action, self._pending = self._pending, None
        return action
