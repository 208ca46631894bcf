"""The deletion loop.

Each step takes a Frame and returns the next one; the driver in
`DeletionLoop.run` only dispatches on `Frame.step`. Per-message failures
travel as `Frame.failure` strings rather than exceptions.
"""
import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from .config import PAGE_CAP
from .errors import SessionError
from .pagination import Cursor, SessionFactory, is_full_page, next_page
from .recovery import RecoveryPolicy
from .search import MessageRef

log = logging.getLogger(__name__)


class Step(enum.Enum):
    FETCHING = "fetching"
    DELETING = "deleting"
    ERROR_HANDLING = "error-handling"
    RECOVERING = "recovering"
    DONE = "done"


@dataclass(frozen=True)
class RunState:
    "Counters of one run, replaced on every transition."
    max_delete: int
    read: int = 0
    deleted: int = 0
    errors: int = 0
    restarts: int = 0

    @property
    def budget_spent(self) -> bool:
        return self.deleted >= self.max_delete


@dataclass(frozen=True)
class Frame:
    step: Step
    cursor: Cursor
    state: RunState
    position: int = 1
    message: Optional[MessageRef] = None
    failure: Optional[str] = None


def attempt(action: Callable[[], object]) -> Optional[str]:
    "Run one per-message action, returning the failure reason if it failed."
    try:
        action()
    except SessionError as e:
        return str(e)
    return None


class DeletionLoop:
    def __init__(
        self,
        open_session: SessionFactory,
        date_range,
        policy: Optional[RecoveryPolicy] = None,
        page_cap: int = PAGE_CAP,
    ):
        self.open_session = open_session
        self.date_range = date_range
        self.policy = policy or RecoveryPolicy()
        self.page_cap = page_cap
        self.state: Optional[RunState] = None
        self.steps = {
            Step.FETCHING: self.fetching,
            Step.DELETING: self.deleting,
            Step.ERROR_HANDLING: self.error_handling,
            Step.RECOVERING: self.recovering,
        }

    def run(self, cursor: Cursor, state: RunState) -> Tuple[Cursor, RunState]:
        """Process pages until the budget is spent or nothing matches anymore.

        Returns the cursor holding the live session. On a fatal error or an
        interrupt that session is disconnected before the exception propagates,
        `self.state` then holds the counters reached so far.
        """
        self.state = state
        frame = self.start(cursor, state)
        try:
            while frame.step is not Step.DONE:
                log.debug("%s %d/%d", frame.step.value, frame.position, frame.cursor.result.count)
                frame = self.steps[frame.step](frame)
                self.state = frame.state
        except BaseException:
            frame.cursor.session.disconnect()
            raise
        return frame.cursor, frame.state

    def start(self, cursor: Cursor, state: RunState) -> Frame:
        if cursor.result.count == 0 or state.budget_spent:
            return Frame(Step.DONE, cursor, state)
        return Frame(Step.FETCHING, cursor, state, position=1)

    def fetching(self, frame: Frame) -> Frame:
        message = frame.cursor.result.at(frame.position)
        state = replace(frame.state, read=frame.state.read + 1)
        log.info(
            "Reading #%d: message %d/%d uid=%s",
            state.read, frame.position, frame.cursor.result.count, message.uid,
        )
        failure = attempt(lambda: message.headers)
        if failure:
            return replace(frame, step=Step.ERROR_HANDLING, state=state, message=message, failure=failure)
        return replace(frame, step=Step.DELETING, state=state, message=message, failure=None)

    def deleting(self, frame: Frame) -> Frame:
        message = frame.message
        failure = attempt(message.mark_deleted)
        if failure:
            return replace(frame, step=Step.ERROR_HANDLING, failure=failure)
        state = replace(frame.state, deleted=frame.state.deleted + 1)
        headers = message.headers
        log.info(
            "Deleted #%d uid=%s from=%s subject=%r received=%s",
            state.deleted, message.uid, headers.sender, headers.subject,
            headers.received.isoformat() if headers.received else "?",
        )
        if state.budget_spent:
            log.info("Deletion budget of %d reached", state.max_delete)
            return replace(frame, step=Step.DONE, state=state)
        return self.advance(replace(frame, state=state))

    def error_handling(self, frame: Frame) -> Frame:
        state = replace(frame.state, errors=frame.state.errors + 1)
        uid = frame.message.uid if frame.message else "?"
        log.error(
            "Message %d/%d uid=%s failed (error %d): %s",
            frame.position, frame.cursor.result.count, uid, state.errors, frame.failure,
        )
        frame = replace(frame, state=state)
        if self.policy.should_recover(state):
            return replace(frame, step=Step.RECOVERING)
        return self.advance(frame)

    def recovering(self, frame: Frame) -> Frame:
        cursor, state = self.policy.recover(
            frame.cursor, frame.state, self.open_session, self.date_range, self.page_cap
        )
        return self.start(cursor, state)

    def advance(self, frame: Frame) -> Frame:
        "Move to the next position, or to the next page after a full one."
        result = frame.cursor.result
        if frame.position < result.count:
            return replace(frame, step=Step.FETCHING, position=frame.position + 1, message=None, failure=None)
        if not is_full_page(result, self.page_cap):
            log.info("Last page done")
            return replace(frame, step=Step.DONE, message=None, failure=None)
        cursor = next_page(frame.cursor, self.open_session, self.date_range, self.page_cap)
        return self.start(cursor, frame.state)
