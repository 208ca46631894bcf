import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable

from .config import ERROR_THRESHOLD, MAX_RESTARTS, PAGE_CAP, RECOVERY_COOLDOWN
from .errors import RecoveryExhausted, SearchError, SessionError
from .pagination import Cursor, SessionFactory, first_page

log = logging.getLogger(__name__)


@dataclass
class RecoveryPolicy:
    """When and how often a run may restart its session.

    With `reset_errors` the error threshold applies per recovery window,
    otherwise errors add up over the whole run.
    """
    max_restarts: int = MAX_RESTARTS
    cooldown: float = RECOVERY_COOLDOWN
    error_threshold: int = ERROR_THRESHOLD
    reset_errors: bool = True
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def should_recover(self, state) -> bool:
        return state.errors > self.error_threshold

    def recover(
        self,
        cursor: Cursor,
        state,
        open_session: SessionFactory,
        date_range,
        page_cap: int = PAGE_CAP,
    ):
        "Returns a fresh (Cursor, RunState), or raises RecoveryExhausted."
        cursor.session.disconnect()
        while state.restarts < self.max_restarts:
            state = replace(state, restarts=state.restarts + 1)
            log.warning(
                "Restart %d/%d after %d error(s), waiting %gs before reconnecting",
                state.restarts, self.max_restarts, state.errors, self.cooldown,
            )
            self.sleep(self.cooldown)
            try:
                fresh = first_page(open_session, date_range, page_cap)
            except (SessionError, SearchError) as e:
                log.error("Restart %d/%d failed: %s", state.restarts, self.max_restarts, e)
                continue
            if self.reset_errors:
                state = replace(state, errors=0)
            log.info("Restart %d/%d succeeded", state.restarts, self.max_restarts)
            return fresh, state
        raise RecoveryExhausted(
            f"giving up after {state.restarts} restart(s) and {state.errors} error(s)", state
        )
