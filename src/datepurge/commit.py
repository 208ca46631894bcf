import logging

from .errors import CommitError, SessionError

log = logging.getLogger(__name__)


def log_summary(state, expunged: bool) -> None:
    log.info("=" * 60)
    log.info("SUMMARY")
    log.info("=" * 60)
    log.info("Messages read:     %d", state.read)
    log.info("Messages deleted:  %d", state.deleted)
    log.info("Errors:            %d", state.errors)
    log.info("Restarts:          %d", state.restarts)
    log.info("Mode:              %s", "COMMIT (expunged)" if expunged else "MARK ONLY (not expunged)")
    log.info("=" * 60)


def finish(session, state, commit: bool) -> None:
    """Expunge if asked to, log the summary and disconnect.

    The session is disconnected whatever happens. A failed expunge leaves
    the marks on the server for a later manual expunge.
    """
    expunged = False
    try:
        if commit:
            log.info("Expunging %d message(s) marked for deletion...", state.deleted)
            try:
                session.expunge()
            except SessionError as e:
                log.error("Expunge failed, %d message(s) stay marked for deletion: %s", state.deleted, e)
                raise CommitError(str(e)) from e
            expunged = True
            log.info("Expunge complete")
        else:
            log.info("Commit disabled, %d message(s) left marked for deletion", state.deleted)
    finally:
        log_summary(state, expunged)
        session.disconnect()
