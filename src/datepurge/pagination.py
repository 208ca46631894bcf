import logging
from dataclasses import dataclass
from typing import Callable

from .config import PAGE_CAP
from .search import SearchResult, run_search
from .session import MailSession

log = logging.getLogger(__name__)

SessionFactory = Callable[[], MailSession]


@dataclass(frozen=True)
class Cursor:
    "The only live session and the page it searched."
    session: MailSession
    result: SearchResult


def is_full_page(result: SearchResult, page_cap: int = PAGE_CAP) -> bool:
    "A page short of the cap is the last one, a full page may have more behind it."
    return result.count >= page_cap


def first_page(open_session: SessionFactory, date_range, page_cap: int = PAGE_CAP) -> Cursor:
    session = open_session()
    try:
        result = run_search(session, date_range, page_cap)
    except BaseException:
        session.disconnect()
        raise
    return Cursor(session, result)


def next_page(
    cursor: Cursor, open_session: SessionFactory, date_range, page_cap: int = PAGE_CAP
) -> Cursor:
    """Drop the session and run the same search on a new one.

    The search skips messages already flagged \\Deleted, so the messages of the
    page just processed no longer match.
    """
    log.info("Page cap of %d reached, reconnecting to search for more", page_cap)
    cursor.session.disconnect()
    return first_page(open_session, date_range, page_cap)
