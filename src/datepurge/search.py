import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .config import PAGE_CAP

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Headers:
    sender: str
    subject: str
    received: Optional[datetime]


class MessageRef:
    "One message of a search result, headers are fetched on first use."

    def __init__(self, session, uid: int):
        self.session = session
        self.uid = uid
        self._headers: Optional[Headers] = None

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = self.session.fetch_headers(self.uid)
        return self._headers

    def mark_deleted(self) -> None:
        self.session.mark_deleted(self.uid)

    def __repr__(self) -> str:
        return f"MessageRef(uid={self.uid})"


@dataclass
class SearchResult:
    """One page of a date range search.

    `total` is what the server matched, `messages` holds at most one page of
    it in server order.
    """
    total: int
    messages: List[MessageRef]

    @property
    def count(self) -> int:
        return len(self.messages)

    def at(self, position: int) -> MessageRef:
        "1-indexed access, position runs from 1 to count inclusive."
        if not 1 <= position <= self.count:
            raise IndexError(f"position {position} outside 1..{self.count}")
        return self.messages[position - 1]


def run_search(session, date_range, page_cap: int = PAGE_CAP) -> SearchResult:
    log.info("Searching messages %s", date_range)
    uids = session.search(date_range)
    page = uids[:page_cap]
    log.info("Found %d message(s), %d in this page", len(uids), len(page))
    return SearchResult(total=len(uids), messages=[MessageRef(session, uid) for uid in page])
