import pytest

from datepurge.pagination import first_page, is_full_page, next_page
from datepurge.search import MessageRef, SearchResult, run_search

from tests.helpers import DATE_RANGE, FakeMailbox


class CountingSession:
    def __init__(self):
        self.fetches = []

    def fetch_headers(self, uid):
        self.fetches.append(uid)
        return "headers %d" % uid


def test_headers_are_fetched_once_and_lazily():
    session = CountingSession()
    ref = MessageRef(session, 42)
    assert session.fetches == []
    assert ref.headers == "headers 42"
    assert ref.headers == "headers 42"
    assert session.fetches == [42]


def test_positions_are_one_indexed_and_bounded():
    result = SearchResult(total=3, messages=[MessageRef(None, uid) for uid in (7, 8, 9)])
    assert result.at(1).uid == 7
    assert result.at(3).uid == 9
    with pytest.raises(IndexError):
        result.at(0)
    with pytest.raises(IndexError):
        result.at(4)


def test_search_keeps_one_page_and_the_total():
    session = FakeMailbox(12).open()
    result = run_search(session, DATE_RANGE, page_cap=5)
    assert result.total == 12
    assert result.count == 5
    assert [m.uid for m in result.messages] == [1, 2, 3, 4, 5]
    assert session.searches == [DATE_RANGE]


def test_full_page_detection():
    short = SearchResult(total=4, messages=[MessageRef(None, uid) for uid in range(4)])
    full = SearchResult(total=9, messages=[MessageRef(None, uid) for uid in range(5)])
    assert not is_full_page(short, page_cap=5)
    assert is_full_page(full, page_cap=5)


def test_next_page_replaces_the_session():
    mailbox = FakeMailbox(8)
    cursor = first_page(mailbox.open, DATE_RANGE, page_cap=5)
    for message in cursor.result.messages:
        message.mark_deleted()
    fresh = next_page(cursor, mailbox.open, DATE_RANGE, page_cap=5)
    assert cursor.session.closed
    assert fresh.session is not cursor.session
    assert [m.uid for m in fresh.result.messages] == [6, 7, 8]
    assert mailbox.live_sessions() == [fresh.session]
