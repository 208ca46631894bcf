from datetime import date, datetime

from datepurge.daterange import DateRange
from datepurge.errors import SearchError, SessionError
from datepurge.search import Headers
from datepurge.session import MailSession

DATE_RANGE = DateRange(after=date(2022, 1, 1), before=datetime(2022, 12, 31, 23, 59, 59))


class FakeMailbox:
    """Messages shared by every session opened on it.

    `broken_sessions` sessions are opened with every STORE failing, like a
    connection gone bad. `failing` and `unreadable` fail on every session, reaching a uid in
    `interrupt_at` acts like Ctrl-C.
    """

    def __init__(self, count=0, failing=(), unreadable=(), broken_sessions=0, interrupt_at=()):
        self.uids = list(range(1, count + 1))
        self.flagged = set()
        self.expunged = set()
        self.failing = set(failing)
        self.unreadable = set(unreadable)
        self.interrupt_at = set(interrupt_at)
        self.broken_sessions = broken_sessions
        self.failing_opens = 0
        self.failing_searches = 0
        self.expunge_error = None
        self.sessions = []
        self.searches = 0
        self.expunges = 0

    def open(self):
        if self.failing_opens:
            self.failing_opens -= 1
            raise SessionError("connection refused")
        session = FakeSession(self, broken=len(self.sessions) < self.broken_sessions)
        session.connect()
        session.authenticate()
        session.select_mailbox()
        self.sessions.append(session)
        return session

    def live_sessions(self):
        return [s for s in self.sessions if not s.closed]


class FakeSession(MailSession):
    def __init__(self, mailbox, broken=False):
        self.mailbox = mailbox
        self.broken = broken
        self.closed = False
        self.logouts = 0
        self.searches = []

    def connect(self):
        pass

    def authenticate(self):
        pass

    def select_mailbox(self):
        pass

    def search(self, date_range):
        self.mailbox.searches += 1
        self.searches.append(date_range)
        if self.mailbox.failing_searches:
            self.mailbox.failing_searches -= 1
            raise SearchError("SEARCH rejected")
        gone = self.mailbox.flagged | self.mailbox.expunged
        return [uid for uid in self.mailbox.uids if uid not in gone]

    def fetch_headers(self, uid):
        if uid in self.mailbox.interrupt_at:
            raise KeyboardInterrupt
        if uid in self.mailbox.unreadable:
            raise SessionError(f"message {uid} returned no envelope")
        return Headers(
            sender=f"sender{uid}@example.com",
            subject=f"Message {uid}",
            received=datetime(2022, 6, 1, 12, 0),
        )

    def mark_deleted(self, uid):
        if self.closed:
            raise AssertionError("STORE on a closed session")
        if self.broken or uid in self.mailbox.failing:
            raise SessionError(f"STORE failed for {uid}")
        self.mailbox.flagged.add(uid)

    def expunge(self):
        self.mailbox.expunges += 1
        if self.mailbox.expunge_error:
            raise SessionError(self.mailbox.expunge_error)
        self.mailbox.expunged |= self.mailbox.flagged
        self.mailbox.flagged = set()

    def disconnect(self):
        if self.closed:
            return
        self.closed = True
        self.logouts += 1
