import abc
import logging
from datetime import datetime
from email.header import decode_header, make_header
from email.utils import formataddr
from typing import List, Optional

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from .config import CONNECTION_TIMEOUT, SessionConfig
from .daterange import DateRange
from .errors import SearchError, SessionError
from .search import Headers

log = logging.getLogger(__name__)

IMAP_ERRORS = (IMAPClientError, OSError)


class MailSession(abc.ABC):
    """What the purge needs from a mail server.

    One instance is one connection to one selected mailbox, it is never
    reused once disconnected. `disconnect` on a closed session does nothing.
    """

    @abc.abstractmethod
    def connect(self) -> None: ...

    @abc.abstractmethod
    def authenticate(self) -> None: ...

    @abc.abstractmethod
    def select_mailbox(self) -> None: ...

    @abc.abstractmethod
    def search(self, date_range: DateRange) -> List[int]: ...

    @abc.abstractmethod
    def fetch_headers(self, uid: int) -> Headers: ...

    @abc.abstractmethod
    def mark_deleted(self, uid: int) -> None: ...

    @abc.abstractmethod
    def expunge(self) -> None: ...

    @abc.abstractmethod
    def disconnect(self) -> None: ...


def _text(raw) -> str:
    "Decode an ENVELOPE field, RFC 2047 encoded words included."
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        return str(make_header(decode_header(raw)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return raw


def _sender(envelope) -> str:
    addresses = []
    for address in envelope.from_ or ():
        mailbox, host = _text(address.mailbox), _text(address.host)
        addresses.append(formataddr((_text(address.name), f"{mailbox}@{host}" if host else mailbox)))
    return ", ".join(addresses) or "(unknown sender)"


class ImapSession(MailSession):
    "IMAPClient in UID mode."

    def __init__(self, config: SessionConfig):
        self.config = config
        self.client: Optional[IMAPClient] = None
        self.closed = False

    def connect(self) -> None:
        log.info("Connecting to %s:%d...", self.config.host, self.config.port)
        try:
            self.client = IMAPClient(
                self.config.host,
                port=self.config.port,
                use_uid=True,
                ssl=self.config.ssl,
                timeout=CONNECTION_TIMEOUT,
            )
        except IMAP_ERRORS as e:
            raise SessionError(f"connect to {self.config.host}:{self.config.port} failed: {e}") from e

    def authenticate(self) -> None:
        try:
            self.client.login(self.config.username, self.config.password)
        except IMAP_ERRORS as e:
            raise SessionError(f"login as {self.config.username} failed: {e}") from e
        log.info("Logged in as %s", self.config.username)

    def select_mailbox(self) -> None:
        try:
            info = self.client.select_folder(self.config.mailbox)
        except IMAP_ERRORS as e:
            raise SessionError(f"select {self.config.mailbox!r} failed: {e}") from e
        log.info("%s selected, %s messages", self.config.mailbox, info.get(b"EXISTS", "?"))

    def search(self, date_range: DateRange) -> List[int]:
        criteria = date_range.criteria()
        log.debug("search %s", criteria)
        try:
            return list(self.client.search(criteria))
        except IMAP_ERRORS as e:
            raise SearchError(f"search {date_range} failed: {e}") from e

    def fetch_headers(self, uid: int) -> Headers:
        try:
            data = self.client.fetch([uid], ["ENVELOPE", "INTERNALDATE"])
        except IMAP_ERRORS as e:
            raise SessionError(f"fetch of message {uid} failed: {e}") from e
        item = data.get(uid)
        if not item or b"ENVELOPE" not in item:
            raise SessionError(f"message {uid} returned no envelope")
        envelope = item[b"ENVELOPE"]
        received: Optional[datetime] = item.get(b"INTERNALDATE") or envelope.date
        return Headers(
            sender=_sender(envelope),
            subject=_text(envelope.subject) or "(no subject)",
            received=received,
        )

    def mark_deleted(self, uid: int) -> None:
        try:
            self.client.delete_messages([uid])
        except IMAP_ERRORS as e:
            raise SessionError(f"flagging message {uid} as deleted failed: {e}") from e

    def expunge(self) -> None:
        try:
            self.client.expunge()
        except IMAP_ERRORS as e:
            raise SessionError(f"expunge of {self.config.mailbox!r} failed: {e}") from e

    def disconnect(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.client is None:
            return
        try:
            self.client.logout()
        except IMAP_ERRORS as e:
            log.warning("Logout from %s failed: %s", self.config.host, e)
        else:
            log.info("Disconnected from %s", self.config.host)


def open_session(config: SessionConfig) -> MailSession:
    "Connect, log in and select the configured mailbox."
    session = ImapSession(config)
    try:
        session.connect()
        session.authenticate()
        session.select_mailbox()
    except SessionError:
        session.disconnect()
        raise
    return session
