"Delete IMAP messages sent within a date range, a bounded number at a time."

__version__ = "1.0.0"
