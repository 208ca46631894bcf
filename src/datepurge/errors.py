class PurgeError(Exception):
    "A condition that ends the run."


class ConfigError(PurgeError):
    "Missing or invalid configuration, dates or arguments."


class SessionError(PurgeError):
    "Connect, login, select, fetch, store or logout failed."


class SearchError(PurgeError):
    "The server rejected the date range search."


class RecoveryExhausted(PurgeError):
    "Too many per-message failures and no restart left."

    def __init__(self, message: str, state=None):
        super().__init__(message)
        self.state = state


class CommitError(PurgeError):
    "Expunge failed, marked messages stay flagged on the server."
