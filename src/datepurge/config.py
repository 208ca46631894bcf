import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

import yaml

from .errors import ConfigError

# Servers such as Gmail never return more than this many UIDs per search.
PAGE_CAP = 1000
DEFAULT_MAX_DELETE = PAGE_CAP
ERROR_THRESHOLD = 5
MAX_RESTARTS = 3
RECOVERY_COOLDOWN = 10.0
CONNECTION_TIMEOUT = 30.0

DEFAULT_CONFIG = "purge.yml"
DEFAULT_MAILBOX = "INBOX"
DEFAULT_PORT = 993


@dataclass(frozen=True)
class SessionConfig:
    "Everything needed to open an authenticated, folder-selected session."
    host: str
    username: str
    password: str = field(repr=False)
    mailbox: str = DEFAULT_MAILBOX
    port: int = DEFAULT_PORT
    ssl: bool = True


def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"config file {path} not found") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse config file {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must hold a mapping")
    return raw


def load_config(path: str, environ: Optional[Mapping[str, str]] = None) -> SessionConfig:
    """Load the `imap` section of a YAML file.

    The IMAP, LOGIN and PASSWORD environment variables win over the file, so
    credentials can stay out of it.
    """
    environ = os.environ if environ is None else environ
    imap = _read_yaml(path).get("imap") or {}
    if not isinstance(imap, dict):
        raise ConfigError(f"'imap' in {path} must be a mapping")

    host = environ.get("IMAP") or imap.get("host")
    username = environ.get("LOGIN") or imap.get("username")
    password = environ.get("PASSWORD") or imap.get("password")
    missing = [
        name
        for name, value in (("host", host), ("username", username), ("password", password))
        if not value
    ]
    if missing:
        raise ConfigError(f"{path}: missing imap {', '.join(missing)}")

    try:
        port = int(imap.get("port", DEFAULT_PORT))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{path}: invalid imap port {imap.get('port')!r}") from e
    ssl = imap.get("ssl", True)
    if not isinstance(ssl, bool):
        raise ConfigError(f"{path}: imap ssl must be true or false, not {ssl!r}")

    return SessionConfig(
        host=str(host),
        username=str(username),
        password=str(password),
        mailbox=str(imap.get("mailbox") or DEFAULT_MAILBOX),
        port=port,
        ssl=ssl,
    )
