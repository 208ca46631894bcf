"""Command line entry point."""
import argparse
import functools
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .audit import setup_audit
from .commit import finish, log_summary
from .config import DEFAULT_CONFIG, DEFAULT_MAX_DELETE, PAGE_CAP, load_config
from .daterange import make_range, parse_date
from .errors import ConfigError, PurgeError, RecoveryExhausted
from .loop import DeletionLoop, RunState
from .pagination import first_page
from .session import open_session

log = logging.getLogger(__name__)

AFFIRMATIVE = ("y", "yes")
TRUE_WORDS = ("yes", "y", "true", "1", "on")
FALSE_WORDS = ("no", "n", "false", "0", "off")


def bool_arg(value: str) -> bool:
    word = value.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"expected yes or no, got {value!r}")


def add_range_args(parser: argparse.ArgumentParser) -> None:
    # Dates are checked once the audit log is open, so their errors land in it.
    parser.add_argument(
        "--before-date", default=None,
        help="Required. Delete messages sent before this day (the day itself is kept)",
    )
    parser.add_argument(
        "--after-date", default=None,
        help="Delete messages sent on or after this day (default: one year before --before-date)",
    )
    parser.add_argument(
        "--max-delete", type=int, default=DEFAULT_MAX_DELETE,
        help="Stop after this many messages (default: %(default)s)",
    )


def add_safety_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--commit", type=bool_arg, default=True, metavar="yes|no",
        help="Expunge marked messages at the end; 'no' only marks them (default: yes)",
    )
    parser.add_argument(
        "--confirm", type=bool_arg, default=True, metavar="yes|no",
        help="Ask before starting and before large runs (default: yes)",
    )


def add_session_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG,
        help="YAML file with the imap connection settings (default: %(default)s)",
    )
    parser.add_argument("--mailbox", default=None, help="Override the configured mailbox")


def add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", default=None, help="Append the audit log to this file instead of stdout")
    parser.add_argument("--log-format", choices=("text", "json"), default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datepurge",
        description="Delete IMAP messages sent within a date range.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    add_range_args(parser)
    add_safety_args(parser)
    add_session_args(parser)
    add_output_args(parser)
    return parser


def ask(question: str) -> bool:
    "Only an explicit yes goes on, end of input or Ctrl-C counts as no."
    try:
        answer = input(f"{question} [y/N] ")
    except (EOFError, KeyboardInterrupt):
        answer = ""
    answer = answer.strip()
    log.info("Asked %r, answered %r", question, answer)
    return answer.lower() in AFFIRMATIVE


def read_range(args: argparse.Namespace):
    if not args.before_date:
        raise ConfigError("--before-date is required")
    before = parse_date(args.before_date)
    after = parse_date(args.after_date) if args.after_date else None
    return make_range(before, after)


def purge(args: argparse.Namespace) -> int:
    date_range = read_range(args)
    if args.max_delete < 1:
        raise ConfigError(f"--max-delete must be at least 1, got {args.max_delete}")
    config = load_config(args.config)
    if args.mailbox:
        config = replace(config, mailbox=args.mailbox)

    log.info(
        "Deleting up to %d message(s) %s from %s on %s (commit=%s)",
        args.max_delete, date_range, config.mailbox, config.host, "yes" if args.commit else "no",
    )
    if args.confirm and not ask(
        f"Delete up to {args.max_delete} emails {date_range} from {config.mailbox}?"
    ):
        log.info("Cancelled, nothing deleted")
        return 0

    connect = functools.partial(open_session, config)
    cursor = first_page(connect, date_range)
    total = cursor.result.total
    if total == 0:
        log.info("No emails found %s", date_range)
        cursor.session.disconnect()
        return 0
    if args.confirm and PAGE_CAP <= total < args.max_delete:
        if not ask(f"Found {total} emails, they are searched {PAGE_CAP} at a time. Continue?"):
            log.info("Cancelled, nothing deleted")
            cursor.session.disconnect()
            return 0

    loop = DeletionLoop(connect, date_range)
    try:
        cursor, state = loop.run(cursor, RunState(max_delete=args.max_delete))
    except RecoveryExhausted as e:
        log_summary(e.state or loop.state, expunged=False)
        raise
    except KeyboardInterrupt:
        log.error("Interrupted, %d message(s) stay marked for deletion", loop.state.deleted)
        log_summary(loop.state, expunged=False)
        raise
    finish(cursor.session, state, args.commit)
    return 0


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        setup_audit(args.output, args.log_format, args.verbose)
    except OSError as e:
        print(f"datepurge: cannot open audit log {args.output}: {e}", file=sys.stderr)
        return 1
    try:
        return purge(args)
    except PurgeError as e:
        log.error("Fatal: %s", e)
        return 1
    except KeyboardInterrupt:
        return 130


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
