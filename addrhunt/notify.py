"""
Best-effort outbound notifications.

Delivery failures are logged and swallowed; the search never depends on a
message getting through.
"""

import logging
import os
from typing import Optional

import requests

log = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


def format_duration(seconds: float) -> str:
    seconds = int(round(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def format_startup(workers: int, loaded: int) -> str:
    return (
        f"Starting address search with {workers} workers\n"
        f"Loaded {loaded:,} target addresses"
    )


def format_progress(snapshot, title: str = "Progress Update") -> str:
    return (
        f"{title}:\n"
        f"- Checked: {snapshot.checked:,} addresses\n"
        f"- Found: {snapshot.found:,} matches\n"
        f"- Rate: {snapshot.rate:.2f} checks/sec\n"
        f"- Elapsed: {format_duration(snapshot.elapsed)}"
    )


def format_match(record) -> str:
    return (
        f"FOUND ADDRESS!\n"
        f"Private Key: {record.secret_hex}\n"
        f"WIF: {record.wif}\n"
        f"Address: {record.address}\n"
        f"Total Found: {record.found}"
    )


class Notifier:
    """Base notifier. Subclasses implement send()."""

    def notify(self, message: str) -> bool:
        """Deliver a message, returning False instead of raising on failure."""
        try:
            self.send(message)
        except Exception as e:
            log.warning("%s delivery failed: %s", type(self).__name__, e)
            return False
        return True

    def send(self, message: str) -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    """Notifier used when no external sink is configured."""

    def send(self, message: str) -> None:
        log.debug("Notification: %s", message.replace("\n", " "))


class TelegramNotifier(Notifier):
    """Sends messages through the Telegram Bot API.

    Every request carries a bounded timeout so a slow API cannot stall a
    worker indefinitely.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.chat_id = str(chat_id)
        self.timeout = timeout
        self._session = session
        self._session_pid = os.getpid() if session is not None else None

    @property
    def url(self) -> str:
        return TELEGRAM_API_URL.format(token=self.token)

    def _get_session(self) -> requests.Session:
        # A session inherited through fork shares sockets with the parent
        if self._session is None or self._session_pid != os.getpid():
            self._session = requests.Session()
            self._session_pid = os.getpid()
        return self._session

    def send(self, message: str) -> None:
        resp = self._get_session().post(
            self.url,
            data={"chat_id": self.chat_id, "text": message},
            timeout=self.timeout,
        )
        resp.raise_for_status()

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_session"] = None
        state["_session_pid"] = None
        return state

    def __repr__(self) -> str:
        return f"TelegramNotifier(chat_id={self.chat_id!r}, timeout={self.timeout})"


def build_notifier(config) -> Notifier:
    """Pick the notifier for a SearchConfig."""
    if config.telegram_token and config.telegram_chat_id:
        return TelegramNotifier(
            config.telegram_token,
            config.telegram_chat_id,
            timeout=config.notify_timeout,
        )
    return NullNotifier()
