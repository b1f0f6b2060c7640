"""Notifier factory.

Provides get_notifier() / set_notifier() / reset_notifier(). The fake
adapter is the default; a real SMS or push adapter is installed with
set_notifier() at application startup.
"""

from ordering.notifier.fake_adapter import FakeNotifier
from ordering.notifier.port import NotifierPort

_current_notifier: NotifierPort | None = None


def get_notifier() -> NotifierPort:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = FakeNotifier()
    return _current_notifier


def set_notifier(notifier: NotifierPort) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
