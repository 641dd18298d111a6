"""Change notifications for observed session state."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StateChange:
    """One published attribute changed from ``old`` to ``new``."""

    field: str
    old: Any
    new: Any


Observer = Callable[[StateChange], None]


class SessionObservers:
    """Observer list where each subscriber declares the fields it cares about."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[Observer, frozenset[str] | None]] = []

    def subscribe(self, callback: Observer, fields: Iterable[str] | None = None) -> Callable[[], None]:
        interest = frozenset(fields) if fields is not None else None
        entry = (callback, interest)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def notify(self, field: str, old: Any, new: Any) -> None:
        change = StateChange(field=field, old=old, new=new)
        for callback, interest in list(self._subscribers):
            if interest is not None and field not in interest:
                continue
            try:
                callback(change)
            except Exception:
                logger.exception("Observer %r failed on %s", callback, field)
