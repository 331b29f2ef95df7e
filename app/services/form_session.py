"""Per-browser-session state shared by the request form and the assistant panel.

Each session keeps the field the user is working on, the last validation error
map and a snapshot of the form, and lets interested parts of the app subscribe
to a few events instead of reaching into each other's state.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable

logger = logging.getLogger(__name__)

ERRORS_REPORTED = "errors-reported"
ERRORS_RESOLVED = "errors-resolved"
FIELD_FILLED = "field-filled"

SESSION_TTL = timedelta(hours=8)
MAX_SESSIONS = 500

Listener = Callable[[str, dict[str, Any]], None]


@dataclass
class FormSession:
    session_id: str
    active_field: str = ""
    errors: dict[str, str] = field(default_factory=dict)
    snapshot: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    accessed_at: datetime = field(default_factory=datetime.utcnow, repr=False)
    _listeners: dict[str, list[Listener]] = field(default_factory=lambda: defaultdict(list), repr=False)

    def subscribe(self, event: str, callback: Listener) -> Callable[[], None]:
        self._listeners[event].append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        return _unsubscribe

    def publish(self, event: str, payload: dict[str, Any]) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Form session listener failed for %s", event)

    def report_errors(self, errors: dict[str, str], snapshot: dict[str, Any] | None = None) -> None:
        had_errors = bool(self.errors)
        self.errors = dict(errors)
        if snapshot is not None:
            self.snapshot = dict(snapshot)
        self.updated_at = datetime.utcnow()
        if self.errors:
            self.publish(ERRORS_REPORTED, {"errors": dict(self.errors)})
        elif had_errors:
            self.publish(ERRORS_RESOLVED, {})

    def fill_field(self, field_id: str, value: Any) -> None:
        self.snapshot[field_id] = value
        self.active_field = field_id
        self.updated_at = datetime.utcnow()
        self.publish(FIELD_FILLED, {"fieldId": field_id, "value": value})

    def to_payload(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "activeField": self.active_field,
            "errors": dict(self.errors),
            "snapshot": dict(self.snapshot),
            "updatedAt": self.updated_at.isoformat(),
        }


_LOCK = Lock()
_SESSIONS: dict[str, FormSession] = {}


def _evict_sessions(now: datetime, keep: str) -> None:
    # Caller holds _LOCK.
    cutoff = now - SESSION_TTL
    stale = [key for key, s in _SESSIONS.items() if key != keep and s.accessed_at < cutoff]
    overflow = len(_SESSIONS) - len(stale) - MAX_SESSIONS
    if overflow > 0:
        live = sorted(
            (s for key, s in _SESSIONS.items() if key != keep and key not in stale),
            key=lambda s: s.accessed_at,
        )
        stale.extend(s.session_id for s in live[:overflow])
    for key in stale:
        _SESSIONS.pop(key, None)
    if stale:
        logger.info("Evicted %s idle form session(s)", len(stale))


def get_form_session(session_id: str) -> FormSession:
    key = str(session_id or "").strip() or "default"
    now = datetime.utcnow()
    with _LOCK:
        session = _SESSIONS.get(key)
        if session is None:
            session = FormSession(session_id=key)
            _SESSIONS[key] = session
        session.accessed_at = now
        _evict_sessions(now, keep=key)
        return session


def drop_form_session(session_id: str) -> None:
    with _LOCK:
        _SESSIONS.pop(str(session_id or "").strip() or "default", None)
