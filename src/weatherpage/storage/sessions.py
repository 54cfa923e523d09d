from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from threading import Lock

from ..domain.models import FallbackReason, GeoPermissionState, ResolutionOutcome


@dataclass(slots=True, frozen=True)
class DisplayState:
    """Everything the weather partial needs for one browser session."""

    generation: int = 0
    loading: bool = True
    permission: GeoPermissionState = GeoPermissionState.UNREQUESTED
    outcome: ResolutionOutcome | None = None
    fallback_reason: FallbackReason | None = None
    from_coordinates: bool = False
    probed: bool = False
    touched_at: datetime | None = None

    def is_idle(self, max_idle_seconds: int, now: datetime | None = None) -> bool:
        if self.touched_at is None:
            return True
        reference = now or datetime.now(timezone.utc)
        return (reference - self.touched_at).total_seconds() > max_idle_seconds


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DisplayStateStore:
    """One "current outcome" slot per session, guarded by a generation token.

    begin() starts a new load and returns its token; complete() only applies
    an outcome whose token is still the latest for that session.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._states: dict[str, DisplayState] = {}

    def get(self, session_id: str) -> DisplayState:
        with self._lock:
            return self._states.get(session_id) or DisplayState()

    def claim_startup(self, session_id: str, *, now: datetime | None = None) -> bool:
        """Mark the session as probed; False if its startup probe already ran."""
        record_time = _normalize_datetime(now) if now is not None else _utc_now()
        with self._lock:
            current = self._states.get(session_id) or DisplayState()
            if current.probed:
                return False
            self._states[session_id] = replace(current, probed=True, touched_at=record_time)
            return True

    def begin(self, session_id: str, *, now: datetime | None = None) -> int:
        record_time = _normalize_datetime(now) if now is not None else _utc_now()
        with self._lock:
            current = self._states.get(session_id) or DisplayState()
            token = current.generation + 1
            # A new load never shows the previous snapshot alongside the spinner.
            self._states[session_id] = replace(
                current,
                generation=token,
                loading=True,
                outcome=None,
                fallback_reason=None,
                from_coordinates=False,
                touched_at=record_time,
            )
            return token

    def set_permission(
        self, session_id: str, permission: GeoPermissionState, *, now: datetime | None = None
    ) -> None:
        """Record the geolocation permission; not subject to the generation token."""
        record_time = _normalize_datetime(now) if now is not None else _utc_now()
        with self._lock:
            current = self._states.get(session_id) or DisplayState()
            self._states[session_id] = replace(current, permission=permission, touched_at=record_time)

    def complete(
        self,
        session_id: str,
        token: int,
        outcome: ResolutionOutcome,
        *,
        permission: GeoPermissionState | None = None,
        fallback_reason: FallbackReason | None = None,
        from_coordinates: bool = False,
        now: datetime | None = None,
    ) -> bool:
        record_time = _normalize_datetime(now) if now is not None else _utc_now()
        with self._lock:
            current = self._states.get(session_id)
            if current is None or current.generation != token:
                return False
            self._states[session_id] = replace(
                current,
                loading=False,
                outcome=outcome,
                permission=permission if permission is not None else current.permission,
                fallback_reason=fallback_reason,
                from_coordinates=from_coordinates,
                touched_at=record_time,
            )
            return True

    def session_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._states)

    def prune_idle_sessions(self, max_idle_seconds: int, *, now: datetime | None = None) -> int:
        if max_idle_seconds < 0:
            raise ValueError("max_idle_seconds must be >= 0")

        reference = _normalize_datetime(now) if now is not None else _utc_now()
        with self._lock:
            idle = [
                session_id
                for session_id, state in self._states.items()
                if state.is_idle(max_idle_seconds, now=reference)
            ]
            for session_id in idle:
                del self._states[session_id]
        return len(idle)
