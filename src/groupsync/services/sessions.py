from __future__ import annotations

import time
from typing import Any

from pydantic import ValidationError

from groupsync.backend.interface import GroupBackend
from groupsync.data import (
    GroupNotice,
    GroupView,
    SessionDraft,
    StudySession,
    split_module_name,
)
from groupsync.services.base import EventHook, ServiceErrorEvent
from groupsync.services.invalidation import InvalidationBus, InvalidationSignal
from groupsync.utils import get_logger


logger = get_logger(__name__)


class SessionScheduler:
    """Schedule study sessions for a group and announce them to other views."""

    def __init__(self, backend: GroupBackend, bus: InvalidationBus) -> None:
        self._backend = backend
        self._bus = bus
        self.errors: EventHook[ServiceErrorEvent] = EventHook()

    async def schedule(self, group: GroupView, draft: SessionDraft) -> StudySession:
        """Broadcast an optimistic session, then persist it when the group is saved.

        The returned session is the server entity when creation succeeded and
        the optimistic one otherwise.
        """

        course_code, course = split_module_name(group.module_name)
        optimistic = StudySession(
            id=str(int(time.time() * 1000)),
            title=draft.title,
            date=draft.date,
            start_time=draft.start_time,
            end_time=draft.end_time,
            location=draft.location,
            session_type=draft.session_type,
            group_id=group.backend_id or None,
            course=course,
            course_code=course_code,
        )
        self._announce(optimistic)

        if not group.backend_id:
            logger.info("Session kept local; group is not persisted", local_id=group.local_id)
            return optimistic

        payload: dict[str, Any] = {
            "title": draft.title,
            "course": course,
            "courseCode": course_code,
            "date": draft.date,
            "startTime": draft.start_time,
            "endTime": draft.end_time,
            "location": draft.location,
            "type": draft.session_type,
            "groupId": group.backend_id,
        }
        try:
            created = await self._backend.create_session(
                {key: value for key, value in payload.items() if value is not None}
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Session scheduling failed", backend_id=group.backend_id)
            self.errors.emit(
                ServiceErrorEvent(
                    action="schedule_session",
                    error=exc,
                    local_id=group.local_id,
                    backend_id=group.backend_id,
                )
            )
            return optimistic
        if not created:
            logger.warning("Session create returned no entity", backend_id=group.backend_id)
            return optimistic

        session = self._merge(optimistic, created)
        if session.id:
            await self._remind(session.id)
        await self._announce_to_group(group, session)
        self._announce(session)
        logger.info(
            "Session scheduled",
            backend_id=group.backend_id,
            session_id=session.id,
        )
        return session

    def _announce(self, session: StudySession) -> None:
        self._bus.publish(InvalidationSignal.SESSION_CREATED, session.to_payload())
        self._bus.publish(InvalidationSignal.SESSIONS_INVALIDATE)

    @staticmethod
    def _merge(optimistic: StudySession, created: dict[str, Any]) -> StudySession:
        # Keep the locally entered date and times so the calendar does not shift.
        try:
            server = StudySession.from_payload({"title": optimistic.title, **created})
        except ValidationError:
            logger.warning("Created session payload failed validation")
            return optimistic
        return optimistic.model_copy(
            update={
                "id": server.id or optimistic.id,
                "title": server.title or optimistic.title,
                "location": server.location or optimistic.location,
                "session_type": server.session_type,
                "participants": server.participants,
                "status": server.status,
                "group_id": server.group_id or optimistic.group_id,
                "course": server.course or optimistic.course,
                "course_code": server.course_code or optimistic.course_code,
            }
        )

    async def _remind(self, session_id: str) -> None:
        try:
            scheduled = await self._backend.schedule_session_reminder(session_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Session reminder failed", session_id=session_id, error=str(exc))
            return
        if not scheduled:
            logger.warning("Session reminder was not scheduled", session_id=session_id)

    async def _announce_to_group(self, group: GroupView, session: StudySession) -> None:
        notice = GroupNotice(
            title="New study session",
            message=f'"{session.title}" on {session.date} at {session.start_time}',
            metadata={
                "groupId": group.backend_id,
                "sessionId": session.id,
                "type": "session_created",
            },
        )
        try:
            await self._backend.notify_group(group.backend_id, notice.to_payload())
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Session announcement failed",
                backend_id=group.backend_id,
                error=str(exc),
            )


__all__ = ["SessionScheduler"]
