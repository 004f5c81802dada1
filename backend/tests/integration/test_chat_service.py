"""
Integration tests for ChatService with real SQLite repositories.
"""

import asyncio
from uuid import uuid4

import pytest

from app.core.exceptions import (
    AlreadyRatedError,
    BusyError,
    InvalidTransitionError,
    NotResolvedError,
    SessionNotFoundError,
    ValidationError,
)
from app.models.chat_session import ChatMessageCreate, VisitorInfo
from app.models.department import DepartmentCreate
from app.models.enums import MessageType, PrincipalRole, SenderType, SessionStatus
from app.services.analytics_service import AnalyticsService


def visitor_says(body: str) -> ChatMessageCreate:
    return ChatMessageCreate(sender_type=SenderType.VISITOR, body=body)


def agent_says(body: str, agent_id: str = "kim") -> ChatMessageCreate:
    return ChatMessageCreate(sender_type=SenderType.ADMIN, sender_id=agent_id, body=body)


async def resolved_session(chat_service):
    session = await chat_service.open(VisitorInfo(visitor_name="Asha"))
    await chat_service.append_message(session.id, visitor_says("need help"))
    await chat_service.append_message(session.id, agent_says("on it"))
    return await chat_service.set_status(session.id, SessionStatus.RESOLVED, actor_id="kim")


class TestConversationFlow:
    @pytest.mark.asyncio
    async def test_asha_scenario(self, chat_service, department_repo, session_repo, settings):
        await department_repo.create(DepartmentCreate(name="Technical", slug="technical"))

        session = await chat_service.open(VisitorInfo(visitor_name="Asha", department="technical"))
        result = await chat_service.append_message(session.id, visitor_says("need help"))
        assert result.session.status == SessionStatus.WAITING

        assigned = await chat_service.assign(session.id)
        assert assigned.status == SessionStatus.ASSIGNED
        assert assigned.department_id is not None

        reply = await chat_service.append_message(session.id, agent_says("hello Asha"))
        assert reply.session.status == SessionStatus.ASSIGNED

        resolved = await chat_service.set_status(session.id, SessionStatus.RESOLVED, actor_id="kim")
        assert resolved.status == SessionStatus.RESOLVED
        assert resolved.resolved_at is not None

        rated = await chat_service.rate(session.id, 5, "great")
        assert rated.rating == 5

        with pytest.raises(AlreadyRatedError):
            await chat_service.rate(session.id, 3)
        stored = await session_repo.get(session.id)
        assert stored.rating == 5
        assert stored.rating_comment == "great"

        summary = await AnalyticsService(session_repo, settings=settings).summarize()
        expected = (reply.message.created_at - session.created_at).total_seconds()
        assert summary.total_chats == 1
        assert summary.avg_response_time == round(expected)
        assert summary.department_stats["technical"].resolved == 1

    @pytest.mark.asyncio
    async def test_start_conversation_routes_when_enabled(
        self, chat_service, department_repo, settings
    ):
        await department_repo.create(DepartmentCreate(name="General", slug="general"))
        settings.AUTO_ROUTE_ON_OPEN = True

        result = await chat_service.start_conversation(
            VisitorInfo(visitor_name="Ben"), visitor_says("hi")
        )

        assert result.session.status == SessionStatus.ASSIGNED
        assert result.message.seq == 1

    @pytest.mark.asyncio
    async def test_open_without_departments_stays_waiting(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        routed = await chat_service.assign(session.id)
        assert routed.status == SessionStatus.WAITING

    @pytest.mark.asyncio
    async def test_append_unknown_session(self, chat_service):
        with pytest.raises(SessionNotFoundError):
            await chat_service.append_message(uuid4(), visitor_says("hello?"))

    @pytest.mark.asyncio
    async def test_agent_reply_claims_waiting_session(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        result = await chat_service.append_message(session.id, agent_says("hi", agent_id="lee"))

        assert result.session.status == SessionStatus.ASSIGNED
        assert result.session.assigned_agent_id == "lee"

    @pytest.mark.asyncio
    async def test_agent_cannot_write_to_closed_session(self, chat_service):
        session = await resolved_session(chat_service)
        with pytest.raises(InvalidTransitionError):
            await chat_service.append_message(session.id, agent_says("one more thing"))


class TestReopen:
    @pytest.mark.asyncio
    async def test_visitor_message_reopens_closed_session(self, chat_service):
        session = await resolved_session(chat_service)
        await chat_service.set_status(session.id, SessionStatus.CLOSED)

        result = await chat_service.append_message(session.id, visitor_says("it broke again"))

        assert result.reopened
        assert result.session.status == SessionStatus.WAITING
        assert result.session.assigned_agent_id is None
        assert [m.sender_type for m in result.system_messages] == [SenderType.SYSTEM]

        transcript = await chat_service.get_transcript(session.id, PrincipalRole.AGENT)
        assert [m.body for m in transcript.messages][:2] == ["need help", "on it"]
        assert transcript.messages[-1].body == "it broke again"
        assert [m.seq for m in transcript.messages] == list(range(1, len(transcript.messages) + 1))

    @pytest.mark.asyncio
    async def test_rating_survives_reopen(self, chat_service):
        session = await resolved_session(chat_service)
        await chat_service.rate(session.id, 4)
        await chat_service.append_message(session.id, visitor_says("back again"))
        await chat_service.append_message(session.id, agent_says("hi again"))
        await chat_service.set_status(session.id, SessionStatus.RESOLVED)

        with pytest.raises(AlreadyRatedError):
            await chat_service.rate(session.id, 1)


class TestStatus:
    @pytest.mark.asyncio
    async def test_waiting_cannot_be_resolved(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        with pytest.raises(InvalidTransitionError):
            await chat_service.set_status(session.id, SessionStatus.RESOLVED)

    @pytest.mark.asyncio
    async def test_close_stamps_ended_at(self, chat_service):
        session = await resolved_session(chat_service)
        closed = await chat_service.set_status(session.id, SessionStatus.CLOSED)
        assert closed.status == SessionStatus.CLOSED
        assert closed.ended_at is not None

    @pytest.mark.asyncio
    async def test_activate_from_assigned(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        await chat_service.append_message(session.id, agent_says("hi"))
        active = await chat_service.set_status(session.id, SessionStatus.ACTIVE)
        assert active.status == SessionStatus.ACTIVE


class TestRating:
    @pytest.mark.asyncio
    async def test_rate_open_session_rejected(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        with pytest.raises(NotResolvedError):
            await chat_service.rate(session.id, 5)

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, chat_service):
        session = await resolved_session(chat_service)
        with pytest.raises(ValidationError):
            await chat_service.rate(session.id, 6)

    @pytest.mark.asyncio
    async def test_concurrent_ratings_single_winner(self, chat_service, session_repo):
        session = await resolved_session(chat_service)

        results = await asyncio.gather(
            chat_service.rate(session.id, 5),
            chat_service.rate(session.id, 2),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, AlreadyRatedError)]
        assert len(successes) == 1
        assert len(failures) == 1
        stored = await session_repo.get(session.id)
        assert stored.rating == successes[0].rating


class TestOrdering:
    @pytest.mark.asyncio
    async def test_concurrent_appends_get_distinct_ordered_seq(self, chat_service):
        session = await chat_service.open(VisitorInfo())

        await asyncio.gather(
            *[chat_service.append_message(session.id, visitor_says(f"m{i}")) for i in range(10)]
        )

        transcript = await chat_service.get_transcript(session.id, PrincipalRole.AGENT)
        seqs = [m.seq for m in transcript.messages]
        assert seqs == list(range(1, 11))
        times = [m.created_at for m in transcript.messages]
        assert times == sorted(times)

    @pytest.mark.asyncio
    async def test_last_message_at_tracks_latest(self, chat_service, session_repo):
        session = await chat_service.open(VisitorInfo())
        result = await chat_service.append_message(session.id, visitor_says("first"))

        stored = await session_repo.get(session.id)
        assert stored.last_message_at == result.message.created_at


class TestReadMarks:
    @pytest.mark.asyncio
    async def test_agent_read_marks_visitor_messages_once(self, chat_service, message_repo):
        session = await chat_service.open(VisitorInfo())
        await chat_service.append_message(session.id, visitor_says("one"))
        await chat_service.append_message(session.id, visitor_says("two"))

        first = await chat_service.get_transcript(session.id, PrincipalRole.AGENT)
        stamps = [m.read_at for m in first.messages]
        assert all(stamp is not None for stamp in stamps)

        second = await chat_service.get_transcript(session.id, PrincipalRole.ADMIN)
        assert [m.read_at for m in second.messages] == stamps
        assert await message_repo.mark_read(session.id, SenderType.VISITOR, stamps[0]) == 0

    @pytest.mark.asyncio
    async def test_visitor_read_leaves_own_messages_unread(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        await chat_service.append_message(session.id, visitor_says("hello"))
        await chat_service.append_message(session.id, agent_says("hi"))

        transcript = await chat_service.get_transcript(session.id, PrincipalRole.VISITOR)
        by_sender = {m.sender_type: m for m in transcript.messages}
        assert by_sender[SenderType.VISITOR].read_at is None
        assert by_sender[SenderType.ADMIN].read_at is not None


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_waiting_session(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        await chat_service.append_message(session.id, visitor_says("anyone?"))

        cancelled = await chat_service.cancel(session.id)

        assert cancelled.status == SessionStatus.CLOSED
        assert cancelled.ended_at is not None
        transcript = await chat_service.get_transcript(session.id, PrincipalRole.AGENT)
        assert transcript.messages[-1].sender_type == SenderType.SYSTEM
        assert transcript.messages[-1].message_type == MessageType.SYSTEM

    @pytest.mark.asyncio
    async def test_cancel_after_agent_reply_rejected(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        await chat_service.append_message(session.id, agent_says("hi"))

        with pytest.raises(InvalidTransitionError):
            await chat_service.cancel(session.id)

    @pytest.mark.asyncio
    async def test_cancel_resolved_rejected(self, chat_service):
        session = await resolved_session(chat_service)
        with pytest.raises(InvalidTransitionError):
            await chat_service.cancel(session.id)


class TestBusy:
    @pytest.mark.asyncio
    async def test_held_lock_surfaces_busy(self, chat_service, locks):
        session = await chat_service.open(VisitorInfo())
        locks._timeout = 0.02

        async with locks.hold(session.id):
            with pytest.raises(BusyError):
                await chat_service.append_message(session.id, visitor_says("hello"))

    @pytest.mark.asyncio
    async def test_injected_empty_lock_manager_is_kept(self, chat_service, locks):
        assert len(locks) == 0
        assert chat_service.locks is locks


class TestListing:
    @pytest.mark.asyncio
    async def test_list_sessions_with_counts(self, chat_service):
        first = await chat_service.open(VisitorInfo(visitor_name="A"))
        await chat_service.append_message(first.id, visitor_says("one"))
        await chat_service.append_message(first.id, visitor_says("two"))
        second = await chat_service.open(VisitorInfo(visitor_name="B"))
        await chat_service.append_message(second.id, agent_says("hello"))

        summaries, total = await chat_service.list_sessions()

        assert total == 2
        by_id = {s.id: s for s in summaries}
        assert by_id[first.id].message_count == 2
        assert by_id[first.id].unread_count == 2
        assert by_id[first.id].last_message.body == "two"
        assert by_id[second.id].unread_count == 0

        waiting, waiting_total = await chat_service.list_sessions(status=SessionStatus.WAITING)
        assert waiting_total == 1
        assert waiting[0].id == first.id
