"""
Integration tests for the abandoned session sweep against SQLite.
"""

from datetime import timedelta

import pytest

from app.models.chat_session import ChatMessageCreate, VisitorInfo
from app.models.enums import SenderType, SessionStatus
from app.services.background_scheduler import BackgroundScheduler
from app.utils.datetime_utils import now_utc


def visitor_says(body: str) -> ChatMessageCreate:
    return ChatMessageCreate(sender_type=SenderType.VISITOR, body=body)


def agent_says(body: str) -> ChatMessageCreate:
    return ChatMessageCreate(sender_type=SenderType.ADMIN, sender_id="kim", body=body)


async def answered_session(chat_service):
    session = await chat_service.open(VisitorInfo(visitor_name="Asha"))
    await chat_service.append_message(session.id, visitor_says("help"))
    await chat_service.append_message(session.id, agent_says("on it"))
    return session


async def waiting_session(chat_service):
    session = await chat_service.open(VisitorInfo(visitor_name="Ben"))
    await chat_service.append_message(session.id, visitor_says("anyone?"))
    return session


@pytest.mark.asyncio
async def test_idle_listing_skips_answered_sessions(chat_service, session_repo):
    answered = await answered_session(chat_service)
    waiting = await waiting_session(chat_service)
    unanswered = await chat_service.open(VisitorInfo())
    await chat_service.assign(unanswered.id)

    idle = await session_repo.list_idle_pending(before=now_utc() + timedelta(hours=1))

    ids = {s.id for s in idle}
    assert waiting.id in ids
    assert unanswered.id in ids
    assert answered.id not in ids


@pytest.mark.asyncio
async def test_answered_sessions_do_not_fill_the_batch(
    chat_service, session_repo, settings, monkeypatch
):
    monkeypatch.setattr("app.services.background_scheduler.SWEEP_BATCH_SIZE", 2)
    answered = [await answered_session(chat_service) for _ in range(3)]
    waiting = await waiting_session(chat_service)

    scheduler = BackgroundScheduler(session_repo, chat_service, settings)
    cancelled = await scheduler.sweep_abandoned(now=now_utc() + timedelta(hours=2))

    assert cancelled == 1
    assert (await session_repo.get(waiting.id)).status == SessionStatus.CLOSED
    for session in answered:
        assert (await session_repo.get(session.id)).status == SessionStatus.ASSIGNED
