"""
Integration tests for staff notices: new chats and messages left while no
agent is available.
"""

import pytest

from app.models.chat_session import ChatMessageCreate, VisitorInfo
from app.models.department import DepartmentCreate
from app.models.enums import ChatNotice, SenderType


def visitor_says(body: str) -> ChatMessageCreate:
    return ChatMessageCreate(sender_type=SenderType.VISITOR, body=body)


def subjects(notifier) -> list[str]:
    return [subject for _, subject, _ in notifier.sent]


class TestPresence:
    @pytest.mark.asyncio
    async def test_no_pool_members_means_offline(self, router_service):
        assert await router_service.agents_online() is False

    @pytest.mark.asyncio
    async def test_available_member_means_online(self, router_service, department_repo):
        department = await department_repo.create(DepartmentCreate(name="General", slug="general"))
        await department_repo.add_agent(department.id, "kim")
        assert await router_service.agents_online() is True

        await department_repo.set_agent_availability(department.id, "kim", False)
        assert await router_service.agents_online() is False


class TestNewChatNotice:
    @pytest.mark.asyncio
    async def test_sent_once_with_visitor_details(self, notifying_chat_service, notifier, session_repo):
        result = await notifying_chat_service.start_conversation(
            VisitorInfo(visitor_name="Asha", visitor_email="asha@example.com", visitor_phone="555-0101"),
            visitor_says("my order is late"),
        )

        assert len(notifier.sent) == 1
        recipients, subject, body = notifier.sent[0]
        assert recipients == ["support@example.com"]
        assert "Asha" in subject
        assert "asha@example.com" in body
        assert "555-0101" in body
        assert "my order is late" in body
        assert str(result.session.id) in body

        stored = await session_repo.get(result.session.id)
        assert stored.new_chat_notified is True

    @pytest.mark.asyncio
    async def test_department_contact_email_preferred(
        self, notifying_chat_service, notifier, department_repo, settings
    ):
        await department_repo.create(
            DepartmentCreate(name="Technical", slug="technical", contact_email="tech@example.com")
        )
        settings.AUTO_ROUTE_ON_OPEN = True

        await notifying_chat_service.start_conversation(
            VisitorInfo(visitor_name="Ben", department="technical"), visitor_says("printer on fire")
        )

        recipients, _, body = notifier.sent[0]
        assert recipients == ["tech@example.com"]
        assert "Department: Technical" in body

    @pytest.mark.asyncio
    async def test_no_recipients_sends_nothing(self, notifying_chat_service, notifier, session_repo, settings):
        settings.CHAT_NOTIFY_EMAILS = []

        result = await notifying_chat_service.start_conversation(VisitorInfo(), visitor_says("hello"))

        assert notifier.sent == []
        stored = await session_repo.get(result.session.id)
        assert stored.new_chat_notified is False

    @pytest.mark.asyncio
    async def test_failed_send_releases_claim(self, notifying_chat_service, notifier, session_repo):
        notifier.fail = True

        result = await notifying_chat_service.start_conversation(VisitorInfo(), visitor_says("hello"))

        assert notifier.sent == []
        stored = await session_repo.get(result.session.id)
        assert stored.new_chat_notified is False


class TestOfflineNotice:
    @pytest.mark.asyncio
    async def test_follow_up_while_offline_notifies_once(self, notifying_chat_service, notifier, session_repo):
        result = await notifying_chat_service.start_conversation(
            VisitorInfo(visitor_name="Asha"), visitor_says("anyone there?")
        )
        assert result.session.is_offline_message is True

        await notifying_chat_service.append_message(result.session.id, visitor_says("still waiting"))
        await notifying_chat_service.append_message(result.session.id, visitor_says("hello?"))

        assert subjects(notifier) == ["New chat from Asha", "Offline message from Asha"]
        assert "still waiting" in notifier.sent[1][2]
        stored = await session_repo.get(result.session.id)
        assert stored.offline_notified is True

    @pytest.mark.asyncio
    async def test_agent_available_no_offline_notice(
        self, notifying_chat_service, notifier, department_repo, session_repo
    ):
        department = await department_repo.create(DepartmentCreate(name="General", slug="general"))
        await department_repo.add_agent(department.id, "kim")

        result = await notifying_chat_service.start_conversation(
            VisitorInfo(visitor_name="Asha"), visitor_says("hi")
        )
        follow_up = await notifying_chat_service.append_message(result.session.id, visitor_says("quick question"))

        assert follow_up.session.is_offline_message is False
        assert subjects(notifier) == ["New chat from Asha"]
        stored = await session_repo.get(result.session.id)
        assert stored.offline_notified is False

    @pytest.mark.asyncio
    async def test_offline_flag_follows_latest_message(
        self, notifying_chat_service, department_repo
    ):
        result = await notifying_chat_service.start_conversation(VisitorInfo(), visitor_says("hi"))
        assert result.session.is_offline_message is True

        department = await department_repo.create(DepartmentCreate(name="General", slug="general"))
        await department_repo.add_agent(department.id, "kim")

        follow_up = await notifying_chat_service.append_message(result.session.id, visitor_says("back"))
        assert follow_up.session.is_offline_message is False

    @pytest.mark.asyncio
    async def test_failed_offline_notice_retried_on_next_message(
        self, notifying_chat_service, notifier
    ):
        result = await notifying_chat_service.start_conversation(
            VisitorInfo(visitor_name="Asha"), visitor_says("hi")
        )
        notifier.fail = True
        await notifying_chat_service.append_message(result.session.id, visitor_says("first try"))
        notifier.fail = False
        await notifying_chat_service.append_message(result.session.id, visitor_says("second try"))
        await notifying_chat_service.append_message(result.session.id, visitor_says("third try"))

        assert subjects(notifier) == ["New chat from Asha", "Offline message from Asha"]
        assert "second try" in notifier.sent[1][2]

    @pytest.mark.asyncio
    async def test_service_without_notifier_still_flags_offline(self, chat_service):
        session = await chat_service.open(VisitorInfo())
        result = await chat_service.append_message(session.id, visitor_says("hi"))
        assert result.session.is_offline_message is True


class TestNoticeClaims:
    @pytest.mark.asyncio
    async def test_claim_is_check_and_set(self, chat_service, session_repo):
        session = await chat_service.open(VisitorInfo())

        assert await session_repo.claim_notice(session.id, ChatNotice.NEW_CHAT) is True
        assert await session_repo.claim_notice(session.id, ChatNotice.NEW_CHAT) is False
        assert await session_repo.claim_notice(session.id, ChatNotice.OFFLINE_MESSAGE) is True

        await session_repo.release_notice(session.id, ChatNotice.NEW_CHAT)
        assert await session_repo.claim_notice(session.id, ChatNotice.NEW_CHAT) is True
