# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from counselor.api import CounselingChat
from counselor.contracts import ClientMessage, ClientSession, CurrentUser
from counselor.errors import AuthenticationError, AuthorizationError, ValidationError
from counselor.models import MessageRole


@pytest.fixture
def alice_chat(alice, backend) -> CounselingChat:
    return CounselingChat(alice, backend=backend)


@pytest.fixture
def bob_chat(bob, backend) -> CounselingChat:
    return CounselingChat(bob, backend=backend)


def test_no_current_user_is_an_authentication_error() -> None:
    with pytest.raises(AuthenticationError):
        CounselingChat(None)
    with pytest.raises(AuthenticationError):
        CounselingChat.for_current_user(lambda: None)


def test_for_current_user_binds_provider_result(backend) -> None:
    chat = CounselingChat.for_current_user(lambda: CurrentUser(id="carol"), backend=backend)
    assert chat.user.id == "carol"


def test_create_session_returns_client_contract(alice_chat) -> None:
    s = alice_chat.create_session("  Resume review ")

    assert isinstance(s, ClientSession)
    assert s.name == "Resume review"


def test_create_session_rejects_blank_name(alice_chat) -> None:
    with pytest.raises(ValidationError):
        alice_chat.create_session("   ")


def test_scenario_first_message_without_session(alice_chat) -> None:
    assert alice_chat.list_sessions().total == 0

    result = alice_chat.send_message("How do I negotiate salary?")

    sessions = alice_chat.list_sessions()
    assert sessions.total == 1
    assert sessions.items[0].id == result.session_id
    assert result.reply

    messages = alice_chat.get_messages(result.session_id)
    assert all(isinstance(m, ClientMessage) for m in messages.items)
    assert [m.role for m in messages.items] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert messages.items[0].content == "How do I negotiate salary?"


def test_list_sessions_page_shape(alice_chat) -> None:
    for i in range(3):
        alice_chat.create_session(f"s{i}")

    page = alice_chat.list_sessions(page=2, page_size=2)

    assert page.total == 3
    assert page.page == 2
    assert page.page_size == 2
    assert page.total_pages == 2
    assert len(page.items) == 1


def test_empty_listing_has_zero_pages(alice_chat) -> None:
    page = alice_chat.list_sessions()
    assert page.items == []
    assert page.total_pages == 0


@pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 51), (-1, 5), ("1", 10), (1, True)])
def test_list_sessions_rejects_bad_paging(alice_chat, page, page_size) -> None:
    with pytest.raises(ValidationError):
        alice_chat.list_sessions(page=page, page_size=page_size)


def test_get_messages_allows_larger_pages_up_to_limit(alice_chat) -> None:
    s = alice_chat.create_session("s")
    assert alice_chat.get_messages(s.id, page_size=100).items == []
    with pytest.raises(ValidationError):
        alice_chat.get_messages(s.id, page_size=101)


def test_reads_are_idempotent(alice_chat) -> None:
    result = alice_chat.send_message("first")
    alice_chat.send_message("second", session_id=result.session_id)

    assert alice_chat.list_sessions() == alice_chat.list_sessions()
    assert alice_chat.get_messages(result.session_id) == alice_chat.get_messages(result.session_id)


def test_cross_user_access_is_forbidden_everywhere(alice_chat, bob_chat) -> None:
    theirs = bob_chat.send_message("private question")
    snapshot = bob_chat.get_messages(theirs.session_id)

    with pytest.raises(AuthorizationError):
        alice_chat.get_messages(theirs.session_id)
    with pytest.raises(AuthorizationError):
        alice_chat.send_message("hijack", session_id=theirs.session_id)
    with pytest.raises(AuthorizationError):
        alice_chat.delete_session(theirs.session_id)

    assert bob_chat.get_messages(theirs.session_id) == snapshot
    assert alice_chat.list_sessions().total == 0


def test_deleted_session_cannot_be_read(alice_chat) -> None:
    result = alice_chat.send_message("hello")

    assert alice_chat.delete_session(result.session_id) == {"success": True}

    assert alice_chat.list_sessions().total == 0
    with pytest.raises(AuthorizationError):
        alice_chat.get_messages(result.session_id)
    with pytest.raises(AuthorizationError):
        alice_chat.delete_session(result.session_id)


def test_session_with_new_reply_moves_to_top(alice_chat) -> None:
    older = alice_chat.send_message("one", name="Older")
    newer = alice_chat.create_session("Newer")

    assert [s.id for s in alice_chat.list_sessions().items] == [newer.id, older.session_id]

    alice_chat.send_message("again", session_id=older.session_id)

    assert [s.id for s in alice_chat.list_sessions().items] == [older.session_id, newer.id]
