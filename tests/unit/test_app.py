# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

import pytest

from counselor import repository
from counselor.api import CounselingChat
from counselor.errors import AuthorizationError

AppTest = pytest.importorskip("streamlit.testing.v1").AppTest

APP = Path(__file__).resolve().parents[2] / "apps" / "counselor_app.py"
DEFAULT_USER = "student1"


def _open_session(name: str):
    session = repository.create_session(DEFAULT_USER, name)
    at = AppTest.from_file(str(APP), default_timeout=10)
    at.run()
    at.button(key=f"session-{session.id}").click().run()
    return at, session


def _delete_button(at):
    return next(b for b in at.sidebar.button if b.label.startswith("🗑️"))


def test_delete_failure_is_shown_instead_of_crashing(monkeypatch) -> None:
    def refuse(self, session_id):
        raise AuthorizationError("session not found")

    monkeypatch.setattr(CounselingChat, "delete_session", refuse)
    at, session = _open_session("Interview prep")

    _delete_button(at).click().run()

    assert not at.exception
    assert [e.value for e in at.sidebar.error] == ["session not found"]
    assert repository.get_owned_session(DEFAULT_USER, session.id).id == session.id


def test_delete_removes_the_session_from_the_sidebar() -> None:
    at, session = _open_session("Resume review")

    _delete_button(at).click().run()

    assert not at.exception
    assert not at.sidebar.error
    assert all(b.key != f"session-{session.id}" for b in at.sidebar.button)
    with pytest.raises(AuthorizationError):
        repository.get_owned_session(DEFAULT_USER, session.id)
