import time

import streamlit as st

from counselor.api import CounselingChat, MESSAGES_MAX_PAGE_SIZE
from counselor.contracts import CurrentUser
from counselor.db import init_db
from counselor.errors import ChatError
from counselor.models import MessageRole
from counselor.reconciliation import ConversationView


# Initialize DB schema (idempotent)
init_db()

st.set_page_config(page_title="AI Career Counselor", page_icon="🧭")

st.title("🧭 AI Career Counselor")
st.write(
    "Talk through resumes, job search strategy, interviews and growth plans. "
    "Every conversation is kept as a named session you can come back to."
)


# -----------------------------
# Sidebar: user
# -----------------------------
st.sidebar.header("User & Sessions")

default_user = "student1"
user_id = st.sidebar.text_input("User ID", value=default_user).strip()

if not user_id:
    st.info("Enter a user ID in the sidebar to start.")
    st.stop()

chat = CounselingChat(CurrentUser(id=user_id))


def load_all_messages(session_id: str):
    """Walk every page so long conversations show in full."""
    page = chat.get_messages(session_id, page=1, page_size=MESSAGES_MAX_PAGE_SIZE)
    items = list(page.items)
    for n in range(2, page.total_pages + 1):
        items.extend(chat.get_messages(session_id, page=n, page_size=MESSAGES_MAX_PAGE_SIZE).items)
    return items


def load_sessions():
    return chat.list_sessions(page=1, page_size=10).items


# One view per user; switching the user id starts from a clean slate
if st.session_state.get("view_user") != user_id:
    st.session_state.view_user = user_id
    st.session_state.view = ConversationView(
        fetch_messages=load_all_messages,
        fetch_sessions=load_sessions,
    )
    st.session_state.view.refresh()

view: ConversationView = st.session_state.view
# rebind fetchers to this run's client
view.fetch_messages = load_all_messages
view.fetch_sessions = load_sessions


# -----------------------------
# Sidebar: session management
# -----------------------------
view.new_session_name = st.sidebar.text_input("New session name", value=view.new_session_name)
if st.sidebar.button("New session", disabled=not view.can_send):
    try:
        created = chat.create_session(view.new_session_name)
    except ChatError as e:
        st.sidebar.error(str(e))
    else:
        view.select_session(created.id)
        view.refresh()
        st.rerun()

st.sidebar.subheader("Existing sessions")
if view.sessions:
    for s in view.sessions:
        label = f"{s.name} · {s.updated_at:%Y-%m-%d %H:%M}"
        if st.sidebar.button(label, key=f"session-{s.id}", disabled=not view.can_send):
            view.select_session(s.id)
            st.rerun()
else:
    st.sidebar.info("No sessions yet. Send a message and one will be created automatically.")

if view.session_id and st.sidebar.button("🗑️ Delete this session", disabled=not view.can_send):
    try:
        chat.delete_session(view.session_id)
    except ChatError as e:
        st.sidebar.error(str(e))
    else:
        view.select_session(None)
        view.refresh()
        st.rerun()

current = next((s for s in view.sessions if s.id == view.session_id), None)
st.write(f"**User:** `{user_id}`  |  **Session:** `{current.name if current else 'new session'}`")


# -----------------------------
# Conversation
# -----------------------------
for m in view.display_messages:
    with st.chat_message("user" if m.role == MessageRole.USER else "assistant"):
        st.markdown(m.content)

if view.is_typing:
    st.caption("Counselor is typing…")

if view.last_error is not None:
    st.error(f"The counselor could not reply: {view.last_error}")


# -----------------------------
# Chat input & reply
# -----------------------------
prompt = st.chat_input("Ask your career question...", disabled=not view.can_send)

if prompt:
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("Counselor is typing…"):
            view.submit(chat.send_message, prompt)
            # let the grace window run out here so the rerun renders without the indicator
            time.sleep(view.typing_grace_remaining)

    st.rerun()
