from typing import Dict, Sequence

from counselor.contracts import Turn
from counselor.models import MessageRole

SYSTEM_DIRECTIVE = (
    "You are an experienced AI Career Counselor. Provide actionable, empathetic, "
    "and practical guidance on careers, skills, resumes, job search strategy, "
    "interview preparation, and growth planning. Ask clarifying questions when "
    "needed and keep responses concise but thorough."
)

FALLBACK_REPLY = "I’m sorry, I couldn’t generate a response right now."

# stored role -> backend role vocabulary
BACKEND_ROLES: Dict[MessageRole, str] = {
    MessageRole.USER: "user",
    MessageRole.ASSISTANT: "assistant",
}


def label_turn(turn: Turn) -> str:
    """Render one turn as a role-prefixed text segment, e.g. `USER: hi`."""
    return f"{turn.role.upper()}: {turn.content}"


def build_prompt(system_directive: str, turns: Sequence[Turn]) -> str:
    """
    Flatten the directive and the conversation into one block of text for
    backends that take a single prompt.
    """
    history_text = "\n".join(label_turn(t) for t in turns)

    return f"""
{system_directive}

Conversation:
{history_text}

ASSISTANT:
""".strip()
