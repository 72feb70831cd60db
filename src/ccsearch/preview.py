"""One-line digests of a session's opening messages, for list views."""

import re

from .core import Session

SEPARATOR = " | "
ROLE_LABELS = {"user": "User", "assistant": "Assistant"}
MIN_REMAINING = 20


def build_preview(
    session: Session,
    max_messages: int = 5,
    max_total_length: int = 300,
    max_per_message_length: int = 100,
) -> str:
    """Render up to ``max_messages`` messages as ``Role: text`` joined by ' | '.

    Once the next message would push the preview past ``max_total_length`` it
    is cut to the remaining budget (when at least 20 characters remain) and
    rendering stops.
    """
    parts: list[str] = []
    current_length = 0

    for message in session.messages[:max_messages]:
        role = ROLE_LABELS.get(message.role, "System")
        content = re.sub(r"\s+", " ", message.content).strip()
        if len(content) > max_per_message_length:
            content = content[:max_per_message_length] + "..."

        part = f"{role}: {content}"

        if current_length + len(part) > max_total_length:
            remaining = max_total_length - current_length
            if remaining >= MIN_REMAINING:
                parts.append(part[:remaining] + "...")
            break

        parts.append(part)
        current_length += len(part) + len(SEPARATOR)

    return SEPARATOR.join(parts)
