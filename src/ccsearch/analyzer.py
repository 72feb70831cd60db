"""Descriptive, display-only summaries of sessions.

Nothing here feeds search ranking. All keyword matching is literal and
case-insensitive; indicator lists count substrings, so "fix" also counts
inside "prefix".
"""

import re
from dataclasses import asdict, dataclass, field

from .core import Message, Session

CODE_INDICATORS = (
    "function", "const", "let", "var", "class", "import", "export", "return",
    "if", "else", "for", "while", "```", "code", "implement",
)
DEBUG_INDICATORS = (
    "error", "bug", "fix", "issue", "problem", "debug", "trace", "exception",
    "fail", "crash", "wrong",
)
QA_INDICATORS = (
    "what is", "how to", "why", "when", "where", "explain", "tell me", "can you", "?",
)
ANALYSIS_INDICATORS = (
    "analyze", "review", "evaluate", "assess", "examine", "investigate", "study", "research",
)

LANGUAGES = ("javascript", "typescript", "python", "java", "c++", "go", "rust", "ruby")
FRAMEWORKS = ("react", "vue", "angular", "express", "django", "flask", "spring")
TECH_TOPICS = ("api", "database", "frontend", "backend", "deployment", "testing", "security")

ERROR_KEYWORDS = ("error", "exception", "fail", "crash", "bug", "issue", "problem")
POSITIVE_WORDS = ("thank", "great", "perfect", "excellent", "good", "helpful", "works", "solved")
NEGATIVE_WORDS = ("error", "fail", "wrong", "bad", "issue", "problem", "stuck", "confused")

KEY_PHRASE_PATTERNS = (
    re.compile(r"(?:how to|what is|why|when|where|can you|could you)\s+([^.?!]+)", re.IGNORECASE),
    re.compile(r"(?:i want to|i need to|i'm trying to)\s+([^.?!]+)", re.IGNORECASE),
)
CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")

MIN_TYPE_SCORE = 3
MAX_TOPICS = 5
MAX_KEY_PHRASES = 3
MAX_KEY_PHRASE_LENGTH = 50

TYPE_LABELS = {
    "coding": "Coding session",
    "debugging": "Debugging session",
    "qa": "Q&A session",
    "analysis": "Analysis session",
    "general": "General conversation",
    "mixed": "Mixed conversation",
}


@dataclass
class SessionSummary:
    total_messages: int
    user_messages: int
    assistant_messages: int
    total_words: int
    avg_words_per_message: int
    conversation_duration: str
    conversation_type: str  # coding | debugging | qa | analysis | general | mixed
    main_topics: list[str] = field(default_factory=list)
    key_phrases: list[str] = field(default_factory=list)
    code_blocks: int = 0
    questions: int = 0
    has_error: bool = False
    sentiment: str = "neutral"  # positive | negative | mixed | neutral

    def to_dict(self) -> dict:
        return asdict(self)


def analyze_session(session: Session) -> SessionSummary:
    messages = session.messages
    total = len(messages)
    total_words = sum(len(m.content.split()) for m in messages)
    full_text = " ".join(m.content for m in messages)
    lowered = full_text.lower()

    return SessionSummary(
        total_messages=total,
        user_messages=sum(1 for m in messages if m.role == "user"),
        assistant_messages=sum(1 for m in messages if m.role == "assistant"),
        total_words=total_words,
        avg_words_per_message=round(total_words / total) if total else 0,
        conversation_duration=format_duration(session),
        conversation_type=detect_conversation_type(lowered),
        main_topics=extract_topics(full_text),
        key_phrases=extract_key_phrases(messages),
        code_blocks=len(CODE_BLOCK_PATTERN.findall("\n".join(m.content for m in messages))),
        questions=sum(1 for m in messages if m.role == "user" and "?" in m.content),
        has_error=any(keyword in lowered for keyword in ERROR_KEYWORDS),
        sentiment=detect_sentiment(lowered),
    )


def analyze_sessions(sessions: list[Session]) -> dict[str, SessionSummary]:
    return {session.id: analyze_session(session) for session in sessions}


def format_duration(session: Session) -> str:
    seconds = max(0, int((session.updated_at - session.created_at).total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def count_indicators(text: str, indicators: tuple[str, ...]) -> int:
    text = text.lower()
    return sum(text.count(indicator.lower()) for indicator in indicators)


def detect_conversation_type(text: str) -> str:
    scores = {
        "coding": count_indicators(text, CODE_INDICATORS),
        "debugging": count_indicators(text, DEBUG_INDICATORS),
        "qa": count_indicators(text, QA_INDICATORS),
        "analysis": count_indicators(text, ANALYSIS_INDICATORS),
    }
    max_score = max(scores.values())

    if max_score < MIN_TYPE_SCORE:
        return "general"

    if scores["debugging"] > scores["coding"] * 0.5 and scores["debugging"] > 2:
        return "debugging"

    for category in ("coding", "qa", "analysis"):
        if scores[category] > max_score * 0.7:
            return category

    return "mixed"


def extract_topics(text: str) -> list[str]:
    topics: list[str] = []

    def add(label: str) -> None:
        if label not in topics:
            topics.append(label)

    for lang in LANGUAGES:
        if _has_word(text, lang):
            add("C++" if lang == "c++" else lang.capitalize())
    for framework in FRAMEWORKS:
        if _has_word(text, framework):
            add(framework.capitalize())
    for topic in TECH_TOPICS:
        if _has_word(text, topic):
            add(topic.upper())

    return topics[:MAX_TOPICS]


def _has_word(text: str, word: str) -> bool:
    # lookarounds instead of \b so "c++" still matches
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text, re.IGNORECASE) is not None


def extract_key_phrases(messages: list[Message]) -> list[str]:
    phrases = []
    for message in messages:
        if message.role != "user":
            continue
        for pattern in KEY_PHRASE_PATTERNS:
            match = pattern.search(message.content)
            if match:
                phrases.append(match.group(1).strip()[:MAX_KEY_PHRASE_LENGTH])
    return phrases[:MAX_KEY_PHRASES]


def detect_sentiment(text: str) -> str:
    positive = count_indicators(text, POSITIVE_WORDS)
    negative = count_indicators(text, NEGATIVE_WORDS)

    if positive > negative * 2:
        return "positive"
    if negative > positive * 2:
        return "negative"
    if positive > 0 and negative > 0:
        return "mixed"
    return "neutral"


def summary_text(summary: SessionSummary) -> str:
    """Short multi-line description for detail views."""
    lines = [
        f"[{TYPE_LABELS.get(summary.conversation_type, summary.conversation_type)}]",
        f"Messages: {summary.total_messages} "
        f"(User: {summary.user_messages}, Assistant: {summary.assistant_messages})",
        f"Duration: {summary.conversation_duration}",
    ]
    if summary.main_topics:
        lines.append(f"Topics: {', '.join(summary.main_topics)}")
    if summary.code_blocks:
        lines.append(f"Code blocks: {summary.code_blocks}")
    if summary.has_error:
        lines.append("Contains errors or problems")
    lines.append(f"Sentiment: {summary.sentiment}")
    return "\n".join(lines)
