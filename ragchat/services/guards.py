"""Input guard for user chat messages.

Checks run cheapest first and stop at the first rejection:
empty input, length, session message cap, prompt injection, unethical content.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from ragchat.core.logging import get_logger

logger = get_logger(__name__)

INJECTION_PATTERNS: List[Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"ignore\s+(all\s+)?(previous|above|prior)\s+(instructions?|prompts?|commands?)",
        r"forget\s+(everything|all)\s+(you\s+)?(were\s+)?(told|learned|know)",
        r"disregard\s+(all\s+)?(previous|above|prior)",
        r"you\s+are\s+now\s+(a\s+)?(different|new)",
        r"system\s*:\s*ignore",
        r"\[SYSTEM\]",
        r"pretend\s+(you|to\s+be)",
        r"act\s+as\s+(if|though)",
        r"new\s+instructions?",
        r"override\s+(previous|system)",
        r"jailbreak",
        r"prompt\s+injection",
        r"<\|im_start\|>",
        r"<\|im_end\|>",
    )
]

UNETHICAL_PATTERNS: List[Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"how\s+to\s+(hack|crack|exploit|bypass)",
        r"generate\s+(malware|virus|exploit)",
        r"illegal\s+(drugs|weapons|activities)",
        r"create\s+(fake|counterfeit|forged)",
        r"bypass\s+(security|authentication|protection)",
    )
]


@dataclass
class GuardResult:
    """Outcome of a guard check. Rejections are values, not exceptions."""

    is_valid: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "GuardResult":
        return cls(is_valid=True)


class InputGuard:
    """Pattern and limit based validation of user messages."""

    def __init__(
        self,
        max_message_length: int = 2000,
        max_messages_per_session: int = 100,
        enable_injection_check: bool = True,
    ):
        self.max_message_length = max_message_length
        self.max_messages_per_session = max_messages_per_session
        self.enable_injection_check = enable_injection_check

    def validate(self, message: str, session_message_count: Optional[int] = None) -> GuardResult:
        """Validate a message.

        Args:
            message: Raw user input.
            session_message_count: Messages already stored for the session;
                the session cap is skipped when None.
        """
        result = self._check_basic_rules(message)
        if not result.is_valid:
            return result

        if session_message_count is not None:
            result = self.check_session_limit(session_message_count)
            if not result.is_valid:
                return result

        if self.enable_injection_check:
            result = self._detect_prompt_injection(message)
            if not result.is_valid:
                return result

        return self._detect_unethical_content(message)

    def _check_basic_rules(self, message: str) -> GuardResult:
        if not message or not message.strip():
            return GuardResult(
                is_valid=False,
                error="Message cannot be empty.",
                error_code="EMPTY_MESSAGE",
            )

        if len(message) > self.max_message_length:
            return GuardResult(
                is_valid=False,
                error=f"Message is too long. Maximum {self.max_message_length} characters allowed.",
                error_code="MESSAGE_TOO_LONG",
            )

        return GuardResult.ok()

    def check_session_limit(self, message_count: int) -> GuardResult:
        if message_count >= self.max_messages_per_session:
            return GuardResult(
                is_valid=False,
                error=f"Session limit reached. Maximum {self.max_messages_per_session} messages per session.",
                error_code="SESSION_LIMIT_REACHED",
                reason="Please start a new conversation",
            )
        return GuardResult.ok()

    def _detect_prompt_injection(self, message: str) -> GuardResult:
        for pattern in INJECTION_PATTERNS:
            if pattern.search(message):
                logger.warning("Prompt injection detected: %s", message[:100])
                return GuardResult(
                    is_valid=False,
                    error="Your message contains potentially harmful content. Please rephrase your question.",
                    error_code="PROMPT_INJECTION_DETECTED",
                    reason="Detected attempt to override system instructions",
                )
        return GuardResult.ok()

    def _detect_unethical_content(self, message: str) -> GuardResult:
        for pattern in UNETHICAL_PATTERNS:
            if pattern.search(message):
                logger.warning("Unethical content detected: %s", message[:100])
                return GuardResult(
                    is_valid=False,
                    error="I can't help with that request. Please ask something else.",
                    error_code="UNETHICAL_CONTENT",
                    reason="Message contains potentially harmful or illegal content",
                )
        return GuardResult.ok()
