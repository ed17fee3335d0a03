"""Response pipeline for one user message."""

from dataclasses import dataclass, field
from typing import List, Optional

from ragchat.core.interfaces import IChatDataLayer, IReplyGenerator
from ragchat.core.logging import get_logger
from ragchat.models.chat import ChatMessage, NewMessage, Provenance, Role
from ragchat.services.guards import GuardResult, InputGuard

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """What the pipeline produced for one message.

    ``rejection`` is set when the guard refused the message; no reply was
    generated and nothing was stored in that case.
    """

    reply: Optional[str] = None
    rejection: Optional[GuardResult] = None
    context_source: Optional[Provenance] = None
    stored: List[ChatMessage] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return self.rejection is not None


class ChatPipeline:
    """validate -> history -> knowledge context -> generate -> append."""

    def __init__(self, data_layer: IChatDataLayer, guard: InputGuard, generator: IReplyGenerator):
        self.data_layer = data_layer
        self.guard = guard
        self.generator = generator

    async def handle_message(self, session_id: str, message: str) -> PipelineResult:
        """Answer a user message within a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            ChatServiceError: On store, knowledge or generation failure.
        """
        verdict = self.guard.validate(message)
        if not verdict.is_valid:
            logger.info("Guard rejected message for %s: %s", session_id, verdict.error_code)
            return PipelineResult(rejection=verdict)

        history = await self.data_layer.get_chat_history(session_id)

        verdict = self.guard.check_session_limit(len(history))
        if not verdict.is_valid:
            logger.info("Guard rejected message for %s: %s", session_id, verdict.error_code)
            return PipelineResult(rejection=verdict)

        knowledge = await self.data_layer.get_knowledge_context(message)
        reply = await self.generator.generate_reply(history, knowledge.context, message)

        stored = await self.data_layer.append_chat_messages(
            session_id,
            [
                NewMessage(role=Role.USER, content=message),
                NewMessage(role=Role.BOT, content=reply),
            ],
        )

        return PipelineResult(reply=reply, context_source=knowledge.source, stored=stored)
