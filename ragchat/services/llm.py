"""Reply generation over a langchain chat model."""

from typing import List

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ragchat.core.errors import GenerationError
from ragchat.core.logging import get_logger
from ragchat.models.chat import ChatMessage, Role

logger = get_logger(__name__)


def build_system_prompt(company_name: str = "our company") -> str:
    return f"""You are a helpful and knowledgeable AI assistant for {company_name}.

Your responsibilities:
- Provide accurate and helpful information based on the context provided
- Be polite, professional, and empathetic in all interactions
- If you don't know something, admit it rather than making up information
- Use the retrieved context to answer questions accurately
- Maintain conversation history to provide contextual responses
- Keep responses clear, concise, and relevant

Remember: Always prioritize user satisfaction and accurate information delivery."""


def build_user_prompt(context: str, query: str) -> str:
    """Combine retrieved context and the user query into one turn."""
    parts = []
    if context and context.strip():
        parts.append(f"RELEVANT CONTEXT (use this to answer the question):\n{context}")
    parts.append(f"USER QUERY:\n{query}")
    parts.append(
        "Please provide a helpful and accurate response based on the context provided above. "
        "If the context doesn't contain relevant information, use your general knowledge "
        "but mention that you're doing so."
    )
    return "\n\n".join(parts)


def history_to_messages(history: List[ChatMessage]) -> List[BaseMessage]:
    return [
        AIMessage(content=m.content) if m.role == Role.BOT else HumanMessage(content=m.content)
        for m in history
    ]


class ReplyGenerator:
    """Generates a bot reply from history, knowledge context and the query."""

    def __init__(self, llm: BaseChatModel, company_name: str = "our company"):
        self.llm = llm
        self.system_prompt = build_system_prompt(company_name)

    def build_messages(self, history: List[ChatMessage], context: str, query: str) -> List[BaseMessage]:
        return [
            SystemMessage(content=self.system_prompt),
            *history_to_messages(history),
            HumanMessage(content=build_user_prompt(context, query)),
        ]

    async def generate_reply(self, history: List[ChatMessage], context: str, query: str) -> str:
        """Call the model and return the reply text.

        Raises:
            GenerationError: If the model call fails or returns no text.
        """
        messages = self.build_messages(history, context, query)
        model_name = getattr(self.llm, "model_name", None) or getattr(self.llm, "model", None)

        try:
            result = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Error generating reply: {e}")
            raise GenerationError(f"Failed to generate reply: {e}", model=model_name) from e

        text = result.content if isinstance(result.content, str) else _join_content(result.content)
        if not text:
            raise GenerationError("Model returned an empty reply", model=model_name)
        return text


def _join_content(content) -> str:
    # Some providers return a list of content blocks
    pieces = []
    for block in content:
        if isinstance(block, str):
            pieces.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            pieces.append(block.get("text", ""))
    return "".join(pieces)
