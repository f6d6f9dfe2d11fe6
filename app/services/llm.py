"""LLM service backing the travel workers.

Wraps an OpenAI-compatible chat model behind a single ``call`` coroutine that
also executes tool calls requested by the model, for a bounded number of
rounds.
"""

from typing import (
    Dict,
    List,
    Optional,
)

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    ToolMessage,
)
from langchain_core.tools.base import BaseTool
from langchain_openai import ChatOpenAI
from langfuse import Langfuse
from langfuse.langchain import CallbackHandler

from app.core.config import settings
from app.core.logging import logger


class LLMService:
    """Chat model client with a tool-execution loop.

    The underlying model is created lazily so that importing this module never
    requires credentials. When no API key is configured ``available`` is False
    and callers are expected to use their offline behaviour instead.
    """

    def __init__(self, model: Optional[str] = None):
        """Initialize the service.

        Args:
            model: Model name; defaults to ``settings.DEFAULT_LLM_MODEL``.
        """
        self.model = model or settings.DEFAULT_LLM_MODEL
        self._llm: Optional[ChatOpenAI] = None
        self._langfuse: Optional[Langfuse] = None

    @property
    def available(self) -> bool:
        """Whether a real model can be called."""
        return bool(settings.OPENAI_API_KEY)

    def _get_llm(self) -> ChatOpenAI:
        if self._llm is None:
            kwargs = {
                "model": self.model,
                "api_key": settings.OPENAI_API_KEY,
                "temperature": settings.DEFAULT_LLM_TEMPERATURE,
                "max_tokens": settings.MAX_TOKENS,
            }
            if settings.OPENAI_API_BASE:
                kwargs["base_url"] = settings.OPENAI_API_BASE
            self._llm = ChatOpenAI(**kwargs)
            logger.info("llm_initialized", model=self.model, base_url=settings.OPENAI_API_BASE or None)
        return self._llm

    def _get_langfuse(self) -> Langfuse:
        if self._langfuse is None:
            self._langfuse = Langfuse(
                public_key=settings.LANGFUSE_PUBLIC_KEY,
                secret_key=settings.LANGFUSE_SECRET_KEY,
                host=settings.LANGFUSE_HOST,
            )
            logger.info("langfuse_initialized", host=settings.LANGFUSE_HOST)
        return self._langfuse

    def _run_config(self) -> Dict:
        if not settings.LANGFUSE_ENABLED:
            return {}
        self._get_langfuse()
        return {"callbacks": [CallbackHandler(public_key=settings.LANGFUSE_PUBLIC_KEY)]}

    async def call(self, messages: List[BaseMessage], tools: Optional[List[BaseTool]] = None) -> AIMessage:
        """Call the model, executing any tool calls it makes.

        Args:
            messages: Conversation to send, system prompt first.
            tools: Tools the model may call.

        Returns:
            AIMessage: The model's final message.

        Raises:
            Exception: Any error raised by the model client; the caller decides how to degrade.
        """
        llm = self._get_llm()
        runnable = llm.bind_tools(tools) if tools else llm
        tools_by_name = {t.name: t for t in tools or []}
        history = list(messages)
        config = self._run_config()

        response = await runnable.ainvoke(history, config=config)
        for _ in range(settings.MAX_TOOL_ROUNDS):
            if not getattr(response, "tool_calls", None):
                break
            history.append(response)
            for tool_call in response.tool_calls:
                selected = tools_by_name.get(tool_call["name"])
                if selected is None:
                    logger.warning("llm_unknown_tool_requested", tool_name=tool_call["name"])
                    content = f"Unknown tool '{tool_call['name']}'."
                else:
                    content = str(await selected.ainvoke(tool_call["args"]))
                history.append(ToolMessage(content=content, tool_call_id=tool_call["id"]))
            response = await runnable.ainvoke(history, config=config)

        logger.debug(
            "llm_call_completed",
            model=self.model,
            message_count=len(history),
            tool_rounds=sum(1 for m in history if isinstance(m, AIMessage)),
        )
        return response


llm_service = LLMService()
