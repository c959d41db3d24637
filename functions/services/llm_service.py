"""LLM service for QuoteDesk.

LangChain/OpenAI wrapper used by the optional remote fallbacks
(free-text extraction and estimate review).
"""

import json
from typing import Dict, Any, Optional, List
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config.settings import settings
from config.errors import ErrorCode, RemoteServiceError

logger = structlog.get_logger()

JSON_ONLY_INSTRUCTION = "IMPORTANT: You MUST respond with valid JSON only. No markdown, no explanation, just JSON."


def strip_code_fence(content: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class LLMService:
    """Service for LLM operations using LangChain.

    Wraps ChatOpenAI with token tracking and maps provider failures
    onto RemoteServiceError codes.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings; 0.0 is honoured).
            api_key: OpenAI API key (default from settings).
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.

        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and token usage.

        Raises:
            RemoteServiceError: If the LLM call fails.
        """
        try:
            kwargs = {}
            if max_tokens:
                kwargs["max_tokens"] = max_tokens

            response = await self.client.ainvoke(messages, **kwargs)
        except Exception as e:
            error_msg = str(e)
            lowered = error_msg.lower()

            if "rate_limit" in lowered:
                code, message = ErrorCode.LLM_RATE_LIMIT, "OpenAI rate limit exceeded"
            elif "context_length" in lowered or "maximum context" in lowered:
                code, message = ErrorCode.LLM_CONTEXT_TOO_LONG, "Input too long for model context"
            elif "timeout" in lowered or "timed out" in lowered:
                code, message = ErrorCode.LLM_TIMEOUT, "LLM request timed out"
            else:
                code, message = ErrorCode.LLM_ERROR, f"LLM generation failed: {error_msg}"

            logger.warning("llm_generation_failed", model=self.model, code=code)
            raise RemoteServiceError(
                code=code,
                message=message,
                service="llm",
                details={"original_error": error_msg}
            ) from e

        tokens_used = 0
        if hasattr(response, "response_metadata"):
            usage = response.response_metadata.get("token_usage", {})
            tokens_used = usage.get("total_tokens", 0)
            self._total_tokens_used += tokens_used

        logger.info(
            "llm_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(response.content)
        )

        return {
            "content": response.content,
            "tokens_used": tokens_used
        }

    async def generate_with_system_prompt(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response with system prompt."""
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message)
        ]
        return await self.generate(messages, max_tokens)

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a JSON response.

        Adds JSON formatting instructions to the system prompt and tolerates
        a markdown code fence around the reply.

        Args:
            system_prompt: System prompt for context.
            user_message: User message/query.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with parsed JSON content and token usage.

        Raises:
            RemoteServiceError: If the call fails or the reply is not valid JSON.
        """
        result = await self.generate_with_system_prompt(
            f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}",
            user_message,
            max_tokens
        )

        try:
            parsed = json.loads(strip_code_fence(result["content"]))
        except json.JSONDecodeError as e:
            raise RemoteServiceError(
                code=ErrorCode.LLM_ERROR,
                message="LLM did not return valid JSON",
                service="llm",
                details={
                    "parse_error": str(e),
                    "raw_content": result["content"][:500]
                }
            ) from e

        return {
            "content": parsed,
            "tokens_used": result["tokens_used"]
        }
