"""
Google Gemini API client wrapper with retry logic and structured logging.

Uses the google-genai SDK (``from google import genai``). The itinerary call
forces a single function call (mode ANY) and hands back the whole response
as a plain camelCase dict so the repair stage can inspect candidates,
finish reasons and text parts without depending on SDK types.

Usage:
    from clients.gemini_client import GeminiClient

    client = GeminiClient()
    raw = await client.generate_structured(
        prompt="Generate a 3-day itinerary for Penang...",
        function_declaration=DELIVER_ITINERARY_FUNCTION,
        request_id="req-123",
    )
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class ExternalAPIError(Exception):
    """Raised when an external API call fails after retries."""

    def __init__(self, service: str, error: str, retry_count: int = 0):
        self.service = service
        self.error = error
        self.retry_count = retry_count
        super().__init__(f"{service} API failed: {error} (retries: {retry_count})")


class GeminiClient:
    """Async wrapper for Google Gemini API with retry and logging."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialise Gemini client.

        Args:
            api_key: Gemini API key (defaults to settings.GEMINI_KEY).
            model_name: Model identifier (defaults to settings.GEMINI_MODEL).
            max_retries: Maximum attempts for failed requests.
            timeout: Request timeout in seconds.
        """
        # Lazy import to avoid circular dependency at module level
        from config.settings import settings

        self.api_key = api_key or settings.GEMINI_KEY
        self.model_name = model_name or settings.GEMINI_MODEL
        self.max_retries = max_retries if max_retries is not None else settings.GEMINI_MAX_RETRIES
        self.timeout = timeout if timeout is not None else settings.GEMINI_TIMEOUT

        if not self.api_key:
            raise ValueError("Gemini API key required, set GEMINI_KEY in .env")

        self.client = genai.Client(api_key=self.api_key)

    def _build_config(
        self,
        function_declaration: Dict[str, Any],
        temperature: float,
        max_tokens: int,
    ) -> types.GenerateContentConfig:
        name = function_declaration["name"]
        tool = types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=name,
                    description=function_declaration.get("description"),
                    parameters=function_declaration["parameters"],
                )
            ]
        )
        return types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            tools=[tool],
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode="ANY",
                    allowed_function_names=[name],
                )
            ),
        )

    async def generate_structured(
        self,
        prompt: str,
        function_declaration: Dict[str, Any],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Ask Gemini to answer by calling ``function_declaration`` exactly once.

        Args:
            prompt: The user prompt text.
            function_declaration: ``{"name", "description", "parameters"}``.
            temperature: Sampling temperature (0-2).
            max_tokens: Maximum output tokens.
            request_id: UUID for log correlation.

        Returns:
            The raw response as a camelCase dict (``candidates[...]``).

        Raises:
            ExternalAPIError: If the API call fails after all retries.
        """
        from config.settings import settings

        temp = temperature if temperature is not None else settings.GEMINI_ITINERARY_TEMPERATURE
        tokens = max_tokens or settings.GEMINI_ITINERARY_MAX_TOKENS
        generation_config = self._build_config(function_declaration, temp, tokens)

        logger.debug(
            "Calling Gemini API",
            extra={
                "request_id": request_id,
                "model": self.model_name,
                "prompt_length": len(prompt),
                "temperature": temp,
                "timeout": self.timeout,
            },
        )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                loop = asyncio.get_event_loop()
                response = await asyncio.wait_for(
                    loop.run_in_executor(
                        None,
                        lambda: self.client.models.generate_content(
                            model=self.model_name,
                            contents=prompt,
                            config=generation_config,
                        ),
                    ),
                    timeout=self.timeout,
                )

                raw = response.model_dump(mode="json", by_alias=True, exclude_none=True)
                logger.info(
                    "Gemini API success",
                    extra={
                        "request_id": request_id,
                        "candidates": len(raw.get("candidates") or []),
                        "model": self.model_name,
                    },
                )
                return raw

            except asyncio.TimeoutError:
                last_error = asyncio.TimeoutError(f"Gemini API timeout after {self.timeout}s")
                logger.warning(
                    "Gemini API timeout (attempt %d/%d)",
                    attempt + 1,
                    self.max_retries,
                    extra={"request_id": request_id, "timeout": self.timeout},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(1)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Gemini API error (attempt %d/%d)",
                    attempt + 1,
                    self.max_retries,
                    extra={
                        "request_id": request_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(1)

        logger.error(
            "Gemini API failed after retries",
            extra={"request_id": request_id, "max_retries": self.max_retries},
        )
        raise ExternalAPIError(
            service="Gemini",
            error=str(last_error),
            retry_count=self.max_retries,
        )
