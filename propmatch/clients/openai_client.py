"""
Singleton OpenAI client with rate limiting using aiolimiter.
"""
import os
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from propmatch.config import OPENAI_API_KEY, OPENAI_MODEL, CONCURRENCY


class OpenAIClient:
    """
    Singleton OpenAI client for making API requests.
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not OpenAIClient._initialized:
            api_key = OPENAI_API_KEY or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY must be set in environment or config")

            self.client = AsyncOpenAI(api_key=api_key)
            # Token bucket capped well under typical OpenAI per-second limits
            self.rate_limiter = AsyncLimiter(max_rate=min(CONCURRENCY, 500), time_period=1.0)
            OpenAIClient._initialized = True

    async def chat_completions_create(self, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Returns:
            The response from OpenAI's chat completions API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI API request failed: {e}")
                raise

    async def complete_text(self, prompt: str, system: str = None, max_tokens: int = 20) -> str:
        """
        Deterministic single-answer completion (temperature 0).

        Returns:
            str: The stripped message content, "" if the model returned nothing.
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        resp = await self.chat_completions_create(
            model=OPENAI_MODEL,
            messages=messages,
            max_tokens=max_tokens,
            temperature=0,
        )
        return (resp.choices[0].message.content or "").strip()
