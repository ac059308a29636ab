"""
AI completion providers.

``AIService`` uses the OpenAI-compatible provider when credentials are
configured and the deterministic mock otherwise. Upstream failures fall back
to the mock so the endpoints keep answering.
"""

import asyncio
import hashlib
import json
import math
import re
from typing import Optional

from .cache import MISSING, TTLCache
from .constants import CHAT_CACHE_TTL_MS, DEFAULT_MODEL, SENTIMENT_CACHE_TTL_MS
from .errors import AIServiceError
from .logging_config import get_logger
from .openai_client import fetch_chat_completion
from .provider_registry import ProviderConfig, resolve_provider

_LOG = get_logger(__name__)

POSITIVE_WORDS = frozenset({
    'love', 'great', 'excellent', 'amazing', 'wonderful', 'good',
    'happy', 'pleased', 'fantastic', 'awesome', 'brilliant', 'perfect',
})
NEGATIVE_WORDS = frozenset({
    'hate', 'terrible', 'awful', 'bad', 'sad', 'angry', 'disappointed',
    'horrible', 'worst', 'hateful', 'disgusting',
})

SENTIMENT_SYSTEM_PROMPT = (
    'You are a sentiment analysis expert. Analyze the sentiment of the given text '
    'and respond with one word: positive, negative, or neutral.'
)

Messages = list[dict[str, str]]


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def chat_cache_key(model: str, messages: Messages) -> str:
    digest = hash_text(json.dumps(messages, separators=(',', ':'), ensure_ascii=False))
    return f"chat:{model}:{digest}"


def sentiment_cache_key(text: str) -> str:
    return f"sentiment:{hash_text(text)}"


def _preview(text: str, limit: int = 100) -> str:
    return text[:limit] + ('...' if len(text) > limit else '')


class MockAIProvider:
    name = 'mock'

    def __init__(self, delay_ms: int = 300) -> None:
        self.delay_ms = delay_ms

    async def _simulate_delay(self) -> None:
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms / 1000)

    async def chat_completion(self, messages: Messages, model: Optional[str] = None) -> str:
        await self._simulate_delay()
        last_message = messages[-1].get('content', '') if messages else ''
        lowered = last_message.lower()
        if 'hello' in lowered or 'hi' in lowered:
            return 'Hello! How can I help you today?'
        if 'help' in lowered:
            return "I'm here to help! What would you like to know?"
        if 'bye' in lowered or 'goodbye' in lowered:
            return 'Goodbye! Have a great day!'
        return (
            f'I understand you said: "{_preview(last_message)}". This is a mock response. '
            'To use real AI, set OPENAI_API_KEY environment variable.'
        )

    async def generate_text(
        self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None
    ) -> str:
        await self._simulate_delay()
        word_count = len(re.split(r'\s+', prompt))
        return (
            f'Generated text based on your prompt ({word_count} words): "{_preview(prompt)}". '
            'This is a mock response. Set OPENAI_API_KEY for real AI generation.'
        )

    async def analyze_sentiment(self, text: str) -> str:
        await self._simulate_delay()
        words = re.split(r'\W+', text.lower())
        positive = sum(1 for word in words if word in POSITIVE_WORDS)
        negative = sum(1 for word in words if word in NEGATIVE_WORDS)
        if positive > negative:
            return 'positive'
        if negative > positive:
            return 'negative'
        return 'neutral'

    async def summarize_text(self, text: str, max_length: int = 100) -> str:
        await self._simulate_delay()
        sentences = [part.strip() for part in re.split(r'[.!?]+', text) if part.strip()]
        if not sentences:
            words = text.split()
            word_count = min(math.ceil(max_length / 10), len(words))
            return ' '.join(words[:word_count]) + '...'

        target = max(1, math.ceil(len(sentences) * 0.3))
        summary = '. '.join(sentences[:target]).strip()
        if len(summary) <= max_length * 1.5:
            return summary if summary.endswith('.') else summary + '.'
        return summary[:max_length].strip() + '...'


class OpenAIProvider:
    name = 'openai'

    def __init__(self, config: ProviderConfig, cache: TTLCache, timeout_seconds: float = 30.0) -> None:
        self.config = config
        self.cache = cache
        self.timeout_seconds = timeout_seconds

    async def chat_completion(self, messages: Messages, model: Optional[str] = None) -> str:
        model = model or DEFAULT_MODEL.value
        cache_key = chat_cache_key(model, messages)
        cached = self.cache.get(cache_key, MISSING)
        if cached is not MISSING:
            return cached

        result = await fetch_chat_completion(
            self.config, model, messages, timeout_seconds=self.timeout_seconds
        )
        self.cache.set(cache_key, result, CHAT_CACHE_TTL_MS)
        return result

    async def generate_text(
        self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None
    ) -> str:
        messages: Messages = []
        if system_prompt:
            messages.append({'role': 'system', 'content': system_prompt})
        messages.append({'role': 'user', 'content': prompt})
        return await self.chat_completion(messages, model)

    async def analyze_sentiment(self, text: str) -> str:
        return await self.generate_text(text, SENTIMENT_SYSTEM_PROMPT)

    async def summarize_text(self, text: str, max_length: int = 100) -> str:
        system_prompt = (
            'You are a text summarization expert. '
            f'Summarize the given text in approximately {max_length} words.'
        )
        return await self.generate_text(f'Please summarize the following text:\n\n{text}', system_prompt)


class AIService:
    def __init__(self, cache: TTLCache, provider: Optional[OpenAIProvider] = None, mock_delay_ms: int = 300) -> None:
        self.cache = cache
        self.mock = MockAIProvider(delay_ms=mock_delay_ms)
        self.provider = provider or self.mock

    @property
    def uses_openai(self) -> bool:
        return self.provider is not self.mock

    def _fallback(self, exc: AIServiceError) -> None:
        if not self.uses_openai:
            raise exc
        _LOG.warning(
            'OpenAI request failed, falling back to mock service',
            exc_info=exc,
            extra={'provider': self.provider.name},
        )

    async def chat_completion(self, messages: Messages, model: Optional[str] = None) -> str:
        try:
            return await self.provider.chat_completion(messages, model)
        except AIServiceError as exc:
            self._fallback(exc)
            return await self.mock.chat_completion(messages, model)

    async def generate_text(
        self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None
    ) -> str:
        try:
            return await self.provider.generate_text(prompt, system_prompt, model)
        except AIServiceError as exc:
            self._fallback(exc)
            return await self.mock.generate_text(prompt, system_prompt, model)

    async def analyze_sentiment(self, text: str) -> str:
        cache_key = sentiment_cache_key(text)
        cached = self.cache.get(cache_key, MISSING)
        if cached is not MISSING:
            return cached
        try:
            result = await self.provider.analyze_sentiment(text)
        except AIServiceError as exc:
            self._fallback(exc)
            return await self.mock.analyze_sentiment(text)
        self.cache.set(cache_key, result, SENTIMENT_CACHE_TTL_MS)
        return result

    async def summarize_text(self, text: str, max_length: Optional[int] = None) -> str:
        max_length = max_length or 100
        try:
            return await self.provider.summarize_text(text, max_length)
        except AIServiceError as exc:
            self._fallback(exc)
            return await self.mock.summarize_text(text, max_length)


def build_ai_service(cache: TTLCache, mock_delay_ms: int = 300, timeout_seconds: float = 30.0) -> AIService:
    try:
        config = resolve_provider('openai')
    except RuntimeError:
        _LOG.info('Using mock AI service (no OpenAI API key configured)')
        return AIService(cache, mock_delay_ms=mock_delay_ms)
    _LOG.info('Initializing OpenAI service', extra={'provider': 'openai'})
    provider = OpenAIProvider(config, cache, timeout_seconds=timeout_seconds)
    return AIService(cache, provider=provider, mock_delay_ms=mock_delay_ms)
