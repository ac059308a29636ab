from enum import Enum


class AIModel(str, Enum):
    GPT_3_5_TURBO = "gpt-3.5-turbo"
    GPT_4 = "gpt-4"
    GPT_4_TURBO = "gpt-4-turbo-preview"


DEFAULT_MODEL = AIModel.GPT_3_5_TURBO

CHAT_CACHE_TTL_MS = 5 * 60 * 1000
SENTIMENT_CACHE_TTL_MS = 10 * 60 * 1000

SLOW_REQUEST_MS = 1000
