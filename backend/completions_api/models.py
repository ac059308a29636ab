from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from .constants import AIModel


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(BaseModel):
    role: Literal['user', 'assistant', 'system']
    content: str = Field(min_length=1, max_length=10000)


class ChatRequest(_CamelRequest):
    messages: List[ChatMessage] = Field(min_length=1, max_length=50)
    model: Optional[AIModel] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0, alias='maxTokens')


class GenerateRequest(_CamelRequest):
    prompt: str = Field(min_length=1, max_length=10000)
    system_prompt: Optional[str] = Field(default=None, max_length=1000, alias='systemPrompt')
    model: Optional[AIModel] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0, alias='maxTokens')


class SentimentRequest(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class SummarizeRequest(_CamelRequest):
    text: str = Field(min_length=1, max_length=50000)
    max_length: Optional[int] = Field(default=None, gt=0, le=1000, alias='maxLength')
