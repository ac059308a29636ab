import time
from pathlib import Path

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv(Path(__file__).resolve().parents[1] / '.env')

from .ai_service import AIService
from .cache import TTLCache
from .config_loader import Settings, load_settings
from .constants import DEFAULT_MODEL
from .errors import AIServiceError
from .lifecycle import AppResources
from .logging_config import get_logger, setup_logging
from .middleware import RateLimitMiddleware, RequestContextMiddleware
from .models import ChatRequest, GenerateRequest, SentimentRequest, SummarizeRequest
from .rate_limit import enforce_rate_limit
from .responses import error_response, success_body
from .timeutils import iso_timestamp

logger = get_logger(__name__)


def get_resources(request: Request) -> AppResources:
    return request.app.state.resources


def get_ai_service(request: Request) -> AIService:
    return get_resources(request).ai_service


def get_cache(request: Request) -> TTLCache:
    return get_resources(request).cache


def _request_id(request: Request) -> str | None:
    return getattr(request.state, 'request_id', None)


ai_router = APIRouter(prefix='/api/ai', dependencies=[Depends(enforce_rate_limit)])
cache_router = APIRouter(prefix='/api/cache')


@ai_router.post('/chat')
async def chat(
    payload: ChatRequest,
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
) -> dict:
    model = (payload.model or DEFAULT_MODEL).value
    logger.debug(
        f'[{_request_id(request)}] Chat request received ({len(payload.messages)} messages, {model})',
        extra={'request_id': _request_id(request)},
    )
    messages = [message.model_dump() for message in payload.messages]
    response = await ai_service.chat_completion(messages, model)
    return success_body({'response': response}, 'Chat completion successful')


@ai_router.post('/generate')
async def generate(
    payload: GenerateRequest,
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
) -> dict:
    model = (payload.model or DEFAULT_MODEL).value
    logger.debug(
        f'[{_request_id(request)}] Text generation request received ({len(payload.prompt)} chars, {model})',
        extra={'request_id': _request_id(request)},
    )
    response = await ai_service.generate_text(payload.prompt, payload.system_prompt, model)
    return success_body({'response': response}, 'Text generated successfully')


@ai_router.post('/sentiment')
async def sentiment(
    payload: SentimentRequest,
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
) -> dict:
    logger.debug(
        f'[{_request_id(request)}] Sentiment analysis request received ({len(payload.text)} chars)',
        extra={'request_id': _request_id(request)},
    )
    result = await ai_service.analyze_sentiment(payload.text)
    return success_body({'sentiment': result.strip().lower()}, 'Sentiment analyzed successfully')


@ai_router.post('/summarize')
async def summarize(
    payload: SummarizeRequest,
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
) -> dict:
    logger.debug(
        f'[{_request_id(request)}] Summarization request received ({len(payload.text)} chars)',
        extra={'request_id': _request_id(request)},
    )
    summary = await ai_service.summarize_text(payload.text, payload.max_length)
    return success_body(
        {
            'summary': summary,
            'originalLength': len(payload.text),
            'summaryLength': len(summary),
        },
        'Text summarized successfully',
    )


@cache_router.get('/stats')
async def cache_stats(cache: TTLCache = Depends(get_cache)) -> dict:
    logger.debug('Cache stats request received')
    return success_body(cache.get_stats(), 'Cache statistics retrieved successfully')


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = 'Not found' if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
    return error_response(message, exc.status_code, headers=getattr(exc, 'headers', None))


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        'Validation failed',
        status.HTTP_400_BAD_REQUEST,
        details=jsonable_encoder(exc.errors()),
    )


async def _ai_service_exception_handler(request: Request, exc: AIServiceError):
    logger.warning(str(exc), extra={'request_id': _request_id(request)})
    return error_response(str(exc), status.HTTP_502_BAD_GATEWAY)


async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error', exc_info=exc, extra={'request_id': _request_id(request)})
    return error_response('Internal server error', status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title='AI Completions API', version='0.1.0')
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.resources = AppResources.from_settings(settings)

    # Starlette runs the last added middleware first.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestContextMiddleware, log_all_requests=settings.is_development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(AIServiceError, _ai_service_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    @app.on_event('shutdown')
    async def release_resources() -> None:
        logger.info('Shutting down, releasing shared stores')
        app.state.resources.close()

    @app.get('/health')
    async def health() -> dict:
        return {
            'status': 'ok',
            'timestamp': iso_timestamp(),
            'uptime': int(time.monotonic() - app.state.started_at),
            'environment': settings.environment,
        }

    app.include_router(ai_router)
    app.include_router(cache_router)
    return app


_lambda_handler: Mangum | None = None


def handler(event, context):
    """Lambda entry point; the app and its stores are built on the first invocation."""
    global _lambda_handler
    if _lambda_handler is None:
        # Shutdown would destroy the stores after every invocation.
        _lambda_handler = Mangum(create_app(), lifespan='off')
    return _lambda_handler(event, context)


if __name__ == '__main__':
    import uvicorn

    app = create_app()
    logger.info(f'Server running on http://localhost:{app.state.settings.port}')
    uvicorn.run(app, host='0.0.0.0', port=app.state.settings.port)
