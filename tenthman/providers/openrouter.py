"""OpenRouter client using the openai SDK, with status-based retry and backoff."""

import asyncio
import logging
from collections.abc import Callable

import httpx
import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionMessageParam

from tenthman.models import ModelInfo
from tenthman.providers.base import ChatClient, ProviderError, run_or_cancel, wait_or_cancel

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

# Retries after the first attempt, so 4 requests at most
MAX_RETRIES = 3


def default_backoff(attempt: int) -> float:
    return float(2 ** attempt)


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _retry_after_seconds(response: httpx.Response) -> int | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class OpenRouterClient(ChatClient):
    """OpenRouter chat completions via the OpenAI-compatible API.

    The SDK's built-in retries are disabled; status-based retry with
    exponential backoff and Retry-After happens in `chat_completion`.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_sec: float = 120.0,
        backoff: Callable[[int], float] = default_backoff,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._backoff = backoff
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_sec,
            max_retries=0,
            http_client=http_client,
        )

    async def chat_completion(
        self,
        model: str,
        messages: list[ChatCompletionMessageParam],
        cancel: asyncio.Event | None = None,
    ) -> ChatCompletion:
        last_error: ProviderError | None = None

        for attempt in range(MAX_RETRIES + 1):
            if attempt > 0:
                await wait_or_cancel(self._backoff(attempt - 1), cancel, model)

            try:
                return await run_or_cancel(
                    self._client.chat.completions.create(model=model, messages=messages),
                    cancel,
                    model,
                )
            except openai.APIStatusError as exc:
                status = exc.status_code
                body = exc.response.text
                error = ProviderError(model, f"unexpected status {status}: {body}", status, body)
                if not _is_retryable(status):
                    raise error from exc
                last_error = error
                logger.warning(
                    "Model %s returned %d on attempt %d/%d",
                    model, status, attempt + 1, MAX_RETRIES + 1,
                )
                if status == 429 and attempt < MAX_RETRIES:
                    hint = _retry_after_seconds(exc.response)
                    # backoff(0) <= 0 marks the no-delay mode, which skips the hint too
                    if hint and hint > 0 and self._backoff(0) > 0:
                        logger.info("Rate limited on %s, honouring Retry-After of %ds", model, hint)
                        await wait_or_cancel(float(hint), cancel, model)
            except openai.APIConnectionError as exc:
                raise ProviderError(model, f"transport error: {exc}") from exc

        assert last_error is not None
        raise last_error

    async def list_models(self) -> list[ModelInfo]:
        """Fetch the model catalogue once, without retry."""
        try:
            page = await self._client.models.list()
        except openai.APIStatusError as exc:
            raise ProviderError(
                "models", f"unexpected status {exc.status_code}: {exc.response.text}",
                exc.status_code, exc.response.text,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError("models", f"transport error: {exc}") from exc

        models: list[ModelInfo] = []
        for entry in page.data:
            pricing = getattr(entry, "pricing", None)
            if not isinstance(pricing, dict):
                pricing = {}
            models.append(
                ModelInfo(
                    id=entry.id,
                    name=getattr(entry, "name", None) or entry.id,
                    prompt_price=pricing.get("prompt"),
                    completion_price=pricing.get("completion"),
                )
            )
        return models
