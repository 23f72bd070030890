"""Abstract base for chat completion clients, plus the cancellable wait."""

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

from openai.types.chat import ChatCompletion, ChatCompletionMessageParam

from tenthman.errors import RunCancelled

T = TypeVar("T")


class ProviderError(Exception):
    """Raised when a completion call fails."""

    def __init__(
        self,
        model: str,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.model = model
        self.status_code = status_code
        self.body = body
        super().__init__(f"[{model}] {message}")


class ChatClient(ABC):
    """Abstract base for remote chat completion endpoints."""

    @abstractmethod
    async def chat_completion(
        self,
        model: str,
        messages: list[ChatCompletionMessageParam],
        cancel: asyncio.Event | None = None,
    ) -> ChatCompletion:
        """Send one logical completion request.

        Args:
            model: Remote model identifier.
            messages: Ordered role-tagged messages.
            cancel: Optional event; once set, pending waits abort.

        Returns:
            The provider's completion response, unvalidated.

        Raises:
            ProviderError: On transport failure or a non-success status.
            RunCancelled: If `cancel` is set during a request or a wait
                between attempts.
        """
        ...


def first_choice_content(response: ChatCompletion) -> str:
    """Return the first choice's text, or "" when the reply has none."""
    if not response.choices:
        return ""
    return response.choices[0].message.content or ""


async def wait_or_cancel(delay: float, cancel: asyncio.Event | None, step: str) -> None:
    """Sleep for `delay` seconds, raising RunCancelled as soon as `cancel` is set."""
    if cancel is not None and cancel.is_set():
        raise RunCancelled(step, "cancelled")
    if delay <= 0:
        return
    if cancel is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return
    raise RunCancelled(step, "cancelled during backoff")


async def run_or_cancel(call: Awaitable[T], cancel: asyncio.Event | None, step: str) -> T:
    """Await `call`, aborting it and raising RunCancelled if `cancel` is set first."""
    if cancel is None:
        return await call
    request = asyncio.ensure_future(call)
    if cancel.is_set():
        request.cancel()
        raise RunCancelled(step, "cancelled")

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not request.done():
            request.cancel()

    if request in done:
        return request.result()
    with contextlib.suppress(asyncio.CancelledError):
        await request
    raise RunCancelled(step, "cancelled during request")
