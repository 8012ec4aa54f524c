"""
Streaming orchestrator: drives one answer from prompt to terminal frame.

Each request runs as an ``AnswerStream`` state machine::

    INIT -> AWAITING_MODEL -> STREAMING_TOKENS <-> EXECUTING_TOOL -> FINALIZING -> DONE
                  any non-terminal state -> ABORTED | FAILED

- INIT announces the request, reads the thread and records the user turn
- AWAITING_MODEL opens a streamed completion (one per segment)
- STREAMING_TOKENS feeds deltas through the adaptive flush buffer
- EXECUTING_TOOL runs the requested tool calls and starts a new segment
- FINALIZING flushes the remainder, commits the answer and sends ``done``

Once the cancellation token fires no further frame is emitted, nothing is
committed and the sink is closed. A failure sends one ``error`` frame.
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from collections.abc import Awaitable, Callable
from enum import Enum

from api.services.conversation import ConversationAssembler
from api.services.flush_buffer import AdaptiveFlushBuffer
from api.services.frame_sink import FrameSink, SinkClosed
from api.services.thread_store import ThreadStore
from api.websocket.task_manager import CancellationToken
from core.constants import THINKING_ANALYZING_DESCRIPTION, THINKING_ANALYZING_TITLE, Settings
from core.exceptions import AppException, MissingCredentials, PersistenceWarning, StreamAborted
from integrations.model_stream import ContentDelta, ModelStream, ToolCallSignal
from integrations.search import SearchProvider, SearchProviderFactory
from models.frames import BaseFrame, ContentFrame, DoneFrame, ErrorFrame, ThinkingFrame
from models.schemas.chat import ChatRequest
from models.thread_models import Message
from tools import ToolContext, ToolRegistry
from utils.logger import logger
from utils.metrics import (
    chat_stream_duration_seconds,
    chat_streams_total,
    frames_emitted_total,
    thread_store_errors_total,
)

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred while generating the answer. Please try again."


class StreamState(str, Enum):
    INIT = "init"
    AWAITING_MODEL = "awaiting_model"
    STREAMING_TOKENS = "streaming_tokens"
    EXECUTING_TOOL = "executing_tool"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.DONE, StreamState.ABORTED, StreamState.FAILED)


class ChatService:
    """Shared collaborators for answer streams.

    Stateless across requests: everything request-scoped lives on the
    ``AnswerStream`` created by ``process_chat``.
    """

    def __init__(
        self,
        thread_store: ThreadStore,
        model_stream: ModelStream | None,
        search_providers: SearchProviderFactory,
        settings: Settings,
        tools: ToolRegistry | None = None,
        assembler: ConversationAssembler | None = None,
    ):
        self.thread_store = thread_store
        self.model_stream = model_stream
        self.search_providers = search_providers
        self.settings = settings
        self.tools = tools or ToolRegistry()
        self.assembler = assembler or ConversationAssembler(thread_store)

    def resolve_provider(self, request: ChatRequest) -> SearchProvider:
        """Check configuration for ``request`` and build its search provider.

        Call before any output is produced.

        Raises:
            MissingCredentials: If the model or the chosen provider has no key
        """
        if self.model_stream is None:
            raise MissingCredentials("OpenAI", "OPENAI_API_KEY")
        return self.search_providers.create(request.search_provider)

    async def process_chat(
        self,
        request: ChatRequest,
        sink: FrameSink,
        cancellation_token: CancellationToken,
        provider: SearchProvider | None = None,
    ) -> StreamState:
        """Stream one answer into ``sink`` and return the terminal state.

        Args:
            request: Thread, prompt and provider flag
            sink: Frame destination, closed on return
            cancellation_token: Fired by the transport on interrupt or disconnect
            provider: Pre-resolved provider (see ``resolve_provider``)
        """
        if provider is None:
            provider = self.resolve_provider(request)
        stream = AnswerStream(self, request, provider, sink, cancellation_token)
        return await stream.run()


class AnswerStream:
    """State machine for a single answer. Never reused."""

    def __init__(
        self,
        service: ChatService,
        request: ChatRequest,
        provider: SearchProvider,
        sink: FrameSink,
        cancellation_token: CancellationToken,
    ):
        assert service.model_stream is not None
        self.service = service
        self.model_stream: ModelStream = service.model_stream
        self.request = request
        self.thread_id = request.thread_id
        self.provider = provider
        self.sink = sink
        self.token = cancellation_token
        self.state = StreamState.INIT
        self.text_parts: list[str] = []
        self.tool_calls: list[str] = []

        s = service.settings
        self.max_tool_hops = s.max_tool_hops
        self.buffer = AdaptiveFlushBuffer(
            self._emit_content,
            cancellation_token,
            max_chars=s.flush_max_chars,
            max_interval=s.flush_max_interval_ms / 1000,
            pacing=s.flush_pacing_ms / 1000,
        )

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    async def run(self) -> StreamState:
        started = time.perf_counter()
        try:
            history = await self._init()
            await self._generate(history)
            await self._finalize(started)
        except (StreamAborted, SinkClosed) as e:
            await self._abort(str(e))
        except asyncio.CancelledError:
            await self._abort("task cancelled")
            raise
        except Exception as e:
            if self.token.is_cancelled:
                await self._abort(self.token.cancel_reason or str(e))
            else:
                await self._fail(e)
        finally:
            chat_streams_total.labels(outcome=self.state.value).inc()
            chat_stream_duration_seconds.observe(time.perf_counter() - started)
        return self.state

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _init(self) -> list[Message]:
        await self._emit(ThinkingFrame(title=THINKING_ANALYZING_TITLE, description=THINKING_ANALYZING_DESCRIPTION))
        history = await self._read_history()
        self._checkpoint()
        await self._persist("append_user", self.service.thread_store.append_user, self.request.prompt)
        return history

    async def _generate(self, history: list[Message]) -> None:
        self._transition(StreamState.AWAITING_MODEL)
        messages = await self.service.assembler.build(self.thread_id, self.request.prompt, history=history)

        hops = 0
        while True:
            self._checkpoint()
            tools = self.service.tools.tool_schemas(self.provider.label) if hops < self.max_tool_hops else None
            segment: list[str] = []
            signal: ToolCallSignal | None = None

            async with contextlib.aclosing(self.model_stream.stream(messages, tools)) as units:
                self._transition(StreamState.STREAMING_TOKENS)
                async for unit in units:
                    self._checkpoint()
                    if isinstance(unit, ContentDelta):
                        segment.append(unit.text)
                        self.text_parts.append(unit.text)
                        await self.buffer.push(unit.text)
                    else:
                        signal = unit

            self._checkpoint()
            if signal is None:
                return
            if tools is None:
                logger.warning(
                    f"Model requested tools after {hops} hops with tools disabled; finishing answer",
                    thread_id=self.thread_id,
                )
                return

            await self._execute_tools(messages, "".join(segment), signal)
            hops += 1
            self._transition(StreamState.AWAITING_MODEL)

    async def _execute_tools(self, messages: list[dict], segment_text: str, signal: ToolCallSignal) -> None:
        self._transition(StreamState.EXECUTING_TOOL)
        # Text generated before the call goes out ahead of the tool's thinking frames
        await self.buffer.finish()

        messages.append(
            {
                "role": "assistant",
                "content": segment_text or None,
                "tool_calls": [call.to_message_part() for call in signal.calls],
            }
        )
        ctx = ToolContext(
            provider=self.provider,
            cancellation_token=self.token,
            emit_thinking=self._emit_thinking,
        )
        for call in signal.calls:
            self.tool_calls.append(call.name)
            output = await self.service.tools.execute(call.name, call.arguments, ctx)
            messages.append({"role": "tool", "tool_call_id": call.id, "content": output})

    async def _finalize(self, started: float) -> None:
        self._transition(StreamState.FINALIZING)
        await self.buffer.finish()
        self._checkpoint()

        text = self.text
        await self._persist("append_assistant", self.service.thread_store.append_assistant, text)
        await self._emit(DoneFrame())
        self._transition(StreamState.DONE)
        await self.sink.close()

        logger.log_conversation_turn(
            thread_id=self.thread_id,
            user_input=self.request.prompt,
            response=text,
            tool_calls=self.tool_calls,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def _abort(self, reason: str) -> None:
        self._transition(StreamState.ABORTED)
        logger.info(f"Answer stream aborted: {reason}", thread_id=self.thread_id)
        await self._close_quietly()

    async def _fail(self, error: Exception) -> None:
        self._transition(StreamState.FAILED)
        logger.error(
            f"Answer stream failed: {error}",
            exc_info=True,
            thread_id=self.thread_id,
            provider=self.provider.kind,
            error_type=type(error).__name__,
        )
        message = error.message if isinstance(error, AppException) else GENERIC_FAILURE_MESSAGE
        if self.sink.is_open:
            try:
                await self.sink.send(ErrorFrame(message=message))
                frames_emitted_total.labels(type="error").inc()
            except SinkClosed:
                logger.debug("Sink closed before error frame could be sent", thread_id=self.thread_id)
        await self._close_quietly()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, state: StreamState) -> None:
        if state is self.state:
            return
        logger.debug(f"Stream state {self.state.value} -> {state.value}", thread_id=self.thread_id)
        self.state = state

    def _checkpoint(self) -> None:
        if self.token.is_cancelled:
            raise StreamAborted(self.token.cancel_reason)

    async def _emit(self, frame: BaseFrame) -> None:
        self._checkpoint()
        await self.sink.send(frame)
        frames_emitted_total.labels(type=frame.type).inc()

    async def _emit_content(self, text: str) -> None:
        await self._emit(ContentFrame(text=text))

    async def _emit_thinking(self, title: str, description: str) -> None:
        await self._emit(ThinkingFrame(title=title, description=description))

    async def _read_history(self) -> list[Message]:
        try:
            return await self.service.thread_store.history(self.thread_id)
        except Exception as e:
            logger.warning(f"Could not read thread history, continuing without it: {e}", thread_id=self.thread_id)
            thread_store_errors_total.labels(operation="history").inc()
            return []

    async def _persist(self, operation: str, append: Callable[[str, str], Awaitable[None]], text: str) -> None:
        try:
            await append(self.thread_id, text)
        except Exception as e:
            warning = PersistenceWarning(self.thread_id, operation, cause=e)
            logger.warning(warning.message, exc_info=True, error=str(e), operation=operation)
            thread_store_errors_total.labels(operation=operation).inc()

    async def _close_quietly(self) -> None:
        try:
            await self.sink.close()
        except Exception as e:
            logger.debug(f"Sink close failed: {e}", thread_id=self.thread_id)


__all__ = ["GENERIC_FAILURE_MESSAGE", "AnswerStream", "ChatService", "StreamState"]
