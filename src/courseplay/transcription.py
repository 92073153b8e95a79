"""Message protocol for the isolated transcription worker.

The worker never shares state with the player. It receives

    {"type": "transcribe", "requestId": ..., "audioSamples": [...]}

and answers with zero or more ``progress`` messages followed by exactly
one ``result`` or ``error`` for the same request id. The playback core
only consumes finished caption chunks.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from courseplay.models import CaptionChunk

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Raised when the worker answers a request with an error."""


class _Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TranscribeRequest(_Message):
    type: Literal["transcribe"] = "transcribe"
    request_id: str
    audio_samples: list[float]


class ProgressMessage(_Message):
    type: Literal["progress"] = "progress"
    request_id: str | None = None  # model loading progress is not tied to a request
    stage: str
    progress: float
    message: str = ""


class ResultMessage(_Message):
    type: Literal["result"] = "result"
    request_id: str
    text: str
    chunks: list[CaptionChunk] = Field(default_factory=list)


class ErrorMessage(_Message):
    type: Literal["error"] = "error"
    request_id: str | None = None
    message: str


WorkerMessage = Annotated[
    ProgressMessage | ResultMessage | ErrorMessage,
    Field(discriminator="type"),
]
_worker_message = TypeAdapter(WorkerMessage)


def parse_worker_message(raw: dict) -> ProgressMessage | ResultMessage | ErrorMessage:
    """Validate a raw worker message into its typed form."""
    return _worker_message.validate_python(raw)


# Engine contract: audio samples in, {"text": str, "chunks": [{"text", "timestamp"}]} out
Engine = Callable[[list[float]], dict[str, Any]]


class TranscriptionWorker:
    """Runs a transcription engine behind a pair of message queues.

    The engine is blocking and runs in a thread so the event loop stays
    responsive.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self.inbox: asyncio.Queue[dict | None] = asyncio.Queue()
        self.outbox: asyncio.Queue[dict] = asyncio.Queue()

    async def serve(self) -> None:
        """Process requests until a None sentinel arrives."""
        while True:
            raw = await self.inbox.get()
            if raw is None:
                break
            await self._handle(raw)

    async def _handle(self, raw: Any) -> None:
        request_id = raw.get("requestId") if isinstance(raw, dict) else None
        if not isinstance(request_id, str):
            request_id = None
        try:
            request = TranscribeRequest.model_validate(raw)
        except ValidationError as e:
            await self._emit(ErrorMessage(request_id=request_id, message=f"Invalid request: {e}"))
            return

        rid = request.request_id
        await self._emit(ProgressMessage(
            request_id=rid, stage="transcribing", progress=0.0, message="Transcribing audio..."
        ))
        try:
            output = await asyncio.to_thread(self._engine, request.audio_samples)
            result = ResultMessage(
                request_id=rid,
                text=(output.get("text") or "").strip(),
                chunks=output.get("chunks") or [],
            )
        except Exception as e:
            logger.warning("Transcription %s failed: %s", rid, e)
            await self._emit(ErrorMessage(request_id=rid, message=str(e)))
            return

        await self._emit(ProgressMessage(
            request_id=rid, stage="transcribing", progress=1.0, message="Transcription complete!"
        ))
        await self._emit(result)

    async def _emit(self, message: _Message) -> None:
        await self.outbox.put(message.to_wire())


class TranscriptionClient:
    """Sends requests to a worker and matches answers by request id.

    Use as an async context manager; it starts the worker and a listener
    and shuts both down on exit.
    """

    def __init__(self, worker: TranscriptionWorker) -> None:
        self._worker = worker
        self._pending: dict[str, tuple[asyncio.Future, Callable[[ProgressMessage], None] | None]] = {}
        self._tasks: list[asyncio.Task] = []

    async def __aenter__(self) -> "TranscriptionClient":
        self._tasks = [
            asyncio.create_task(self._worker.serve(), name="transcription-worker"),
            asyncio.create_task(self._listen(), name="transcription-listener"),
        ]
        return self

    async def __aexit__(self, *exc) -> None:
        await self._worker.inbox.put(None)
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        for future, _ in self._pending.values():
            if not future.done():
                future.set_exception(TranscriptionError("Transcription worker stopped"))
        self._pending.clear()

    async def transcribe(
        self,
        audio_samples: list[float],
        on_progress: Callable[[ProgressMessage], None] | None = None,
    ) -> ResultMessage:
        """Submit audio and wait for the terminal message.

        Raises:
            TranscriptionError: If the worker reports an error.
        """
        request = TranscribeRequest(request_id=uuid4().hex, audio_samples=audio_samples)
        future = asyncio.get_running_loop().create_future()
        self._pending[request.request_id] = (future, on_progress)
        await self._worker.inbox.put(request.to_wire())
        return await future

    async def _listen(self) -> None:
        while True:
            raw = await self._worker.outbox.get()
            try:
                message = parse_worker_message(raw)
            except ValidationError as e:
                logger.warning("Dropping malformed worker message: %s", e)
                continue
            self._dispatch(message)

    def _dispatch(self, message: ProgressMessage | ResultMessage | ErrorMessage) -> None:
        entry = self._pending.get(message.request_id) if message.request_id else None
        if entry is None:
            logger.debug("Worker message for unknown request: %s", message.type)
            return
        future, on_progress = entry

        if isinstance(message, ProgressMessage):
            if on_progress is not None:
                on_progress(message)
            return

        del self._pending[message.request_id]
        if future.done():
            return
        if isinstance(message, ResultMessage):
            future.set_result(message)
        else:
            future.set_exception(TranscriptionError(message.message))
