"""One meeting session: join, listen, answer, leave."""

import asyncio
import contextlib
import logging

from .config import Config
from .conversation import ConversationStore
from .driver import CycleResult, InvalidSequenceError, ModelEndpoint, ToolCallDriver
from .gateway import McpToolGateway
from .llm import OpenAIModel
from .prompts import FAREWELL, build_system_prompt, greeting
from .scheduler import TurnScheduler
from .transcript import TranscriptCursor, format_segments, parse_transcript
from .types import Segment, UserTurn

LOG = logging.getLogger("meeting_agent.session")


class Session:
    """Owns every piece of per-meeting state.

    Lifecycle: ``start`` (connect, join, greet, begin polling), ``run``
    (start and wait for shutdown) and ``shutdown``, which runs the
    farewell/leave/close sequence exactly once however often it is
    requested.
    """

    def __init__(
        self, config: Config, gateway: McpToolGateway, model: ModelEndpoint
    ) -> None:
        self.config = config
        self.gateway = gateway
        self.store = ConversationStore(build_system_prompt(config.agent_name))
        self.cursor = TranscriptCursor(config.cursor_mode)
        self.driver = ToolCallDriver(
            self.store, model, gateway, max_steps=config.max_steps
        )
        self.scheduler = TurnScheduler(
            self.handle_batch,
            policy=config.schedule_policy,
            delay=config.debounce_delay,
        )
        self.joined = False
        self.closing = False
        self._start_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    @classmethod
    def create(cls, config: Config) -> "Session":
        return cls(
            config,
            McpToolGateway.from_config(config),
            OpenAIModel.from_config(config),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.gateway.connect()

        await self.gateway.call_tool(
            "join_meeting",
            {
                "meeting_url": self.config.meeting_url,
                "participant_name": self.config.agent_name,
            },
        )
        self.joined = True
        LOG.info("Joined meeting as %s", self.config.agent_name)

        await self.driver.speak(greeting(self.config.agent_name))

        if self.config.join_delay:
            await asyncio.sleep(self.config.join_delay)
        if self.closing:
            return
        self.scheduler.start()
        self._poll_task = asyncio.create_task(self._poll_loop(), name="transcript-poll")

    async def run(self) -> None:
        """Start the session and wait until shutdown has completed.

        A shutdown requested while still starting cancels the start-up
        and is not an error.
        """
        if not self.closing:
            self._start_task = asyncio.create_task(self.start(), name="start")
            try:
                await self._start_task
            except asyncio.CancelledError:
                if not self.closing:
                    raise
            except BaseException:
                await self.shutdown()
                raise
        await self._stopped.wait()

    def request_shutdown(self) -> asyncio.Task[None]:
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self._shutdown(), name="shutdown")
        return self._shutdown_task

    async def shutdown(self) -> None:
        await self.request_shutdown()

    async def _shutdown(self) -> None:
        LOG.info("Shutting down gracefully...")
        self.closing = True
        try:
            start_task, self._start_task = self._start_task, None
            if start_task is not None and not start_task.done():
                start_task.cancel()
                await asyncio.wait([start_task])
            await self.scheduler.close()
            poll_task, self._poll_task = self._poll_task, None
            if poll_task is not None:
                poll_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await poll_task

            if self.joined:
                await self._compensate("speak farewell", self.driver.speak(FAREWELL))
                await self._compensate(
                    "leave meeting", self.gateway.call_tool("leave_meeting", {})
                )
                self.joined = False
                LOG.info("Left the meeting")
            await self._compensate("close connections", self.gateway.close())
        finally:
            self._stopped.set()

    async def _compensate(self, step: str, action) -> None:
        try:
            await action
        except Exception:
            LOG.exception("Failed to %s during shutdown", step)

    # ------------------------------------------------------------------
    # Transcript polling and model cycles
    # ------------------------------------------------------------------

    async def poll_once(self) -> list[Segment]:
        payload = await self.gateway.read_text_resource(self.config.transcript_uri)
        transcript = parse_transcript(payload)
        if transcript is None:
            return []
        new_segments = self.cursor.advance(transcript.segments)
        if new_segments:
            LOG.info("New transcript:\n%s", format_segments(new_segments))
            self.scheduler.submit(new_segments)
        return new_segments

    async def _poll_loop(self) -> None:
        while not self.closing:
            try:
                await self.poll_once()
            except Exception as e:
                LOG.error("Error reading transcript: %s", e)
            await asyncio.sleep(self.config.poll_interval)

    async def handle_batch(self, segments: list[Segment]) -> CycleResult | None:
        """Append *segments* as one user turn and run a model cycle on it."""
        self.store.append(UserTurn(content=format_segments(segments)))
        self.store.truncate(self.config.history_size)
        try:
            return await self.driver.run_cycle()
        except InvalidSequenceError as e:
            LOG.error("Model rejected the turn sequence: %s", e)
            self.store.reset()
        except Exception:
            LOG.exception("Error processing transcript turn")
        return None
