from __future__ import annotations

import asyncio
import logging
import random
import signal
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, TypeVar

from ..backend_client import BackendClient
from .actions import ActionOutcome, comment_on_post, send_message
from .config import Config, load_config
from .logging_utils import setup_logging
from .reporting import send_report
from .selection import (
    CandidateUser,
    fetch_candidate_posts,
    fetch_candidate_users,
    find_user,
    pick_random,
)
from .state import ActivityTracker
from .status_server import start_status_server
from .ui import print_action_banner, print_final_stats, print_health_banner, print_runtime_banner


logger = logging.getLogger("botcop.autonomy")

T = TypeVar("T")


class SelectionEmpty(Exception):
    pass


class EngineState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


def _choose(items: Sequence[T], what: str, rng: Optional[random.Random]) -> T:
    chosen = pick_random(items, rng)
    if chosen is None:
        raise SelectionEmpty(f"No {what}")
    return chosen


class BotEngine:
    """Owns the session, activity log and timers for one bot run.

    Lifecycle: idle -> initializing -> running -> stopping -> stopped.
    All timer callbacks run on the event loop that called ``run()``.
    """

    def __init__(
        self,
        cfg: Config,
        client: Optional[BackendClient] = None,
        tracker: Optional[ActivityTracker] = None,
        rng: Optional[random.Random] = None,
    ):
        self.cfg = cfg
        self.tracker = tracker or ActivityTracker()
        self.client = client or BackendClient(
            credentials=cfg.credentials,
            base_url=cfg.base_url,
            max_retries=cfg.max_retries,
            retry_delay=cfg.retry_delay_seconds,
            timeout=cfg.request_timeout_seconds,
            activity=self.tracker,
        )
        self.rng = rng
        self.state = EngineState.IDLE
        self.observer: Optional[CandidateUser] = None
        self.started_at = time.monotonic()
        self._timers: List[asyncio.Task] = []
        self._in_flight: Set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    def is_healthy(self) -> bool:
        return self.tracker.is_healthy()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.state.value,
            "healthy": self.is_healthy(),
            "uptime": self.uptime_seconds,
            "stats": self.tracker.stats().as_dict(),
        }

    async def initialize(self) -> None:
        self.state = EngineState.INITIALIZING
        logger.info(
            "Initializing base_url=%s bot_user=%s report_user=%s interval_minutes=%s",
            self.cfg.base_url,
            self.cfg.username,
            self.cfg.report_username,
            self.cfg.interval_minutes,
        )
        await self.client.authenticate()
        await self.resolve_observer()

    async def resolve_observer(self) -> Optional[CandidateUser]:
        try:
            self.observer = await find_user(self.client, self.cfg.report_username)
        except Exception as e:
            logger.warning("Report user lookup failed username=%s error=%s", self.cfg.report_username, e)
            self.observer = None

        if self.observer is None:
            logger.warning('Report user "%s" not found. Reports will be skipped.', self.cfg.report_username)
        else:
            logger.info("Reports will be sent to @%s (ID: %s)", self.observer.username, self.observer.id)
        return self.observer

    async def _report(self, outcome: ActionOutcome) -> None:
        logger.debug("Action outcome %s", outcome.as_dict())
        if self.observer is not None:
            await send_report(self.client, self.tracker, self.observer, outcome)

    async def message_tick(self) -> Optional[ActionOutcome]:
        if not self.is_healthy():
            self.tracker.record("Bot is unhealthy, skipping message action", "warning")
            return None

        try:
            self.tracker.record("Fetching active users...")
            users = await fetch_candidate_users(self.client, self.tracker, self.rng)
            user = _choose(users, "users available to message", self.rng)
            self.tracker.record(f"Selected user: @{user.username} (ID: {user.id})")
            outcome = await send_message(self.client, self.tracker, user, self.rng)
            await self._report(outcome)
            return outcome
        except SelectionEmpty as e:
            self.tracker.record(str(e), "warning")
        except Exception as e:
            self.tracker.record(f"Error in message action: {e}", "error")
        return None

    async def comment_tick(self) -> Optional[ActionOutcome]:
        if not self.is_healthy():
            self.tracker.record("Bot is unhealthy, skipping comment action", "warning")
            return None

        try:
            self.tracker.record("Fetching posts...")
            posts = await fetch_candidate_posts(self.client, self.tracker)
            post = _choose(posts, "posts available to comment on", self.rng)
            self.tracker.record(f"Selected post: ID {post.id} by @{post.owner_username}")
            outcome = await comment_on_post(self.client, self.tracker, post, self.rng)
            await self._report(outcome)
            return outcome
        except SelectionEmpty as e:
            self.tracker.record(str(e), "warning")
        except Exception as e:
            self.tracker.record(f"Error in comment action: {e}", "error")
        return None

    async def health_check(self) -> bool:
        healthy = self.is_healthy()
        print_health_banner(self.tracker.stats(), healthy, self.tracker.consecutive_errors)
        if healthy:
            return True

        self.tracker.record("Bot is unhealthy, attempting recovery...", "warning")
        try:
            await self.client.authenticate()
        except Exception as e:
            self.tracker.record(f"Recovery failed: {e}", "error")
            return False
        self.tracker.record_success()
        self.tracker.record("Recovery successful!", "success")
        return True

    async def _message_action(self) -> None:
        print_action_banner("MESSAGE ACTION")
        logger.info("MESSAGE ACTION healthy=%s", self.is_healthy())
        await self.message_tick()

    async def _comment_action(self) -> None:
        print_action_banner("COMMENT ACTION")
        logger.info("COMMENT ACTION healthy=%s", self.is_healthy())
        await self.comment_tick()

    def _spawn(self, handler: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        task = asyncio.create_task(handler())
        self._in_flight.add(task)
        task.add_done_callback(self._tick_done)
        return task

    def _tick_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Uncaught failure in scheduled tick: %r", exc)
            self.request_stop()

    async def _periodic(self, first_delay: float, period: float, handler: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(first_delay)
        while True:
            self._spawn(handler)
            await asyncio.sleep(period)

    async def start(self) -> None:
        if self.state is not EngineState.IDLE:
            logger.warning("Bot is already running (state=%s)", self.state.value)
            return

        await self.initialize()
        self.state = EngineState.RUNNING

        period = self.cfg.action_period_seconds
        logger.info(
            "Starting schedule message_every=%ss comment_every=%ss comment_offset=%ss health_every=%ss",
            period,
            period,
            self.cfg.comment_offset_seconds,
            self.cfg.health_check_seconds,
        )
        await self.message_tick()

        self._timers = [
            asyncio.create_task(self._periodic(period, period, self._message_action)),
            asyncio.create_task(self._periodic(self.cfg.comment_offset_seconds, period, self._comment_action)),
            asyncio.create_task(
                self._periodic(self.cfg.health_check_seconds, self.cfg.health_check_seconds, self.health_check)
            ),
        ]
        logger.info("Bot Cop is now running.")

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    async def stop(self) -> None:
        if self.state in {EngineState.STOPPING, EngineState.STOPPED}:
            return
        logger.info("Stopping Bot Cop...")
        self.state = EngineState.STOPPING

        for timer in self._timers:
            timer.cancel()
        await asyncio.gather(*self._timers, return_exceptions=True)
        self._timers = []

        # In-flight ticks are allowed to finish; only the timers are cancelled.
        pending = [task for task in self._in_flight if task is not asyncio.current_task()]
        if pending:
            logger.info("Waiting for in-flight actions count=%s", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

        print_final_stats(self.tracker.stats())
        self.state = EngineState.STOPPED
        logger.info("Bot Cop stopped gracefully.")

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        error = context.get("exception") or context.get("message")
        logger.error("Uncaught async failure: %r", error)
        self.request_stop()

    def _install_stop_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.set_exception_handler(self._on_loop_exception)
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # Signal handlers are unavailable off the main thread and on Windows.
                logger.debug("Signal handler unavailable for %s", sig)

    async def run(self, serve_status: bool = True) -> int:
        """Run until a stop signal; returns the process exit code."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._install_stop_handlers(loop)

        status_server = None
        if serve_status and self.cfg.port:
            status_server = await start_status_server(self, self.cfg.port)

        exit_code = 0
        try:
            await self.start()
        except Exception as e:
            logger.error("Failed to start bot: %s", e)
            exit_code = 1
        else:
            await self._stop_event.wait()
        finally:
            await self.stop()
            if status_server is not None:
                await status_server.shutdown()
        return exit_code


def run_bot() -> int:
    cfg = load_config()
    setup_logging(cfg)
    print_runtime_banner(cfg)
    engine = BotEngine(cfg)
    return asyncio.run(engine.run())
