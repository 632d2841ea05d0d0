"""
File system watcher for workspace changes.

Monitors the workspace problems/ and templates/ trees, debounces raw events
per path and dispatches categorized WatchEvents to registered handlers.
Uses watchdog library for cross-platform file system event monitoring; the
observer thread only hands events to the asyncio loop, where all debouncing
and dispatch happen.
"""

import asyncio
import inspect
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    Union,
)

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.models.schemas import WatchEvent, WatchEventCategory, WatchEventKind
from app.utils.config import get_settings
from app.utils.errors import (
    AlreadyRunningError,
    ValidationError,
    WatcherFailure,
    WorkspaceError,
    create_error_context,
)
from app.utils.helpers import path_segments
from domains.workspace.paths import PathResolver, get_path_resolver

ALL = "all"

DEFAULT_DEBOUNCE_MS = 300

WatchHandler = Callable[[WatchEvent], Optional[Awaitable[None]]]

_KIND_ALIASES = {
    "created": WatchEventKind.CREATE,
    "create": WatchEventKind.CREATE,
    "modified": WatchEventKind.MODIFY,
    "modify": WatchEventKind.MODIFY,
    "closed": WatchEventKind.MODIFY,  # closed after write
    "deleted": WatchEventKind.REMOVE,
    "remove": WatchEventKind.REMOVE,
}


@dataclass(frozen=True)
class RawEvent:
    """Undebounced change as reported by a subscription."""

    kind: str
    paths: Tuple[str, ...]


def normalize_event_kind(kind: str) -> WatchEventKind:
    """Map a raw event kind to a WatchEventKind; unknown kinds are unclassified."""
    return _KIND_ALIASES.get(kind, WatchEventKind.UNCLASSIFIED)


def categorize_path(path: str) -> WatchEventCategory:
    """Categorize a changed path by its directory segments."""
    segments = path_segments(path)
    if "problems" in segments:
        return WatchEventCategory.PROBLEM_CHANGED
    if "templates" in segments:
        return WatchEventCategory.TEMPLATE_CHANGED
    return WatchEventCategory.OTHER


# =====================================================
# Subscriptions
# =====================================================

class Subscription(Protocol):
    """Source of raw filesystem events for a ChangeWatcher."""

    def open(self, loop: asyncio.AbstractEventLoop) -> None: ...

    def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[RawEvent]: ...


SubscriptionFactory = Callable[[Sequence[str], bool], Subscription]


class WorkspaceEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards changes as RawEvents."""

    def __init__(self, publish: Callable[[RawEvent], None]):
        """
        Initialize event handler.

        Args:
            publish: Called on the observer thread with each RawEvent
        """
        super().__init__()
        self.publish = publish

    def on_created(self, event: FileSystemEvent):
        """Handle file/directory creation."""
        self._emit("created", event.src_path)

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification."""
        # Skip directory modifications (too noisy)
        if event.is_directory:
            return
        self._emit("modified", event.src_path)

    def on_closed(self, event: FileSystemEvent):
        """Handle a file closed after writing."""
        self._emit("closed", event.src_path)

    def on_deleted(self, event: FileSystemEvent):
        """Handle file/directory deletion."""
        self._emit("deleted", event.src_path)

    def on_moved(self, event: FileSystemEvent):
        """Handle file/directory move/rename."""
        self._emit("moved", event.src_path, getattr(event, "dest_path", None))

    def _emit(self, kind: str, *raw_paths: Union[str, bytes, None]) -> None:
        paths = tuple(os.fsdecode(raw) for raw in raw_paths if raw)
        if paths:
            self.publish(RawEvent(kind=kind, paths=paths))


class WatchdogSubscription:
    """Bridges a watchdog Observer into an asyncio queue."""

    def __init__(
        self,
        paths: Sequence[str],
        recursive: bool = True,
        poll_interval: float = 1.0,
        observer_factory: Callable[[], Any] = Observer,
        join_timeout: float = 5.0,
    ):
        self.paths = [str(p) for p in paths]
        self.recursive = recursive
        self.poll_interval = poll_interval
        self.observer_factory = observer_factory
        self.join_timeout = join_timeout

        self._observer = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._closed = False

    def open(self, loop: asyncio.AbstractEventLoop) -> None:
        """Schedule every path and start the observer thread."""
        self._loop = loop
        self._queue = asyncio.Queue()

        handler = WorkspaceEventHandler(self._publish)
        observer = self.observer_factory()
        for path in self.paths:
            observer.schedule(handler, path, recursive=self.recursive)
            logger.info(f"Watching: {path}")

        observer.daemon = True
        observer.start()
        self._observer = observer

    def close(self) -> None:
        """Stop the observer thread."""
        self._closed = True
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=self.join_timeout)

    def __aiter__(self) -> AsyncIterator[RawEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[RawEvent]:
        if self._queue is None:
            raise WatcherFailure(
                "Subscription was not opened",
                create_error_context("WatchdogSubscription.iterate", paths=self.paths),
            )
        while not self._closed:
            try:
                raw = await asyncio.wait_for(self._queue.get(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                self._check_alive()
                continue
            yield raw

    def _publish(self, raw: RawEvent) -> None:
        # Runs on the observer thread
        loop = self._loop
        if loop is None or self._closed:
            return
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, raw)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {raw.kind} {raw.paths}")

    def _check_alive(self) -> None:
        observer = self._observer
        if observer is None or self._closed:
            return
        if not observer.is_alive():
            raise WatcherFailure(
                "File system observer thread exited",
                create_error_context("WatchdogSubscription.check_alive", paths=self.paths),
            )
        for emitter in list(observer.emitters):
            if not emitter.is_alive():
                raise WatcherFailure(
                    f"Stopped receiving events for {emitter.watch.path}",
                    create_error_context("WatchdogSubscription.check_alive", path=emitter.watch.path),
                )


def watchdog_subscription_factory(poll_interval: float = 1.0) -> SubscriptionFactory:
    """Factory producing WatchdogSubscriptions with the given health-check period."""

    def factory(paths: Sequence[str], recursive: bool) -> Subscription:
        return WatchdogSubscription(paths, recursive=recursive, poll_interval=poll_interval)

    return factory


# =====================================================
# Watcher
# =====================================================

class ChangeWatcher:
    """
    Debounced, categorized file change notifications.

    Handlers are registered per category ("problem-changed",
    "template-changed", "other") or for "all". A dispatched event reaches the
    category handlers first, then the "all" handlers, each in registration
    order. Handlers may be plain callables or coroutine functions.
    """

    def __init__(
        self,
        paths: Union[str, os.PathLike, Sequence[Union[str, os.PathLike]]],
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        recursive: bool = True,
        subscription_factory: Optional[SubscriptionFactory] = None,
    ):
        """
        Initialize change watcher.

        Args:
            paths: Path or paths to watch
            debounce_ms: Quiet period per path before an event is dispatched
            recursive: Watch subdirectories
            subscription_factory: Builds the raw event source (watchdog by default)
        """
        if isinstance(paths, (str, os.PathLike)):
            paths = [paths]
        self.paths: List[str] = [os.fspath(p) for p in paths]
        self.debounce = debounce_ms / 1000.0
        self.recursive = recursive
        self.subscription_factory = subscription_factory or watchdog_subscription_factory()

        self.last_failure: Optional[WatcherFailure] = None

        self._handlers: Dict[str, List[WatchHandler]] = {
            ALL: [],
            WatchEventCategory.PROBLEM_CHANGED.value: [],
            WatchEventCategory.TEMPLATE_CHANGED.value: [],
            WatchEventCategory.OTHER.value: [],
        }
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._handler_tasks: Set[asyncio.Future] = set()
        self._running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    def is_running(self) -> bool:
        return self._running

    @property
    def pending_paths(self) -> List[str]:
        """Paths with a debounce timer still waiting to fire."""
        return list(self._timers)

    def on(self, category: Union[str, WatchEventCategory], handler: WatchHandler) -> WatchHandler:
        """
        Register a handler for a category or for "all".

        Returns:
            The handler, so this can be used as a decorator factory target
        """
        handlers = self._handlers_for(category)
        if handler not in handlers:
            handlers.append(handler)
        return handler

    def off(self, category: Union[str, WatchEventCategory], handler: WatchHandler) -> None:
        """Unregister a handler; unknown handlers are ignored."""
        handlers = self._handlers_for(category)
        if handler in handlers:
            handlers.remove(handler)

    def start(self) -> None:
        """
        Start watching. Must be called from inside a running event loop.

        Raises:
            AlreadyRunningError: If the watcher is already running
            WorkspaceError: If the subscription cannot be opened
        """
        if self._running:
            raise AlreadyRunningError(
                "Watcher is already running",
                create_error_context("ChangeWatcher.start", paths=self.paths),
            )

        loop = asyncio.get_running_loop()
        subscription = self.subscription_factory(self.paths, self.recursive)
        try:
            subscription.open(loop)
        except OSError as exc:
            subscription.close()
            raise WorkspaceError(
                f"Failed to start file watcher: {exc}",
                create_error_context("ChangeWatcher.start", paths=self.paths, error=str(exc)),
            ) from exc

        self._loop = loop
        self._subscription = subscription
        self._running = True
        self.last_failure = None
        self._task = loop.create_task(self._consume(subscription))
        logger.success(f"File watcher started on {len(self.paths)} path(s)")

    def stop(self) -> None:
        """
        Stop watching and discard pending debounced events.

        Idempotent. No handler is called for events still waiting in a
        debounce window once this returns.
        """
        if not self._running:
            return
        self._running = False

        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                subscription.close()
            except OSError as e:
                logger.warning(f"Error closing file watcher subscription: {e}")

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        logger.info("File watcher stopped")

    async def _consume(self, subscription: Subscription) -> None:
        """Feed raw events from the subscription into the debouncer."""
        try:
            async for raw in subscription:
                if not self._running:
                    return
                for path in raw.paths:
                    self._schedule(raw.kind, path)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._running and self._subscription is subscription:
                self._fail(exc)
            return

        if self._running and self._subscription is subscription:
            self._fail(
                WatcherFailure(
                    "Filesystem subscription ended unexpectedly",
                    create_error_context("ChangeWatcher.consume", paths=self.paths),
                )
            )

    def _schedule(self, kind: str, path: str) -> None:
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        self._timers[path] = self._loop.call_later(self.debounce, self._fire, kind, path)

    def _fire(self, kind: str, path: str) -> None:
        if not self._running:
            return
        self._timers.pop(path, None)
        self.dispatch(kind, path)

    def dispatch(self, kind: str, path: str) -> WatchEvent:
        """Build a WatchEvent for ``path`` and deliver it to handlers."""
        event = WatchEvent(
            kind=normalize_event_kind(kind),
            path=path,
            category=categorize_path(path),
            timestamp=datetime.now(timezone.utc),
        )
        logger.debug(f"{event.category.value}: {event.kind.value} {event.path}")

        handlers = list(self._handlers[event.category.value]) + list(self._handlers[ALL])
        for handler in handlers:
            self._safe_call(handler, event)
        return event

    def _safe_call(self, handler: WatchHandler, event: WatchEvent) -> None:
        try:
            result = handler(event)
        except Exception as e:
            logger.error(f"File watcher handler error: {e}")
            return

        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._handler_tasks.add(future)
            future.add_done_callback(self._handler_done)

    def _handler_done(self, future: asyncio.Future) -> None:
        self._handler_tasks.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"File watcher handler error: {error}")

    def _fail(self, exc: BaseException) -> None:
        if isinstance(exc, WatcherFailure):
            failure = exc
        else:
            failure = WatcherFailure(
                f"File watcher encountered an error: {exc}",
                create_error_context("ChangeWatcher.consume", paths=self.paths, error=str(exc)),
            )
            failure.__cause__ = exc
        self.last_failure = failure
        logger.error(f"File watcher stopped after failure: {failure.message}")

        # Called from inside the consumer task; don't cancel ourselves
        self._task = None
        self.stop()

    def _handlers_for(self, category: Union[str, WatchEventCategory]) -> List[WatchHandler]:
        key = category.value if isinstance(category, WatchEventCategory) else category
        if key not in self._handlers:
            raise ValidationError(
                f"Unknown watch category: {category!r}",
                create_error_context("ChangeWatcher.on", category=str(category)),
            )
        return self._handlers[key]


def create_workspace_watcher(
    root: Any,
    *,
    debounce_ms: Optional[int] = None,
    recursive: Optional[bool] = None,
    resolver: Optional[PathResolver] = None,
    subscription_factory: Optional[SubscriptionFactory] = None,
) -> ChangeWatcher:
    """
    Create a watcher for a workspace's problems/ and templates/ directories.

    Unset options fall back to settings.
    """
    settings = get_settings()
    layout = (resolver or get_path_resolver()).resolve_workspace_layout(root)

    return ChangeWatcher(
        [layout.problems, layout.templates],
        debounce_ms=settings.watch_debounce_ms if debounce_ms is None else debounce_ms,
        recursive=settings.watch_recursive if recursive is None else recursive,
        subscription_factory=subscription_factory
        or watchdog_subscription_factory(settings.watch_poll_interval),
    )
