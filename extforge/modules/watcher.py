"""Source tree watcher for incremental rebuilds.

Each changed file is matched against WATCH_TABLE and only the steps listed
for the matching patterns are rerun. Rapid changes (editors saving several
times, formatters rewriting files) are coalesced with a debounce timer.
"""

import enum
import logging
import threading
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, List, Optional, Set, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..steps import BACKGROUND_SCRIPT, CONTENT_SCRIPTS, COPY_MANIFEST, CSS, HTML, ICONS, IMAGES, LOCALES, SVG
from ..utils.exceptions import WatcherError

logger = logging.getLogger(__name__)

# (pattern relative to the source root, steps to rerun).
# fnmatch's "*" also crosses "/", so "img/*.png" covers nested folders.
# Script changes always rebuild both script steps together.
WATCH_TABLE: List[Tuple[str, Tuple[str, ...]]] = [
    ('manifest.json', (COPY_MANIFEST,)),
    ('_locales/*/messages.json', (LOCALES,)),
    ('img/*.png', (IMAGES,)),
    ('img/*.jpg', (IMAGES,)),
    ('img/*.svg', (SVG,)),
    ('html/*.html', (HTML,)),
    ('scss/*.scss', (CSS,)),
    ('*.js', (CONTENT_SCRIPTS, BACKGROUND_SCRIPT)),
]


def steps_for(relative_path: str, icon_source: Optional[str] = None) -> Set[str]:
    """
    Steps to rerun for one changed file.

    Args:
        relative_path: Path of the changed file relative to the source root
        icon_source: File name under img/ that icons are generated from

    Returns:
        Union of the steps of every matching WATCH_TABLE row (may be empty)
    """
    path = PurePosixPath(relative_path.replace('\\', '/')).as_posix()
    steps = set()
    for pattern, names in WATCH_TABLE:
        if fnmatch(path, pattern):
            steps.update(names)
    if icon_source and path == f"img/{icon_source}":
        steps.add(ICONS)
    return steps


class WatcherState(enum.Enum):
    """State of the SourceWatcher."""

    STOPPED = "stopped"
    RUNNING = "running"


RebuildCallback = Callable[[Set[str]], None]
ErrorCallback = Callable[[Exception], None]


class _SourceEventHandler(FileSystemEventHandler):
    """Collects the steps affected by file events and fires them debounced."""

    def __init__(
        self,
        source_dir: Path,
        on_change: RebuildCallback,
        debounce_seconds: float,
        icon_source: Optional[str] = None
    ):
        super().__init__()
        self._source_dir = source_dir
        self._on_change = on_change
        self._debounce_seconds = debounce_seconds
        self._icon_source = icon_source
        self._pending_steps: Set[str] = set()
        self._pending_timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def _relative(self, raw_path) -> Optional[str]:
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode('utf-8')
        try:
            return Path(raw_path).resolve().relative_to(self._source_dir).as_posix()
        except ValueError:
            return None

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ('created', 'modified', 'moved', 'deleted'):
            return

        paths = [event.src_path]
        if getattr(event, 'dest_path', None):
            paths.append(event.dest_path)

        steps = set()
        for raw_path in paths:
            relative = self._relative(raw_path)
            if relative is not None:
                steps.update(steps_for(relative, self._icon_source))

        if steps:
            logger.debug(f"{event.event_type}: {event.src_path} -> {sorted(steps)}")
            self.schedule(steps)

    def schedule(self, steps: Iterable[str]) -> None:
        """Add steps to the pending set and restart the debounce timer."""
        with self._lock:
            self._pending_steps.update(steps)
            if self._pending_timer is not None:
                self._pending_timer.cancel()
            self._pending_timer = threading.Timer(self._debounce_seconds, self._fire_callback)
            self._pending_timer.daemon = True
            self._pending_timer.start()

    def _fire_callback(self) -> None:
        with self._lock:
            steps = self._pending_steps
            self._pending_steps = set()
            self._pending_timer = None
        if steps:
            self._on_change(steps)

    def cancel_pending(self) -> None:
        """Cancel any pending debounced callback."""
        with self._lock:
            if self._pending_timer is not None:
                self._pending_timer.cancel()
                self._pending_timer = None
            self._pending_steps = set()


class SourceWatcher:
    """
    Watches the source tree and reruns affected build steps.

    Rebuild errors are logged and handed to on_error; the watcher keeps
    running so the next save can fix them.

    Example:
        >>> with SourceWatcher(config.source_dir, pipeline.run_steps):
        ...     while True:
        ...         time.sleep(1)
    """

    def __init__(
        self,
        source_dir: Path,
        rebuild: RebuildCallback,
        debounce_seconds: float = 0.3,
        icon_source: Optional[str] = None,
        on_error: Optional[ErrorCallback] = None,
        observer_factory: Callable = Observer
    ):
        """
        Initialize SourceWatcher.

        Args:
            source_dir: Source tree to observe (recursively)
            rebuild: Called with the set of step names to rerun
            debounce_seconds: Quiet period before a rebuild fires
            icon_source: File name under img/ that icons are generated from
            on_error: Optional callback for rebuild errors
            observer_factory: Creates the watchdog observer (e.g. PollingObserver on network drives)

        Raises:
            WatcherError: If source_dir does not exist
        """
        self._source_dir = Path(source_dir).resolve()
        if not self._source_dir.is_dir():
            raise WatcherError(f"Source directory does not exist: {self._source_dir}")

        self._rebuild = rebuild
        self._debounce_seconds = debounce_seconds
        self._icon_source = icon_source
        self._on_error = on_error
        self._observer_factory = observer_factory

        self._state = WatcherState.STOPPED
        self._observer = None
        self._handler: Optional[_SourceEventHandler] = None
        self._lock = threading.Lock()
        # Held for the duration of a rebuild; rebuilds never overlap
        self._rebuild_lock = threading.Lock()

    @property
    def state(self) -> WatcherState:
        with self._lock:
            return self._state

    def start(self) -> None:
        """Start observing the source tree."""
        with self._lock:
            if self._state == WatcherState.RUNNING:
                raise WatcherError("Watcher is already running")

            self._handler = _SourceEventHandler(
                source_dir=self._source_dir,
                on_change=self._on_change,
                debounce_seconds=self._debounce_seconds,
                icon_source=self._icon_source,
            )
            self._observer = self._observer_factory()
            self._observer.schedule(self._handler, str(self._source_dir), recursive=True)
            try:
                self._observer.start()
            except OSError as e:
                self._observer = None
                self._handler = None
                raise WatcherError(f"Failed to watch {self._source_dir}: {e}")

            self._state = WatcherState.RUNNING
            logger.info("Watching files...")

    def stop(self) -> None:
        """
        Stop observing. Safe to call when not running.

        Returns once a rebuild that is already running has finished.
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return

            if self._handler is not None:
                self._handler.cancel_pending()
                self._handler = None

            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=5.0)
                self._observer = None

            self._state = WatcherState.STOPPED
            logger.info("Stopped watching files")

        with self._rebuild_lock:
            pass

    def __enter__(self) -> "SourceWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def _on_change(self, steps: Set[str]) -> None:
        # Debounce timers fire on their own threads; a change saved during a
        # slow rebuild waits here instead of writing the same outputs concurrently
        with self._rebuild_lock:
            if self._state != WatcherState.RUNNING:
                logger.debug(f"Watcher stopped, dropping rebuild of {sorted(steps)}")
                return
            logger.info(f"Change detected, rerunning: {', '.join(sorted(steps))}")
            try:
                self._rebuild(steps)
            except Exception as e:
                logger.error(f"Rebuild failed: {e}")
                if self._on_error is not None:
                    self._on_error(e)
