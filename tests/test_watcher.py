"""Tests for the incremental source watcher."""

import threading
import time
from types import SimpleNamespace

import pytest
from watchdog.observers.polling import PollingObserver

from extforge.modules.watcher import SourceWatcher, WatcherState, _SourceEventHandler, steps_for
from extforge.steps import (
    BACKGROUND_SCRIPT, CONTENT_SCRIPTS, COPY_MANIFEST, CSS, HTML, ICONS, IMAGES, LOCALES, SVG,
)
from extforge.utils.exceptions import WatcherError


def _polling():
    return PollingObserver(timeout=0.1)


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


class TestStepsFor:
    @pytest.mark.parametrize('path, expected', [
        ('manifest.json', {COPY_MANIFEST}),
        ('_locales/en/messages.json', {LOCALES}),
        ('img/logo.png', {IMAGES}),
        ('img/photo.jpg', {IMAGES}),
        ('img/arrow.svg', {SVG}),
        ('html/popup.html', {HTML}),
        ('scss/popup.scss', {CSS}),
        ('scss/pages/_mixins.scss', {CSS}),
        ('js/content.js', {CONTENT_SCRIPTS, BACKGROUND_SCRIPT}),
        ('background.js', {CONTENT_SCRIPTS, BACKGROUND_SCRIPT}),
    ])
    def test_table(self, path, expected):
        assert steps_for(path) == expected

    @pytest.mark.parametrize('path', ['README.md', 'notes.txt', 'img/photo.gif', '_locales/en/other.json'])
    def test_unwatched(self, path):
        assert steps_for(path) == set()

    def test_icon_source_also_regenerates_icons(self):
        assert steps_for('img/cursor.svg', icon_source='cursor.svg') == {SVG, ICONS}
        assert steps_for('img/arrow.svg', icon_source='cursor.svg') == {SVG}

    def test_windows_separators(self):
        assert steps_for('scss\\popup.scss') == {CSS}


class TestDebounce:
    def _handler(self, tmp_path, fired, debounce=0.1):
        return _SourceEventHandler(tmp_path.resolve(), fired.append, debounce, icon_source='cursor.svg')

    def _event(self, path, event_type='modified', dest_path=''):
        return SimpleNamespace(
            is_directory=False, event_type=event_type, src_path=str(path), dest_path=dest_path
        )

    def test_burst_is_coalesced(self, tmp_path):
        fired = []
        handler = self._handler(tmp_path, fired)

        handler.on_any_event(self._event(tmp_path / 'scss' / 'a.scss'))
        handler.on_any_event(self._event(tmp_path / 'scss' / 'a.scss'))
        handler.on_any_event(self._event(tmp_path / 'html' / 'popup.html'))

        assert _wait_for(lambda: fired)
        time.sleep(0.2)
        assert fired == [{CSS, HTML}]

    def test_unrelated_files_are_ignored(self, tmp_path):
        fired = []
        handler = self._handler(tmp_path, fired, debounce=0.01)

        handler.on_any_event(self._event(tmp_path / 'README.md'))
        handler.on_any_event(self._event(tmp_path.parent / 'elsewhere.js'))
        time.sleep(0.1)

        assert fired == []

    def test_moved_file_uses_destination(self, tmp_path):
        fired = []
        handler = self._handler(tmp_path, fired, debounce=0.01)

        handler.on_any_event(self._event(tmp_path / 'tmp.swp', 'moved', str(tmp_path / 'js' / 'a.js')))

        assert _wait_for(lambda: fired)
        assert fired == [{CONTENT_SCRIPTS, BACKGROUND_SCRIPT}]

    def test_deleted_file_triggers_rebuild(self, tmp_path):
        fired = []
        handler = self._handler(tmp_path, fired, debounce=0.01)

        handler.on_any_event(self._event(tmp_path / 'img' / 'old.png', 'deleted'))

        assert _wait_for(lambda: fired)
        assert fired == [{IMAGES}]

    def test_cancel_pending(self, tmp_path):
        fired = []
        handler = self._handler(tmp_path, fired, debounce=0.1)

        handler.on_any_event(self._event(tmp_path / 'manifest.json'))
        handler.cancel_pending()
        time.sleep(0.2)

        assert fired == []


class TestSourceWatcher:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(WatcherError):
            SourceWatcher(tmp_path / 'missing', lambda steps: None)

    def test_rebuild_error_is_reported_and_watching_continues(self, tmp_path):
        errors = []
        calls = []

        def rebuild(steps):
            calls.append(steps)
            raise RuntimeError("sass exploded")

        with SourceWatcher(tmp_path, rebuild, on_error=errors.append, observer_factory=_polling) as watcher:
            watcher._on_change({CSS})
            watcher._on_change({HTML})

        assert calls == [{CSS}, {HTML}]
        assert len(errors) == 2
        assert "sass exploded" in str(errors[0])

    def test_rebuilds_never_overlap(self, tmp_path):
        lock = threading.Lock()
        running = [0]
        peak = [0]
        fired = []

        def slow_rebuild(steps):
            with lock:
                running[0] += 1
                peak[0] = max(peak[0], running[0])
            time.sleep(0.4)
            fired.append(steps)
            with lock:
                running[0] -= 1

        with SourceWatcher(tmp_path, slow_rebuild, debounce_seconds=0.02, observer_factory=_polling) as watcher:
            watcher._handler.schedule({CSS})
            # Second save lands while the first rebuild is still running
            time.sleep(0.15)
            watcher._handler.schedule({CSS, HTML})
            assert _wait_for(lambda: len(fired) == 2)

        assert peak[0] == 1
        assert fired == [{CSS}, {CSS, HTML}]

    def test_stop_waits_for_running_rebuild(self, tmp_path):
        started = threading.Event()
        finished = threading.Event()

        def slow_rebuild(steps):
            started.set()
            time.sleep(0.3)
            finished.set()

        watcher = SourceWatcher(tmp_path, slow_rebuild, debounce_seconds=0.01, observer_factory=_polling)
        watcher.start()
        watcher._handler.schedule({CSS})
        assert started.wait(2.0)

        watcher.stop()

        assert finished.is_set()

    def test_no_rebuild_when_not_running(self, tmp_path):
        calls = []
        watcher = SourceWatcher(tmp_path, calls.append)
        watcher._on_change({CSS})
        assert calls == []

    def test_start_stop(self, tmp_path):
        watcher = SourceWatcher(tmp_path, lambda steps: None, observer_factory=_polling)
        assert watcher.state == WatcherState.STOPPED

        with watcher:
            assert watcher.state == WatcherState.RUNNING
            with pytest.raises(WatcherError):
                watcher.start()

        assert watcher.state == WatcherState.STOPPED
        watcher.stop()

    def test_edit_reruns_affected_steps(self, source_tree):
        fired = []
        done = threading.Event()

        def rebuild(steps):
            fired.append(steps)
            done.set()

        watcher = SourceWatcher(
            source_tree,
            rebuild,
            debounce_seconds=0.05,
            icon_source='cursor.svg',
            observer_factory=_polling,
        )
        with watcher:
            # Let the polling observer take its initial snapshot
            time.sleep(0.3)
            (source_tree / 'scss' / 'popup.scss').write_text("body { color: blue; }")
            assert done.wait(5.0)

        assert CSS in set().union(*fired)
        assert IMAGES not in set().union(*fired)
