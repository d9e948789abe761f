"""Unit tests for the kubelet socket and signal watchers."""

import os
import queue
import signal

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent

from gpushare.watcher import Event, EventType, FSWatcher, KubeletSocketHandler, OSWatcher


@pytest.fixture
def events():
    return queue.SimpleQueue()


@pytest.mark.unit
class TestKubeletSocketHandler:
    """Test filtering of file system events."""

    def test_socket_created(self, events, tmp_path):
        socket = str(tmp_path / "kubelet.sock")
        KubeletSocketHandler(socket, events).on_created(FileCreatedEvent(socket))
        assert events.get_nowait() == Event(EventType.KUBELET_SOCKET_CREATED, socket)

    def test_other_file_ignored(self, events, tmp_path):
        handler = KubeletSocketHandler(str(tmp_path / "kubelet.sock"), events)
        handler.on_created(FileCreatedEvent(str(tmp_path / "gpushare.sock")))
        assert events.empty()

    def test_directory_ignored(self, events, tmp_path):
        socket = str(tmp_path / "kubelet.sock")
        KubeletSocketHandler(socket, events).on_created(DirCreatedEvent(socket))
        assert events.empty()

    def test_modification_ignored(self, events, tmp_path):
        socket = str(tmp_path / "kubelet.sock")
        KubeletSocketHandler(socket, events).dispatch(FileModifiedEvent(socket))
        assert events.empty()


@pytest.mark.unit
class TestFSWatcher:
    """Test the watchdog observer against a real directory."""

    def test_detects_socket_creation(self, events, tmp_path):
        socket = tmp_path / "kubelet.sock"
        watcher = FSWatcher(str(tmp_path), str(socket), events)
        watcher.start()
        try:
            socket.touch()
            event = events.get(timeout=5)
        finally:
            watcher.stop()

        assert event.type is EventType.KUBELET_SOCKET_CREATED

    def test_missing_directory_raises(self, events, tmp_path):
        watcher = FSWatcher(str(tmp_path / "missing"), str(tmp_path / "missing" / "kubelet.sock"), events)
        with pytest.raises(OSError):
            watcher.start()

    def test_check_is_quiet_while_alive(self, events, tmp_path):
        watcher = FSWatcher(str(tmp_path), str(tmp_path / "kubelet.sock"), events)
        watcher.start()
        try:
            watcher.check()
        finally:
            watcher.stop()
        assert events.empty()

    def test_dead_observer_reported_and_restarted(self, events, tmp_path):
        watcher = FSWatcher(str(tmp_path), str(tmp_path / "kubelet.sock"), events)
        watcher.start()
        dead = watcher._observer
        dead.stop()
        dead.join()

        watcher.check()
        try:
            assert events.get_nowait().type is EventType.WATCH_ERROR
            assert watcher._observer is not dead
            assert watcher._observer.is_alive()
        finally:
            watcher.stop()


@pytest.mark.unit
class TestOSWatcher:
    """Test signal to event mapping."""

    @pytest.mark.parametrize("signum, expected", [
        (signal.SIGHUP, EventType.RELOAD),
        (signal.SIGQUIT, EventType.DUMP),
        (signal.SIGINT, EventType.TERMINATE),
        (signal.SIGTERM, EventType.TERMINATE),
    ])
    def test_signal_mapping(self, events, signum, expected):
        OSWatcher(events)._handle(signum, None)
        assert events.get_nowait() == Event(expected, signum)

    def test_install_and_restore(self, events):
        previous = signal.getsignal(signal.SIGHUP)
        watcher = OSWatcher(events, signals=(signal.SIGHUP,))
        watcher.install()
        try:
            os.kill(os.getpid(), signal.SIGHUP)
            assert events.get(timeout=2).type is EventType.RELOAD
        finally:
            watcher.uninstall()
        assert signal.getsignal(signal.SIGHUP) == previous
