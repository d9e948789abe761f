"""Unit tests for the supervisor state machine."""

import os
import queue
import signal
import threading
from unittest.mock import MagicMock

import pytest

from gpushare.errors import BackendError, RegisterError
from gpushare.manager import SharedGPUManager, State, core_dump, stack_trace
from gpushare.watcher import Event, EventType, OSWatcher


class PluginLog:
    """Factory producing mock plugins that log serve/stop calls in order."""

    def __init__(self, fail_serves=0):
        self.calls = []
        self.plugins = []
        self.fail_serves = fail_serves

    def __call__(self, devices, config, backend, socket):
        n = len(self.plugins) + 1
        plugin = MagicMock(name=f"plugin{n}")
        plugin.devices = devices

        def serve(kubelet_socket, resource_name):
            self.calls.append(f"serve{n}")
            if self.fail_serves:
                self.fail_serves -= 1
                raise RegisterError("kubelet not ready")

        plugin.serve.side_effect = serve
        plugin.stop.side_effect = lambda: self.calls.append(f"stop{n}")
        self.plugins.append(plugin)
        return plugin


@pytest.fixture
def plugin_log():
    return PluginLog()


@pytest.fixture
def manager(config, fake_backend, plugin_log, socket_dir):
    return SharedGPUManager(
        config,
        backend=fake_backend,
        device_plugin_path=socket_dir,
        kubelet_socket=f"{socket_dir}/kubelet.sock",
        plugin_socket=f"{socket_dir}/gpushare.sock",
        coredump_dir=socket_dir,
        plugin_factory=plugin_log,
    )


@pytest.mark.unit
class TestTransitions:
    """Test handle() for every event type."""

    def test_initial_state(self, manager):
        assert manager.state is State.IDLE
        assert manager.needs_restart is True
        assert manager.device_plugin is None

    def test_kubelet_socket_created_requests_restart(self, manager):
        manager.needs_restart = False
        assert manager.handle(Event(EventType.KUBELET_SOCKET_CREATED)) is State.IDLE
        assert manager.needs_restart is True

    def test_reload_requests_restart(self, manager):
        manager.needs_restart = False
        manager.handle(Event(EventType.RELOAD, 1))
        assert manager.needs_restart is True

    def test_watch_error_is_not_fatal(self, manager, caplog):
        manager.needs_restart = False
        assert manager.handle(Event(EventType.WATCH_ERROR, "boom")) is State.IDLE
        assert manager.needs_restart is False
        assert "boom" in caplog.text

    def test_dump_writes_stack_file(self, manager, socket_dir):
        manager.needs_restart = False
        manager.handle(Event(EventType.DUMP, 3))
        dumps = [f for f in os.listdir(socket_dir) if f.startswith("gpushare_")]
        assert len(dumps) == 1
        assert manager.needs_restart is False

    def test_terminate_stops_plugin(self, manager, plugin_log):
        manager.restart()
        assert manager.handle(Event(EventType.TERMINATE, 15)) is State.STOPPED
        assert plugin_log.calls == ["serve1", "stop1"]


@pytest.mark.unit
class TestRestart:
    """Test plugin (re)creation."""

    def test_restart_serves_new_plugin(self, manager, plugin_log):
        assert manager.restart() is True
        assert manager.state is State.RUNNING
        assert manager.needs_restart is False
        assert len(plugin_log.plugins[0].devices) == 6

    def test_restart_stops_previous_plugin_first(self, manager, plugin_log):
        manager.restart()
        manager.restart()
        assert plugin_log.calls == ["serve1", "stop1", "serve2"]

    def test_failed_serve_keeps_restart_pending(self, manager, plugin_log):
        plugin_log.fail_serves = 1
        assert manager.restart() is False
        assert manager.needs_restart is True
        assert manager.state is State.IDLE

    def test_enumeration_failure_propagates(self, manager, fake_backend):
        fake_backend.devices = MagicMock(side_effect=BackendError("GPU is lost"))
        with pytest.raises(BackendError):
            manager.restart()


@pytest.mark.unit
class TestLoop:
    """Test the event loop with queued events."""

    def test_restart_happens_before_next_event(self, manager, plugin_log):
        manager.events.put(Event(EventType.KUBELET_SOCKET_CREATED))
        manager.events.put(Event(EventType.TERMINATE, 15))
        manager.loop()

        assert plugin_log.calls == ["serve1", "stop1", "serve2", "stop2"]
        assert manager.state is State.STOPPED

    def test_failed_start_retried_on_next_iteration(self, manager, plugin_log):
        plugin_log.fail_serves = 1
        manager.events.put(Event(EventType.WATCH_ERROR, "transient"))
        manager.events.put(Event(EventType.TERMINATE, 2))
        manager.loop()

        assert plugin_log.calls == ["serve1", "stop1", "serve2", "stop2"]

    def test_events_queue_accepts_puts_from_signal_handlers(self, manager):
        assert isinstance(manager.events, queue.SimpleQueue)

    def test_signal_while_waiting_for_events(self, manager, plugin_log):
        os_watcher = OSWatcher(manager.events, signals=(signal.SIGTERM,))
        os_watcher.install()
        sender = threading.Timer(0.2, os.kill, args=(os.getpid(), signal.SIGTERM))
        try:
            sender.start()
            manager.loop()
        finally:
            sender.cancel()
            os_watcher.uninstall()

        assert manager.state is State.STOPPED
        assert plugin_log.calls == ["serve1", "stop1"]


@pytest.mark.unit
class TestRun:
    """Test the degenerate startup paths."""

    def test_nvml_failure_waits_forever(self, manager, fake_backend):
        fake_backend.init_error = BackendError("libnvidia-ml.so not found")
        manager._wait_forever = MagicMock()
        manager.run()
        manager._wait_forever.assert_called_once()
        assert manager.device_plugin is None

    def test_no_devices_waits_forever(self, config, make_backend, plugin_log, socket_dir):
        backend = make_backend([])
        manager = SharedGPUManager(config, backend=backend, device_plugin_path=socket_dir,
                                   plugin_factory=plugin_log)
        manager._wait_forever = MagicMock()
        manager.run()

        manager._wait_forever.assert_called_once()
        assert plugin_log.calls == []
        assert backend.shut_down is True


@pytest.mark.unit
class TestCoreDump:
    """Test the diagnostic stack dump."""

    def test_stack_trace_lists_current_thread(self):
        assert "MainThread" in stack_trace()

    def test_core_dump_write_failure_logged(self, tmp_path, caplog):
        core_dump(str(tmp_path / "missing" / "dump.txt"))
        assert "error" in caplog.text
