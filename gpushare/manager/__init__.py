"""
Manager Module - shared GPU device plugin supervisor

Device plugin 인스턴스 lifecycle 관리
- 시작 시 NVML 초기화 / GPU 탐지 (없으면 무한 대기, 프로세스 유지)
- kubelet 재시작 (kubelet.sock 재생성) 또는 SIGHUP 시 plugin 재생성 + 재등록
- SIGQUIT 시 스택 덤프, SIGINT/SIGTERM 시 종료

State machine:
    IDLE -(restart ok)-> RUNNING -(socket created / SIGHUP)-> RESTARTING -> RUNNING
    any -(SIGINT / SIGTERM)-> STOPPED
"""

import os
import sys
import queue
import logging
import threading
import traceback
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..config import (
    DEVICE_PLUGIN_PATH, KUBELET_SOCKET, PLUGIN_SOCKET_PATH, RESOURCE_NAME,
    COREDUMP_DIR, COREDUMP_PREFIX, PluginConfig,
)
from ..device_plugin import SharedGPUDevicePlugin
from ..errors import BackendError, ServeError
from ..gpu import VirtualDeviceSet, slice_devices
from ..nvml import DeviceBackend, NvmlBackend
from ..watcher import Event, EventType, FSWatcher, OSWatcher

logger = logging.getLogger(__name__)

STATUS_INTERVAL = 30  # seconds
RETRY_INTERVAL = 5  # seconds

PluginFactory = Callable[[VirtualDeviceSet, PluginConfig, DeviceBackend, str], SharedGPUDevicePlugin]


class State(str, Enum):
    IDLE = "Idle"
    RESTARTING = "Restarting"
    RUNNING = "Running"
    STOPPED = "Stopped"


def stack_trace() -> str:
    """모든 thread 의 현재 스택"""
    frames = sys._current_frames()
    lines = []
    for thread in threading.enumerate():
        lines.append(f"Thread {thread.name} (ident={thread.ident}, daemon={thread.daemon}):\n")
        frame = frames.get(thread.ident)
        if frame is not None:
            lines.extend(traceback.format_stack(frame))
        lines.append("\n")
    return "".join(lines)


def core_dump(file_name: str):
    logger.info(f"Dump stacktrace to {file_name}")
    try:
        with open(file_name, "w") as f:
            f.write(stack_trace())
    except OSError as e:
        logger.error(f"Write file {file_name} error: {e}")


class SharedGPUManager:
    """
    Supervisor for the device plugin

    handle() 은 이벤트 하나에 대한 상태 전이만 담당하므로
    실제 signal / inotify 없이 테스트 가능
    """

    def __init__(self, config: PluginConfig, backend: Optional[DeviceBackend] = None,
                 device_plugin_path: str = DEVICE_PLUGIN_PATH,
                 kubelet_socket: str = KUBELET_SOCKET,
                 plugin_socket: str = PLUGIN_SOCKET_PATH,
                 coredump_dir: str = COREDUMP_DIR,
                 plugin_factory: PluginFactory = SharedGPUDevicePlugin):
        self.config = config
        self.backend = backend or NvmlBackend()
        self.device_plugin_path = device_plugin_path
        self.kubelet_socket = kubelet_socket
        self.plugin_socket = plugin_socket
        self.coredump_dir = coredump_dir
        self.plugin_factory = plugin_factory

        # SimpleQueue.put is reentrant; OSWatcher puts from signal handlers on this thread
        self.events: "queue.SimpleQueue[Event]" = queue.SimpleQueue()
        self.state = State.IDLE
        self.needs_restart = True
        self.device_plugin: Optional[SharedGPUDevicePlugin] = None
        self._forever = threading.Event()

    def run(self):
        """
        Main entry

        Raises:
            BackendError: GPU 탐지가 운영 중에 실패 (복구 불가)
            OSError: FS watcher 시작 실패
        """
        logger.info("Loading NVML")
        try:
            self.backend.init()
        except BackendError as e:
            logger.warning(f"Failed to initialize NVML: {e}.")
            logger.warning("If this is a GPU node, did you set the docker default runtime to `nvidia`?")
            self._wait_forever()
            return

        try:
            logger.info("Fetching devices.")
            if self.backend.device_count() == 0:
                logger.info("No devices found. Waiting indefinitely.")
                self._wait_forever()
                return

            logger.info("Starting FS watcher.")
            fs_watcher = FSWatcher(self.device_plugin_path, self.kubelet_socket, self.events)
            fs_watcher.start()

            logger.info("Starting OS watcher.")
            os_watcher = OSWatcher(self.events)
            os_watcher.install()

            try:
                self.loop(fs_watcher)
            finally:
                os_watcher.uninstall()
                fs_watcher.stop()
        finally:
            self.backend.shutdown()

    def _wait_forever(self):
        """GPU 가 없는 노드: 에러로 종료하지 않고 대기"""
        self._forever.wait()

    def loop(self, fs_watcher: Optional[FSWatcher] = None):
        while self.state != State.STOPPED:
            if self.needs_restart:
                self.restart()

            timeout = RETRY_INTERVAL if self.needs_restart else STATUS_INTERVAL
            try:
                event = self.events.get(timeout=timeout)
            except queue.Empty:
                if fs_watcher:
                    fs_watcher.check()
                self._periodic_status()
                continue

            self.handle(event)

    def restart(self) -> bool:
        """기존 plugin 정지 후 새 plugin 생성 + serve. 실패 시 needs_restart 유지"""
        self.state = State.RESTARTING
        self._stop_plugin()

        devices = slice_devices(self.backend.devices(), self.config.memory_unit)
        self.device_plugin = self.plugin_factory(devices, self.config, self.backend, self.plugin_socket)
        try:
            self.device_plugin.serve(self.kubelet_socket, RESOURCE_NAME)
        except ServeError as e:
            logger.warning(f"Failed to start device plugin due to {e}")
            self.state = State.IDLE
            return False

        self.needs_restart = False
        self.state = State.RUNNING
        return True

    def handle(self, event: Event) -> State:
        """이벤트 하나 처리 후 현재 상태 반환"""
        if event.type == EventType.KUBELET_SOCKET_CREATED:
            logger.info(f"inotify: {self.kubelet_socket} created, restarting.")
            self.needs_restart = True

        elif event.type == EventType.WATCH_ERROR:
            logger.warning(f"inotify: {event.detail}")

        elif event.type == EventType.RELOAD:
            logger.info("Received SIGHUP, restarting.")
            self.needs_restart = True

        elif event.type == EventType.DUMP:
            logger.info("generate core dump")
            timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
            core_dump(os.path.join(self.coredump_dir, f"{COREDUMP_PREFIX}{timestamp}.txt"))

        elif event.type == EventType.TERMINATE:
            logger.info(f"Received signal \"{event.detail}\", shutting down.")
            self._stop_plugin()
            self.state = State.STOPPED

        return self.state

    def _stop_plugin(self):
        if self.device_plugin is None:
            return
        try:
            self.device_plugin.stop()
        except OSError as e:
            logger.error(f"stop device plugin failed: {e}")

    def _periodic_status(self):
        if self.device_plugin is None:
            return
        status = self.device_plugin.get_status()
        logger.debug(f"Status: {status['state']}, {status['healthy_devices']}/{status['virtual_devices']} "
                     f"virtual devices healthy on {status['physical_devices']} GPU(s)")


__all__ = ["SharedGPUManager", "State", "core_dump", "stack_trace"]
