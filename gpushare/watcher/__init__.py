"""
Watcher Module - kubelet socket / OS signal watcher

Supervisor 이벤트 큐에 이벤트 전달
- device-plugins 디렉토리에서 kubelet.sock 재생성 감지 (kubelet 재시작)
- SIGHUP: 재시작, SIGQUIT: 스택 덤프, SIGINT/SIGTERM: 종료
"""

import os
import queue
import signal
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    KUBELET_SOCKET_CREATED = "kubelet_socket_created"
    WATCH_ERROR = "watch_error"
    RELOAD = "reload"
    DUMP = "dump"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class Event:
    type: EventType
    detail: Any = None


SIGNAL_EVENTS = {
    signal.SIGHUP: EventType.RELOAD,
    signal.SIGQUIT: EventType.DUMP,
    signal.SIGINT: EventType.TERMINATE,
    signal.SIGTERM: EventType.TERMINATE,
}


class KubeletSocketHandler(FileSystemEventHandler):
    """kubelet.sock 생성 이벤트만 큐로 전달"""

    def __init__(self, kubelet_socket: str, events: "queue.SimpleQueue[Event]"):
        super().__init__()
        self.kubelet_socket = os.path.abspath(kubelet_socket)
        self.events = events

    def on_created(self, event):
        src_path = os.fsdecode(event.src_path)
        if event.is_directory or os.path.abspath(src_path) != self.kubelet_socket:
            return
        logger.info(f"inotify: {self.kubelet_socket} created")
        self.events.put(Event(EventType.KUBELET_SOCKET_CREATED, src_path))


class FSWatcher:
    """
    Device plugin 디렉토리 watcher (watchdog)

    observer thread 가 죽으면 check() 에서 WATCH_ERROR 를 보내고 다시 시작
    """

    def __init__(self, path: str, kubelet_socket: str, events: "queue.SimpleQueue[Event]"):
        self.path = path
        self.events = events
        self.handler = KubeletSocketHandler(kubelet_socket, events)
        self._observer: Optional[Observer] = None

    def start(self):
        observer = Observer()
        try:
            observer.schedule(self.handler, self.path, recursive=False)
            observer.start()
        except OSError as e:
            logger.error(f"add {self.path} to watcher failed: {e}")
            raise
        self._observer = observer
        logger.info(f"FS watcher started on {self.path}")

    def check(self):
        if self._observer is None or self._observer.is_alive():
            return
        self.events.put(Event(EventType.WATCH_ERROR, f"observer for {self.path} exited"))
        self._observer = None
        try:
            self.start()
        except OSError as e:
            self.events.put(Event(EventType.WATCH_ERROR, str(e)))

    def stop(self):
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
            logger.info("FS watcher stopped")


class OSWatcher:
    """Signal handler -> 이벤트 큐 (main thread 에서 install 해야 함)"""

    def __init__(self, events: "queue.SimpleQueue[Event]", signals=tuple(SIGNAL_EVENTS)):
        self.events = events
        self.signals = signals
        self._previous = {}

    def install(self):
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle)

    def uninstall(self):
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum, frame):
        self.events.put(Event(SIGNAL_EVENTS[signum], signum))


__all__ = ["EventType", "Event", "FSWatcher", "OSWatcher", "KubeletSocketHandler", "SIGNAL_EVENTS"]
