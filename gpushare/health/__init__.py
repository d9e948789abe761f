"""
Health Module - XID critical error watcher

- 물리 GPU 별로 XID critical error 이벤트 등록
- 애플리케이션 XID (31, 43, 45) 는 무시
- 장애 디바이스의 모든 slice 를 Unhealthy 로 보고 (복구 없음)
"""

import logging
import threading
from typing import Callable, List, Optional

from ..config import BENIGN_XIDS, HEALTH_EVENT_TIMEOUT_MS
from ..errors import BackendError, UnsupportedDeviceError
from ..gpu import VirtualDeviceSet
from ..nvml import DeviceBackend, XidEvent

logger = logging.getLogger(__name__)


class HealthMonitor:
    """
    XID Health Monitor

    - background thread 에서 이벤트 대기 (timeout 마다 cancel 확인)
    - on_unhealthy(fake_ids) 콜백으로 한 이벤트당 한번 보고
    """

    def __init__(self, backend: DeviceBackend, devices: VirtualDeviceSet,
                 on_unhealthy: Callable[[List[str]], None],
                 timeout_ms: int = HEALTH_EVENT_TIMEOUT_MS):
        self.backend = backend
        self.devices = devices
        self.on_unhealthy = on_unhealthy
        self.timeout_ms = timeout_ms
        self.thread: Optional[threading.Thread] = None
        self._cancel = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """Start watching XIDs"""
        self._cancel.clear()
        self.thread = threading.Thread(target=self._watch_loop, name="xid-watcher", daemon=True)
        self.thread.start()
        logger.info("HealthMonitor started")

    def cancel(self):
        self._cancel.set()

    def stop(self, timeout: float = None):
        """Cancel and wait for the watch loop to exit"""
        self.cancel()
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout if timeout is not None else self.timeout_ms / 1000 + 1)
        logger.info("HealthMonitor stopped")

    def _watch_loop(self):
        try:
            event_set = self.backend.new_event_set()
        except BackendError as e:
            logger.critical(f"Cannot create XID event set: {e}")
            return

        try:
            self._register(event_set)
            while not self._cancel.is_set():
                event = self.backend.wait_for_event(event_set, self.timeout_ms)
                if event is None:
                    continue
                self.handle_event(event)
        except BackendError as e:
            logger.critical(f"XID watcher failed: {e}")
        finally:
            self.backend.free_event_set(event_set)

    def _register(self, event_set):
        for physical_id in self.devices.physical_ids:
            try:
                self.backend.register_xid_events(event_set, physical_id)
            except UnsupportedDeviceError as e:
                logger.warning(f"Warning: {physical_id} is too old to support healthchecking: {e}. "
                               f"Marking it unhealthy.")
                self._report(self.devices.slices_of(physical_id))
                continue
            except BackendError as e:
                logger.critical(f"Register event for {physical_id} failed: {e}")
                continue
            logger.info(f"register event for device {physical_id} ok")

    def handle_event(self, event: XidEvent):
        """단일 XID 이벤트 처리"""
        if not event.critical:
            return

        if event.xid in BENIGN_XIDS:
            logger.debug(f"Ignoring application XID {event.xid}")
            return

        if not event.uuid:
            logger.warning(f"XID {event.xid} without device, marking all devices unhealthy")
            self._report(self.devices.ids())
            return

        logger.warning(f"XID {event.xid} on device {event.uuid}")
        self._report(self.devices.slices_of(event.uuid))

    def _report(self, fake_ids: List[str]):
        if fake_ids:
            self.on_unhealthy(fake_ids)


__all__ = ["HealthMonitor"]
