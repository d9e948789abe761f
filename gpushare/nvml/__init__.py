"""
NVML Device Backend Module

NVIDIA GPU 탐지 및 XID 이벤트 구독
- 물리 GPU 목록 (UUID, minor 번호, 메모리)
- 디바이스 상태 출력 (전력, 온도, 사용률, 프로세스)
- XID critical error 이벤트 대기
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from ..errors import BackendError, UnsupportedDeviceError

logger = logging.getLogger(__name__)

try:
    import pynvml
    NVML_AVAILABLE = True
except ImportError:
    pynvml = None
    NVML_AVAILABLE = False
    logger.warning("pynvml not installed. Install with: pip install nvidia-ml-py")


@dataclass(frozen=True)
class PhysicalDevice:
    """물리 GPU 정보 (한번 탐지된 후 변경 없음)"""
    uuid: str
    memory_mib: int
    minor: int
    model: str = "Unknown"

    @property
    def path(self) -> str:
        return f"/dev/nvidia{self.minor}"


@dataclass(frozen=True)
class XidEvent:
    """
    XID 이벤트

    uuid 가 None 이면 어느 디바이스인지 모르는 이벤트 (전체 디바이스 장애로 취급)
    """
    xid: int
    uuid: Optional[str] = None
    critical: bool = True


class DeviceBackend:
    """
    Hardware access boundary used by the virtualizer and the health monitor.
    """

    def init(self) -> None:
        raise NotImplementedError

    def shutdown(self) -> None:
        raise NotImplementedError

    def device_count(self) -> int:
        raise NotImplementedError

    def devices(self) -> List[PhysicalDevice]:
        raise NotImplementedError

    def new_event_set(self) -> Any:
        raise NotImplementedError

    def register_xid_events(self, event_set: Any, uuid: str) -> None:
        """Raises UnsupportedDeviceError when the device cannot be monitored."""
        raise NotImplementedError

    def wait_for_event(self, event_set: Any, timeout_ms: int) -> Optional[XidEvent]:
        """Returns None on timeout or on a transient wait error."""
        raise NotImplementedError

    def free_event_set(self, event_set: Any) -> None:
        raise NotImplementedError


class NvmlBackend(DeviceBackend):
    """NVIDIA GPU backend using pynvml"""

    def __init__(self):
        self.initialized = False

    def init(self) -> None:
        if not NVML_AVAILABLE:
            raise BackendError("pynvml is not installed")
        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as e:
            raise BackendError(f"Failed to initialize NVML: {e}") from e
        self.initialized = True
        logger.info("NVML initialized successfully")

    def shutdown(self) -> None:
        if not self.initialized:
            return
        try:
            pynvml.nvmlShutdown()
            logger.info("Shutdown of NVML returned: success")
        except pynvml.NVMLError as e:
            logger.warning(f"Shutdown of NVML returned: {e}")
        self.initialized = False

    def device_count(self) -> int:
        try:
            return pynvml.nvmlDeviceGetCount()
        except pynvml.NVMLError as e:
            raise BackendError(f"Failed to get device count: {e}") from e

    def devices(self) -> List[PhysicalDevice]:
        """
        물리 GPU 탐지

        Raises:
            BackendError: NVML 조회 실패 (운영 중 실패는 복구 불가)
        """
        devices = []
        try:
            for i in range(pynvml.nvmlDeviceGetCount()):
                handle = pynvml.nvmlDeviceGetHandleByIndex(i)
                device = PhysicalDevice(
                    uuid=pynvml.nvmlDeviceGetUUID(handle),
                    memory_mib=pynvml.nvmlDeviceGetMemoryInfo(handle).total // (1024 * 1024),
                    minor=pynvml.nvmlDeviceGetMinorNumber(handle),
                    model=pynvml.nvmlDeviceGetName(handle),
                )
                self._display_device(device)
                self._display_device_status(device, handle)
                self._display_process_info(device, handle)
                devices.append(device)
        except pynvml.NVMLError as e:
            raise BackendError(f"Failed to enumerate devices: {e}") from e
        return devices

    def _display_device(self, device: PhysicalDevice):
        logger.info("======= device : =============")
        logger.info(f"Path: {device.path}")
        logger.info(f"UUID: {device.uuid}")
        logger.info(f"Memory: {device.memory_mib} MiB")
        logger.info(f"Model: {device.model}")

    def _display_device_status(self, device: PhysicalDevice, handle):
        try:
            power = pynvml.nvmlDeviceGetPowerUsage(handle) // 1000  # mW -> W
            temp = pynvml.nvmlDeviceGetTemperature(handle, pynvml.NVML_TEMPERATURE_GPU)
            util = pynvml.nvmlDeviceGetUtilizationRates(handle)
        except pynvml.NVMLError as e:
            logger.warning(f"Error getting device {device.path} status: {e}")
            return
        logger.info("-------------------------------------")
        logger.info("path          Power Temp  GPU%  Mem%")
        logger.info(f"{device.path:<13} {power:>5} {temp:>5} {util.gpu:>5} {util.memory:>5}")
        logger.info("-------------------------------------")

    def _display_process_info(self, device: PhysicalDevice, handle):
        try:
            processes = pynvml.nvmlDeviceGetComputeRunningProcesses(handle)
        except pynvml.NVMLError as e:
            logger.warning(f"Error getting device {device.path} processes: {e}")
            return
        logger.info("----------------------------")
        logger.info("Path  PID   Mem")
        if not processes:
            logger.info(f"{device.path} - -")
        for p in processes:
            logger.info(f"{device.path} {p.pid} {p.usedGpuMemory}")
        logger.info("----------------------------")

    # =========================================================================
    # XID 이벤트
    # =========================================================================

    def new_event_set(self) -> Any:
        try:
            return pynvml.nvmlEventSetCreate()
        except pynvml.NVMLError as e:
            raise BackendError(f"Failed to create event set: {e}") from e

    def register_xid_events(self, event_set: Any, uuid: str) -> None:
        try:
            handle = pynvml.nvmlDeviceGetHandleByUUID(uuid)
            pynvml.nvmlDeviceRegisterEvents(handle, pynvml.nvmlEventTypeXidCriticalError, event_set)
        except pynvml.NVMLError as e:
            if e.value == pynvml.NVML_ERROR_NOT_SUPPORTED:
                raise UnsupportedDeviceError(str(e)) from e
            raise BackendError(f"Failed to register events for {uuid}: {e}") from e

    def wait_for_event(self, event_set: Any, timeout_ms: int) -> Optional[XidEvent]:
        try:
            data = pynvml.nvmlEventSetWait(event_set, timeout_ms)
        except pynvml.NVMLError as e:
            if e.value != pynvml.NVML_ERROR_TIMEOUT:
                logger.debug(f"Event wait failed: {e}")
            return None

        uuid = None
        if data.device:
            try:
                uuid = pynvml.nvmlDeviceGetUUID(data.device)
            except pynvml.NVMLError as e:
                logger.warning(f"Cannot resolve device of XID {data.eventData}: {e}")
        return XidEvent(
            xid=data.eventData,
            uuid=uuid,
            critical=data.eventType == pynvml.nvmlEventTypeXidCriticalError,
        )

    def free_event_set(self, event_set: Any) -> None:
        try:
            pynvml.nvmlEventSetFree(event_set)
        except pynvml.NVMLError as e:
            logger.warning(f"Failed to free event set: {e}")


__all__ = ["DeviceBackend", "NvmlBackend", "PhysicalDevice", "XidEvent"]
