"""
GPU Module - physical GPU -> virtual (fake) device slicing

- 첫번째 GPU 메모리를 memory unit 으로 환산해서 slice 개수 결정
- 모든 GPU 에 같은 slice 개수 적용 (동일 GPU 가정)
- fake device ID = "<uuid>-_-<slice index>"
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import HEALTHY, UNHEALTHY, MemoryUnit
from ..nvml import PhysicalDevice

logger = logging.getLogger(__name__)

FAKE_ID_SEPARATOR = "-_-"


def generate_fake_device_id(real_id: str, fake_counter: int) -> str:
    return f"{real_id}{FAKE_ID_SEPARATOR}{fake_counter}"


def extract_real_device_id(fake_device_id: str) -> str:
    return fake_device_id.split(FAKE_ID_SEPARATOR)[0]


def convert_memory(raw_mib: int, unit: MemoryUnit) -> int:
    """MiB 용량을 memory unit 으로 환산 (GiB 는 내림)"""
    if unit == MemoryUnit.GIB:
        return raw_mib // 1024
    return raw_mib


@dataclass
class VirtualDevice:
    id: str
    physical_id: str
    health: str = HEALTHY


class VirtualDeviceSet:
    """
    Ordered virtual devices of one device plugin instance.

    Health is written only by the health monitor thread through
    mark_unhealthy(); readers go through snapshot() or contains(), both taken
    under the same lock, so a reader never sees a half-applied batch.
    The uuid <-> minor index maps are built here, once.
    """

    def __init__(self, devices: Iterable[VirtualDevice], physical_devices: Sequence[PhysicalDevice] = (),
                 gpu_memory: int = 0):
        self._lock = threading.Lock()
        self._devices: List[VirtualDevice] = list(devices)
        self._by_id: Dict[str, VirtualDevice] = {d.id: d for d in self._devices}
        self.gpu_memory = gpu_memory
        self.physical_ids: List[str] = [p.uuid for p in physical_devices]
        self.dev_name_map: Dict[str, int] = {p.uuid: p.minor for p in physical_devices}
        self.dev_index_map: Dict[int, str] = {v: k for k, v in self.dev_name_map.items()}

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        return device_id in self._by_id

    def ids(self) -> List[str]:
        return [d.id for d in self._devices]

    def get(self, device_id: str) -> Optional[VirtualDevice]:
        return self._by_id.get(device_id)

    def device_name_by_index(self, index: int) -> Optional[str]:
        return self.dev_index_map.get(index)

    def snapshot(self) -> List[Tuple[str, str]]:
        """(id, health) 목록 복사본"""
        with self._lock:
            return [(d.id, d.health) for d in self._devices]

    def slices_of(self, physical_id: str) -> List[str]:
        return [d.id for d in self._devices if d.physical_id == physical_id]

    def mark_unhealthy(self, device_ids: Iterable[str]) -> List[str]:
        """
        Mark devices unhealthy. There is no way back to healthy.

        Returns:
            ids whose health actually changed
        """
        changed = []
        with self._lock:
            for device_id in device_ids:
                device = self._by_id.get(device_id)
                if device is not None and device.health != UNHEALTHY:
                    device.health = UNHEALTHY
                    changed.append(device_id)
        return changed

    def healthy_count(self) -> int:
        with self._lock:
            return sum(1 for d in self._devices if d.health == HEALTHY)


def slice_devices(physical_devices: Sequence[PhysicalDevice], unit: MemoryUnit) -> VirtualDeviceSet:
    """
    물리 GPU 목록을 virtual device 집합으로 변환

    The slice count comes from the first device only and is applied to every
    device. A device smaller than one unit gets zero slices.
    """
    if not physical_devices:
        return VirtualDeviceSet([], physical_devices, 0)

    first = physical_devices[0]
    gpu_memory = convert_memory(first.memory_mib, unit)
    logger.info(f"set gpu memory: {gpu_memory} {unit.value}")

    devices = []
    for physical in physical_devices:
        logger.info(f"# device {physical.uuid}'s Memory: {physical.memory_mib} MiB")
        for i in range(gpu_memory):
            fake_id = generate_fake_device_id(physical.uuid, i)
            if i == 0:
                logger.info(f"# Add first device ID: {fake_id}")
            if i == gpu_memory - 1:
                logger.info(f"# Add last device ID: {fake_id}")
            devices.append(VirtualDevice(id=fake_id, physical_id=physical.uuid))

    device_set = VirtualDeviceSet(devices, physical_devices, gpu_memory)
    logger.info(f"Device Map: {device_set.dev_name_map}")
    return device_set


__all__ = [
    "VirtualDevice", "VirtualDeviceSet", "slice_devices", "convert_memory",
    "generate_fake_device_id", "extract_real_device_id", "FAKE_ID_SEPARATOR",
]
