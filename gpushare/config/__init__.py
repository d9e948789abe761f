"""
Configuration Module for the shared GPU device plugin

환경변수 및 설정 관리
- kubelet device plugin 경로/소켓
- 리소스 이름, 환경변수 이름
- 메모리 단위 (MiB / GiB)
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

# =============================================================================
# Device Plugin 설정
# =============================================================================
DEVICE_PLUGIN_PATH = os.environ.get('GPUSHARE_DEVICE_PLUGIN_PATH', '/var/lib/kubelet/device-plugins')
KUBELET_SOCKET = os.path.join(DEVICE_PLUGIN_PATH, "kubelet.sock")
PLUGIN_SOCKET_NAME = "gpushare.sock"
PLUGIN_SOCKET_PATH = os.path.join(DEVICE_PLUGIN_PATH, PLUGIN_SOCKET_NAME)
PLUGIN_API_VERSION = "v1beta1"

# Self-dial / kubelet dial bound (seconds)
DIAL_TIMEOUT = 5

# =============================================================================
# Resource 설정
# =============================================================================
RESOURCE_NAME = os.environ.get('GPUSHARE_RESOURCE_NAME', 'shared-gpu/gpu-mem')
# Declared only; the plugin never registers or serves it
RESOURCE_COUNT = os.environ.get('GPUSHARE_RESOURCE_COUNT', 'shared-gpu/gpu-count')

# =============================================================================
# Allocate 환경변수
# =============================================================================
ENV_NVIDIA_VISIBLE_DEVICES = "NVIDIA_VISIBLE_DEVICES"

# Reserved for scheduler-extender integration, never populated by Allocate
ENV_RESOURCE_INDEX = "SHARED_GPU_MEM_IDX"
ENV_RESOURCE_BY_POD = "SHARED_GPU_MEM_POD"
ENV_RESOURCE_BY_CONTAINER = "SHARED_GPU_MEM_CONTAINER"
ENV_RESOURCE_BY_DEV = "SHARED_GPU_MEM_DEV"
ENV_ASSIGNED_FLAG = "SHARED_GPU_MEM_ASSIGNED"
ENV_RESOURCE_ASSUME_TIME = "SHARED_GPU_MEM_ASSUME_TIME"
ENV_RESOURCE_ASSIGN_TIME = "SHARED_GPU_MEM_ASSIGN_TIME"

RESERVED_ENVS = (
    ENV_RESOURCE_INDEX,
    ENV_RESOURCE_BY_POD,
    ENV_RESOURCE_BY_CONTAINER,
    ENV_RESOURCE_BY_DEV,
    ENV_ASSIGNED_FLAG,
    ENV_RESOURCE_ASSUME_TIME,
    ENV_RESOURCE_ASSIGN_TIME,
)

# =============================================================================
# Health check 설정
# =============================================================================
HEALTH_EVENT_TIMEOUT_MS = int(os.environ.get('GPUSHARE_HEALTH_EVENT_TIMEOUT_MS', '5000'))

# Application-level XIDs, the GPU itself is still healthy
# https://docs.nvidia.com/deploy/xid-errors/index.html#topic_4
BENIGN_XIDS = frozenset({31, 43, 45})

# =============================================================================
# 진단 덤프 설정
# =============================================================================
COREDUMP_DIR = os.environ.get('GPUSHARE_COREDUMP_DIR', '/etc/kubernetes')
COREDUMP_PREFIX = "gpushare_"

# =============================================================================
# 로깅 설정
# =============================================================================
LOG_LEVEL = os.environ.get('GPUSHARE_LOG_LEVEL', 'INFO')
LOG_FILE = os.environ.get('GPUSHARE_LOG_FILE', '/var/log/gpushare.log')

# Device health status
HEALTHY = "Healthy"
UNHEALTHY = "Unhealthy"


class MemoryUnit(str, Enum):
    """GPU 메모리 단위 (MiB, GiB 만 지원)"""
    MIB = "MiB"
    GIB = "GiB"


DEFAULT_MEMORY_UNIT = MemoryUnit.GIB


def translate_memory_unit(value: str) -> MemoryUnit:
    """Parse a memory unit flag, falling back to GiB on anything unsupported."""
    try:
        return MemoryUnit(value)
    except ValueError:
        logger.warning(f"Unsupported memory unit: {value}, use memoryUnit {DEFAULT_MEMORY_UNIT.value} as default")
        return DEFAULT_MEMORY_UNIT


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() == 'true'


@dataclass(frozen=True)
class PluginConfig:
    """
    Device plugin 실행 설정 (immutable)

    Supervisor 에서 한번 만들어서 virtualizer / device plugin 에 전달
    """
    mps: bool = False
    health_check: bool = False
    memory_unit: MemoryUnit = MemoryUnit.MIB

    @classmethod
    def from_env(cls) -> "PluginConfig":
        return cls(
            mps=_env_flag('GPUSHARE_MPS'),
            health_check=_env_flag('GPUSHARE_HEALTH_CHECK'),
            memory_unit=translate_memory_unit(os.environ.get('GPUSHARE_MEMORY_UNIT', 'MiB')),
        )


def get_config_summary(config: PluginConfig) -> dict:
    """현재 설정 요약"""
    return {
        "resource_name": RESOURCE_NAME,
        "device_plugin_path": DEVICE_PLUGIN_PATH,
        "plugin_socket": PLUGIN_SOCKET_PATH,
        "mps": config.mps,
        "health_check": config.health_check,
        "memory_unit": config.memory_unit.value,
    }
