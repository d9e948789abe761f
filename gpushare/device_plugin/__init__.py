"""
Device Plugin Module - Kubernetes Device Plugin for shared GPU memory

kubelet 과 unix socket gRPC 로 통신
- Register: kubelet 에 shared-gpu/gpu-mem 리소스 등록
- ListAndWatch: virtual device 전체 목록 전송, health 변경 시 전체 재전송
- Allocate: 요청된 fake device ID 검증 후 NVIDIA_VISIBLE_DEVICES 주입
"""

import os
import logging
import threading
from concurrent import futures
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import grpc

from ..config import (
    RESOURCE_NAME, KUBELET_SOCKET, PLUGIN_SOCKET_PATH, PLUGIN_API_VERSION,
    DIAL_TIMEOUT, ENV_NVIDIA_VISIBLE_DEVICES, HEALTHY, PluginConfig,
)
from ..errors import InvalidAllocationError, RegisterError, StartError
from ..gpu import VirtualDeviceSet
from ..health import HealthMonitor
from ..nvml import DeviceBackend
from . import api_pb2
from . import api_pb2_grpc

logger = logging.getLogger(__name__)

GRPC_MAX_WORKERS = 10


class PluginState(str, Enum):
    CREATED = "Created"
    STARTED = "Started"
    REGISTERED = "Registered"
    STOPPED = "Stopped"


def dial(unix_socket_path: str, timeout: float = DIAL_TIMEOUT) -> grpc.Channel:
    """
    Open a channel to a unix socket and block until it is ready.

    Raises:
        grpc.FutureTimeoutError: not ready within timeout
    """
    channel = grpc.insecure_channel(f"unix://{unix_socket_path}")
    try:
        grpc.channel_ready_future(channel).result(timeout=timeout)
    except grpc.FutureTimeoutError:
        channel.close()
        raise
    return channel


class SharedGPUDevicePlugin:
    """
    Shared GPU Device Plugin

    - 한 인스턴스 = 한번의 serve 주기 (restart 시 새로 생성)
    - VirtualDeviceSet 은 이 인스턴스 전용
    - health 변경은 generation 증가 + notify 로 모든 ListAndWatch stream 에 전달
    """

    def __init__(self, devices: VirtualDeviceSet, config: PluginConfig,
                 backend: Optional[DeviceBackend] = None, socket: str = PLUGIN_SOCKET_PATH):
        self.devices = devices
        self.config = config
        self.backend = backend
        self.socket = socket
        self.server: Optional[grpc.Server] = None
        self.state = PluginState.CREATED
        self.monitor: Optional[HealthMonitor] = None

        self._stop = threading.Event()
        self._stop_lock = threading.Lock()
        self._cond = threading.Condition()
        self._generation = 0

        logger.info(f"SharedGPUDevicePlugin initialized with {len(self.devices)} virtual devices "
                    f"on {len(self.devices.physical_ids)} GPU(s)")
        logger.info(f"Device List: {self.devices.physical_ids}")
        logger.info(f"MPS: {'enabled' if config.mps else 'disabled'}, "
                    f"health check: {'enabled' if config.health_check else 'disabled'}")

    @property
    def running(self) -> bool:
        return self.server is not None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # =========================================================================
    # 서버 lifecycle
    # =========================================================================

    def start(self):
        """
        Start the gRPC server on the plugin socket

        Raises:
            StartError: stale socket 제거 실패, bind 실패, self-dial 실패
        """
        try:
            self._cleanup()
        except OSError as e:
            raise StartError(f"Failed to remove stale socket {self.socket}: {e}") from e

        server = grpc.server(futures.ThreadPoolExecutor(max_workers=GRPC_MAX_WORKERS))
        api_pb2_grpc.add_DevicePluginServicer_to_server(DevicePluginServicer(self), server)

        try:
            bound = server.add_insecure_port(f"unix://{self.socket}")
        except RuntimeError as e:
            raise StartError(f"Failed to listen on {self.socket}: {e}") from e
        if not bound:
            raise StartError(f"Failed to listen on {self.socket}")
        server.start()

        # Wait for server to start by launching a blocking connection
        try:
            dial(self.socket).close()
        except grpc.FutureTimeoutError as e:
            server.stop(None)
            self._cleanup()
            raise StartError(f"Device plugin server on {self.socket} not ready after {DIAL_TIMEOUT}s") from e

        self.server = server
        self.state = PluginState.STARTED
        logger.info(f"Device Plugin server started on {self.socket}")

        self._start_health_check()

    def _start_health_check(self):
        if not self.config.health_check:
            logger.info("Health check disabled")
            return
        if self.backend is None:
            logger.warning("Health check enabled but no device backend, skipping")
            return
        self.monitor = HealthMonitor(self.backend, self.devices, self.unhealthy)
        self.monitor.start()

    def register(self, kubelet_endpoint: str, resource_name: str):
        """
        Register with kubelet

        Raises:
            RegisterError: kubelet dial 또는 Register RPC 실패
        """
        try:
            channel = dial(kubelet_endpoint)
        except grpc.FutureTimeoutError as e:
            logger.critical(f"dial {kubelet_endpoint} failed: timeout after {DIAL_TIMEOUT}s")
            raise RegisterError(f"dial {kubelet_endpoint} failed") from e
        logger.info(f"dial {kubelet_endpoint} success")

        try:
            stub = api_pb2_grpc.RegistrationStub(channel)
            request = api_pb2.RegisterRequest(
                version=PLUGIN_API_VERSION,
                endpoint=os.path.basename(self.socket),
                resource_name=resource_name,
                options=api_pb2.DevicePluginOptions(
                    pre_start_required=False,
                    get_preferred_allocation_available=False,
                ),
            )
            stub.Register(request, timeout=DIAL_TIMEOUT)
        except grpc.RpcError as e:
            logger.critical(f"register failed: {e}")
            raise RegisterError(f"register {resource_name} failed: {e}") from e
        finally:
            channel.close()

        self.state = PluginState.REGISTERED

    def serve(self, kubelet_endpoint: str = KUBELET_SOCKET, resource_name: str = RESOURCE_NAME):
        """
        Start the gRPC server and register with kubelet

        Register 실패 시 서버를 멈추고 socket 을 지운 뒤 에러 전달
        """
        try:
            self.start()
        except StartError as e:
            logger.critical(f"Could not start device plugin: {e}")
            raise
        logger.info(f"Starting to serve on {self.socket}")

        try:
            self.register(kubelet_endpoint, resource_name)
        except RegisterError as e:
            logger.critical(f"Could not register device plugin: {e}")
            try:
                self.stop()
            except OSError as e2:
                logger.error(f"stop device plugin failed: {e2}")
            raise
        logger.info(f"Registered device plugin with Kubelet, resource name: {resource_name}")

    def stop(self):
        """Stop the gRPC server; no-op unless serving"""
        with self._stop_lock:
            if self.server is None:
                return
            server, self.server = self.server, None

            server.stop(None)
            self._stop.set()
            with self._cond:
                self._cond.notify_all()
            if self.monitor:
                self.monitor.cancel()
            self.state = PluginState.STOPPED
            logger.info("Device Plugin server stopped")

        self._cleanup()

    def _cleanup(self):
        try:
            os.remove(self.socket)
        except FileNotFoundError:
            pass

    # =========================================================================
    # Health
    # =========================================================================

    def unhealthy(self, device_ids: List[str]):
        """
        Health monitor 콜백: 장애 디바이스 표시 후 전체 목록 재전송 요청

        한번 Unhealthy 가 된 디바이스는 재시작 전까지 복구되지 않음
        """
        changed = self.devices.mark_unhealthy(device_ids)
        if not changed:
            return
        logger.warning(f"{len(changed)} virtual device(s) marked unhealthy, "
                       f"{self.devices.healthy_count()} healthy left")
        with self._cond:
            self._generation += 1
            self._cond.notify_all()

    def list_and_watch(self, is_active: Callable[[], bool] = lambda: True,
                       poll_interval: float = 1.0) -> Iterator[List[Tuple[str, str]]]:
        """
        Yield the complete device list: once immediately, then after every health change.

        Ends when the plugin stops or the caller goes away.
        """
        with self._cond:
            generation = self._generation
        yield self.devices.snapshot()

        while True:
            with self._cond:
                while generation == self._generation and not self._stop.is_set():
                    self._cond.wait(timeout=poll_interval)
                    if not is_active():
                        return
                if self._stop.is_set():
                    return
                generation = self._generation
            yield self.devices.snapshot()

    # =========================================================================
    # 할당
    # =========================================================================

    def allocate(self, device_ids: List[str]) -> Dict[str, str]:
        """
        Allocate devices for one container

        Raises:
            InvalidAllocationError: 알 수 없는 device ID 가 하나라도 있으면 전체 거부
        """
        for device_id in device_ids:
            if device_id not in self.devices:
                raise InvalidAllocationError(device_id)

        # TODO: translate fake IDs to physical GPU index once the
        # scheduler extender populates the SHARED_GPU_MEM_* variables
        return {ENV_NVIDIA_VISIBLE_DEVICES: ",".join(device_ids)}

    def device_name_by_index(self, index: int) -> Optional[str]:
        return self.devices.device_name_by_index(index)

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            "socket": self.socket,
            "physical_devices": len(self.devices.physical_ids),
            "virtual_devices": len(self.devices),
            "healthy_devices": self.devices.healthy_count(),
            "gpu_memory": self.devices.gpu_memory,
            "memory_unit": self.config.memory_unit.value,
        }


# =============================================================================
# gRPC Servicer
# =============================================================================

class DevicePluginServicer(api_pb2_grpc.DevicePluginServicer):
    """gRPC Servicer for Device Plugin"""

    def __init__(self, plugin: SharedGPUDevicePlugin):
        self.plugin = plugin

    def GetDevicePluginOptions(self, request, context):
        return api_pb2.DevicePluginOptions(
            pre_start_required=False,
            get_preferred_allocation_available=False,
        )

    def ListAndWatch(self, request, context):
        logger.info("ListAndWatch called")

        for snapshot in self.plugin.list_and_watch(is_active=context.is_active):
            devices = [api_pb2.Device(ID=device_id, health=health) for device_id, health in snapshot]
            logger.info(f"send device list: {len(devices)} devices, "
                        f"{sum(1 for _, h in snapshot if h != HEALTHY)} unhealthy")
            yield api_pb2.ListAndWatchResponse(devices=devices)

    def Allocate(self, request, context):
        logger.info("Allocate called")

        container_responses = []
        try:
            for container_req in request.container_requests:
                device_ids = list(container_req.devicesIDs)
                logger.info(f"device ids: {device_ids}")
                envs = self.plugin.allocate(device_ids)
                container_responses.append(api_pb2.ContainerAllocateResponse(envs=envs))
        except InvalidAllocationError as e:
            logger.warning(str(e))
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))

        return api_pb2.AllocateResponse(container_responses=container_responses)

    def PreStartContainer(self, request, context):
        return api_pb2.PreStartContainerResponse()

    def GetPreferredAllocation(self, request, context):
        container_responses = []
        for container_req in request.container_requests:
            must_include = list(container_req.must_include_deviceIDs)
            rest = [d for d in container_req.available_deviceIDs if d not in must_include]
            preferred = (must_include + rest)[:max(container_req.allocation_size, len(must_include))]

            container_responses.append(
                api_pb2.ContainerPreferredAllocationResponse(deviceIDs=preferred)
            )

        return api_pb2.PreferredAllocationResponse(container_responses=container_responses)


__all__ = ["SharedGPUDevicePlugin", "DevicePluginServicer", "PluginState", "dial"]
