"""Pytest configuration and shared fixtures for the shared GPU device plugin tests."""

import queue
import shutil
import tempfile
import threading
from concurrent import futures

import grpc
import pytest

from gpushare.config import MemoryUnit, PluginConfig
from gpushare.device_plugin import api_pb2, api_pb2_grpc
from gpushare.errors import UnsupportedDeviceError
from gpushare.gpu import slice_devices
from gpushare.nvml import DeviceBackend, PhysicalDevice


class FakeBackend(DeviceBackend):
    """In-memory NVML stand-in; XID events are fed through `events`."""

    def __init__(self, devices=(), unsupported=(), init_error=None):
        self._devices = list(devices)
        self.unsupported = set(unsupported)
        self.init_error = init_error
        self.events = queue.Queue()
        self.registered = []
        self.initialized = False
        self.shut_down = False
        self.freed = threading.Event()

    def init(self):
        if self.init_error:
            raise self.init_error
        self.initialized = True

    def shutdown(self):
        self.shut_down = True

    def device_count(self):
        return len(self._devices)

    def devices(self):
        return list(self._devices)

    def new_event_set(self):
        return object()

    def register_xid_events(self, event_set, uuid):
        if uuid in self.unsupported:
            raise UnsupportedDeviceError("Not Supported")
        self.registered.append(uuid)

    def wait_for_event(self, event_set, timeout_ms):
        try:
            return self.events.get(timeout=timeout_ms / 1000)
        except queue.Empty:
            return None

    def free_event_set(self, event_set):
        self.freed.set()


class FakeKubelet(api_pb2_grpc.RegistrationServicer):
    """Registration server recording requests; optionally rejects them."""

    def __init__(self, reject=False):
        self.reject = reject
        self.requests = []

    def Register(self, request, context):
        self.requests.append(request)
        if self.reject:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "unsupported version")
        return api_pb2.Empty()


@pytest.fixture
def physical_devices():
    return [
        PhysicalDevice(uuid="GPU-aaaa", memory_mib=8000, minor=0, model="Tesla T4"),
        PhysicalDevice(uuid="GPU-bbbb", memory_mib=8000, minor=1, model="Tesla T4"),
    ]


@pytest.fixture
def small_devices():
    """Two GPUs with 3 GiB each, sliced per GiB -> 3 virtual devices per GPU."""
    return [
        PhysicalDevice(uuid="GPU-aaaa", memory_mib=3 * 1024, minor=0),
        PhysicalDevice(uuid="GPU-bbbb", memory_mib=3 * 1024, minor=1),
    ]


@pytest.fixture
def config() -> PluginConfig:
    return PluginConfig(mps=False, health_check=False, memory_unit=MemoryUnit.GIB)


@pytest.fixture
def device_set(small_devices):
    return slice_devices(small_devices, MemoryUnit.GIB)


@pytest.fixture
def fake_backend(small_devices):
    return FakeBackend(small_devices)


@pytest.fixture
def socket_dir():
    """Short temporary directory; unix socket paths are limited to ~108 bytes."""
    path = tempfile.mkdtemp(prefix="gpushare-", dir="/tmp")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def kubelet_factory(socket_dir):
    """Start fake kubelet Registration servers on <socket_dir>/kubelet.sock."""
    servers = []

    def start(reject=False):
        kubelet = FakeKubelet(reject=reject)
        server = grpc.server(futures.ThreadPoolExecutor(max_workers=2))
        api_pb2_grpc.add_RegistrationServicer_to_server(kubelet, server)
        kubelet.socket = f"{socket_dir}/kubelet.sock"
        server.add_insecure_port(f"unix://{kubelet.socket}")
        server.start()
        servers.append(server)
        return kubelet

    yield start
    for server in servers:
        server.stop(None)


@pytest.fixture
def make_backend():
    return FakeBackend
