"""
Exceptions raised by the shared GPU device plugin
"""


class GPUShareError(Exception):
    """Base class for device plugin errors"""


class BackendError(GPUShareError):
    """NVML call failed"""


class UnsupportedDeviceError(BackendError):
    """Device is too old to register for XID events"""


class ServeError(GPUShareError):
    """Device plugin could not be served; the supervisor retries on the next tick"""


class StartError(ServeError):
    """gRPC server bind or readiness dial failed"""


class RegisterError(ServeError):
    """Registration with kubelet failed"""


class InvalidAllocationError(GPUShareError):
    """Allocate request referenced an unknown device"""

    def __init__(self, device_id: str):
        super().__init__(f"invalid allocation request: unknown device: {device_id}")
        self.device_id = device_id


__all__ = [
    "GPUShareError", "BackendError", "UnsupportedDeviceError",
    "ServeError", "StartError", "RegisterError", "InvalidAllocationError",
]
