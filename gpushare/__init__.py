"""
Shared GPU device plugin for Kubernetes

GPU 메모리를 MiB / GiB 단위 virtual device 로 나누어 kubelet 에 등록
"""

__version__ = "0.1.0"
