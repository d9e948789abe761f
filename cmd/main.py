#!/usr/bin/env python3
"""
Shared GPU Device Plugin
Entry point for the DaemonSet application

구성요소:
1. Manager - NVML 초기화, kubelet 재시작 / signal 감시, plugin 재시작
2. Device Plugin - kubelet 과 통신 (Register / ListAndWatch / Allocate)
3. Health Monitor - XID critical error 감시
"""

import os
import sys
import logging
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gpushare.config import (
    LOG_LEVEL, LOG_FILE, PluginConfig, get_config_summary, translate_memory_unit,
)
from gpushare.manager import SharedGPUManager

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)


def _setup_log_file(path: str):
    """Also log to a file on the host, like the console"""
    if not path:
        return
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handler = logging.FileHandler(path)
    except OSError as e:
        logger.warning(f"Cannot log to {path}: {e}")
        return
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)


def parse_args(argv=None) -> PluginConfig:
    defaults = PluginConfig.from_env()
    parser = argparse.ArgumentParser(description='Shared GPU Device Plugin')
    parser.add_argument('--mps', action=argparse.BooleanOptionalAction, default=defaults.mps,
                        help='Enable or Disable MPS')
    parser.add_argument('--health-check', action=argparse.BooleanOptionalAction, default=defaults.health_check,
                        help='Enable or disable Health check')
    parser.add_argument('--memory-unit', default=defaults.memory_unit.value,
                        help="Set memoryUnit of the GPU Memory, support 'GiB' and 'MiB'")
    parser.add_argument('--log-file', default=LOG_FILE, help='Log file path ("" to disable)')
    args = parser.parse_args(argv)

    _setup_log_file(args.log_file)
    return PluginConfig(
        mps=args.mps,
        health_check=args.health_check,
        memory_unit=translate_memory_unit(args.memory_unit),
    )


def main():
    """Entry point"""
    import traceback
    try:
        config = parse_args()

        logger.info("=" * 50)
        logger.info("Start gpushare device plugin")
        logger.info("=" * 50)
        for key, value in get_config_summary(config).items():
            logger.info(f"{key}: {value}")
        logger.info(f"Node: {os.environ.get('NODE_NAME', 'unknown')}")

        SharedGPUManager(config).run()
        logger.info("gpushare device plugin stopped.")
    except Exception as e:
        logger.critical(f"Failed due to {e}")
        traceback.print_exc()
        print(f"FATAL ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
