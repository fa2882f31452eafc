"""Command-line entry point: start the sampler and the network server."""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Optional, Sequence

from sensorsrv.device import MeasDevice, MonotonicClock
from sensorsrv.models import DEFAULT_PORT
from sensorsrv.network import SensorServer
from sensorsrv.ringbuffer import RingBuffer
from sensorsrv.sampler import SensorConfigTable, SensorSampler

log = logging.getLogger(__name__)

DEVICE_PATH = "/dev/meascdd"


def _open_device(path: str) -> Optional[MeasDevice]:
    try:
        device = MeasDevice.open(path)
    except OSError:
        log.info("%s failed to open, switching to simulation mode...", path)
        return None
    log.info("File opened...")
    return device


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sensorsrv", description="Sample sensors and stream them over TCP."
    )
    parser.add_argument("--port", type=int, default=DEFAULT_PORT,
                        help="TCP port to listen on")
    parser.add_argument("--device", default=DEVICE_PATH,
                        help="measurement device node")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log every transmitted sample")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run until a client sends SHUTDOWN; return the process exit status."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(message)s")
    log.info("mng server started...")

    clock = MonotonicClock()
    device = _open_device(args.device)
    table = SensorConfigTable(clock)
    buffer = RingBuffer()
    running = threading.Event()
    running.set()

    sampler = SensorSampler(buffer, table, clock, device=device)
    server = SensorServer(args.port, buffer, table, running)
    sampler_thread = threading.Thread(target=sampler.run, args=(running,),
                                      name="sensor", daemon=True)
    sampler_thread.start()

    status = 0
    try:
        server.serve()
    except OSError as exc:
        log.error("network server failed: %s", exc)
        status = 1
    except KeyboardInterrupt:
        status = 130
    finally:
        running.clear()
        sampler_thread.join()
    return status


if __name__ == "__main__":
    raise SystemExit(main())