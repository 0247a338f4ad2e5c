"""System polling: turn psutil / nvidia-smi readings into ``Sample`` records.

A sampler is configured once with the targets it should read. Each poll
shares one monotonic timestamp across every measurement it produces, and a
broken sensor only blanks its own field; the rest of the sample is still
filled in.
"""

from __future__ import annotations

import enum
import logging
import platform
import subprocess
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

import psutil

logger = logging.getLogger(__name__)

# Exceptions a single sensor read may raise without taking the poll down.
_SENSOR_ERRORS = (psutil.Error, OSError, AttributeError, ValueError, IndexError)

_TEMP_CHIPS = ("coretemp", "k10temp", "cpu_thermal", "acpitz")

MIB = 1024 * 1024

T = TypeVar("T")


# ── Data types ─────────────────────────────────────────────────────────────


class PollTarget(enum.Enum):
    CPU_USAGE = "cpu_usage"
    CPU_TEMPERATURE = "cpu_temperature"
    GPU = "gpu"
    MEMORY = "memory"


ALL_TARGETS: tuple[PollTarget, ...] = (
    PollTarget.CPU_USAGE,
    PollTarget.CPU_TEMPERATURE,
    PollTarget.GPU,
    PollTarget.MEMORY,
)


@dataclass(frozen=True)
class Measurement:
    """A single named reading. ``value`` is in the producing target's unit."""

    name: str = ""
    value: float = 0.0
    time: float = 0.0


@dataclass(frozen=True)
class GpuReading:
    name: str
    temperature: float
    utilization_percent: float
    memory_total_bytes: int
    memory_used_bytes: int


@dataclass(frozen=True)
class Sample:
    """Every metric read during one poll, all stamped with ``timestamp``."""

    timestamp: float
    cpu_usage: list[Measurement] = field(default_factory=lambda: list[Measurement]())
    cpu_temperature: Measurement = Measurement()
    memory_usage: Measurement = Measurement()
    memory_total: Measurement = Measurement()
    gpu_info: list[GpuReading] = field(default_factory=lambda: list[GpuReading]())

    @property
    def cpu_average(self) -> float:
        if not self.cpu_usage:
            return 0.0
        return sum(m.value for m in self.cpu_usage) / len(self.cpu_usage)

    @property
    def memory_percent(self) -> float:
        if self.memory_total.value <= 0:
            return 0.0
        return 100.0 * self.memory_usage.value / self.memory_total.value


@dataclass(frozen=True)
class SystemInformation:
    """Name, make and model of the host. Read once at startup."""

    host_name: str = ""
    os: str = ""
    os_version: str = ""
    kernel_version: str = ""
    logical_processors: int = 0
    physical_processors: int = 0
    total_memory: int = 0


@dataclass(frozen=True)
class DiskInformation:
    name: str
    mount_point: str
    kind: str
    used_space: int
    total_space: int

    @property
    def used_percent(self) -> float:
        if self.total_space <= 0:
            return 0.0
        return 100.0 * self.used_space / self.total_space


class Sampler(Protocol):
    """Anything that can be pointed at a set of targets and polled."""

    def with_targets(self, targets: Iterable[PollTarget]) -> Sampler: ...

    def poll(self) -> Sample: ...


class GpuReader(Protocol):
    def read(self) -> list[GpuReading]: ...


# ── GPU ────────────────────────────────────────────────────────────────────


def _parse_nvidia_smi(output: str) -> list[GpuReading]:
    """Parse ``name,temp,util,mem.total,mem.used`` CSV rows (memory in MiB)."""
    gpus: list[GpuReading] = []
    for line in output.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 5:
            raise ValueError(f"unexpected nvidia-smi row: {line!r}")
        gpus.append(
            GpuReading(
                name=parts[0],
                temperature=float(parts[1]),
                utilization_percent=float(parts[2]),
                memory_total_bytes=int(float(parts[3]) * MIB),
                memory_used_bytes=int(float(parts[4]) * MIB),
            )
        )
    return gpus


class NvidiaSmiReader:
    """Read every NVIDIA GPU via nvidia-smi. Gives up after the first failure."""

    def __init__(self, timeout: float = 3.0) -> None:
        self.timeout = timeout
        self.available: bool | None = None  # None = not probed yet

    def read(self) -> list[GpuReading]:
        if self.available is False:
            return []
        try:
            result = subprocess.run(
                [
                    "nvidia-smi",
                    "--query-gpu=name,temperature.gpu,utilization.gpu,"
                    "memory.total,memory.used",
                    "--format=csv,noheader,nounits",
                ],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            if result.returncode != 0:
                raise OSError(f"nvidia-smi exited with status {result.returncode}")
            gpus = _parse_nvidia_smi(result.stdout)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError, ValueError) as e:
            logger.info("GPU backend unavailable, disabling: %s", e)
            self.available = False
            return []
        self.available = True
        return gpus


# ── Sensors ────────────────────────────────────────────────────────────────


def _read_temp() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        return None
    if not temps:
        return None
    for chip in _TEMP_CHIPS:
        if chip in temps and temps[chip]:
            return float(temps[chip][0].current)
    for entries in temps.values():
        if entries:
            return float(entries[0].current)
    return None


def _os_version() -> str:
    try:
        release = platform.freedesktop_os_release()
    except OSError:
        return platform.version()
    return release.get("VERSION_ID") or release.get("VERSION") or platform.version()


# ── Sampler ────────────────────────────────────────────────────────────────


class PsutilSampler:
    """Sampler backed by psutil, with a pluggable GPU reader."""

    def __init__(self, gpu_reader: GpuReader | None = None) -> None:
        self._targets: tuple[PollTarget, ...] = ()
        self._gpu = gpu_reader if gpu_reader is not None else NvidiaSmiReader()
        self._failing: set[PollTarget] = set()

    @property
    def targets(self) -> tuple[PollTarget, ...]:
        return self._targets

    def with_targets(self, targets: Iterable[PollTarget]) -> PsutilSampler:
        ordered: list[PollTarget] = []
        for target in targets:
            if target not in ordered:
                ordered.append(target)
        self._targets = tuple(ordered)
        if PollTarget.CPU_USAGE in self._targets:
            # Warm-up psutil internal deltas so the first poll is meaningful
            self._guarded(
                PollTarget.CPU_USAGE,
                lambda: psutil.cpu_percent(interval=None, percpu=True),
                None,
            )
        return self

    def _guarded(self, target: PollTarget, read: Callable[[], T], default: T) -> T:
        """Run one target's read, substituting *default* if the sensor fails."""
        try:
            value = read()
        except _SENSOR_ERRORS as e:
            if target not in self._failing:
                logger.warning("reading %s failed, using default: %s", target.value, e)
                self._failing.add(target)
            return default
        if target in self._failing:
            logger.info("reading %s recovered", target.value)
            self._failing.discard(target)
        return value

    def poll(self) -> Sample:
        now = time.monotonic()
        cpu_usage: list[Measurement] = []
        cpu_temp = Measurement(name="cpu_temp", time=now)
        mem_used = Measurement(name="memory_used", time=now)
        mem_total = Measurement(name="memory_total", time=now)
        gpus: list[GpuReading] = []

        for target in self._targets:
            if target is PollTarget.CPU_USAGE:
                cpu_usage = self._guarded(target, lambda: self._read_cpu(now), [])
            elif target is PollTarget.CPU_TEMPERATURE:
                cpu_temp = self._guarded(target, lambda: self._read_cpu_temp(now), cpu_temp)
            elif target is PollTarget.MEMORY:
                mem_used, mem_total = self._guarded(
                    target, lambda: self._read_memory(now), (mem_used, mem_total)
                )
            elif target is PollTarget.GPU:
                gpus = self._guarded(target, self._gpu.read, [])

        return Sample(
            timestamp=now,
            cpu_usage=cpu_usage,
            cpu_temperature=cpu_temp,
            memory_usage=mem_used,
            memory_total=mem_total,
            gpu_info=gpus,
        )

    @staticmethod
    def _read_cpu(now: float) -> list[Measurement]:
        per_core = psutil.cpu_percent(interval=None, percpu=True)
        return [
            Measurement(name=f"cpu{i}", value=float(pct), time=now)
            for i, pct in enumerate(per_core)
        ]

    @staticmethod
    def _read_cpu_temp(now: float) -> Measurement:
        temp = _read_temp()
        return Measurement(name="cpu_temp", value=temp if temp is not None else 0.0, time=now)

    @staticmethod
    def _read_memory(now: float) -> tuple[Measurement, Measurement]:
        ram = psutil.virtual_memory()
        return (
            Measurement(name="memory_used", value=float(ram.used), time=now),
            Measurement(name="memory_total", value=float(ram.total), time=now),
        )

    def get_static_info(self) -> SystemInformation:
        """Host, OS and processor details. Comparatively slow; call sparingly."""
        uname = platform.uname()
        try:
            total_memory = int(psutil.virtual_memory().total)
        except _SENSOR_ERRORS as e:
            logger.warning("reading total memory failed: %s", e)
            total_memory = 0
        return SystemInformation(
            host_name=uname.node,
            os=uname.system,
            os_version=_os_version(),
            kernel_version=uname.release,
            logical_processors=psutil.cpu_count() or 0,
            physical_processors=psutil.cpu_count(logical=False) or 0,
            total_memory=total_memory,
        )

    def get_disk_info(self) -> list[DiskInformation]:
        """Usage of every mounted physical partition."""
        disks: list[DiskInformation] = []
        try:
            partitions = psutil.disk_partitions(all=False)
        except _SENSOR_ERRORS as e:
            logger.warning("listing disk partitions failed: %s", e)
            return disks
        for part in partitions:
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except _SENSOR_ERRORS:
                continue
            disks.append(
                DiskInformation(
                    name=part.device,
                    mount_point=part.mountpoint,
                    kind=part.fstype or "?",
                    used_space=int(usage.used),
                    total_space=int(usage.total),
                )
            )
        return disks
