"""
Optional out-of-line execution of fractal work.

A ComputeChannel hands job descriptors to a thread or process pool and returns
futures. When no pool can be started, or the "sync" backend is selected,
jobs run in the calling thread and the returned future is already resolved.
"""
import logging
import threading
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from fractals.datatypes import Chunk, FractalParameters, Viewport
from fractals.fractal import render_chunk
from fractals.geometry import generate_paths
from fractals.settings import EngineSettings, default_settings

logger = logging.getLogger(__name__)

BACKENDS = ("thread", "process", "sync")


@dataclass(frozen=True)
class JobDescriptor:
    parameters: FractalParameters
    viewport: Viewport
    chunk: Chunk | None = None  # None for geometry jobs
    settings: EngineSettings = field(default_factory=EngineSettings)


@dataclass(frozen=True)
class ChunkResult:
    chunk: Chunk
    pixels: np.ndarray  # (chunk.height, chunk.width, 4) uint8


def execute_job(job):
    """Run one job in whatever context calls it; module level so process pools can pickle it."""
    if job.chunk is None:
        return generate_paths(job.parameters, job.viewport, job.settings.geometry)
    pixels = render_chunk(job.parameters, job.viewport, job.chunk, job.settings)
    return ChunkResult(job.chunk, pixels)


class ComputeChannel:
    def __init__(self, backend="thread", max_workers=None):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend {backend!r}, expected one of {BACKENDS}")
        self.backend = backend
        self.max_workers = max_workers
        self._executor = None
        self._started = False
        self._lock = threading.Lock()

    @property
    def is_async(self):
        self.start()
        return self._executor is not None

    def start(self):
        """Create the worker pool on first use; any failure leaves the channel synchronous."""
        with self._lock:
            if self._started:
                return
            self._started = True
            if self.backend == "sync":
                return
            try:
                if self.backend == "process":
                    self._executor = ProcessPoolExecutor(max_workers=self.max_workers)
                else:
                    self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                        thread_name_prefix="fractal-worker")
                logger.info(f"Started {self.backend} compute channel")
            except (OSError, RuntimeError, ValueError, NotImplementedError, ImportError) as e:
                logger.warning(f"Could not start {self.backend} compute channel ({e}), computing synchronously")
                self._executor = None

    def submit(self, job):
        self.start()
        if self._executor is not None:
            try:
                return self._executor.submit(execute_job, job)
            except RuntimeError as e:
                # pool already shut down or broken
                logger.warning(f"Compute channel unavailable ({e}), computing synchronously")
                self._executor = None

        future = Future()
        try:
            future.set_result(execute_job(job))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait, cancel_futures=True)
                logger.info(f"Stopped {self.backend} compute channel")
            self._executor = None
            self._started = False


_channel = None
_channel_lock = threading.Lock()


def get_channel(settings=default_settings):
    """Process-wide channel, created lazily from the engine settings on first call."""
    global _channel
    with _channel_lock:
        if _channel is None:
            try:
                _channel = ComputeChannel(settings.backend, settings.max_workers)
            except ValueError as e:
                logger.warning(f"{e}; using synchronous compute channel")
                _channel = ComputeChannel("sync")
        return _channel


def shutdown_channel(wait=True):
    global _channel
    with _channel_lock:
        if _channel is not None:
            _channel.shutdown(wait=wait)
        _channel = None
