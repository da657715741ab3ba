"""
Progressive, cancellable rendering of escape-time fractals.

The scheduler never runs on its own: the host calls tick() from its frame or
timer callback (or drives run_async() from an event loop). Each tick commits
one chunk per active job, so no tick blocks for longer than one chunk.
"""
import asyncio
import logging
from collections import deque
from concurrent.futures import FIRST_COMPLETED, wait
from dataclasses import dataclass, field
from time import time

from fractals.channel import JobDescriptor
from fractals.datatypes import Chunk, RasterBuffer
from fractals.fractal import render_chunk
from fractals.settings import default_settings

logger = logging.getLogger(__name__)


def split_chunks(viewport, size):
    """Square chunks covering the viewport, row by row from the top-left."""
    size = max(int(size), 1)
    return [
        Chunk(x, y, min(size, viewport.width - x), min(size, viewport.height - y))
        for y in range(0, viewport.height, size)
        for x in range(0, viewport.width, size)
    ]


@dataclass
class RenderJob:
    target: str
    parameters: object
    viewport: object
    raster: RasterBuffer
    chunk_queue: deque
    on_progress: object = None
    on_complete: object = None
    cancelled: bool = False
    completed: bool = False
    chunks_total: int = 0
    chunks_done: int = 0
    pending: dict = field(default_factory=dict)  # future -> chunk
    started_at: float = field(default_factory=time)

    @property
    def progress(self):
        if self.chunks_total == 0:
            return 1.0
        return self.chunks_done / self.chunks_total


class RenderScheduler:
    def __init__(self, settings=default_settings, channel=None):
        self.settings = settings
        self.channel = channel
        self.jobs = {}
        self._completed = {}

    def start(self, parameters, viewport, target="default", on_progress=None, on_complete=None):
        """
        Begin a render pass for target, cancelling whatever pass it had in flight.

        on_progress(job, chunk) runs after every committed chunk,
        on_complete(raster) once, on the tick that commits the last one.
        """
        parameters = parameters.sanitized()
        if not parameters.kind.is_escape_time:
            raise ValueError(f"{parameters.kind.value} is rendered with generate_paths, not the scheduler")

        self.cancel(target)
        chunks = split_chunks(viewport, self.settings.chunk_size)
        job = RenderJob(
            target=target,
            parameters=parameters,
            viewport=viewport,
            raster=RasterBuffer.empty(viewport),
            chunk_queue=deque(chunks),
            on_progress=on_progress,
            on_complete=on_complete,
            chunks_total=len(chunks),
        )
        self.jobs[target] = job
        logger.info(f"Rendering {parameters.kind.value} into {target!r}: {len(chunks)} chunks")
        return job

    def cancel(self, target="default"):
        job = self.jobs.pop(target, None)
        if job is None:
            return False
        job.cancelled = True
        for future in job.pending:
            future.cancel()
        job.pending.clear()
        job.chunk_queue.clear()
        if not job.completed:
            logger.info(f"Cancelled render of {target!r} at {job.progress:.0%}")
        return True

    @property
    def busy(self):
        return bool(self.jobs)

    def completed_raster(self, target="default"):
        """Last fully rendered raster of target, or None."""
        return self._completed.get(target)

    def tick(self):
        """Commit one chunk of every active job. Returns True while work remains."""
        for job in list(self.jobs.values()):
            if job.cancelled:
                continue
            if self.channel is None:
                self._step_inline(job)
            else:
                self._step_channel(job, self._wait_first)
        return self.busy

    def run(self):
        while self.tick():
            pass

    async def run_async(self):
        """Drive every job to completion from an event loop, yielding between chunks."""
        while self.jobs:
            for job in list(self.jobs.values()):
                if job.cancelled:
                    continue
                if self.channel is None:
                    self._step_inline(job)
                else:
                    self._fill(job)
                    if job.pending:
                        await asyncio.wait([asyncio.wrap_future(f) for f in job.pending],
                                           return_when=asyncio.FIRST_COMPLETED)
                    self._step_channel(job, self._first_done)
            await asyncio.sleep(0)

    def _step_inline(self, job):
        if job.chunk_queue:
            chunk = job.chunk_queue.popleft()
            pixels = render_chunk(job.parameters, job.viewport, chunk, self.settings)
            self._commit(job, chunk, pixels)
        if not job.chunk_queue:
            self._finish(job)

    def _fill(self, job):
        while job.chunk_queue and len(job.pending) < max(self.settings.max_in_flight, 1):
            chunk = job.chunk_queue.popleft()
            future = self.channel.submit(JobDescriptor(job.parameters, job.viewport, chunk, self.settings))
            job.pending[future] = chunk

    @staticmethod
    def _wait_first(pending):
        done, _ = wait(pending, return_when=FIRST_COMPLETED)
        return done

    @staticmethod
    def _first_done(pending):
        return [f for f in pending if f.done()]

    def _step_channel(self, job, collect):
        self._fill(job)
        if job.pending:
            done = collect(list(job.pending))
            if done:
                # arrival order; chunks are position addressed
                future = next(f for f in job.pending if f in done)
                chunk = job.pending.pop(future)
                result = future.result()
                if job.cancelled:
                    return
                self._commit(job, result.chunk, result.pixels)
                self._fill(job)
        if not job.chunk_queue and not job.pending:
            self._finish(job)

    def _commit(self, job, chunk, pixels):
        if job.cancelled:
            return
        job.raster.write(chunk, pixels)
        job.chunks_done += 1
        if job.on_progress is not None:
            job.on_progress(job, chunk)

    def _finish(self, job):
        if job.cancelled or job.completed:
            return
        job.completed = True
        job.raster.complete = True
        if self.jobs.get(job.target) is job:
            del self.jobs[job.target]
        self._completed[job.target] = job.raster
        logger.info(f"Render of {job.target!r} completed in {time() - job.started_at:.2f} seconds.")
        if job.on_complete is not None:
            job.on_complete(job.raster)
