import asyncio

import pytest

from fractals.channel import ComputeChannel
from fractals.datatypes import Chunk, FractalKind, FractalParameters, Viewport
from fractals.fractal import render_escape_time
from fractals.scheduler import RenderScheduler, split_chunks
from fractals.settings import EngineSettings

VIEWPORT = Viewport(70, 40)
MANDELBROT = FractalParameters(FractalKind.MANDELBROT, depth=25, zoom=1.2, rotation=15, pan_x=-20)
JULIA = FractalParameters(FractalKind.JULIA, depth=25)


def drive(scheduler):
    ticks = 0
    busy = True
    while busy:
        busy = scheduler.tick()
        ticks += 1
    return ticks


@pytest.fixture
def thread_channel():
    channel = ComputeChannel("thread", max_workers=2)
    yield channel
    channel.shutdown()


def test_split_chunks_covers_viewport_row_by_row():
    chunks = split_chunks(VIEWPORT, 32)

    assert chunks == [
        Chunk(0, 0, 32, 32), Chunk(32, 0, 32, 32), Chunk(64, 0, 6, 32),
        Chunk(0, 32, 32, 8), Chunk(32, 32, 32, 8), Chunk(64, 32, 6, 8),
    ]
    assert sum(c.width * c.height for c in chunks) == VIEWPORT.width * VIEWPORT.height
    assert split_chunks(Viewport(0, 10), 32) == []


def test_one_chunk_per_tick_then_complete():
    completed = []
    progress = []
    scheduler = RenderScheduler()
    job = scheduler.start(MANDELBROT, VIEWPORT,
                          on_progress=lambda job, chunk: progress.append((chunk, job.raster.complete)),
                          on_complete=completed.append)

    assert drive(scheduler) == len(split_chunks(VIEWPORT, 32))
    assert [chunk for chunk, _ in progress] == split_chunks(VIEWPORT, 32)
    assert not any(complete for _, complete in progress)
    assert completed == [job.raster]
    assert job.completed and job.raster.complete
    assert job.progress == 1.0
    assert not scheduler.busy


def test_progressive_result_matches_one_shot_render():
    scheduler = RenderScheduler()
    scheduler.start(MANDELBROT, VIEWPORT)
    scheduler.run()

    assert scheduler.completed_raster().data == render_escape_time(MANDELBROT, VIEWPORT).data


def test_partial_raster_is_visible_between_ticks():
    scheduler = RenderScheduler()
    job = scheduler.start(JULIA, VIEWPORT)
    scheduler.tick()

    assert job.chunks_done == 1
    assert not job.raster.complete
    assert scheduler.completed_raster() is None
    view = job.raster.view()
    with pytest.raises(ValueError):
        view[0, 0, 0] = 1


def test_depth_zero_end_to_end_is_transparent():
    parameters = FractalParameters(FractalKind.MANDELBROT, depth=0, zoom=1, rotation=0, pan_x=0, pan_y=0,
                                   base_color="#3B82F6")
    scheduler = RenderScheduler()
    scheduler.start(parameters, Viewport(4, 4))

    assert drive(scheduler) == 1
    raster = scheduler.completed_raster()
    assert raster.complete
    assert raster.data == bytes(4 * 4 * 4)


def test_empty_viewport_completes_on_first_tick():
    completed = []
    scheduler = RenderScheduler()
    scheduler.start(JULIA, Viewport(0, 0), on_complete=completed.append)

    assert drive(scheduler) == 1
    assert len(completed) == 1


def test_new_job_cancels_previous_one_for_same_target():
    writes = []
    completed = []

    def recorder(name):
        return lambda job, chunk: writes.append(name)

    scheduler = RenderScheduler()
    first = scheduler.start(MANDELBROT, VIEWPORT, on_progress=recorder("a"), on_complete=completed.append)
    scheduler.tick()
    scheduler.tick()
    second = scheduler.start(JULIA, VIEWPORT, on_progress=recorder("b"), on_complete=completed.append)
    scheduler.run()

    assert first.cancelled and not first.completed
    assert not first.raster.complete
    assert writes[:2] == ["a", "a"]
    assert "a" not in writes[2:]
    assert completed == [second.raster]
    assert scheduler.completed_raster() is second.raster


def test_restart_from_progress_callback_discards_stale_job():
    scheduler = RenderScheduler()
    jobs = []

    def restart(job, chunk):
        if len(jobs) == 1:
            jobs.append(scheduler.start(JULIA, VIEWPORT))

    jobs.append(scheduler.start(MANDELBROT, VIEWPORT, on_progress=restart))
    scheduler.run()

    assert jobs[0].cancelled and jobs[0].chunks_done == 1
    assert jobs[1].completed


def test_targets_render_independently():
    scheduler = RenderScheduler()
    left = scheduler.start(MANDELBROT, VIEWPORT, target="left")
    right = scheduler.start(JULIA, VIEWPORT, target="right")

    assert drive(scheduler) == 6
    assert left.completed and right.completed
    assert scheduler.completed_raster("left").data != scheduler.completed_raster("right").data


def test_cancel():
    scheduler = RenderScheduler()
    job = scheduler.start(MANDELBROT, VIEWPORT)
    scheduler.tick()

    assert scheduler.cancel()
    assert not scheduler.cancel()
    assert not scheduler.tick()
    assert job.cancelled and job.chunks_done == 1


def test_geometry_kinds_are_not_scheduled():
    with pytest.raises(ValueError):
        RenderScheduler().start(FractalParameters(FractalKind.KOCH, depth=3), VIEWPORT)


def test_custom_chunk_size():
    scheduler = RenderScheduler(EngineSettings(chunk_size=16))
    scheduler.start(JULIA, VIEWPORT)
    assert drive(scheduler) == len(split_chunks(VIEWPORT, 16)) == 15


@pytest.mark.parametrize("backend", ["thread", "sync"])
def test_channel_render_matches_inline(backend):
    channel = ComputeChannel(backend, max_workers=2)
    try:
        scheduler = RenderScheduler(channel=channel)
        job = scheduler.start(MANDELBROT, VIEWPORT)
        assert drive(scheduler) == len(split_chunks(VIEWPORT, 32))
        assert job.completed
        assert job.raster.data == render_escape_time(MANDELBROT, VIEWPORT).data
    finally:
        channel.shutdown()


def test_channel_job_cancellation(thread_channel):
    completed = []
    scheduler = RenderScheduler(channel=thread_channel)
    first = scheduler.start(MANDELBROT, VIEWPORT, on_complete=completed.append)
    scheduler.tick()
    second = scheduler.start(JULIA, VIEWPORT, on_complete=completed.append)
    scheduler.run()

    assert first.cancelled and not first.raster.complete
    assert first.chunks_done == 1
    assert not first.pending
    assert completed == [second.raster]


def test_run_async_inline():
    scheduler = RenderScheduler()
    job = scheduler.start(JULIA, VIEWPORT)
    asyncio.run(scheduler.run_async())

    assert job.completed
    assert job.raster.data == render_escape_time(JULIA, VIEWPORT).data


def test_run_async_with_channel(thread_channel):
    scheduler = RenderScheduler(channel=thread_channel)
    job = scheduler.start(MANDELBROT, VIEWPORT)
    asyncio.run(scheduler.run_async())

    assert job.completed
    assert job.raster.data == render_escape_time(MANDELBROT, VIEWPORT).data


def test_same_parameters_render_identically():
    rasters = []
    for _ in range(2):
        scheduler = RenderScheduler()
        scheduler.start(MANDELBROT, VIEWPORT)
        scheduler.run()
        rasters.append(scheduler.completed_raster().data)
    assert rasters[0] == rasters[1]
