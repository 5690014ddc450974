"""
Thread-per-worker pool that runs the phases of a load test.
"""

import threading
import logging
from typing import List, Optional

from common.countdown_latch import CountDownLatch
from common.errors import CoordinationError
from common.phase_manager import PhaseManager, PhaseSpecification, partition_skier_ids
from common.worker import Worker, WorkerAssignment

logger = logging.getLogger(__name__)


class PhaseHandle:
    """A phase running in the background.

    ``wait_for_trigger`` returns once enough workers have finished for the
    next phase to start; ``join`` waits for the whole phase and re-raises any
    failure as ``CoordinationError``.
    """

    def __init__(self, spec: PhaseSpecification, trigger_latch: CountDownLatch,
                 phase_manager: PhaseManager):
        self.spec = spec
        self.trigger_latch = trigger_latch
        self.phase_manager = phase_manager
        self.error: Optional[BaseException] = None
        self.thread: Optional[threading.Thread] = None

    def wait_for_trigger(self, timeout: Optional[float] = None) -> bool:
        """Block until the next phase may start.

        Raises:
            CoordinationError: If the phase failed before releasing its successor
        """
        try:
            released = self.trigger_latch.wait(timeout)
        except CoordinationError as e:
            raise CoordinationError(f"Phase {self.spec.phase_id} failed before releasing the next phase") from (self.error or e)

        if released:
            self.phase_manager.mark_triggered(self.spec.phase_id)
        return released

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout)
        if self.error is not None:
            raise CoordinationError(f"Phase {self.spec.phase_id} failed: {self.error}") from self.error

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


class WorkerPool:
    """Launches one thread per worker for each phase and tracks their completion.

    Every worker gets its own API system from the factory, so no connection
    state is shared between threads. Finished batches go straight to the
    telemetry channel.
    """

    def __init__(
        self,
        system_factory,
        channel,
        metrics,
        phase_manager: Optional[PhaseManager] = None,
        resort: str = "",
        ski_day: int = 1,
        num_ski_lifts: int = 1,
        exporter=None,
    ):
        """Initialize the worker pool.

        Args:
            system_factory: Zero-argument callable returning a fresh ApiSystem
            channel: TelemetryChannel shared by every worker
            metrics: RunMetrics shared by every phase
            phase_manager: Phase timing tracker (default: a new one)
            resort: Resort id sent with every request
            ski_day: Day id sent with every request
            num_ski_lifts: Number of lifts to draw lift ids from
            exporter: Optional PrometheusExporter that tracks active phases
        """
        self.system_factory = system_factory
        self.channel = channel
        self.metrics = metrics
        self.phase_manager = phase_manager or PhaseManager()
        self.resort = resort
        self.ski_day = ski_day
        self.num_ski_lifts = num_ski_lifts
        self.exporter = exporter

        logger.info(f"Initialized WorkerPool for resort '{resort}' day {ski_day} with {num_ski_lifts} lifts")

    def build_workers(self, spec: PhaseSpecification, completion_latch: CountDownLatch,
                      next_phase_latch: Optional[CountDownLatch] = None) -> List[Worker]:
        """Create every worker of a phase without starting any.

        Raises:
            ConfigurationError: If any worker's assignment is invalid
        """
        if spec.thread_count == 0:
            return []

        workers = []
        for worker_id, skier_range in enumerate(partition_skier_ids(spec.total_skiers, spec.thread_count)):
            assignment = WorkerAssignment(
                skier_id_range=skier_range,
                time_window=spec.time_window,
                write_count=spec.writes_per_thread,
                read_count=spec.reads_per_thread_per_endpoint,
            )
            workers.append(Worker(
                worker_id=worker_id,
                assignment=assignment,
                system=None,
                channel=self.channel,
                metrics=self.metrics,
                completion_latch=completion_latch,
                next_phase_latch=next_phase_latch,
                resort=self.resort,
                ski_day=self.ski_day,
                num_ski_lifts=self.num_ski_lifts,
            ))

        # Systems are only created once every assignment is known to be valid
        try:
            for worker in workers:
                worker.system = self.system_factory()
        except Exception:
            for worker in workers:
                if worker.system is not None:
                    worker.system.close()
            raise
        return workers

    def run_phase(self, spec: PhaseSpecification, next_phase_latch: Optional[CountDownLatch] = None) -> int:
        """Run one phase to completion on the calling thread.

        Args:
            spec: Phase to run
            next_phase_latch: Counted down by each finishing worker (None = final phase)

        Returns:
            Number of requests the phase issued

        Raises:
            ConfigurationError: If the phase cannot be set up; no worker has started
            CoordinationError: If any worker thread failed
        """
        completion_latch = CountDownLatch(spec.thread_count, name=f"{spec.phase_id}-completion")
        workers = self.build_workers(spec, completion_latch, next_phase_latch)

        self.phase_manager.begin_phase(spec.phase_id, spec.thread_count)
        if self.exporter is not None:
            self.exporter.set_active_phase(spec.phase_id, True)

        errors: List[BaseException] = []
        threads = []
        for worker in workers:
            thread = threading.Thread(
                target=self._run_worker,
                args=(worker, errors),
                name=f"{spec.phase_id}-worker-{worker.worker_id}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        completion_latch.wait()
        for thread in threads:
            thread.join()

        # Each worker's volume is fixed, so the phase total is known without per-request counting
        self.metrics.total_requests.add(spec.total_requests)
        self.phase_manager.mark_completed(spec.phase_id)
        if self.exporter is not None:
            self.exporter.set_active_phase(spec.phase_id, False)

        failed = sum(worker.failed_requests for worker in workers)
        logger.info(f"Phase {spec.phase_id}: {spec.total_requests} requests, {failed} failed")

        if errors:
            raise CoordinationError(f"{len(errors)} worker(s) in phase {spec.phase_id} failed") from errors[0]
        return spec.total_requests

    def launch_phase(self, spec: PhaseSpecification, final: bool = False) -> PhaseHandle:
        """Start a phase on its own driver thread and return immediately.

        Args:
            spec: Phase to run
            final: No phase follows, so the trigger is open from the start

        Returns:
            Handle to wait on the trigger and on completion
        """
        trigger_latch = CountDownLatch(0 if final else spec.trigger_count, name=f"{spec.phase_id}-trigger")
        handle = PhaseHandle(spec, trigger_latch, self.phase_manager)
        handle.thread = threading.Thread(
            target=self._drive_phase,
            args=(spec, trigger_latch, handle),
            name=f"phase-{spec.phase_id}",
            daemon=True,
        )
        handle.thread.start()
        return handle

    def _drive_phase(self, spec: PhaseSpecification, trigger_latch: CountDownLatch, handle: PhaseHandle) -> None:
        try:
            self.run_phase(spec, trigger_latch)
        except Exception as e:
            logger.error(f"Phase {spec.phase_id} failed: {e}")
            handle.error = e
            # The next phase must not wait on workers that will never finish
            if trigger_latch.count > 0:
                trigger_latch.abort()

    @staticmethod
    def _run_worker(worker: Worker, errors: List[BaseException]) -> None:
        try:
            worker.run()
        except Exception as e:
            logger.exception(f"Worker {worker.worker_id} failed")
            errors.append(e)
