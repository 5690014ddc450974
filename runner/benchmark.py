"""
Run coordinator: sequences the overlapping phases, times the run and reports.
"""

import logging
from typing import List, NamedTuple, Optional

from configuration import INTERRUPT_WRITER_JOIN_SECONDS, PHASE_WAIT_POLL_SECONDS
from common.arguments import Arguments
from common.errors import ConfigurationError, CoordinationError
from common.host_monitor import HostMonitor
from common.phase_manager import PhaseManager, PhaseSpecification, build_phase_schedule
from common.system_factory import make_system_factory
from common.worker_pool import PhaseHandle, WorkerPool
from persistence.csv_reader import CsvStatsReader
from persistence.csv_writer import CsvPersistence
from persistence.metrics_aggregator import RunMetrics
from persistence.prom import PrometheusExporter
from persistence.statistics import FinalStatistics, StatisticsAnalyzer
from persistence.telemetry import TelemetryChannel

logger = logging.getLogger(__name__)


class RunResult(NamedTuple):
    metrics: RunMetrics
    statistics: Optional[FinalStatistics]
    report: str
    csv_path: str
    histogram_path: Optional[str]


def validate_schedule(schedule: List[PhaseSpecification]) -> None:
    """Reject a schedule that would hand some worker an empty or inverted skier range.

    Raises:
        ConfigurationError: Before any phase has started
    """
    if not schedule:
        raise ConfigurationError("phase schedule is empty")
    for spec in schedule:
        if spec.thread_count < 0:
            raise ConfigurationError(f"phase {spec.phase_id} has a negative thread count")
        if spec.thread_count > 0 and spec.total_skiers < spec.thread_count:
            raise ConfigurationError(
                f"phase {spec.phase_id} needs at least one skier per thread: "
                f"{spec.total_skiers} skiers for {spec.thread_count} threads")
        if spec.writes_per_thread < 0 or spec.reads_per_thread_per_endpoint < 0:
            raise ConfigurationError(f"phase {spec.phase_id} has negative request counts")


class BenchmarkRunner:
    """Runs warm-up, peak and cooldown against the skier API and produces the final report.

    Each phase is released by the previous one as soon as its trigger
    fraction of workers has finished, so phases overlap. The wall-clock
    window spans from before the first worker starts until every phase
    thread has joined.
    """

    def __init__(
        self,
        arguments: Arguments,
        system_factory=None,
        schedule: Optional[List[PhaseSpecification]] = None,
        exporter: Optional[PrometheusExporter] = None,
        host_monitor: Optional[HostMonitor] = None,
        on_fatal=None,
    ):
        """Initialize the runner.

        Args:
            arguments: Validated run arguments
            system_factory: Zero-argument callable returning an ApiSystem (default: HTTP to host_address)
            schedule: Phases to run (default: the warm-up/peak/cooldown schedule for the arguments)
            exporter: Optional Prometheus exporter fed by the CSV writer
            host_monitor: Optional host monitor logged at phase boundaries
            on_fatal: Fatal handler for record file I/O errors (default: exit the process)

        Raises:
            ConfigurationError: If the schedule or host address is invalid
        """
        self.arguments = arguments
        self.schedule = schedule or build_phase_schedule(arguments.max_threads, arguments.num_skiers)
        validate_schedule(self.schedule)

        self.system_factory = system_factory or make_system_factory(arguments.host_address)
        self.exporter = exporter
        self.host_monitor = host_monitor
        self.on_fatal = on_fatal

        self.metrics = RunMetrics()
        self.phase_manager = PhaseManager()
        self.channel = TelemetryChannel()
        self.persistence = CsvPersistence(arguments.csv_filename, self.channel, exporter, on_fatal)
        self.worker_pool = WorkerPool(
            self.system_factory,
            self.channel,
            self.metrics,
            phase_manager=self.phase_manager,
            resort=arguments.resort,
            ski_day=arguments.ski_day,
            num_ski_lifts=arguments.num_ski_lifts,
            exporter=exporter,
        )

        logger.info(
            f"Initialized benchmark runner: {len(self.schedule)} phases, max {arguments.max_threads} threads, "
            f"{arguments.num_skiers} skiers against {arguments.host_address}")

    def run(self) -> RunResult:
        """Execute every phase, drain the writer, compute statistics and build the report.

        Raises:
            CoordinationError: If the record file cannot be created or a phase fails
        """
        if not self.persistence.init_csv_file():
            raise CoordinationError(f"could not create record file {self.persistence.csv_path}")
        writer_thread = self.persistence.start_write_loop()

        if self.exporter is not None:
            self.exporter.start_server()

        self.metrics.start_wall_timer()
        handles: List[PhaseHandle] = []
        launch_error: Optional[BaseException] = None
        try:
            self._launch_phases(handles)
        except KeyboardInterrupt:
            self._abandon_run(writer_thread)
            raise
        except Exception as e:
            launch_error = e

        # Launched phases always run to completion; the writer must see all their batches
        try:
            phase_errors = self._join_phases(handles)
        except KeyboardInterrupt:
            self._abandon_run(writer_thread)
            raise
        self.metrics.stop_wall_timer()
        self._snapshot("run end")
        self.channel.close()
        writer_thread.join()

        if launch_error is not None:
            raise launch_error
        if phase_errors:
            raise CoordinationError(f"{len(phase_errors)} phase(s) failed") from phase_errors[0]

        logger.info(f"All phases finished in {self.metrics.wall_time_seconds:.2f}s")

        analyzer = StatisticsAnalyzer(
            CsvStatsReader(self.persistence.csv_path),
            self.metrics.wall_start_ms,
            self.metrics.wall_stop_ms,
            persistence=self.persistence,
        )
        statistics = analyzer.perform_final_calcs()
        report = self.metrics.format_report(statistics, self.phase_manager.get_all_phase_info())

        return RunResult(
            metrics=self.metrics,
            statistics=statistics,
            report=report,
            csv_path=self.persistence.csv_path,
            histogram_path=statistics.histogram_path,
        )

    def _launch_phases(self, handles: List[PhaseHandle]) -> None:
        last = len(self.schedule) - 1
        for index, spec in enumerate(self.schedule):
            self._snapshot(f"start of {spec.phase_id}")
            handle = self.worker_pool.launch_phase(spec, final=index == last)
            handles.append(handle)
            if index != last:
                while not handle.wait_for_trigger(PHASE_WAIT_POLL_SECONDS):
                    pass
                logger.info(f"Phase {spec.phase_id} released the next phase")

    def _join_phases(self, handles: List[PhaseHandle]) -> List[BaseException]:
        errors = []
        for handle in handles:
            while handle.is_alive():
                handle.join(PHASE_WAIT_POLL_SECONDS)
            try:
                handle.join()
            except CoordinationError as e:
                errors.append(e)
        return errors

    def _abandon_run(self, writer_thread) -> None:
        """Stop waiting on interrupted phases; their daemon workers die with the process."""
        logger.warning("Run interrupted, abandoning running phases")
        self.metrics.stop_wall_timer()
        self.channel.close()
        writer_thread.join(INTERRUPT_WRITER_JOIN_SECONDS)

    def _snapshot(self, label: str) -> None:
        if self.host_monitor is not None:
            self.host_monitor.log_host_snapshot(label)
