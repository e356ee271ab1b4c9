from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
import logging
import time
from typing import Any, Iterable

from inventory_tap.config import AppConfig
from inventory_tap.errors import InventoryError
from inventory_tap.models import Snapshot
from inventory_tap.probes import ALL_PROBES, Probe
from inventory_tap.sources import Sources

STATUS_OK = "ok"
STATUS_ERROR = "error"
STATUS_FAULT = "fault"
STATUS_TIMEOUT = "timeout"
STATUS_DISABLED = "disabled"


@dataclass(frozen=True)
class ProbeOutcome:
    """What one probe produced: a record, or the reason there is none."""

    category: str
    record: Any = None
    status: str = STATUS_OK
    error: str | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


class InventoryCollector:
    """Run every probe concurrently and assemble a ``Snapshot``.

    A probe that fails, crashes or overruns ``probe_timeout_s`` only loses its
    own category; ``collect()`` itself never raises.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        sources: Sources | None = None,
        probes: Iterable[type[Probe]] | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.sources = sources or Sources(self.config.collector)
        self.probes = list(probes) if probes is not None else list(ALL_PROBES)
        self.logger = logging.getLogger(self.__class__.__name__)

    def collect(self) -> Snapshot:
        return snapshot_from_outcomes(self.collect_outcomes())

    def collect_outcomes(self) -> dict[str, ProbeOutcome]:
        """Outcomes keyed by category, in probe order rather than completion order."""
        settings = self.config.collector
        disabled = set(settings.disabled_probes)
        scheduled = [probe for probe in self.probes if probe.category not in disabled]
        workers = settings.max_workers or max(1, len(scheduled))

        self.logger.debug(
            "Running %d probes on %d workers (%d disabled)",
            len(scheduled),
            workers,
            len(self.probes) - len(scheduled),
        )
        started = time.perf_counter()
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe")
        try:
            futures: dict[str, Future[ProbeOutcome]] = {
                probe.category: executor.submit(self._run_probe, probe)
                for probe in scheduled
            }
            done, not_done = wait(futures.values(), timeout=settings.probe_timeout_s)
        finally:
            # Overrunning probes keep their threads; nothing waits for them
            executor.shutdown(wait=False, cancel_futures=True)

        if not_done:
            self.logger.warning(
                "%d probes did not finish within %ss", len(not_done), settings.probe_timeout_s
            )

        outcomes: dict[str, ProbeOutcome] = {}
        for probe in self.probes:
            future = futures.get(probe.category)
            if future is None:
                outcomes[probe.category] = ProbeOutcome(probe.category, status=STATUS_DISABLED)
            elif future in done:
                outcomes[probe.category] = self._collect_result(probe.category, future)
            else:
                outcomes[probe.category] = ProbeOutcome(
                    probe.category,
                    status=STATUS_TIMEOUT,
                    error="Timed out",
                    elapsed_s=time.perf_counter() - started,
                )
        self.logger.info(
            "Collected %d of %d categories in %.2fs",
            sum(outcome.ok for outcome in outcomes.values()),
            len(outcomes),
            time.perf_counter() - started,
        )
        return outcomes

    def _collect_result(self, category: str, future: Future[ProbeOutcome]) -> ProbeOutcome:
        try:
            return future.result()
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            self.logger.warning("%s probe terminated: %r", category, exc)
            return ProbeOutcome(
                category, status=STATUS_FAULT, error=f"{exc.__class__.__name__}: {exc}"
            )

    def _run_probe(self, probe_cls: type[Probe]) -> ProbeOutcome:
        category = probe_cls.category
        started = time.perf_counter()
        try:
            record = probe_cls(self.sources, self.config).fetch()
        except InventoryError as exc:
            elapsed = time.perf_counter() - started
            self.logger.info("%s probe failed: %s", category, exc)
            return ProbeOutcome(category, status=STATUS_ERROR, error=str(exc), elapsed_s=elapsed)
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            elapsed = time.perf_counter() - started
            self.logger.warning("%s probe crashed: %s", category, exc)
            self.logger.debug("%s probe traceback", category, exc_info=True)
            return ProbeOutcome(
                category,
                status=STATUS_FAULT,
                error=f"{exc.__class__.__name__}: {exc}",
                elapsed_s=elapsed,
            )
        elapsed = time.perf_counter() - started
        self.logger.debug("%s probe finished in %.2fs", category, elapsed)
        return ProbeOutcome(category, record=record, elapsed_s=elapsed)


def snapshot_from_outcomes(outcomes: dict[str, ProbeOutcome]) -> Snapshot:
    categories = set(Snapshot.categories())
    return Snapshot(
        **{
            category: outcome.record if outcome.ok else None
            for category, outcome in outcomes.items()
            if category in categories
        }
    )
