"""Tests for concurrent probe execution and snapshot assembly."""
from __future__ import annotations

import sys
import threading
from unittest.mock import patch

import pytest

from inventory_tap.collector import (
    STATUS_DISABLED,
    STATUS_ERROR,
    STATUS_FAULT,
    STATUS_OK,
    STATUS_TIMEOUT,
    InventoryCollector,
    ProbeOutcome,
    snapshot_from_outcomes,
)
from inventory_tap.config import AppConfig, CollectorConfig
from inventory_tap.errors import PrivilegeInsufficient
from inventory_tap.models import CpuInfo, GpuInfo, MemoryInfo, Snapshot
from inventory_tap.probes import ALL_PROBES, Probe

from fakes import FakeSources


class CpuStub(Probe):
    category = "cpu"

    def fetch(self):
        return CpuInfo(name="Stub CPU", cores=8)


class GpuDenied(Probe):
    category = "gpu"

    def fetch(self):
        raise PrivilegeInsufficient("Access is denied")


class MemoryCrash(Probe):
    category = "memory"

    def fetch(self):
        raise ZeroDivisionError("division by zero")


class MemoryExits(Probe):
    category = "memory"

    def fetch(self):
        sys.exit(3)


class SlowDisk(Probe):
    category = "disk"
    release = threading.Event()

    def fetch(self):
        self.release.wait(5)
        return None


class ExtraStub(Probe):
    category = "extra"

    def fetch(self):
        return {"not": "a snapshot field"}


def _collector(probes, **collector_settings):
    config = AppConfig(collector=CollectorConfig(**collector_settings))
    return InventoryCollector(config, sources=FakeSources(), probes=probes)


class TestCollectOutcomes:
    def test_failures_are_isolated(self):
        outcomes = _collector([CpuStub, GpuDenied, MemoryCrash]).collect_outcomes()
        assert outcomes["cpu"].status == STATUS_OK
        assert outcomes["cpu"].record.name == "Stub CPU"
        assert outcomes["gpu"].status == STATUS_ERROR
        assert outcomes["gpu"].error == "Access is denied"
        assert outcomes["memory"].status == STATUS_FAULT
        assert outcomes["memory"].error == "ZeroDivisionError: division by zero"
        assert not outcomes["memory"].ok

    def test_exit_is_a_fault(self):
        snapshot = _collector([CpuStub, MemoryExits]).collect()
        assert snapshot.cpu == CpuInfo(name="Stub CPU", cores=8)
        assert snapshot.memory is None
        outcome = _collector([MemoryExits]).collect_outcomes()["memory"]
        assert outcome.status == STATUS_FAULT
        assert outcome.error == "SystemExit: 3"

    def test_probe_order(self):
        outcomes = _collector([MemoryCrash, CpuStub, GpuDenied]).collect_outcomes()
        assert list(outcomes) == ["memory", "cpu", "gpu"]

    def test_disabled_probes(self):
        outcomes = _collector(
            [CpuStub, GpuDenied], disabled_probes=["gpu"]
        ).collect_outcomes()
        assert outcomes["gpu"] == ProbeOutcome("gpu", status=STATUS_DISABLED)
        assert outcomes["cpu"].ok

    def test_all_disabled(self):
        outcomes = _collector([CpuStub], disabled_probes=["cpu"]).collect_outcomes()
        assert outcomes["cpu"].status == STATUS_DISABLED

    def test_timeout(self):
        SlowDisk.release.clear()
        try:
            outcomes = _collector(
                [CpuStub, SlowDisk], probe_timeout_s=0.2
            ).collect_outcomes()
        finally:
            SlowDisk.release.set()
        assert outcomes["cpu"].ok
        assert outcomes["disk"].status == STATUS_TIMEOUT
        assert outcomes["disk"].error == "Timed out"
        assert outcomes["disk"].elapsed_s >= 0.1

    def test_single_worker(self):
        outcomes = _collector([CpuStub, GpuDenied], max_workers=1).collect_outcomes()
        assert [o.status for o in outcomes.values()] == [STATUS_OK, STATUS_ERROR]

    def test_elapsed_recorded(self):
        outcome = _collector([CpuStub]).collect_outcomes()["cpu"]
        assert outcome.elapsed_s >= 0.0


@pytest.mark.integration
class TestCollect:
    def test_failed_categories_are_none(self):
        snapshot = _collector([CpuStub, GpuDenied, MemoryCrash]).collect()
        assert snapshot.cpu == CpuInfo(name="Stub CPU", cores=8)
        assert snapshot.gpu is None
        assert snapshot.memory is None
        assert snapshot.computer is None

    def test_unknown_categories_dropped(self):
        outcomes = {
            "cpu": ProbeOutcome("cpu", record=CpuInfo()),
            "extra": ProbeOutcome("extra", record={"x": 1}),
        }
        assert snapshot_from_outcomes(outcomes) == Snapshot(cpu=CpuInfo())

    def test_extra_probe_never_reaches_snapshot(self):
        snapshot = _collector([ExtraStub, CpuStub]).collect()
        assert snapshot.cpu is not None

    @patch("psutil.process_iter", return_value=[])
    def test_every_probe_against_empty_sources(self, mock_iter):
        collector = InventoryCollector(AppConfig(), sources=FakeSources())
        outcomes = collector.collect_outcomes()
        assert list(outcomes) == Snapshot.categories()
        # No source answers, so only probes with per-item fallbacks succeed
        assert outcomes["computer"].status == STATUS_ERROR
        assert outcomes["environment"].status == STATUS_ERROR
        assert outcomes["security"].ok
        assert outcomes["software"].ok
        assert outcomes["event_log"].ok
        assert outcomes["process"].record.processes == []
        assert not any(o.status == STATUS_FAULT for o in outcomes.values())

        snapshot = snapshot_from_outcomes(outcomes)
        assert snapshot.computer is None
        assert snapshot.security is not None


def test_all_probes_cover_snapshot():
    assert [probe.category for probe in ALL_PROBES] == Snapshot.categories()


@pytest.mark.parametrize("status", [STATUS_ERROR, STATUS_FAULT, STATUS_TIMEOUT, STATUS_DISABLED])
def test_outcome_not_ok(status):
    assert not ProbeOutcome("gpu", status=status).ok
    assert ProbeOutcome("gpu", record=GpuInfo()).ok
    assert ProbeOutcome("memory", record=MemoryInfo()).status == STATUS_OK
