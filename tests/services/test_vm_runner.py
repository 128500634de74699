"""Tests for the per-VM fan-out runner and target resolution."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from structlog.testing import capture_logs

from azops.schemas.vm import POWER_STATE_RUNNING, PowerAction, VMReference
from azops.services.vm_runner import resolve_targets, run_power_action


def _vms(*names: str) -> list[VMReference]:
    return [VMReference(name=name, resource_group="rg-prod") for name in names]


class TestResolveTargets:
    """Test resolving the VMs a run operates on."""

    def test_explicit_names_keep_order_and_drop_duplicates(self):
        """Test that repeated --vm-name values are collapsed in order."""
        factory = MagicMock()

        vms = resolve_targets(factory, "rg-prod", ["b", "a", "b", " ", "c"])

        assert [vm.name for vm in vms] == ["b", "a", "c"]
        assert all(vm.resource_group == "rg-prod" for vm in vms)
        factory.assert_not_called()

    def test_lists_resource_group_when_no_names(self, make_provider):
        """Test that every VM of the resource group is targeted by default."""
        provider = make_provider(vms={"rg-prod": ["vm-1", "vm-2"]})

        vms = resolve_targets(lambda: provider, "rg-prod", [])

        assert [vm.name for vm in vms] == ["vm-1", "vm-2"]

    def test_empty_resource_group(self, make_provider):
        """Test that an empty resource group yields no targets."""
        assert resolve_targets(make_provider, "rg-empty") == []


class TestRunPowerAction:
    """Test fan-out of pollers across VMs."""

    def test_results_follow_input_order(self, make_provider, sleep):
        """Test that results are returned in input order regardless of completion order."""
        provider = make_provider(
            states={
                "vm-a": ["VM deallocated", "VM starting", POWER_STATE_RUNNING],
                "vm-b": [POWER_STATE_RUNNING],
                "vm-c": ["VM deallocated", POWER_STATE_RUNNING],
            }
        )

        summary = run_power_action(
            _vms("vm-a", "vm-b", "vm-c"),
            PowerAction.START,
            lambda: provider,
            max_workers=3,
            sleep=sleep,
        )

        assert [r.vm.name for r in summary.results] == ["vm-a", "vm-b", "vm-c"]
        assert [r.attempts for r in summary.results] == [2, 0, 1]
        assert summary.all_succeeded is True

    def test_each_job_gets_its_own_provider(self, make_provider, sleep):
        """Test that the factory is called once per VM."""
        built = []

        def factory():
            provider = make_provider(states={"vm-a": [POWER_STATE_RUNNING], "vm-b": [POWER_STATE_RUNNING]})
            built.append(provider)
            return provider

        run_power_action(_vms("vm-a", "vm-b"), PowerAction.START, factory, max_workers=2, sleep=sleep)

        assert len(built) == 2
        assert built[0] is not built[1]

    def test_crash_in_one_job_is_isolated(self, make_provider, sleep):
        """Test that an unexpected exception fails only the VM that raised it."""
        healthy = make_provider(states={"vm-ok": ["VM deallocated", POWER_STATE_RUNNING]})
        lock = threading.Lock()
        calls = {"count": 0}

        def factory():
            with lock:
                calls["count"] += 1
                first = calls["count"] == 1
            if first:
                raise RuntimeError("token endpoint unreachable")
            return healthy

        with capture_logs() as logs:
            summary = run_power_action(
                _vms("vm-broken", "vm-ok"),
                PowerAction.START,
                factory,
                max_workers=1,
                sleep=sleep,
            )

        broken, ok = summary.results
        assert broken.succeeded is False
        assert "token endpoint unreachable" in broken.message
        assert ok.succeeded is True
        assert [r.vm.name for r in summary.failed] == ["vm-broken"]
        assert any(entry["event"] == "runner.job_crashed" for entry in logs)

    def test_crash_isolated_in_thread_pool(self, make_provider, sleep):
        """Test failure isolation when jobs run concurrently."""
        provider = make_provider(states={"vm-ok": [POWER_STATE_RUNNING]})
        original_get = provider.get_power_state

        def get_power_state(vm):
            if vm.name == "vm-broken":
                raise KeyError("instanceView")
            return original_get(vm)

        provider.get_power_state = get_power_state

        summary = run_power_action(
            _vms("vm-broken", "vm-ok"),
            PowerAction.START,
            lambda: provider,
            max_workers=2,
            sleep=sleep,
        )

        assert [r.succeeded for r in summary.results] == [False, True]
        assert "KeyError" in summary.results[0].message

    def test_mixed_outcomes_do_not_affect_each_other(self, make_provider, sleep):
        """Test that an exhausted VM does not change the outcome of the others."""
        provider = make_provider(
            states={
                "vm-stuck": ["VM deallocated"],
                "vm-fine": ["VM deallocated", POWER_STATE_RUNNING],
            }
        )

        summary = run_power_action(
            _vms("vm-stuck", "vm-fine"),
            PowerAction.START,
            lambda: provider,
            max_attempts=3,
            retry_delay=1,
            max_workers=2,
            sleep=sleep,
        )

        stuck, fine = summary.results
        assert stuck.succeeded is False and stuck.attempts == 3
        assert fine.succeeded is True and fine.attempts == 1
        assert summary.all_succeeded is False

    def test_no_targets(self, make_provider, sleep):
        """Test that an empty VM list returns an empty summary and warns."""
        with capture_logs() as logs:
            summary = run_power_action([], PowerAction.STOP, make_provider, sleep=sleep)

        assert summary.results == []
        assert summary.action is PowerAction.STOP
        assert logs[0]["event"] == "runner.no_targets"


class TestInterruptedFanOut:
    """Test Ctrl-C while jobs are queued behind a full thread pool."""

    def test_interrupt_cancels_queued_vms(self, make_provider, sleep):
        """Test that VMs still waiting for a worker are never touched after an interrupt."""
        provider = make_provider()
        release = threading.Event()
        in_flight = threading.Semaphore(0)
        finished = threading.Semaphore(0)
        queried = []

        def get_power_state(vm):
            queried.append(vm.name)
            in_flight.release()
            release.wait(timeout=5)
            finished.release()
            return POWER_STATE_RUNNING

        provider.get_power_state = get_power_state

        def interrupted(futures):
            # Both workers are busy, the remaining VMs sit in the queue
            for _ in range(2):
                assert in_flight.acquire(timeout=5)
            raise KeyboardInterrupt

        with capture_logs() as logs, patch("azops.services.vm_runner.as_completed", interrupted):
            with pytest.raises(KeyboardInterrupt):
                run_power_action(
                    _vms(*(f"vm-{i}" for i in range(6))),
                    PowerAction.START,
                    lambda: provider,
                    max_workers=2,
                    sleep=sleep,
                )

        release.set()
        for _ in range(2):
            assert finished.acquire(timeout=5)

        assert sorted(queried) == ["vm-0", "vm-1"]
        assert provider.calls == []
        interrupted_event = next(entry for entry in logs if entry["event"] == "runner.interrupted")
        assert interrupted_event["cancelled"] == 4
