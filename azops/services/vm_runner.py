"""Fan-out of one lifecycle poller per VM."""

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable

import structlog

from azops.providers.base import ComputeProviderBase
from azops.schemas.vm import PowerAction, RunSummary, VMOperationResult, VMReference
from azops.services.vm_lifecycle import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    VMLifecyclePoller,
)

logger = structlog.get_logger()

ProviderFactory = Callable[[], ComputeProviderBase]


def resolve_targets(
    provider_factory: ProviderFactory,
    resource_group: str,
    vm_names: list[str] | None = None,
) -> list[VMReference]:
    """
    Resolve the VMs a run operates on.

    Args:
        provider_factory: Builds the provider used to list the resource
            group; not called when names are given
        resource_group: Resource group holding the VMs
        vm_names: Explicit VM names; duplicates are dropped, order is kept

    Returns:
        VM references to operate on
    """
    if vm_names:
        unique_names = list(dict.fromkeys(name.strip() for name in vm_names if name.strip()))
        return [VMReference(name=name, resource_group=resource_group) for name in unique_names]

    vms = provider_factory().list_vms(resource_group)
    logger.info("runner.resolved_resource_group", resource_group=resource_group, vm_count=len(vms))
    return vms


def _crashed_result(vm: VMReference, action: PowerAction, exc: Exception) -> VMOperationResult:
    return VMOperationResult(
        vm=vm,
        action=action,
        succeeded=False,
        attempts=0,
        final_state=None,
        message=f"Failed to {action.value} VM {vm.name}: {type(exc).__name__}: {exc}",
    )


def run_power_action(
    vms: list[VMReference],
    action: PowerAction,
    provider_factory: ProviderFactory,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    max_workers: int = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """
    Drive every VM to the target state of ``action``.

    Each VM gets its own job with its own provider (and so its own
    credential and client). Jobs share no state; an unexpected exception in
    one job becomes a failed result for that VM only.

    Args:
        vms: Virtual machines to operate on
        action: START or STOP
        provider_factory: Builds a fresh provider for each job
        max_attempts: Attempt ceiling per VM
        retry_delay: Fixed delay between attempts, in seconds
        max_workers: Number of VMs processed concurrently (1 = sequential)
        sleep: Sleep function passed to each poller

    Returns:
        RunSummary with results in the same order as ``vms``
    """
    summary = RunSummary(action=action)
    if not vms:
        logger.warning("runner.no_targets", action=action.value)
        return summary

    workers = max(1, min(max_workers, len(vms)))
    logger.info("runner.start", action=action.value, vm_count=len(vms), max_workers=workers)
    started = time.perf_counter()

    def job(vm: VMReference) -> VMOperationResult:
        provider = provider_factory()
        poller = VMLifecyclePoller(provider, max_attempts=max_attempts, retry_delay=retry_delay, sleep=sleep)
        return poller.ensure_state(vm, action)

    results: dict[int, VMOperationResult] = {}

    if workers == 1:
        for index, vm in enumerate(vms):
            try:
                results[index] = job(vm)
            except Exception as e:
                logger.exception("runner.job_crashed", vm=vm.name, action=action.value)
                results[index] = _crashed_result(vm, action, e)
    else:
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"azops-{action.value}")
        futures: dict[Future, int] = {}
        try:
            for index, vm in enumerate(vms):
                futures[executor.submit(job, vm)] = index
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    logger.exception("runner.job_crashed", vm=vms[index].name, action=action.value)
                    results[index] = _crashed_result(vms[index], action, e)
        except KeyboardInterrupt:
            # Queued VMs are dropped; jobs already running finish in the background
            executor.shutdown(wait=False, cancel_futures=True)
            logger.warning(
                "runner.interrupted",
                action=action.value,
                completed=len(results),
                cancelled=sum(future.cancelled() for future in futures),
            )
            raise
        executor.shutdown(wait=True)

    summary.results = [results[index] for index in range(len(vms))]

    logger.info(
        "runner.complete",
        action=action.value,
        succeeded=len(summary.succeeded),
        failed=len(summary.failed),
        elapsed_seconds=round(time.perf_counter() - started, 1),
    )
    return summary
