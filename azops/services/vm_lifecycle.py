"""Bounded retry-and-poll loop driving a VM to a target power state.

Query the power state, issue the start or deallocate call, sleep a fixed
delay between attempts and give up after a fixed number of attempts.
Exhaustion is reported in the returned result and logged once; it never
raises.
"""

import time
from typing import Callable

import structlog

from azops.core.exceptions import AzureAuthenticationError, AzureOperationError, VMNotFoundError
from azops.providers.base import ComputeProviderBase
from azops.schemas.vm import PowerAction, VMOperationResult, VMReference

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 60.0

# Errors that end the loop immediately
NON_RETRYABLE_ERRORS = (AzureAuthenticationError, VMNotFoundError)


class VMLifecyclePoller:
    """Drive a single VM to the target state of a power action."""

    def __init__(
        self,
        provider: ComputeProviderBase,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the poller.

        Args:
            provider: Compute provider used for state queries and power calls
            max_attempts: Maximum number of state-changing calls per VM
            retry_delay: Fixed delay in seconds between attempts
            sleep: Sleep function (injected by tests)
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.provider = provider
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    def ensure_state(self, vm: VMReference, action: PowerAction) -> VMOperationResult:
        """
        Bring ``vm`` to the target state of ``action``.

        A VM already in the target state gets no state-changing call. Otherwise
        up to ``max_attempts`` calls are issued, each followed by a state query,
        with ``retry_delay`` seconds of sleep before every attempt but the first.

        Args:
            vm: Virtual machine to operate on
            action: START or STOP

        Returns:
            Result describing success or failure; never raises on exhaustion
        """
        target = action.target_state
        log = logger.bind(vm=vm.name, resource_group=vm.resource_group, action=action.value)

        try:
            current = self._query_state(vm, log)
        except NON_RETRYABLE_ERRORS as e:
            return self._give_up(vm, action, 0, None, str(e), log)

        if current == target:
            log.info("vm.already_in_state", power_state=current)
            return self._result(
                vm, action, True, 0, current,
                f"VM {vm.name} is already {action.past_tense} ({current})",
            )

        attempts = 0
        while attempts < self.max_attempts:
            if attempts > 0:
                log.info("vm.retry_wait", next_attempt=attempts + 1, delay_seconds=self.retry_delay)
                self._sleep(self.retry_delay)

            attempts += 1
            try:
                self.provider.apply_action(vm, action)
            except NON_RETRYABLE_ERRORS as e:
                return self._give_up(vm, action, attempts, current, str(e), log)
            except AzureOperationError as e:
                log.warning(f"vm.{action.value}_attempt_failed", attempt=attempts, error=str(e))

            try:
                current = self._query_state(vm, log)
            except NON_RETRYABLE_ERRORS as e:
                return self._give_up(vm, action, attempts, current, str(e), log)

            if current == target:
                log.info(f"vm.{action.value}_succeeded", attempts=attempts, power_state=current)
                return self._result(
                    vm, action, True, attempts, current,
                    f"VM {vm.name} {action.past_tense} successfully after {attempts} attempt(s)",
                )

            log.info("vm.not_in_target_state", attempt=attempts, power_state=current, target=target)

        return self._give_up(
            vm, action, attempts, current,
            f"still '{current}' after {attempts} attempts",
            log,
        )

    def _query_state(self, vm: VMReference, log) -> str | None:
        """Query the power state; transient API errors yield None."""
        try:
            return self.provider.get_power_state(vm)
        except NON_RETRYABLE_ERRORS:
            raise
        except AzureOperationError as e:
            log.warning("vm.power_state_unavailable", error=str(e))
            return None

    def _give_up(
        self,
        vm: VMReference,
        action: PowerAction,
        attempts: int,
        current: str | None,
        reason: str,
        log,
    ) -> VMOperationResult:
        log.error(
            f"vm.{action.value}_failed",
            attempts=attempts,
            max_attempts=self.max_attempts,
            power_state=current,
            reason=reason,
        )
        return self._result(
            vm, action, False, attempts, current,
            f"Failed to {action.value} VM {vm.name} after {attempts} attempt(s): {reason}",
        )

    @staticmethod
    def _result(
        vm: VMReference,
        action: PowerAction,
        succeeded: bool,
        attempts: int,
        final_state: str | None,
        message: str,
    ) -> VMOperationResult:
        return VMOperationResult(
            vm=vm.model_copy(update={"power_state": final_state}),
            action=action,
            succeeded=succeeded,
            attempts=attempts,
            final_state=final_state,
            message=message,
        )
