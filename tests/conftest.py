"""Pytest configuration and fixtures for azops tests."""

from typing import Callable

import pytest
import structlog

from azops.core.config import Settings
from azops.providers.base import ComputeProviderBase
from azops.schemas.vm import VMReference


class FakeComputeProvider(ComputeProviderBase):
    """
    In-memory compute provider.

    ``states`` maps a VM name to the sequence of power states returned by
    successive ``get_power_state`` calls; the last entry repeats. An entry
    that is an exception instance is raised instead. ``action_errors`` works
    the same way for start/deallocate calls (None = call succeeds).
    """

    def __init__(
        self,
        states: dict[str, list] | None = None,
        action_errors: dict[str, list] | None = None,
        vms: dict[str, list[str]] | None = None,
    ) -> None:
        self.states = {name: list(seq) for name, seq in (states or {}).items()}
        self.action_errors = {name: list(seq) for name, seq in (action_errors or {}).items()}
        self.vms = vms or {}
        self.calls: list[tuple[str, str]] = []
        self.state_queries: list[str] = []

    @staticmethod
    def _next(sequence: list, default):
        if not sequence:
            return default
        value = sequence[0] if len(sequence) == 1 else sequence.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def get_power_state(self, vm: VMReference) -> str:
        self.state_queries.append(vm.name)
        return self._next(self.states.get(vm.name, []), "VM stopped")

    def start_vm(self, vm: VMReference) -> None:
        self.calls.append(("start", vm.name))
        self._next(self.action_errors.get(vm.name, []), None)

    def deallocate_vm(self, vm: VMReference) -> None:
        self.calls.append(("deallocate", vm.name))
        self._next(self.action_errors.get(vm.name, []), None)

    def list_vms(self, resource_group: str) -> list[VMReference]:
        return [
            VMReference(name=name, resource_group=resource_group)
            for name in self.vms.get(resource_group, [])
        ]


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore structlog defaults so configuration never leaks between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def vm() -> VMReference:
    return VMReference(name="vm-web-01", resource_group="rg-prod")


@pytest.fixture
def make_provider() -> Callable[..., FakeComputeProvider]:
    """Factory fixture building FakeComputeProvider instances."""
    return FakeComputeProvider


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        APP_ENV="test",
        AZURE_SUBSCRIPTION_ID="00000000-0000-0000-0000-000000000001",
        AZURE_TENANT_ID="",
        AZURE_CLIENT_ID="",
        AZURE_CLIENT_SECRET="",
        AZURE_CLIENT_CERTIFICATE_PATH="",
        VM_MAX_ATTEMPTS=5,
        VM_RETRY_DELAY_SECONDS=60.0,
        SENTRY_DSN="",
    )
