"""Base abstract class for compute provider implementations."""

from abc import ABC, abstractmethod

from azops.schemas.vm import PowerAction, VMReference


class ComputeProviderBase(ABC):
    """
    Abstract base class for compute providers.

    The lifecycle poller only depends on this interface, so providers can be
    swapped (or faked in tests) without touching the retry logic.
    """

    @abstractmethod
    def get_power_state(self, vm: VMReference) -> str:
        """
        Get the current power state of a virtual machine.

        Args:
            vm: Virtual machine to query

        Returns:
            Provider-reported power state (e.g. "VM running")
        """
        pass

    @abstractmethod
    def start_vm(self, vm: VMReference) -> None:
        """Start a virtual machine and wait for the provider operation to finish."""
        pass

    @abstractmethod
    def deallocate_vm(self, vm: VMReference) -> None:
        """Stop and deallocate a virtual machine, waiting for the operation to finish."""
        pass

    @abstractmethod
    def list_vms(self, resource_group: str) -> list[VMReference]:
        """
        List all virtual machines in a resource group.

        Args:
            resource_group: Resource group name

        Returns:
            VM references (power state not populated)
        """
        pass

    def apply_action(self, vm: VMReference, action: PowerAction) -> None:
        """Issue the state-changing call matching ``action``."""
        if action is PowerAction.START:
            self.start_vm(vm)
        else:
            self.deallocate_vm(vm)
