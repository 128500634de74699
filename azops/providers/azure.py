"""Azure compute provider backed by azure-mgmt-compute."""

from typing import NoReturn

import structlog
from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
)
from azure.mgmt.compute import ComputeManagementClient

from azops.core.exceptions import (
    AzureAuthenticationError,
    AzureOperationError,
    VMNotFoundError,
)
from azops.providers.base import ComputeProviderBase
from azops.schemas.vm import VMReference

logger = structlog.get_logger()

POWER_STATE_PREFIX = "PowerState/"
UNKNOWN_POWER_STATE = "unknown"


def _raise_operation_error(exc: Exception, operation: str, vm_name: str | None) -> NoReturn:
    """
    Translate an azure-core exception into the azops error taxonomy.

    Args:
        exc: Exception raised by the SDK
        operation: Name of the operation that failed (e.g. 'start')
        vm_name: Virtual machine involved, if any

    Raises:
        AzureAuthenticationError: Credentials were rejected
        VMNotFoundError: VM or resource group does not exist
        AzureOperationError: Any other API error
    """
    target = f"VM '{vm_name}'" if vm_name else "resource group"

    if isinstance(exc, ClientAuthenticationError):
        raise AzureAuthenticationError(
            f"Authentication failed during {operation} of {target}. "
            f"Please verify tenant, application id and secret/certificate. Error: {exc}",
            operation=operation,
            vm_name=vm_name,
            status_code=getattr(exc, "status_code", None),
        ) from exc

    status_code = getattr(exc, "status_code", None)
    if isinstance(exc, ResourceNotFoundError) or status_code == 404:
        raise VMNotFoundError(
            f"Not found during {operation}: {target}. "
            f"Please verify the resource group and VM name.",
            operation=operation,
            vm_name=vm_name,
            status_code=status_code,
        ) from exc

    if isinstance(exc, HttpResponseError) and status_code == 403:
        raise AzureOperationError(
            f"Access denied during {operation} of {target}. "
            f"Ensure the Service Principal has 'Virtual Machine Contributor' on the resource group.",
            operation=operation,
            vm_name=vm_name,
            status_code=status_code,
        ) from exc

    raise AzureOperationError(
        f"Azure API error during {operation} of {target} (status {status_code}): {exc}",
        operation=operation,
        vm_name=vm_name,
        status_code=status_code,
    ) from exc


class AzureComputeProvider(ComputeProviderBase):
    """
    Azure compute provider.

    Wraps ``ComputeManagementClient.virtual_machines``. Long-running
    operations (start, deallocate) are waited on before returning.
    """

    def __init__(
        self,
        credential: TokenCredential,
        subscription_id: str,
        client: ComputeManagementClient | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            credential: azure-identity credential
            subscription_id: Azure Subscription ID
            client: Pre-built compute client (tests inject a mock here)
        """
        self.subscription_id = subscription_id
        self.client = client or ComputeManagementClient(credential, subscription_id)

    def get_power_state(self, vm: VMReference) -> str:
        try:
            instance_view = self.client.virtual_machines.instance_view(
                resource_group_name=vm.resource_group,
                vm_name=vm.name,
            )
        except AzureError as e:
            _raise_operation_error(e, "get_power_state", vm.name)

        power_state = UNKNOWN_POWER_STATE
        for status in instance_view.statuses or []:
            if status.code and status.code.startswith(POWER_STATE_PREFIX):
                power_state = status.display_status or status.code
        return power_state

    def start_vm(self, vm: VMReference) -> None:
        logger.debug("azure.begin_start", vm=vm.name, resource_group=vm.resource_group)
        try:
            poller = self.client.virtual_machines.begin_start(
                resource_group_name=vm.resource_group,
                vm_name=vm.name,
            )
            poller.result()
        except AzureError as e:
            _raise_operation_error(e, "start", vm.name)

    def deallocate_vm(self, vm: VMReference) -> None:
        logger.debug("azure.begin_deallocate", vm=vm.name, resource_group=vm.resource_group)
        try:
            poller = self.client.virtual_machines.begin_deallocate(
                resource_group_name=vm.resource_group,
                vm_name=vm.name,
            )
            poller.result()
        except AzureError as e:
            _raise_operation_error(e, "deallocate", vm.name)

    def list_vms(self, resource_group: str) -> list[VMReference]:
        try:
            vms = list(self.client.virtual_machines.list(resource_group_name=resource_group))
        except AzureError as e:
            _raise_operation_error(e, "list", None)

        return [VMReference(name=vm.name, resource_group=resource_group) for vm in vms]
