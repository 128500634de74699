"""Error types raised by azops."""


class AzOpsError(Exception):
    """Base error for everything a script should report and exit on."""

    pass


class ConfigurationError(AzOpsError):
    """A required parameter is missing or has an invalid value."""

    pass


class AzureOperationError(AzOpsError):
    """A call against the Azure management API failed."""

    def __init__(
        self,
        message: str,
        operation: str,
        vm_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.vm_name = vm_name
        self.status_code = status_code
        super().__init__(message)


class AzureAuthenticationError(AzureOperationError):
    """The credential was rejected by Azure AD."""

    pass


class VMNotFoundError(AzureOperationError):
    """The virtual machine (or its resource group) does not exist."""

    pass
