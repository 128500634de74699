"""Credential factory for the Azure management API."""

import structlog
from azure.core.credentials import TokenCredential
from azure.identity import CertificateCredential, ClientSecretCredential, DefaultAzureCredential

from azops.core.exceptions import ConfigurationError
from azops.schemas.credentials import AzureCredentials

logger = structlog.get_logger()


def build_credential(credentials: AzureCredentials) -> TokenCredential:
    """
    Build an azure-identity credential from the supplied parameters.

    Args:
        credentials: Subscription, tenant, application id and secret/certificate

    Returns:
        CertificateCredential, ClientSecretCredential or DefaultAzureCredential

    Raises:
        ConfigurationError: If a service principal login lacks tenant or application id
    """
    if credentials.uses_service_principal:
        missing = [
            name
            for name, value in (
                ("tenant id", credentials.tenant_id),
                ("application id", credentials.client_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Service Principal login requires {' and '.join(missing)}. "
                f"Pass --tenant-id/--application-id or set AZURE_TENANT_ID/AZURE_CLIENT_ID."
            )

    if credentials.certificate_path:
        logger.debug("credentials.certificate", client_id=credentials.client_id)
        return CertificateCredential(
            tenant_id=credentials.tenant_id,
            client_id=credentials.client_id,
            certificate_path=credentials.certificate_path,
        )

    if credentials.client_secret:
        logger.debug("credentials.client_secret", client_id=credentials.client_id)
        return ClientSecretCredential(
            tenant_id=credentials.tenant_id,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
        )

    logger.debug("credentials.default")
    return DefaultAzureCredential()
