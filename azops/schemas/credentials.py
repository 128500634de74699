"""Azure credential schema."""

from pydantic import BaseModel, Field


class AzureCredentials(BaseModel):
    """
    Parameters used to authenticate against the Azure management API.

    Either a client secret or a certificate path selects a service principal
    login. With neither, the ambient identity (managed identity, az login,
    environment) is used.
    """

    subscription_id: str = Field(..., min_length=1, description="Azure Subscription ID (GUID)")
    tenant_id: str | None = Field(default=None, description="Azure AD Tenant ID (GUID)")
    client_id: str | None = Field(
        default=None, description="Service Principal Application/Client ID (GUID)"
    )
    client_secret: str | None = Field(
        default=None, repr=False, description="Service Principal Client Secret"
    )
    certificate_path: str | None = Field(
        default=None, description="Path to a PEM or PKCS12 certificate for the Service Principal"
    )

    @property
    def uses_service_principal(self) -> bool:
        """True when a secret or certificate was supplied."""
        return bool(self.client_secret or self.certificate_path)
