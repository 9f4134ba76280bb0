from app.identity.models import DesiredIdentityState, DesiredUser, ProvisioningReport
from app.identity.ports import IdentityProvisionerPort, IdentityStoreError, IdentityStorePort

__all__ = [
    "DesiredIdentityState",
    "DesiredUser",
    "IdentityProvisionerPort",
    "IdentityStoreError",
    "IdentityStorePort",
    "ProvisioningReport",
]
