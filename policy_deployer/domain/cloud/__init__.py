from .azure_policy_provider import AzurePolicyProvider, AzureSDKProvider
from .exceptions import (
    AuthenticationException,
    ConnectionException,
    DefinitionClassificationException,
    DefinitionParseException,
    GeneralCSPException,
    UnknownServerException,
)
from .models import (
    AzureSession,
    DeploymentTarget,
    PolicyDefinitionCSPPayload,
    PolicySetDefinitionCSPPayload,
)
