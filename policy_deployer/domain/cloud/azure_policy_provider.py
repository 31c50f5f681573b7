import json
import logging
from functools import wraps
from typing import Dict
from urllib.parse import urljoin

from .exceptions import (
    AuthenticationException,
    ConnectionException,
    UnknownServerException,
)
from .models import (
    AzureSession,
    DeploymentTarget,
    PolicyDefinitionCSPPayload,
    PolicySetDefinitionCSPPayload,
)
from .utils import get_cloud, make_auth_header

logger = logging.getLogger(__name__)


def log_and_raise_exceptions(func):
    """Wraps Azure policy API calls to catch `requests` exceptions,
    log them, and re-raise them as our CSP exceptions.

    The provider parameter below represents an AzurePolicyProvider class
    instance, i.e. `self`, since this decorator is applied to class methods.
    """

    @wraps(func)
    def wrapped_func(provider, *args, **kwargs):
        try:
            return func(provider, *args, **kwargs)

        except provider.sdk.requests.exceptions.ConnectionError:
            message = f"Connection Error calling {func.__name__}"
            logger.error(message, exc_info=1)
            raise ConnectionException(message)

        except provider.sdk.requests.exceptions.Timeout:
            message = f"Timeout Error calling {func.__name__}"
            logger.error(message, exc_info=1)
            raise ConnectionException(message)

        except provider.sdk.requests.exceptions.HTTPError as exc:
            exc_string = str(exc)
            status_code = getattr(exc.response, "status_code", None) or exc_string[:3]
            message = f"error calling {func.__name__}"

            log_format = "%s %s"
            log_values = [status_code, message]

            try:
                response_body = exc.response.json()
                if response_body:
                    log_format += "\n\nResponse Body:\n%s"
                    log_values.append(json.dumps(response_body))
                    exc_string = f"{exc_string}\n{json.dumps(response_body)}"
            # No response or body is not parsable to JSON
            except (AttributeError, ValueError):
                pass

            logger.error(log_format, *log_values)
            raise UnknownServerException(
                status_code, f"{message.capitalize()}. {exc_string}"
            )

    return wrapped_func


class AzureSDKProvider(object):
    def __init__(self, cloud_name="AzureCloud"):
        import requests

        self.cloud = get_cloud(cloud_name)
        self.requests = requests


class AzurePolicyProvider(object):
    """Creates or updates custom policy and policy set definitions through
    the Azure Resource Manager REST API.

    Authentication comes from the Azure CLI session the caller signed into;
    `session` identifies that account and is used for display and to pin
    the token request to the signed-in subscription.
    """

    def __init__(
        self, config, session: AzureSession, azure_cli=None, azure_sdk_provider=None
    ):
        self.config = config
        self.session = session
        self.api_version = config["AZURE_POLICY_API_VERSION"]
        self.timeout = config["AZURE_REQUEST_TIMEOUT"]

        if azure_cli is None:
            from policy_deployer.domain.session import AzureCLI

            self.azure_cli = AzureCLI(config["AZ_CLI_PATH"])
        else:
            self.azure_cli = azure_cli

        if azure_sdk_provider is None:
            self.sdk = AzureSDKProvider(config["AZURE_CLOUD"])
        else:
            self.sdk = azure_sdk_provider

        self._policy_session = None

    def _get_management_token(self):
        token = self.azure_cli.get_access_token(
            resource=self.sdk.cloud.endpoints.active_directory_resource_id,
            subscription=self.session.subscription_id,
        )
        if token is None:
            message = f"Failed to get a management token for tenant '{self.session.tenant_id}'"
            logger.error(message)
            raise AuthenticationException(message)
        return token

    def _get_policy_session(self):
        if self._policy_session is None:
            token = self._get_management_token()
            self._policy_session = self.sdk.requests.Session()
            self._policy_session.headers.update(make_auth_header(token))
        return self._policy_session

    def _put_definition(self, path: str, body: Dict) -> Dict:
        url = urljoin(self.sdk.cloud.endpoints.resource_manager, path)
        logger.debug("PUT %s", url)
        result = self._get_policy_session().put(
            url,
            params={"api-version": self.api_version},
            json=body,
            timeout=self.timeout,
        )
        result.raise_for_status()
        return result.json()

    @log_and_raise_exceptions
    def create_policy_definition(
        self, target: DeploymentTarget, payload: PolicyDefinitionCSPPayload
    ) -> Dict:
        """
        Create or update a custom policy definition at subscription or
        management group scope.

        https://docs.microsoft.com/en-us/rest/api/policy/policydefinitions/createorupdate
        https://docs.microsoft.com/en-us/rest/api/policy/policydefinitions/createorupdateatmanagementgroup
        Returns:
            The policy definition resource as returned by Azure
        """
        logger.info("Deploying policy definition '%s' to %s", payload.name, target)
        return self._put_definition(payload.definition_path(target), payload.body())

    @log_and_raise_exceptions
    def create_policy_set_definition(
        self, target: DeploymentTarget, payload: PolicySetDefinitionCSPPayload
    ) -> Dict:
        """
        Create or update a custom policy set (initiative) definition at
        subscription or management group scope.

        The API returns 201 on initial creation and 200 thereafter.

        https://docs.microsoft.com/en-us/rest/api/policy/policysetdefinitions/createorupdate
        https://docs.microsoft.com/en-us/rest/api/policy/policysetdefinitions/createorupdateatmanagementgroup
        """
        logger.info(
            "Deploying policy set definition '%s' to %s", payload.name, target
        )
        return self._put_definition(payload.definition_path(target), payload.body())
