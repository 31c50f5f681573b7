import json
import logging
import subprocess
from typing import Dict, Optional

import click

from .cloud.exceptions import AuthenticationException
from .cloud.models import AzureSession

logger = logging.getLogger(__name__)

ESCAPE_KEY = "\x1b"


class AzureCLI(object):
    """Thin wrapper over the `az` executable.

    The Azure CLI owns sign-in and the token cache; this class only asks it
    for the current account and for access tokens.
    """

    def __init__(self, executable="az"):
        self.executable = executable

    def _run(self, *args, capture_stderr=True) -> subprocess.CompletedProcess:
        cmd = [self.executable, *args, "--output", "json"]
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE if capture_stderr else None,
                text=True,
            )
        except FileNotFoundError:
            raise AuthenticationException(
                f"Azure CLI executable '{self.executable}' was not found"
            )

    def account_show(self) -> Optional[Dict]:
        result = self._run("account", "show")
        if result.returncode != 0:
            logger.debug(
                "No active Azure CLI session: %s", (result.stderr or "").strip()
            )
            return None
        return json.loads(result.stdout)

    def login(self) -> Dict:
        # stderr stays attached to the terminal so the browser/device code prompt shows
        result = self._run("login", capture_stderr=False)
        if result.returncode != 0:
            raise AuthenticationException("interactive sign-in failed")

        account = self.account_show()
        if account is None:
            raise AuthenticationException("no account is active after sign-in")
        return account

    def logout(self) -> int:
        result = self._run("logout")
        if result.returncode != 0:
            logger.warning("Sign-out failed: %s", (result.stderr or "").strip())
        return result.returncode

    def get_access_token(self, resource: str, subscription: str = None) -> Optional[str]:
        args = ["account", "get-access-token", "--resource", resource]
        if subscription:
            args += ["--subscription", subscription]

        result = self._run(*args)
        if result.returncode != 0:
            logger.error(
                "Could not get an access token for %s: %s",
                resource,
                (result.stderr or "").strip(),
            )
            return None
        return json.loads(result.stdout).get("accessToken")


def describe_session(session: AzureSession):
    click.echo(f"Tenant:       {session.tenant_id}", err=True)
    click.echo(
        f"Subscription: {session.subscription_name} ({session.subscription_id})",
        err=True,
    )
    click.echo(f"Account:      {session.user_name}", err=True)


def ensure_session(azure_cli: AzureCLI, silent: bool = False) -> AzureSession:
    """Make sure the Azure CLI has a signed-in account and return it.

    With `silent`, a missing session is fatal. Otherwise the operator either
    confirms the current account, presses Esc to sign in again, or is sent
    straight to interactive sign-in when nobody is signed in.
    """
    account = azure_cli.account_show()

    if silent:
        if account is None:
            raise AuthenticationException(
                "not signed in. Run `az login` or invoke without --silent"
            )
    elif account is not None:
        describe_session(AzureSession.from_account(account))
        click.echo(
            "Press Esc to sign in with a different account, any other key to continue",
            err=True,
        )
        if click.getchar() == ESCAPE_KEY:
            azure_cli.logout()
            account = azure_cli.login()
    else:
        logger.info("No Azure session found, starting interactive sign-in")
        account = azure_cli.login()

    session = AzureSession.from_account(account)
    logger.info(
        "Using tenant %s, subscription %s as %s",
        session.tenant_id,
        session.subscription_id,
        session.user_name,
    )
    return session
