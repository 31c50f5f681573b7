import json
import subprocess
from unittest.mock import Mock

import pytest

from policy_deployer.domain import session as session_module
from policy_deployer.domain.cloud.exceptions import AuthenticationException
from policy_deployer.domain.cloud.models import AzureSession
from policy_deployer.domain.session import ESCAPE_KEY, AzureCLI, ensure_session
from tests.mock_azure import MOCK_ACCESS_TOKEN, MOCK_ACCOUNT, mock_azure_cli


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


@pytest.fixture
def mock_run(monkeypatch):
    run = Mock(return_value=completed(stdout=json.dumps(MOCK_ACCOUNT)))
    monkeypatch.setattr(subprocess, "run", run)
    return run


class TestAzureCLI:
    def test_account_show(self, mock_run):
        assert AzureCLI().account_show() == MOCK_ACCOUNT
        cmd = mock_run.call_args[0][0]
        assert cmd == ["az", "account", "show", "--output", "json"]

    def test_account_show_without_session(self, mock_run):
        mock_run.return_value = completed(
            returncode=1, stderr="Please run 'az login' to setup account."
        )
        assert AzureCLI().account_show() is None

    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("az")
        with pytest.raises(AuthenticationException) as exc_info:
            AzureCLI("/opt/az/bin/az").account_show()
        assert "/opt/az/bin/az" in exc_info.value.message

    def test_get_access_token(self, mock_run):
        mock_run.return_value = completed(
            stdout=json.dumps({"accessToken": MOCK_ACCESS_TOKEN, "tokenType": "Bearer"})
        )
        token = AzureCLI().get_access_token(
            "https://management.core.windows.net/", subscription="sub"
        )
        assert token == MOCK_ACCESS_TOKEN
        cmd = mock_run.call_args[0][0]
        assert cmd[1:5] == [
            "account",
            "get-access-token",
            "--resource",
            "https://management.core.windows.net/",
        ]
        assert cmd[5:7] == ["--subscription", "sub"]

    def test_get_access_token_failure(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="AADSTS700082")
        assert AzureCLI().get_access_token("https://management.core.windows.net/") is None

    def test_login_returns_active_account(self, mock_run):
        mock_run.side_effect = [
            completed(stdout="[]"),
            completed(stdout=json.dumps(MOCK_ACCOUNT)),
        ]
        assert AzureCLI().login() == MOCK_ACCOUNT
        login_call, show_call = mock_run.call_args_list
        assert login_call[0][0][:2] == ["az", "login"]
        # the sign-in prompt is written to the operator's terminal
        assert login_call[1]["stderr"] is None

    def test_login_failure(self, mock_run):
        mock_run.return_value = completed(returncode=1)
        with pytest.raises(AuthenticationException):
            AzureCLI().login()

    def test_logout_failure_is_not_fatal(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="no account")
        assert AzureCLI().logout() == 1


class TestEnsureSession:
    def test_silent_without_session_fails(self):
        azure_cli = mock_azure_cli(account=None)
        with pytest.raises(AuthenticationException) as exc_info:
            ensure_session(azure_cli, silent=True)
        assert "not signed in" in exc_info.value.message
        azure_cli.login.assert_not_called()

    def test_silent_with_session(self, monkeypatch):
        getchar = Mock()
        monkeypatch.setattr(session_module.click, "getchar", getchar)
        session = ensure_session(mock_azure_cli(), silent=True)
        assert session == AzureSession.from_account(MOCK_ACCOUNT)
        getchar.assert_not_called()

    def test_interactive_continue_with_current_session(self, monkeypatch, capsys):
        monkeypatch.setattr(session_module.click, "getchar", Mock(return_value="\r"))
        azure_cli = mock_azure_cli()
        session = ensure_session(azure_cli)

        assert session.subscription_id == MOCK_ACCOUNT["id"]
        azure_cli.login.assert_not_called()
        azure_cli.logout.assert_not_called()
        err = capsys.readouterr().err
        assert MOCK_ACCOUNT["tenantId"] in err
        assert MOCK_ACCOUNT["name"] in err
        assert MOCK_ACCOUNT["user"]["name"] in err

    def test_interactive_escape_signs_in_again(self, monkeypatch):
        monkeypatch.setattr(
            session_module.click, "getchar", Mock(return_value=ESCAPE_KEY)
        )
        other_account = {**MOCK_ACCOUNT, "tenantId": "other-tenant"}
        azure_cli = mock_azure_cli()
        azure_cli.login.return_value = other_account

        session = ensure_session(azure_cli)

        azure_cli.logout.assert_called_once()
        azure_cli.login.assert_called_once()
        assert session.tenant_id == "other-tenant"

    def test_interactive_without_session_signs_in(self, monkeypatch):
        getchar = Mock()
        monkeypatch.setattr(session_module.click, "getchar", getchar)
        azure_cli = mock_azure_cli(account=None)

        session = ensure_session(azure_cli)

        azure_cli.login.assert_called_once()
        getchar.assert_not_called()
        assert session.user_name == MOCK_ACCOUNT["user"]["name"]
