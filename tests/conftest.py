import os
import shutil

import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture()
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture()
def definitions_dir(tmp_path):
    """A scratch copy of tests/fixtures/definitions that tests may add to."""
    target = tmp_path / "definitions"
    shutil.copytree(os.path.join(FIXTURES_DIR, "definitions"), target)
    return target


@pytest.fixture(autouse=True)
def clean_config_environment(monkeypatch):
    for setting in (
        "AZ_CLI_PATH",
        "AZURE_CLOUD",
        "AZURE_POLICY_API_VERSION",
        "AZURE_REQUEST_TIMEOUT",
        "LOG_JSON",
        "LOG_LEVEL",
        "OVERRIDE_CONFIG_DIRECTORY",
    ):
        monkeypatch.delenv(setting, raising=False)
