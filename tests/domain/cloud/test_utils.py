import pytest

from policy_deployer.domain.cloud.utils import get_cloud, make_auth_header


def test_make_auth_header():
    assert make_auth_header("TOKEN") == {"Authorization": "Bearer TOKEN"}


@pytest.mark.parametrize(
    "name", ["AzureCloud", "AzureChinaCloud", "AzureUSGovernment", "AzureGermanCloud"]
)
def test_get_cloud(name):
    cloud = get_cloud(name)
    assert cloud.name == name
    assert cloud.endpoints.resource_manager.startswith("https://management.")


def test_get_cloud_public_endpoints():
    cloud = get_cloud("AzureCloud")
    assert cloud.endpoints.resource_manager == "https://management.azure.com/"
    assert (
        cloud.endpoints.active_directory_resource_id
        == "https://management.core.windows.net/"
    )


def test_get_cloud_unknown():
    with pytest.raises(ValueError):
        get_cloud("AzureStack")
