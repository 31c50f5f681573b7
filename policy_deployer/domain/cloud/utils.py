from msrestazure.azure_cloud import (
    AZURE_CHINA_CLOUD,
    AZURE_GERMAN_CLOUD,
    AZURE_PUBLIC_CLOUD,
    AZURE_US_GOV_CLOUD,
)

KNOWN_CLOUDS = {
    cloud.name: cloud
    for cloud in (
        AZURE_PUBLIC_CLOUD,
        AZURE_CHINA_CLOUD,
        AZURE_US_GOV_CLOUD,
        AZURE_GERMAN_CLOUD,
    )
}


def make_auth_header(token):
    return {
        "Authorization": f"Bearer {token}",
    }


def get_cloud(name):
    """Returns the msrestazure cloud definition registered under `name`

    args:
        name (str): an Azure CLI environment name, e.g. "AzureCloud"
    returns:
        msrestazure.azure_cloud.Cloud
    raises:
        ValueError: the name is not a known cloud
    """

    try:
        return KNOWN_CLOUDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown Azure cloud '{name}', expected one of {sorted(KNOWN_CLOUDS)}"
        )
