import json
import logging
import sys
from functools import wraps
from typing import Dict, List, Sequence, Tuple

import click
from pydantic import ValidationError

from policy_deployer.app import apply_logger, make_config
from policy_deployer.domain.cloud import (
    AzurePolicyProvider,
    AzureSession,
    DefinitionClassificationException,
    DefinitionParseException,
    DeploymentTarget,
    GeneralCSPException,
    PolicyDefinitionCSPPayload,
    PolicySetDefinitionCSPPayload,
)
from policy_deployer.domain.cloud.exceptions import AuthenticationException
from policy_deployer.domain.cloud.utils import get_cloud
from policy_deployer.domain.files import collect_definition_files
from policy_deployer.domain.policy import DefinitionKind, load_definition
from policy_deployer.domain.session import AzureCLI, ensure_session

logger = logging.getLogger(__name__)


def handle_csp_exceptions(func):
    """Turn our CSP exceptions into click errors so the run exits non-zero
    with the reason on stderr instead of a traceback."""

    @wraps(func)
    def wrapped_func(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GeneralCSPException as exc:
            raise click.ClickException(exc.message)

    return wrapped_func


def load_config():
    try:
        config = make_config()
        get_cloud(config["AZURE_CLOUD"])
    except ValueError as err:
        raise click.ClickException(f"Invalid configuration: {err}")

    apply_logger(config)
    return config


def scope_options(func):
    func = click.option(
        "--silent",
        is_flag=True,
        help="Never prompt; fail if the Azure CLI is not signed in",
    )(func)
    func = click.option(
        "--management-group-name",
        help="Management group the definitions are created in",
    )(func)
    func = click.option(
        "--subscription-id",
        type=click.UUID,
        help="Subscription the definitions are created in",
    )(func)
    return func


def make_target(subscription_id, management_group_name) -> DeploymentTarget:
    if (subscription_id is None) == (management_group_name is None):
        raise click.UsageError(
            "Provide exactly one of --subscription-id or --management-group-name"
        )
    try:
        return DeploymentTarget(
            subscription_id=subscription_id,
            management_group_name=management_group_name,
        )
    except ValidationError:
        raise click.BadParameter(
            "must not be empty", param_hint="'--management-group-name'"
        )


def parse_placeholders(ctx, param, values) -> Dict[str, str]:
    placeholders = {}
    for value in values:
        token, sep, replacement = value.partition("=")
        token = token.strip().strip("{}")
        if not sep or not token:
            raise click.BadParameter(f"expected NAME=VALUE, got '{value}'")
        placeholders[token] = replacement
    return placeholders


def load_placeholders(placeholder_file, placeholders: Dict[str, str]) -> Dict[str, str]:
    mapping = {}
    if placeholder_file:
        with open(placeholder_file, "r", encoding="utf-8-sig") as file_:
            try:
                loaded = json.load(file_)
            except json.decoder.JSONDecodeError as err:
                raise DefinitionParseException(placeholder_file, str(err))
        if not isinstance(loaded, dict):
            raise click.BadParameter(
                "must contain a JSON object", param_hint="'--placeholder-file'"
            )
        mapping.update({token: str(value) for token, value in loaded.items()})

    mapping.update(placeholders)
    return mapping


def start_session(config, silent) -> Tuple[AzureCLI, AzureSession]:
    azure_cli = AzureCLI(config["AZ_CLI_PATH"])
    return azure_cli, ensure_session(azure_cli, silent=silent)


def collect_policy_batch(
    paths: Sequence[str],
) -> List[Tuple[str, PolicyDefinitionCSPPayload]]:
    batch = []
    for path in paths:
        try:
            definition = load_definition(path)
        except DefinitionParseException as err:
            logger.warning("Skipping: %s", err.message)
            continue

        if definition.kind is not DefinitionKind.POLICY:
            err = DefinitionClassificationException(
                path, DefinitionKind.POLICY.value, definition.kind.value
            )
            logger.warning("Skipping: %s", err.message)
            continue

        try:
            payload = PolicyDefinitionCSPPayload.from_document(definition.document)
        except ValidationError as err:
            logger.warning("Skipping: %s is not a valid policy definition: %s", path, err)
            continue

        batch.append((path, payload))

    return batch


def deploy_policy_batch(provider, target, batch) -> Tuple[List[Dict], List[str]]:
    results, failures = [], []
    for path, payload in batch:
        try:
            results.append(provider.create_policy_definition(target, payload))
        except AuthenticationException:
            raise
        except GeneralCSPException as err:
            logger.error("Failed to deploy %s: %s", path, err.message)
            failures.append(path)
    return results, failures


@click.command()
@click.option(
    "--file",
    "files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Policy definition file to deploy; repeat for more files",
)
@click.option(
    "--directory",
    type=click.Path(exists=True, file_okay=False),
    help="Deploy every *.json policy definition in this directory",
)
@click.option(
    "--recurse", is_flag=True, help="Also search subdirectories of --directory"
)
@scope_options
@handle_csp_exceptions
def deploy_policy_definitions(
    files, directory, recurse, subscription_id, management_group_name, silent
):
    """Deploy custom Azure Policy definitions from JSON files.

    Files holding policy set definitions or anything other than a policy
    definition are skipped with a warning. The created definitions are
    written to stdout as a JSON array.
    """
    config = load_config()

    if bool(files) == bool(directory):
        raise click.UsageError("Provide either --file or --directory, but not both")
    if recurse and not directory:
        raise click.UsageError("--recurse can only be used with --directory")
    target = make_target(subscription_id, management_group_name)

    azure_cli, session = start_session(config, silent)

    paths = collect_definition_files(files=files, directory=directory, recurse=recurse)
    batch = collect_policy_batch(paths)
    logger.info(
        "Deploying %d of %d file(s) to %s", len(batch), len(paths), target,
    )

    provider = AzurePolicyProvider(config, session, azure_cli=azure_cli)
    results, failures = deploy_policy_batch(provider, target, batch)

    click.echo(json.dumps(results, indent=2))
    logger.info(
        "Summary: %d deployed, %d failed, %d skipped in %s",
        len(results),
        len(failures),
        len(paths) - len(batch),
        target,
    )
    if failures:
        logger.error("Failed: %s", ", ".join(failures))
        sys.exit(1)


@click.command()
@click.option(
    "--file",
    "file_",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Policy set (initiative) definition file to deploy",
)
@click.option(
    "--placeholder",
    "placeholders",
    multiple=True,
    metavar="NAME=VALUE",
    callback=parse_placeholders,
    help="Replace every {NAME} in the file with VALUE before parsing; repeatable",
)
@click.option(
    "--placeholder-file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON object of NAME: VALUE placeholders; --placeholder wins on conflict",
)
@scope_options
@handle_csp_exceptions
def deploy_policy_set_definition(
    file_,
    placeholders,
    placeholder_file,
    subscription_id,
    management_group_name,
    silent,
):
    """Deploy one custom Azure Policy set (initiative) definition.

    Anything other than a policy set definition aborts the run before
    deployment. The created definition is written to stdout as JSON.
    """
    config = load_config()

    target = make_target(subscription_id, management_group_name)

    azure_cli, session = start_session(config, silent)

    mapping = load_placeholders(placeholder_file, placeholders)
    definition = load_definition(file_, mapping)
    if definition.kind is not DefinitionKind.POLICY_SET:
        raise DefinitionClassificationException(
            file_, DefinitionKind.POLICY_SET.value, definition.kind.value
        )

    try:
        payload = PolicySetDefinitionCSPPayload.from_document(definition.document)
    except ValidationError as err:
        raise click.ClickException(
            f"{file_} is not a valid policy set definition: {err}"
        )

    provider = AzurePolicyProvider(config, session, azure_cli=azure_cli)
    result = provider.create_policy_set_definition(target, payload)

    click.echo(json.dumps(result, indent=2))
