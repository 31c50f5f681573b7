from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from policy_deployer.utils import snake_to_camel

AZURE_MGMNT_PATH = "providers/Microsoft.Management/managementGroups/"
POLICY_DEFINITIONS_PATH = "providers/Microsoft.Authorization/policyDefinitions/"
POLICY_SET_DEFINITIONS_PATH = "providers/Microsoft.Authorization/policySetDefinitions/"

CUSTOM_POLICY_TYPE = "Custom"
DEFAULT_POLICY_MODE = "All"


class AliasModel(BaseModel):
    """
    This provides automatic camel <-> snake conversion for serializing to/from json
    You can override the alias for a single field with `Field(alias=...)` for
    cases that don't follow the convention, like:
    * subscription_id:id
    * subscription_name:name
    """

    model_config = ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)


class AzureSession(AliasModel):
    """The signed-in Azure CLI account, as reported by `az account show`."""

    tenant_id: str
    subscription_id: str
    subscription_name: Optional[str] = None
    user_name: Optional[str] = None
    environment_name: Optional[str] = None

    @classmethod
    def from_account(cls, account: Dict) -> "AzureSession":
        return cls(
            tenant_id=account["tenantId"],
            subscription_id=account["id"],
            subscription_name=account.get("name"),
            user_name=(account.get("user") or {}).get("name"),
            environment_name=account.get("environmentName"),
        )


class DeploymentTarget(AliasModel):
    subscription_id: Optional[UUID] = None
    management_group_name: Optional[str] = None

    @field_validator("management_group_name")
    @classmethod
    def management_group_name_not_blank(cls, name):
        if name is not None and not name.strip():
            raise ValueError("management group name must not be empty")
        return name

    @model_validator(mode="after")
    def exactly_one_scope(self):
        if (self.subscription_id is None) == (self.management_group_name is None):
            raise ValueError(
                "exactly one of subscription_id or management_group_name is required"
            )
        return self

    @property
    def scope(self) -> str:
        if self.subscription_id is not None:
            return f"subscriptions/{self.subscription_id}/"
        return f"{AZURE_MGMNT_PATH}{self.management_group_name}/"

    def __str__(self):
        if self.subscription_id is not None:
            return f"subscription {self.subscription_id}"
        return f"management group {self.management_group_name}"


class PolicyDefinitionCSPPayload(AliasModel):
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    mode: str = DEFAULT_POLICY_MODE
    parameters: Optional[Dict] = None
    policy_rule: Dict
    metadata: Optional[Dict] = None

    @classmethod
    def from_document(cls, document: Dict) -> "PolicyDefinitionCSPPayload":
        return cls.model_validate(
            {**document.get("properties", {}), "name": document.get("name")}
        )

    def definition_path(self, target: DeploymentTarget) -> str:
        return f"{target.scope}{POLICY_DEFINITIONS_PATH}{self.name}"

    def body(self) -> Dict:
        properties = self.model_dump(by_alias=True, exclude={"name"}, exclude_none=True)
        properties["policyType"] = CUSTOM_POLICY_TYPE
        return {"properties": properties}


class PolicySetDefinitionCSPPayload(AliasModel):
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    parameters: Optional[Dict] = None
    policy_definitions: List[Dict]
    policy_definition_groups: Optional[List[Dict]] = None
    metadata: Optional[Dict] = None

    @field_validator("policy_definitions")
    @classmethod
    def references_have_ids(cls, references):
        for reference in references:
            if not reference.get("policyDefinitionId"):
                raise ValueError(
                    "every policy definition reference needs a policyDefinitionId"
                )
        return references

    @classmethod
    def from_document(cls, document: Dict) -> "PolicySetDefinitionCSPPayload":
        return cls.model_validate(
            {**document.get("properties", {}), "name": document.get("name")}
        )

    def definition_path(self, target: DeploymentTarget) -> str:
        return f"{target.scope}{POLICY_SET_DEFINITIONS_PATH}{self.name}"

    def body(self) -> Dict:
        properties = self.model_dump(by_alias=True, exclude={"name"}, exclude_none=True)
        properties["policyType"] = CUSTOM_POLICY_TYPE
        return {"properties": properties}
