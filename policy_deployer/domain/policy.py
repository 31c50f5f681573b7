import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .cloud.exceptions import DefinitionParseException

logger = logging.getLogger(__name__)


class DefinitionKind(Enum):
    POLICY = "policy definition"
    POLICY_SET = "policy set definition"
    UNRECOGNIZED = "unrecognized"


@dataclass
class ClassifiedDefinition:
    path: str
    kind: DefinitionKind
    document: dict

    @property
    def name(self):
        if isinstance(self.document, dict):
            return self.document.get("name")


def substitute_placeholders(text: str, placeholders: Optional[Dict[str, str]]) -> str:
    """Replace every literal `{token}` in `text` with `placeholders[token]`.

    Each token is replaced once over the whole text; replacement values are
    not searched again for tokens processed earlier.
    """
    for token, value in (placeholders or {}).items():
        text = text.replace("{" + token + "}", value)
    return text


def classify_definition(document) -> DefinitionKind:
    properties = document.get("properties") if isinstance(document, dict) else None
    if not isinstance(properties, dict):
        return DefinitionKind.UNRECOGNIZED

    if properties.get("policyDefinitions"):
        return DefinitionKind.POLICY_SET
    elif properties.get("policyRule"):
        return DefinitionKind.POLICY
    else:
        return DefinitionKind.UNRECOGNIZED


def load_definition(path: str, placeholders: Dict[str, str] = None) -> ClassifiedDefinition:
    try:
        with open(path, "r", encoding="utf-8-sig") as file_:
            text = file_.read()
    except (OSError, UnicodeDecodeError) as err:
        raise DefinitionParseException(path, str(err))

    try:
        doc = json.loads(substitute_placeholders(text, placeholders))
    except json.decoder.JSONDecodeError as err:
        raise DefinitionParseException(path, str(err))

    kind = classify_definition(doc)
    logger.debug("Classified %s as %s", path, kind.value)
    return ClassifiedDefinition(path=path, kind=kind, document=doc)
