"""Shared parameter registry.

Labels map to public values that both prover and verifier resolve
identically: signer public data, accumulator data, range bounds, authority
public data. Opaque engine material is stored JSON-encoded, which is how the
engine parses text shared parameters.
"""

import json
import logging
from typing import Dict, Iterable, Iterator, Optional

from pydantic import BaseModel

from .api_models import DVInt, DVText, SharedParamValue
from .exceptions import MisconfiguredScenario

log = logging.getLogger(__name__)


class SharedParams:
    """Label -> SharedParamValue, owned by one proof session."""

    def __init__(self):
        self._values: Dict[str, SharedParamValue] = {}

    def put(self, label: str, value: SharedParamValue) -> SharedParamValue:
        """Register a value under a new label.

        Re-registering the identical value is a no-op; registering a different
        value under an existing label raises, use replace() for deliberate
        updates such as a new accumulator value.
        """
        existing = self._values.get(label)
        if existing is not None and existing != value:
            raise MisconfiguredScenario.duplicate_label("shared parameter", label)
        self._values[label] = value
        return value

    def replace(self, label: str, value: SharedParamValue) -> SharedParamValue:
        if label not in self._values:
            raise MisconfiguredScenario.unknown_shared_param(label)
        log.debug(f"shared_param_replaced label={label}")
        self._values[label] = value
        return value

    def replace_opaque(self, label: str, material: str) -> SharedParamValue:
        return self.replace(label, SharedParamValue.text(json.dumps(material)))

    def put_text(self, label: str, text: str) -> SharedParamValue:
        return self.put(label, SharedParamValue.text(text))

    def put_int(self, label: str, number: int) -> SharedParamValue:
        return self.put(label, SharedParamValue.integer(number))

    def put_opaque(self, label: str, material: str) -> SharedParamValue:
        """Register opaque engine material (keys, accumulator values)."""
        return self.put_text(label, json.dumps(material))

    def put_document(self, label: str, document: BaseModel) -> SharedParamValue:
        """Register structured engine material (e.g. signer public data)."""
        return self.put_text(label, json.dumps(document.model_dump(by_alias=True, mode="json")))

    def get(self, label: str, referenced_by: Optional[str] = None) -> SharedParamValue:
        try:
            return self._values[label]
        except KeyError:
            raise MisconfiguredScenario.unknown_shared_param(label, referenced_by)

    def get_int(self, label: str) -> int:
        contents = self.get(label).contents
        if not isinstance(contents, DVInt):
            raise MisconfiguredScenario.invalid(f"shared parameter {label!r} is not an integer")
        return contents.contents

    def get_text(self, label: str) -> str:
        contents = self.get(label).contents
        if not isinstance(contents, DVText):
            raise MisconfiguredScenario.invalid(f"shared parameter {label!r} is not text")
        return contents.contents

    def require(self, labels: Iterable[str], referenced_by: Optional[str] = None) -> None:
        for label in labels:
            if label not in self._values:
                raise MisconfiguredScenario.unknown_shared_param(label, referenced_by)

    def __contains__(self, label: object) -> bool:
        return label in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def as_dict(self) -> Dict[str, SharedParamValue]:
        return dict(self._values)
