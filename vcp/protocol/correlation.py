"""Decrypt request/response correlation.

The engine exchanges decrypt requests and responses as three-level trees:

    credential label -> attribute index (as string) -> authority label -> payload

DecryptMap stores the same information flat, keyed by DecryptKey, so that
closure checks compare key sets directly and never trip over a missing
intermediate level.
"""

from typing import Any, Callable, Dict, Generic, Iterator, List, NamedTuple, Optional, Tuple, TypeVar

from .exceptions import ConsistencyViolation

T = TypeVar("T")

NestedTree = Dict[str, Dict[str, Dict[str, Any]]]


class DecryptKey(NamedTuple):
    """(credential label, attribute index, authority label)."""
    credential_label: str
    attribute_index: int
    authority_label: str

    def as_path(self) -> Tuple[str, str, str]:
        return (self.credential_label, str(self.attribute_index), self.authority_label)


class DecryptMap(Generic[T]):
    """Flat mapping from DecryptKey to a request or response payload."""

    def __init__(self, entries: Optional[Dict[DecryptKey, T]] = None):
        self._entries: Dict[DecryptKey, T] = dict(entries or {})

    def put(self, credential_label: str, attribute_index: int, authority_label: str, payload: T) -> None:
        self._entries[DecryptKey(credential_label, attribute_index, authority_label)] = payload

    def get(self, key: DecryptKey) -> Optional[T]:
        return self._entries.get(key)

    def __getitem__(self, key: DecryptKey) -> T:
        return self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DecryptKey]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecryptMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"DecryptMap({self._entries!r})"

    def keys(self) -> List[DecryptKey]:
        return list(self._entries)

    def items(self) -> List[Tuple[DecryptKey, T]]:
        return list(self._entries.items())

    def authority_labels(self) -> List[str]:
        """Distinct authority labels in first-seen order."""
        seen: Dict[str, None] = {}
        for key in self._entries:
            seen.setdefault(key.authority_label, None)
        return list(seen)

    def to_nested(self, encode: Optional[Callable[[T], Any]] = None) -> NestedTree:
        """Build the engine's three-level tree, optionally encoding payloads."""
        tree: NestedTree = {}
        for key, payload in self._entries.items():
            cred, index, auth = key.as_path()
            value = encode(payload) if encode else payload
            tree.setdefault(cred, {}).setdefault(index, {})[auth] = value
        return tree

    @classmethod
    def from_nested(cls, tree: NestedTree) -> "DecryptMap":
        """Flatten a three-level tree.

        Attribute indices arrive as strings; a non-integer index means the
        tree cannot be correlated and is reported as a consistency failure.
        """
        entries: Dict[DecryptKey, Any] = {}
        for cred, by_index in (tree or {}).items():
            for index, by_authority in by_index.items():
                try:
                    attribute_index = int(index)
                except (TypeError, ValueError):
                    raise ConsistencyViolation.malformed_decrypt_tree(
                        f"attribute index {index!r} under {cred!r} is not an integer"
                    )
                for auth, payload in by_authority.items():
                    entries[DecryptKey(cred, attribute_index, auth)] = payload
        return cls(entries)


def check_closure(requests: DecryptMap, responses: DecryptMap) -> None:
    """Responses must reproduce exactly the requested key paths."""
    requested = set(requests.keys())
    answered = set(responses.keys())
    missing = sorted(requested - answered)
    if missing:
        raise ConsistencyViolation.missing_decrypt_paths(k.as_path() for k in missing)
    extra = sorted(answered - requested)
    if extra:
        raise ConsistencyViolation.unexpected_decrypt_paths(k.as_path() for k in extra)
