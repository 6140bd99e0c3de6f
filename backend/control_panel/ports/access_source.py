from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

RawDocument = tuple[str, Mapping[str, Any]]


@dataclass(frozen=True)
class AccessDocuments:
    features: Sequence[RawDocument] = field(default_factory=tuple)
    groups: Sequence[RawDocument] = field(default_factory=tuple)


class AccessSnapshotSourcePort(Protocol):
    async def fetch_access_documents(self) -> AccessDocuments:
        ...
