from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class DocumentStorePort(Protocol):
    async def list_documents(
        self, collection: str
    ) -> Sequence[tuple[str, Mapping[str, Any]]]:
        ...
