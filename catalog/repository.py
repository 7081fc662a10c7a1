"""
Persistence capability set used by the services and routers.

Handlers depend on this protocol rather than on a concrete database client,
so the MongoDB adapter and the in-memory test double are interchangeable.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

Document = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]


class Repository(Protocol):
    """CRUD operations over one entity type."""

    name: str

    async def find(
        self,
        filter_query: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
        limit: int = 0,
        sort: Optional[SortSpec] = None,
    ) -> List[Document]:
        ...

    async def find_one(self, filter_query: Mapping[str, Any]) -> Optional[Document]:
        ...

    async def find_by_id(self, entity_id: str) -> Optional[Document]:
        ...

    async def count(self, filter_query: Optional[Mapping[str, Any]] = None) -> int:
        ...

    async def create(self, document: Mapping[str, Any]) -> Document:
        ...

    async def update_by_id(self, entity_id: str, changes: Mapping[str, Any]) -> Optional[Document]:
        ...

    async def delete_by_id(self, entity_id: str) -> Optional[Document]:
        ...
