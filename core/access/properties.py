import logging
from typing import List, Optional

from pydantic import ValidationError

from core.models.models import Property
from core.query.builder import PropertySearch, build_latest_predicates, build_property_predicates
from core.result import Ok, Result, capture

logger = logging.getLogger(__name__)


class PropertyAccess:
    """
    Read-only access to the properties collection. Every plain method returns
    an empty list or None on failure, so "no data" and "error" look the same
    to the caller; use the `*_result` variants to tell them apart.
    """

    def __init__(self, store, collection_id: str):
        self.store = store
        self.collection_id = collection_id

    async def _fetch_many(self, predicates) -> List[Property]:
        documents = await self.store.list_documents(self.collection_id, predicates)

        properties = []
        for doc in documents:
            try:
                properties.append(Property.model_validate(doc))
            except ValidationError as e:
                # One bad record never hides the rest of the page
                logger.warning("Skipping invalid property %s: %s", doc.get("$id"), e)
        return properties

    async def _fetch_one(self, property_id: str) -> Property:
        document = await self.store.get_document(self.collection_id, property_id)
        return Property.model_validate(document)

    async def get_latest_properties_result(self) -> Result:
        return await capture("Get latest properties", self._fetch_many(build_latest_predicates()))

    async def get_properties_result(self, filter: str = "All", query: str = "", limit: Optional[int] = None) -> Result:
        predicates = build_property_predicates(PropertySearch(filter=filter, query=query, limit=limit))
        return await capture("Get properties", self._fetch_many(predicates))

    async def get_property_by_id_result(self, property_id: str) -> Result:
        return await capture(f"Get property {property_id}", self._fetch_one(property_id))

    async def get_latest_properties(self) -> List[Property]:
        result = await self.get_latest_properties_result()
        return result.value if isinstance(result, Ok) else []

    async def get_properties(self, filter: str = "All", query: str = "", limit: Optional[int] = None) -> List[Property]:
        result = await self.get_properties_result(filter, query, limit)
        return result.value if isinstance(result, Ok) else []

    async def get_property_by_id(self, property_id: str) -> Optional[Property]:
        result = await self.get_property_by_id_result(property_id)
        return result.value if isinstance(result, Ok) else None
