from typing import Any, Dict, Optional

from controllers.responses import error_response
from core.access.properties import PropertyAccess
from core.cloud.appwrite import CloudContext
from core.result import Err


def property_access(cloud: CloudContext) -> PropertyAccess:
    return PropertyAccess(cloud.store, cloud.settings.properties_collection_id)


async def latest_properties_endpoint(cloud: CloudContext) -> Dict[str, Any]:
    result = await property_access(cloud).get_latest_properties_result()
    if isinstance(result, Err):
        raise error_response(result, "Latest properties listing")

    properties = [p.to_dict() for p in result.value]
    return {
        "success": True,
        "message": f"Successfully retrieved {len(properties)} latest properties.",
        "properties": properties,
    }


async def properties_listing_endpoint(
    cloud: CloudContext,
    filter: str = "All",
    query: str = "",
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    result = await property_access(cloud).get_properties_result(filter=filter, query=query, limit=limit)
    if isinstance(result, Err):
        raise error_response(result, "Property listing")

    properties = [p.to_dict() for p in result.value]
    return {
        "success": True,
        "message": f"Successfully retrieved {len(properties)} properties for filter '{filter}'.",
        "properties": properties,
    }


async def view_property_endpoint(cloud: CloudContext, property_id: str) -> Dict[str, Any]:
    result = await property_access(cloud).get_property_by_id_result(property_id)
    if isinstance(result, Err):
        raise error_response(result, f"Property {property_id} lookup")

    return {
        "success": True,
        "message": "Property retrieved successfully.",
        "property": result.value.to_dict(),
    }
