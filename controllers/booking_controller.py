from typing import Any, Dict

from fastapi import HTTPException, status

from controllers.property_controller import property_access
from controllers.responses import error_response
from core.access.bookings import BookingAccess
from core.cloud.appwrite import CloudContext
from core.models.models import Identity
from core.result import Err


def booking_access(cloud: CloudContext) -> BookingAccess:
    return BookingAccess(cloud.store, cloud.settings.bookings_collection_id, property_access(cloud))


async def bookings_listing_endpoint(cloud: CloudContext, user: Identity) -> Dict[str, Any]:
    result = await booking_access(cloud).get_my_bookings_result(user.id)
    if isinstance(result, Err):
        raise error_response(result, "Booking listing")

    listing = result.value
    return {
        "success": True,
        "message": f"Successfully retrieved {len(listing.bookings)} bookings for user {user.id}.",
        "bookings": [b.to_dict() for b in listing.bookings],
        # Bookings whose property could not be loaded, so the client can say so
        "failed": [
            {"booking_id": f.booking_id, "property_id": f.property_id, "error": f.error.kind.value}
            for f in listing.failures
        ],
    }


async def book_property_endpoint(
    cloud: CloudContext,
    user: Identity,
    property_id: str,
    allow_duplicate: bool = False,
) -> Dict[str, Any]:
    bookings = booking_access(cloud)

    # Advisory only: two concurrent requests can both pass this check
    if not allow_duplicate:
        booked = await bookings.is_property_booked_result(user.id, property_id)
        if isinstance(booked, Err):
            raise error_response(booked, "Booking check")
        if booked.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"success": False, "message": f"Property {property_id} is already booked."},
            )

    result = await bookings.book_property_result(user.id, property_id)
    if isinstance(result, Err):
        raise error_response(result, "Booking")

    return {
        "success": True,
        "message": "Property booked successfully.",
        "booking": result.value.to_dict(),
    }


async def booking_status_endpoint(cloud: CloudContext, user: Identity, property_id: str) -> Dict[str, Any]:
    result = await booking_access(cloud).is_property_booked_result(user.id, property_id)
    if isinstance(result, Err):
        raise error_response(result, "Booking check")

    return {"success": True, "property_id": property_id, "booked": result.value}


async def delete_booking_endpoint(cloud: CloudContext, user: Identity, booking_id: str) -> Dict[str, Any]:
    # Someone else's booking reads as missing rather than forbidden
    result = await booking_access(cloud).delete_booking_result(booking_id, owner_id=user.id)
    if isinstance(result, Err):
        raise error_response(result, "Delete booking")

    return {"success": True, "message": "Booking cancelled!", "booking_id": booking_id}
