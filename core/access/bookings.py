import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from appwrite.id import ID
from appwrite.permission import Permission
from appwrite.role import Role
from pydantic import ValidationError

from core.access.properties import PropertyAccess
from core.models.models import Booking, BookingListing, EnrichedBooking, JoinFailure
from core.query.builder import booking_for_property, bookings_for_user
from core.result import Err, ErrorKind, Ok, Result, capture

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BookingAccess:
    """
    Create, list, check and delete bookings. Listing joins each booking with
    its property on the client; the join is rebuilt on every read.

    Nothing here prevents two bookings for the same user and property:
    `is_property_booked` is advisory and there is no atomicity between it
    and `book_property`.
    """

    def __init__(
        self,
        store,
        collection_id: str,
        properties: PropertyAccess,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.collection_id = collection_id
        self.properties = properties
        self.clock = clock

    async def _create(self, user_id: str, property_id: str) -> Booking:
        document = await self.store.create_document(
            self.collection_id,
            ID.unique(),
            {
                "userId": user_id,
                "propertyId": property_id,
                "bookedAt": format_timestamp(self.clock()),
            },
            [
                Permission.read(Role.user(user_id)),
                Permission.update(Role.user(user_id)),
                Permission.delete(Role.user(user_id)),
            ],
        )
        return Booking.model_validate(document)

    async def _list(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.store.list_documents(self.collection_id, bookings_for_user(user_id))

    async def book_property_result(self, user_id: str, property_id: str) -> Result:
        return await capture("Booking", self._create(user_id, property_id))

    async def book_property(self, user_id: str, property_id: str) -> Optional[Booking]:
        result = await self.book_property_result(user_id, property_id)
        return result.value if isinstance(result, Ok) else None

    async def is_property_booked_result(self, user_id: str, property_id: str) -> Result:
        result = await capture(
            "Booking check",
            self.store.list_documents(self.collection_id, booking_for_property(user_id, property_id)),
        )
        if isinstance(result, Err):
            return result
        return Ok(len(result.value) > 0)

    async def is_property_booked(self, user_id: str, property_id: str) -> bool:
        result = await self.is_property_booked_result(user_id, property_id)
        return isinstance(result, Ok) and result.value

    async def _enrich(self, booking: Booking):
        joined = await self.properties.get_property_by_id_result(booking.property_id)
        if isinstance(joined, Err):
            logger.warning(
                "Failed to fetch property details for booking %s (property %s): %s",
                booking.id, booking.property_id, joined.message,
            )
            return JoinFailure(booking_id=booking.id, property_id=booking.property_id, error=joined)
        return EnrichedBooking.join(booking, joined.value)

    async def get_my_bookings_result(self, user_id: str) -> Result:
        """
        Lists the user's bookings, then fetches every referenced property at
        once. A booking that is malformed, or whose property cannot be
        fetched, is dropped from the listing and reported in `failures`; it
        never hides the others.
        """
        raw = await capture("Get bookings", self._list(user_id))
        if isinstance(raw, Err):
            return raw

        listing = BookingListing()
        valid = []
        for doc in raw.value:
            try:
                valid.append(Booking.model_validate(doc))
            except ValidationError as e:
                logger.warning("Skipping invalid booking %s: %s", doc.get("$id"), e)
                listing.failures.append(JoinFailure(
                    booking_id=str(doc.get("$id") or ""),
                    property_id=str(doc.get("propertyId") or ""),
                    error=Err.from_exception(e),
                ))

        joined = await asyncio.gather(*(self._enrich(booking) for booking in valid))

        for item in joined:
            if isinstance(item, JoinFailure):
                listing.failures.append(item)
            else:
                listing.bookings.append(item)
        return Ok(listing)

    async def get_my_bookings(self, user_id: str) -> BookingListing:
        result = await self.get_my_bookings_result(user_id)
        return result.value if isinstance(result, Ok) else BookingListing()

    async def delete_booking_result(self, booking_id: str, owner_id: Optional[str] = None) -> Result:
        """
        Deletes a booking. With `owner_id`, the booking is read first and a
        booking held by anyone else is reported as not found.
        """
        if owner_id is not None:
            existing = await capture(
                f"Get booking {booking_id}",
                self.store.get_document(self.collection_id, booking_id),
            )
            if isinstance(existing, Err):
                return existing
            if existing.value.get("userId") != owner_id:
                logger.warning("Refused to delete booking %s held by another user", booking_id)
                return Err(ErrorKind.NOT_FOUND, f"Booking {booking_id} not found")

        result = await capture(
            "Delete booking",
            self.store.delete_document(self.collection_id, booking_id),
        )
        if isinstance(result, Ok):
            logger.info("Booking deleted successfully: %s", booking_id)
        return result

    async def delete_booking(self, booking_id: str, owner_id: Optional[str] = None) -> bool:
        return isinstance(await self.delete_booking_result(booking_id, owner_id), Ok)
