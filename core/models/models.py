from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.result import Err


class AppwriteRecord(BaseModel):
    """Base for documents returned by Appwrite; system attributes are read by alias."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="$id")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Identity(AppwriteRecord):
    name: str = ""
    email: Optional[str] = None
    avatar: Optional[str] = None


class Property(AppwriteRecord):
    name: str
    address: str
    type: str
    price: Union[int, float]
    image: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="$createdAt")


class Booking(AppwriteRecord):
    user_id: str = Field(alias="userId")
    property_id: str = Field(alias="propertyId")
    booked_at: str = Field(alias="bookedAt")


class EnrichedBooking(Booking):
    # Copied from the property at read time, never written back
    name: str
    address: str
    image: Optional[str] = None
    price: Union[int, float]

    @classmethod
    def join(cls, booking: Booking, prop: Property) -> "EnrichedBooking":
        data = booking.to_dict()
        data.update(
            name=prop.name,
            address=prop.address,
            image=prop.image,
            price=prop.price,
        )
        return cls.model_validate(data)


class JoinFailure(BaseModel):
    booking_id: str
    property_id: str
    error: Err


class BookingListing(BaseModel):
    bookings: List[EnrichedBooking] = []
    failures: List[JoinFailure] = []

    @property
    def raw_count(self) -> int:
        return len(self.bookings) + len(self.failures)
