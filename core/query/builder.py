from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from appwrite.query import Query as AppwriteQuery

ALL_CATEGORIES = "All"
LATEST_PAGE_SIZE = 5
CREATED_AT = "$createdAt"

# Fields matched by the free-text search, each independently
SEARCH_FIELDS = ("name", "address", "type")


@dataclass(frozen=True)
class OrderBy:
    attribute: str
    descending: bool = False


@dataclass(frozen=True)
class Equal:
    attribute: str
    value: str


@dataclass(frozen=True)
class Search:
    attribute: str
    value: str


@dataclass(frozen=True)
class AnyOf:
    predicates: tuple


@dataclass(frozen=True)
class Limit:
    count: int


Predicate = Union[OrderBy, Equal, Search, AnyOf, Limit]


@dataclass(frozen=True)
class PropertySearch:
    filter: str = ALL_CATEGORIES
    query: str = ""
    limit: Optional[int] = None


def build_property_predicates(search: PropertySearch) -> List[Predicate]:
    """
    Newest first, narrowed by category unless it is the "All" sentinel,
    then by free text across name, address and type, then capped.
    Creation time is the only sort key.
    """
    predicates: List[Predicate] = [OrderBy(CREATED_AT, descending=True)]

    if search.filter and search.filter != ALL_CATEGORIES:
        predicates.append(Equal("type", search.filter))

    if search.query:
        predicates.append(
            AnyOf(tuple(Search(name, search.query) for name in SEARCH_FIELDS))
        )

    if search.limit:
        predicates.append(Limit(search.limit))

    return predicates


def build_latest_predicates() -> List[Predicate]:
    return [OrderBy(CREATED_AT), Limit(LATEST_PAGE_SIZE)]


def bookings_for_user(user_id: str) -> List[Predicate]:
    return [Equal("userId", user_id)]


def booking_for_property(user_id: str, property_id: str) -> List[Predicate]:
    return [Equal("userId", user_id), Equal("propertyId", property_id)]


def render_query(predicate: Predicate) -> str:
    if isinstance(predicate, OrderBy):
        if predicate.descending:
            return AppwriteQuery.order_desc(predicate.attribute)
        return AppwriteQuery.order_asc(predicate.attribute)
    if isinstance(predicate, Equal):
        return AppwriteQuery.equal(predicate.attribute, predicate.value)
    if isinstance(predicate, Search):
        return AppwriteQuery.search(predicate.attribute, predicate.value)
    if isinstance(predicate, AnyOf):
        return AppwriteQuery.or_queries([render_query(p) for p in predicate.predicates])
    if isinstance(predicate, Limit):
        return AppwriteQuery.limit(predicate.count)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def render_queries(predicates: Sequence[Predicate]) -> List[str]:
    """Translates predicates into the query strings the Appwrite SDK sends."""
    return [render_query(p) for p in predicates]
