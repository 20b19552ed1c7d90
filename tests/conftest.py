"""
tests/conftest.py
In-memory stand-ins for the Appwrite document store, account service and
interactive auth surface, plus the fixtures built from them.
"""

import asyncio
from collections import defaultdict
from urllib.parse import urlencode

import pytest
from appwrite.exception import AppwriteException

from core.auth.browser import SUCCESS, BrowserResult
from core.cloud.appwrite import CloudContext
from core.config.settings import AppwriteSettings
from core.query.builder import AnyOf, Equal, Limit, OrderBy, Search


def _matches(document, predicate) -> bool:
    if isinstance(predicate, Equal):
        return document.get(predicate.attribute) == predicate.value
    if isinstance(predicate, Search):
        return predicate.value.lower() in str(document.get(predicate.attribute, "")).lower()
    if isinstance(predicate, AnyOf):
        return any(_matches(document, p) for p in predicate.predicates)
    return True


class FakeDocumentStore:
    """Evaluates predicates the way the remote store would, over plain dicts."""

    def __init__(self):
        self.collections = defaultdict(dict)
        self.failing_documents = set()
        self.fail_listing = False
        self.listed = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._clock = 0

    def _stamp(self) -> str:
        self._clock += 1
        return f"2025-01-01T00:00:{self._clock:02d}.000+00:00"

    def add(self, collection_id, document):
        document = dict(document)
        document.setdefault("$createdAt", self._stamp())
        self.collections[collection_id][document["$id"]] = document
        return document

    async def list_documents(self, collection_id, predicates):
        self.listed.append((collection_id, list(predicates)))
        if self.fail_listing:
            raise AppwriteException("Server Error", 500, "general_unknown")

        documents = list(self.collections[collection_id].values())
        limit = None
        for predicate in predicates:
            if isinstance(predicate, OrderBy):
                documents.sort(key=lambda d: d.get(predicate.attribute, ""), reverse=predicate.descending)
            elif isinstance(predicate, Limit):
                limit = predicate.count
            else:
                documents = [d for d in documents if _matches(d, predicate)]
        return [dict(d) for d in documents[:limit]]

    async def get_document(self, collection_id, document_id):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if document_id in self.failing_documents:
                raise AppwriteException("Server Error", 500, "general_unknown")
            document = self.collections[collection_id].get(document_id)
            if document is None:
                raise AppwriteException(
                    "Document with the requested ID could not be found.", 404, "document_not_found"
                )
            return dict(document)
        finally:
            self.in_flight -= 1

    async def create_document(self, collection_id, document_id, data, permissions=None):
        return self.add(collection_id, {"$id": document_id, "$permissions": list(permissions or []), **data})

    async def delete_document(self, collection_id, document_id):
        if document_id not in self.collections[collection_id]:
            raise AppwriteException(
                "Document with the requested ID could not be found.", 404, "document_not_found"
            )
        del self.collections[collection_id][document_id]


class FakeIdentityProvider:
    """Account service with one OAuth-capable user and secret-keyed sessions."""

    def __init__(self):
        self.users = {}
        self.token_secrets = {}
        self.sessions = {}
        self.session_secret = None
        self.token_url = "https://cloud.example.com/v1/account/tokens/oauth2/google?project=restate"
        self.token_error = None
        self.session_error = None
        self.redirect_uris = []
        # Appwrite only returns the session secret to key-authenticated callers
        self.reveals_secret = True

    def add_user(self, user_id, name, email=None, token_secret="token-secret"):
        self.users[user_id] = {"$id": user_id, "name": name, "email": email}
        self.token_secrets[user_id] = token_secret

    def sign_in(self, user_id) -> str:
        secret = f"session-{user_id}"
        self.sessions[secret] = user_id
        self.session_secret = secret
        return secret

    async def create_oauth2_token(self, provider, redirect_uri):
        self.redirect_uris.append(redirect_uri)
        if self.token_error:
            raise self.token_error
        return self.token_url

    async def create_session(self, user_id, secret):
        if self.session_error:
            raise self.session_error
        if self.token_secrets.get(user_id) != secret:
            raise AppwriteException("Invalid token passed in the request.", 401, "user_invalid_token")
        session_secret = f"session-{user_id}"
        self.sessions[session_secret] = user_id
        return {
            "$id": f"sess-{user_id}",
            "userId": user_id,
            "secret": session_secret if self.reveals_secret else "",
        }

    async def delete_session(self, session_id):
        if self.session_secret not in self.sessions:
            raise AppwriteException(
                "User (role: guests) missing scope (account)", 401, "general_unauthorized_scope"
            )
        del self.sessions[self.session_secret]

    async def get(self):
        user_id = self.sessions.get(self.session_secret)
        if user_id is None:
            raise AppwriteException(
                "User (role: guests) missing scope (account)", 401, "general_unauthorized_scope"
            )
        return dict(self.users[user_id])

    def use_session(self, secret):
        self.session_secret = secret


class FakeAuthSurface:
    def __init__(self, result_type=SUCCESS, params=None):
        self.result_type = result_type
        self.params = params or {}
        self.opened = []

    def create_redirect_uri(self, path="/"):
        return f"restate://app{path}"

    async def open_auth_session(self, url, redirect_uri):
        self.opened.append((url, redirect_uri))
        if self.result_type != SUCCESS:
            return BrowserResult(self.result_type)
        return BrowserResult(SUCCESS, f"{redirect_uri}?{urlencode(self.params)}")


@pytest.fixture
def settings():
    return AppwriteSettings(
        endpoint="https://cloud.example.com/v1",
        project_id="restate",
        database_id="restate-db",
        galleries_collection_id="galleries",
        reviews_collection_id="reviews",
        agents_collection_id="agents",
        properties_collection_id="properties",
        bookings_collection_id="bookings",
        bucket_id="images",
    )


@pytest.fixture
def store():
    return FakeDocumentStore()


@pytest.fixture
def identity_factory():
    def build():
        provider = FakeIdentityProvider()
        provider.add_user("user-1", "Jane Cooper", "jane@example.com")
        return provider
    return build


@pytest.fixture
def identity(identity_factory):
    return identity_factory()


@pytest.fixture
def cloud(settings, store, identity):
    return CloudContext(settings=settings, store=store, identity=identity)


@pytest.fixture
def listings(store):
    """A small catalogue of properties, oldest first."""
    rows = [
        {"$id": "p1", "name": "Merialla Villa", "address": "22 W 15th St, New York", "type": "Villa", "price": 500, "image": "https://img.example/p1.jpg"},
        {"$id": "p2", "name": "Harbor Condo", "address": "1 Pier Rd, Boston", "type": "Condo", "price": 750, "image": "https://img.example/p2.jpg"},
        {"$id": "p3", "name": "Sunset House", "address": "9 Beach Blvd, Miami", "type": "House", "price": 320, "image": None},
        {"$id": "p4", "name": "Midtown Studio", "address": "300 Park Ave, New York", "type": "Studio", "price": 210, "image": None},
        {"$id": "p5", "name": "Lakeside Villa", "address": "4 Shore Dr, Chicago", "type": "Villa", "price": 980, "image": None},
        {"$id": "p6", "name": "Garden Townhouse", "address": "17 Elm St, Boston", "type": "Townhouse", "price": 640, "image": None},
        {"$id": "p7", "name": "Skyline Apartment", "address": "88 High St, Seattle", "type": "Apartment", "price": 450, "image": None},
    ]
    return [store.add("properties", row) for row in rows]


@pytest.fixture
def surface_factory():
    return FakeAuthSurface
