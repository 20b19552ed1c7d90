# ======================================
# core/cloud/appwrite.py
# ======================================

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from appwrite.client import Client
from appwrite.enums.o_auth_provider import OAuthProvider
from appwrite.services.account import Account
from appwrite.services.databases import Databases
from starlette.concurrency import run_in_threadpool

from core.config.settings import AppwriteSettings
from core.query.builder import Predicate, render_queries


def as_payload(response: Any) -> Dict[str, Any]:
    """
    Turns an SDK response into the plain REST payload. Recent SDK releases
    return pydantic models (`Document`, `Session`, `User`) instead of dicts,
    and a `Document` keeps the collection's own attributes under `data`.
    """
    if response is None:
        return {}
    if isinstance(response, dict):
        return response

    payload = response.to_dict() if hasattr(response, "to_dict") else response.model_dump(by_alias=True)
    data = payload.pop("data", None)
    if isinstance(data, dict):
        payload = {**data, **payload}
    return payload


def documents_of(response: Any) -> List[Dict[str, Any]]:
    if isinstance(response, dict):
        documents = response.get("documents", [])
    else:
        documents = getattr(response, "documents", None) or []
    return [as_payload(document) for document in documents]


class AppwriteDocumentStore:
    """
    Remote document store backed by Appwrite Databases. The SDK is synchronous,
    so every call is pushed to a worker thread to keep the event loop free.
    """

    def __init__(self, databases: Databases, database_id: str):
        self.databases = databases
        self.database_id = database_id

    async def list_documents(self, collection_id: str, predicates: Sequence[Predicate]) -> List[Dict[str, Any]]:
        result = await run_in_threadpool(
            self.databases.list_documents,
            database_id=self.database_id,
            collection_id=collection_id,
            queries=render_queries(predicates),
        )
        return documents_of(result)

    async def get_document(self, collection_id: str, document_id: str) -> Dict[str, Any]:
        result = await run_in_threadpool(
            self.databases.get_document,
            database_id=self.database_id,
            collection_id=collection_id,
            document_id=document_id,
        )
        return as_payload(result)

    async def create_document(
        self,
        collection_id: str,
        document_id: str,
        data: Dict[str, Any],
        permissions: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        result = await run_in_threadpool(
            self.databases.create_document,
            database_id=self.database_id,
            collection_id=collection_id,
            document_id=document_id,
            data=data,
            permissions=permissions,
        )
        return as_payload(result)

    async def delete_document(self, collection_id: str, document_id: str) -> None:
        await run_in_threadpool(
            self.databases.delete_document,
            database_id=self.database_id,
            collection_id=collection_id,
            document_id=document_id,
        )


class AppwriteIdentityProvider:
    """Identity and session operations of the Appwrite Account service."""

    def __init__(self, account: Account):
        self.account = account

    async def create_oauth2_token(self, provider: str, redirect_uri: str) -> str:
        # The SDK follows the redirect and hands back the provider-hosted URL
        return await run_in_threadpool(
            self.account.create_o_auth2_token,
            provider=OAuthProvider(provider),
            success=redirect_uri,
        )

    async def create_session(self, user_id: str, secret: str) -> Dict[str, Any]:
        result = await run_in_threadpool(self.account.create_session, user_id=user_id, secret=secret)
        return as_payload(result)

    async def delete_session(self, session_id: str) -> None:
        await run_in_threadpool(self.account.delete_session, session_id=session_id)

    async def get(self) -> Dict[str, Any]:
        result = await run_in_threadpool(self.account.get)
        return as_payload(result)

    def use_session(self, secret: Optional[str]) -> None:
        # An empty value makes later requests anonymous again
        self.account.client.set_session(secret or "")


@dataclass
class CloudContext:
    settings: AppwriteSettings
    store: Any
    identity: Any
    # Key-authenticated account service; only this one is handed session secrets
    admin_identity: Any = None

    @property
    def exchange(self):
        return self.admin_identity or self.identity


def create_client(settings: AppwriteSettings, session: Optional[str] = None, admin: bool = False) -> Client:
    """
    An admin client carries the API key and never a session. Any other client
    acts as the signed-in user (or as a guest) and never carries the key,
    otherwise Appwrite would run its requests under the application role.
    """
    client = Client()
    (client
        .set_endpoint(settings.endpoint)
        .set_project(settings.project_id)
    )
    client.add_header("x-appwrite-platform", settings.platform)
    if admin:
        if settings.api_key:
            client.set_key(settings.api_key)
    elif session:
        client.set_session(session)
    return client


def create_cloud(settings: AppwriteSettings, session: Optional[str] = None) -> CloudContext:
    """
    Builds the Appwrite services once and bundles them for the components that
    need them, instead of sharing module-level client globals.
    """
    client = create_client(settings, session)
    return CloudContext(
        settings=settings,
        store=AppwriteDocumentStore(Databases(client), settings.database_id),
        identity=AppwriteIdentityProvider(Account(client)),
        admin_identity=AppwriteIdentityProvider(Account(create_client(settings, admin=True))),
    )


def initials_avatar_url(settings: AppwriteSettings, name: str) -> str:
    """Avatar reference rendered by Appwrite from the initials of `name`."""
    params = urlencode({"name": name, "project": settings.project_id})
    return f"{settings.endpoint.rstrip('/')}/avatars/initials?{params}"
