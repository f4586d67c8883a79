"""Store interface used by the engine.

The concrete store owns storage format and transactions; the engine only
creates, reads, updates and lists through this protocol.
"""

from typing import Protocol

from .models import Collection, Environment, Folder, Request, Secret


class StoreError(Exception):
    """Base class for store-level failures."""


class NotFoundError(StoreError, LookupError):
    pass


class Store(Protocol):
    def create_collection(self, collection: Collection) -> Collection: ...

    def get_collection(self, collection_id: str) -> Collection | None: ...

    def update_collection(self, collection: Collection) -> Collection: ...

    def list_collections(self) -> list[Collection]: ...

    def delete_collection(self, collection_id: str) -> None: ...

    def create_folder(self, folder: Folder) -> Folder: ...

    def get_folder(self, folder_id: str) -> Folder | None: ...

    def update_folder(self, folder: Folder) -> Folder: ...

    def list_folders(self, collection_id: str) -> list[Folder]: ...

    def create_request(self, request: Request) -> Request: ...

    def get_request(self, request_id: str) -> Request | None: ...

    def update_request(self, request: Request) -> Request: ...

    def list_requests(self, collection_id: str) -> list[Request]: ...

    def create_environment(self, environment: Environment) -> Environment: ...

    def get_environment(self, environment_id: str) -> Environment | None: ...

    def create_secret(self, secret: Secret) -> Secret: ...

    def list_collection_secrets(self, collection_id: str) -> list[Secret]: ...

    def list_environment_secrets(self, environment_id: str) -> list[Secret]: ...
