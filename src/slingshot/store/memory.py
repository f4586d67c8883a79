"""Dict-backed Store implementation.

Objects are deep-copied on the way in and out, so callers never share
mutable state with the store.
"""

import threading

from .base import NotFoundError
from .models import Collection, Environment, Folder, Request, Secret


class InMemoryStore:
    def __init__(self):
        self._lock = threading.RLock()
        self.collections: dict[str, Collection] = {}
        self.folders: dict[str, Folder] = {}
        self.requests: dict[str, Request] = {}
        self.environments: dict[str, Environment] = {}
        self.secrets: dict[str, Secret] = {}

    def _put(self, table: dict, obj):
        with self._lock:
            table[obj.id] = obj.model_copy(deep=True)
            return obj.model_copy(deep=True)

    def _get(self, table: dict, obj_id: str | None):
        with self._lock:
            obj = table.get(obj_id)
            return obj.model_copy(deep=True) if obj is not None else None

    def _update(self, table: dict, obj, kind: str):
        with self._lock:
            if obj.id not in table:
                raise NotFoundError(f"{kind} not found: {obj.id}")
            return self._put(table, obj)

    # Collections

    def create_collection(self, collection: Collection) -> Collection:
        return self._put(self.collections, collection)

    def get_collection(self, collection_id: str) -> Collection | None:
        return self._get(self.collections, collection_id)

    def update_collection(self, collection: Collection) -> Collection:
        return self._update(self.collections, collection, "Collection")

    def list_collections(self) -> list[Collection]:
        with self._lock:
            return sorted((c.model_copy(deep=True) for c in self.collections.values()), key=lambda c: c.name)

    def delete_collection(self, collection_id: str) -> None:
        with self._lock:
            self.collections.pop(collection_id, None)
            for table in (self.folders, self.requests, self.secrets):
                for key in [k for k, v in table.items() if v.collection_id == collection_id]:
                    del table[key]

    # Folders

    def create_folder(self, folder: Folder) -> Folder:
        return self._put(self.folders, folder)

    def get_folder(self, folder_id: str) -> Folder | None:
        return self._get(self.folders, folder_id)

    def update_folder(self, folder: Folder) -> Folder:
        return self._update(self.folders, folder, "Folder")

    def list_folders(self, collection_id: str) -> list[Folder]:
        with self._lock:
            return [f.model_copy(deep=True) for f in self.folders.values() if f.collection_id == collection_id]

    def delete_folder(self, folder_id: str) -> None:
        """Delete a folder with its descendant folders and their requests."""
        with self._lock:
            for child in [f for f in self.folders.values() if f.parent_folder_id == folder_id]:
                self.delete_folder(child.id)
            for key in [k for k, r in self.requests.items() if r.folder_id == folder_id]:
                del self.requests[key]
            self.folders.pop(folder_id, None)

    # Requests

    def create_request(self, request: Request) -> Request:
        return self._put(self.requests, request)

    def get_request(self, request_id: str) -> Request | None:
        return self._get(self.requests, request_id)

    def update_request(self, request: Request) -> Request:
        return self._update(self.requests, request, "Request")

    def list_requests(self, collection_id: str) -> list[Request]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self.requests.values() if r.collection_id == collection_id]

    # Environments and secrets

    def create_environment(self, environment: Environment) -> Environment:
        return self._put(self.environments, environment)

    def get_environment(self, environment_id: str) -> Environment | None:
        return self._get(self.environments, environment_id)

    def create_secret(self, secret: Secret) -> Secret:
        return self._put(self.secrets, secret)

    def delete_secret(self, secret_id: str) -> None:
        with self._lock:
            self.secrets.pop(secret_id, None)

    def list_collection_secrets(self, collection_id: str) -> list[Secret]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self.secrets.values() if s.collection_id == collection_id]

    def list_environment_secrets(self, environment_id: str) -> list[Secret]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self.secrets.values() if s.environment_id == environment_id]
