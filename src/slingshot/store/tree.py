"""Folder tree rules: ownership lookup and cycle-free moves."""

from .base import NotFoundError, Store, StoreError
from .models import Folder, Request


class FolderCycleError(StoreError, ValueError):
    """Moving the folder would make it its own ancestor."""


def ancestors(store: Store, folder_id: str | None) -> list[str]:
    """Ids from ``folder_id`` up to the root, nearest first."""
    chain = []
    seen = set()
    while folder_id is not None and folder_id not in seen:
        seen.add(folder_id)
        folder = store.get_folder(folder_id)
        if folder is None:
            break
        chain.append(folder.id)
        folder_id = folder.parent_folder_id
    return chain


def move_folder(store: Store, folder_id: str, new_parent_id: str | None) -> Folder:
    folder = store.get_folder(folder_id)
    if folder is None:
        raise NotFoundError(f"Folder not found: {folder_id}")

    if new_parent_id is not None:
        parent = store.get_folder(new_parent_id)
        if parent is None:
            raise NotFoundError(f"Folder not found: {new_parent_id}")
        if parent.collection_id != folder.collection_id:
            raise StoreError("Cannot move a folder into another collection")
        if folder_id in ancestors(store, new_parent_id):
            raise FolderCycleError(f"Cannot move folder {folder.name!r} into itself or one of its descendants")

    folder.parent_folder_id = new_parent_id
    return store.update_folder(folder)


def owning_folder(store: Store, request: Request) -> Folder | None:
    """The request's folder, or None when it is ownerless.

    A ``folder_id`` that no longer resolves (deleted folder) counts as
    ownerless rather than an error.
    """
    if request.folder_id is None:
        return None
    return store.get_folder(request.folder_id)
