"""Write an ImportResult into a Store."""

import logging

from slingshot.parser.base import ImportResult
from .base import Store
from .models import Collection, Folder, Request, TRACKED_FIELDS, new_id

logger = logging.getLogger(__name__)


def persist_import(store: Store, result: ImportResult, environment_id: str | None = None) -> Collection:
    """Create the collection, its folders and its requests.

    Folders are written in list order, which importers guarantee puts
    parents before children. Draft folder ids are remapped to fresh ids, so
    the same result can be persisted more than once. If any write fails the
    collection is deleted again before the error propagates.
    """
    collection = store.create_collection(
        Collection(
            name=result.collection_name,
            description=result.description,
            environment_id=environment_id,
            variables=result.variables,
        )
    )
    folder_ids = {draft.id: new_id() for draft in result.folders}
    try:
        for draft in result.folders:
            store.create_folder(
                Folder(
                    id=folder_ids[draft.id],
                    collection_id=collection.id,
                    parent_folder_id=folder_ids.get(draft.parent_folder_id),
                    name=draft.name,
                    description=draft.description,
                )
            )
        for draft in result.requests:
            store.create_request(
                Request(
                    collection_id=collection.id,
                    folder_id=folder_ids.get(draft.folder_id),
                    name=draft.name,
                    **draft.model_dump(include=set(TRACKED_FIELDS)),
                )
            )
    except Exception:
        logger.exception("Import of %r failed, removing partial collection", result.collection_name)
        store.delete_collection(collection.id)
        raise

    logger.info(
        "Imported collection %r: %d folders, %d requests",
        collection.name,
        len(result.folders),
        len(result.requests),
    )
    return collection
