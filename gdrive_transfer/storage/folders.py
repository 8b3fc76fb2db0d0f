# storage/folders.py
import logging
from typing import List, Optional

from ..exceptions import AmbiguousMatchError, NotFoundError, StorageError
from .catalog import PROVIDER_ERRORS
from .query import FOLDER_CONTENT_TYPE, NOT_TRASHED, and_, in_parents, mime_type_is, title_is


class FolderIndex:
    """
    Creates folder hierarchies on Google Drive and resolves folder names to IDs.

    Drive allows several folders with the same title under one parent. Lookups
    never pick one of them; a duplicate is reported as an error.
    """

    def __init__(self, service):
        self.service = service

    def create_folder(self, title: str, parent_id: Optional[str] = None) -> str:
        """Creates a single folder and returns its ID. Does not check whether it already exists."""
        body = {"title": title, "mimeType": FOLDER_CONTENT_TYPE}
        if parent_id is not None:
            body["parents"] = [{"id": parent_id}]

        folder = self.service.files().insert(body=body, fields="id").execute()
        logging.info(f"Created folder '{title}' with ID: {folder['id']}")
        return folder["id"]

    def create_folder_path(self, segments: List[str], parent_id: Optional[str] = None) -> str:
        """
        Creates one folder per segment, each inside the previous one, and
        returns the ID of the deepest folder.

        Every segment is created unconditionally. If a creation fails, the
        folders created so far are left in place and the error propagates.
        """
        if not segments:
            raise StorageError("Cannot create a folder from an empty path.")

        current_parent_id = parent_id
        for segment in segments:
            try:
                current_parent_id = self.create_folder(segment, current_parent_id)
            except PROVIDER_ERRORS as e:
                logging.error(f"Failed to create folder '{segment}': {e}")
                raise StorageError(f"Could not create folder '{segment}' in Google Drive.") from e
        return current_parent_id

    def _query_folders(self, title: str, parent_id: Optional[str]) -> List[dict]:
        query = and_(
            NOT_TRASHED,
            mime_type_is(FOLDER_CONTENT_TYPE),
            title_is(title),
            in_parents(parent_id) if parent_id is not None else "",
        )
        response = self.service.files().list(q=query, fields="items(id, title)").execute()
        return response.get("items", [])

    def lookup_folder(self, title: str, parent_id: Optional[str]) -> str:
        """
        Returns the ID of the only folder called `title` inside `parent_id`.

        Raises:
            NotFoundError: If no such folder exists.
            AmbiguousMatchError: If there is more than one.
            StorageError: If the search itself fails.
        """
        try:
            folders = self._query_folders(title, parent_id)
        except PROVIDER_ERRORS as e:
            logging.warning(f"Search for folder '{title}' failed: {e}")
            raise StorageError(f"Search for folder '{title}' failed.") from e

        if not folders:
            raise NotFoundError(f"Folder '{title}' does not exist.")
        if len(folders) > 1:
            raise AmbiguousMatchError(
                f"{len(folders)} folders with name '{title}' exist.", count=len(folders)
            )
        return folders[0]["id"]

    def find_folder_path(self, segments: List[str]) -> Optional[str]:
        """
        Walks the path top-down and returns the ID of the deepest folder, or
        None as soon as a segment matches no folder or several folders.

        The first segment is searched without a parent, later ones inside the
        folder found for the previous segment.
        """
        parent_id = None
        for segment in segments:
            folders = self._query_folders(segment, parent_id)
            if not folders:
                logging.info(f"Folder '{segment}' does NOT exist.")
                return None
            if len(folders) > 1:
                logging.warning(
                    f"Folder '{segment}' exists, but there are {len(folders)} folders with the same name."
                )
                return None
            parent_id = folders[0]["id"]
        return parent_id
