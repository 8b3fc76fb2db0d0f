# storage/catalog.py
import logging
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from ..exceptions import AmbiguousMatchError, NotFoundError
from .dto import DriveFile
from .query import NOT_TRASHED, and_, in_parents, title_is

LIST_FIELDS = "nextPageToken, items(id, title, parents(id), downloadUrl)"

# Failures of a single Drive call: API errors, credential refresh, transport
PROVIDER_ERRORS = (HttpError, GoogleAuthError, HttpLib2Error, OSError)


class FileCatalog:
    """
    Finds files by exact title inside a folder, following all result pages.
    """

    def __init__(self, service):
        self.service = service

    def find(self, folder_id: Optional[str] = None, name: Optional[str] = None) -> List[DriveFile]:
        """
        Returns every non-trashed file matching the optional title and parent
        folder filters, in the order the pages were returned.

        If fetching a page fails, the error is logged and the files collected
        from the earlier pages are returned.
        """
        query = and_(
            NOT_TRASHED,
            title_is(name) if name is not None else "",
            in_parents(folder_id) if folder_id is not None else "",
        )

        result = []
        page_token = None
        while True:
            try:
                response = (
                    self.service.files()
                    .list(q=query, pageToken=page_token, fields=LIST_FIELDS)
                    .execute()
                )
            except PROVIDER_ERRORS as e:
                logging.warning(
                    f"Listing stopped after {len(result)} files for query [{query}]: {e}"
                )
                break

            result.extend(DriveFile.from_api(item) for item in response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return result

    def find_exactly_one(self, folder_id: Optional[str], name: str) -> DriveFile:
        """
        Returns the single file called `name` in the folder.

        Raises:
            NotFoundError: If there is no such file.
            AmbiguousMatchError: If there are several.
        """
        files = self.find(folder_id, name)
        if not files:
            logging.warning(f"File '{name}' does not exist in folder '{folder_id}'.")
            raise NotFoundError(f"File '{name}' does not exist in folder '{folder_id}'.")
        if len(files) > 1:
            logging.warning(f"{len(files)} files named '{name}' exist in folder '{folder_id}'.")
            raise AmbiguousMatchError(
                f"{len(files)} files named '{name}' exist in folder '{folder_id}'.",
                count=len(files),
            )
        return files[0]
