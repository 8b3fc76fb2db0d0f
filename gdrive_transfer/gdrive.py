# gdrive.py
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from .exceptions import (
    AmbiguousMatchError,
    MoveError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    UploadError,
)
from .storage.base import TransferManager
from .storage.catalog import PROVIDER_ERRORS, FileCatalog
from .storage.dto import ProvisionedLayout, RemoteFile, RemoteFileCategory
from .storage.folders import FolderIndex
from .storage.paths import split_path
from .storage.resolver import RemoteFileResolver

SCOPES = ["https://www.googleapis.com/auth/drive"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

APPLICATION_CONTENT_TYPE = "application/x-syncany"
FILE_DESCRIPTION = "Syncany Google Drive Repository file"
WRITE_TEST_FILE_NAME = "syncany-write-test"
TEMP_FILE_PREFIX = "temp-"

# Layout field -> folder title, in creation order
CATEGORY_FOLDERS = [
    ("content_id", "multichunks"),
    ("metadata_id", "databases"),
    ("actions_id", "actions"),
    ("transactions_id", "transactions"),
    ("temp_id", "temporary"),
]


class GoogleDriveTransferManager(TransferManager):
    """
    Stores a repository in a Google Drive folder, using the Drive v2 API.

    The repository marker lives in the root folder given by the layout's
    root path. Content chunks, metadata databases (and cleanup markers),
    actions, transactions and temporary files each live in their own
    sub-folder. Drive addresses everything by ID, so the sub-folder IDs are
    kept in the ProvisionedLayout.

    Operations are not atomic. Uploads go to a "temp-" name first and are
    renamed afterwards; moves rename, then swap the parent folder in two
    separate calls.
    """

    def __init__(self, client_id: str, client_secret: str, refresh_token: str, layout: ProvisionedLayout):
        try:
            self.credentials = Credentials(
                token=None,
                refresh_token=refresh_token,
                token_uri=TOKEN_URI,
                client_id=client_id,
                client_secret=client_secret,
                scopes=SCOPES,
            )
            self.service = build("drive", "v2", credentials=self.credentials, cache_discovery=False)
        except Exception as e:
            logging.error(f"Failed to initialize Google Drive client. Error: {e}")
            raise

        self.layout = layout
        self.resolver = RemoteFileResolver(layout)
        self.folders = FolderIndex(self.service)
        self.catalog = FileCatalog(self.service)

    def connect(self):
        try:
            self.credentials.refresh(Request())
            about = self.service.about().get().execute()
        except PROVIDER_ERRORS as e:
            logging.error(f"Unable to connect to Google Drive. The refresh token may be expired or revoked. Error: {e}")
            raise StorageConnectionError("Unable to connect to Google Drive") from e
        logging.info(f"Using Google Drive account from {about.get('name')}")

    def disconnect(self):
        # No session is held beyond the credential.
        pass

    def init(self, create_if_missing: bool):
        try:
            self.connect()
            if not self.test_target_exists() and create_if_missing:
                self.layout.root_id = self.folders.create_folder_path(
                    split_path(self.layout.root_path)
                )

            if not self.layout.root_id:
                raise NotFoundError(f"Root folder '{self.layout.root_path}' does not exist.")

            for field, title in CATEGORY_FOLDERS:
                setattr(self.layout, field, self.folders.create_folder_path([title], self.layout.root_id))
            self.layout.setup_complete = True
        except StorageError as e:
            logging.error(f"init: Cannot create required directories. Error: {e}")
            raise
        finally:
            self.disconnect()

    def download(self, remote_file: RemoteFile, local_path: Path):
        if remote_file.name in (".", ".."):
            return

        local_path = Path(local_path)
        folder_id = self.resolver.folder_for(remote_file.category)
        drive_file = self.catalog.find_exactly_one(folder_id, remote_file.name)
        if not drive_file.download_url:
            raise StorageError(f"Cannot get download URL for file '{remote_file.name}'")

        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{local_path.name}-", suffix=".tmp", dir=local_path.parent
            )
        except OSError as e:
            raise StorageError(f"Cannot create temp file next to {local_path}") from e

        temp_path = Path(temp_name)
        try:
            logging.info(f"Downloading {remote_file.name} to temp file {temp_path}")
            with os.fdopen(fd, "wb") as fh:
                request = self.service.files().get_media(fileId=drive_file.id)
                downloader = MediaIoBaseDownload(fh, request)
                done = False
                while not done:
                    _, done = downloader.next_chunk()

            logging.info(f"Renaming temp file {temp_path} to file {local_path}")
            os.replace(temp_path, local_path)
        except PROVIDER_ERRORS as e:
            logging.error(f"Error while downloading file {remote_file.name}: {e}")
            raise StorageError(f"Error while downloading file {remote_file.name}") from e
        finally:
            temp_path.unlink(missing_ok=True)

    def _insert_file(self, local_path: Path, title: str, folder_id: str) -> dict:
        body = {
            "title": title,
            "description": FILE_DESCRIPTION,
            "mimeType": APPLICATION_CONTENT_TYPE,
            "parents": [{"id": folder_id}],
        }
        media = MediaFileUpload(str(local_path), mimetype=APPLICATION_CONTENT_TYPE, resumable=True)
        return self.service.files().insert(body=body, media_body=media, fields="id").execute()

    def _rename(self, file_id: str, title: str):
        return self.service.files().patch(fileId=file_id, body={"title": title}, fields="title").execute()

    def upload(self, local_path: Path, remote_file: RemoteFile):
        """
        Uploads to "temp-<name>" in the category folder, then renames the new
        file to <name>. A failure between the two steps leaves the temp file
        behind; the final name is never half-written.
        """
        folder_id = self.resolver.folder_for(remote_file.category)
        temp_title = TEMP_FILE_PREFIX + remote_file.name
        try:
            logging.info(f"Uploading {local_path} to temp file {folder_id}:{temp_title}")
            created = self._insert_file(local_path, temp_title, folder_id)

            logging.info(f"Renaming temp file {temp_title} to file {remote_file.name}")
            renamed = self._rename(created["id"], remote_file.name)
        except PROVIDER_ERRORS as e:
            logging.error(f"Could not upload file {local_path} to {remote_file.name}: {e}")
            raise StorageError(f"Could not upload file {local_path} to {remote_file.name}") from e

        if not renamed:
            logging.warning(f"Renaming temp file {temp_title} failed")
            raise UploadError(f"Renaming temp file {temp_title} to {remote_file.name} failed")

    def delete(self, remote_file: RemoteFile) -> bool:
        folder_id = self.resolver.folder_for(remote_file.category)
        for drive_file in self.catalog.find(folder_id, remote_file.name):
            try:
                logging.info(f"Deleting file with ID '{drive_file.id}'...")
                self.service.files().delete(fileId=drive_file.id).execute()
            except HttpError as e:
                if e.resp.status == 404:
                    logging.warning(f"File with ID '{drive_file.id}' not found. Nothing to delete.")
                    continue
                logging.error(f"Could not delete file {remote_file.name}: {e}")
                raise StorageError(f"Could not delete file {remote_file.name}") from e
            except PROVIDER_ERRORS as e:
                logging.error(f"Could not delete file {remote_file.name}: {e}")
                raise StorageError(f"Could not delete file {remote_file.name}") from e
        return True

    def move(self, source: RemoteFile, target: RemoteFile):
        """
        Renames the source file if the names differ, then moves it to the
        target folder if the folders differ. A file already present at the
        target is deleted only after those steps have succeeded.

        The folder change removes the old parent and adds the new one in two
        calls. If the second call fails, the file is left without a parent.
        """
        source_folder_id = self.resolver.folder_for(source.category)
        target_folder_id = self.resolver.folder_for(target.category)
        source_label = f"{source_folder_id}:{source.name}"
        target_label = f"{target_folder_id}:{target.name}"

        try:
            source_file = self.catalog.find_exactly_one(source_folder_id, source.name)
            target_files = self.catalog.find(target_folder_id, target.name)
            if len(target_files) > 1:
                raise AmbiguousMatchError(
                    "Multiple destination files matching destination criteria",
                    count=len(target_files),
                )

            modified = False

            if source.name != target.name:
                logging.info(f"Renaming file {source.name} to file {target.name}")
                if not self._rename(source_file.id, target.name):
                    logging.warning(f"Renaming file {source.name} failed")
                    raise StorageError("Renaming failed")
                modified = True

            if source_folder_id != target_folder_id:
                logging.info(
                    f"Moving file {source.name} from folder {source_folder_id} to {target_folder_id}"
                )
                self.service.parents().delete(fileId=source_file.id, parentId=source_folder_id).execute()
                self.service.parents().insert(fileId=source_file.id, body={"id": target_folder_id}).execute()
                modified = True

            if modified and target_files:
                logging.info(f"Deleting replaced file {target_label}")
                self.service.files().delete(fileId=target_files[0].id).execute()
        except (StorageError,) + PROVIDER_ERRORS as e:
            logging.error(f"Could not rename file {source_label} to {target_label}: {e}")
            raise MoveError(source_label, target_label) from e

    def list(self, category: RemoteFileCategory) -> Dict[str, RemoteFile]:
        folder_id = self.resolver.folder_for(category)

        remote_files = {}
        for child in self.catalog.find(folder_id):
            try:
                remote_files[child.title] = RemoteFile(category=category, name=child.title)
            except ValueError:
                logging.info(
                    f"Cannot create {category.value} file for '{child.title}'; "
                    f"maybe invalid file name pattern. Ignoring file."
                )
        return remote_files

    def test_target_can_write(self) -> bool:
        try:
            if not self.test_target_exists():
                logging.info("testTargetCanWrite: Can NOT write, target does not exist.")
                return False

            fd, temp_name = tempfile.mkstemp(prefix=WRITE_TEST_FILE_NAME, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(WRITE_TEST_FILE_NAME.encode())
                created = self._insert_file(Path(temp_name), WRITE_TEST_FILE_NAME, self.layout.root_id)
            finally:
                os.remove(temp_name)

            self.service.files().delete(fileId=created["id"]).execute()
            logging.info("testTargetCanWrite: Can write, test file created/deleted successfully.")
            return True
        except Exception as e:
            logging.info(f"testTargetCanWrite: Can NOT write to target. Error: {e}")
            return False

    def _discover_category_folders(self):
        found = {
            field: self.folders.lookup_folder(title, self.layout.root_id)
            for field, title in CATEGORY_FOLDERS
        }
        for field, folder_id in found.items():
            setattr(self.layout, field, folder_id)
        self.layout.setup_complete = True

    def test_target_exists(self) -> bool:
        """
        Checks that every folder of the root path exists exactly once. When
        attaching to an existing repository, also records the folder IDs.
        """
        try:
            root_id = self.folders.find_folder_path(split_path(self.layout.root_path))
            if root_id is None:
                logging.info("testTargetExists: Target does NOT exist.")
                return False

            if not self.layout.setup_complete:
                self.layout.root_id = root_id
                try:
                    self._discover_category_folders()
                except StorageError as e:
                    logging.info(
                        f"Not all subfolders exist yet, which is fine if the repository is still initializing: {e}"
                    )

            logging.info("testTargetExists: Target does exist.")
            return True
        except Exception as e:
            logging.warning(f"testTargetExists: Target does NOT exist, error occurred: {e}")
            return False

    def test_target_can_create(self) -> bool:
        try:
            if self.test_target_exists():
                return True

            # Only a single folder is created; intermediate folders of a nested root path are not.
            folder_id = self.folders.create_folder(self.layout.root_path)
            self.service.files().delete(fileId=folder_id).execute()

            logging.info(f"testTargetCanCreate: Can create target at {self.layout.root_path}")
            return True
        except Exception as e:
            logging.info(f"testTargetCanCreate: Can NOT create target. Error: {e}")
            return False

    def test_repo_file_exists(self) -> bool:
        marker = RemoteFile.repository_marker()
        folder_id = self.resolver.folder_for(marker.category)
        location = f"{folder_id}:{marker.name}"
        try:
            files = self.catalog.find(folder_id, marker.name)
        except Exception as e:
            logging.info(f"testRepoFileExists: Exception when trying to check repo file existence: {e}")
            return False

        if not files:
            logging.info(f"testRepoFileExists: Repo file DOES NOT exist at {location}")
            return False
        if len(files) > 1:
            logging.warning(f"testRepoFileExists: Multiple repo files exist at {location}")
            return False

        logging.info(f"testRepoFileExists: Repo file exists at {location}")
        return True
