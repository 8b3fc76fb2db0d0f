# storage/base.py
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

from .dto import RemoteFile, RemoteFileCategory


class TransferManager(ABC):
    """
    Abstract base class for a repository storage backend.
    Defines the operations a synchronization client uses to store and fetch
    repository files. Implementations are not thread-safe; one caller at a time.
    """

    @abstractmethod
    def connect(self):
        """
        Checks that the backend is reachable with the configured credential.
        Raises StorageConnectionError otherwise.
        """
        pass

    @abstractmethod
    def disconnect(self):
        pass

    @abstractmethod
    def init(self, create_if_missing: bool):
        """
        Creates the repository folders, and the root folder too if
        `create_if_missing` is set and it does not exist yet.
        """
        pass

    @abstractmethod
    def download(self, remote_file: RemoteFile, local_path: Path):
        """
        Downloads a remote file. The local file is only replaced once the
        download has completed.

        :param remote_file: The file to download.
        :param local_path: Where to store it.
        """
        pass

    @abstractmethod
    def upload(self, local_path: Path, remote_file: RemoteFile):
        """
        Uploads a local file under the name and category of `remote_file`.

        :param local_path: The local file to upload.
        :param remote_file: The remote name for the uploaded file.
        """
        pass

    @abstractmethod
    def delete(self, remote_file: RemoteFile) -> bool:
        """Deletes a remote file. Deleting a file that does not exist succeeds."""
        pass

    @abstractmethod
    def move(self, source: RemoteFile, target: RemoteFile):
        """
        Renames and/or moves a remote file, replacing `target` if it exists.
        Raises MoveError on failure.
        """
        pass

    @abstractmethod
    def list(self, category: RemoteFileCategory) -> Dict[str, RemoteFile]:
        """Lists the files of a category, keyed by name."""
        pass

    @abstractmethod
    def test_target_can_write(self) -> bool:
        pass

    @abstractmethod
    def test_target_exists(self) -> bool:
        pass

    @abstractmethod
    def test_target_can_create(self) -> bool:
        pass

    @abstractmethod
    def test_repo_file_exists(self) -> bool:
        pass
