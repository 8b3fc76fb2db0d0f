# storage/dto.py
import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class RemoteFileCategory(str, Enum):
    """The kinds of repository files. Each kind lives in its own folder."""

    CONTENT = "content"
    METADATA_DB = "metadata_db"
    CLEANUP = "cleanup"
    ACTION = "action"
    TRANSACTION = "transaction"
    TEMP = "temp"
    REPOSITORY_MARKER = "repository_marker"
    GENERIC = "generic"


REPOSITORY_MARKER_NAME = "syncany"

NAME_PATTERNS = {
    RemoteFileCategory.CONTENT: re.compile(r"multichunk-[0-9a-f]+"),
    RemoteFileCategory.METADATA_DB: re.compile(r"db-[^-]+-\d+"),
    RemoteFileCategory.CLEANUP: re.compile(r"cleanup-\d+"),
    RemoteFileCategory.ACTION: re.compile(r"action-(up|down|cleanup)-[^-]+-\d+"),
    RemoteFileCategory.TRANSACTION: re.compile(r"transaction-[^-]+-\d+"),
    RemoteFileCategory.TEMP: re.compile(r"temp-.+"),
    RemoteFileCategory.REPOSITORY_MARKER: re.compile(re.escape(REPOSITORY_MARKER_NAME)),
    RemoteFileCategory.GENERIC: re.compile(r".+"),
}


class RemoteFile(BaseModel):
    """
    A logical repository file: its category and its name.
    Construction fails with a ValueError if the name does not follow the
    naming convention of the category.
    """

    model_config = ConfigDict(frozen=True)

    category: RemoteFileCategory
    name: str

    @model_validator(mode="after")
    def check_name_pattern(self):
        if not NAME_PATTERNS[self.category].fullmatch(self.name):
            raise ValueError(
                f"'{self.name}' is not a valid name for a {self.category.value} file"
            )
        return self

    @classmethod
    def repository_marker(cls) -> "RemoteFile":
        return cls(category=RemoteFileCategory.REPOSITORY_MARKER, name=REPOSITORY_MARKER_NAME)


class DriveFile(BaseModel):
    """
    The few fields of a Drive v2 file resource this package reads.
    Only lives for the duration of a single operation.
    """

    id: str
    title: str
    parents: List[str] = []
    download_url: Optional[str] = None

    @classmethod
    def from_api(cls, item: dict) -> "DriveFile":
        return cls(
            id=item["id"],
            title=item.get("title", ""),
            parents=[parent["id"] for parent in item.get("parents", [])],
            download_url=item.get("downloadUrl"),
        )


class ProvisionedLayout(BaseModel):
    """
    Folder IDs of a repository on Google Drive.

    The IDs are filled in once, either by init() or by the first existence
    check against an already existing repository, and `setup_complete` is
    set when all of them are known.
    """

    root_path: str
    root_id: Optional[str] = None
    content_id: Optional[str] = None
    metadata_id: Optional[str] = None
    actions_id: Optional[str] = None
    transactions_id: Optional[str] = None
    temp_id: Optional[str] = None
    setup_complete: bool = False

    @classmethod
    def load(cls, path: Path, root_path: str) -> "ProvisionedLayout":
        """
        Reads the layout from a JSON file. A missing file, or one written for
        a different root path, gives a fresh layout for `root_path`.
        """
        if not path.is_file():
            return cls(root_path=root_path)

        layout = cls.model_validate(json.loads(path.read_text()))
        if layout.root_path != root_path:
            logging.warning(
                f"Layout file {path} belongs to root path '{layout.root_path}', not '{root_path}'. Starting fresh."
            )
            return cls(root_path=root_path)
        return layout

    def save(self, path: Path):
        path.write_text(self.model_dump_json(indent=2))
