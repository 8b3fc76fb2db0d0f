# storage/resolver.py
from .dto import ProvisionedLayout, RemoteFileCategory

# Categories not listed here are stored in the repository root folder.
CATEGORY_FOLDER_FIELDS = {
    RemoteFileCategory.CONTENT: "content_id",
    RemoteFileCategory.METADATA_DB: "metadata_id",
    RemoteFileCategory.CLEANUP: "metadata_id",
    RemoteFileCategory.ACTION: "actions_id",
    RemoteFileCategory.TRANSACTION: "transactions_id",
    RemoteFileCategory.TEMP: "temp_id",
}


class RemoteFileResolver:
    """Maps a file category to the ID of the folder holding files of that category."""

    def __init__(self, layout: ProvisionedLayout):
        self.layout = layout

    def folder_for(self, category: RemoteFileCategory) -> str:
        """
        Returns the folder ID for `category`. An unset ID comes back as an
        empty string; the provider call made with it will fail on its own.
        """
        field = CATEGORY_FOLDER_FIELDS.get(category, "root_id")
        return getattr(self.layout, field) or ""
