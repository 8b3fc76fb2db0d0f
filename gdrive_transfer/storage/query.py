# storage/query.py
"""Helpers for building Drive v2 search expressions (the `q` parameter of files().list)."""

FOLDER_CONTENT_TYPE = "application/vnd.google-apps.folder"
NOT_TRASHED = "trashed=false"


def quote(value: str) -> str:
    """Wraps a literal in single quotes, escaping embedded single quotes with a backslash."""
    return "'" + value.replace("'", "\\'") + "'"


def and_(*fragments: str) -> str:
    """Joins the non-empty fragments with ' and ', keeping their order."""
    return " and ".join(fragment for fragment in fragments if fragment)


def title_is(title: str) -> str:
    return "title=" + quote(title)


def in_parents(folder_id: str) -> str:
    return quote(folder_id) + " in parents"


def mime_type_is(mime_type: str) -> str:
    return "mimeType=" + quote(mime_type)
