# storage/paths.py
from typing import List

SEPARATOR = "/"
ESCAPED_SEPARATOR = "\\/"


def split_path(path: str) -> List[str]:
    """
    Splits a slash-delimited path into folder names.

    A slash preceded by a backslash is part of the name and comes out as a
    plain "/". Any other backslash is kept as is. Empty names produced by
    leading, trailing or doubled slashes are dropped.

    >>> split_path("a\\\\/b/c")
    ['a/b', 'c']
    """
    segments = []
    current = []
    i = 0
    while i < len(path):
        if path.startswith(ESCAPED_SEPARATOR, i):
            current.append(SEPARATOR)
            i += 2
            continue
        char = path[i]
        if char == SEPARATOR:
            if current:
                segments.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    if current:
        segments.append("".join(current))
    return segments
