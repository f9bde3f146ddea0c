"""Path validation and storage key derivation."""

import re

_DISALLOWED_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s")


def is_path_valid(path: str) -> bool:
    """Check that an extra-file path is relative and stays inside its root.

    Any `..` sequence is rejected, not only full segments, so names such as
    `..data/test` and `subdir/my-file..txt` are refused as well.
    """
    if not path:
        return False
    if path.startswith("/"):
        return False
    if ".." in path:
        return False
    if _CONTROL_CHARS.search(path):
        return False
    return True


def convert_path_to_config_map_key(path: str) -> str:
    """Flatten a file path into a ConfigMap key.

    Examples:
        path/to/my-file.txt -> path_to_my-file.txt
        FILE@master.html -> FILE_master.html
    """
    return _DISALLOWED_KEY_CHARS.sub("_", path)


def is_route_path_valid(path: str) -> bool:
    """Check a location path: absolute, no whitespace, no `..` segment."""
    if not path.startswith("/"):
        return False
    if _WHITESPACE.search(path):
        return False
    return ".." not in path.split("/")
