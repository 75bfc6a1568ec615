"""
paths.py - Separator-aware path segments

Artifact paths may be Windows-style (backslash separated, drive root) or
POSIX-style. SegmentedPath keeps the components and the separator together
so that rewriting the file name never depends on the running OS.

A backslash may also appear inside a POSIX path (a case name such as
"create\\by_cmd"). Forward slashes are therefore still honoured within the
final component: the file name is whatever follows the last "/" there.
"""

from dataclasses import dataclass
from typing import Tuple

WINDOWS_SEPARATOR = "\\"
POSIX_SEPARATOR = "/"


@dataclass(frozen=True)
class SegmentedPath:
    """An ordered list of path components joined by one explicit separator."""

    components: Tuple[str, ...]
    separator: str = POSIX_SEPARATOR

    @classmethod
    def parse(cls, path: str) -> "SegmentedPath":
        """
        Split a path string into components.

        A string containing a backslash is split on backslashes; anything
        else is split on forward slashes. A string with no separator at all
        is a single component.
        """
        separator = WINDOWS_SEPARATOR if WINDOWS_SEPARATOR in path else POSIX_SEPARATOR
        return cls(tuple(path.split(separator)), separator)

    @property
    def name(self) -> str:
        return self.components[-1].rpartition(POSIX_SEPARATOR)[2]

    def with_name(self, name: str) -> "SegmentedPath":
        """Replace the file name, keeping any "/"-separated head of the final component."""
        head, slash, _ = self.components[-1].rpartition(POSIX_SEPARATOR)
        return SegmentedPath(self.components[:-1] + (f"{head}{slash}{name}",), self.separator)

    def with_prefix(self, prefix: str) -> "SegmentedPath":
        """Return a copy whose file name starts with prefix."""
        return self.with_name(f"{prefix}{self.name}")

    def __str__(self) -> str:
        return self.separator.join(self.components)


def prefix_filename(path: str, ordinal: int) -> str:
    """
    Prepend "<ordinal>_" to the file name of path.

    Example:
        prefix_filename("C:\\root\\case\\shot.png", 3) -> "C:\\root\\case\\3_shot.png"
        prefix_filename("/root/case/shot.png", 3) -> "/root/case/3_shot.png"
        prefix_filename("/root/my\\case/shot.png", 3) -> "/root/my\\case/3_shot.png"
    """
    return str(SegmentedPath.parse(path).with_prefix(f"{ordinal}_"))
