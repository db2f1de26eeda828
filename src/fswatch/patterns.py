"""Glob patterns matched against paths relative to a watched directory."""

from wcmatch import glob

# ``**`` spans directories, ``*`` stays inside one segment and dot
# files are only excluded by an explicit class such as ``[^.]``
GLOB_FLAGS = glob.GLOBSTAR | glob.DOTGLOB | glob.FORCEUNIX


class GlobMatcher:
    """Matches relative POSIX paths against a glob pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def matches(self, relative_path: str) -> bool:
        """
        Check whether a path relative to the watched directory matches.

        Args:
            relative_path: Path using '/' as separator, without a leading '/'

        Returns:
            True if the whole path matches the pattern
        """
        return glob.globmatch(relative_path, self.pattern, flags=GLOB_FLAGS)

    def __repr__(self) -> str:
        return f"GlobMatcher({self.pattern!r})"
