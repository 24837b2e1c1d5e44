"""Version parsing and ordering."""

from .comparator import VersionOrder, compare_versions, parse_version, version_newer

__all__ = ["VersionOrder", "compare_versions", "parse_version", "version_newer"]
