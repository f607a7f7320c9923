"""Unified diff parsing, filtering and reconstruction.

Handles both path-prefix conventions returned by Bitbucket:
``diff --git a/x b/x`` (Cloud, plain git) and ``diff --git src://x dst://x``
(Server). Parsing is lenient: a chunk without a resolvable file path is
skipped, never reported.
"""

import fnmatch
import logging
import posixpath
import re
from typing import List, Optional

from .models import DiffSection, FilteredResult, FilterMetadata, FilterOptions

logger = logging.getLogger(__name__)

# Number of lines after the ``diff --git`` header scanned for file status
HEADER_SCAN_LINES = 10

_FILE_BOUNDARY = re.compile(r"(?=^diff --git)", re.MULTILINE)
_GIT_HEADER = re.compile(r"^diff --git (?:a/|src://)(.+?) (?:b/|dst://)(.+?)$")
_NEW_PATH = re.compile(r"^\+\+\+ (?:b/|dst://)(.+)$")
_OLD_PATH = re.compile(r"^--- (?:a/|src://)(.+)$")


class DiffParser:
    """Split a unified diff into per-file sections and filter them."""

    def parse_diff_into_sections(self, diff_text: str) -> List[DiffSection]:
        """Parse a unified diff into file sections, in input order."""
        if not diff_text:
            return []

        sections = []
        for chunk in _FILE_BOUNDARY.split(diff_text):
            if not chunk.strip():
                continue
            section = self._parse_file_section(chunk)
            if section:
                sections.append(section)
            else:
                logger.debug("Skipping diff chunk without a file path (%d chars)", len(chunk))

        return sections

    def _parse_file_section(self, chunk: str) -> Optional[DiffSection]:
        lines = chunk.split("\n")

        file_path = ""
        old_path: Optional[str] = None
        is_new = False
        is_deleted = False
        is_renamed = False
        is_binary = False

        header = _GIT_HEADER.match(lines[0])
        if header:
            a_path, b_path = header.groups()
            file_path = b_path

            for line in lines[1:HEADER_SCAN_LINES]:
                if line.startswith("new file mode"):
                    is_new = True
                elif line.startswith("deleted file mode"):
                    is_deleted = True
                    file_path = a_path
                elif line.startswith("rename from "):
                    is_renamed = True
                    old_path = line[len("rename from "):]
                elif "Binary files" in line and "differ" in line:
                    is_binary = True
                elif line.startswith("--- "):
                    if "/dev/null" in line:
                        is_new = True
                elif line.startswith("+++ "):
                    if "/dev/null" in line:
                        is_deleted = True
                    match = _NEW_PATH.match(line)
                    if match and not file_path:
                        file_path = match.group(1)

        # No usable header: fall back to the ---/+++ lines
        if not file_path:
            for line in lines:
                if line.startswith("+++ "):
                    if "/dev/null" in line:
                        is_deleted = True
                    match = _NEW_PATH.match(line)
                    if match:
                        file_path = match.group(1)
                        break
                elif line.startswith("--- "):
                    if "/dev/null" in line:
                        is_new = True
                    match = _OLD_PATH.match(line)
                    if match:
                        file_path = match.group(1)

        if not file_path:
            return None

        return DiffSection(
            file_path=file_path,
            old_path=old_path,
            content=chunk,
            is_new=is_new,
            is_deleted=is_deleted,
            is_renamed=is_renamed,
            is_binary=is_binary,
        )

    def filter_sections(self, sections: List[DiffSection], options: FilterOptions) -> FilteredResult:
        """Apply an exact path filter or exclude/include glob patterns."""
        excluded_file_list: List[str] = []
        filtered = list(sections)

        if options.file_path:
            filtered = []
            for section in sections:
                if options.file_path in (section.file_path, section.old_path):
                    filtered.append(section)
                else:
                    excluded_file_list.append(section.file_path)
        else:
            if options.exclude_patterns:
                kept = []
                for section in filtered:
                    if any(matches_pattern(section.file_path, p) for p in options.exclude_patterns):
                        excluded_file_list.append(section.file_path)
                    else:
                        kept.append(section)
                filtered = kept

            if options.include_patterns:
                kept = []
                for section in filtered:
                    if any(matches_pattern(section.file_path, p) for p in options.include_patterns):
                        kept.append(section)
                    else:
                        excluded_file_list.append(section.file_path)
                filtered = kept

        return FilteredResult(
            sections=filtered,
            metadata=FilterMetadata(
                total_files=len(sections),
                included_files=len(filtered),
                excluded_files=len(sections) - len(filtered),
                excluded_file_list=excluded_file_list,
            ),
        )

    def reconstruct_diff(self, sections: List[DiffSection]) -> str:
        """Join section contents back into a single diff."""
        if not sections:
            return ""
        return "\n".join(section.content for section in sections)

    def extract_file_diff(self, diff_text: str, file_path: str) -> Optional[DiffSection]:
        """Return the section for ``file_path`` (new or old path), if present."""
        result = self.filter_sections(
            self.parse_diff_into_sections(diff_text),
            FilterOptions(file_path=file_path),
        )
        return result.sections[0] if result.sections else None


def matches_pattern(file_path: str, pattern: str) -> bool:
    """Shell-glob match where ``*`` stays within one path segment.

    A pattern without ``/`` is matched against the base name only, so
    ``*.lock`` matches ``a/b/yarn.lock`` but ``test*`` does not match
    ``tests/foo.py``. ``**`` matches zero or more whole segments.
    """
    if "/" not in pattern:
        return fnmatch.fnmatchcase(posixpath.basename(file_path), pattern)
    return _match_segments(file_path.strip("/").split("/"), pattern.strip("/").split("/"))


def _match_segments(parts: List[str], globs: List[str]) -> bool:
    if not globs:
        return not parts
    head, rest = globs[0], globs[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    if not parts or not fnmatch.fnmatchcase(parts[0], head):
        return False
    return _match_segments(parts[1:], rest)
