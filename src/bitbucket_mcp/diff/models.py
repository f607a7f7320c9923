"""Value types for diff parsing and code snippet matching."""

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class LineType(str, enum.Enum):
    """Kind of diff line an inline comment is anchored to."""

    ADDED = "ADDED"
    REMOVED = "REMOVED"
    CONTEXT = "CONTEXT"


class MatchStrategy(str, enum.Enum):
    """How to resolve a snippet that matches more than one diff line."""

    STRICT = "strict"
    BEST = "best"


@dataclass(frozen=True)
class DiffSection:
    """One file's worth of a unified diff."""

    file_path: str
    content: str
    old_path: Optional[str] = None  # set for renamed files
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_binary: bool = False


@dataclass
class FilterOptions:
    """Narrow a list of sections by exact path or glob patterns.

    ``file_path`` takes precedence: when set, the pattern lists are ignored.
    """

    file_path: Optional[str] = None
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.file_path or self.include_patterns or self.exclude_patterns)


@dataclass
class FilterMetadata:
    total_files: int
    included_files: int
    excluded_files: int
    excluded_file_list: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FilteredResult:
    sections: List[DiffSection]
    metadata: FilterMetadata


@dataclass
class SearchContext:
    """Lines expected around a snippet, in file order."""

    before: List[str] = field(default_factory=list)
    after: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MatchContext:
    lines_before: List[str]
    lines_after: List[str]


@dataclass(frozen=True)
class HunkInfo:
    hunk_index: int
    destination_start: int
    line_in_hunk: int


@dataclass(frozen=True)
class CodeMatch:
    """A located occurrence of a code snippet inside a diff hunk."""

    line_number: int
    line_type: LineType
    exact_content: str
    preview: str
    confidence: float
    context: MatchContext
    hunk_info: HunkInfo
    sequential_position: Optional[int] = None  # ADDED lines only

    def to_occurrence(self, file_path: str = "") -> Dict[str, Any]:
        """Short form used when reporting ambiguous matches."""
        return {
            "line_number": self.line_number,
            "file_path": file_path,
            "preview": self.preview,
            "confidence": self.confidence,
            "line_type": self.line_type.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["line_type"] = self.line_type.value
        return data
