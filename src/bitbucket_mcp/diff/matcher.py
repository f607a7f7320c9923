"""Locate a literal code snippet inside a unified diff.

Used to anchor inline comments: the caller supplies the code line it wants
to comment on and we work out its line number and line type. When the same
line occurs several times, a confidence score computed from optional
surrounding lines helps pick (or refuse to pick) one occurrence.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..exceptions import CodeSnippetNotFoundError, MultipleMatchesError
from .models import CodeMatch, HunkInfo, LineType, MatchContext, MatchStrategy, SearchContext

logger = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")

CONTEXT_LINES = 2


@dataclass(frozen=True)
class ConfidenceWeights:
    """Weights of the confidence scorer (a weighted sum, not a probability)."""

    base: float = 0.5
    before_weight: float = 0.3
    after_weight: float = 0.3
    added_line_bonus: float = 0.1
    max_confidence: float = 1.0


DEFAULT_WEIGHTS = ConfidenceWeights()


def strip_diff_prefix(line: str) -> str:
    """Drop the leading ``+``/``-``/`` `` marker of a hunk line."""
    if line and line[0] in "+- ":
        return line[1:]
    return line


class CodeMatcher:
    """Scan diff hunks for lines equal to a snippet."""

    def __init__(self, weights: Optional[ConfidenceWeights] = None):
        self.weights = weights or DEFAULT_WEIGHTS

    def find_code_matches(
        self,
        diff_text: str,
        code_snippet: str,
        search_context: Optional[SearchContext] = None,
    ) -> List[CodeMatch]:
        """Return every hunk line whose trimmed content equals the trimmed snippet."""
        target = code_snippet.strip()
        if not diff_text or not target:
            return []

        lines = diff_text.split("\n")
        matches: List[CodeMatch] = []

        in_hunk = False
        hunk_index = -1
        src_start = dest_start = 0
        src_pos = dest_pos = 0
        line_in_hunk = 0
        added_count = 0

        for index, line in enumerate(lines):
            header = _HUNK_HEADER.match(line)
            if header:
                src_start = int(header.group(1))
                dest_start = int(header.group(2))
                src_pos = dest_pos = 0
                line_in_hunk = 0
                hunk_index += 1
                in_hunk = True
                continue

            if not in_hunk:
                continue

            if line == "" or line.startswith("diff --git"):
                in_hunk = False
                continue

            prefix = line[0]
            sequential_position = None
            if prefix == "+":
                line_type = LineType.ADDED
                line_number = dest_start + dest_pos
                dest_pos += 1
                added_count += 1
                sequential_position = added_count
            elif prefix == "-":
                line_type = LineType.REMOVED
                line_number = src_start + src_pos
                src_pos += 1
            elif prefix == " ":
                line_type = LineType.CONTEXT
                line_number = dest_start + dest_pos
                src_pos += 1
                dest_pos += 1
            else:
                # "\ No newline at end of file" and similar markers
                continue

            line_in_hunk += 1
            content = line[1:]
            if content.strip() != target:
                continue

            matches.append(CodeMatch(
                line_number=line_number,
                line_type=line_type,
                exact_content=content,
                preview=self._build_preview(lines, index),
                confidence=self.calculate_confidence(lines, index, search_context, line_type),
                context=MatchContext(
                    lines_before=[strip_diff_prefix(l) for l in lines[max(0, index - CONTEXT_LINES):index]],
                    lines_after=[strip_diff_prefix(l) for l in lines[index + 1:index + 1 + CONTEXT_LINES]],
                ),
                hunk_info=HunkInfo(
                    hunk_index=hunk_index,
                    destination_start=dest_start,
                    line_in_hunk=line_in_hunk,
                ),
                sequential_position=sequential_position,
            ))

        logger.debug("Snippet %r matched %d diff line(s)", target, len(matches))
        return matches

    def calculate_confidence(
        self,
        lines: List[str],
        match_index: int,
        search_context: Optional[SearchContext],
        line_type: LineType,
    ) -> float:
        """Score a match from how well its neighbours agree with ``search_context``."""
        weights = self.weights
        confidence = weights.base

        if search_context and search_context.before:
            expected = list(reversed(search_context.before))
            matched = 0
            for offset, expected_line in enumerate(expected, start=1):
                actual_index = match_index - offset
                if actual_index < 0:
                    break
                if strip_diff_prefix(lines[actual_index]).strip() == expected_line.strip():
                    matched += 1
            confidence += (matched / len(expected)) * weights.before_weight

        if search_context and search_context.after:
            matched = 0
            for offset, expected_line in enumerate(search_context.after, start=1):
                actual_index = match_index + offset
                if actual_index >= len(lines):
                    break
                if strip_diff_prefix(lines[actual_index]).strip() == expected_line.strip():
                    matched += 1
            confidence += (matched / len(search_context.after)) * weights.after_weight

        if line_type == LineType.ADDED:
            confidence += weights.added_line_bonus

        return min(confidence, weights.max_confidence)

    @staticmethod
    def _build_preview(lines: List[str], index: int) -> str:
        preview = []
        for i in range(max(0, index - 1), min(len(lines), index + 2)):
            marker = "> " if i == index else "  "
            preview.append(f"{marker}{lines[i]}")
        return "\n".join(preview)


def resolve_code_match(
    matches: List[CodeMatch],
    strategy: MatchStrategy = MatchStrategy.STRICT,
    file_path: str = "",
    code_snippet: str = "",
) -> CodeMatch:
    """Pick the single match a comment should be anchored to.

    Raises:
        CodeSnippetNotFoundError: No match at all.
        MultipleMatchesError: Several matches under the strict strategy.
    """
    if not matches:
        raise CodeSnippetNotFoundError(code_snippet, file_path)

    if len(matches) == 1:
        return matches[0]

    if strategy == MatchStrategy.BEST:
        # sorted() is stable: equal scores keep scan order
        best = sorted(matches, key=lambda m: m.confidence, reverse=True)[0]
        logger.info(
            "Resolved %d matches for snippet in %s to line %d (confidence %.2f)",
            len(matches), file_path or "diff", best.line_number, best.confidence,
        )
        return best

    raise MultipleMatchesError(
        code_snippet,
        [m.to_occurrence(file_path) for m in matches],
        file_path=file_path,
    )
