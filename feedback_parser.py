"""
Parsing of the structured feedback text returned by the grading model.

Expected shape::

    STRENGTHS:
    - ...
    IMPROVEMENTS:
    - ...
    ACTION ITEMS:
    - ...
    INLINE COMMENTS:
    ---
    QUOTE: "exact words from the submission"
    COMMENT: "what to change"
    ---

The parser is a line-oriented state machine with a single working
quote/comment slot. It never raises: malformed input degrades to empty
sections and fewer inline comments.
"""
import re
from enum import Enum
from typing import Iterable, List, Optional

from logging_config import logger
from schemas.pipeline import LocatedComment, RawFeedbackBlock, RawInlineComment


class ParserState(Enum):
    NONE = "none"
    STRENGTHS = "strengths"
    IMPROVEMENTS = "improvements"
    ACTION_ITEMS = "action_items"
    INLINE = "inline"


SECTION_HEADERS = (
    (re.compile(r"^STRENGTHS:", re.IGNORECASE), ParserState.STRENGTHS),
    (re.compile(r"^IMPROVEMENTS:", re.IGNORECASE), ParserState.IMPROVEMENTS),
    (re.compile(r"^ACTION ITEMS:", re.IGNORECASE), ParserState.ACTION_ITEMS),
    (re.compile(r"^INLINE COMMENTS:", re.IGNORECASE), ParserState.INLINE),
)

# Free-text states map onto RawFeedbackBlock attributes of the same name
FREE_TEXT_STATES = (ParserState.STRENGTHS, ParserState.IMPROVEMENTS, ParserState.ACTION_ITEMS)

PAIR_SEPARATOR = "---"
BULLET_RE = re.compile(r"^[-*•]\s+")
QUOTE_RE = re.compile(r'^QUOTE:\s*"?(.+?)"?$', re.IGNORECASE)
COMMENT_RE = re.compile(r'^COMMENT:\s*"?(.+?)"?$', re.IGNORECASE)


def _match_header(line: str) -> Optional[ParserState]:
    for pattern, state in SECTION_HEADERS:
        if pattern.match(line):
            return state
    return None


def _is_complete(pair: Optional[RawInlineComment]) -> bool:
    return pair is not None and bool(pair.quote) and bool(pair.comment)


class FeedbackParser:
    """Single-use parser; call :meth:`parse` once per response."""

    def __init__(self):
        self.state = ParserState.NONE
        self.pending: Optional[RawInlineComment] = None
        self.block = RawFeedbackBlock()

    def _flush_pending(self) -> None:
        if _is_complete(self.pending):
            self.block.raw_inline_comments.append(self.pending.model_copy())

    def _append_free_text(self, line: str) -> None:
        content = BULLET_RE.sub("", line).strip()
        if not content:
            return
        field = self.state.value
        current = getattr(self.block, field)
        setattr(self.block, field, f"{current}\n{content}" if current else content)

    def _handle_inline(self, line: str) -> None:
        if line == PAIR_SEPARATOR:
            self._flush_pending()
            self.pending = None
            return

        quote_match = QUOTE_RE.match(line)
        if quote_match:
            # A new QUOTE without a separator still closes the previous pair
            self._flush_pending()
            self.pending = RawInlineComment(quote=quote_match.group(1).strip(), comment="")
            return

        comment_match = COMMENT_RE.match(line)
        if comment_match and self.pending is not None:
            self.pending.comment = comment_match.group(1).strip()
        elif self.pending is not None and not self.pending.comment and line:
            # Comment given without its COMMENT: prefix
            self.pending.comment = line.strip('"').strip()
        elif self.pending is not None and self.pending.comment and line:
            self.pending.comment += "\n" + line

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()

        header_state = _match_header(line)
        if header_state is not None:
            self.state = header_state
            return

        if self.state in FREE_TEXT_STATES:
            self._append_free_text(line)
        elif self.state is ParserState.INLINE:
            self._handle_inline(line)

    def finish(self) -> RawFeedbackBlock:
        if self.state is ParserState.INLINE:
            self._flush_pending()
        self.pending = None
        return self.block

    def parse(self, text: str) -> RawFeedbackBlock:
        try:
            for raw_line in (text or "").split("\n"):
                self.feed(raw_line)
        except Exception as e:
            logger.error(f"Error parsing AI response: {e}", exc_info=True)
        return self.finish()


def parse_ai_response(text: str) -> RawFeedbackBlock:
    return FeedbackParser().parse(text)


def locate_inline_comments(raw_comments: Iterable[RawInlineComment], original_text: str) -> List[LocatedComment]:
    """
    Resolve each quote to a character range of ``original_text``.

    The search cursor only moves forward, so located ranges never overlap and
    appear in text order. Quotes that cannot be found after the cursor are
    dropped.
    """
    located = []
    cursor = 0
    original_text = original_text or ""

    for pair in raw_comments:
        if not pair.quote or not pair.comment:
            continue
        start = original_text.find(pair.quote, cursor)
        if start == -1:
            logger.debug(f'Could not locate quote in submission content: "{pair.quote[:50]}..."')
            continue
        end = start + len(pair.quote)
        located.append(LocatedComment(start_index=start, end_index=end, text=pair.comment))
        cursor = end

    return located
