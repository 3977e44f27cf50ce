"""
Test: structured feedback parsing and inline comment location.
"""
from feedback_parser import FeedbackParser, ParserState, locate_inline_comments, parse_ai_response
from schemas.pipeline import RawInlineComment

CANONICAL_RESPONSE = """STRENGTHS:
- Clear thesis
IMPROVEMENTS:
- More evidence
ACTION ITEMS:
- Add citations
INLINE COMMENTS:
---
QUOTE: "the sky is blue"
COMMENT: "Explain why."
---"""


class TestSections:
    def test_canonical_response(self):
        block = parse_ai_response(CANONICAL_RESPONSE)
        assert block.strengths == "Clear thesis"
        assert block.improvements == "More evidence"
        assert block.action_items == "Add citations"
        assert [(c.quote, c.comment) for c in block.raw_inline_comments] == [("the sky is blue", "Explain why.")]

    def test_multiple_bullets_joined_by_newline(self):
        block = parse_ai_response("STRENGTHS:\n- One\n* Two\n• Three\n\nIMPROVEMENTS:\nplain line")
        assert block.strengths == "One\nTwo\nThree"
        assert block.improvements == "plain line"

    def test_headers_case_insensitive(self):
        block = parse_ai_response("strengths:\n- fine\nAction Items:\n- do it")
        assert block.strengths == "fine"
        assert block.action_items == "do it"

    def test_text_before_first_header_ignored(self):
        block = parse_ai_response("Here is my feedback.\nSTRENGTHS:\n- good")
        assert block.strengths == "good"

    def test_empty_and_garbage_input(self):
        for text in ("", None, "no headers at all\njust prose"):
            block = parse_ai_response(text)
            assert block.strengths == block.improvements == block.action_items == ""
            assert block.raw_inline_comments == []

    def test_idempotent(self):
        assert parse_ai_response(CANONICAL_RESPONSE) == parse_ai_response(CANONICAL_RESPONSE)


class TestInlinePairs:
    def test_unterminated_final_pair_flushed(self):
        block = parse_ai_response('INLINE COMMENTS:\nQUOTE: "alpha"\nCOMMENT: "first"')
        assert [(c.quote, c.comment) for c in block.raw_inline_comments] == [("alpha", "first")]

    def test_new_quote_closes_previous_pair(self):
        text = 'INLINE COMMENTS:\nQUOTE: "alpha"\nCOMMENT: one\nQUOTE: "beta"\nCOMMENT: two\n---'
        block = parse_ai_response(text)
        assert [(c.quote, c.comment) for c in block.raw_inline_comments] == [("alpha", "one"), ("beta", "two")]

    def test_comment_without_prefix(self):
        block = parse_ai_response('INLINE COMMENTS:\nQUOTE: "alpha"\n"Needs a source."\n---')
        assert block.raw_inline_comments[0].comment == "Needs a source."

    def test_comment_continuation_lines(self):
        block = parse_ai_response('INLINE COMMENTS:\nQUOTE: "alpha"\nCOMMENT: first line\nsecond line\n---')
        assert block.raw_inline_comments[0].comment == "first line\nsecond line"

    def test_quote_without_comment_dropped(self):
        block = parse_ai_response('INLINE COMMENTS:\nQUOTE: "alpha"\n---\nQUOTE: "beta"\nCOMMENT: ok\n---')
        assert [c.quote for c in block.raw_inline_comments] == ["beta"]

    def test_comment_without_quote_ignored(self):
        block = parse_ai_response("INLINE COMMENTS:\nCOMMENT: orphan\n---")
        assert block.raw_inline_comments == []

    def test_state_machine_tracks_sections(self):
        parser = FeedbackParser()
        parser.feed("IMPROVEMENTS:")
        assert parser.state is ParserState.IMPROVEMENTS
        parser.feed("INLINE COMMENTS:")
        assert parser.state is ParserState.INLINE


class TestLocateInlineComments:
    def test_single_quote(self):
        located = locate_inline_comments([RawInlineComment(quote="fox", comment="c")], "The quick brown fox")
        assert [(c.start_index, c.end_index, c.text) for c in located] == [(16, 19, "c")]

    def test_repeated_quote_resolves_forward(self):
        original = "the cat sat. the cat ran."
        pairs = [RawInlineComment(quote="the cat", comment="first"), RawInlineComment(quote="the cat", comment="second")]
        located = locate_inline_comments(pairs, original)
        assert [(c.start_index, c.end_index) for c in located] == [(0, 7), (13, 20)]

    def test_missing_quote_dropped_cursor_unchanged(self):
        original = "alpha beta gamma"
        pairs = [
            RawInlineComment(quote="beta", comment="1"),
            RawInlineComment(quote="delta", comment="2"),
            RawInlineComment(quote="gamma", comment="3"),
        ]
        located = locate_inline_comments(pairs, original)
        assert [c.text for c in located] == ["1", "3"]

    def test_out_of_order_quote_dropped(self):
        original = "alpha beta gamma"
        pairs = [RawInlineComment(quote="gamma", comment="1"), RawInlineComment(quote="alpha", comment="2")]
        assert [c.text for c in locate_inline_comments(pairs, original)] == ["1"]

    def test_ranges_slice_back_to_quotes_without_overlap(self):
        original = "One sentence here. Another sentence there. One sentence here again."
        quotes = ["One sentence here", "sentence there", "One sentence here"]
        located = locate_inline_comments([RawInlineComment(quote=q, comment="x") for q in quotes], original)
        assert [original[c.start_index:c.end_index] for c in located] == quotes
        for previous, current in zip(located, located[1:]):
            assert previous.end_index <= current.start_index

    def test_identical_quotes_anchor_in_order(self):
        text = "A. The sky is blue. B. The sky is blue."
        response = (
            "STRENGTHS:\n- Clear thesis\nIMPROVEMENTS:\n- Needs citations\nACTION ITEMS:\n- Add sources\n"
            'INLINE COMMENTS:\n---\nQUOTE: "The sky is blue"\nCOMMENT: "Good observation"\n---\n'
            'QUOTE: "The sky is blue"\nCOMMENT: "Repeated"\n---'
        )
        block = parse_ai_response(response)
        assert (block.strengths, block.improvements, block.action_items) == (
            "Clear thesis", "Needs citations", "Add sources"
        )
        first, second = locate_inline_comments(block.raw_inline_comments, text)
        assert (first.start_index, first.end_index) == (3, 18)
        assert first.start_index < second.start_index
        assert locate_inline_comments(block.raw_inline_comments, text) == [first, second]

    def test_case_sensitive(self):
        assert locate_inline_comments([RawInlineComment(quote="FOX", comment="c")], "the fox") == []
