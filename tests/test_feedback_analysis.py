"""
Test: feedback analysis end to end with a fake grading model.
"""
import pytest

from errors import FailureError, ValidationError
from feedback_analysis import analyze, generate_feedback
from conftest import ON_TOPIC_ESSAY

MODEL_REPLY = """STRENGTHS:
- Accurate description of the light reactions
IMPROVEMENTS:
- Discuss limiting factors
ACTION ITEMS:
- Add a labelled diagram
INLINE COMMENTS:
---
QUOTE: "Chlorophyll in the chloroplasts absorbs mostly red and blue light."
COMMENT: "Say why green light is reflected."
---
QUOTE: "a sentence the student never wrote"
COMMENT: "Dropped."
---
QUOTE: "The Calvin cycle"
COMMENT: "Name the enzyme involved."
---"""


class TestAnalyze:
    def test_overall_feedback_and_located_comments(self):
        analysis = analyze(ON_TOPIC_ESSAY, MODEL_REPLY)
        feedback = analysis.suggested_overall_feedback
        assert feedback.strengths == "Accurate description of the light reactions"
        assert feedback.improvements == "Discuss limiting factors"
        assert feedback.action_items == "Add a labelled diagram"

        comments = analysis.suggested_inline_comments
        assert [c.text for c in comments] == ["Say why green light is reflected.", "Name the enzyme involved."]
        assert ON_TOPIC_ESSAY[comments[1].start_index:comments[1].end_index] == "The Calvin cycle"

    def test_unstructured_reply_gives_empty_analysis(self):
        analysis = analyze(ON_TOPIC_ESSAY, "Looks fine to me.")
        assert analysis.suggested_overall_feedback.strengths == ""
        assert analysis.suggested_inline_comments == []


class TestGenerateFeedback:
    def test_uses_model_reply(self, make_llm):
        analysis = generate_feedback(ON_TOPIC_ESSAY, llm=make_llm(MODEL_REPLY))
        assert len(analysis.suggested_inline_comments) == 2

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_submission_rejected(self, text, make_llm):
        with pytest.raises(ValidationError):
            generate_feedback(text, llm=make_llm(MODEL_REPLY))

    def test_model_failure(self, failing_llm):
        with pytest.raises(FailureError, match="AI analysis failed"):
            generate_feedback(ON_TOPIC_ESSAY, llm=failing_llm)

    def test_empty_model_reply(self, make_llm):
        with pytest.raises(FailureError, match="No response content"):
            generate_feedback(ON_TOPIC_ESSAY, llm=make_llm("   "))
