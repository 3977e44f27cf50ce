from errors import FailureError, ValidationError
from feedback_parser import locate_inline_comments, parse_ai_response
from llm_setup import get_llm_grader
from logging_config import logger
from prompts.analysis_prompts import feedback_prompt
from schemas.pipeline import FeedbackAnalysis
from schemas.submission import OverallFeedback


def analyze(submission_text: str, ai_response_text: str) -> FeedbackAnalysis:
    """Turn a structured model response into overall feedback plus located inline comments."""
    parsed = parse_ai_response(ai_response_text)
    located = locate_inline_comments(parsed.raw_inline_comments, submission_text)

    dropped = len(parsed.raw_inline_comments) - len(located)
    if dropped:
        logger.info(f"Located {len(located)} inline comment(s), {dropped} quote(s) not found")

    return FeedbackAnalysis(
        suggested_overall_feedback=OverallFeedback(
            strengths=parsed.strengths,
            improvements=parsed.improvements,
            action_items=parsed.action_items,
        ),
        suggested_inline_comments=located,
    )


def generate_feedback(submission_text: str, llm=None) -> FeedbackAnalysis:
    """
    Ask the grading model for structured feedback on a submission and parse it.

    Raises ValidationError for empty content and FailureError when the model
    call fails or returns nothing.
    """
    if not submission_text or not submission_text.strip():
        raise ValidationError("Missing or invalid submission content.")

    logger.info(f"AI analysis requested for content (length: {len(submission_text)})")
    try:
        chain = feedback_prompt | (llm or get_llm_grader())
        response = chain.invoke({"submission_content": submission_text})
    except Exception as e:
        logger.error(f"Feedback generation failed: {e}", exc_info=True)
        raise FailureError(f"AI analysis failed: {e}") from e

    ai_text = str(getattr(response, "content", response) or "").strip()
    if not ai_text:
        logger.error("Feedback generation returned no text content")
        raise FailureError("AI analysis failed: No response content from model.")

    logger.debug(f"Feedback response snippet: {ai_text[:200]}...")
    return analyze(submission_text, ai_text)
