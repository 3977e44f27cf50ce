from config import RELEVANCE_MIN_CHARS, RELEVANCE_SNIPPET_CHARS
from llm_setup import get_llm
from logging_config import logger
from prompts.analysis_prompts import relevance_prompt
from schemas.pipeline import RelevanceVerdict

# Only these replies change the default verdict
_EXPLICIT_VERDICTS = {
    RelevanceVerdict.OFF_TOPIC.value: RelevanceVerdict.OFF_TOPIC,
    RelevanceVerdict.HIGHLY_RELEVANT.value: RelevanceVerdict.HIGHLY_RELEVANT,
}


def classify_relevance(assignment_context: str, text: str, llm=None) -> RelevanceVerdict:
    """
    Classify a submission against its assignment context.

    Fails open: short content, classifier errors and any reply other than the
    expected tokens all yield SOMEWHAT_RELEVANT. Only an explicit OFF_TOPIC
    reply rejects.
    """
    if not text or len(text.strip()) < RELEVANCE_MIN_CHARS:
        logger.info("[Relevance] Skipping check due to insufficient content")
        return RelevanceVerdict.SOMEWHAT_RELEVANT

    logger.info(f'[Relevance] Checking against assignment: "{assignment_context[:80]}"')
    try:
        chain = relevance_prompt | (llm or get_llm())
        response = chain.invoke({
            "assignment_context": assignment_context,
            "snippet": text[:RELEVANCE_SNIPPET_CHARS],
        })
    except Exception as e:
        logger.error(f"[Relevance] Classifier call failed: {e}", exc_info=True)
        return RelevanceVerdict.SOMEWHAT_RELEVANT

    raw = getattr(response, "content", response)
    result_text = str(raw or "").strip().upper()
    verdict = _EXPLICIT_VERDICTS.get(result_text, RelevanceVerdict.SOMEWHAT_RELEVANT)
    logger.info(f"[Relevance] Result → {verdict.value} (raw: {result_text[:30]!r})")
    return verdict
