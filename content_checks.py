import asyncio
import json
import re
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple

from config import AI_CHECK_MAX_CHARS, CHECKS_MIN_CHARS, PLAGIARISM_MATCH_THRESHOLD
from llm_setup import AI_CHECK_MODEL, get_client
from logging_config import logger
from prompts.analysis_prompts import AI_CHECK_PROMPT_TEMPLATE
from schemas.pipeline import OPENAI_AI_CHECK_SCHEMA
from schemas.submission import AICheckResult, PlagiarismMatch, PlagiarismResult


def _has_enough_content(text: Optional[str]) -> bool:
    return bool(text) and len(text.strip()) >= CHECKS_MIN_CHARS


# ── AI authorship ────────────────────────────────────────────────────────────

def parse_ai_check_response(raw_json: Optional[str]) -> Optional[AICheckResult]:
    """Validate the model's JSON reply; anything malformed yields None."""
    if not raw_json or not raw_json.strip():
        logger.warning("[AI Check] No content in response")
        return None

    cleaned = re.sub(r"^```(?:json)?\s*|\s*```$", "", raw_json.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"[AI Check] Unparseable JSON: {e}")
        logger.debug(f"Raw output: {raw_json[:500]}...")
        return None

    if not isinstance(data, dict):
        logger.warning(f"[AI Check] Expected a JSON object, got {type(data).__name__}")
        return None

    score = data.get("score")
    confidence = data.get("confidence")
    if (
        isinstance(score, (int, float))
        and not isinstance(score, bool)
        and 0 <= score <= 100
        and isinstance(confidence, str)
    ):
        return AICheckResult(score=score, confidence=confidence, details=[])

    logger.warning(f"[AI Check] Parsed result has unexpected format: {data}")
    return None


def perform_ai_check(text: str, client=None) -> Optional[AICheckResult]:
    if not _has_enough_content(text):
        logger.warning("[AI Check] Content too short for meaningful check")
        return None

    prompt = AI_CHECK_PROMPT_TEMPLATE.format(text=text[:AI_CHECK_MAX_CHARS])
    try:
        response = (client or get_client()).responses.create(
            model=AI_CHECK_MODEL,
            input=[
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}]
                }
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "ai_authorship_check",
                    "strict": True,
                    "schema": OPENAI_AI_CHECK_SCHEMA
                }
            },
            temperature=0.3,
            max_output_tokens=100,
        )
        raw_json = response.output_text
    except Exception as e:
        logger.error(f"[AI Check] OpenAI call failed: {e}", exc_info=True)
        return None

    result = parse_ai_check_response(raw_json)
    if result:
        logger.info(f"[AI Check] Result → score={result.score}, confidence={result.confidence}")
    return result


# ── Plagiarism ───────────────────────────────────────────────────────────────

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_MIN_SENTENCE_WORDS = 4


def split_sentences(text: str) -> List[str]:
    sentences = (s.strip() for s in _SENTENCE_SPLIT.split(text.strip()))
    return [s for s in sentences if len(s.split()) >= _MIN_SENTENCE_WORDS]


def _normalize(sentence: str) -> str:
    return " ".join(re.sub(r"[^\w\s]", " ", sentence.lower()).split())


class PlagiarismChecker:
    """Originality service interface. Implementations return a PlagiarismResult or raise."""

    def check(self, text: str) -> PlagiarismResult:
        raise NotImplementedError


class ReferenceCorpusChecker(PlagiarismChecker):
    """
    Stand-in for an external plagiarism service.

    Compares every submission sentence with the sentences of a reference
    corpus (source label → text). Sentences at or above ``threshold``
    similarity are reported as matches, in submission order. Originality is
    the share of unmatched sentences, as a 0-100 score.
    """

    def __init__(self, corpus: Optional[Dict[str, str]] = None,
                 threshold: float = PLAGIARISM_MATCH_THRESHOLD):
        self.threshold = threshold
        self._reference = [
            (label, _normalize(sentence))
            for label, body in (corpus or {}).items()
            for sentence in split_sentences(body)
        ]

    def _best_match(self, sentence: str) -> Tuple[Optional[str], float]:
        target = _normalize(sentence)
        best_label, best_ratio = None, 0.0
        for label, reference in self._reference:
            ratio = SequenceMatcher(None, target, reference).ratio()
            if ratio > best_ratio:
                best_label, best_ratio = label, ratio
        return best_label, best_ratio

    def check(self, text: str) -> PlagiarismResult:
        sentences = split_sentences(text)
        if not sentences or not self._reference:
            return PlagiarismResult(score=100, matches=[])

        matches = []
        for sentence in sentences:
            label, ratio = self._best_match(sentence)
            if label is not None and ratio >= self.threshold:
                matches.append(PlagiarismMatch(text=sentence, source=label, similarity=round(ratio, 2)))

        originality = round(100 * (1 - len(matches) / len(sentences)))
        return PlagiarismResult(score=originality, matches=matches)


def perform_plagiarism_check(text: str, checker: Optional[PlagiarismChecker] = None) -> Optional[PlagiarismResult]:
    if not _has_enough_content(text):
        logger.warning("[Plagiarism] Content too short for plagiarism check")
        return None

    try:
        result = (checker or ReferenceCorpusChecker()).check(text)
    except Exception as e:
        logger.error(f"[Plagiarism] Check failed: {e}", exc_info=True)
        return None

    logger.info(f"[Plagiarism] Result → originality={result.score}, matches={len(result.matches)}")
    return result


# ── Fan-out ──────────────────────────────────────────────────────────────────

async def run_content_checks(
    text: str,
    ai_client=None,
    plagiarism_checker: Optional[PlagiarismChecker] = None
) -> Tuple[Optional[AICheckResult], Optional[PlagiarismResult]]:
    """
    Run the AI-authorship and plagiarism checks concurrently.

    Each result is independently nullable; a failure in one never cancels or
    fails the other.
    """
    if not _has_enough_content(text):
        logger.info("Skipping AI/Plagiarism checks due to short/missing content")
        return None, None

    loop = asyncio.get_running_loop()
    ai_task = loop.run_in_executor(None, lambda: perform_ai_check(text, client=ai_client))
    plagiarism_task = loop.run_in_executor(
        None, lambda: perform_plagiarism_check(text, checker=plagiarism_checker)
    )

    ai_result, plagiarism_result = await asyncio.gather(
        ai_task, plagiarism_task, return_exceptions=True
    )

    if isinstance(ai_result, Exception):
        logger.error(f"[AI Check] Crashed: {ai_result}")
        ai_result = None
    if isinstance(plagiarism_result, Exception):
        logger.error(f"[Plagiarism] Crashed: {plagiarism_result}")
        plagiarism_result = None

    return ai_result, plagiarism_result
