"""
Pipeline thresholds and limits.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Extracted text shorter than this skips the relevance gate
RELEVANCE_MIN_CHARS = 20
# Extracted text shorter than this skips both scoring checks
CHECKS_MIN_CHARS = 50
RELEVANCE_SNIPPET_CHARS = 500
AI_CHECK_MAX_CHARS = 4000

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(15 * 1024 * 1024)))

PLAGIARISM_MATCH_THRESHOLD = 0.85
