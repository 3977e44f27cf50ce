import os
from functools import lru_cache

from dotenv import load_dotenv
from langchain_openai import ChatOpenAI
from langchain_xai import ChatXAI
from openai import OpenAI

load_dotenv()

RELEVANCE_MODEL = os.getenv("RELEVANCE_MODEL", "gpt-4o-mini")
AI_CHECK_MODEL = os.getenv("AI_CHECK_MODEL", "gpt-4o-mini")
FEEDBACK_MODEL = os.getenv("FEEDBACK_MODEL", "gpt-4o-mini")
GROK_FEEDBACK_MODEL = os.getenv("GROK_FEEDBACK_MODEL", "grok-4-1-fast-reasoning")


# Clients are built on first use
@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    return OpenAI(api_key=os.getenv("OPENAI_API_KEY"))


@lru_cache(maxsize=1)
def get_llm() -> ChatOpenAI:
    """Short, low-temperature classification calls (relevance gate)."""
    return ChatOpenAI(
        model=RELEVANCE_MODEL,
        api_key=os.getenv("OPENAI_API_KEY"),
        temperature=0.2,
        max_tokens=10,
    )


@lru_cache(maxsize=1)
def get_llm_grader():
    """Feedback generation model. Grok when a key is configured, OpenAI otherwise."""
    grok_api = os.getenv("GROK_API_KEY")
    if grok_api:
        return ChatXAI(
            model=GROK_FEEDBACK_MODEL,
            temperature=0.6,
            max_tokens=None,
            timeout=None,
            max_retries=2,
            api_key=grok_api,
        )
    return ChatOpenAI(
        model=FEEDBACK_MODEL,
        api_key=os.getenv("OPENAI_API_KEY"),
        temperature=0.6,
    )
