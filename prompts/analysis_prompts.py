from langchain_core.prompts import ChatPromptTemplate

RELEVANCE_PROMPT_TEMPLATE = """Assignment Context: "{assignment_context}"

Submission Text Snippet (first 500 chars):
\"\"\"
{snippet}
\"\"\"

Based ONLY on the Context and Snippet, is the submission highly relevant, somewhat relevant, or clearly off-topic? Respond with only one word: HIGHLY_RELEVANT, SOMEWHAT_RELEVANT, or OFF_TOPIC."""


# Sent through the OpenAI Responses API, formatted with str.format
AI_CHECK_PROMPT_TEMPLATE = """Analyze the following text and estimate the likelihood that it was primarily written by an AI versus a human. Provide an overall estimated percentage score for human authorship (0-100) and a brief confidence level (High, Medium, Low).

Format the response *only* as JSON, like this example:
{{
  "score": 85,
  "confidence": "Medium"
}}

Text to analyze:
\"\"\"
{text}
\"\"\"
"""


FEEDBACK_PROMPT_TEMPLATE = '''Analyze the following student submission text for an assignment. Provide constructive feedback suitable for a teacher reviewing the work. Structure your response *exactly* like the example below, including the section headers (STRENGTHS:, IMPROVEMENTS:, ACTION ITEMS:, INLINE COMMENTS:) and the QUOTE:/COMMENT: format for inline suggestions. Identify 2-4 key areas for inline comments focusing on clarity, argumentation, evidence, or grammar.

EXAMPLE STRUCTURE:
STRENGTHS:
- Strength 1 identified from the text.
- Strength 2 identified from the text.

IMPROVEMENTS:
- Area for improvement 1.
- Area for improvement 2.

ACTION ITEMS:
- Specific action item 1 for the student.
- Specific action item 2 for the student.

INLINE COMMENTS:
---
QUOTE: "Exact quote from the text needing a comment (keep it relatively short, like a sentence or phrase)."
COMMENT: "Your constructive comment about this specific quote."
---
QUOTE: "Another distinct exact quote from the text."
COMMENT: "Another comment for the second quote."
---

Rules:
- Every QUOTE must be copied character-for-character from the submission so it can be located.
- List inline comments in the order their quotes appear in the submission.

SUBMISSION CONTENT TO ANALYZE:
"""
{submission_content}
"""
'''

relevance_prompt = ChatPromptTemplate.from_template(RELEVANCE_PROMPT_TEMPLATE)
feedback_prompt = ChatPromptTemplate.from_template(FEEDBACK_PROMPT_TEMPLATE)
