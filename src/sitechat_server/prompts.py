"""
Prompt templates and fixed user-facing answers.
"""

SYSTEM_PROMPT_TEMPLATE = (
    "You are a helpful assistant for the website described in the context. "
    "Answer only from the context supplied with the question. "
    "If the context does not contain the answer, say so explicitly instead of guessing. "
    "Questions about deposits, move-in dates and contact options should be answered "
    "when the context contains that information. "
    "Always respond in {language}."
)

USER_PROMPT_TEMPLATE = (
    "Question: {query}\n\n"
    "Relevant content from the website:\n{context}\n\n"
    "Give a thorough answer based on this information."
)

NOT_INDEXED_ANSWER = (
    "I have no indexed content for this website. "
    "Make sure the site has been imported first."
)

INSUFFICIENT_CONTENT_ANSWER = (
    "I found relevant pages, but could not extract enough content to answer your question. "
    "Try importing the website again with a higher page limit."
)

NO_PROVIDER_ANSWER = (
    "The AI service is not configured. "
    "Set OPENAI_API_KEY, ANTHROPIC_API_KEY or GROQ_API_KEY in the environment."
)

GENERATION_FAILED_ANSWER = "Error while generating the answer: {message}"
AUTH_FAILED_ANSWER = "Error: authentication with the {provider} API failed. Check its API key."
RATE_LIMITED_ANSWER = "Error: the {provider} API rate limit was reached. Please try again later."


def build_system_prompt(language: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(language=language)


def build_user_prompt(query: str, context: str) -> str:
    return USER_PROMPT_TEMPLATE.format(query=query, context=context)
