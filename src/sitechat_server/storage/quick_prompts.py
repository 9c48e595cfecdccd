"""
Quick prompt normalization.

Every stored site carries exactly three suggested questions shown by chat
clients. Whatever was stored (nothing, blanks, too many) is coerced into
three trimmed, non-empty strings, backfilled from the defaults.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

QUICK_PROMPT_COUNT = 3

DEFAULT_QUICK_PROMPTS: List[str] = [
    "Har I ledige lejeboliger i København næste måned?",
    "Kan man få en bolig med altan og 3 værelser?",
    "Hvad er depositum og overtagelsesdato på den seneste bolig?",
]


def normalize_quick_prompts(prompts: Optional[Sequence[Any]] = None) -> List[str]:
    """
    Return exactly three trimmed, non-empty quick prompts.

    An absent or empty input falls back to the defaults. Non-string and blank
    entries are dropped, missing slots are filled from the defaults in order,
    and anything beyond the third prompt is discarded.
    """
    base = list(prompts) if prompts else DEFAULT_QUICK_PROMPTS

    filled = [p.strip() for p in base if isinstance(p, str) and p.strip()]
    for default in DEFAULT_QUICK_PROMPTS:
        if len(filled) >= QUICK_PROMPT_COUNT:
            break
        filled.append(default)

    return filled[:QUICK_PROMPT_COUNT]
