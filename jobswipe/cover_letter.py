"""Generate a cover letter through an ordered chain of providers.

Providers are tried in order; the first non-empty completion wins.  When
every provider fails the letter falls back to a template built only from
the vacancy's title and company.
"""
from __future__ import annotations

import re
from typing import Sequence

from jobswipe.log import get_logger
from jobswipe.models import Candidate
from jobswipe.providers import TextGenerationProvider

log = get_logger(__name__)

ELISION = "\n[...]\n"
MAX_DESCRIPTION_CHARS = 1500

_MARKUP = re.compile(r"[*#_\-]")
_WHITESPACE = re.compile(r"\s+")

PROMPT_TEMPLATE = """Write a short cover letter for the vacancy below on behalf of the candidate.

Rules:
- Use ONLY facts that appear in the candidate profile. Do not invent metrics, employers, projects or skills.
- Do not use numbers unless the same number appears in the profile.
- Plain text only: no markdown, no asterisks, hashes, underscores or dashes, no lists.
- Write in the first person, 3 to 5 sentences, one paragraph.
- No greeting, no sign-off, no phrases like "happy to discuss".
- Do not repeat the company name or the vacancy title.

Vacancy: {title}
Company: {company}
Key skills: {tags}
Description:
{description}

Candidate profile:
{profile}
"""


def truncate_profile(text: str, budget: int) -> str:
    """Keep the head and tail of an over-long profile and drop the middle."""
    text = text.strip()
    if budget <= 0 or len(text) <= budget:
        return text
    room = max(budget - len(ELISION), 2)
    head = room * 2 // 3
    tail = room - head
    return text[:head].rstrip() + ELISION + text[-tail:].lstrip()


def sanitize(text: str) -> str:
    return _WHITESPACE.sub(" ", _MARKUP.sub(" ", text)).strip()


def build_prompt(profile_text: str, candidate: Candidate, budget: int) -> str:
    return PROMPT_TEMPLATE.format(
        title=candidate.title,
        company=candidate.company,
        tags=", ".join(candidate.tags) or "not listed",
        description=(candidate.description or "not provided")[:MAX_DESCRIPTION_CHARS],
        profile=truncate_profile(profile_text, budget) or "not provided",
    )


def fallback_letter(candidate: Candidate) -> str:
    title = candidate.title or "this"
    company = candidate.company or "your company"
    return (
        f"I am interested in the {title} position at {company}. "
        "My experience, described in my resume, matches the responsibilities of this role. "
        "I would welcome the chance to contribute to your team."
    )


class CoverLetterGenerator:
    def __init__(self, providers: Sequence[TextGenerationProvider] = ()) -> None:
        self.providers = list(providers)

    def generate(self, profile_text: str, candidate: Candidate) -> str:
        """Return sanitized letter text.  Never empty, never raises."""
        for provider in self.providers:
            prompt = build_prompt(profile_text, candidate, provider.max_profile_chars)
            try:
                text = sanitize(provider.generate(prompt))
            except Exception as exc:
                log.warning("Provider %s failed for %s: %s", provider.name, candidate.id, exc)
                continue
            if not text:
                log.warning("Provider %s returned only markup for %s", provider.name, candidate.id)
                continue
            log.info("Cover letter for %s generated by %s", candidate.id, provider.name)
            return text

        log.info("All providers failed for %s, using template letter", candidate.id)
        return sanitize(fallback_letter(candidate))
