"""
Domain normalization, extension policy and scoring.

Turns extracted candidates into fully-qualified domains according to the
extension policy of the current round, validates them as hostnames, parses
user-typed domain input, and scores exact-name check results.
"""

import random
import re
from dataclasses import dataclass
from typing import Optional

import idna

from .enums import SearchMode
from .models import FullyQualifiedDomain, SuggestionCandidate


POPULAR_EXTENSIONS = [
    ".com",
    ".net",
    ".org",
    ".io",
    ".co",
    ".ai",
    ".app",
    ".dev",
    ".tech",
    ".online",
    ".store",
    ".site",
]

EXTENSION_PRICES: dict[str, float] = {
    ".com": 12.99,
    ".net": 14.99,
    ".org": 14.99,
    ".io": 34.99,
    ".co": 29.99,
    ".ai": 89.99,
    ".app": 19.99,
    ".dev": 19.99,
    ".tech": 49.99,
    ".online": 39.99,
    ".store": 49.99,
    ".site": 29.99,
}

# Shown for extensions missing from EXTENSION_PRICES
DEFAULT_YEARLY_PRICE = 29.99

# Preferred extensions for retry rounds, rotating from round 1 onward
EXTENSION_ROTATION: list[tuple[str, ...]] = [
    (".io", ".co", ".app"),
    (".net", ".org", ".ai"),
]

EXTENSION_SCORES: dict[str, int] = {
    ".com": 40,
    ".net": 25,
    ".org": 25,
    ".io": 30,
    ".co": 28,
    ".ai": 35,
    ".app": 20,
    ".dev": 20,
    ".tech": 15,
    ".online": 10,
    ".store": 15,
    ".site": 10,
}

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9.-]")
_EXTENSION_SUFFIX = re.compile(r"^(.+)(\.[a-z]{2,6})$")


@dataclass(frozen=True)
class RoundPolicy:
    """Extension policy and prompt directive for one round."""

    index: int
    default_extension: str
    preferred_extensions: tuple[str, ...]
    default_share: float
    creative: bool = False

    @property
    def permitted_extensions(self) -> tuple[str, ...]:
        if self.default_extension in self.preferred_extensions:
            return self.preferred_extensions
        return (self.default_extension,) + self.preferred_extensions

    def directive(self) -> str:
        """Instruction appended to the generation prompt for this round."""
        if not self.preferred_extensions:
            return f"Use the {self.default_extension} extension."

        share = int(round(self.default_share * 100))
        preferred = ", ".join(self.preferred_extensions)
        text = (
            f"Prefer {preferred} extensions this time, but keep about {share}% "
            f"of the suggestions on {self.default_extension}."
        )
        if self.creative:
            text = "Maximize creativity: invent unusual, brandable words. " + text
        return text


def round_policy(
    index: int,
    default_extension: str = ".com",
    default_share: float = 0.6,
) -> RoundPolicy:
    """
    Build the extension policy for round ``index``.

    Round 0 uses only the default extension. Round 1 prefers .io/.co/.app,
    round 2 .net/.org/.ai, and later rounds repeat that rotation with a
    creativity directive.
    """
    if index <= 0:
        return RoundPolicy(
            index=0,
            default_extension=default_extension,
            preferred_extensions=(),
            default_share=1.0,
        )

    preferred = EXTENSION_ROTATION[(index - 1) % len(EXTENSION_ROTATION)]
    return RoundPolicy(
        index=index,
        default_extension=default_extension,
        preferred_extensions=preferred,
        default_share=default_share,
        creative=index >= 3,
    )


def format_domain_name(domain: str) -> str:
    """Lowercase and strip every character outside ``[a-z0-9.-]``."""
    return _DISALLOWED_CHARS.sub("", domain.lower().strip())


def normalize_extension(extension: Optional[str]) -> Optional[str]:
    """Return ``.ext`` in lowercase, or None for empty input."""
    if not extension:
        return None
    cleaned = format_domain_name(extension).strip(".")
    if not cleaned:
        return None
    return "." + cleaned


def parse_domain_input(text: str) -> tuple[str, Optional[str]]:
    """
    Split user or model input into a base name and an optional extension.

    Known popular extensions are matched first, then any trailing
    ``.[a-z]{2,6}`` suffix.

    Returns:
        Tuple of (base_name, extension or None)
    """
    cleaned = text.lower().strip()

    for ext in POPULAR_EXTENSIONS:
        if cleaned.endswith(ext) and len(cleaned) > len(ext):
            return cleaned[: -len(ext)], ext

    match = _EXTENSION_SUFFIX.match(cleaned)
    if match:
        return match.group(1), match.group(2)

    return cleaned, None


def yearly_price(extension: str) -> float:
    """Typical first-year price for a regular (non-premium) domain."""
    return EXTENSION_PRICES.get(extension, DEFAULT_YEARLY_PRICE)


def detect_search_mode(text: str) -> SearchMode:
    """Multi-word input asks for suggestions; a single word is a domain check."""
    return SearchMode.SUGGESTION if " " in text.strip() else SearchMode.DOMAIN


def is_valid_domain(domain: str) -> bool:
    """
    True if ``domain`` is a syntactically valid registrable hostname.

    Uses IDNA 2008 label rules (length, hyphen placement) via ``idna``.
    """
    if not domain or "." not in domain or domain.startswith(".") or ".." in domain:
        return False
    try:
        idna.encode(domain, uts46=False)
    except idna.IDNAError:
        return False
    return True


def pick_extension(
    candidate: SuggestionCandidate,
    policy: RoundPolicy,
    rng: random.Random,
) -> str:
    """
    Choose the extension for a candidate under the round's policy.

    An explicit extension from the model is kept. Otherwise the candidate's
    own suggestion is used when the round permits it; failing that the
    default extension is drawn with probability ``default_share`` and the
    remainder is spread uniformly over the preferred extensions.
    """
    suggested = normalize_extension(candidate.extension)

    if candidate.explicit_extension and suggested:
        return suggested

    if suggested and suggested in policy.permitted_extensions:
        return suggested

    if not policy.preferred_extensions or rng.random() < policy.default_share:
        return policy.default_extension

    return rng.choice(policy.preferred_extensions)


def to_fully_qualified(
    candidate: SuggestionCandidate,
    policy: RoundPolicy,
    rng: random.Random,
) -> Optional[FullyQualifiedDomain]:
    """
    Build the probe-ready domain for a candidate.

    Returns:
        FullyQualifiedDomain, or None if the result is not a valid hostname
    """
    name = format_domain_name(candidate.name).strip(".-")
    if not name:
        return None

    extension = pick_extension(candidate, policy, rng)
    domain = format_domain_name(name + extension)
    if not is_valid_domain(domain):
        return None

    return FullyQualifiedDomain(domain=domain, extension=extension)


def score_domain(domain: str, extension: str, is_exact_match: bool) -> int:
    """
    Quality score out of 100 for an available domain.

    Extension value (40), shortness (30), exact match (20) and
    memorability (10).
    """
    score = EXTENSION_SCORES.get(extension, 5)

    name = domain[: -len(extension)] if extension and domain.endswith(extension) else domain
    length = len(name)
    if length <= 5:
        score += 30
    elif length <= 7:
        score += 25
    elif length <= 10:
        score += 20
    elif length <= 12:
        score += 15
    elif length <= 15:
        score += 10
    else:
        score += 5

    if is_exact_match:
        score += 20

    if not re.search(r"\d", name):
        score += 3
    if "-" not in name:
        score += 3
    if not re.search(r"(.)\1{2,}", name):
        score += 2
    if re.match(r"^(get|my|the|try)", name):
        score += 2

    return score
