"""
Answer normalization and matching used when re-grading history after a
dispute is approved.
"""
import re
import unicodedata
from typing import Iterable

ARTICLES = ("a", "an", "the")
QUESTION_PHRASE_RE = re.compile(r"^(what|who|where|when)\s+(is|are|was|were)\s+", re.IGNORECASE)
CONTRACTION_RE = re.compile(r"^(what|who|where|when)['’]s\s+", re.IGNORECASE)
DASH_RE = re.compile(r"[‐-―−﹘﹣－-]")


def normalize_answer(answer: str) -> str:
    """Lowercase, strip accents and punctuation, spell out '&'."""
    text = unicodedata.normalize("NFD", answer)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = DASH_RE.sub(" ", text.lower())
    text = re.sub(r"[^a-z0-9\s&]", "", text)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\s*&\s*", " and ", text)
    return text.strip()


def strip_question_phrase(text: str) -> str:
    stripped = CONTRACTION_RE.sub("", text.strip())
    return QUESTION_PHRASE_RE.sub("", stripped).strip()


def canonical_form(text: str) -> str:
    words = normalize_answer(strip_question_phrase(text)).split(" ")
    while len(words) > 1 and words[0] in ARTICLES:
        words.pop(0)
    return " ".join(words)


def answers_match(user_answer: str, correct_answer: str, overrides: Iterable[str] = ()) -> bool:
    user = canonical_form(user_answer)
    if not user:
        return False
    return any(user == canonical_form(candidate) for candidate in (correct_answer, *overrides) if candidate)
