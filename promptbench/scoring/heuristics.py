"""Heuristic quality scoring for model responses.

This module scores a free-text model response against the prompt that
produced it on four axes, using only string and regex analysis:

    - Clarity: sentence structure, paragraphing, capitalisation, formatting
    - Originality: vocabulary richness, examples, figurative language, data
    - Depth: length, explanation density, structure, perspectives, comparisons
    - Relevance: overlap between prompt keywords and the response

Each axis starts from a base score, adds weighted bonuses, is rounded half-up
and clamped to [0, 100]. The overall score is a weighted sum of the four
axes. Scoring is deterministic: no clock, no randomness, no network.

An empty response receives exactly the base score on every axis.
"""

import math
import re

from promptbench.common.models import ScoreInput, ScoreResult

MIN_SCORE = 0
MAX_SCORE = 100

OVERALL_WEIGHTS = {
    "clarity": 0.25,
    "originality": 0.25,
    "depth": 0.30,
    "relevance": 0.20,
}

# Clarity
CLARITY_BASE = 20
CLARITY_MIN_SENTENCES = 3
CLARITY_SENTENCE_BONUS = 15
CLARITY_POINTS_PER_SENTENCE = 5
CLARITY_POINTS_PER_PARAGRAPH = 5
OPTIMAL_SENTENCE_LENGTH = (15, 35)
CLARITY_OPTIMAL_LENGTH_BONUS = 15
CLARITY_OTHER_LENGTH_BONUS = 5
CAPITALIZATION_RATIO = 0.7
CLARITY_CAPITALIZATION_BONUS = 15
CLARITY_STRUCTURE_BONUS = 10
CLARITY_LENGTH_CAP = 150
CLARITY_LENGTH_BONUS = 20
CLARITY_LENGTH_DIVISOR = 10

# Originality
ORIGINALITY_BASE = 25
VOCABULARY_WEIGHT = 40
ORIGINALITY_EXAMPLE_BONUS = 15
ORIGINALITY_METAPHOR_BONUS = 15
ORIGINALITY_LENGTH_CAP = 250
ORIGINALITY_LENGTH_BONUS = 15
ORIGINALITY_LENGTH_DIVISOR = 20
ORIGINALITY_QUESTION_BONUS = 5
ORIGINALITY_STATS_BONUS = 5

# Depth
DEPTH_BASE = 15
DEPTH_LENGTH_DIVISOR = 8
EXPLANATION_DENSITY_WEIGHT = 100
DEPTH_STRUCTURE_BONUS = 20
STRUCTURED_MIN_LINES = 4
DEPTH_PERSPECTIVE_BONUS = 15
DEPTH_CAUSAL_BONUS = 10
DEPTH_COMPARISON_BONUS = 10

# Relevance
RELEVANCE_BASE = 25
KEYWORD_MIN_LENGTH = 4
KEYWORD_OVERLAP_WEIGHT = 50
RELEVANCE_LENGTH_CAP = 100
RELEVANCE_LENGTH_BONUS = 25
RELEVANCE_LENGTH_DIVISOR = 5

SENTENCE_SPLIT = re.compile(r"[.!?]+")
PARAGRAPH_SEPARATOR = "\n\n"
CAPITALIZED_START = re.compile(r"[A-Z]")
WORD_TOKEN = re.compile(r"\b\w+\b", re.ASCII)

EXAMPLE_MARKERS = re.compile(r"for example|such as|for instance|like|e\.g\.", re.IGNORECASE)
METAPHOR_MARKERS = re.compile(
    r"like a|as if|similar to|resembles|metaphorically", re.IGNORECASE
)
NUMERIC_CONTENT = re.compile(r"\d+%|\d+\.\d+|\d+ (percent|times|studies|research)", re.IGNORECASE)
EXPLANATION_MARKERS = re.compile(
    r"because|since|due to|therefore|thus|consequently|as a result|this means", re.IGNORECASE
)
STRUCTURED_LINE = re.compile(r"^\d+\.|^[-*•]|^[a-z]\)", re.MULTILINE)
PERSPECTIVE_MARKERS = re.compile(
    r"on one hand|on the other hand|however|alternatively|another view"
    r"|different perspective|conversely|in contrast",
    re.IGNORECASE,
)
CAUSAL_MARKERS = re.compile(
    r"because|since|therefore|thus|consequently|as a result|this leads to|this causes",
    re.IGNORECASE,
)
COMPARISON_MARKERS = re.compile(
    r"compared to|versus|vs\.|better than|worse than|similar to|unlike|in comparison",
    re.IGNORECASE,
)


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values.

    Example:
        >>> _round_half_up(20.5), _round_half_up(21.5)
        (21, 22)
    """
    return math.floor(value + 0.5)


def _clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, _round_half_up(value)))


def _length_bonus(length: int, cap: int, bonus: float, divisor: float) -> float:
    """Full bonus above ``cap`` characters, ``length / divisor`` partial credit below it."""
    return bonus if length > cap else length / divisor


def split_sentences(text: str) -> list[str]:
    """Split text on runs of sentence terminators, dropping blank pieces.

    Example:
        >>> split_sentences("One. Two!! Three?")
        ['One', ' Two', ' Three']
        >>> split_sentences("")
        []
    """
    return [s for s in SENTENCE_SPLIT.split(text) if s.strip()]


def count_paragraphs(text: str) -> int:
    return sum(1 for block in text.split(PARAGRAPH_SEPARATOR) if block.strip())


def has_proper_capitalization(sentences: list[str]) -> bool:
    """True when more than 70% of sentences start with an uppercase ASCII letter."""
    if not sentences:
        return False
    capitalized = sum(1 for s in sentences if CAPITALIZED_START.match(s.strip()))
    return capitalized / len(sentences) > CAPITALIZATION_RATIO


def vocabulary_richness(text: str) -> float:
    """Ratio of distinct lowercase word tokens to all word tokens (0.0 for no tokens)."""
    words = WORD_TOKEN.findall(text.lower())
    if not words:
        return 0.0
    return len(set(words)) / len(words)


def has_structured_content(text: str) -> bool:
    return bool(STRUCTURED_LINE.search(text)) or len(text.split("\n")) >= STRUCTURED_MIN_LINES


def extract_keywords(prompt_text: str) -> list[str]:
    """Lowercase whitespace tokens of the prompt longer than three characters."""
    return [w for w in prompt_text.lower().split() if len(w) >= KEYWORD_MIN_LENGTH]


def clarity_score(text: str) -> int:
    sentences = split_sentences(text)

    points = float(CLARITY_BASE)
    if len(sentences) >= CLARITY_MIN_SENTENCES:
        points += CLARITY_SENTENCE_BONUS
    else:
        points += len(sentences) * CLARITY_POINTS_PER_SENTENCE

    points += count_paragraphs(text) * CLARITY_POINTS_PER_PARAGRAPH

    if sentences:
        average_length = len(text) / len(sentences)
        low, high = OPTIMAL_SENTENCE_LENGTH
        if low < average_length < high:
            points += CLARITY_OPTIMAL_LENGTH_BONUS
        else:
            points += CLARITY_OTHER_LENGTH_BONUS

    if has_proper_capitalization(sentences):
        points += CLARITY_CAPITALIZATION_BONUS
    if ":" in text or "-" in text:
        points += CLARITY_STRUCTURE_BONUS

    points += _length_bonus(
        len(text), CLARITY_LENGTH_CAP, CLARITY_LENGTH_BONUS, CLARITY_LENGTH_DIVISOR
    )
    return _clamp_score(points)


def originality_score(text: str) -> int:
    points = ORIGINALITY_BASE + vocabulary_richness(text) * VOCABULARY_WEIGHT

    if EXAMPLE_MARKERS.search(text):
        points += ORIGINALITY_EXAMPLE_BONUS
    if METAPHOR_MARKERS.search(text):
        points += ORIGINALITY_METAPHOR_BONUS

    points += _length_bonus(
        len(text), ORIGINALITY_LENGTH_CAP, ORIGINALITY_LENGTH_BONUS, ORIGINALITY_LENGTH_DIVISOR
    )

    if "?" in text:
        points += ORIGINALITY_QUESTION_BONUS
    if NUMERIC_CONTENT.search(text):
        points += ORIGINALITY_STATS_BONUS
    return _clamp_score(points)


def depth_score(text: str) -> int:
    sentence_count = len(split_sentences(text))
    explanations = len(EXPLANATION_MARKERS.findall(text))
    density = explanations / sentence_count if sentence_count else 0.0

    points = DEPTH_BASE + len(text) / DEPTH_LENGTH_DIVISOR
    points += density * EXPLANATION_DENSITY_WEIGHT

    if has_structured_content(text):
        points += DEPTH_STRUCTURE_BONUS
    if PERSPECTIVE_MARKERS.search(text):
        points += DEPTH_PERSPECTIVE_BONUS
    if CAUSAL_MARKERS.search(text):
        points += DEPTH_CAUSAL_BONUS
    if COMPARISON_MARKERS.search(text):
        points += DEPTH_COMPARISON_BONUS
    return _clamp_score(points)


def relevance_score(prompt_text: str, text: str) -> int:
    keywords = extract_keywords(prompt_text)
    response_words = set(text.lower().split())

    points = float(RELEVANCE_BASE)
    if keywords:
        matched = sum(1 for w in keywords if w in response_words)
        points += matched / len(keywords) * KEYWORD_OVERLAP_WEIGHT

    points += _length_bonus(
        len(text), RELEVANCE_LENGTH_CAP, RELEVANCE_LENGTH_BONUS, RELEVANCE_LENGTH_DIVISOR
    )
    return _clamp_score(points)


def calculate_quality_scores(score_input: ScoreInput) -> ScoreResult:
    """Score a validated prompt/response pair.

    Never raises for a valid ScoreInput: every ratio guards its divisor.
    """
    text = score_input.response_text
    clarity = clarity_score(text)
    originality = originality_score(text)
    depth = depth_score(text)
    relevance = relevance_score(score_input.prompt_text, text)

    overall = _clamp_score(
        clarity * OVERALL_WEIGHTS["clarity"]
        + originality * OVERALL_WEIGHTS["originality"]
        + depth * OVERALL_WEIGHTS["depth"]
        + relevance * OVERALL_WEIGHTS["relevance"]
    )

    return ScoreResult(
        clarity_score=clarity,
        originality_score=originality,
        depth_score=depth,
        relevance_score=relevance,
        overall_score=overall,
    )


def score(prompt_text: str, response_text: str) -> ScoreResult:
    """Score a model response against the prompt that produced it.

    Args:
        prompt_text: The prompt sent to the model
        response_text: The model's free-text response

    Returns:
        ScoreResult with four 0-100 sub-scores and the weighted overall score

    Raises:
        InvalidInputError: If either argument is not a string

    Example:
        >>> score("Explain photosynthesis", "").clarity_score
        20
    """
    return calculate_quality_scores(ScoreInput.from_texts(prompt_text, response_text))
