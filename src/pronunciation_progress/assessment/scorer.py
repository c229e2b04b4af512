"""Transcript-against-reference pronunciation scoring."""

import math
import random
from fractions import Fraction

import structlog

from pronunciation_progress.assessment.similarity import (
    DEFAULT_MATCH_THRESHOLD,
    similarity,
)
from pronunciation_progress.errors import InvalidInput
from pronunciation_progress.models.score import (
    PronunciationAssessment,
    PronunciationScore,
    WordMatch,
    score_label,
)

logger = structlog.get_logger()

# Longest word the service accepts; edit distance is quadratic in word length
MAX_WORD_LENGTH = 64

# Ranges the noisy sub-scores are drawn from when a random source is given
FLUENCY_NOISE_RANGE = (0.8, 1.0)
PROSODY_RANGE = (0.7, 1.0)


def _percent(ratio: Fraction) -> int:
    """Fraction in [0, 1] to an integer percentage, rounded half up."""
    return math.floor(ratio * 100 + Fraction(1, 2))


def tokenize(text: str) -> list[str]:
    """Lowercase and split on whitespace."""
    return text.lower().split()


class Scorer:
    """Scores a recognized transcript against the phrase the user was asked to say.

    Words are compared position by position; no alignment search is done, so
    an inserted or dropped word shifts every later comparison.

    Without a random source the scorer is deterministic: fluency uses a fixed
    ``fluency_factor`` and prosody is the constant ``prosody_score``. Passing
    ``rng`` restores the noisy behavior, drawing the fluency factor from
    [0.8, 1.0] and prosody from [0.7, 1.0].

    Args:
        match_threshold: Similarity two words must exceed to count as a match.
        fluency_factor: Pacing factor applied to the length ratio.
        prosody_score: Prosody percentage reported in deterministic mode.
        rng: Optional random source for the noisy sub-scores.
    """

    def __init__(
        self,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        fluency_factor: float = 0.9,
        prosody_score: int = 85,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= fluency_factor <= 1.0:
            raise ValueError("fluency_factor must be within [0, 1]")
        if not 0 <= prosody_score <= 100:
            raise ValueError("prosody_score must be within [0, 100]")
        self.match_threshold = match_threshold
        self.fluency_factor = fluency_factor
        self.prosody_score = prosody_score
        self.rng = rng

    def score(self, user_transcript: str, reference_text: str) -> PronunciationScore:
        """Score one attempt.

        Raises:
            InvalidInput: If the reference text has no words.
        """
        return self.assess(user_transcript, reference_text).score

    def assess(self, user_transcript: str, reference_text: str) -> PronunciationAssessment:
        """Score one attempt and keep the word-level comparison."""
        user_words = tokenize(user_transcript)
        ref_words = tokenize(reference_text)
        if not ref_words:
            raise InvalidInput("reference text must contain at least one word")

        words = self._compare_words(user_words, ref_words)
        matches = sum(1 for w in words if w.matched)

        accuracy = Fraction(matches, max(len(user_words), len(ref_words)))
        completeness = min(Fraction(len(user_words), len(ref_words)), Fraction(1))
        fluency = self._fluency(len(user_words), len(ref_words))

        score = PronunciationScore.from_components(
            accuracy=_percent(accuracy),
            fluency=_percent(fluency),
            completeness=_percent(completeness),
            prosody=self._prosody(),
        )
        logger.debug(
            "pronunciation_scored",
            overall=score.overall,
            accuracy=score.accuracy,
            fluency=score.fluency,
            completeness=score.completeness,
            prosody=score.prosody,
            matched_words=matches,
            reference_words=len(ref_words),
        )
        return PronunciationAssessment(score=score, words=words, label=score_label(score.overall))

    def _compare_words(self, user_words: list[str], ref_words: list[str]) -> list[WordMatch]:
        results = []
        for i in range(max(len(user_words), len(ref_words))):
            heard = user_words[i] if i < len(user_words) else None
            expected = ref_words[i] if i < len(ref_words) else None
            sim = 0.0
            if heard is not None and expected is not None:
                sim = similarity(heard, expected)
            results.append(
                WordMatch(
                    position=i,
                    expected=expected,
                    heard=heard,
                    similarity=round(sim, 3),
                    matched=sim > self.match_threshold,
                )
            )
        return results

    def _fluency(self, user_count: int, ref_count: int) -> Fraction:
        # Nothing said means nothing to pace
        if user_count == 0:
            return Fraction(0)
        ratio = min(Fraction(user_count, ref_count), Fraction(ref_count, user_count))
        return ratio * self._fluency_noise()

    def _fluency_noise(self) -> Fraction:
        if self.rng is None:
            return Fraction(str(self.fluency_factor))
        low, high = FLUENCY_NOISE_RANGE
        return Fraction(low + self.rng.random() * (high - low))

    def _prosody(self) -> int:
        if self.rng is None:
            return self.prosody_score
        low, high = PROSODY_RANGE
        return _percent(Fraction(low + self.rng.random() * (high - low)))
