"""
Quote grading engine
====================
Turns a handful of quote fundamentals into a 0-100 score and a letter grade.

Score starts at 50 and each factor adds an independent adjustment:
- P/E ratio (lower is better, only when positive)
- EPS (higher is better, capped at 10)
- Market cap (bigger is better, log scale, capped at +15)

Volume rides along in the snapshot but never affects the score.
"""

import math
from dataclasses import dataclass
from typing import Optional

BASE_SCORE = 50

PE_CAP = 100
PE_NEUTRAL = 30
PE_FLOOR = -20

EPS_CAP = 10
EPS_FLOOR = -15

MARKET_CAP_PIVOT = 6  # log10 of $1M
MARKET_CAP_CEILING = 15

GRADE_THRESHOLDS = [
    (85, 'A'),
    (70, 'B'),
    (55, 'C'),
    (40, 'D'),
]


def _is_finite_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class FundamentalsSnapshot:
    """Raw fundamentals for one symbol. Every field is optional."""
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None
    market_cap: Optional[float] = None
    volume: Optional[float] = None

    def __post_init__(self):
        for name in ('pe_ratio', 'eps', 'market_cap', 'volume'):
            value = getattr(self, name)
            if value is not None and not _is_finite_number(value):
                raise ValueError(f'{name} must be a finite number or None, got {value!r}')
        if self.market_cap is not None and self.market_cap < 0:
            raise ValueError(f'market_cap must be >= 0, got {self.market_cap!r}')


@dataclass(frozen=True)
class Grade:
    score: int
    letter: str

    def to_dict(self) -> dict:
        return {'score': self.score, 'grade': self.letter}


def round_half_up(x: float) -> int:
    """
    Round to the nearest integer with halves going toward +infinity.

    Python's round() is half-to-even; scores have always been computed with
    half-up ties (2.5 -> 3, -1.5 -> -1), so we keep that here.
    """
    # x + 0.5 can round up in floating point, so compare the fraction instead
    whole = math.floor(x)
    return int(whole + 1 if x - whole >= 0.5 else whole)


def pe_adjustment(pe_ratio: Optional[float]) -> int:
    if pe_ratio is None or pe_ratio <= 0:
        return 0
    capped = min(pe_ratio, PE_CAP)
    return max(PE_FLOOR, round_half_up((PE_NEUTRAL - capped) / 3))


def eps_adjustment(eps: Optional[float]) -> int:
    if eps is None:
        return 0
    capped = min(eps, EPS_CAP)
    return max(EPS_FLOOR, round_half_up(capped * 2))


def market_cap_adjustment(market_cap: Optional[float]) -> int:
    # zero market cap counts as missing
    if not market_cap:
        return 0
    return min(MARKET_CAP_CEILING, round_half_up(math.log10(market_cap or 1) - MARKET_CAP_PIVOT))


def letter_for(score: int) -> str:
    """Map a clamped score to A/B/C/D/F, highest threshold first."""
    for threshold, letter in GRADE_THRESHOLDS:
        if score >= threshold:
            return letter
    return 'F'


def score_components(snapshot: FundamentalsSnapshot) -> dict:
    """Per-factor adjustments, before clamping"""
    return {
        'pe': pe_adjustment(snapshot.pe_ratio),
        'eps': eps_adjustment(snapshot.eps),
        'market_cap': market_cap_adjustment(snapshot.market_cap),
    }


def grade(snapshot: FundamentalsSnapshot) -> Grade:
    """
    Grade a fundamentals snapshot.

    Never raises for a valid snapshot: missing fields simply add nothing.
    The final score is clamped to [0, 100] before picking the letter.
    """
    score = BASE_SCORE + sum(score_components(snapshot).values())
    score = max(0, min(100, score))
    return Grade(score=score, letter=letter_for(score))
