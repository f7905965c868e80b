"""
MergeMates — Compatibility scoring.

Computes a 0-100 compatibility score between an actor and a target profile
from six weighted factors:

  age         20  target's age inside the actor's preferred range
  skills      25  |A ∩ B| / max(|A|, |B|)
  education   15  ordinal distance on high-school < diploma < bachelor < master < phd
  profession  15  exact / both tech-adjacent / other
  religion    10  actor's accepted religions contain the target's (or "any")
  location    15  both profiles carry coordinates

A factor whose inputs are missing on either side is skipped: it adds to
neither the achieved total nor the maximum.  The base score is
``round(100 × achieved / maximum)`` over the available factors.

The advanced score used for feed ranking adds activity, verification,
completeness and photo bonuses on top of the base score, clamped to 100.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any

import structlog

from mergemates.config import get_settings
from mergemates.schemas.profile import Profile
from mergemates.utils.timeutils import as_utc, utcnow

logger = structlog.get_logger("mergemates.scoring_service")


def _slug(value: str) -> str:
    """Normalise free-text labels: "Bachelor's" -> "bachelors", "ML Engineer" -> "ml-engineer"."""
    value = value.strip().lower().replace("'", "").replace("’", "")
    return re.sub(r"[^a-z0-9]+", "-", value).strip("-")


class CompatibilityScorer:
    """Pure, deterministic compatibility scoring between two profiles."""

    FACTORS: tuple[str, ...] = (
        "age", "skills", "education", "profession", "religion", "location",
    )

    # Years outside the preferred range at which age credit reaches zero.
    AGE_DECAY_YEARS: int = 10

    EDUCATION_SCALE: tuple[str, ...] = (
        "high-school", "diploma", "bachelor", "master", "phd",
    )
    EDUCATION_ALIASES: dict[str, str] = {
        "highschool": "high-school",
        "bachelors": "bachelor",
        "masters": "master",
        "doctorate": "phd",
    }
    # Level steps at which education credit reaches zero.
    EDUCATION_DECAY_STEPS: int = 5

    TECH_PROFESSIONS: frozenset[str] = frozenset({
        "software-engineer",
        "frontend-developer",
        "backend-developer",
        "full-stack-developer",
        "mobile-developer",
        "devops-engineer",
        "data-scientist",
        "ml-engineer",
        "product-manager",
        "designer",
    })
    RELATED_PROFESSION_CREDIT: float = 8 / 15
    OTHER_PROFESSION_CREDIT: float = 3 / 15

    # ── Advanced-score bonuses ──────────────────────────────────────
    ACTIVE_TODAY_BONUS: int = 10
    ACTIVE_THIS_WEEK_BONUS: int = 5
    VERIFIED_BONUS: int = 5
    COMPLETE_PROFILE_BONUS: int = 5
    PHOTOS_BONUS: int = 5
    PHOTOS_BONUS_MIN: int = 3

    def __init__(self, weights: dict[str, float] | None = None) -> None:
        if weights is None:
            weights = get_settings().SCORE_WEIGHTS
        self.weights: dict[str, float] = {
            factor: float(weights.get(factor, 0.0)) for factor in self.FACTORS
        }

    # ── Public API ────────────────────────────────────────────────────────

    def score(self, actor: Profile, target: Profile, now: datetime | None = None) -> int:
        """Base compatibility score in [0, 100]."""
        return self.breakdown(actor, target, now)["score"]

    def breakdown(
        self, actor: Profile, target: Profile, now: datetime | None = None
    ) -> dict[str, Any]:
        """Per-factor scoring detail.

        Returns
        -------
        dict
            ``factors`` maps each factor to ``{achieved, weight, available}``;
            ``achieved`` and ``maximum`` are the totals over available
            factors, and ``score`` is the rounded percentage.
        """
        today = (now or utcnow()).date()

        fractions: dict[str, float | None] = {
            "age": self._age_fraction(actor, target, today),
            "skills": self._skills_fraction(actor, target),
            "education": self._education_fraction(actor, target),
            "profession": self._profession_fraction(actor, target),
            "religion": self._religion_fraction(actor, target),
            "location": self._location_fraction(actor, target),
        }

        factors: dict[str, dict[str, Any]] = {}
        achieved = 0.0
        maximum = 0.0
        for factor, fraction in fractions.items():
            weight = self.weights[factor]
            available = fraction is not None
            points = weight * fraction if available else 0.0
            if available:
                achieved += points
                maximum += weight
            factors[factor] = {
                "achieved": round(points, 4),
                "weight": weight,
                "available": available,
            }

        score = round(100 * achieved / maximum) if maximum > 0 else 0
        score = max(0, min(100, score))

        return {
            "factors": factors,
            "achieved": round(achieved, 4),
            "maximum": maximum,
            "score": score,
        }

    def advanced_score(
        self, actor: Profile, target: Profile, now: datetime | None = None
    ) -> int:
        """Base score plus target-side activity and profile-quality bonuses."""
        now = now or utcnow()
        bonus = 0

        last_seen = as_utc(target.last_active or target.updated_at)
        if last_seen is not None:
            idle = now - last_seen
            if idle < timedelta(days=1):
                bonus += self.ACTIVE_TODAY_BONUS
            elif idle < timedelta(days=7):
                bonus += self.ACTIVE_THIS_WEEK_BONUS

        if target.is_verified:
            bonus += self.VERIFIED_BONUS
        if target.profile_complete:
            bonus += self.COMPLETE_PROFILE_BONUS
        if len(target.photos) >= self.PHOTOS_BONUS_MIN:
            bonus += self.PHOTOS_BONUS

        return min(100, self.score(actor, target, now) + bonus)

    @staticmethod
    def mutual_interests(actor: Profile, target: Profile, limit: int | None = None) -> list[str]:
        """Skills both profiles share, in the actor's order, without duplicates."""
        target_skills = {s.strip().lower() for s in target.skills}
        shared: list[str] = []
        seen: set[str] = set()
        for skill in actor.skills:
            key = skill.strip().lower()
            if key in target_skills and key not in seen:
                shared.append(skill)
                seen.add(key)
        return shared[:limit] if limit is not None else shared

    # ── Factor fractions (None = factor unavailable) ─────────────────────

    def _age_fraction(self, actor: Profile, target: Profile, today: date) -> float | None:
        prefs = actor.preferences
        target_age = target.age_at(today)
        if not prefs.has_age_range or target_age is None:
            return None

        low = prefs.age_min
        high = prefs.age_max
        if (low is None or target_age >= low) and (high is None or target_age <= high):
            return 1.0

        years_outside = (low - target_age) if low is not None and target_age < low else (target_age - high)
        return max(0.0, 1.0 - years_outside / self.AGE_DECAY_YEARS)

    @staticmethod
    def _skills_fraction(actor: Profile, target: Profile) -> float | None:
        skills_a = {s.strip().lower() for s in actor.skills if s.strip()}
        skills_b = {s.strip().lower() for s in target.skills if s.strip()}
        if not skills_a or not skills_b:
            return None
        return len(skills_a & skills_b) / max(len(skills_a), len(skills_b))

    def _education_rank(self, level: str) -> int | None:
        slug = _slug(level)
        slug = self.EDUCATION_ALIASES.get(slug, slug)
        try:
            return self.EDUCATION_SCALE.index(slug)
        except ValueError:
            return None

    def _education_fraction(self, actor: Profile, target: Profile) -> float | None:
        if not actor.education_level or not target.education_level:
            return None
        rank_a = self._education_rank(actor.education_level)
        rank_b = self._education_rank(target.education_level)
        if rank_a is None or rank_b is None:
            # Level outside the ordinal scale, e.g. "Other".
            return 0.0
        diff = abs(rank_a - rank_b)
        return max(0.0, 1.0 - diff / self.EDUCATION_DECAY_STEPS)

    def _profession_fraction(self, actor: Profile, target: Profile) -> float | None:
        if not actor.profession or not target.profession:
            return None
        prof_a = _slug(actor.profession)
        prof_b = _slug(target.profession)
        if prof_a == prof_b:
            return 1.0
        if prof_a in self.TECH_PROFESSIONS and prof_b in self.TECH_PROFESSIONS:
            return self.RELATED_PROFESSION_CREDIT
        return self.OTHER_PROFESSION_CREDIT

    @staticmethod
    def _religion_fraction(actor: Profile, target: Profile) -> float | None:
        accepted = actor.preferences.religions
        if not accepted or not target.religion:
            return None
        if actor.preferences.accepts_any_religion:
            return 1.0
        wanted = {r.strip().lower() for r in accepted}
        return 1.0 if target.religion.strip().lower() in wanted else 0.0

    @staticmethod
    def _location_fraction(actor: Profile, target: Profile) -> float | None:
        # Distance itself is enforced by the candidate query.
        if actor.has_coordinates and target.has_coordinates:
            return 1.0
        return None
