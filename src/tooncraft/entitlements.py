"""Premium access gates: video access for movie mode and the scene image allowance."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from typing import Callable, Protocol

from .config import EntitlementSettings
from .instrumentation import get_logger

logger = get_logger()


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ULTRA = "ultra"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    granted: bool
    reason: str = ""


class EntitlementGate(Protocol):
    """Checks and consumes one unit of a metered allowance."""

    def check_and_consume(self) -> AccessDecision:  # pragma: no cover - protocol
        ...


class UnlimitedAccess:
    def check_and_consume(self) -> AccessDecision:
        return AccessDecision(True, "unlimited")


class VideoAccessLedger:
    """In-memory trial and daily-cap counters.

    ``free`` spends one trial per movie-mode run, ``pro`` is unlimited and
    ``ultra`` has a daily cap that resets once the window has elapsed.
    """

    def __init__(
        self,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        *,
        limits: EntitlementSettings | None = None,
        trials_remaining: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.limits = limits or EntitlementSettings()
        self.tier = SubscriptionTier(tier)
        self.trials_remaining = self.limits.free_video_trials if trials_remaining is None else trials_remaining
        self.daily_count = 0
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.window_started_at = self._clock()
        self._lock = Lock()

    def _reset_window_if_elapsed(self) -> None:
        now = self._clock()
        if now - self.window_started_at > timedelta(hours=self.limits.daily_reset_hours):
            self.daily_count = 0
            self.window_started_at = now

    def check(self) -> AccessDecision:
        with self._lock:
            return self._check()

    def _check(self) -> AccessDecision:
        if self.tier is SubscriptionTier.ULTRA:
            self._reset_window_if_elapsed()
            if self.daily_count >= self.limits.premium_daily_video_cap:
                return AccessDecision(
                    False,
                    f"You've reached your daily limit of {self.limits.premium_daily_video_cap} scenes. "
                    "Come back tomorrow for more magic!",
                )
            return AccessDecision(True, "daily_cap")
        if self.tier is SubscriptionTier.PRO:
            return AccessDecision(True, "unlimited")
        if self.trials_remaining > 0:
            return AccessDecision(True, "trial")
        return AccessDecision(False, "No free video trials left. Upgrade to keep filming!")

    def check_and_consume(self) -> AccessDecision:
        with self._lock:
            decision = self._check()
            if not decision.granted:
                return decision
            if self.tier is SubscriptionTier.ULTRA:
                self.daily_count += 1
            elif self.tier is SubscriptionTier.FREE:
                self.trials_remaining -= 1
                logger.info("Video trial consumed; %d left", self.trials_remaining)
            return decision

    def upgrade(self, tier: SubscriptionTier) -> None:
        with self._lock:
            self.tier = SubscriptionTier(tier)


class ImageAllowance:
    """Counts scene image generations.

    ``free`` and ``pro`` share a fixed lifetime cap. ``ultra`` gets a small
    batch that unlocks again once the cooldown has passed since the last
    generation; the first generation after the cooldown starts a new batch.
    """

    def __init__(
        self,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        *,
        limits: EntitlementSettings | None = None,
        generations: int = 0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.limits = limits or EntitlementSettings()
        self.tier = SubscriptionTier(tier)
        self.generations = generations
        self.last_generated_at: datetime | None = None
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()

    def _cooling_down(self, now: datetime) -> bool:
        if self.last_generated_at is None:
            return False
        return now - self.last_generated_at < timedelta(hours=self.limits.image_cooldown_hours)

    def check_and_consume(self) -> AccessDecision:
        with self._lock:
            if self.tier is not SubscriptionTier.ULTRA:
                cap = self.limits.image_generation_cap
                if self.generations >= cap:
                    return AccessDecision(
                        False, f"You've used your {cap} image generations. Upgrade to Ultra for unlimited magic!"
                    )
                self.generations += 1
                return AccessDecision(True, "image_cap")

            now = self._clock()
            cap = self.limits.premium_daily_image_cap
            if self.generations >= cap:
                if self._cooling_down(now):
                    return AccessDecision(
                        False,
                        f"Whoa! You've made {cap} stories today. "
                        f"Let's take a break and come back in {self.limits.image_cooldown_hours} hours for more!",
                    )
                self.generations = 0
            self.generations += 1
            self.last_generated_at = now
            return AccessDecision(True, "cooldown")

    def upgrade(self, tier: SubscriptionTier) -> None:
        with self._lock:
            self.tier = SubscriptionTier(tier)
