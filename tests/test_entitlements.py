from datetime import datetime, timedelta, timezone

from tooncraft.config import EntitlementSettings
from tooncraft.entitlements import ImageAllowance, SubscriptionTier, VideoAccessLedger


class _Clock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_free_tier_consumes_trials():
    ledger = VideoAccessLedger(SubscriptionTier.FREE, trials_remaining=2)
    assert ledger.check_and_consume().granted
    assert ledger.check_and_consume().granted
    denied = ledger.check_and_consume()
    assert not denied.granted
    assert "trials" in denied.reason
    assert ledger.trials_remaining == 0


def test_free_tier_defaults_to_three_trials():
    ledger = VideoAccessLedger()
    assert ledger.trials_remaining == 3


def test_check_does_not_consume():
    ledger = VideoAccessLedger(trials_remaining=1)
    assert ledger.check().granted
    assert ledger.trials_remaining == 1


def test_pro_is_unlimited():
    ledger = VideoAccessLedger(SubscriptionTier.PRO, trials_remaining=0)
    assert all(ledger.check_and_consume().granted for _ in range(20))


def test_ultra_daily_cap_resets_after_window():
    clock = _Clock()
    ledger = VideoAccessLedger(
        SubscriptionTier.ULTRA,
        limits=EntitlementSettings(premium_daily_video_cap=2),
        clock=clock,
    )
    assert ledger.check_and_consume().granted
    assert ledger.check_and_consume().granted
    assert not ledger.check_and_consume().granted

    clock.now += timedelta(hours=25)
    assert ledger.check_and_consume().granted
    assert ledger.daily_count == 1


def test_upgrade_unlocks_access():
    ledger = VideoAccessLedger(trials_remaining=0)
    assert not ledger.check_and_consume().granted
    ledger.upgrade(SubscriptionTier.PRO)
    assert ledger.check_and_consume().granted


def test_image_allowance_caps_free_tier_at_ten():
    allowance = ImageAllowance(SubscriptionTier.FREE)
    assert all(allowance.check_and_consume().granted for _ in range(10))
    denied = allowance.check_and_consume()
    assert not denied.granted
    assert "10 image generations" in denied.reason
    assert allowance.generations == 10


def test_image_allowance_cap_is_not_windowed_for_pro():
    clock = _Clock()
    allowance = ImageAllowance(
        SubscriptionTier.PRO, limits=EntitlementSettings(image_generation_cap=1), clock=clock
    )
    assert allowance.check_and_consume().granted
    clock.now += timedelta(days=30)
    assert not allowance.check_and_consume().granted


def test_image_allowance_ultra_cooldown():
    clock = _Clock()
    allowance = ImageAllowance(SubscriptionTier.ULTRA, clock=clock)
    assert all(allowance.check_and_consume().granted for _ in range(3))

    clock.now += timedelta(hours=23)
    denied = allowance.check_and_consume()
    assert not denied.granted
    assert "24 hours" in denied.reason

    # the cooldown counts from the last generation, not the first
    clock.now += timedelta(hours=2)
    assert allowance.check_and_consume().granted
    assert allowance.generations == 1
    assert allowance.last_generated_at == clock.now


def test_image_allowance_upgrade_to_ultra():
    allowance = ImageAllowance(SubscriptionTier.FREE, generations=10)
    assert not allowance.check_and_consume().granted
    allowance.upgrade(SubscriptionTier.ULTRA)
    assert allowance.check_and_consume().granted
    assert allowance.generations == 1
