import pytest
from pydantic import ValidationError

from tooncraft.config import Settings, get_settings
from tooncraft.prompts import image_style_suffix, live_system_instruction, script_system_instruction


def test_default_chains_match_provider_preference():
    config = Settings(_env_file=None)
    assert config.script_models[0] == "gemini-2.5-flash"
    assert len(config.video_models) == 8
    assert [model.startswith("hf:") for model in config.video_models] == [False] * 4 + [True] * 4
    assert config.timings.video_poll_interval == 10.0
    assert config.entitlements.free_video_trials == 3


def test_empty_chain_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, image_models=[" "])


def test_legacy_vite_keys_are_accepted(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY_1", raising=False)
    monkeypatch.setenv("VITE_GEMINI_API_KEY_1", "legacy")
    assert Settings(_env_file=None).credential_pool_keys[0] == "legacy"


def test_proxy_prefers_https():
    config = Settings(_env_file=None, HTTP_PROXY="http://p:80", HTTPS_PROXY="http://s:443")
    assert config.httpx_proxies == "http://s:443"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_prompt_builders_bracket_by_age():
    assert "chunky shapes" in image_style_suffix(7)
    assert "cinematic" in image_style_suffix(8)
    assert "Bubbles" in live_system_instruction(6)
    assert "Director Spark" in live_system_instruction(9)
    assert "Ace" in live_system_instruction(12)
    instruction = script_system_instruction(7, movie_mode=True, scene_count=4)
    assert "exactly 4 distinct scenes" in instruction
    assert "SHORT and PUNCHY" in instruction


def test_image_allowance_defaults():
    limits = Settings(_env_file=None).entitlements
    assert (limits.image_generation_cap, limits.premium_daily_image_cap, limits.image_cooldown_hours) == (10, 3, 24)
