from mathcamp.feature_flags import FeatureFlagService, parse_flag_overrides


def test_local_defaults():
    flags = FeatureFlagService()
    assert not flags.is_enabled("multiplication-activity")
    assert flags.is_enabled("sound-effects")
    assert not flags.is_enabled("no-such-flag")


def test_activity_gating():
    flags = FeatureFlagService()
    assert flags.activity_enabled("addition")
    assert flags.activity_enabled("counting-sequence")
    assert not flags.activity_enabled("multiplication")
    assert not flags.activity_enabled("division")


def test_overrides_from_env_value():
    flags = FeatureFlagService.from_env_value("multiplication-activity=on, sound-effects=off, ai-hints")
    assert flags.activity_enabled("multiplication")
    assert not flags.is_enabled("sound-effects")
    assert flags.is_enabled("ai-hints")
    assert "ai-hints" in flags.enabled_flags()
    assert flags.enabled_flags() == sorted(flags.enabled_flags())


def test_parse_skips_bad_values():
    assert parse_flag_overrides("a=maybe,b=0,,=on") == {"b": False}
    assert parse_flag_overrides(None) == {}
    assert parse_flag_overrides("Voice-Input=YES") == {"voice-input": True}
