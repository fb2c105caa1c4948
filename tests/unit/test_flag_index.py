"""Tests for building scan targets from active and deleted flags."""

from flagref.core.flag_index import (
    DeletedFlagModel,
    FlagModel,
    ScanTarget,
    build_scan_targets,
)


def test_active_targets_come_first_and_keep_aliases():
    targets = build_scan_targets(
        [FlagModel(setting_id=1, key="isNewUi", aliases=("new_ui", "NEW_UI"))],
        [DeletedFlagModel(key="oldBanner", setting_id=7)],
    )

    assert [(t.key, t.is_deleted) for t in targets] == [("isNewUi", False), ("oldBanner", True)]
    assert targets[0].aliases == frozenset({"new_ui", "NEW_UI"})
    assert targets[0].setting_id == 1
    assert targets[1].aliases == frozenset()


def test_deleted_flag_with_active_key_is_dropped():
    targets = build_scan_targets(
        [FlagModel(setting_id=1, key="checkout")],
        [DeletedFlagModel(key="checkout", setting_id=2)],
    )

    assert len(targets) == 1
    assert not targets[0].is_deleted
    assert targets[0].setting_id == 1


def test_deleted_flags_are_deduplicated_by_key():
    targets = build_scan_targets(
        [],
        [DeletedFlagModel(key="legacy"), DeletedFlagModel(key="legacy"), DeletedFlagModel(key="other")],
    )

    assert [t.key for t in targets] == ["legacy", "other"]


def test_keys_are_compared_case_sensitively():
    targets = build_scan_targets(
        [FlagModel(setting_id=1, key="darkMode")],
        [DeletedFlagModel(key="DarkMode")],
    )

    assert [t.key for t in targets] == ["darkMode", "DarkMode"]


def test_empty_keys_and_aliases_are_skipped():
    targets = build_scan_targets(
        [FlagModel(setting_id=1, key=""), FlagModel(setting_id=2, key="k", aliases=("", "a"))],
        [DeletedFlagModel(key="")],
    )

    assert [t.key for t in targets] == ["k"]
    assert targets[0].aliases == frozenset({"a"})


def test_search_texts_key_first_then_sorted_aliases():
    target = ScanTarget(key="flag", aliases=frozenset({"zeta", "alpha", "flag"}))

    assert target.search_texts == ("flag", "alpha", "zeta")


def test_discovered_aliases_skip_known_texts():
    target = ScanTarget(key="flag", aliases=frozenset({"alpha"})).with_discovered_aliases(
        ["useFlag", "alpha", "flag", ""]
    )

    assert target.discovered_texts == ("useFlag",)
    assert target.search_texts == ("flag", "alpha")
    assert target.with_discovered_aliases(["FLAG_ON"]).discovered_texts == ("FLAG_ON", "useFlag")


def test_models_from_api_payload():
    flag = FlagModel.from_dict(
        {"settingId": 42, "key": "isEnabled", "name": "Is enabled", "aliases": ["enabled"]}
    )
    deleted = DeletedFlagModel.from_dict({"settingId": 3, "key": "gone", "name": None})

    assert flag == FlagModel(setting_id=42, key="isEnabled", name="Is enabled", aliases=("enabled",))
    assert deleted == DeletedFlagModel(key="gone", setting_id=3, name="")
    assert FlagModel.from_dict({"key": "bare"}).aliases == ()
