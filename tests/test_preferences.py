import json

import pytest

from color_relay.preferences import KEY_AUTO, KEY_CAMERA_ID, PreferenceStore


def test_missing_file_means_unset(prefs):
    assert prefs.load(KEY_CAMERA_ID) is None
    assert prefs.load_bool(KEY_AUTO) is False


def test_values_survive_a_fresh_store(prefs, prefs_path):
    prefs.save(KEY_CAMERA_ID, "/dev/video2")
    prefs.save(KEY_AUTO, True)

    reloaded = PreferenceStore(str(prefs_path))
    assert reloaded.load(KEY_CAMERA_ID) == "/dev/video2"
    assert reloaded.load(KEY_AUTO) == "true"
    assert reloaded.load_bool(KEY_AUTO) is True


def test_bool_decoding_is_exact_match(prefs, prefs_path):
    prefs_path.parent.mkdir(parents=True)
    prefs_path.write_text(json.dumps({KEY_AUTO: "True"}), encoding="utf-8")
    assert prefs.load_bool(KEY_AUTO) is False
    prefs.save(KEY_AUTO, False)
    assert prefs.load(KEY_AUTO) == "false"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '"true"'])
def test_malformed_file_is_treated_as_absent(prefs, prefs_path, content):
    prefs_path.parent.mkdir(parents=True)
    prefs_path.write_text(content, encoding="utf-8")
    assert prefs.load(KEY_CAMERA_ID) is None
    assert prefs.load_bool(KEY_AUTO) is False
    # Saving over a broken file starts a fresh document
    prefs.save(KEY_CAMERA_ID, "cam")
    assert json.loads(prefs_path.read_text(encoding="utf-8")) == {KEY_CAMERA_ID: "cam"}


def test_non_string_values_are_ignored(prefs, prefs_path):
    prefs_path.parent.mkdir(parents=True)
    prefs_path.write_text(json.dumps({KEY_AUTO: True, KEY_CAMERA_ID: 3}), encoding="utf-8")
    assert prefs.load(KEY_CAMERA_ID) is None
    assert prefs.load_bool(KEY_AUTO) is False


def test_unknown_key_is_rejected(prefs):
    with pytest.raises(KeyError):
        prefs.load("rgbw.other")
    with pytest.raises(KeyError):
        prefs.save("rgbw.other", "x")
