import json
import os

from mesh_tracking.live_tuning import RuntimeParamWatcher


def test_watcher_missing_file_has_no_params(tmp_path):
    watcher = RuntimeParamWatcher(tmp_path / "runtime_params.json")
    assert watcher.params == {}
    assert not watcher.maybe_reload()


def test_watcher_reloads_changed_file(tmp_path):
    path = tmp_path / "runtime_params.json"
    path.write_text(json.dumps({"detection_threshold": 0.8}))
    watcher = RuntimeParamWatcher(path)
    assert watcher.get("detection_threshold") == 0.8
    assert not watcher.maybe_reload()

    path.write_text(json.dumps({"detection_threshold": 0.85, "track_pad_ratio": 0.3}))
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 5))

    assert watcher.maybe_reload()
    assert watcher.numeric() == {"detection_threshold": 0.85, "track_pad_ratio": 0.3}


def test_watcher_keeps_params_on_bad_json(tmp_path):
    path = tmp_path / "runtime_params.json"
    path.write_text(json.dumps({"mesh_threshold": 0.6}))
    watcher = RuntimeParamWatcher(path)

    path.write_text("{not json")
    watcher.maybe_reload()
    assert watcher.get("mesh_threshold") == 0.6


def test_numeric_skips_non_numeric_values(tmp_path):
    path = tmp_path / "runtime_params.json"
    path.write_text(json.dumps({"mesh_threshold": "high", "detection_pad_ratio": 0, "track_pad_ratio": True}))
    watcher = RuntimeParamWatcher(path)
    assert watcher.numeric() == {"detection_pad_ratio": 0.0}
