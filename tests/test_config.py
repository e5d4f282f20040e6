from __future__ import annotations

import json

from resonance.core.config_manager import ConfigManager


def test_config_manager_reads_and_writes_its_own_path(tmp_path):
    path = tmp_path / "custom" / "config.json"
    manager = ConfigManager(config_path=path, data_root=tmp_path / "data")

    assert manager.load()["OWNER_ID"] == "local"
    assert path.exists()

    manager.set("OWNER_ID", "reader-42")
    manager.save()

    assert json.loads(path.read_text(encoding="utf-8"))["OWNER_ID"] == "reader-42"
    assert ConfigManager(config_path=path).get("OWNER_ID") == "reader-42"
