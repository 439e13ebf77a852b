from __future__ import annotations

import json
from pathlib import Path

import datastore_dynamodb


def test_version_matches_version_json() -> None:
    version_file = Path(__file__).resolve().parents[2] / "src" / "datastore_dynamodb" / "version.json"
    data = json.loads(version_file.read_text(encoding="utf-8"))
    assert datastore_dynamodb.__repo_version__ == data["version"]
    if "-rc." in data["version"]:
        assert "-rc." not in datastore_dynamodb.__version__
        assert "rc" in datastore_dynamodb.__version__
    else:
        assert datastore_dynamodb.__version__ == data["version"]
