from __future__ import annotations

import sys
from pathlib import Path

import pytest

MOCK_CMD_PATH = Path(__file__).parent / "fixtures" / "retry_mock_cmd.py"


class MockCommand:
    """argv builder and state reader for fixtures/retry_mock_cmd.py."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = state_dir

    def argv(self, exit_code: int = 0) -> list[str]:
        return [
            sys.executable,
            str(MOCK_CMD_PATH),
            "--state-dir",
            str(self.state_dir),
            "--exit-code",
            str(exit_code),
        ]

    def read(self, name: str) -> str:
        return (self.state_dir / name).read_text(encoding="utf-8")


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def isolated_defaults_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    path = tmp_path / "retrycmd-config.toml"
    monkeypatch.setenv("RETRYCMD_CONFIG", str(path))
    for name in ("RETRY_TRY", "RETRY_MAX", "RETRY_NEXT_SLEEP", "RETRY_PREV_SLEEP", "RETRY_PREV_EXIT_CODE"):
        monkeypatch.delenv(name, raising=False)
    return path


@pytest.fixture
def mock_cmd(tmp_path: Path) -> MockCommand:
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return MockCommand(state_dir)
