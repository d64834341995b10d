import pytest


@pytest.fixture(autouse=True)
def _isolated_log(tmp_path, monkeypatch):
    from boothealth import executil

    monkeypatch.setattr(executil, "LOG_DIRS", [str(tmp_path / "logs")])
    monkeypatch.setattr(executil, "LOG_PATH", None)
    monkeypatch.setattr(executil, "LOG_LEVEL", "TRACE")
    return tmp_path / "logs" / executil.LOG_NAME
