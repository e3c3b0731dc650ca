import pytest

import dnaboard.__main__ as module_main
import dnaboard.main as main


def test_module_entrypoint_runs_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(module_main, "main_entry", lambda: calls.append("cli"))
    module_main.main()
    assert calls == ["cli"]


def test_main_entry_exits_with_run_status(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "run", lambda: 3)
    with pytest.raises(SystemExit) as excinfo:
        main.main_entry()
    assert excinfo.value.code == 3
