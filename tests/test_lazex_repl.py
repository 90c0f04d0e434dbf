import pytest

import lazex.lazex_repl as repl


def _feed(monkeypatch, lines):
    it = iter(lines)

    async def fake_ainput(prompt: str) -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    monkeypatch.setattr(repl, "ainput", fake_ainput)


@pytest.mark.asyncio
async def test_repl_exit_immediately(monkeypatch, capsys):
    _feed(monkeypatch, ["exit"])
    await repl.main([])
    out = capsys.readouterr().out
    assert "LAZEX REPL v0.1" in out
    assert "Type 'exit' or press Ctrl+D to quit." in out


@pytest.mark.asyncio
async def test_repl_prints_side_effects_and_values(monkeypatch, capsys):
    _feed(monkeypatch, ["x = 2; x + 1", "print('hi')", "   ", "x", "exit"])
    await repl.main([])
    out, err = capsys.readouterr()
    assert out.splitlines()[2:] == ["2", "3", "hi", "'hi'", "2"]
    assert err == ""


@pytest.mark.asyncio
async def test_repl_errors_print_to_stderr(monkeypatch, capsys):
    _feed(monkeypatch, ["1 +", "exit"])
    await repl.main([])
    out, err = capsys.readouterr()
    assert "LAZEX REPL v0.1" in out
    assert "ExpressionSyntaxError: Missing parameter(s) for operator +" in err


@pytest.mark.asyncio
async def test_repl_eof_quits(monkeypatch, capsys):
    _feed(monkeypatch, [])
    await repl.main([])
    out = capsys.readouterr().out
    assert out.endswith("\nExiting.\n")


@pytest.mark.asyncio
async def test_repl_uses_config_file(monkeypatch, capsys, tmp_path):
    cfg = tmp_path / "lazex.yaml"
    cfg.write_text("precision: 3\n", encoding="utf-8")
    _feed(monkeypatch, ["1/3", "exit"])
    await repl.main(["--config", str(cfg)])
    assert "0.333" in capsys.readouterr().out.splitlines()


@pytest.mark.asyncio
async def test_main_runs_a_file(capsys, tmp_path):
    script = tmp_path / "calc.lx"
    script.write_text("a = 4;\nprint(a); a * 2", encoding="utf-8")
    await repl.main([str(script)])
    out = capsys.readouterr().out
    assert out.splitlines() == ["4", "4", "4", "8"]


def test_run_script_file_missing(capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        repl.run_script_file(str(tmp_path / "nope.lx"))
    assert exc.value.code == 1
    assert "file not found" in capsys.readouterr().err


def test_run_script_file_error(capsys, tmp_path):
    script = tmp_path / "bad.lx"
    script.write_text("1 / 0", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        repl.run_script_file(str(script))
    assert exc.value.code == 1
    assert "EvalError: /: division by zero" in capsys.readouterr().err


def test_config_flag_needs_a_file():
    with pytest.raises(SystemExit) as exc:
        repl._config_from_args(["--config"])
    assert exc.value.code == 2
