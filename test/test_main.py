"""
Command line tests for SLANG
"""

import logging

import pytest
import main as slang_main
from main import main, create_arg_parser, configure_logging, log_level


@pytest.fixture
def script(tmp_path):
  """Write a SLANG script to a temporary file and return its path"""
  def write(code: str) -> str:
    path = tmp_path / "prog.slang"
    path.write_text(code)
    return str(path)
  return write


class TestRunScript:
  """Running files"""

  def test_run(self, script, capsys):
    assert main([script("let x = 2; print(\"x is\", x * 21);")]) == 0
    assert capsys.readouterr().out == "x is 42\n"

  def test_syntax_error(self, script, capsys):
    assert main([script("let x = (1;")]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Syntax Error:")
    assert "No matching closing parenthesis" in err

  def test_runtime_error(self, script, capsys):
    assert main([script("print(1); nope(2);")]) == 1
    captured = capsys.readouterr()
    assert captured.out == "1\n"
    assert "Runtime Error: Function 'nope' does not exist" in captured.err

  def test_missing_file(self, tmp_path, capsys):
    assert main([str(tmp_path / "missing.slang")]) == 1
    assert "not found" in capsys.readouterr().err


class TestDebugOutput:
  """--tokens and --parse"""

  def test_tokens(self, script, capsys):
    assert main(["--tokens", script("x + 1")]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["1:1\tIDENTIFIER\tx", "1:3\tOPERATOR\t+", "1:5\tNUMBER\t1"]

  def test_parse(self, script, capsys):
    assert main(["--parse", script("let x = 1 + 2 * 3; x")]) == 0
    out = capsys.readouterr().out
    assert "let x = 1 + (2 * 3);" in out
    assert out.rstrip().endswith("x")


class TestArguments:
  """Argument parsing"""

  def test_flags(self):
    args = create_arg_parser().parse_args(["-i", "--debug"])
    assert args.interactive
    assert args.debug
    assert args.script is None

  def test_no_arguments_prints_help(self, capsys):
    assert main([]) == 0
    assert "usage: slang" in capsys.readouterr().out


@pytest.fixture
def repl(monkeypatch, capsys):
  """Feed lines to the REPL and return what it printed"""
  monkeypatch.setattr(slang_main, "READLINE_AVAILABLE", False)

  def session(*lines):
    pending = list(lines)

    def fake_input(prompt=""):
      if not pending:
        raise EOFError
      return pending.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    slang_main.run_interactive_mode()
    return capsys.readouterr()
  return session


class TestInteractive:
  """The -i REPL"""

  def test_context_is_shared_between_inputs(self, repl):
    out = repl("let x = 1;", "x").out
    assert "=> 1\n" in out

  def test_unit_results_are_not_shown(self, repl):
    out = repl("print(2);", "let y = 3;").out
    assert "2\n" in out
    assert "=>" not in out

  def test_unclosed_group_continues(self, repl):
    captured = repl("{", "1 }")
    assert "=> 1\n" in captured.out
    assert captured.err == ""

  def test_syntax_error_clears_input(self, repl):
    captured = repl("let = 1;", "2")
    assert "Syntax Error:" in captured.err
    assert "=> 2\n" in captured.out

  def test_runtime_error_keeps_session(self, repl):
    captured = repl("let a = 5;", "nope(1)", "a")
    assert "Runtime Error: Function 'nope' does not exist" in captured.err
    assert "=> 5\n" in captured.out

  def test_env(self, repl):
    out = repl(":env", "let xs = [1, 2];", ":env").out
    assert "  (no bindings)\n" in out
    assert "  xs = [1, 2]\n" in out

  def test_parse_command(self, repl):
    out = repl(":parse let x = 1 + 2 * 3;").out
    assert "let x = 1 + (2 * 3);\n" in out

  def test_help(self, repl):
    assert "REPL Commands:" in repl(":help").out

  def test_exit(self, repl):
    out = repl("exit", "1").out
    assert "=>" not in out
    assert "Goodbye!" not in out

  def test_end_of_input(self, repl):
    assert repl().out.endswith("\nGoodbye!\n")

  def test_main_starts_repl(self, monkeypatch, capsys):
    monkeypatch.setattr(slang_main, "READLINE_AVAILABLE", False)
    lines = ["let n = 2;", "n * 21"]
    monkeypatch.setattr("builtins.input", lambda prompt="": lines.pop(0) if lines else "exit")
    assert main(["-i"]) == 0
    assert "=> 42\n" in capsys.readouterr().out


class TestLogging:
  """Log level selection"""

  def test_default_level(self, monkeypatch):
    monkeypatch.delenv("SLANG_LOG", raising=False)
    assert log_level() == logging.WARNING

  def test_level_from_environment(self, monkeypatch):
    monkeypatch.setenv("SLANG_LOG", "info")
    assert log_level() == logging.INFO

  def test_unknown_level_name(self, monkeypatch):
    monkeypatch.setenv("SLANG_LOG", "chatty")
    assert log_level() == logging.WARNING

  def test_debug_flag_wins(self, monkeypatch):
    monkeypatch.setenv("SLANG_LOG", "error")
    assert log_level(debug=True) == logging.DEBUG

  def test_configure_logging_uses_environment(self, monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setenv("SLANG_LOG", "debug")
    configure_logging()
    assert calls[0]["level"] == logging.DEBUG
