"""
Front end tests
Tests the script runner exit codes and the REPL recovery policy
"""

import io
import sys
import pytest
import main
from main import execute_source, repl_line, run_script_file
from parsing import create_parser
from semantics import create_analyzer
from interpreter import create_interpreter
from error_handling import LoxRuntimeError


def write_script(tmp_path, source):
  path = tmp_path / "script.lox"
  path.write_text(source, encoding='utf-8')
  return str(path)


class TestScriptRunner:
  """Test running whole scripts"""

  def test_successful_script(self, tmp_path, capsys):
    run_script_file(write_script(tmp_path, 'print "hello";'))
    assert capsys.readouterr().out == "hello\n"

  def test_syntax_error_exits_65(self, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(write_script(tmp_path, "print 1"))
    assert exc_info.value.code == 65
    assert "Error" in capsys.readouterr().err

  def test_every_syntax_error_is_reported(self, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(write_script(tmp_path, "var = 1;\nprint ;\nprint \"never\";"))
    assert exc_info.value.code == 65
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "1:5: Error at '=': Expected identifier" in captured.err
    assert "2:7: Error at ';': Expected expression" in captured.err

  def test_static_error_exits_65_before_running(self, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(write_script(tmp_path, 'print "ran";\nreturn 1;'))
    assert exc_info.value.code == 65
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "2:1: Error at 'return': Can't return from top-level code." in captured.err

  def test_runtime_error_exits_70(self, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(write_script(tmp_path, 'print "ok";\nprint 1 < "a";'))
    assert exc_info.value.code == 70
    captured = capsys.readouterr()
    assert captured.out == "ok\n"
    assert "2:9: RuntimeError: Operands must be numbers." in captured.err

  def test_missing_file_exits_1(self, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(str(tmp_path / "missing.lox"))
    assert exc_info.value.code == 1

  def test_exit_native(self, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
      run_script_file(write_script(tmp_path, "exit(7);\nprint 1;"))
    assert exc_info.value.code == 7

  def test_stack_overflow_is_a_runtime_error(self):
    interpreter = create_interpreter(output=io.StringIO())
    with pytest.raises(LoxRuntimeError) as exc_info:
      execute_source("fun f() { f(); } f();", interpreter)
    assert exc_info.value.message == "Stack overflow."
    assert interpreter.environment is interpreter.globals


class TestCommandLine:
  """Test argument handling"""

  def test_parse_flag(self, tmp_path, capsys, monkeypatch):
    script = write_script(tmp_path, "print 1 + 2;")
    monkeypatch.setattr(sys, 'argv', ['lox', '--parse', script])
    main.main()
    out = capsys.readouterr().out
    assert "Parsed 1 top-level statements" in out
    assert "(print (+ 1.0 2.0))" in out

  def test_analyze_flag(self, tmp_path, capsys, monkeypatch):
    script = write_script(tmp_path, "var g; { var a; print a; print g; }")
    monkeypatch.setattr(sys, 'argv', ['lox', '--analyze', script])
    main.main()
    out = capsys.readouterr().out
    assert "Resolved 1 local references" in out
    assert "a -> local, distance 0" in out
    assert "g -> global" in out

  def test_nonexistent_script(self, tmp_path, monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['lox', str(tmp_path / "nope.lox")])
    with pytest.raises(SystemExit) as exc_info:
      main.main()
    assert exc_info.value.code == 1


class TestRepl:
  """Test the line-at-a-time session"""

  @pytest.fixture
  def session(self):
    return create_interpreter(), create_parser(), create_analyzer()

  def test_state_persists_between_lines(self, session, capsys):
    repl_line("var a = 1;", *session)
    repl_line("print a;", *session)
    assert capsys.readouterr().out == "1\n"

  def test_bare_expression_is_printed(self, session, capsys):
    repl_line("1 + 2", *session)
    assert capsys.readouterr().out == "3\n"

  def test_session_continues_after_errors(self, session, capsys):
    repl_line("var a = 1;", *session)
    repl_line("print b;", *session)
    repl_line("print 1", *session)
    repl_line("return 2;", *session)
    repl_line("a + 1", *session)

    captured = capsys.readouterr()
    assert "Undefined variable 'b'." in captured.err
    assert "Can't return from top-level code." in captured.err
    assert captured.out == "2\n"

  def test_runtime_error_restores_global_scope(self, session, capsys):
    interpreter = session[0]
    repl_line("{ var x = 1; print x + nil; }", *session)
    assert interpreter.environment is interpreter.globals

  def test_bare_expression_stack_overflow(self, session, capsys):
    interpreter = session[0]
    repl_line("fun f() { return f(); }", *session)
    repl_line("f()", *session)
    repl_line("1 + 1", *session)

    captured = capsys.readouterr()
    assert "RuntimeError: Stack overflow." in captured.err
    assert captured.out == "2\n"
    assert interpreter.environment is interpreter.globals

  def test_parse_command(self, session, capsys):
    repl_line(":parse print 1;", *session)
    assert capsys.readouterr().out == "(print 1.0)\n"

  def test_env_command(self, session, capsys):
    repl_line("var answer = 42;", *session)
    repl_line(":env", *session)
    out = capsys.readouterr().out
    assert "answer = 42.0" in out
    assert "clock" not in out
