"""
Lox Programming Language - Main Entry Point
A class-based scripting language with closures and single inheritance
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

import ast_nodes as ast
from parsing import (
  RESERVED_WORDS,
  create_parser,
  create_debug_parser,
  find_nodes_by_type,
  pretty_print_ast
)
from semantics import create_analyzer, create_debug_analyzer
from interpreter import Interpreter, create_interpreter, create_debug_interpreter
from error_handling import (
  LoxParseError,
  LoxRuntimeError,
  LoxStaticError,
  format_diagnostic,
  get_context_lines
)
from stdlib import NATIVE_NAMES


VERSION = "Lox v1.0.0 (Tree-walking Interpreter)"

# Exit codes (sysexits.h)
EXIT_DATA_ERROR = 65
EXIT_SOFTWARE = 70


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Lox Programming Language - closures, classes and single inheritance',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.lox            # Run a Lox script
  %(prog)s -i                    # Interactive mode
  %(prog)s --parse script.lox    # Parse and show the syntax tree
  %(prog)s --analyze script.lox  # Parse, resolve and show scope distances
  %(prog)s --debug script.lox    # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Lox script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the syntax tree (for debugging)'
  )

  parser.add_argument(
      '--analyze',
      action='store_true',
      help='Parse and resolve file, show scope distances (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


# ============================================================================
# ERROR REPORTING
# ============================================================================

def report_static_errors(error, source: Optional[str] = None) -> None:
  """Print parse or resolver diagnostics to stderr"""
  for diagnostic in error.diagnostics:
    print(format_diagnostic(diagnostic), file=sys.stderr)
    if source is not None and diagnostic['line'] > 0:
      print(get_context_lines(source, diagnostic['line'], diagnostic['column'], 0), file=sys.stderr)
    for suggestion in diagnostic['suggestions']:
      print(f"  Hint: {suggestion}", file=sys.stderr)


def report_runtime_error(error: LoxRuntimeError, source: Optional[str] = None) -> None:
  print(format_diagnostic(error.diagnostic), file=sys.stderr)
  if source is not None and error.token is not None:
    print(get_context_lines(source, error.token.line, error.token.column, 0), file=sys.stderr)


def read_script(script_path: str) -> str:
  """Read a script, exiting with a message when it can't be read"""
  try:
    return Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    print(f"  Hint: Check the file path and make sure the file exists", file=sys.stderr)
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'", file=sys.stderr)
    print(f"  Hint: Make sure you have read permissions for this file", file=sys.stderr)
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
    sys.exit(1)


# ============================================================================
# PIPELINE
# ============================================================================

def run_statements(interpreter: Interpreter, statements: List[ast.Stmt]) -> None:
  """Run resolved statements; host recursion exhaustion becomes a Lox runtime error"""
  try:
    interpreter.interpret(statements)
  except RecursionError:
    raise LoxRuntimeError(None, "Stack overflow.")


def execute_source(source: str, interpreter: Interpreter, parser=None, analyzer=None,
                   filename: str = "<input>") -> List[ast.Stmt]:
  """
  Parse, resolve and run one program.

  Parse and static errors are raised before anything executes; a runtime
  error aborts the remaining statements.
  """
  parser = parser or create_parser()
  analyzer = analyzer or create_analyzer()

  statements = parser.parse_string(source, filename)
  interpreter.add_locals(analyzer.analyze(statements))
  run_statements(interpreter, statements)
  return statements


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Lox script file and show the syntax tree"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()

  try:
    statements = parser.parse_string(source, script_path)
  except LoxParseError as e:
    report_static_errors(e, source)
    sys.exit(EXIT_DATA_ERROR)

  print(f"Parsed {len(statements)} top-level statements:")
  print("=" * 50)
  for statement in statements:
    print(pretty_print_ast(statement))


def analyze_file(script_path: str, debug: bool = False) -> None:
  """Parse and resolve a Lox script file and show every resolved reference"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()

  try:
    statements = parser.parse_string(source, script_path)
    distances = analyzer.analyze(statements)
  except (LoxParseError, LoxStaticError) as e:
    report_static_errors(e, source)
    sys.exit(EXIT_DATA_ERROR)

  print(f"Resolved {len(distances)} local references:")
  print("=" * 50)
  for node_type in (ast.Variable, ast.Assign, ast.This, ast.Super):
    for node in find_nodes_by_type(statements, node_type):
      token = node.keyword if isinstance(node, (ast.This, ast.Super)) else node.name
      distance = distances.get(node.node_id)
      where = f"local, distance {distance}" if distance is not None else "global"
      print(f"  {token.line}:{token.column}: {token.lexeme} -> {where}")


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Lox script file; exits 65 on static errors and 70 on runtime errors"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    execute_source(source, interpreter, parser, analyzer, script_path)
  except (LoxParseError, LoxStaticError) as e:
    report_static_errors(e, source)
    sys.exit(EXIT_DATA_ERROR)
  except LoxRuntimeError as e:
    report_runtime_error(e, source)
    sys.exit(EXIT_SOFTWARE)


# ============================================================================
# INTERACTIVE MODE
# ============================================================================

def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.lox_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = RESERVED_WORDS + NATIVE_NAMES + [":parse", ":analyze", ":env", ":help", ":quit"]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(lambda: _write_history(history_file))


def _write_history(history_file: str) -> None:
  try:
    readline.write_history_file(history_file)
  except OSError:
    pass


def print_repl_help() -> None:
  print("REPL Commands:")
  print("  :parse <code>     - Show the parsed syntax tree")
  print("  :analyze <code>   - Show resolved scope distances")
  print("  :env              - Show global bindings")
  print("  :help             - Show this help")
  print("  :quit             - Exit REPL")
  print()
  print("A line without a trailing ';' is evaluated as an expression and printed.")


def repl_line(code: str, interpreter: Interpreter, parser, analyzer) -> None:
  """Run one REPL line as its own program; errors are reported, not raised"""
  try:
    if code.startswith(":parse "):
      for statement in parser.parse_string(code[len(":parse "):]):
        print(pretty_print_ast(statement))
      return

    if code.startswith(":analyze "):
      statements = parser.parse_string(code[len(":analyze "):])
      for node_id, distance in sorted(analyzer.analyze(statements).items()):
        print(f"  node {node_id} -> distance {distance}")
      return

    if code.strip() == ":env":
      for name, value in sorted(interpreter.globals.snapshot().items()):
        if name not in NATIVE_NAMES:
          print(f"  {name} = {value}")
      return

    if not code.rstrip().endswith((";", "}")):
      try:
        expr = parser.parse_expression(code)
      except LoxParseError:
        pass
      else:
        statements = [ast.Print(expr)]
        interpreter.add_locals(analyzer.analyze(statements))
        run_statements(interpreter, statements)
        return

    execute_source(code, interpreter, parser, analyzer)
  except (LoxParseError, LoxStaticError) as e:
    report_static_errors(e)
  except LoxRuntimeError as e:
    report_runtime_error(e)


def run_interactive_mode(debug: bool = False) -> None:
  """Run Lox in interactive mode; global state persists across lines"""
  print(f"{VERSION} - Interactive Mode")
  print("Type ':quit' or Ctrl-D to exit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input("> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if code.strip() == ":quit":
      break
    if not code.strip():
      continue
    if code.strip() == ":help":
      print_repl_help()
      continue

    repl_line(code, interpreter, parser, analyzer)


def main() -> None:
  """Main entry point for Lox"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist", file=sys.stderr)
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
    elif args.analyze:
      analyze_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)
  else:
    run_interactive_mode(debug=args.debug)


if __name__ == "__main__":
  main()
