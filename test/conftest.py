"""
Test configuration for Lox interpreter tests
"""

import io
import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from semantics import create_analyzer
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def analyzer():
  return create_analyzer()


@pytest.fixture
def run(parser, analyzer):
  """Run a program on a fresh interpreter and return everything it printed"""
  def _run(source, interpreter=None):
    output = io.StringIO()
    interpreter = interpreter or create_interpreter(output=output)
    if interpreter.output is None:
      interpreter.output = output
    statements = parser.parse_string(source)
    interpreter.add_locals(analyzer.analyze(statements))
    interpreter.interpret(statements)
    return interpreter.output.getvalue()
  return _run
