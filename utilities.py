"""
Utilities module for the Lox interpreter
Value-model helpers shared by the evaluator and the runtime objects
"""

from typing import Any
import math

from ast_nodes import Token
from error_handling import LoxRuntimeError


# ==================== TYPE CHECKING UTILITIES ====================

def is_number(value: Any) -> bool:
  """
  Check if value is a Lox number

  Args:
    value: Runtime value

  Returns:
    True for floats; booleans are never numbers even though Python says so
  """
  return isinstance(value, float)


def is_truthy(value: Any) -> bool:
  """
  Lox truthiness: nil and false are falsy, everything else is truthy

  Examples:
    is_truthy(None) -> False
    is_truthy(0.0) -> True
    is_truthy("") -> True
  """
  if value is None:
    return False
  if isinstance(value, bool):
    return value
  return True


def is_equal(left: Any, right: Any) -> bool:
  """
  Structural equality without coercion

  Args:
    left: Runtime value
    right: Runtime value

  Returns:
    True when both values have the same runtime type and compare equal.
    Callables and instances compare by identity.
  """
  if left is None or right is None:
    return left is None and right is None
  if type(left) is not type(right):
    return False
  return left == right


def type_name(value: Any) -> str:
  """Human-readable runtime type name"""
  if value is None:
    return "nil"
  if isinstance(value, bool):
    return "boolean"
  if isinstance(value, float):
    return "number"
  if isinstance(value, str):
    return "string"
  return type(value).__name__


# ==================== STRING CONVERSION ====================

def format_number(value: float) -> str:
  if math.isnan(value):
    return "NaN"
  if math.isinf(value):
    return "Infinity" if value > 0 else "-Infinity"
  text = repr(value)
  if text.endswith(".0"):
    text = text[:-2]
  return text


def stringify(value: Any) -> str:
  """
  Text form used by ``print``

  Examples:
    stringify(None) -> "nil"
    stringify(3.0) -> "3"
    stringify(2.5) -> "2.5"
    stringify(True) -> "true"
  """
  if value is None:
    return "nil"
  if isinstance(value, bool):
    return "true" if value else "false"
  if isinstance(value, float):
    return format_number(value)
  return str(value)


# ==================== ERROR MESSAGE BUILDERS ====================

def check_number_operand(operator: Token, operand: Any) -> None:
  """
  Raise unless the unary operand is a number

  Raises:
    LoxRuntimeError anchored at the operator
  """
  if not is_number(operand):
    raise LoxRuntimeError(operator, "Operand must be a number.")


def check_number_operands(operator: Token, left: Any, right: Any) -> None:
  """
  Raise unless both binary operands are numbers

  Raises:
    LoxRuntimeError anchored at the operator
  """
  if not (is_number(left) and is_number(right)):
    raise LoxRuntimeError(operator, "Operands must be numbers.")


def arity_error(token: Token, expected: int, got: int) -> LoxRuntimeError:
  """
  Generate arity mismatch error

  Args:
    token: Closing parenthesis of the call
    expected: Callee arity
    got: Number of arguments passed

  Returns:
    LoxRuntimeError with formatted message
  """
  return LoxRuntimeError(token, f"Expected {expected} arguments but got {got}.")


# ==================== ARITHMETIC ====================

def divide(left: float, right: float) -> float:
  """IEEE-754 division: x/0 is +-Infinity, 0/0 is NaN"""
  if right == 0.0:
    if left == 0.0 or math.isnan(left):
      return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)
  return left / right
