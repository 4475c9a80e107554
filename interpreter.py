"""
Lox Interpreter - tree-walking evaluator
Executes resolved syntax trees against a live chain of scopes
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TextIO
import sys

import ast_nodes as ast
from environment import Environment
from error_handling import LoxRuntimeError
from runtime import LoxCallable, LoxClass, LoxFunction, LoxInstance
from stdlib import create_globals
from utilities import (
  check_number_operand,
  check_number_operands,
  arity_error,
  divide,
  is_equal,
  is_number,
  is_truthy,
  stringify
)


@dataclass(frozen=True)
class Returning:
  """Completion of a statement that hit `return`; carries the value up to the call"""
  value: Any = None


class Interpreter:
  """Evaluator state for one program run (or one REPL session)"""

  def __init__(self, output: Optional[TextIO] = None, debug: bool = False):
    self.globals = create_globals()
    self.environment = self.globals
    self.locals: Dict[int, int] = {}
    self.output = output
    self.debug = debug

    self._stmt_handlers = {
        ast.Block: self._execute_block_stmt,
        ast.Class: self._execute_class,
        ast.Expression: self._execute_expression,
        ast.Function: self._execute_function,
        ast.If: self._execute_if,
        ast.Print: self._execute_print,
        ast.Return: self._execute_return,
        ast.Var: self._execute_var,
        ast.While: self._execute_while,
    }
    self._expr_handlers = {
        ast.Assign: self._eval_assign,
        ast.Binary: self._eval_binary,
        ast.Call: self._eval_call,
        ast.Get: self._eval_get,
        ast.Grouping: lambda expr: self.evaluate(expr.expression),
        ast.Literal: lambda expr: expr.value,
        ast.Logical: self._eval_logical,
        ast.Set: self._eval_set,
        ast.Super: self._eval_super,
        ast.This: lambda expr: self._look_up_variable(expr.keyword, expr),
        ast.Unary: self._eval_unary,
        ast.Variable: lambda expr: self._look_up_variable(expr.name, expr),
    }

  # ==========================================================================
  # RESOLUTION TABLE
  # ==========================================================================

  def resolve(self, expr: ast.Expr, depth: int) -> None:
    self.locals[expr.node_id] = depth

  def add_locals(self, table: Dict[int, int]) -> None:
    self.locals.update(table)

  # ==========================================================================
  # ENTRY POINTS
  # ==========================================================================

  def interpret(self, statements: Sequence[ast.Stmt]) -> None:
    """Run top-level statements; the first runtime error aborts the rest"""
    for statement in statements:
      self.execute(statement)

  def execute(self, stmt: ast.Stmt) -> Optional[Returning]:
    handler = self._stmt_handlers.get(type(stmt))
    if handler is None:
      raise ValueError(f"Unable to execute statement: {stmt!r}")
    if self.debug:
      print(f"Executing: {type(stmt).__name__}", file=sys.stderr)
    return handler(stmt)

  def execute_block(self, statements: Sequence[ast.Stmt], environment: Environment) -> Optional[Returning]:
    """Run statements in ``environment``; the previous scope is always restored"""
    previous = self.environment
    try:
      self.environment = environment
      for statement in statements:
        result = self.execute(statement)
        if result is not None:
          return result
      return None
    finally:
      self.environment = previous

  def evaluate(self, expr: ast.Expr) -> Any:
    handler = self._expr_handlers.get(type(expr))
    if handler is None:
      raise ValueError(f"Unable to evaluate expression: {expr!r}")
    return handler(expr)

  # ==========================================================================
  # STATEMENTS
  # ==========================================================================

  def _execute_block_stmt(self, stmt: ast.Block) -> Optional[Returning]:
    return self.execute_block(stmt.statements, Environment(self.environment))

  def _execute_class(self, stmt: ast.Class) -> None:
    superclass = None
    if stmt.superclass is not None:
      superclass = self.evaluate(stmt.superclass)
      if not isinstance(superclass, LoxClass):
        raise LoxRuntimeError(stmt.superclass.name, "Superclass must be a class.")

    self.environment.define(stmt.name.lexeme, None)

    if superclass is not None:
      self.environment = Environment(self.environment)
      self.environment.define("super", superclass)

    try:
      methods = {
          method.name.lexeme: LoxFunction(method, self.environment, method.name.lexeme == "init")
          for method in stmt.methods
      }
      klass = LoxClass(stmt.name.lexeme, superclass, methods)
    finally:
      if superclass is not None:
        self.environment = self.environment.enclosing

    self.environment.assign(stmt.name, klass)
    return None

  def _execute_expression(self, stmt: ast.Expression) -> None:
    self.evaluate(stmt.expression)
    return None

  def _execute_function(self, stmt: ast.Function) -> None:
    self.environment.define(stmt.name.lexeme, LoxFunction(stmt, self.environment))
    return None

  def _execute_if(self, stmt: ast.If) -> Optional[Returning]:
    if is_truthy(self.evaluate(stmt.condition)):
      return self.execute(stmt.then_branch)
    if stmt.else_branch is not None:
      return self.execute(stmt.else_branch)
    return None

  def _execute_print(self, stmt: ast.Print) -> None:
    value = self.evaluate(stmt.expression)
    print(stringify(value), file=self.output or sys.stdout)
    return None

  def _execute_return(self, stmt: ast.Return) -> Returning:
    value = None
    if stmt.value is not None:
      value = self.evaluate(stmt.value)
    return Returning(value)

  def _execute_var(self, stmt: ast.Var) -> None:
    value = None
    if stmt.initializer is not None:
      value = self.evaluate(stmt.initializer)
    self.environment.define(stmt.name.lexeme, value)
    return None

  def _execute_while(self, stmt: ast.While) -> Optional[Returning]:
    while is_truthy(self.evaluate(stmt.condition)):
      result = self.execute(stmt.body)
      if result is not None:
        return result
    return None

  # ==========================================================================
  # EXPRESSIONS
  # ==========================================================================

  def _look_up_variable(self, name: ast.Token, expr: ast.Expr) -> Any:
    distance = self.locals.get(expr.node_id)
    if distance is not None:
      return self.environment.get_at(distance, name.lexeme)
    return self.globals.get(name)

  def _eval_assign(self, expr: ast.Assign) -> Any:
    value = self.evaluate(expr.value)

    distance = self.locals.get(expr.node_id)
    if distance is not None:
      self.environment.assign_at(distance, expr.name, value)
    else:
      self.globals.assign(expr.name, value)
    return value

  def _eval_unary(self, expr: ast.Unary) -> Any:
    right = self.evaluate(expr.right)
    op = expr.operator.lexeme

    if op == "-":
      check_number_operand(expr.operator, right)
      return -right
    if op == "!":
      return not is_truthy(right)
    raise ValueError(f"Unknown unary operator: {op}")

  def _eval_binary(self, expr: ast.Binary) -> Any:
    left = self.evaluate(expr.left)
    right = self.evaluate(expr.right)
    op = expr.operator.lexeme

    if op == "+":
      if is_number(left) and is_number(right):
        return left + right
      if isinstance(left, str) and isinstance(right, str):
        return left + right
      raise LoxRuntimeError(expr.operator, "Operands must be two numbers or two strings.")
    if op == "==":
      return is_equal(left, right)
    if op == "!=":
      return not is_equal(left, right)

    check_number_operands(expr.operator, left, right)
    if op == "-":
      return left - right
    if op == "*":
      return left * right
    if op == "/":
      return divide(left, right)
    if op == ">":
      return left > right
    if op == ">=":
      return left >= right
    if op == "<":
      return left < right
    if op == "<=":
      return left <= right
    raise ValueError(f"Unknown binary operator: {op}")

  def _eval_logical(self, expr: ast.Logical) -> Any:
    left = self.evaluate(expr.left)

    if expr.operator.lexeme == "or":
      if is_truthy(left):
        return left
    elif not is_truthy(left):
      return left

    return self.evaluate(expr.right)

  def _eval_call(self, expr: ast.Call) -> Any:
    callee = self.evaluate(expr.callee)
    if not isinstance(callee, LoxCallable):
      raise LoxRuntimeError(expr.paren, "Can only call functions and classes.")

    arguments: List[Any] = [self.evaluate(argument) for argument in expr.arguments]
    if len(arguments) != callee.arity:
      raise arity_error(expr.paren, callee.arity, len(arguments))

    try:
      return callee.call(self, arguments)
    except LoxRuntimeError as e:
      if e.token is None:
        raise LoxRuntimeError(expr.paren, e.message) from e
      raise

  def _eval_get(self, expr: ast.Get) -> Any:
    obj = self.evaluate(expr.obj)
    if not isinstance(obj, LoxInstance):
      raise LoxRuntimeError(expr.name, "Only instances have properties.")
    return obj.get(expr.name)

  def _eval_set(self, expr: ast.Set) -> Any:
    obj = self.evaluate(expr.obj)
    if not isinstance(obj, LoxInstance):
      raise LoxRuntimeError(expr.name, "Only instances have fields.")

    value = self.evaluate(expr.value)
    obj.set(expr.name, value)
    return value

  def _eval_super(self, expr: ast.Super) -> Any:
    distance = self.locals[expr.node_id]
    superclass = self.environment.get_at(distance, "super")
    # `this` lives in the scope just inside the one holding `super`
    instance = self.environment.get_at(distance - 1, "this")

    method = superclass.find_method(expr.method.lexeme)
    if method is None:
      raise LoxRuntimeError(expr.method, f"Undefined property '{expr.method.lexeme}'.")
    return method.bind(instance)


# ============================================================================
# FACTORY FUNCTIONS (for compatibility with main.py)
# ============================================================================

def create_interpreter(debug: bool = False, output: Optional[TextIO] = None) -> Interpreter:
  """Factory function returning an interpreter"""
  return Interpreter(output=output, debug=debug)


def create_debug_interpreter(output: Optional[TextIO] = None) -> Interpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, output=output)
