"""
Lox Semantic Analysis - static resolution pass
Pure functions over an explicit resolver state dictionary
"""

from typing import Any, Dict, List, Sequence
import sys

import ast_nodes as ast
from error_handling import LoxStaticError, diagnostic_at


# Function context
FUNCTION_NONE = "NONE"
FUNCTION_FUNCTION = "FUNCTION"
FUNCTION_METHOD = "METHOD"
FUNCTION_INITIALIZER = "INITIALIZER"

# Class context
CLASS_NONE = "NONE"
CLASS_CLASS = "CLASS"
CLASS_SUBCLASS = "SUBCLASS"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_resolver_state(debug: bool = False) -> Dict:
  """Create the mutable state threaded through one resolution pass"""
  return {
      'scopes': [],        # innermost last; name -> ready?
      'locals': {},        # node_id -> scope distance
      'errors': [],
      'function': FUNCTION_NONE,
      'class': CLASS_NONE,
      'debug': debug
  }


# ============================================================================
# SCOPE OPERATIONS
# ============================================================================

def begin_scope(state: Dict) -> None:
  state['scopes'].append({})


def end_scope(state: Dict) -> None:
  state['scopes'].pop()


def report(state: Dict, token: ast.Token, message: str) -> None:
  """Record a static error; resolution keeps going"""
  state['errors'].append(diagnostic_at(token, message))


def declare(state: Dict, name: ast.Token) -> None:
  """Mark a name declared-but-not-ready in the innermost scope"""
  if not state['scopes']:
    return
  scope = state['scopes'][-1]
  if name.lexeme in scope:
    report(state, name, "Already a variable with this name in this scope.")
  scope[name.lexeme] = False


def define(state: Dict, name: ast.Token) -> None:
  if not state['scopes']:
    return
  state['scopes'][-1][name.lexeme] = True


def resolve_local(state: Dict, node: ast.Expr, name: str) -> None:
  """Record how many scopes out ``name`` is bound; leave globals unrecorded"""
  for distance, scope in enumerate(reversed(state['scopes'])):
    if name in scope:
      state['locals'][node.node_id] = distance
      if state['debug']:
        print(f"Resolved {name} (node {node.node_id}) at distance {distance}", file=sys.stderr)
      return


# ============================================================================
# STATEMENT RESOLUTION
# ============================================================================

def resolve_statements(statements: Sequence[ast.Stmt], state: Dict) -> None:
  for statement in statements:
    resolve_stmt(statement, state)


def resolve_stmt(stmt: ast.Stmt, state: Dict) -> None:
  handler = STMT_HANDLERS.get(type(stmt))
  if handler is None:
    raise ValueError(f"Unable to resolve statement: {stmt!r}")
  handler(stmt, state)


def resolve_block(stmt: ast.Block, state: Dict) -> None:
  begin_scope(state)
  resolve_statements(stmt.statements, state)
  end_scope(state)


def resolve_var(stmt: ast.Var, state: Dict) -> None:
  declare(state, stmt.name)
  if stmt.initializer is not None:
    resolve_expr(stmt.initializer, state)
  define(state, stmt.name)


def resolve_function_decl(stmt: ast.Function, state: Dict) -> None:
  # Defined before the body so the function can refer to itself
  declare(state, stmt.name)
  define(state, stmt.name)
  resolve_function(stmt, FUNCTION_FUNCTION, state)


def resolve_function(function: ast.Function, kind: str, state: Dict) -> None:
  enclosing_function = state['function']
  state['function'] = kind

  begin_scope(state)
  for param in function.params:
    declare(state, param)
    define(state, param)
  resolve_statements(function.body, state)
  end_scope(state)

  state['function'] = enclosing_function


def resolve_class(stmt: ast.Class, state: Dict) -> None:
  enclosing_class = state['class']
  state['class'] = CLASS_CLASS

  declare(state, stmt.name)
  define(state, stmt.name)

  if stmt.superclass is not None:
    if stmt.superclass.name.lexeme == stmt.name.lexeme:
      report(state, stmt.superclass.name, "A class can't inherit from itself.")
    state['class'] = CLASS_SUBCLASS
    resolve_expr(stmt.superclass, state)

    begin_scope(state)
    state['scopes'][-1]['super'] = True

  begin_scope(state)
  state['scopes'][-1]['this'] = True

  for method in stmt.methods:
    kind = FUNCTION_INITIALIZER if method.name.lexeme == "init" else FUNCTION_METHOD
    resolve_function(method, kind, state)

  end_scope(state)
  if stmt.superclass is not None:
    end_scope(state)

  state['class'] = enclosing_class


def resolve_expression_stmt(stmt: ast.Expression, state: Dict) -> None:
  resolve_expr(stmt.expression, state)


def resolve_if(stmt: ast.If, state: Dict) -> None:
  resolve_expr(stmt.condition, state)
  resolve_stmt(stmt.then_branch, state)
  if stmt.else_branch is not None:
    resolve_stmt(stmt.else_branch, state)


def resolve_print(stmt: ast.Print, state: Dict) -> None:
  resolve_expr(stmt.expression, state)


def resolve_return(stmt: ast.Return, state: Dict) -> None:
  if state['function'] == FUNCTION_NONE:
    report(state, stmt.keyword, "Can't return from top-level code.")

  if stmt.value is not None:
    if state['function'] == FUNCTION_INITIALIZER:
      report(state, stmt.keyword, "Can't return a value from an initializer.")
    resolve_expr(stmt.value, state)


def resolve_while(stmt: ast.While, state: Dict) -> None:
  resolve_expr(stmt.condition, state)
  resolve_stmt(stmt.body, state)


# ============================================================================
# EXPRESSION RESOLUTION
# ============================================================================

def resolve_expr(expr: ast.Expr, state: Dict) -> None:
  handler = EXPR_HANDLERS.get(type(expr))
  if handler is None:
    raise ValueError(f"Unable to resolve expression: {expr!r}")
  handler(expr, state)


def resolve_variable(expr: ast.Variable, state: Dict) -> None:
  scopes = state['scopes']
  if scopes and scopes[-1].get(expr.name.lexeme) is False:
    report(state, expr.name, "Can't read local variable in its own initializer.")
  resolve_local(state, expr, expr.name.lexeme)


def resolve_assign(expr: ast.Assign, state: Dict) -> None:
  resolve_expr(expr.value, state)
  resolve_local(state, expr, expr.name.lexeme)


def resolve_binary(expr: Any, state: Dict) -> None:
  resolve_expr(expr.left, state)
  resolve_expr(expr.right, state)


def resolve_call(expr: ast.Call, state: Dict) -> None:
  resolve_expr(expr.callee, state)
  for argument in expr.arguments:
    resolve_expr(argument, state)


def resolve_get(expr: ast.Get, state: Dict) -> None:
  # Property names are looked up dynamically
  resolve_expr(expr.obj, state)


def resolve_set(expr: ast.Set, state: Dict) -> None:
  resolve_expr(expr.value, state)
  resolve_expr(expr.obj, state)


def resolve_this(expr: ast.This, state: Dict) -> None:
  if state['class'] == CLASS_NONE:
    report(state, expr.keyword, "Can't use 'this' outside of a class.")
    return
  resolve_local(state, expr, "this")


def resolve_super(expr: ast.Super, state: Dict) -> None:
  if state['class'] == CLASS_NONE:
    report(state, expr.keyword, "Can't use 'super' outside of a class.")
    return
  if state['class'] != CLASS_SUBCLASS:
    report(state, expr.keyword, "Can't use 'super' in a class with no superclass.")
    return
  resolve_local(state, expr, "super")


STMT_HANDLERS = {
    ast.Block: resolve_block,
    ast.Class: resolve_class,
    ast.Expression: resolve_expression_stmt,
    ast.Function: resolve_function_decl,
    ast.If: resolve_if,
    ast.Print: resolve_print,
    ast.Return: resolve_return,
    ast.Var: resolve_var,
    ast.While: resolve_while,
}

EXPR_HANDLERS = {
    ast.Assign: resolve_assign,
    ast.Binary: resolve_binary,
    ast.Call: resolve_call,
    ast.Get: resolve_get,
    ast.Grouping: lambda expr, state: resolve_expr(expr.expression, state),
    ast.Literal: lambda expr, state: None,
    ast.Logical: resolve_binary,
    ast.Set: resolve_set,
    ast.Super: resolve_super,
    ast.This: resolve_this,
    ast.Unary: lambda expr, state: resolve_expr(expr.right, state),
    ast.Variable: resolve_variable,
}


# ============================================================================
# PROGRAM RESOLUTION
# ============================================================================

def resolve_program(statements: Sequence[ast.Stmt], debug: bool = False) -> Dict[int, int]:
  """
  Resolve a whole program.

  Returns the distance table (node id -> scope hops). Raises LoxStaticError
  carrying every diagnostic when the program is ill-formed.
  """
  state = make_resolver_state(debug)
  resolve_statements(statements, state)
  if state['errors']:
    raise LoxStaticError(state['errors'])
  return state['locals']


def collect_diagnostics(statements: Sequence[ast.Stmt]) -> List[Dict]:
  """All static diagnostics for a program, without raising"""
  state = make_resolver_state()
  resolve_statements(statements, state)
  return state['errors']


# ============================================================================
# FACTORY FUNCTIONS (for compatibility with main.py)
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer object"""
  return type('Analyzer', (), {
      'debug': debug,
      'analyze': lambda self, statements: resolve_program(statements, debug),
      'diagnostics': lambda self, statements: collect_diagnostics(statements)
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
