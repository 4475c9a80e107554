"""
Lox Syntax Tree
Immutable token and node definitions shared by the parser, resolver and interpreter
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Any, Optional, Tuple


_node_ids = count(1)


def next_node_id() -> int:
  """Hand out a process-unique node id"""
  return next(_node_ids)


@dataclass(frozen=True)
class Token:
  """Lexeme with its source position"""
  kind: str
  lexeme: str
  line: int
  column: int
  offset: int = 0

  def __str__(self) -> str:
    return f"{self.line}:{self.column}: {self.kind} {self.lexeme}"


@dataclass(frozen=True)
class Node:
  """Base of every syntax tree node.

  ``node_id`` is identity: the resolver keys its distance table by it, so two
  structurally identical references stay distinct.
  """
  node_id: int = field(default_factory=next_node_id, kw_only=True, compare=False, repr=False)


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Expr(Node):
  pass


@dataclass(frozen=True)
class Literal(Expr):
  value: Any
  token: Optional[Token] = None


@dataclass(frozen=True)
class Variable(Expr):
  name: Token


@dataclass(frozen=True)
class Assign(Expr):
  name: Token
  value: Expr


@dataclass(frozen=True)
class Binary(Expr):
  left: Expr
  operator: Token
  right: Expr


@dataclass(frozen=True)
class Logical(Expr):
  left: Expr
  operator: Token
  right: Expr


@dataclass(frozen=True)
class Unary(Expr):
  operator: Token
  right: Expr


@dataclass(frozen=True)
class Grouping(Expr):
  expression: Expr


@dataclass(frozen=True)
class Call(Expr):
  callee: Expr
  paren: Token
  arguments: Tuple[Expr, ...]


@dataclass(frozen=True)
class Get(Expr):
  obj: Expr
  name: Token


@dataclass(frozen=True)
class Set(Expr):
  obj: Expr
  name: Token
  value: Expr


@dataclass(frozen=True)
class This(Expr):
  keyword: Token


@dataclass(frozen=True)
class Super(Expr):
  keyword: Token
  method: Token


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Stmt(Node):
  pass


@dataclass(frozen=True)
class Expression(Stmt):
  expression: Expr


@dataclass(frozen=True)
class Print(Stmt):
  expression: Expr


@dataclass(frozen=True)
class Var(Stmt):
  name: Token
  initializer: Optional[Expr] = None


@dataclass(frozen=True)
class Block(Stmt):
  statements: Tuple[Stmt, ...]


@dataclass(frozen=True)
class If(Stmt):
  condition: Expr
  then_branch: Stmt
  else_branch: Optional[Stmt] = None


@dataclass(frozen=True)
class While(Stmt):
  condition: Expr
  body: Stmt


@dataclass(frozen=True)
class Function(Stmt):
  name: Token
  params: Tuple[Token, ...]
  body: Tuple[Stmt, ...]


@dataclass(frozen=True)
class Return(Stmt):
  keyword: Token
  value: Optional[Expr] = None


@dataclass(frozen=True)
class Class(Stmt):
  name: Token
  superclass: Optional[Variable]
  methods: Tuple[Function, ...]
