"""
Lox runtime scope chain
"""

from typing import Any, Dict, Optional

from ast_nodes import Token
from error_handling import LoxRuntimeError


class Environment:
  """One frame of name -> value bindings linked to its enclosing frame"""

  def __init__(self, enclosing: Optional['Environment'] = None):
    self.enclosing = enclosing
    self.values: Dict[str, Any] = {}

  def define(self, name: str, value: Any) -> None:
    """Bind in this frame; redefinition overwrites"""
    self.values[name] = value

  def get(self, name: Token) -> Any:
    environment = self
    while environment is not None:
      if name.lexeme in environment.values:
        return environment.values[name.lexeme]
      environment = environment.enclosing
    raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

  def assign(self, name: Token, value: Any) -> None:
    environment = self
    while environment is not None:
      if name.lexeme in environment.values:
        environment.values[name.lexeme] = value
        return
      environment = environment.enclosing
    raise LoxRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

  def ancestor(self, distance: int) -> 'Environment':
    environment = self
    for _ in range(distance):
      if environment.enclosing is None:
        raise ValueError(f"Scope distance {distance} exceeds the scope chain")
      environment = environment.enclosing
    return environment

  def get_at(self, distance: int, name: str) -> Any:
    """Read a resolved binding exactly ``distance`` frames out"""
    return self.ancestor(distance).values[name]

  def assign_at(self, distance: int, name: Token, value: Any) -> None:
    self.ancestor(distance).values[name.lexeme] = value

  def depth(self) -> int:
    """Number of enclosing frames above this one"""
    hops = 0
    environment = self.enclosing
    while environment is not None:
      hops += 1
      environment = environment.enclosing
    return hops

  def snapshot(self) -> Dict[str, Any]:
    return dict(self.values)

  def __repr__(self) -> str:
    return f"<Environment depth={self.depth()} names={sorted(self.values)}>"
