"""
Lox runtime objects - functions, classes and instances
Everything a program can call implements the LoxCallable contract
"""

from typing import Any, Callable, Dict, List, Optional

from ast_nodes import Function, Token
from environment import Environment
from error_handling import LoxRuntimeError


class LoxCallable:
  """Callable capability: an arity and a call operation"""

  @property
  def arity(self) -> int:
    raise NotImplementedError

  def call(self, interpreter, arguments: List[Any]) -> Any:
    raise NotImplementedError


class NativeFunction(LoxCallable):
  """Host function exposed to Lox code"""

  def __init__(self, name: str, arity: int, function: Callable[..., Any]):
    self.name = name
    self._arity = arity
    self.function = function

  @property
  def arity(self) -> int:
    return self._arity

  def call(self, interpreter, arguments: List[Any]) -> Any:
    return self.function(*arguments)

  def __str__(self) -> str:
    return "<native fn>"

  def __repr__(self) -> str:
    return f"<native fn {self.name}>"


class LoxFunction(LoxCallable):
  """User function paired with the scope it was declared in"""

  def __init__(self, declaration: Function, closure: Environment, is_initializer: bool = False):
    self.declaration = declaration
    self.closure = closure
    self.is_initializer = is_initializer

  @property
  def name(self) -> str:
    return self.declaration.name.lexeme

  @property
  def arity(self) -> int:
    return len(self.declaration.params)

  def bind(self, instance: 'LoxInstance') -> 'LoxFunction':
    """New function whose closure defines ``this``; self is untouched"""
    environment = Environment(self.closure)
    environment.define("this", instance)
    return LoxFunction(self.declaration, environment, self.is_initializer)

  def call(self, interpreter, arguments: List[Any]) -> Any:
    environment = Environment(self.closure)
    for param, argument in zip(self.declaration.params, arguments):
      environment.define(param.lexeme, argument)

    result = interpreter.execute_block(self.declaration.body, environment)

    # init always yields the instance, even after a bare `return;`
    if self.is_initializer:
      return self.closure.get_at(0, "this")
    if result is not None:
      return result.value
    return None

  def __str__(self) -> str:
    return f"<fn {self.name}>"

  __repr__ = __str__


class LoxClass(LoxCallable):
  """Class object; calling it constructs an instance"""

  def __init__(self, name: str, superclass: Optional['LoxClass'], methods: Dict[str, LoxFunction]):
    self.name = name
    self.superclass = superclass
    self.methods = methods

  def find_method(self, name: str) -> Optional[LoxFunction]:
    klass = self
    while klass is not None:
      if name in klass.methods:
        return klass.methods[name]
      klass = klass.superclass
    return None

  @property
  def arity(self) -> int:
    initializer = self.find_method("init")
    return initializer.arity if initializer else 0

  def call(self, interpreter, arguments: List[Any]) -> Any:
    instance = LoxInstance(self)
    initializer = self.find_method("init")
    if initializer is not None:
      initializer.bind(instance).call(interpreter, arguments)
    return instance

  def __str__(self) -> str:
    return self.name

  def __repr__(self) -> str:
    return f"<class {self.name}>"


class LoxInstance:
  """Instance with lazily created fields"""

  def __init__(self, klass: LoxClass):
    self.klass = klass
    self.fields: Dict[str, Any] = {}

  def get(self, name: Token) -> Any:
    if name.lexeme in self.fields:
      return self.fields[name.lexeme]

    method = self.klass.find_method(name.lexeme)
    if method is not None:
      return method.bind(self)

    raise LoxRuntimeError(name, f"Undefined property '{name.lexeme}'.")

  def set(self, name: Token, value: Any) -> None:
    self.fields[name.lexeme] = value

  def __str__(self) -> str:
    return f"{self.klass.name} instance"

  __repr__ = __str__
