"""
Scope chain tests
"""

import pytest
from ast_nodes import Token
from environment import Environment
from error_handling import LoxRuntimeError


def name(lexeme, line=1, column=1):
  return Token("IDENTIFIER", lexeme, line, column)


class TestEnvironment:
  """Test lookup and assignment along the scope chain"""

  @pytest.fixture
  def chain(self):
    globals_ = Environment()
    globals_.define("a", 1.0)
    middle = Environment(globals_)
    middle.define("b", 2.0)
    inner = Environment(middle)
    return globals_, middle, inner

  def test_define_overwrites(self):
    env = Environment()
    env.define("a", 1.0)
    env.define("a", 2.0)
    assert env.get(name("a")) == 2.0

  def test_get_walks_outward(self, chain):
    _, _, inner = chain
    assert inner.get(name("a")) == 1.0
    assert inner.get(name("b")) == 2.0

  def test_nil_binding_is_found(self):
    env = Environment(Environment())
    env.enclosing.define("a", None)
    assert env.get(name("a")) is None

  def test_undefined_variable(self, chain):
    _, _, inner = chain
    with pytest.raises(LoxRuntimeError) as exc_info:
      inner.get(name("missing", 3, 5))
    assert exc_info.value.message == "Undefined variable 'missing'."
    assert exc_info.value.token.line == 3

  def test_assign_updates_defining_scope(self, chain):
    globals_, middle, inner = chain
    inner.assign(name("a"), 10.0)
    assert globals_.values["a"] == 10.0
    assert "a" not in inner.values

  def test_assign_undefined(self):
    with pytest.raises(LoxRuntimeError):
      Environment().assign(name("x"), 1.0)

  def test_get_at_and_assign_at(self, chain):
    globals_, middle, inner = chain
    inner.define("b", "shadow")
    assert inner.get_at(0, "b") == "shadow"
    assert inner.get_at(1, "b") == 2.0

    inner.assign_at(2, name("a"), 5.0)
    assert globals_.values["a"] == 5.0

  def test_ancestor(self, chain):
    globals_, middle, inner = chain
    assert inner.ancestor(0) is inner
    assert inner.ancestor(2) is globals_
    with pytest.raises(ValueError):
      inner.ancestor(3)

  def test_depth_and_snapshot(self, chain):
    globals_, _, inner = chain
    assert inner.depth() == 2
    assert globals_.depth() == 0
    assert globals_.snapshot() == {"a": 1.0}
