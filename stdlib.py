"""
Lox Standard Library
Native functions pre-defined in the global scope
"""

from typing import Any, List
import math
import sys
import time

from environment import Environment
from error_handling import LoxRuntimeError
from runtime import NativeFunction
from utilities import is_number


# ============================================================================
# NATIVE FUNCTIONS
# ============================================================================

def lox_clock() -> float:
  """Seconds since the epoch as a Lox number"""
  return time.time()


def lox_exit(code: Any) -> None:
  """Terminate the process with ``code``; never returns"""
  if not is_number(code):
    raise LoxRuntimeError(None, "Exit code must be a number.")
  if not math.isfinite(code):
    raise LoxRuntimeError(None, "Exit code must be a finite number.")
  sys.exit(int(code))


# ============================================================================
# GLOBAL SETUP
# ============================================================================

def builtin_natives() -> List[NativeFunction]:
  return [
      NativeFunction("clock", 0, lox_clock),
      NativeFunction("exit", 1, lox_exit),
  ]


def define_natives(env: Environment) -> Environment:
  """Bind every native into ``env`` and return it"""
  for native in builtin_natives():
    env.define(native.name, native)
  return env


def create_globals() -> Environment:
  """Fresh global scope holding only the natives"""
  return define_natives(Environment())


NATIVE_NAMES = [native.name for native in builtin_natives()]
