"""
SLANG runtime environment
A Context is a stack of Scopes; blocks and function calls get their own
Context and reconcile back only the names that existed before entry
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple

from error_handling import SlangRuntimeError
from stdlib import copy_value


class Scope:
  """
  A single lexical layer: name -> value, each name defined at most once.

  Names in `shared` still point at values owned by another context; they are
  copied the first time they are written through.
  """

  def __init__(self, bindings: Optional[Dict[str, Dict]] = None, shared: Iterable[str] = ()):
    self.bindings: Dict[str, Dict] = dict(bindings or {})
    self.shared: Set[str] = set(shared)

  def __contains__(self, name: str) -> bool:
    return name in self.bindings

  def define(self, name: str, value: Dict) -> None:
    if name in self.bindings:
      raise SlangRuntimeError(f"Variable '{name}' is already defined")
    self.bindings[name] = value

  def copy(self) -> 'Scope':
    return Scope(self.bindings, self.shared)

  def copy_on_write(self) -> 'Scope':
    """Layer sharing every value with this one until written"""
    return Scope(self.bindings, self.bindings)

  def own(self, name: str) -> None:
    if name in self.shared:
      self.bindings[name] = copy_value(self.bindings[name])
      self.shared.discard(name)


class Context:
  """Ordered stack of scopes with a cursor on the active layer"""

  def __init__(self, layers: Optional[List[Scope]] = None):
    self.layers: List[Scope] = layers if layers is not None else [Scope()]
    self.cur_layer = len(self.layers) - 1

  def current(self) -> Scope:
    return self.layers[self.cur_layer]

  def visible_layers(self) -> List[Scope]:
    return self.layers[:self.cur_layer + 1]

  def find_layer(self, name: str) -> Optional[Scope]:
    """Innermost layer binding `name`, searching outwards"""
    for layer in reversed(self.visible_layers()):
      if name in layer:
        return layer
    return None

  # ==================== VARIABLES ====================

  def try_get_var(self, name: str) -> Optional[Dict]:
    """Stored value without copying, or None"""
    layer = self.find_layer(name)
    return layer.bindings[name] if layer is not None else None

  def get_var(self, name: str) -> Dict:
    """Copy of the value bound to `name`"""
    value = self.try_get_var(name)
    if value is None:
      raise SlangRuntimeError(f"Variable '{name}' is not defined")
    return copy_value(value)

  def define_var(self, name: str, value: Dict) -> None:
    self.current().define(name, value)

  def get_slot(self, name: str, for_write: bool = False) -> Tuple[Dict[str, Dict], str]:
    """Slot of an existing variable, as (bindings, name); writable when `for_write`"""
    layer = self.find_layer(name)
    if layer is None:
      raise SlangRuntimeError(f"Variable '{name}' is not defined")
    if for_write:
      layer.own(name)
    return layer.bindings, name

  # ==================== BLOCKS ====================

  def create_block_context(self) -> 'Context':
    """Child context with a fresh innermost layer"""
    return Context([layer.copy() for layer in self.visible_layers()] + [Scope()])

  def apply_block_context(self, inner: 'Context') -> None:
    """Write back names that existed before the block; block-local names are dropped"""
    for layer, inner_layer in zip(self.visible_layers(), inner.layers):
      for name in layer.bindings:
        if name in inner_layer:
          layer.bindings[name] = inner_layer.bindings[name]

  # ==================== FUNCTION CALLS ====================

  def create_fn_context(self, function_name: Optional[str] = None) -> 'Context':
    """
    Call-local context: a copy-on-write view of the global layer, the
    callee's own binding when it lives in an inner layer, and an empty layer
    for the parameters.
    """
    layers = [self.layers[0].copy_on_write()]
    if function_name is not None and function_name not in layers[0]:
      function = self.try_get_var(function_name)
      if function is not None:
        layers.append(Scope({function_name: function}))
    layers.append(Scope())
    return Context(layers)

  def apply_fn_context(self, function_name: Optional[str], inner: 'Context') -> None:
    """Reconcile only the callee's own binding back into this context"""
    if function_name is None:
      return
    layer = self.find_layer(function_name)
    if layer is None:
      return
    # The parameter layer is skipped so a parameter named like the function is not written back
    for inner_layer in reversed(inner.layers[:-1]):
      if function_name in inner_layer:
        layer.bindings[function_name] = inner_layer.bindings[function_name]
        return

  def user_bindings(self) -> Dict[str, Dict]:
    """Visible bindings, innermost first wins"""
    result: Dict[str, Dict] = {}
    for layer in self.visible_layers():
      result.update(layer.bindings)
    return result


def create_global_context() -> Context:
  """Context for a fresh program run"""
  return Context([Scope()])
