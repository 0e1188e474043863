"""Abstract syntax tree for the kscope language.

Nodes are immutable and form strict trees: every child is owned by exactly one parent. Formally,

```
<expr>      ::= <number>                                  ; NumberLiteral
              | <name>                                    ; VariableRef
              | <expr> <op> <expr>                        ; BinaryOp
              | <name> "(" [<expr> ("," <expr>)*] ")"     ; Call
              | "var" <binding> ("," <binding>)* "in" <expr>   ; VarBinding, <binding> ::= <name> ["=" <expr>]
<prototype> ::= <name> "(" <name>* ")"                    ; Prototype
<function>  ::= "def" <prototype> <expr>                  ; FunctionDef
```

A top-level unit (what the session lowers in one go) is a Definition, an ExternDeclaration or a TopLevelExpression.
Top-level expressions are wrapped in an anonymous, zero-argument FunctionDef named ANONYMOUS.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Optional, Tuple


ANONYMOUS = "__anon_expr"


class Expr(ABC):
    """Superclass for every expression node. Expressions lower to exactly one value."""


@dataclass(frozen=True)
class NumberLiteral(Expr):
    value: float

    def __str__(self):
        return repr(self.value)


@dataclass(frozen=True)
class VariableRef(Expr):
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str
    left: Expr
    right: Expr

    def __str__(self):
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class Call(Expr):
    callee: str
    args: Tuple[Expr, ...] = ()

    def __str__(self):
        return f"{self.callee}({', '.join(str(arg) for arg in self.args)})"


@dataclass(frozen=True)
class VarBinding(Expr):
    """var a = 1, b in body. bindings is an ordered tuple of (name, initializer or None)."""
    bindings: Tuple[Tuple[str, Optional[Expr]], ...]
    body: Expr

    def __str__(self):
        bindings = ", ".join(name if init is None else f"{name} = {init}" for name, init in self.bindings)
        return f"(var {bindings} in {self.body})"


@dataclass(frozen=True)
class Prototype:
    """Function name and its ordered parameter names. len(params) is the arity checked at every call site."""
    name: str
    params: Tuple[str, ...] = ()

    @property
    def arity(self):
        return len(self.params)

    def __str__(self):
        return f"{self.name}({' '.join(self.params)})"


@dataclass(frozen=True)
class FunctionDef:
    proto: Prototype
    body: Expr

    @property
    def anonymous(self):
        return self.proto.name == ANONYMOUS

    def __str__(self):
        return f"def {self.proto} {self.body}"


class Unit(ABC):
    """Superclass for top-level units. node is the Prototype or FunctionDef handed to the code generator."""
    node: object

    def __repr__(self):
        return f"{type(self).__name__}({self.node})"

    def __eq__(self, other):
        return isinstance(other, type(self)) and other.node == self.node

    def __hash__(self):
        return hash(self.node)


class Definition(Unit):
    def __init__(self, function):
        self.node = function


class ExternDeclaration(Unit):
    def __init__(self, proto):
        self.node = proto


class TopLevelExpression(Unit):
    """A bare expression, wrapped as an anonymous zero-argument function."""

    def __init__(self, expr):
        self.node = FunctionDef(Prototype(ANONYMOUS, ()), expr)

    @property
    def expr(self):
        return self.node.body


class EndOfInput:
    """Returned by the session once the token stream is exhausted."""

    def __repr__(self):
        return "END_OF_INPUT"


END_OF_INPUT = EndOfInput()
