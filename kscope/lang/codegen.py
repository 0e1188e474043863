"""Lowering of the kscope AST through an Emitter.

The code generator owns the scope: a dict of variable name -> Binding, mutated (never copied) as bindings nest.
var expressions install their bindings after saving whatever each name was bound to before, and always restore them
once the body has been lowered, whether or not that succeeded. The scope is cleared at the start of every function, so
nothing leaks from one function into the next.
"""

from kscope.front.syntax import (BinaryOp, Call, Definition, ExternDeclaration, FunctionDef, NumberLiteral,
                                 Prototype, TopLevelExpression, VarBinding, VariableRef)
from kscope.lang.error import ErrorKind, LowerError


class Binding:
    """What a name is bound to: either storage (var-bound locals, loaded on every use) or a plain value (function
    parameters, which never need storage).
    """

    def __init__(self, storage=None, value=None):
        self.storage = storage
        self.value = value

    def __repr__(self):
        if self.storage is not None:
            return f"Binding(storage={self.storage!r})"
        return f"Binding(value={self.value!r})"


class CodeGenerator:
    """Lowers AST nodes to emitter values, and prototypes/function definitions to emitter function handles."""
    _ABSENT = object()  # marks a name that was unbound before being shadowed

    def __init__(self, emitter):
        self.emitter = emitter
        self.scope = {}

    def lower_unit(self, unit):
        """Lowers a top-level unit and returns the function handle it produced."""
        if isinstance(unit, (Definition, ExternDeclaration, TopLevelExpression)):
            return self.lower(unit.node)
        raise LowerError(ErrorKind.INTERNAL, "'{}' is not a top-level unit", type(unit).__name__, internal=True)

    def lower(self, node):
        """Dispatches on the node type. Every node type in kscope.front.syntax must be handled here."""
        if isinstance(node, NumberLiteral):
            return self.emitter.constant(node.value)
        elif isinstance(node, VariableRef):
            return self.lower_variable(node)
        elif isinstance(node, BinaryOp):
            return self.lower_binary(node)
        elif isinstance(node, Call):
            return self.lower_call(node)
        elif isinstance(node, VarBinding):
            return self.lower_var(node)
        elif isinstance(node, Prototype):
            return self.lower_prototype(node)
        elif isinstance(node, FunctionDef):
            return self.lower_function(node)
        raise LowerError(ErrorKind.INTERNAL, "cannot lower '{}'", type(node).__name__, internal=True)

    def lower_variable(self, node):
        binding = self.scope.get(node.name)
        if binding is None:
            raise LowerError(ErrorKind.UNKNOWN_VARIABLE, "unknown variable name '{}'", node.name)

        if binding.storage is not None:
            return self.emitter.load(binding.storage)
        return binding.value

    def lower_binary(self, node):
        lhs = self.lower(node.left)
        rhs = self.lower(node.right)

        if node.op == "+":
            return self.emitter.add(lhs, rhs)
        elif node.op == "-":
            return self.emitter.sub(lhs, rhs)
        elif node.op == "*":
            return self.emitter.mul(lhs, rhs)
        elif node.op == "<":
            return self.emitter.bool_to_number(self.emitter.less_than(lhs, rhs))
        raise LowerError(ErrorKind.INVALID_OPERATOR, "invalid binary operator '{}'", node.op)

    def lower_call(self, node):
        function = self.emitter.lookup_function(node.callee)
        if function is None:
            raise LowerError(ErrorKind.UNKNOWN_FUNCTION, "unknown function referenced: '{}'", node.callee)

        arity = self.emitter.arity(function)
        if arity != len(node.args):
            msg = "incorrect number of arguments passed to '{}': expected {}, got {}"
            raise LowerError(ErrorKind.ARGUMENT_COUNT, msg, (node.callee, arity, len(node.args)))

        args = [self.lower(arg) for arg in node.args]
        return self.emitter.call(function, args)

    def lower_var(self, node):
        shadowed = []  # (name, previous binding or _ABSENT), in installation order
        try:
            for name, init in node.bindings:
                # the initializer is lowered before name is installed, so it still sees the outer binding
                value = self.lower(init) if init is not None else self.emitter.constant(0.0)

                storage = self.emitter.allocate_local(name)
                self.emitter.store(storage, value)

                shadowed.append((name, self.scope.get(name, CodeGenerator._ABSENT)))
                self.scope[name] = Binding(storage=storage)

            return self.lower(node.body)

        finally:
            for name, previous in reversed(shadowed):
                if previous is CodeGenerator._ABSENT:
                    del self.scope[name]
                else:
                    self.scope[name] = previous

    def lower_prototype(self, proto):
        """Declares proto in the module. An identical existing declaration is reused."""
        function = self.emitter.lookup_function(proto.name)
        if function is None:
            return self.emitter.declare_function(proto.name, proto.params)

        if self.emitter.arity(function) != proto.arity:
            msg = "'{}' redeclared with {} arguments, previously declared with {}"
            raise LowerError(ErrorKind.REDEFINITION, msg, (proto.name, proto.arity, self.emitter.arity(function)))
        return function

    def lower_function(self, node):
        """Lowers node into a fully defined function. On failure the function is removed from the module, so no
        half-defined function ever remains.
        """
        proto = node.proto
        function = self.lower_prototype(proto)

        if self.emitter.has_body(function):
            raise LowerError(ErrorKind.REDEFINITION, "function '{}' cannot be redefined", proto.name)

        self.emitter.begin_function_body(function)

        self.scope.clear()
        for idx, name in enumerate(proto.params):
            self.scope[name] = Binding(value=self.emitter.argument(function, idx))

        try:
            self.emitter.return_value(self.lower(node.body))
        except LowerError:
            self.emitter.discard_function(function)
            raise
        finally:
            self.scope.clear()

        if not self.emitter.verify(function):
            self.emitter.discard_function(function)
            raise LowerError(ErrorKind.VERIFICATION, "function '{}' failed verification", proto.name)

        return function
