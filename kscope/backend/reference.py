"""Reference IR backend, written in plain Python. Functions are flat lists of three-address instructions over doubles
(the language has no control flow, so a function is a single basic block), rendered in an LLVM-like syntax:

```
define double @add(double %a, double %b) {
entry:
  %addtmp = fadd double %a, %b
  ret double %addtmp
}
```

Unlike the LLVM backend, this one can also run what it emitted (see ReferenceEmitter.execute), which is what the
session uses to evaluate top-level expressions. extern declarations are resolved against a table of host functions.
"""

import math
import operator
import sys

from kscope.lang.emitter import Emitter
from kscope.lang.error import ErrorKind, ExecutionError


def putchard(x):
    """Prints the character with code x, returns 0."""
    sys.stdout.write(chr(int(x)))
    sys.stdout.flush()
    return 0.0


def printd(x):
    """Prints x on its own line, returns 0."""
    print(f"{x:f}")
    return 0.0


NATIVES = {
    "sin": math.sin,
    "cos": math.cos,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "fabs": math.fabs,
    "putchard": putchard,
    "printd": printd,
}


class Constant:
    def __init__(self, value):
        self.value = float(value)

    def __str__(self):
        return repr(self.value)

    def __repr__(self):
        return f"Constant({self.value!r})"


class Register:
    """Result of an instruction or an incoming argument. Compared by identity. hint is the name asked for, before
    it was made unique.
    """

    def __init__(self, name, hint=None):
        self.name = name
        self.hint = name if hint is None else hint

    def __str__(self):
        return f"%{self.name}"

    def __repr__(self):
        return f"Register({self.name!r})"


class Slot(Register):
    """Storage for one number, created by an alloca."""


class Instruction:
    BINARY = {
        "fadd": operator.add,
        "fsub": operator.sub,
        "fmul": operator.mul,
        "fcmp ult": lambda lhs, rhs: not lhs >= rhs,  # unordered or less than: true if either side is nan
    }

    def __init__(self, opcode, result=None, operands=(), callee=None):
        self.opcode = opcode
        self.result = result
        self.operands = tuple(operands)
        self.callee = callee

    def __str__(self):
        prefix = f"{self.result} = " if self.result is not None else ""
        ops = ", ".join(f"double {operand}" if not isinstance(operand, Slot) else f"ptr {operand}"
                        for operand in self.operands)

        if self.opcode in Instruction.BINARY:
            lhs, rhs = self.operands
            return f"{prefix}{self.opcode} double {lhs}, {rhs}"
        elif self.opcode == "uitofp":
            return f"{prefix}uitofp i1 {self.operands[0]} to double"
        elif self.opcode == "alloca":
            return f"{prefix}alloca double"
        elif self.opcode == "load":
            return f"{prefix}load double, {ops}"
        elif self.opcode == "call":
            return f"{prefix}call double @{self.callee.name}({ops})"
        return f"{prefix}{self.opcode} {ops}"


class Function:
    """A declaration until begin_function_body gives it a body (a list of Instructions)."""

    def __init__(self, name, params):
        self.name = name
        self.params = tuple(params)
        self.body = None

        self._names = set()
        self.args = tuple(Register(self.unique_name(param)) for param in self.params)

    @property
    def is_declaration(self):
        return self.body is None

    def unique_name(self, name):
        """name, or name suffixed with the first free number if it is already used in this function."""
        candidate, suffix = name, 0
        while candidate in self._names:
            suffix += 1
            candidate = f"{name}{suffix}"
        self._names.add(candidate)
        return candidate

    def __str__(self):
        args = ", ".join(f"double {arg}" for arg in self.args)
        if self.is_declaration:
            return f"declare double @{self.name}({args})"

        lines = [f"define double @{self.name}({args}) {{", "entry:"]
        lines += [f"  {instruction}" for instruction in self.body]
        return "\n".join(lines + ["}"])

    def __repr__(self):
        return f"Function({self.name!r}, {self.params!r})"


class Module:
    def __init__(self, name="kscope"):
        self.name = name
        self.functions = {}

    def __str__(self):
        header = f"; ModuleID = '{self.name}'"
        return "\n\n".join([header] + [str(function) for function in self.functions.values()]) + "\n"


class ReferenceEmitter(Emitter):
    """Emits into a Module and can execute any function in it."""

    def __init__(self, module=None, natives=None):
        self.module = Module() if module is None else module
        self.natives = dict(NATIVES if natives is None else natives)
        self.function = None  # function currently being emitted into

    def _emit(self, opcode, name=None, operands=(), callee=None, result_type=Register):
        result = result_type(self.function.unique_name(name), name) if name is not None else None
        self.function.body.append(Instruction(opcode, result, operands, callee))
        return result

    # functions

    def declare_function(self, name, params):
        function = Function(name, params)
        self.module.functions[name] = function
        return function

    def lookup_function(self, name):
        return self.module.functions.get(name)

    def arity(self, function):
        return len(function.params)

    def has_body(self, function):
        return not function.is_declaration

    def begin_function_body(self, function):
        function.body = []
        self.function = function

    def argument(self, function, index):
        return function.args[index]

    def return_value(self, value):
        self._emit("ret", operands=(value,))

    def verify(self, function):
        """Checks that function has a body ending in its only ret, that every register is defined before it is used,
        and that every call targets a function of this module with the right number of arguments.
        """
        if function.is_declaration or not function.body:
            return False

        rets = [instruction for instruction in function.body if instruction.opcode == "ret"]
        if len(rets) != 1 or function.body[-1] is not rets[0]:
            return False

        defined = set(function.args)
        for instruction in function.body:
            for operand in instruction.operands:
                if isinstance(operand, Register) and operand not in defined:
                    return False

            if instruction.opcode == "call":
                callee = instruction.callee
                if self.module.functions.get(callee.name) is not callee:
                    return False
                if len(instruction.operands) != len(callee.params):
                    return False

            if instruction.result is not None:
                defined.add(instruction.result)

        return True

    def discard_function(self, function):
        if self.module.functions.get(function.name) is function:
            del self.module.functions[function.name]
        if self.function is function:
            self.function = None

    # values

    def constant(self, value):
        return Constant(value)

    def add(self, lhs, rhs):
        return self._emit("fadd", "addtmp", (lhs, rhs))

    def sub(self, lhs, rhs):
        return self._emit("fsub", "subtmp", (lhs, rhs))

    def mul(self, lhs, rhs):
        return self._emit("fmul", "multmp", (lhs, rhs))

    def less_than(self, lhs, rhs):
        return self._emit("fcmp ult", "cmptmp", (lhs, rhs))

    def bool_to_number(self, value):
        return self._emit("uitofp", "booltmp", (value,))

    def call(self, function, args):
        return self._emit("call", "calltmp", args, callee=function)

    # storage

    def allocate_local(self, name):
        return self._emit("alloca", name, result_type=Slot)

    def store(self, storage, value):
        self._emit("store", operands=(value, storage))

    def load(self, storage):
        return self._emit("load", storage.hint, (storage,))

    # display/execution

    def render(self, function=None):
        return str(self.module if function is None else function)

    @property
    def executes(self):
        return True

    def execute(self, function, args=()):
        """Interprets function with the numbers args. Declarations are looked up in self.natives."""
        if function.is_declaration:
            native = self.natives.get(function.name)
            if native is None:
                raise ExecutionError(ErrorKind.UNRESOLVED_SYMBOL, "unresolved external function '{}'", function.name)
            try:
                return float(native(*args))
            except (ValueError, OverflowError, TypeError) as error:
                call = f"{function.name}({', '.join(repr(float(arg)) for arg in args)})"
                raise ExecutionError(ErrorKind.EVALUATION, "'{}' failed: {}", (call, error))

        frame = dict(zip(function.args, (float(arg) for arg in args)))

        def read(operand):
            if isinstance(operand, Constant):
                return operand.value
            return frame[operand]

        for instruction in function.body:
            opcode, result = instruction.opcode, instruction.result

            if opcode in Instruction.BINARY:
                frame[result] = Instruction.BINARY[opcode](*(read(operand) for operand in instruction.operands))
            elif opcode == "uitofp":
                frame[result] = 1.0 if read(instruction.operands[0]) else 0.0
            elif opcode == "alloca":
                frame[result] = 0.0
            elif opcode == "store":
                value, slot = instruction.operands
                frame[slot] = read(value)
            elif opcode == "load":
                frame[result] = frame[instruction.operands[0]]
            elif opcode == "call":
                frame[result] = self.execute(instruction.callee, [read(operand) for operand in instruction.operands])
            elif opcode == "ret":
                return read(instruction.operands[0])

        raise ExecutionError(ErrorKind.INTERNAL, "function '{}' ended without ret", function.name, internal=True)
