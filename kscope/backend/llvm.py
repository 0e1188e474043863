"""LLVM IR backend built on llvmlite. Emits into an llvmlite.ir.Module; verification round-trips the module through
LLVM's own parser and verifier. This backend does not execute anything: the session only lowers and dumps with it.
"""

from llvmlite import binding, ir

from kscope.lang.emitter import Emitter


def _initialize():
    """Newer llvmlite versions initialize themselves and raise on explicit initialization."""
    try:
        binding.initialize()
        binding.initialize_native_target()
        binding.initialize_native_asmprinter()
    except RuntimeError:
        pass


class LLVMEmitter(Emitter):
    DOUBLE = ir.DoubleType()

    def __init__(self, name="kscope"):
        _initialize()

        self.module = ir.Module(name=name)
        self.builder = None

    # functions

    def declare_function(self, name, params):
        fnty = ir.FunctionType(LLVMEmitter.DOUBLE, [LLVMEmitter.DOUBLE] * len(params))
        function = ir.Function(self.module, fnty, name=name)
        for arg, param in zip(function.args, params):
            arg.name = param
        return function

    def lookup_function(self, name):
        function = self.module.globals.get(name)
        return function if isinstance(function, ir.Function) else None

    def arity(self, function):
        return len(function.args)

    def has_body(self, function):
        return not function.is_declaration

    def begin_function_body(self, function):
        block = function.append_basic_block(name="entry")
        self.builder = ir.IRBuilder(block)

    def argument(self, function, index):
        return function.args[index]

    def return_value(self, value):
        self.builder.ret(value)

    def verify(self, function):
        """Verifies the whole module function lives in, since LLVM parses modules and not single functions."""
        try:
            binding.parse_assembly(str(self.module)).verify()
        except RuntimeError:
            return False
        return True

    def discard_function(self, function):
        """Removes function from the global table and frees its name in the module scope."""
        if self.module.globals.get(function.name) is function:
            del self.module.globals[function.name]
            # llvmlite (checked against 0.44) has no public way to release a name from ir.Module.scope
            self.module.scope._useset.discard(function.name)
        if self.builder is not None and self.builder.function is function:
            self.builder = None

    # values

    def constant(self, value):
        return ir.Constant(LLVMEmitter.DOUBLE, value)

    def add(self, lhs, rhs):
        return self.builder.fadd(lhs, rhs, name="addtmp")

    def sub(self, lhs, rhs):
        return self.builder.fsub(lhs, rhs, name="subtmp")

    def mul(self, lhs, rhs):
        return self.builder.fmul(lhs, rhs, name="multmp")

    def less_than(self, lhs, rhs):
        return self.builder.fcmp_unordered("<", lhs, rhs, name="cmptmp")

    def bool_to_number(self, value):
        return self.builder.uitofp(value, LLVMEmitter.DOUBLE, name="booltmp")

    def call(self, function, args):
        return self.builder.call(function, args, name="calltmp")

    # storage

    def allocate_local(self, name):
        """allocas always go at the top of the entry block."""
        entry = ir.IRBuilder(self.builder.function.entry_basic_block)
        entry.position_at_start(self.builder.function.entry_basic_block)
        return entry.alloca(LLVMEmitter.DOUBLE, name=name)

    def store(self, storage, value):
        self.builder.store(value, storage)

    def load(self, storage):
        return self.builder.load(storage, name=storage.name, typ=LLVMEmitter.DOUBLE)

    # display

    def render(self, function=None):
        return str(self.module if function is None else function)
