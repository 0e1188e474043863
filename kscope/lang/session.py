"""Session control for the kscope language: the driver that sequences parse -> lower for every top-level unit, either
for a whole file or for lines typed into the shell.

Each unit is independent. A unit that fails to parse or to lower is reported through the error handler and dropped,
and the session moves on to the next one: nothing from a failed unit survives (the code generator removes any
partially emitted function, and a parse error additionally skips one token so parsing can resynchronize).
"""

from kscope.backend.reference import ReferenceEmitter
from kscope.front.grammar import Parser
from kscope.front.lexical import TokenKind
from kscope.front.syntax import END_OF_INPUT, Definition, ExternDeclaration, TopLevelExpression
from kscope.lang.codegen import CodeGenerator
from kscope.lang.error import ErrorKind, ExecutionError, LowerError, ParseError


class Session:
    """Governs a kscope session: one emitter module and one code generator shared by every unit added to it."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path, emitter=None, cmd_line=False, dump=False, precedence=None):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path          # used for error messages
        self.dump = dump          # whether or not to print the IR of every lowered unit

        self.emitter = ReferenceEmitter() if emitter is None else emitter
        self.codegen = CodeGenerator(self.emitter)
        self.precedence = precedence

        self.parser = None
        self.lines = []     # source lines of the current parser's input, for diagnoses
        self.pending = []   # (source, first line number) pairs waiting to be run
        self.first_line = 1  # line number the current parser's input starts on
        self.results = []   # values of evaluated top-level expressions

        if path != Session.SH_FILE:
            try:
                with open(path, "r") as file:
                    self.add(file.read())
            except OSError:
                raise ExecutionError(ErrorKind.SOURCE, "'{}' could not be opened", path)

        elif not cmd_line:
            raise ExecutionError(ErrorKind.SOURCE, "'<in>' is a reserved filename")

        self.error_handler.fatal = False  # from here on, no unit's failure ends the session

    def add(self, source, line_num=1):
        """Queues source (a str) to be parsed and lowered on the next run. line_num is the line source starts on."""
        self.pending.append((source, line_num))

    def load(self, source):
        """Points the session's parser at source: a str, a text stream or any iterable of characters."""
        self.parser = Parser(source, self.precedence)
        self.lines = source.splitlines() if isinstance(source, str) else []

    def parse_next_unit(self):
        """Returns the next top-level unit, a ParseError if it is malformed, or END_OF_INPUT. Stray ';' between units
        are skipped.
        """
        while self.parser.current.is_char(";"):
            self.parser.next_token()

        if self.parser.current.kind is TokenKind.EOF:
            return END_OF_INPUT

        try:
            return self.parser.parse_unit()
        except ParseError as error:
            return error

    def lower(self, unit):
        """Returns the function handle unit lowered to, or a LowerError."""
        try:
            return self.codegen.lower_unit(unit)
        except LowerError as error:
            return error

    def step(self):
        """Parses, lowers and (for top-level expressions, if the emitter executes) evaluates one unit. Returns False once
        the input is exhausted.
        """
        unit = self.parse_next_unit()
        if unit is END_OF_INPUT:
            return False

        if isinstance(unit, ParseError):
            self.report(unit)
            self.parser.skip_token()
            return True

        function = self.lower(unit)
        if isinstance(function, LowerError):
            self.report(function)
            return True

        if self.dump:
            print(self.describe(unit))
            print(self.emitter.render(function))

        if isinstance(unit, TopLevelExpression):
            try:
                if self.emitter.executes:
                    self.results.append(self.emitter.execute(function))
            except ExecutionError as error:
                self.report(error)
            except RecursionError:
                msg = "maximum recursion depth exceeded while evaluating '{}'"
                self.report(ExecutionError(ErrorKind.EVALUATION, msg, str(unit.expr)))
            finally:
                self.emitter.discard_function(function)

        return True

    def run(self):
        """Runs every pending source to completion."""
        while self.pending:
            source, line_num = self.pending.pop(0)
            self.load(source)
            self.first_line = line_num

            while self.step():
                pass

    def report(self, error):
        """Reports error through the error handler, pointing at the offending source line if there is one."""
        if isinstance(error, ParseError) and 0 < error.token.line <= len(self.lines):
            line_num = error.token.line + self.first_line - 1
            self.error_handler.register_line(self.path, self.lines[error.token.line - 1], line_num)
            error.locate(self.lines[error.token.line - 1])

        self.error_handler.throw(error)

    @staticmethod
    def describe(unit):
        """Short description of unit with its source form, printed before its IR when dumping."""
        if isinstance(unit, Definition):
            return f"Read function definition: {unit.node}"
        elif isinstance(unit, ExternDeclaration):
            return f"Read extern: extern {unit.node}"
        return f"Read top-level expression: {unit.expr}"

    def pop(self):
        """Removes and returns the oldest result."""
        return self.results.pop(0)
