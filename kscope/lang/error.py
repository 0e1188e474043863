"""Error handling for the kscope language. Only GenericExceptions should be encountered during running: if another type
of error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Errors are raised inside the lexer, parser and code generator, and are turned into values at the boundary of each
top-level unit by the session (see session.py). ErrorHandler is only responsible for displaying them.
"""

import enum
import sys

from termcolor import colored


class ErrorKind(enum.Enum):
    """Every distinguishable failure. Parse-time kinds come first, then lowering and execution kinds."""
    UNEXPECTED_TOKEN = "unexpected token"
    EXPECTED_TOKEN = "expected token"
    DUPLICATE_PARAMETER = "duplicate parameter"
    UNKNOWN_VARIABLE = "unknown variable"
    UNKNOWN_FUNCTION = "unknown function"
    ARGUMENT_COUNT = "incorrect argument count"
    INVALID_OPERATOR = "invalid binary operator"
    REDEFINITION = "redefinition"
    VERIFICATION = "verification failed"
    UNRESOLVED_SYMBOL = "unresolved symbol"
    EVALUATION = "evaluation failed"
    SOURCE = "source unavailable"
    INTERNAL = "internal"


class GenericException(Exception):
    """Templates an error message so that it can be used to throw a kscope error. kind is the ErrorKind, msg a
    str.format template whose slots are filled with exprs.
    """

    def __init__(self, kind, msg, exprs=None, start=0, end=-1, diagnosis=True, internal=False):
        if exprs is None:
            exprs = ""
        if isinstance(exprs, str):
            exprs = [exprs]

        self.kind = kind
        self.template = msg
        self.exprs = [str(expr) for expr in exprs]
        self.msg = msg.format(*self.exprs)
        self.expr = self.exprs[0]  # exprs[0] should be the offending expr that caused the error
        self.end = end if end != -1 else len(self.expr)  # needed for error display

        self.start = start
        self.column = None  # set when the error can be tied to a source column
        self.diagnosis = diagnosis
        self.internal = internal

        super().__init__(self.msg)

    def highlighted(self):
        """self.msg with the expr snippets bolded."""
        return self.template.format(*(colored(expr, attrs=["bold"]) for expr in self.exprs))


class ParseError(GenericException):
    """Raised by the parser. token is the current token when the error was found (its approximate location)."""

    def __init__(self, kind, msg, token, exprs=None, **kwargs):
        if exprs is None:
            exprs = token.text or token.kind.value
        kwargs.setdefault("diagnosis", False)
        super().__init__(kind, msg, exprs, **kwargs)
        self.token = token
        self.column = token.col

    def locate(self, line):
        """Points the diagnosis at self.token within line, the source line the token was read from."""
        self.expr = line
        self.start = self.token.col
        self.end = self.token.col + max(len(self.token.text), 1)
        self.diagnosis = True


class LowerError(GenericException):
    """Raised by the code generator. Lowering has no source positions, so there is never a diagnosis."""

    def __init__(self, kind, msg, exprs=None, **kwargs):
        kwargs.setdefault("diagnosis", False)
        super().__init__(kind, msg, exprs, **kwargs)


class ExecutionError(GenericException):
    """Raised by an executing backend while running lowered code."""

    def __init__(self, kind, msg, exprs=None, **kwargs):
        kwargs.setdefault("diagnosis", False)
        super().__init__(kind, msg, exprs, **kwargs)


class ErrorHandler:
    """Context manager that will silently suppress Python errors and raise custom kscope errors."""
    ERROR = "red"

    def __init__(self, fatal=True):
        self.fatal = fatal
        self.traceback = {}

    def register_file(self, path):
        """Registers path in traceback."""
        self.traceback[path] = (None, None)

    def register_line(self, path, line, line_num):
        """Registers line in traceback given path. Should be called before reporting an error on that line."""
        self.traceback[path] = (line, line_num)

    def remove_line(self, path):
        """Removes line from traceback given path."""
        self.traceback[path] = (None, None)

    @staticmethod
    def diagnose(error):
        """Returns offending part of error.expr highlighted and bolded."""
        color = ErrorHandler.ERROR

        diagnosis = "  " + error.expr[:error.start]

        end = max(error.end, error.start + 1)
        diagnosis += colored(error.expr[error.start:end], color, attrs=["bold"])
        diagnosis += error.expr[end:] + "\n"

        diagnosis += "  " + " " * error.start
        diagnosis += colored("^" + "~" * (end - error.start - 1), color, attrs=["bold"])

        return diagnosis

    def _location(self, error):
        """'file:line:col: ' prefix for error, or '' if nothing is registered."""
        for file, (line, line_num) in self.traceback.items():
            if line is not None and error.column is not None:
                return f"{file}:{line_num}:{error.column + 1}: "
            elif line is not None:
                return f"{file}:{line_num}: "
        return ""

    def throw(self, error):
        """Throws error using error and self.traceback. error must be a GenericException, and self.traceback must be a
        dict of file: (line, line_num) representing origination of error.
        """
        error_msg = colored(self._location(error), attrs=["bold"])

        if error.internal:
            error_msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + error.highlighted()
        print(error_msg)

        if not error.internal and error.expr and error.diagnosis:
            print(ErrorHandler.diagnose(error))

        if self.fatal:
            sys.exit(1)
        for path in self.traceback:  # if error occurred, reset traceback (no need if error is fatal)
            self.remove_line(path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException(ErrorKind.INTERNAL, "keyboard interrupt", diagnosis=False))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(GenericException(ErrorKind.INTERNAL, "maximum recursion depth exceeded while evaluating"))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException(ErrorKind.INTERNAL, f"unknown error: '{exc_type.__name__}: {exc_val}'",
                                        internal=True))
            do_exit = True

        return not do_exit
