import contextlib
import io
import unittest

from kscope.front.lexical import Token, TokenKind
from kscope.lang.error import ErrorHandler, ErrorKind, GenericException, LowerError, ParseError


def captured(function, *args):
    output = io.StringIO()
    with contextlib.redirect_stdout(output):
        function(*args)
    return output.getvalue()


class GenericExceptionTestCase(unittest.TestCase):

    def test_msg(self):
        cases = {
            ("unknown variable name '{}'", "x"): "unknown variable name 'x'",
            ("'{}' expects {} arguments", ("f", 2)): "'f' expects 2 arguments",
            ("no snippets", None): "no snippets",
        }
        for (msg, exprs), expected in cases.items():
            error = GenericException(ErrorKind.INTERNAL, msg, exprs)
            self.assertEqual(expected, error.msg)
            self.assertEqual(expected, str(error))

    def test_expr_is_first_snippet(self):
        error = GenericException(ErrorKind.ARGUMENT_COUNT, "'{}' expects {} arguments", ("f", 2))
        self.assertEqual("f", error.expr)
        self.assertEqual(1, error.end)

    def test_parse_error(self):
        token = Token(TokenKind.CHAR, ")", ")", 3, 7)
        error = ParseError(ErrorKind.UNEXPECTED_TOKEN, "unexpected '{}'", token)
        self.assertEqual("unexpected ')'", error.msg)
        self.assertEqual(7, error.column)
        self.assertFalse(error.diagnosis)

        error.locate("f(a, b))")
        self.assertEqual("f(a, b))", error.expr)
        self.assertEqual((7, 8), (error.start, error.end))
        self.assertTrue(error.diagnosis)

    def test_parse_error_at_eof(self):
        error = ParseError(ErrorKind.UNEXPECTED_TOKEN, "got '{}'", Token(TokenKind.EOF, None, "", 1, 4))
        self.assertEqual("got 'end of input'", error.msg)

    def test_lower_error(self):
        error = LowerError(ErrorKind.UNKNOWN_FUNCTION, "unknown function referenced: '{}'", "g")
        self.assertIsInstance(error, GenericException)
        self.assertIs(ErrorKind.UNKNOWN_FUNCTION, error.kind)
        self.assertIsNone(error.column)
        self.assertFalse(error.diagnosis)


class ErrorHandlerTestCase(unittest.TestCase):

    def test_fatal(self):
        handler = ErrorHandler()
        with self.assertRaises(SystemExit):
            captured(handler.throw, LowerError(ErrorKind.UNKNOWN_VARIABLE, "unknown variable name '{}'", "x"))

    def test_not_fatal(self):
        handler = ErrorHandler(fatal=False)
        output = captured(handler.throw, LowerError(ErrorKind.UNKNOWN_VARIABLE, "unknown variable name '{}'", "x"))
        self.assertIn("error: ", output)
        self.assertIn("unknown variable name", output)

    def test_location(self):
        handler = ErrorHandler(fatal=False)
        handler.register_file("prog.ks")

        error = ParseError(ErrorKind.EXPECTED_TOKEN, "expected ')', got '{}'", Token(TokenKind.CHAR, ";", ";", 4, 6))
        error.locate("(2 + 3;")
        handler.register_line("prog.ks", "(2 + 3;", 4)

        output = captured(handler.throw, error)
        self.assertIn("prog.ks:4:7: ", output)
        self.assertIn("^", output)
        self.assertEqual({"prog.ks": (None, None)}, handler.traceback)

    def test_diagnose(self):
        error = GenericException(ErrorKind.INTERNAL, "'{}'", "abcdef", start=2, end=4)
        lines = ErrorHandler.diagnose(error).split("\n")
        self.assertEqual(2, len(lines))
        self.assertTrue(lines[1].startswith("    "))  # two spaces of indent plus start
        self.assertIn("^", lines[1])

    def test_context_manager(self):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            with ErrorHandler(fatal=False):
                raise LowerError(ErrorKind.UNKNOWN_FUNCTION, "unknown function referenced: '{}'", "g")
        self.assertIn("unknown function referenced", output.getvalue())

        with contextlib.redirect_stdout(output):
            with ErrorHandler(fatal=False):
                raise RecursionError()
        self.assertIn("maximum recursion depth exceeded", output.getvalue())

    def test_context_manager_reraises_unknown_errors(self):
        with self.assertRaises(KeyError):
            with contextlib.redirect_stdout(io.StringIO()):
                with ErrorHandler(fatal=False):
                    raise KeyError("boom")


if __name__ == '__main__':
    unittest.main()
