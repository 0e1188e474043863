import unittest

from kscope.front.grammar import Parser
from kscope.front.lexical import TokenKind
from kscope.front.syntax import (ANONYMOUS, BinaryOp, Call, Definition, ExternDeclaration, FunctionDef, NumberLiteral,
                                 Prototype, TopLevelExpression, VarBinding, VariableRef)
from kscope.lang.error import ErrorKind, ParseError


def parse(source, precedence=None):
    return Parser(source, precedence).parse_expression()


def num(value):
    return NumberLiteral(float(value))


class PrecedenceTestCase(unittest.TestCase):

    def test_precedence(self):
        cases = {
            "1 + 2 * 3": BinaryOp("+", num(1), BinaryOp("*", num(2), num(3))),
            "1 * 2 + 3": BinaryOp("+", BinaryOp("*", num(1), num(2)), num(3)),
            "(1 + 2) * 3": BinaryOp("*", BinaryOp("+", num(1), num(2)), num(3)),
            "a < b + c": BinaryOp("<", VariableRef("a"), BinaryOp("+", VariableRef("b"), VariableRef("c"))),
            "a + b < c": BinaryOp("<", BinaryOp("+", VariableRef("a"), VariableRef("b")), VariableRef("c")),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_left_associativity(self):
        cases = {
            "8 - 4 - 2": BinaryOp("-", BinaryOp("-", num(8), num(4)), num(2)),
            "1 + 2 - 3": BinaryOp("-", BinaryOp("+", num(1), num(2)), num(3)),
            "2 * 3 * 4": BinaryOp("*", BinaryOp("*", num(2), num(3)), num(4)),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_tighter_tail(self):
        expected = BinaryOp("-", BinaryOp("+", num(1), BinaryOp("*", BinaryOp("*", num(2), num(3)), num(4))), num(5))
        self.assertEqual(expected, parse("1 + 2 * 3 * 4 - 5"))

    def test_unknown_operator_ends_expression(self):
        parser = Parser("1 + 2 / 3")
        self.assertEqual(BinaryOp("+", num(1), num(2)), parser.parse_expression())
        self.assertTrue(parser.current.is_char("/"))

    def test_custom_table(self):
        precedence = dict(Parser.PRECEDENCE)
        precedence["/"] = 40
        self.assertEqual(BinaryOp("+", num(1), BinaryOp("/", num(2), num(3))), parse("1 + 2 / 3", precedence))

        # + binding tighter than * flips the grouping
        self.assertEqual(BinaryOp("*", BinaryOp("+", num(1), num(2)), num(3)),
                         parse("1 + 2 * 3", {"+": 50, "*": 40}))

    def test_set_precedence(self):
        parser = Parser("1 % 2")
        parser.set_precedence("%", 40)
        self.assertEqual(BinaryOp("%", num(1), num(2)), parser.parse_expression())
        self.assertNotIn("%", Parser.PRECEDENCE)

        should_raise = [("a", 10), ("(", 10), ("%%", 10), ("%", 0), ("%", -1), ("%", 1.5)]
        for op, precedence in should_raise:
            self.assertRaises(ValueError, parser.set_precedence, op, precedence)


class PrimaryTestCase(unittest.TestCase):

    def test_primaries(self):
        cases = {
            "4": num(4),
            "x": VariableRef("x"),
            "((x))": VariableRef("x"),
            "f()": Call("f", ()),
            "f(1)": Call("f", (num(1),)),
            "f(a, b + 1, g(c))": Call("f", (VariableRef("a"), BinaryOp("+", VariableRef("b"), num(1)),
                                            Call("g", (VariableRef("c"),)))),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_var(self):
        cases = {
            "var x in x": VarBinding((("x", None),), VariableRef("x")),
            "var x = 5, y = x + 2 in x * y": VarBinding(
                (("x", num(5)), ("y", BinaryOp("+", VariableRef("x"), num(2)))),
                BinaryOp("*", VariableRef("x"), VariableRef("y"))),
            "var x = 1 in (var x = x + 1 in x)": VarBinding(
                (("x", num(1)),),
                VarBinding((("x", BinaryOp("+", VariableRef("x"), num(1))),), VariableRef("x"))),
            "var a, b = 2 in a": VarBinding((("a", None), ("b", num(2))), VariableRef("a")),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, parse(case), case)

    def test_var_body_is_greedy(self):
        expected = VarBinding((("x", num(1)),), BinaryOp("+", VariableRef("x"), num(2)))
        self.assertEqual(expected, parse("var x = 1 in x + 2"))

    def test_errors(self):
        should_raise = {
            "": ErrorKind.UNEXPECTED_TOKEN,
            ")": ErrorKind.UNEXPECTED_TOKEN,
            "1 +": ErrorKind.UNEXPECTED_TOKEN,
            "(1 + 2": ErrorKind.EXPECTED_TOKEN,
            "f(1 2)": ErrorKind.EXPECTED_TOKEN,
            "f(1,": ErrorKind.UNEXPECTED_TOKEN,
            "var in x": ErrorKind.EXPECTED_TOKEN,
            "var x = 1": ErrorKind.EXPECTED_TOKEN,
            "var x = 1, in x": ErrorKind.EXPECTED_TOKEN,
            "var x = 1; x": ErrorKind.EXPECTED_TOKEN,
            "def": ErrorKind.UNEXPECTED_TOKEN,
        }
        for case, kind in should_raise.items():
            with self.assertRaises(ParseError, msg=case) as context:
                parse(case)
            self.assertIs(kind, context.exception.kind, case)

    def test_error_token(self):
        with self.assertRaises(ParseError) as context:
            parse("f(a b)")
        error = context.exception
        self.assertEqual("b", error.token.value)
        self.assertEqual(4, error.token.col)
        self.assertEqual("expected ')' or ',' in argument list, got 'b'", error.msg)

    def test_eof_error_message(self):
        with self.assertRaises(ParseError) as context:
            parse("1 +")
        self.assertEqual("unknown token 'end of input' when expecting an expression", context.exception.msg)


class TopLevelTestCase(unittest.TestCase):

    def test_prototype(self):
        cases = {
            "f()": Prototype("f", ()),
            "add(a b)": Prototype("add", ("a", "b")),
            "g(x y z)": Prototype("g", ("x", "y", "z")),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, Parser(case).parse_prototype(), case)

    def test_prototype_errors(self):
        should_raise = {
            "(a)": ErrorKind.EXPECTED_TOKEN,
            "f a": ErrorKind.EXPECTED_TOKEN,
            "f(a, b)": ErrorKind.EXPECTED_TOKEN,
            "f(a 1)": ErrorKind.EXPECTED_TOKEN,
            "f(a b a)": ErrorKind.DUPLICATE_PARAMETER,
        }
        for case, kind in should_raise.items():
            with self.assertRaises(ParseError, msg=case) as context:
                Parser(case).parse_prototype()
            self.assertIs(kind, context.exception.kind, case)

    def test_units(self):
        cases = {
            "def add(a b) a + b": Definition(
                FunctionDef(Prototype("add", ("a", "b")), BinaryOp("+", VariableRef("a"), VariableRef("b")))),
            "extern sin(x)": ExternDeclaration(Prototype("sin", ("x",))),
            "add(4, 5)": TopLevelExpression(Call("add", (num(4), num(5)))),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, Parser(case).parse_unit(), case)

    def test_top_level_expression_is_anonymous_function(self):
        unit = Parser("1 + 2").parse_unit()
        self.assertEqual(FunctionDef(Prototype(ANONYMOUS, ()), BinaryOp("+", num(1), num(2))), unit.node)
        self.assertTrue(unit.node.anonymous)
        self.assertEqual(BinaryOp("+", num(1), num(2)), unit.expr)

    def test_units_leave_following_token(self):
        parser = Parser("def f(x) x; f(1);")
        parser.parse_unit()
        self.assertTrue(parser.current.is_char(";"))
        parser.next_token()
        parser.parse_unit()
        self.assertTrue(parser.current.is_char(";"))
        parser.next_token()
        self.assertIs(TokenKind.EOF, parser.current.kind)

    def test_skip_token(self):
        parser = Parser("a b")
        parser.skip_token()
        self.assertTrue(parser.current.is_identifier("b"))
        parser.skip_token()
        parser.skip_token()
        self.assertIs(TokenKind.EOF, parser.current.kind)


if __name__ == '__main__':
    unittest.main()
