"""Recursive descent parser for the kscope language, with operator-precedence climbing for binary expressions.

The grammar can be loosely defined as follows:

```
<expression>  ::= <primary> <binop_rhs>
<binop_rhs>   ::= (<op> <primary>)*                       ; precedence-climbed, see Parser.parse_binop_rhs
<primary>     ::= <number> | <identifier_expr> | <paren_expr> | <var_expr>
<identifier_expr> ::= <name> ["(" [<expression> ("," <expression>)*] ")"]
<paren_expr>  ::= "(" <expression> ")"
<var_expr>    ::= "var" <name> ["=" <expression>] ("," <name> ["=" <expression>])* "in" <expression>
<prototype>   ::= <name> "(" <name>* ")"                  ; no commas between parameter names
<definition>  ::= "def" <prototype> <expression>
<extern>      ::= "extern" <prototype>
<toplevel>    ::= <expression>
```

The parser only ever looks at one token (self.current). Every failure raises a ParseError and no recovery is attempted
inside the failing construct: skipping ahead to the next unit is the session's job (see Parser.skip_token).
"""

from kscope.front.lexical import Lexer, TokenKind
from kscope.front.syntax import (BinaryOp, Call, Definition, ExternDeclaration, FunctionDef, NumberLiteral,
                                 Prototype, TopLevelExpression, VarBinding, VariableRef)
from kscope.lang.error import ErrorKind, ParseError


class Parser:
    """Holds the lexer, the current token and the binary operator precedence table."""
    PRECEDENCE = {"<": 10, "+": 20, "-": 20, "*": 40}  # higher binds tighter

    def __init__(self, source, precedence=None):
        """source can be a Lexer or anything a Lexer accepts. The first token is read immediately."""
        self.lexer = source if isinstance(source, Lexer) else Lexer(source)
        self.precedence = dict(Parser.PRECEDENCE if precedence is None else precedence)
        self.current = None

        self.next_token()

    def next_token(self):
        """Advances to and returns the next token."""
        self.current = self.lexer.next_token()
        return self.current

    def skip_token(self):
        """Discards the current token. Used by the session to resynchronize after a parse error."""
        if self.current.kind is not TokenKind.EOF:
            self.next_token()

    def set_precedence(self, op, precedence):
        """Adds or changes binary operator op. precedence must be a positive integer."""
        if len(op) != 1 or op.isalnum() or op in "(),;#.":
            raise ValueError(f"'{op}' cannot be a binary operator")
        if not isinstance(precedence, int) or precedence < 1:
            raise ValueError(f"precedence of '{op}' must be a positive integer, got {precedence!r}")
        self.precedence[op] = precedence

    def token_precedence(self):
        """Precedence of the current token if it is a known binary operator, else -1."""
        if self.current.kind is not TokenKind.CHAR:
            return -1
        return self.precedence.get(self.current.value, -1)

    def expect_char(self, char, msg):
        """Consumes the current token if it is char, raises ParseError with msg otherwise."""
        if not self.current.is_char(char):
            raise ParseError(ErrorKind.EXPECTED_TOKEN, msg + ", got '{}'", self.current)
        self.next_token()

    def expect_identifier(self, msg):
        """Consumes the current token if it is an identifier and returns its name, raises ParseError otherwise."""
        if self.current.kind is not TokenKind.IDENTIFIER:
            raise ParseError(ErrorKind.EXPECTED_TOKEN, msg + ", got '{}'", self.current)
        name = self.current.value
        self.next_token()
        return name

    # expressions

    def parse_number(self):
        result = NumberLiteral(self.current.value)
        self.next_token()  # eat number
        return result

    def parse_paren(self):
        self.next_token()  # eat '('
        expr = self.parse_expression()
        self.expect_char(")", "expected ')'")
        return expr

    def parse_identifier(self):
        """Either a variable reference or, if followed by '(', a call."""
        name = self.current.value
        self.next_token()  # eat identifier

        if not self.current.is_char("("):
            return VariableRef(name)

        self.next_token()  # eat '('
        args = []
        if not self.current.is_char(")"):
            while True:
                args.append(self.parse_expression())

                if self.current.is_char(")"):
                    break
                self.expect_char(",", "expected ')' or ',' in argument list")

        self.next_token()  # eat ')'
        return Call(name, tuple(args))

    def parse_var(self):
        self.next_token()  # eat 'var'

        bindings = []
        name = self.expect_identifier("expected identifier after 'var'")
        while True:
            init = None
            if self.current.is_char("="):
                self.next_token()  # eat '='
                init = self.parse_expression()
            bindings.append((name, init))

            if not self.current.is_char(","):
                break
            self.next_token()  # eat ','
            name = self.expect_identifier("expected identifier list after 'var'")

        if not self.current.is_identifier("in"):
            raise ParseError(ErrorKind.EXPECTED_TOKEN, "expected 'in' keyword after 'var', got '{}'", self.current)
        self.next_token()  # eat 'in'

        return VarBinding(tuple(bindings), self.parse_expression())

    def parse_primary(self):
        kind = self.current.kind
        if kind is TokenKind.IDENTIFIER:
            return self.parse_identifier()
        elif kind is TokenKind.NUMBER:
            return self.parse_number()
        elif kind is TokenKind.VAR:
            return self.parse_var()
        elif self.current.is_char("("):
            return self.parse_paren()

        raise ParseError(ErrorKind.UNEXPECTED_TOKEN, "unknown token '{}' when expecting an expression", self.current)

    def parse_binop_rhs(self, min_precedence, lhs):
        """Precedence climbing. Absorbs (op, primary) pairs into lhs while op binds at least as tightly as
        min_precedence. If the operator after a primary binds tighter than the one before it, that primary is the lhs
        of a recursive call, which gives right grouping for tighter tails and left associativity otherwise.
        """
        while True:
            precedence = self.token_precedence()
            if precedence < min_precedence:
                return lhs

            op = self.current.value
            self.next_token()  # eat op

            rhs = self.parse_primary()

            if precedence < self.token_precedence():
                rhs = self.parse_binop_rhs(precedence + 1, rhs)

            lhs = BinaryOp(op, lhs, rhs)

    def parse_expression(self):
        return self.parse_binop_rhs(0, self.parse_primary())

    # top-level

    def parse_prototype(self):
        if self.current.kind is not TokenKind.IDENTIFIER:
            raise ParseError(ErrorKind.EXPECTED_TOKEN, "expected function name in prototype, got '{}'", self.current)
        name = self.current.value
        self.next_token()

        self.expect_char("(", "expected '(' in prototype")

        params = []
        while self.current.kind is TokenKind.IDENTIFIER:
            if self.current.value in params:
                raise ParseError(ErrorKind.DUPLICATE_PARAMETER, "duplicate parameter '{}' in prototype of '{}'",
                                 self.current, exprs=(self.current.value, name))
            params.append(self.current.value)
            self.next_token()

        self.expect_char(")", "expected ')' in prototype")

        return Prototype(name, tuple(params))

    def parse_definition(self):
        self.next_token()  # eat 'def'
        proto = self.parse_prototype()
        return FunctionDef(proto, self.parse_expression())

    def parse_extern(self):
        self.next_token()  # eat 'extern'
        return self.parse_prototype()

    def parse_unit(self):
        """Parses one top-level unit starting at the current token. Assumes the current token is not EOF or ';'."""
        if self.current.kind is TokenKind.DEF:
            return Definition(self.parse_definition())
        elif self.current.kind is TokenKind.EXTERN:
            return ExternDeclaration(self.parse_extern())
        return TopLevelExpression(self.parse_expression())
