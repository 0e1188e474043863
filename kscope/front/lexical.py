"""Lexical analysis for the kscope language. Converts a stream of characters into tokens, one at a time.

Tokens can be loosely defined as follows:

```
<whitespace> ::= (" " | "\t" | "\n" | "\r")+    ; skipped
<comment>    ::= "#" <char>* <eol>               ; skipped up to and including end of line
<identifier> ::= [A-Za-z][A-Za-z0-9]*            ; "def", "extern" and "var" are reserved keywords
<number>     ::= [0-9.]+                         ; value is the longest float-convertible prefix
<char>       ::= any other single character      ; operators and punctuation
```

Note that numbers are lexed permissively: "1.2.3" is a single number token whose value is 1.2 (the remaining ".3" is
consumed and dropped). There is no exponent syntax.

The Lexer never materializes the token stream: it pulls one character at a time from its source and holds exactly one
character of pushback, so it works just as well on an interactive stream as on a string.
"""

import enum
import re


class TokenKind(enum.Enum):
    EOF = "end of input"
    DEF = "def"
    EXTERN = "extern"
    VAR = "var"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    CHAR = "character"


class Token:
    """Single lexical unit. value is the identifier text, the float value of a number, or the character itself.
    line is 1-based, col is 0-based.
    """
    KEYWORDS = {"def": TokenKind.DEF, "extern": TokenKind.EXTERN, "var": TokenKind.VAR}

    def __init__(self, kind, value=None, text="", line=1, col=0):
        self.kind = kind
        self.value = value
        self.text = text  # source text of the token, used for error messages
        self.line = line
        self.col = col

    def is_char(self, char):
        """Whether or not this token is the operator/punctuation char."""
        return self.kind is TokenKind.CHAR and self.value == char

    def is_identifier(self, text):
        """Whether or not this token is an identifier spelled text. Used for soft keywords like 'in'."""
        return self.kind is TokenKind.IDENTIFIER and self.value == text

    def __repr__(self):
        if self.value is None:
            return f"Token({self.kind.name})"
        return f"Token({self.kind.name}, {self.value!r})"

    def __eq__(self, other):
        return isinstance(other, Token) and (self.kind, self.value) == (other.kind, other.value)

    def __hash__(self):
        return hash((self.kind, self.value))


class Lexer:
    """Stateful tokenizer. source can be a str, a text stream (anything with read) or any iterable of characters."""
    EOF = ""
    DIGITS = "0123456789"
    NUMBER_PREFIX = re.compile(r"[0-9]*\.?[0-9]*")

    def __init__(self, source):
        if isinstance(source, str):
            self._chars = iter(source)
        elif hasattr(source, "read"):
            self._chars = iter(lambda: source.read(1), "")
        else:
            self._chars = iter(source)

        self.line = 1
        self.col = -1
        self._last_char = " "

    def _advance(self):
        """Reads the next character into self._last_char, keeping track of line and column."""
        if self._last_char == "\n":
            self.line += 1
            self.col = -1

        self._last_char = next(self._chars, Lexer.EOF)
        if self._last_char != Lexer.EOF:
            self.col += 1
        return self._last_char

    @staticmethod
    def is_number_char(char):
        return char != Lexer.EOF and (char in Lexer.DIGITS or char == ".")

    @staticmethod
    def number_value(text):
        """Converts a run of digits and periods to a float the way strtod does: the longest convertible prefix wins,
        and a prefix without any digit is 0.0.
        """
        prefix = Lexer.NUMBER_PREFIX.match(text).group()
        if not any(char in Lexer.DIGITS for char in prefix):
            return 0.0
        return float(prefix)

    def next_token(self):
        """Returns the next token in the source, or an EOF token once the source is exhausted."""
        while self._last_char.isspace():
            self._advance()

        line, col = self.line, self.col

        if self._last_char.isascii() and self._last_char.isalpha():
            text = self._last_char
            while self._advance().isascii() and self._last_char.isalnum():
                text += self._last_char

            if text in Token.KEYWORDS:
                return Token(Token.KEYWORDS[text], None, text, line, col)
            return Token(TokenKind.IDENTIFIER, text, text, line, col)

        if Lexer.is_number_char(self._last_char):
            text = ""
            while Lexer.is_number_char(self._last_char):
                text += self._last_char
                self._advance()
            return Token(TokenKind.NUMBER, Lexer.number_value(text), text, line, col)

        if self._last_char == "#":
            while self._last_char not in (Lexer.EOF, "\n", "\r"):
                self._advance()

            if self._last_char != Lexer.EOF:
                return self.next_token()

        if self._last_char == Lexer.EOF:
            return Token(TokenKind.EOF, None, "", self.line, max(self.col, 0))

        char = self._last_char
        self._advance()
        return Token(TokenKind.CHAR, char, char, line, col)

    def __iter__(self):
        """Yields tokens up to and including the EOF token."""
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.EOF:
                return
