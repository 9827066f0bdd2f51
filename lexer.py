from errors import LexError

# Token kinds
TK_IDENT = "IDENT"
TK_KEYWORD = "KEYWORD"
TK_NUMBER = "NUMBER"
TK_STRING = "STRING"
TK_OP = "OP"
TK_PUNCT = "PUNCT"
TK_EOF = "EOF"

KEYWORDS = {"let", "fn", "while", "if", "else", "print", "int", "str", "with"}

TWO_CHAR_OPS = {"==", "!=", "<=", ">=", "|>"}
ONE_CHAR_OPS = {"+", "-", "*", "/", "=", "<", ">"}
PUNCTUATION = {"(", ")", "{", "}", ",", ";"}

# characters that may follow a backslash as an escape inside a string literal
STRING_ESCAPES = {'"', "\\", "/"}

# int() refuses longer digit strings (sys.get_int_max_str_digits default)
MAX_NUMBER_DIGITS = 4300


class Token:
    def __init__(self, type, value="", line=1, column=1):
        self.type = type
        self.value = value
        self.line = line
        self.column = column

    def __repr__(self):
        if self.value:
            return f"{self.type}({self.value})"
        return f"{self.type}"

    def describe(self):
        if self.type == TK_EOF:
            return "end of input"
        if self.type == TK_STRING:
            return f'string "{self.value}"'
        return f"'{self.value}'"


class Lexer:
    def __init__(self, text):
        self.text = text
        self.pos = 0
        self.current_char = text[0] if text else None
        self.line = 1
        self.column = 1

    def advance(self):
        # track line/column based on current_char before moving
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self):
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def skip_whitespace(self):
        while self.current_char is not None and self.current_char.isspace():
            self.advance()

    def skip_line_comment(self):
        while self.current_char is not None and self.current_char != "\n":
            self.advance()

    def skip_block_comment(self):
        start_line, start_col = self.line, self.column
        # consume /*
        self.advance()
        self.advance()
        while self.current_char is not None:
            if self.current_char == "*" and self.peek() == "/":
                self.advance()
                self.advance()
                return
            self.advance()
        raise LexError("Unterminated block comment", start_line, start_col)

    def read_identifier(self):
        start_line, start_col = self.line, self.column
        result = ""
        while self.current_char is not None and (self.current_char.isascii() and self.current_char.isalnum() or self.current_char == "_"):
            result += self.current_char
            self.advance()

        kind = TK_KEYWORD if result in KEYWORDS else TK_IDENT
        return Token(kind, result, line=start_line, column=start_col)

    def read_number(self):
        start_line, start_col = self.line, self.column
        result = ""
        while self.current_char is not None and self.current_char in "0123456789":
            result += self.current_char
            self.advance()
        if len(result) > MAX_NUMBER_DIGITS:
            raise LexError(f"Integer literal longer than {MAX_NUMBER_DIGITS} digits", start_line, start_col)
        return Token(TK_NUMBER, result, line=start_line, column=start_col)

    def read_string(self):
        # Keeps the raw body: escapes are resolved later by path_literals,
        # which must still see which separators were escaped.
        start_line, start_col = self.line, self.column
        self.advance()  # skip opening quote
        result = ""

        while self.current_char is not None and self.current_char != '"':
            if self.current_char == "\n":
                break
            if self.current_char == "\\" and self.peek() in STRING_ESCAPES:
                result += self.current_char
                self.advance()
            result += self.current_char
            self.advance()

        if self.current_char != '"':
            raise LexError("Unterminated string literal", start_line, start_col)

        self.advance()  # skip closing quote
        return Token(TK_STRING, result, line=start_line, column=start_col)

    def get_next_token(self):
        while self.current_char is not None:

            if self.current_char.isspace():
                self.skip_whitespace()
                continue

            # comments
            if self.current_char == "/" and self.peek() == "/":
                self.skip_line_comment()
                continue
            if self.current_char == "/" and self.peek() == "*":
                self.skip_block_comment()
                continue

            # identifiers / keywords
            if self.current_char.isascii() and (self.current_char.isalpha() or self.current_char == "_"):
                return self.read_identifier()

            if self.current_char in "0123456789":
                return self.read_number()

            if self.current_char == '"':
                return self.read_string()

            start_line, start_col = self.line, self.column
            pair = self.current_char + (self.peek() or "")
            if pair in TWO_CHAR_OPS:
                self.advance()
                self.advance()
                return Token(TK_OP, pair, line=start_line, column=start_col)

            ch = self.current_char
            if ch in ONE_CHAR_OPS:
                self.advance()
                return Token(TK_OP, ch, line=start_line, column=start_col)

            if ch in PUNCTUATION:
                self.advance()
                return Token(TK_PUNCT, ch, line=start_line, column=start_col)

            raise LexError(f"Unexpected character {ch!r}", start_line, start_col)

        return Token(TK_EOF, line=self.line, column=self.column)


def tokenize(source):
    """Lex the whole source up front; the last token is always EOF."""
    lexer = Lexer(source)
    tokens = []
    while True:
        tok = lexer.get_next_token()
        tokens.append(tok)
        if tok.type == TK_EOF:
            return tokens
