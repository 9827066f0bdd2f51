from ast_nodes import (
    INT, UNTYPED, STR,
    Program, FunctionDecl, VarDecl, Assignment, ExprStmt, PrintStmt, Condition, WhileStmt, IfStmt, Block,
    WithBlock, RawStmt,
    IntLiteral, StringLiteral, Identifier, BinaryOp, Call,
)
from errors import ParseError
from lexer import TK_IDENT, TK_KEYWORD, TK_NUMBER, TK_STRING, TK_OP, TK_PUNCT, TK_EOF, tokenize
from targets import Target

EXPECTED_NAMES = {
    TK_IDENT: "an identifier",
    TK_KEYWORD: "a keyword",
    TK_NUMBER: "a number",
    TK_STRING: "a string literal",
    TK_OP: "an operator",
    TK_PUNCT: "punctuation",
    TK_EOF: "end of input",
}


class Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0
        self.block_depth = 0

    @property
    def current_token(self):
        return self.tokens[self.pos]

    @property
    def next_token(self):
        if self.pos + 1 < len(self.tokens):
            return self.tokens[self.pos + 1]
        return self.tokens[-1]

    def check(self, token_type, value=None):
        tok = self.current_token
        return tok.type == token_type and (value is None or tok.value == value)

    # move to next token, but only if it matches what we expect
    def eat(self, token_type, value=None):
        tok = self.current_token
        if not self.check(token_type, value):
            expected = f"'{value}'" if value is not None else EXPECTED_NAMES[token_type]
            self.error_here(expected)
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def error_here(self, expected):
        tok = self.current_token
        raise ParseError(expected, tok.describe(), tok.line, tok.column)

    def at(self, node, tok):
        node.line = tok.line
        node.column = tok.column
        return node

    # ---------- TOP LEVEL ----------
    def parse(self):
        statements = []
        while not self.check(TK_EOF):
            statements.append(self.statement())
        return Program(statements)

    # ---------- STATEMENTS ----------
    def statement(self):
        tok = self.current_token

        if tok.type == TK_KEYWORD:
            if tok.value == "let":
                return self.var_decl()
            if tok.value == "fn":
                # functions are only allowed at top level
                if self.block_depth != 0:
                    self.error_here("a statement (fn is only allowed at top level)")
                return self.function_decl()
            if tok.value == "while":
                return self.while_statement()
            if tok.value == "if":
                return self.if_statement()
            if tok.value == "print":
                return self.print_statement()
            if tok.value == "with":
                return self.with_statement()

        if tok.type == TK_OP and tok.value == "|>":
            return self.raw_statement()

        if tok.type == TK_PUNCT and tok.value == "{":
            return self.block()

        if tok.type == TK_IDENT:
            return self.ident_start_statement()

        self.error_here("a statement")

    def var_decl(self):
        tok = self.eat(TK_KEYWORD, "let")

        var_type = UNTYPED
        if self.check(TK_KEYWORD, "int"):
            self.eat(TK_KEYWORD)
            var_type = INT
        elif self.check(TK_KEYWORD, "str"):
            self.eat(TK_KEYWORD)

        name = self.eat(TK_IDENT).value
        self.eat(TK_OP, "=")
        value = self.expr()
        self.eat(TK_PUNCT, ";")
        return self.at(VarDecl(var_type, name, value), tok)

    def function_decl(self):
        tok = self.eat(TK_KEYWORD, "fn")
        name = self.eat(TK_IDENT).value
        self.eat(TK_PUNCT, "(")

        params = []
        if not self.check(TK_PUNCT, ")"):
            params.append(self.eat(TK_IDENT).value)
            while self.check(TK_PUNCT, ","):
                self.eat(TK_PUNCT)
                params.append(self.eat(TK_IDENT).value)
        self.eat(TK_PUNCT, ")")

        body = self.block()
        return self.at(FunctionDecl(name, params, body), tok)

    def condition(self):
        # int(<expr>) / str(<expr>): a boolean-context marker, not a call
        tok = self.current_token
        if self.check(TK_KEYWORD, "int"):
            mode = INT
        elif self.check(TK_KEYWORD, "str"):
            mode = STR
        else:
            self.error_here("'int(' or 'str(' condition")
        self.eat(TK_KEYWORD)
        self.eat(TK_PUNCT, "(")
        expr = self.expr()
        self.eat(TK_PUNCT, ")")
        return self.at(Condition(mode, expr), tok)

    def while_statement(self):
        tok = self.eat(TK_KEYWORD, "while")
        condition = self.condition()
        body = self.block()
        return self.at(WhileStmt(condition, body), tok)

    def if_statement(self):
        # Grammar:
        #   IF condition block (ELSE (if_statement | block))?
        # else-if chains are nested IfStmt nodes in else_block.
        tok = self.eat(TK_KEYWORD, "if")
        condition = self.condition()
        then_block = self.block()

        else_block = None
        if self.check(TK_KEYWORD, "else"):
            self.eat(TK_KEYWORD)
            if self.check(TK_KEYWORD, "if"):
                else_block = self.if_statement()
            else:
                else_block = self.block()

        return self.at(IfStmt(condition, then_block, else_block), tok)

    def print_statement(self):
        tok = self.eat(TK_KEYWORD, "print")
        args = self.call_args()
        self.eat(TK_PUNCT, ";")
        return self.at(PrintStmt(args), tok)

    def with_statement(self):
        tok = self.eat(TK_KEYWORD, "with")
        target = None
        if self.check(TK_IDENT):
            try:
                target = Target.from_name(self.current_token.value)
            except ValueError:
                target = None
        if target is None:
            self.error_here("a target name (linux or windows)")
        self.eat(TK_IDENT)
        body = self.block()
        return self.at(WithBlock(target, body), tok)

    def raw_statement(self):
        # |> "line" "line" ... ;
        tok = self.eat(TK_OP, "|>")
        lines = [self.eat(TK_STRING).value]
        while self.check(TK_STRING):
            lines.append(self.eat(TK_STRING).value)
        self.eat(TK_PUNCT, ";")
        return self.at(RawStmt(lines), tok)

    def ident_start_statement(self):
        # one token of lookahead: name = ... is an assignment, name(...) a call
        name_tok = self.current_token

        if self.next_token.type == TK_OP and self.next_token.value == "=":
            self.eat(TK_IDENT)
            self.eat(TK_OP, "=")
            value = self.expr()
            self.eat(TK_PUNCT, ";")
            return self.at(Assignment(name_tok.value, value), name_tok)

        if self.next_token.type == TK_PUNCT and self.next_token.value == "(":
            call = self.call()
            self.eat(TK_PUNCT, ";")
            return self.at(ExprStmt(call), name_tok)

        self.pos += 1
        self.error_here("'=' or '(' after a name")

    def block(self):
        tok = self.eat(TK_PUNCT, "{")
        self.block_depth += 1

        statements = []
        while not self.check(TK_PUNCT, "}"):
            if self.check(TK_EOF):
                self.error_here("'}'")
            statements.append(self.statement())

        self.eat(TK_PUNCT, "}")
        self.block_depth -= 1
        return self.at(Block(statements), tok)

    def call(self):
        name_tok = self.eat(TK_IDENT)
        args = self.call_args()
        return self.at(Call(name_tok.value, args), name_tok)

    def call_args(self):
        self.eat(TK_PUNCT, "(")
        args = []
        if not self.check(TK_PUNCT, ")"):
            args.append(self.expr())
            while self.check(TK_PUNCT, ","):
                self.eat(TK_PUNCT)
                args.append(self.expr())
        self.eat(TK_PUNCT, ")")
        return args

    # ---------- EXPRESSIONS ----------
    # expr -> equality
    def expr(self):
        return self.equality()

    def binary_level(self, operators, operand):
        node = operand()
        while self.current_token.type == TK_OP and self.current_token.value in operators:
            op_tok = self.eat(TK_OP)
            right = operand()
            node = self.at(BinaryOp(node, op_tok.value, right), op_tok)
        return node

    # equality -> relational ((==|!=) relational)*
    def equality(self):
        return self.binary_level(("==", "!="), self.relational)

    # relational -> additive ((<|>|<=|>=) additive)*
    def relational(self):
        return self.binary_level(("<", ">", "<=", ">="), self.additive)

    # additive -> term ((+|-) term)*
    def additive(self):
        return self.binary_level(("+", "-"), self.term)

    # term -> unary ((*|/) unary)*
    def term(self):
        return self.binary_level(("*", "/"), self.unary)

    # unary -> (- unary) | primary
    def unary(self):
        if self.check(TK_OP, "-"):
            tok = self.eat(TK_OP)
            # represent -x as (0 - x)
            zero = self.at(IntLiteral(0), tok)
            return self.at(BinaryOp(zero, "-", self.unary()), tok)
        return self.primary()

    # primary -> NUMBER | STRING | IDENT | call | (expr)
    def primary(self):
        tok = self.current_token

        if tok.type == TK_NUMBER:
            self.eat(TK_NUMBER)
            return self.at(IntLiteral(int(tok.value)), tok)

        if tok.type == TK_STRING:
            self.eat(TK_STRING)
            return self.at(StringLiteral(tok.value), tok)

        if tok.type == TK_IDENT:
            if self.next_token.type == TK_PUNCT and self.next_token.value == "(":
                return self.call()
            self.eat(TK_IDENT)
            return self.at(Identifier(tok.value), tok)

        if tok.type == TK_PUNCT and tok.value == "(":
            self.eat(TK_PUNCT)
            node = self.expr()
            self.eat(TK_PUNCT, ")")
            return node

        self.error_here("an expression")


def parse(tokens):
    if isinstance(tokens, str):
        tokens = tokenize(tokens)
    return Parser(list(tokens)).parse()
