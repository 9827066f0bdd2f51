# Declared/resolved types. Anything that is not an int is string-like.
INT = "int"
UNTYPED = "untyped"
# str(...) condition mode
STR = "str"

COMPARISON_OPS = ("==", "!=", "<", ">", "<=", ">=")
ARITHMETIC_OPS = ("+", "-", "*", "/")


class ASTNode:
    # Source position (1-based). Parser sets these.
    line: int | None = None
    column: int | None = None


class Program(ASTNode):
    def __init__(self, statements):
        self.statements = statements


class FunctionDecl(ASTNode):
    def __init__(self, name, params, body):
        self.name = name
        self.params = params  # list[str]
        self.body = body      # Block
        # set by the checker
        self.label = None
        self.param_storage = []
        self.exports = ()     # global storages written, directly or via calls


class VarDecl(ASTNode):
    def __init__(self, var_type, name, value):
        self.var_type = var_type  # INT or UNTYPED
        self.name = name
        self.value = value
        # set by the checker
        self.storage = None
        self.local = False


class Assignment(ASTNode):
    def __init__(self, name, value):
        self.name = name
        self.value = value
        self.storage = None
        self.var_type = None


class ExprStmt(ASTNode):
    def __init__(self, expr):
        self.expr = expr


class PrintStmt(ASTNode):
    def __init__(self, args):
        self.args = args


class Condition(ASTNode):
    # The int(...) / str(...) wrapper around while/if conditions.
    def __init__(self, mode, expr):
        self.mode = mode  # INT or STR
        self.expr = expr


class WhileStmt(ASTNode):
    def __init__(self, condition, body):
        self.condition = condition
        self.body = body


class IfStmt(ASTNode):
    def __init__(self, condition, then_block, else_block=None):
        self.condition = condition
        self.then_block = then_block
        self.else_block = else_block  # Block | IfStmt | None


class Block(ASTNode):
    def __init__(self, statements):
        self.statements = statements


class WithBlock(ASTNode):
    def __init__(self, target, body):
        self.target = target  # targets.Target
        self.body = body


class RawStmt(ASTNode):
    def __init__(self, lines):
        self.lines = lines  # raw string literal bodies, one emitted line each


class IntLiteral(ASTNode):
    def __init__(self, value):
        self.value = value
        self.type = INT


class StringLiteral(ASTNode):
    def __init__(self, raw):
        self.raw = raw
        self.type = UNTYPED


class Identifier(ASTNode):
    def __init__(self, name):
        self.name = name
        self.type = None
        self.storage = None


class BinaryOp(ASTNode):
    def __init__(self, left, op, right):
        self.left = left
        self.op = op
        self.right = right
        self.type = None


class Call(ASTNode):
    def __init__(self, name, args):
        self.name = name
        self.args = args
        self.label = None
