class CompileError(Exception):
    kind = "CompileError"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind}: {self.message} at line {self.line}, col {self.column}"


class LexError(CompileError):
    kind = "LexError"


class ParseError(CompileError):
    kind = "SyntaxError"

    def __init__(self, expected: str, found: str, line: int | None = None, column: int | None = None):
        super().__init__(f"Expected {expected}, got {found}", line, column)
        self.expected = expected
        self.found = found


class NameResolutionError(CompileError):
    kind = "NameError"

    def __init__(self, identifier: str, message: str, node=None):
        super().__init__(message, getattr(node, "line", None), getattr(node, "column", None))
        self.identifier = identifier


class TypeCheckError(CompileError):
    kind = "TypeError"

    def __init__(self, reason: str, node=None):
        super().__init__(reason, getattr(node, "line", None), getattr(node, "column", None))
        self.reason = reason


class CodegenError(CompileError):
    kind = "CodegenError"

    def __init__(self, reason: str, node=None):
        super().__init__(reason, getattr(node, "line", None), getattr(node, "column", None))
        self.node = node
