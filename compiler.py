from ast_nodes import (
    INT, COMPARISON_OPS,
    Program, FunctionDecl, VarDecl, Assignment, ExprStmt, PrintStmt, WhileStmt, IfStmt, Block,
    WithBlock, RawStmt,
    IntLiteral, StringLiteral, Identifier, BinaryOp, Call,
)
from checker import check
from errors import CodegenError
from lexer import tokenize
from parser import parse
from path_literals import normalize, unescape
from script import Script
from targets import Target

SHELL_INT_COMPARE = {"==": "-eq", "!=": "-ne", "<": "-lt", ">": "-gt", "<=": "-le", ">=": "-ge"}
BATCH_INT_COMPARE = {"==": "EQU", "!=": "NEQ", "<": "LSS", ">": "GTR", "<=": "LEQ", ">=": "GEQ"}

# cmd.exe metacharacters that need a caret outside double quotes
BATCH_SPECIAL = "^&|<>()"

# set /a works on 32-bit signed integers
BATCH_INT_MAX = 2147483647


def shell_escape(text):
    # for use inside "..."
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$").replace("`", "\\`")


def batch_escape(text, quoted, call=False):
    """Escape literal text for a cmd.exe line.

    `quoted` is whether the text starts inside double quotes; the quote state
    after the text is returned with it. Arguments of `call` go through a
    second round of percent expansion, so their percent signs are doubled
    twice.
    """
    percent = "%%%%" if call else "%%"
    out = []
    for ch in text:
        if ch == "%":
            out.append(percent)
        elif ch == '"':
            quoted = not quoted
            out.append(ch)
        elif ch in BATCH_SPECIAL and not quoted:
            out.append("^" + ch)
        else:
            out.append(ch)
    return "".join(out), quoted


class Compiler:
    """Renders a checked Program as a shell or batch script.

    The traversal is shared; the target is consulted only where the dialects
    differ (storage, arithmetic, conditions, calls, printing and quoting).
    """

    def __init__(self, target: Target):
        self.target = target
        self.script = Script(target.newline)
        self.depth = 0

    def emit(self, line):
        return self.script.emit(line, self.depth)

    @property
    def shell(self):
        return self.target is Target.SHELL

    def compile(self, node):
        # entry point
        if not isinstance(node, Program):
            raise CodegenError("Compiler expects a Program node at the top", node)

        functions = [stmt for stmt in node.statements if isinstance(stmt, FunctionDecl)]
        main = [stmt for stmt in node.statements if not isinstance(stmt, FunctionDecl)]

        if self.shell:
            # sh needs functions defined before they are called
            self.emit("#!/bin/sh")
            for fn in functions:
                self.compile_function(fn)
            self.compile_statements(main)
        else:
            # batch labels may come after the code that calls them
            self.emit("@echo off")
            self.emit("setlocal")
            self.compile_statements(main)
            self.emit("exit /b 0")
            for fn in functions:
                self.compile_function(fn)

        return self.script.render()

    # -------- statements --------
    def compile_statements(self, statements):
        for stmt in statements:
            self.compile_stmt(stmt)

    def compile_stmt(self, node):
        if isinstance(node, VarDecl):
            self.compile_store(node.storage, node.var_type, node.value, local=node.local)
            return

        if isinstance(node, Assignment):
            self.compile_store(node.storage, node.var_type, node.value)
            return

        if isinstance(node, PrintStmt):
            self.compile_print(node)
            return

        if isinstance(node, ExprStmt):
            if not isinstance(node.expr, Call):
                raise CodegenError("only function calls can be used as statements", node)
            self.compile_call(node.expr)
            return

        if isinstance(node, WhileStmt):
            self.compile_while(node)
            return

        if isinstance(node, IfStmt):
            self.compile_if(node)
            return

        if isinstance(node, Block):
            # shadowed names already have their own storage
            self.compile_statements(node.statements)
            return

        if isinstance(node, WithBlock):
            if node.target is self.target:
                self.compile_statements(node.body.statements)
            return

        if isinstance(node, RawStmt):
            for line in node.lines:
                self.emit(unescape(line))
            return

        if isinstance(node, FunctionDecl):
            raise CodegenError(f"function {node.name} must be declared at top level", node)

        raise CodegenError(f"Unknown statement node: {node.__class__.__name__}", node)

    def compile_body(self, statements, prologue=()):
        self.depth += 1
        start = self.script.mark()
        for line in prologue:
            self.emit(line)
        self.compile_statements(statements)
        if self.shell and self.script.mark() == start:
            # sh rejects empty compound statements
            self.emit(":")
        self.depth -= 1

    def compile_function(self, node):
        if node.label is None:
            raise CodegenError(f"function {node.name} was not checked", node)

        if self.shell:
            params = [f'local {storage}="${i}"' for i, storage in enumerate(node.param_storage, start=1)]
            self.emit(f"{node.label}() {{")
            self.compile_body(node.body.statements, params)
            self.emit("}")
            self.emit("")
            return

        self.emit("")
        self.emit(f":{node.label}")
        self.emit("setlocal")
        for i, storage in enumerate(node.param_storage, start=1):
            self.emit(f'set "{storage}=%~{i}"')
        self.compile_statements(node.body.statements)
        # globals written inside survive endlocal by being re-set on the same line
        restore = "".join(f' & set "{storage}=%{storage}%"' for storage in node.exports)
        self.emit(f"endlocal{restore}")
        self.emit("goto :eof")

    def compile_store(self, storage, var_type, value, local=False):
        if self.shell:
            if var_type == INT:
                rendered = self.shell_int_value(value)
            else:
                rendered = f'"{self.shell_text(value)}"'
            prefix = "local " if local else ""
            self.emit(f"{prefix}{storage}={rendered}")
            return

        if var_type == INT:
            self.emit(f'set /a "{storage}={self.arith(value)}"')
        else:
            text, _ = self.batch_text(value, True)
            self.emit(f'set "{storage}={text}"')

    def compile_print(self, node):
        if self.shell:
            text = "".join(self.shell_text(arg) for arg in node.args)
            self.emit(f"printf '%s\\n' \"{text}\"")
            return

        parts = []
        quoted = False
        for arg in node.args:
            part, quoted = self.batch_text(arg, quoted)
            parts.append(part)
        self.emit("echo(" + "".join(parts))

    def compile_call(self, call):
        if call.label is None:
            raise CodegenError(f"call to {call.name} was not checked", call)

        if self.shell:
            args = []
            for arg in call.args:
                if isinstance(arg, IntLiteral):
                    args.append(str(arg.value))
                else:
                    args.append(f'"{self.shell_text(arg)}"')
            self.emit(" ".join([call.label] + args))
            return

        args = []
        for arg in call.args:
            text, _ = self.batch_text(arg, True, call=True)
            args.append(f'"{text}"')
        self.emit(" ".join([f"call :{call.label}"] + args))

    def compile_while(self, node):
        if self.shell:
            self.emit(f"while {self.shell_condition(node.condition)}; do")
            self.compile_body(node.body.statements)
            self.emit("done")
            return

        # goto loop instead of a ( ) block: %var% is then re-read every pass
        start = self.script.new_label("while")
        end = self.script.new_label("wend")
        self.emit(f":{start}")
        self.batch_jump_unless(node.condition, end)
        self.compile_statements(node.body.statements)
        self.emit(f"goto {start}")
        self.emit(f":{end}")

    def compile_if(self, node):
        if self.shell:
            keyword = "if"
            current = node
            while True:
                self.emit(f"{keyword} {self.shell_condition(current.condition)}; then")
                self.compile_body(current.then_block.statements)
                if isinstance(current.else_block, IfStmt):
                    keyword = "elif"
                    current = current.else_block
                    continue
                if current.else_block is not None:
                    self.emit("else")
                    self.compile_body(current.else_block.statements)
                break
            self.emit("fi")
            return

        end = self.script.new_label("endif")
        current = node
        while True:
            next_label = self.script.new_label("else") if current.else_block is not None else end
            self.batch_jump_unless(current.condition, next_label)
            self.compile_statements(current.then_block.statements)
            if current.else_block is None:
                break
            self.emit(f"goto {end}")
            self.emit(f":{next_label}")
            if isinstance(current.else_block, IfStmt):
                current = current.else_block
                continue
            self.compile_statements(current.else_block.statements)
            break
        self.emit(f":{end}")

    # -------- expressions (shared) --------
    def int_literal(self, expr):
        if not self.shell and expr.value > BATCH_INT_MAX:
            raise CodegenError(f"integer literal {expr.value} does not fit in a batch (32-bit) integer", expr)
        return str(expr.value)

    def arith(self, expr):
        # integer expression over bare variable names; valid in both
        # sh's $(( )) and batch's set /a
        if isinstance(expr, IntLiteral):
            return self.int_literal(expr)
        if isinstance(expr, Identifier):
            return expr.storage
        if isinstance(expr, BinaryOp) and expr.op not in COMPARISON_OPS:
            return f"{self.arith_operand(expr.left)} {expr.op} {self.arith_operand(expr.right)}"
        raise CodegenError(f"{expr.__class__.__name__} has no integer rendering", expr)

    def arith_operand(self, expr):
        if isinstance(expr, BinaryOp):
            return f"({self.arith(expr)})"
        return self.arith(expr)

    # -------- expressions (sh) --------
    def shell_int_value(self, expr):
        if isinstance(expr, IntLiteral):
            return str(expr.value)
        return f"$(({self.arith(expr)}))"

    def shell_int_operand(self, expr):
        if isinstance(expr, IntLiteral):
            return str(expr.value)
        if isinstance(expr, Identifier) and expr.type == INT:
            return f'"${{{expr.storage}}}"'
        return f'"$(({self.arith(expr)}))"'

    def shell_text(self, expr):
        # text for inside a double-quoted word
        if isinstance(expr, StringLiteral):
            return shell_escape(normalize(expr.raw, self.target))
        if isinstance(expr, IntLiteral):
            return str(expr.value)
        if isinstance(expr, Identifier):
            return f"${{{expr.storage}}}"
        if isinstance(expr, BinaryOp) and expr.type == INT:
            return f"$(({self.arith(expr)}))"
        if isinstance(expr, BinaryOp) and expr.op == "+":
            return self.shell_text(expr.left) + self.shell_text(expr.right)
        raise CodegenError(f"{expr.__class__.__name__} has no string rendering", expr)

    def shell_condition(self, cond):
        expr = cond.expr
        if isinstance(expr, BinaryOp) and expr.op in COMPARISON_OPS:
            if cond.mode == INT:
                left = self.shell_int_operand(expr.left)
                right = self.shell_int_operand(expr.right)
                return f"[ {left} {SHELL_INT_COMPARE[expr.op]} {right} ]"
            if expr.op not in ("==", "!="):
                raise CodegenError(f"no string comparison for '{expr.op}'", expr)
            op = "=" if expr.op == "==" else "!="
            return f'[ "{self.shell_text(expr.left)}" {op} "{self.shell_text(expr.right)}" ]'

        if cond.mode == INT:
            return f"[ {self.shell_int_operand(expr)} -ne 0 ]"
        return f'[ -n "{self.shell_text(expr)}" ]'

    # -------- expressions (batch) --------
    def batch_temp(self, expr):
        name = self.script.new_temp()
        self.emit(f'set /a "{name}={self.arith(expr)}"')
        return name

    def batch_int_operand(self, expr):
        if isinstance(expr, IntLiteral):
            return self.int_literal(expr)
        if isinstance(expr, Identifier) and expr.type == INT:
            return f"%{expr.storage}%"
        return f"%{self.batch_temp(expr)}%"

    def batch_text(self, expr, quoted, call=False):
        # returns (text, quote state after it); integer sub-expressions are
        # computed into temporaries first
        if isinstance(expr, StringLiteral):
            return batch_escape(normalize(expr.raw, self.target), quoted, call)
        if isinstance(expr, IntLiteral):
            return str(expr.value), quoted
        if isinstance(expr, Identifier):
            return f"%{expr.storage}%", quoted
        if isinstance(expr, BinaryOp) and expr.type == INT:
            return f"%{self.batch_temp(expr)}%", quoted
        if isinstance(expr, BinaryOp) and expr.op == "+":
            left, quoted = self.batch_text(expr.left, quoted, call)
            right, quoted = self.batch_text(expr.right, quoted, call)
            return left + right, quoted
        raise CodegenError(f"{expr.__class__.__name__} has no string rendering", expr)

    def batch_jump_unless(self, cond, label):
        expr = cond.expr
        if isinstance(expr, BinaryOp) and expr.op in COMPARISON_OPS:
            if cond.mode == INT:
                left = self.batch_int_operand(expr.left)
                right = self.batch_int_operand(expr.right)
                self.emit(f"if not {left} {BATCH_INT_COMPARE[expr.op]} {right} goto {label}")
                return
            if expr.op not in ("==", "!="):
                raise CodegenError(f"no string comparison for '{expr.op}'", expr)
            left, _ = self.batch_text(expr.left, True)
            right, _ = self.batch_text(expr.right, True)
            negate = "not " if expr.op == "==" else ""
            self.emit(f'if {negate}"{left}"=="{right}" goto {label}')
            return

        if cond.mode == INT:
            self.emit(f"if {self.batch_int_operand(expr)} EQU 0 goto {label}")
            return
        text, _ = self.batch_text(expr, True)
        self.emit(f'if "{text}"=="" goto {label}')


def compile_source(source, target):
    """Compile one source unit for one target; raises a CompileError subclass on failure."""
    tokens = tokenize(source)
    program = parse(tokens)
    check(program)
    return Compiler(target).compile(program)
