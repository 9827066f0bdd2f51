"""Declaration/scope checking and type annotation.

One walk over the AST with an explicit stack of frames. Besides rejecting
undeclared names and ill-typed operators, the walk decides the target-dialect
variable ("storage") name of every binding, so both code generators can refer
to the resolved declaration instead of the textual name.
"""

from ast_nodes import (
    INT, UNTYPED, STR, COMPARISON_OPS,
    Program, FunctionDecl, VarDecl, Assignment, ExprStmt, PrintStmt, WhileStmt, IfStmt, Block,
    WithBlock, RawStmt,
    IntLiteral, StringLiteral, Identifier, BinaryOp, Call,
)
from errors import NameResolutionError, TypeCheckError

# Frame kinds. LOOP frames (while bodies) are transparent for storage: a
# same-typed redeclaration there rebinds the enclosing storage, so it is
# carried into the next iteration. Every other frame gets fresh storage.
GLOBAL = "global"
FUNCTION = "function"
BLOCK = "block"
LOOP = "loop"

# Internal temporaries and labels of the emitted scripts start with this.
INTERNAL_PREFIX = "_rs"

# Environment variables either dialect gives a meaning to (compared lowercased,
# batch variables are case-insensitive).
RESERVED_VARIABLES = {
    # sh
    "path", "home", "ifs", "pwd", "oldpwd", "ps1", "ps2", "ps4", "optind", "optarg", "lineno", "ppid",
    "shell", "term", "user", "lang", "mail", "mailpath", "env", "random", "seconds", "cdpath",
    # cmd.exe
    "errorlevel", "cd", "date", "time", "cmdextversion", "cmdcmdline", "comspec", "pathext", "prompt",
    "temp", "tmp", "systemroot", "systemdrive", "windir", "userprofile", "appdata", "localappdata",
    "username", "computername", "os", "programfiles", "programdata", "homedrive", "homepath", "public",
    "allusersprofile", "number_of_processors", "processor_architecture", "highestnumanodenumber",
}

# Function names that would collide with shell keywords, the builtins the
# emitted scripts rely on, or batch's special :eof label.
RESERVED_FUNCTIONS = {
    "do", "done", "then", "fi", "elif", "case", "esac", "for", "in", "until", "select", "function",
    "time", "printf", "local", "echo", "test", "set", "unset", "exit", "return", "shift", "read",
    "eval", "exec", "export", "readonly", "trap", "wait", "cd", "true", "false", "break", "continue",
    "command", "type", "call", "goto", "setlocal", "endlocal", "rem", "eof",
}


class Binding:
    def __init__(self, name, var_type, storage, order, local):
        self.name = name
        self.type = var_type
        self.storage = storage
        self.order = order
        self.local = local  # storage belongs to a function invocation


class Frame:
    def __init__(self, kind):
        self.kind = kind
        self.bindings = {}


class NameAllocator:
    def __init__(self, reserved):
        self.reserved = reserved
        self.used = set()

    def allocate(self, preferred):
        base = preferred
        if base.lower().startswith(INTERNAL_PREFIX):
            base = "u" + base
        candidate = base
        n = 0
        while candidate.lower() in self.used or candidate.lower() in self.reserved:
            n += 1
            candidate = f"{base}_{n}"
        self.used.add(candidate.lower())
        return candidate


class ScopeChecker:
    def __init__(self):
        self.scopes = []
        self.functions = {}
        self.variables = NameAllocator(RESERVED_VARIABLES)
        self.labels = NameAllocator(RESERVED_FUNCTIONS)
        self.current_function = None
        self.order = 0
        # per function: global storages assigned, functions called
        self.writes = {}
        self.calls = {}

    def check(self, program):
        if not isinstance(program, Program):
            raise TypeCheckError("checker expects a Program node at the top", program)

        # Pass 1: collect all functions (allow calls before declaration).
        for stmt in program.statements:
            if not isinstance(stmt, FunctionDecl):
                continue
            if stmt.name in self.functions:
                raise NameResolutionError(stmt.name, f"Function already declared: {stmt.name}", stmt)
            self.functions[stmt.name] = stmt
            stmt.label = self.labels.allocate(stmt.name)
            self.writes[stmt.name] = set()
            self.calls[stmt.name] = []

        # Pass 2: walk everything in source order.
        self.push(GLOBAL)
        self.check_statements(program.statements)
        self.pop()

        self.resolve_exports()
        return program

    # -------- scopes --------
    def push(self, kind):
        self.scopes.append(Frame(kind))

    def pop(self):
        self.scopes.pop()

    def lookup(self, name):
        for frame in reversed(self.scopes):
            if name in frame.bindings:
                return frame.bindings[name]
        return None

    def resolve(self, name, node):
        binding = self.lookup(name)
        if binding is None:
            raise NameResolutionError(name, f"Undeclared variable: {name}", node)
        return binding

    def declare(self, name, var_type):
        shared = None
        if self.scopes[-1].kind == LOOP:
            for frame in reversed(self.scopes):
                if name in frame.bindings:
                    shared = frame.bindings[name]
                    break
                if frame.kind != LOOP:
                    break
        # storage never changes type under earlier references
        if shared is not None and shared.type != var_type:
            shared = None

        if shared is not None:
            storage, local = shared.storage, shared.local
        elif self.current_function is not None:
            storage = self.variables.allocate(f"{self.current_function.label}_{name}")
            local = True
        else:
            storage = self.variables.allocate(name)
            local = False

        self.order += 1
        binding = Binding(name, var_type, storage, self.order, local)
        self.scopes[-1].bindings[name] = binding
        return binding

    def note_write(self, binding):
        if self.current_function is not None and not binding.local:
            self.writes[self.current_function.name].add(binding.storage)

    # -------- statements --------
    def check_statements(self, statements):
        for stmt in statements:
            self.check_stmt(stmt)

    def check_body(self, block, kind):
        self.push(kind)
        self.check_statements(block.statements)
        self.pop()

    def check_stmt(self, node):
        if isinstance(node, VarDecl):
            # the initializer still sees the binding being shadowed
            self.check_expr(node.value, node.var_type)
            binding = self.declare(node.name, node.var_type)
            node.storage = binding.storage
            node.local = binding.local
            return

        if isinstance(node, Assignment):
            binding = self.resolve(node.name, node)
            self.check_expr(node.value, binding.type)
            node.storage = binding.storage
            node.var_type = binding.type
            self.note_write(binding)
            return

        if isinstance(node, PrintStmt):
            for arg in node.args:
                self.check_expr(arg, UNTYPED)
            return

        if isinstance(node, ExprStmt):
            if not isinstance(node.expr, Call):
                raise TypeCheckError("only function calls can be used as statements", node)
            self.check_call(node.expr)
            return

        if isinstance(node, WhileStmt):
            self.check_condition(node.condition)
            self.check_body(node.body, LOOP)
            return

        if isinstance(node, IfStmt):
            self.check_condition(node.condition)
            self.check_body(node.then_block, BLOCK)
            if isinstance(node.else_block, IfStmt):
                self.check_stmt(node.else_block)
            elif node.else_block is not None:
                self.check_body(node.else_block, BLOCK)
            return

        if isinstance(node, Block):
            self.check_body(node, BLOCK)
            return

        if isinstance(node, WithBlock):
            self.check_body(node.body, BLOCK)
            return

        if isinstance(node, FunctionDecl):
            self.check_function(node)
            return

        if isinstance(node, RawStmt):
            return

        raise TypeCheckError(f"Unknown statement node: {node.__class__.__name__}", node)

    def check_function(self, node):
        self.current_function = node
        self.push(FUNCTION)

        node.param_storage = []
        for param in node.params:
            if param in self.scopes[-1].bindings:
                raise NameResolutionError(param, f"Duplicate parameter: {param}", node)
            node.param_storage.append(self.declare(param, UNTYPED).storage)

        # the body shares the parameters' frame
        self.check_statements(node.body.statements)

        self.pop()
        self.current_function = None

    def check_call(self, call):
        fn = self.functions.get(call.name)
        if fn is None:
            raise NameResolutionError(call.name, f"Undeclared function: {call.name}", call)
        if len(call.args) != len(fn.params):
            raise TypeCheckError(
                f"{call.name}() takes {len(fn.params)} argument(s), got {len(call.args)}", call)

        for arg in call.args:
            self.check_expr(arg, UNTYPED)
        call.label = fn.label
        if self.current_function is not None:
            self.calls[self.current_function.name].append(call.name)

    def check_condition(self, cond):
        context = INT if cond.mode == INT else UNTYPED
        expr = cond.expr

        if isinstance(expr, BinaryOp) and expr.op in COMPARISON_OPS:
            if cond.mode == STR and expr.op not in ("==", "!="):
                raise TypeCheckError(f"str(...) conditions only support == and !=, got '{expr.op}'", expr)
            self.check_expr(expr.left, context)
            self.check_expr(expr.right, context)
            expr.type = INT
            return

        self.check_expr(expr, context)

    # -------- expressions --------
    def check_expr(self, expr, context):
        """Annotate expr and return its type.

        In an int context every operator is integer arithmetic and untyped
        variables are read as numbers. Elsewhere an operator is integer
        arithmetic only when both operands are int; `+` with an untyped
        operand concatenates and `- * /` with one is rejected.
        """
        if isinstance(expr, IntLiteral):
            return INT

        if isinstance(expr, StringLiteral):
            if context == INT:
                raise TypeCheckError("string literal used where an integer is expected", expr)
            return UNTYPED

        if isinstance(expr, Identifier):
            binding = self.resolve(expr.name, expr)
            expr.storage = binding.storage
            expr.type = binding.type
            return expr.type

        if isinstance(expr, Call):
            if expr.name not in self.functions:
                raise NameResolutionError(expr.name, f"Undeclared function: {expr.name}", expr)
            raise TypeCheckError(f"{expr.name}() does not produce a value", expr)

        if isinstance(expr, BinaryOp):
            if expr.op in COMPARISON_OPS:
                raise TypeCheckError(
                    f"comparison '{expr.op}' is only allowed directly inside int(...) or str(...)", expr)

            left = self.check_expr(expr.left, context)
            right = self.check_expr(expr.right, context)
            if context == INT or (left == INT and right == INT):
                expr.type = INT
            elif expr.op == "+":
                expr.type = UNTYPED
            else:
                raise TypeCheckError(f"operator '{expr.op}' needs int operands", expr)
            return expr.type

        raise TypeCheckError(f"Unknown expression node: {expr.__class__.__name__}", expr)

    def resolve_exports(self):
        # a batch function must hand back every global its callees wrote too
        exports = {name: set(writes) for name, writes in self.writes.items()}
        changed = True
        while changed:
            changed = False
            for name, callees in self.calls.items():
                for callee in callees:
                    missing = exports[callee] - exports[name]
                    if missing:
                        exports[name] |= missing
                        changed = True

        for name, fn in self.functions.items():
            fn.exports = tuple(sorted(exports[name]))


def check(program):
    return ScopeChecker().check(program)
