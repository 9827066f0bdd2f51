import os
import sys
import traceback

from compiler import compile_source
from errors import CompileError
from lexer import tokenize
from parser import parse
from targets import Target

USAGE = [
    "Usage:",
    "  python cli.py compile -i <file.rs> [-o <out>] [--target shell|batch|all]",
    "  python cli.py tokens <file.rs>",
    "  python cli.py parse <file.rs>",
    "  (optional) --debug to show Python traceback",
]


def usage():
    for line in USAGE:
        print(line)
    sys.exit(1)


# AST dump for the parse command
def ast_to_dict(node):
    if node is None:
        return None

    t = node.__class__.__name__
    d = {"type": t}

    if t in ("Program", "Block"):
        d["statements"] = [ast_to_dict(s) for s in node.statements]
    elif t == "FunctionDecl":
        d["name"] = node.name
        d["params"] = list(node.params)
        d["body"] = ast_to_dict(node.body)
    elif t == "VarDecl":
        d["var_type"] = node.var_type
        d["name"] = node.name
        d["value"] = ast_to_dict(node.value)
    elif t == "Assignment":
        d["name"] = node.name
        d["value"] = ast_to_dict(node.value)
    elif t == "ExprStmt":
        d["expr"] = ast_to_dict(node.expr)
    elif t == "PrintStmt":
        d["args"] = [ast_to_dict(a) for a in node.args]
    elif t == "Condition":
        d["mode"] = node.mode
        d["expr"] = ast_to_dict(node.expr)
    elif t == "WhileStmt":
        d["condition"] = ast_to_dict(node.condition)
        d["body"] = ast_to_dict(node.body)
    elif t == "IfStmt":
        d["condition"] = ast_to_dict(node.condition)
        d["then_block"] = ast_to_dict(node.then_block)
        d["else_block"] = ast_to_dict(node.else_block)
    elif t == "WithBlock":
        d["target"] = node.target.value
        d["body"] = ast_to_dict(node.body)
    elif t == "RawStmt":
        d["lines"] = list(node.lines)
    elif t == "IntLiteral":
        d["value"] = node.value
    elif t == "StringLiteral":
        d["raw"] = node.raw
    elif t == "Identifier":
        d["name"] = node.name
    elif t == "BinaryOp":
        d["op"] = node.op
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif t == "Call":
        d["name"] = node.name
        d["args"] = [ast_to_dict(a) for a in node.args]
    else:
        d["raw"] = str(node)

    return d


def pretty(obj, indent=0):
    sp = "  " * indent
    if isinstance(obj, dict):
        lines = []
        for k, v in obj.items():
            if isinstance(v, (dict, list)):
                lines.append(f"{sp}{k}:")
                lines.append(pretty(v, indent + 1))
            else:
                lines.append(f"{sp}{k}: {v}")
        return "\n".join(lines)
    if isinstance(obj, list):
        lines = []
        for item in obj:
            lines.append(f"{sp}-")
            lines.append(pretty(item, indent + 1))
        return "\n".join(line for line in lines if line)
    return f"{sp}{obj}"


def read_source(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def fail(e, debug):
    if debug:
        traceback.print_exc()
    else:
        print(str(e))
    sys.exit(1)


def cmd_tokens(path, debug=False):
    try:
        tokens = tokenize(read_source(path))
    except (CompileError, OSError) as e:
        fail(e, debug)

    for tok in tokens:
        print(f"{tok.line}:{tok.column}  {tok!r}")


def cmd_parse(path, debug=False):
    try:
        program = parse(tokenize(read_source(path)))
    except (CompileError, OSError) as e:
        fail(e, debug)

    print(pretty(ast_to_dict(program)))


def output_paths(input_path, output, targets):
    if output is not None:
        return {targets[0]: output}
    stem = os.path.splitext(input_path)[0]
    return {target: stem + target.suffix for target in targets}


def cmd_compile(input_path, output=None, target_name="all", debug=False):
    if target_name == "all":
        targets = [Target.SHELL, Target.BATCH]
    else:
        try:
            targets = [Target.from_name(target_name)]
        except ValueError as e:
            print(str(e))
            sys.exit(1)

    if output is not None and len(targets) != 1:
        print("-o needs a single --target (shell or batch).")
        sys.exit(1)

    # compile everything first: a failing target must not leave partial output
    try:
        source = read_source(input_path)
        scripts = {target: compile_source(source, target) for target in targets}
    except (CompileError, OSError) as e:
        fail(e, debug)

    for target, path in output_paths(input_path, output, targets).items():
        # newline="" keeps the target's own line endings
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(scripts[target])
        print(f"Wrote {path}")


def parse_compile_args(args):
    input_path = None
    output = None
    target_name = "all"

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-i", "--input", "-o", "--output", "--target"):
            if i + 1 >= len(args):
                print(f"{arg} needs a value.")
                sys.exit(1)
            value = args[i + 1]
            if arg in ("-i", "--input"):
                input_path = value
            elif arg in ("-o", "--output"):
                output = value
            else:
                target_name = value.lower()
            i += 2
            continue
        if arg.startswith("-") or input_path is not None:
            print(f"Unexpected argument: {arg}")
            sys.exit(1)
        input_path = arg
        i += 1

    if input_path is None:
        usage()
    return input_path, output, target_name


def main():
    debug = False
    if "--debug" in sys.argv:
        debug = True
        sys.argv.remove("--debug")

    if len(sys.argv) < 3:
        usage()

    cmd = sys.argv[1]
    args = sys.argv[2:]

    if cmd == "compile":
        input_path, output, target_name = parse_compile_args(args)
        cmd_compile(input_path, output, target_name, debug=debug)
    elif cmd in ("tokens", "parse"):
        if len(args) != 1:
            print(f"{cmd.capitalize()} does not accept extra arguments.")
            sys.exit(1)
        if cmd == "tokens":
            cmd_tokens(args[0], debug=debug)
        else:
            cmd_parse(args[0], debug=debug)
    else:
        print(f"Unknown command: {cmd}")
        sys.exit(1)


if __name__ == "__main__":
    main()
