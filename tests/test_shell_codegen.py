import shutil
import subprocess

import pytest

from compiler import Compiler, compile_source
from errors import CodegenError, NameResolutionError
from targets import Target

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="no sh on PATH")


def sh(source):
    return compile_source(source, Target.SHELL)


def run_sh(script):
    proc = subprocess.run(["sh"], input=script, text=True, capture_output=True, timeout=30)
    if proc.returncode != 0:
        raise AssertionError(f"sh exited with code {proc.returncode}\nSTDERR:\n{proc.stderr}\nSCRIPT:\n{script}")
    return proc.stdout


def test_add_and_count_script(add_and_count):
    assert sh(add_and_count) == (
        "#!/bin/sh\n"
        "add() {\n"
        '    local add_x="$1"\n'
        '    local add_y="$2"\n'
        "    local add_result=$((add_x + add_y))\n"
        "    printf '%s\\n' \"Result: ${add_result}\"\n"
        "}\n"
        "\n"
        "add 1 2\n"
        "add 3 4\n"
        "add 5 6\n"
        "x=0\n"
        'while [ "${x}" -lt 100 ]; do\n'
        "    printf '%s\\n' \"Current value of x: ${x}\"\n"
        "    x=$((x + 1))\n"
        "done\n"
    )


@needs_sh
def test_add_and_count_runs(add_and_count, add_and_count_output):
    assert run_sh(sh(add_and_count)) == add_and_count_output


def test_nested_shadow_script(nested_shadow):
    assert sh(nested_shadow) == (
        "#!/bin/sh\n"
        "x=0\n"
        "x_1=$((x + 1))\n"
        "printf '%s\\n' \"${x_1}\"\n"
        "printf '%s\\n' \"${x}\"\n"
    )


@needs_sh
def test_nested_shadow_runs(nested_shadow):
    assert run_sh(sh(nested_shadow)) == "1\n0\n"


def test_if_else_chain():
    source = 'let int x = 5; if int(x > 3) { print("big"); } else if int(x == 3) { print("three"); } else { print("small"); }'
    assert sh(source) == (
        "#!/bin/sh\n"
        "x=5\n"
        'if [ "${x}" -gt 3 ]; then\n'
        "    printf '%s\\n' \"big\"\n"
        'elif [ "${x}" -eq 3 ]; then\n'
        "    printf '%s\\n' \"three\"\n"
        "else\n"
        "    printf '%s\\n' \"small\"\n"
        "fi\n"
    )


def test_string_condition():
    out = sh('let s = "a"; if str(s == "a") { print("yes"); }')
    assert 's="a"\n' in out
    assert 'if [ "${s}" = "a" ]; then\n' in out


def test_truthiness_conditions():
    out = sh('let int n = 1; let s = ""; while int(n) { n = 0; } if str(s) { print(s); }')
    assert 'while [ "${n}" -ne 0 ]; do\n' in out
    assert 'if [ -n "${s}" ]; then\n' in out


def test_empty_bodies_get_a_no_op():
    out = sh("while int(0) { } fn f() { }")
    assert "f() {\n    :\n}\n" in out
    assert "while [ 0 -ne 0 ]; do\n    :\ndone\n" in out


def test_special_characters_are_escaped():
    out = sh('print("cost $5 \\"quoted\\" `x` back\\\\slash");')
    assert out.endswith("printf '%s\\n' \"cost \\$5 \\\"quoted\\\" \\`x\\` back\\\\slash\"\n")


def test_int_expression_inside_text():
    out = sh('let int a = 2; print("sum ", a * 3 + 1);')
    assert "printf '%s\\n' \"sum $(((a * 3) + 1))\"\n" in out


def test_mixed_plus_concatenates():
    out = sh('let int n = 2; let s = "n=" + n;')
    assert 's="n=${n}"\n' in out


def test_global_write_from_function():
    source = "let int n = 0; fn bump() { n = n + 1; } bump(); print(n);"
    out = sh(source)
    assert out.startswith("#!/bin/sh\nbump() {\n    n=$((n + 1))\n}\n")


@needs_sh
def test_global_write_from_function_runs():
    source = "let int n = 0; fn bump() { n = n + 1; } bump(); bump(); print(n);"
    assert run_sh(sh(source)) == "2\n"


@needs_sh
def test_forward_call_and_string_arguments_run():
    source = 'greet("world", 2 + 3); fn greet(who, n) { print("hello ", who, " ", n); }'
    assert run_sh(sh(source)) == "hello world 5\n"


def test_with_blocks_and_raw_lines():
    source = 'with linux { |> "echo \\"hi\\""; } with windows { |> "ver"; }'
    assert sh(source) == '#!/bin/sh\necho "hi"\n'


def test_paths_use_forward_slashes():
    out = sh('print("dir\\\\sub\\file", "a/b/c");')
    assert "printf '%s\\n' \"dir\\\\sub/filea/b/c\"\n" in out


def test_idempotent(add_and_count):
    assert sh(add_and_count) == sh(add_and_count)


def test_errors_propagate():
    with pytest.raises(NameResolutionError):
        sh("print(y);")


def test_compiler_needs_a_program():
    with pytest.raises(CodegenError):
        Compiler(Target.SHELL).compile(None)


@needs_sh
def test_if_body_declaration_does_not_leak():
    source = "let int x = 5; if int(x == 5) { let int x = 1; print(x); } print(x);"
    assert run_sh(sh(source)) == "1\n5\n"


@needs_sh
def test_with_body_declaration_does_not_leak():
    source = 'let x = "out"; with linux { let x = "in"; print(x); } print(x);'
    assert run_sh(sh(source)) == "in\nout\n"


@needs_sh
def test_int_variable_keeps_its_value_after_string_shadow():
    source = 'let int x = 0; if int(x == 0) { let x = "abc"; print(x); } let int y = x + 1; print(y);'
    assert run_sh(sh(source)) == "abc\n1\n"


def test_large_literals_are_fine_for_sh():
    assert "big=3000000000\n" in sh("let int big = 3000000000; print(big);")


def test_raw_statement_with_several_lines():
    assert sh('|> "set -e" "echo \\"ok\\"";') == '#!/bin/sh\nset -e\necho "ok"\n'
