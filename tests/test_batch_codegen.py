import pytest

from compiler import batch_escape, compile_source
from errors import CodegenError, TypeCheckError
from targets import Target


def bat(source):
    return compile_source(source, Target.BATCH)


def lines(script):
    assert script.endswith("\r\n")
    return script[:-2].split("\r\n")


def test_add_and_count_script(add_and_count):
    assert lines(bat(add_and_count)) == [
        "@echo off",
        "setlocal",
        'call :add "1" "2"',
        'call :add "3" "4"',
        'call :add "5" "6"',
        'set /a "x=0"',
        ":_rs_while1",
        "if not %x% LSS 100 goto _rs_wend2",
        "echo(Current value of x: %x%",
        'set /a "x=x + 1"',
        "goto _rs_while1",
        ":_rs_wend2",
        "exit /b 0",
        "",
        ":add",
        "setlocal",
        'set "add_x=%~1"',
        'set "add_y=%~2"',
        'set /a "add_result=add_x + add_y"',
        "echo(Result: %add_result%",
        "endlocal",
        "goto :eof",
    ]


def test_crlf_line_endings(add_and_count):
    script = bat(add_and_count)
    assert "\n" not in script.replace("\r\n", "")


def test_nested_shadow_script(nested_shadow):
    assert lines(bat(nested_shadow)) == [
        "@echo off",
        "setlocal",
        'set /a "x=0"',
        'set /a "x_1=x + 1"',
        "echo(%x_1%",
        "echo(%x%",
        "exit /b 0",
    ]


def test_if_else_chain():
    source = 'let int x = 5; if int(x > 3) { print("big"); } else if int(x == 3) { print("three"); } else { print("small"); }'
    assert lines(bat(source))[2:] == [
        'set /a "x=5"',
        "if not %x% GTR 3 goto _rs_else2",
        "echo(big",
        "goto _rs_endif1",
        ":_rs_else2",
        "if not %x% EQU 3 goto _rs_else3",
        "echo(three",
        "goto _rs_endif1",
        ":_rs_else3",
        "echo(small",
        ":_rs_endif1",
        "exit /b 0",
    ]


def test_string_conditions():
    out = lines(bat('let s = "a"; if str(s != "b") { print("yes"); } if str(s) { print(s); }'))
    assert out[2:] == [
        'set "s=a"',
        'if "%s%"=="b" goto _rs_endif1',
        "echo(yes",
        ":_rs_endif1",
        'if "%s%"=="" goto _rs_endif2',
        "echo(%s%",
        ":_rs_endif2",
        "exit /b 0",
    ]


def test_computed_operands_use_temporaries():
    out = lines(bat('let int a = 2; print("sum ", a * 3 + 1); while int(a * 2 < 10) { a = a + 1; }'))
    assert out[2:] == [
        'set /a "a=2"',
        'set /a "_rs_t1=(a * 3) + 1"',
        "echo(sum %_rs_t1%",
        ":_rs_while1",
        'set /a "_rs_t2=a * 2"',
        "if not %_rs_t2% LSS 10 goto _rs_wend2",
        'set /a "a=a + 1"',
        "goto _rs_while1",
        ":_rs_wend2",
        "exit /b 0",
    ]


def test_global_writes_survive_endlocal():
    source = "let int n = 0; fn bump() { n = n + 1; } bump(); print(n);"
    assert lines(bat(source)) == [
        "@echo off",
        "setlocal",
        'set /a "n=0"',
        "call :bump",
        "echo(%n%",
        "exit /b 0",
        "",
        ":bump",
        "setlocal",
        'set /a "n=n + 1"',
        'endlocal & set "n=%n%"',
        "goto :eof",
    ]


def test_special_characters_are_escaped():
    out = lines(bat('print("a & b", " 100% ", "\\"q & r\\"");'))
    assert out[2] == 'echo(a ^& b 100%% "q & r"'


def test_call_arguments_double_percent_twice():
    out = lines(bat('fn f(a) { print(a); } f("50%");'))
    assert out[2] == 'call :f "50%%%%"'


def test_paths_use_backslashes():
    out = lines(bat('print("a/b/c", " ", "a\\/b");'))
    assert out[2] == "echo(a\\b\\c a/b"


def test_with_blocks_and_raw_lines():
    source = 'with linux { |> "uname"; } with windows { |> "ver"; print("win"); }'
    assert lines(bat(source)) == ["@echo off", "setlocal", "ver", "echo(win", "exit /b 0"]


def test_reserved_names_are_renamed():
    out = lines(bat('let path = "x"; print(path);'))
    assert out[2:4] == ['set "path_1=x"', "echo(%path_1%"]


def test_batch_escape_tracks_quotes():
    assert batch_escape('a "b | c" | d', False) == ('a "b | c" ^| d', False)
    assert batch_escape('open "quote', False) == ('open "quote', True)
    assert batch_escape("(x)", True) == ("(x)", True)


def test_idempotent(add_and_count):
    assert bat(add_and_count) == bat(add_and_count)


def test_type_errors_propagate():
    with pytest.raises(TypeCheckError):
        bat('let int x = "a";')


def test_literal_beyond_32_bits_is_rejected():
    with pytest.raises(CodegenError) as exc:
        bat("let int big = 3000000000; print(big);")
    assert "3000000000" in exc.value.message
    assert exc.value.line == 1


def test_literal_beyond_32_bits_in_condition_is_rejected():
    with pytest.raises(CodegenError):
        bat("let int x = 0; while int(x < 2147483648) { x = x + 1; }")


def test_largest_32_bit_literal_is_accepted():
    assert 'set /a "big=2147483647"' in lines(bat("let int big = 2147483647;"))


def test_raw_statement_with_several_lines():
    assert lines(bat('|> "ver" "vol";'))[2:4] == ["ver", "vol"]
