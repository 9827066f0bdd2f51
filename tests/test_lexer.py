import pytest

from errors import LexError
from lexer import TK_EOF, TK_IDENT, TK_KEYWORD, TK_NUMBER, TK_OP, TK_PUNCT, TK_STRING, tokenize


def kinds(source):
    return [(tok.type, tok.value) for tok in tokenize(source)]


def test_declaration_tokens():
    assert kinds("let int x = 10;") == [
        (TK_KEYWORD, "let"),
        (TK_KEYWORD, "int"),
        (TK_IDENT, "x"),
        (TK_OP, "="),
        (TK_NUMBER, "10"),
        (TK_PUNCT, ";"),
        (TK_EOF, ""),
    ]


def test_two_char_operators_win_over_one_char():
    values = [value for _, value in kinds("a <= b >= c == d != e < f > g |> h")]
    assert values == ["a", "<=", "b", ">=", "c", "==", "d", "!=", "e", "<", "f", ">", "g", "|>", "h", ""]


def test_keyword_prefix_is_an_identifier():
    assert kinds("letter printer")[:2] == [(TK_IDENT, "letter"), (TK_IDENT, "printer")]


def test_comments_are_skipped():
    source = "// line comment\nlet x = 1; /* block\ncomment */ print(x);"
    values = [value for _, value in kinds(source)]
    assert values == ["let", "x", "=", "1", ";", "print", "(", "x", ")", ";", ""]


def test_positions_are_one_based():
    tokens = tokenize("let x = 1;\n  print(x);")
    assert (tokens[0].line, tokens[0].column) == (1, 1)
    print_tok = tokens[5]
    assert print_tok.value == "print"
    assert (print_tok.line, print_tok.column) == (2, 3)


def test_string_keeps_raw_escapes():
    tokens = tokenize(r'"say \"hi\" in C:\temp\\x and a\/b"')
    assert tokens[0].type == TK_STRING
    assert tokens[0].value == r'say \"hi\" in C:\temp\\x and a\/b'


def test_unterminated_string_reports_opening_quote():
    with pytest.raises(LexError) as exc:
        tokenize('print("oops);')
    err = exc.value
    assert (err.line, err.column) == (1, 7)
    assert str(err) == "LexError: Unterminated string literal at line 1, col 7"


def test_string_cannot_span_lines():
    with pytest.raises(LexError):
        tokenize('let x = "one\ntwo";')


def test_unterminated_block_comment():
    with pytest.raises(LexError) as exc:
        tokenize("let x = 1;\n/* never closed")
    assert exc.value.line == 2
    assert "block comment" in exc.value.message


def test_unexpected_character():
    with pytest.raises(LexError) as exc:
        tokenize("let x = 1 @ 2;")
    assert exc.value.column == 11
    assert "'@'" in exc.value.message


def test_eof_position():
    tokens = tokenize("x")
    assert tokens[-1].type == TK_EOF
    assert (tokens[-1].line, tokens[-1].column) == (1, 2)


def test_overlong_integer_literal():
    with pytest.raises(LexError) as exc:
        tokenize("let int x = " + "9" * 5000 + ";")
    assert exc.value.column == 13
    assert "digits" in exc.value.message
