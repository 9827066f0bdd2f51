"""Separator rewriting for string literal bodies.

Literals reach the code generators with their escapes unresolved (see
lexer.read_string), so an escaped separator can still be told apart from a
path separator here.
"""

from targets import Target

ESCAPES = {'"': '"', "\\": "\\", "/": "/"}


def _resolve(raw, separator=None):
    out = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw) and raw[i + 1] in ESCAPES:
            out.append(ESCAPES[raw[i + 1]])
            i += 2
            continue
        if separator is not None and ch in "/\\":
            out.append(separator)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def normalize(raw, target):
    """Rewrite unescaped `/` and `\\` to the target's separator and resolve escapes."""
    separator = "\\" if target is Target.BATCH else "/"
    return _resolve(raw, separator)


def unescape(raw):
    return _resolve(raw)
