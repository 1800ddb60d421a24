"""
Error handling for the SLANG interpreter with detailed error messages
Syntax errors come from the tokenizer and parser, runtime errors from the evaluator
"""

from typing import List, Optional, Dict, Sequence
from dataclasses import dataclass
from pyparsing import ParseException


@dataclass(frozen=True)
class SourceSpan:
    """Source location information attached to tokens and syntax errors"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


# ============================================================================
# DIAGNOSTICS
# ============================================================================

def make_syntax_error(
    message: str,
    line: int,
    column: int,
    got: str = "",
    context: str = "",
    suggestions: Sequence[str] = ()
) -> Dict:
    """Plain dict describing a located syntax error"""
    return {
        'message': message,
        'line': line,
        'column': column,
        'got': got,
        'context': context,
        'suggestions': list(suggestions)
    }


def get_context_lines(source_text: str, line_num: int, col_num: int, radius: int = 2) -> str:
    """Numbered source lines around `line_num`, with a caret under the error column"""
    lines = source_text.split('\n')
    first = max(1, line_num - radius)
    last = min(len(lines), line_num + radius)

    rendered = []
    for number in range(first, last + 1):
        rendered.append(f"{number:4d}: {lines[number - 1]}")
        if number == line_num:
            rendered.append(" " * (6 + col_num - 1) + "^ Error here")
    return '\n'.join(rendered)


def extract_got(source_text: str, line_num: int, col_num: int, width: int = 10) -> str:
    """Quoted snippet of the source starting at the error position"""
    lines = source_text.split('\n')
    if line_num > len(lines):
        return "end of input"

    snippet = lines[line_num - 1][col_num - 1:col_num - 1 + width].strip()
    return f"'{snippet}'" if snippet else "end of line"


# Offending text prefix -> hint
HINTS = [
    (("''", "'`"), "Strings are written with double quotes"),
    (("'&", "'!"), "Use the words 'and', 'or' and 'not' for logic"),
    (("'#",), "Comments start with // or are wrapped in /* */"),
    (("'\"",), "Check that the string literal is closed on the same line"),
]


def generate_suggestions(got: str) -> List[str]:
    return [hint for prefixes, hint in HINTS if got.startswith(prefixes)]


def enhance_parse_exception_dict(exc: ParseException, source_text: str) -> Dict:
    """Describe a pyparsing failure with the offending text, context lines and hints"""
    got = extract_got(source_text, exc.lineno, exc.column)
    return make_syntax_error(
        message=f"Unexpected character {got}",
        line=exc.lineno,
        column=exc.column,
        got=got,
        context=get_context_lines(source_text, exc.lineno, exc.column),
        suggestions=generate_suggestions(got)
    )


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SlangError(Exception):
    """Base class for every error reported to the user"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SlangSyntaxError(SlangError):
    """Raised by the tokenizer, delimiter reducer and parsers"""

    def __init__(self, message: str, span: Optional[SourceSpan] = None, context: str = "",
                 suggestions: Sequence[str] = ()):
        self.span = span
        self.context = context
        self.suggestions = list(suggestions)
        super().__init__(message)

    def __str__(self) -> str:
        result = f"{self.message}"
        if self.span:
            result = f"{self.span}: {result}"
        if self.context:
            result += f"\n{self.context}"
        for suggestion in self.suggestions:
            result += f"\n  Hint: {suggestion}"
        return result


class SlangRuntimeError(SlangError):
    """Raised by the evaluator and the value operations"""
    pass
