"""
SLANG Tokenizer
Turns source text into a flat stream of typed tokens using pyparsing
"""

from typing import List, Any
from dataclasses import dataclass
import logging

from pyparsing import (
    Regex, ZeroOrMore, StringEnd, ParseException, ParserElement,
    cpp_style_comment, one_of, lineno, col
)

from error_handling import SourceSpan, SlangSyntaxError, enhance_parse_exception_dict
from stdlib import SYMBOL_OPERATORS

# Enable packrat parsing for performance
ParserElement.enable_packrat()

logger = logging.getLogger(__name__)


KEYWORDS = {'let', 'return', 'break', 'continue', 'if', 'else', 'while', 'for', 'in'}
BOOLEANS = {'true': True, 'false': False}
WORD_OPERATORS = {'and', 'or', 'not'}
DELIMITERS = "( ) { } [ ] | , ; : ."
SYMBOLS = "+= -= *= /= %= == != <= >= + - * / % < > ="


@dataclass(frozen=True)
class Token:
    """SLANG token with source information"""
    type: str
    value: Any
    span: SourceSpan

    def __str__(self) -> str:
        return self.span.text or str(self.value)

    def is_delimiter(self, char: str) -> bool:
        return self.type == "DELIMITER" and self.value == char

    def is_keyword(self, word: str) -> bool:
        return self.type == "KEYWORD" and self.value == word


class SlangTokenizer:
    """SLANG tokenizer built from pyparsing elements"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for SLANG"""

        # String literals with escape sequences, closed on the same line
        string_literal = Regex(r'"(?:[^"\\\n]|\\.)*"')
        string_literal.set_parse_action(self._token_action(self._string_token))

        # Numbers (integers and decimals, sign is an operator)
        number = Regex(r'\d+(?:\.\d+)?')
        number.set_parse_action(self._token_action(self._number_token))

        # Identifiers, keywords, booleans and word operators
        word = Regex(r'[A-Za-z_][A-Za-z0-9_]*')
        word.set_parse_action(self._token_action(self._word_token))

        # Operators, one_of matches the longest symbol first
        symbol = one_of(SYMBOLS)
        symbol.set_parse_action(self._token_action(self._symbol_token))

        delimiter = one_of(DELIMITERS)
        delimiter.set_parse_action(self._token_action(self._delimiter_token))

        token = string_literal | number | word | symbol | delimiter
        self.token_stream = ZeroOrMore(token) + StringEnd()
        self.token_stream.ignore(cpp_style_comment)

    def _token_action(self, build):
        def action(source, loc, toks):
            text = toks[0]
            line_num = lineno(loc, source)
            col_num = col(loc, source)
            span = SourceSpan(self.filename, line_num, col_num, line_num, col_num + len(text), text)
            return build(text, span)
        return action

    def _string_token(self, text: str, span: SourceSpan) -> Token:
        return Token("STRING", self._process_string_escapes(text[1:-1]), span)

    def _number_token(self, text: str, span: SourceSpan) -> Token:
        value = float(text) if '.' in text else int(text)
        return Token("NUMBER", value, span)

    def _word_token(self, text: str, span: SourceSpan) -> Token:
        if text in BOOLEANS:
            return Token("BOOLEAN", BOOLEANS[text], span)
        if text in WORD_OPERATORS:
            return Token("OPERATOR", SYMBOL_OPERATORS[text], span)
        if text in KEYWORDS:
            return Token("KEYWORD", text, span)
        return Token("IDENTIFIER", text, span)

    def _symbol_token(self, text: str, span: SourceSpan) -> Token:
        if text == "=":
            return Token("ASSIGN", text, span)
        if len(text) == 2 and text[1] == "=" and text[0] in "+-*/%":
            return Token("OPERATOR_ASSIGN", SYMBOL_OPERATORS[text[0]], span)
        return Token("OPERATOR", SYMBOL_OPERATORS[text], span)

    def _delimiter_token(self, text: str, span: SourceSpan) -> Token:
        return Token("DELIMITER", text, span)

    def _process_string_escapes(self, s: str) -> str:
        """Process escape sequences in strings"""
        escape_map = {
            'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', '0': '\0'
        }

        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s) and s[i + 1] in escape_map:
                result.append(escape_map[s[i + 1]])
                i += 2
            else:
                # Unknown escape, keep as-is
                result.append(s[i])
                i += 1

        return ''.join(result)

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize SLANG source code"""
        try:
            tokens = list(self.token_stream.parse_string(text, parse_all=True))
        except ParseException as e:
            error_dict = enhance_parse_exception_dict(e, text)
            span = SourceSpan(
                self.filename, error_dict['line'], error_dict['column'],
                error_dict['line'], error_dict['column'] + 1
            )
            raise SlangSyntaxError(
                error_dict['message'],
                span=span,
                context=error_dict['context'],
                suggestions=error_dict['suggestions']
            ) from e

        logger.debug("tokens: %s", " ".join(str(t) for t in tokens))
        return tokens


def tokenize(text: str, filename: str = "<input>") -> List[Token]:
    """Tokenize SLANG source code from a string"""
    return SlangTokenizer(filename).tokenize(text)
