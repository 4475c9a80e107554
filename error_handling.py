"""
Error handling for Lox with positioned diagnostics
Diagnostics are plain dictionaries; the exception classes carry them to the front end
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException
import re

from ast_nodes import Token


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_diagnostic(
    kind: str,
    message: str,
    line: int,
    column: int,
    where: str = "",
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable diagnostic structure"""
    return {
        'kind': kind,
        'message': message,
        'line': line,
        'column': column,
        'where': where,
        'context': context,
        'suggestions': suggestions or []
    }


def diagnostic_at(token: Token, message: str, kind: str = "Error") -> Dict:
    """Diagnostic pointing at a token"""
    where = " at end" if token.kind == "EOF" else f" at '{token.lexeme}'"
    return make_diagnostic(kind, message, token.line, token.column, where)


def format_diagnostic(diagnostic: Dict, with_context: bool = False) -> str:
    """Format a diagnostic as ``line:column: Kind where: message``"""
    text = (f"{diagnostic['line']}:{diagnostic['column']}: "
            f"{diagnostic['kind']}{diagnostic['where']}: {diagnostic['message']}")

    if with_context and diagnostic['context']:
        text += f"\n{diagnostic['context']}"

    if with_context and diagnostic['suggestions']:
        text += "\n  Suggestions:"
        for suggestion in diagnostic['suggestions']:
            text += f"\n    - {suggestion}"

    return text


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Numbered source lines around ``line_num`` with a caret under ``col_num``"""
    lines = source_text.split('\n')
    first = max(1, line_num - context_lines)
    last = min(len(lines), line_num + context_lines)

    rendered = []
    for number in range(first, last + 1):
        rendered.append(f"{number:4d} | {lines[number - 1]}")
        if number == line_num:
            rendered.append(f"     | {' ' * (col_num - 1)}^")

    return '\n'.join(rendered)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """Extract expected tokens from exception"""
    expected = []

    msg = exc.msg or ""
    expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|$)", msg)
    if expected_match:
        expected.append(expected_match.group(1))

    return expected


# One Lox lexeme: a word, a number, a string start or an operator
_LEXEME = re.compile(r'[A-Za-z_][A-Za-z0-9_]*|\d+(?:\.\d+)?|"|[=!<>]=|\S')


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """The lexeme found where parsing stopped, quoted, or a description of the end"""
    lines = source_text.split('\n')
    if line_num > len(lines):
        return "end of input"

    rest = lines[line_num - 1][col_num - 1:]
    match = _LEXEME.match(rest.lstrip())
    if match is None:
        if line_num == len(lines) and not rest.strip():
            return "end of input"
        return "end of line"
    return f"'{match.group(0)}'"


def generate_suggestions(message: str, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if any("';'" in e or e == ";" for e in expected):
        suggestions.append("Statements end with ';'")

    if any("'}'" in e for e in expected):
        suggestions.append("Check that every '{' has a matching '}'")

    if any("')'" in e for e in expected):
        suggestions.append("Check that every '(' has a matching ')'")

    if "Invalid assignment target" in message:
        suggestions.append("Only variables and instance fields can be assigned to")
    elif got == "'='" and expected:
        suggestions.append("Use '==' to compare values")

    return suggestions


def parse_exception_to_diagnostic(exc: ParseBaseException, source_text: str) -> Dict:
    """Convert a pyparsing exception to a Lox diagnostic dict"""
    line_num = exc.lineno
    col_num = exc.column
    message = exc.msg or str(exc)

    got = extract_got(source_text, line_num, col_num)
    expected = extract_expected(exc)

    where = " at end" if got == "end of input" else f" at {got}" if got != "end of line" else ""
    return make_diagnostic(
        "Error",
        message,
        line_num,
        col_num,
        where,
        context=get_context_lines(source_text, line_num, col_num),
        suggestions=generate_suggestions(message, got, expected)
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LoxParseError(Exception):
    """One or more syntax errors raised by the front end"""
    def __init__(self, message: str, line: int = 0, column: int = 0,
                 diagnostic: Optional[Dict] = None,
                 diagnostics: Optional[List[Dict]] = None):
        if diagnostics:
            diagnostic = diagnostics[0]
            message, line, column = diagnostic['message'], diagnostic['line'], diagnostic['column']
        self.message = message
        self.line = line
        self.column = column
        self.diagnostic = diagnostic or make_diagnostic("Error", message, line, column)
        self.diagnostics = list(diagnostics) if diagnostics else [self.diagnostic]
        super().__init__(message)

    def __str__(self) -> str:
        return '\n'.join(format_diagnostic(d) for d in self.diagnostics)


class LoxStaticError(Exception):
    """One or more resolver errors; the program must not run"""
    def __init__(self, diagnostics: List[Dict]):
        self.diagnostics = list(diagnostics)
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        return '\n'.join(format_diagnostic(d) for d in self.diagnostics)


class LoxRuntimeError(Exception):
    """Fatal runtime error anchored at a token.

    Natives raise it with ``token=None``; the call site re-anchors it.
    """
    def __init__(self, token: Optional[Token], message: str):
        self.token = token
        self.message = message
        super().__init__(message)

    @property
    def diagnostic(self) -> Dict:
        line = self.token.line if self.token else 0
        column = self.token.column if self.token else 0
        return make_diagnostic("RuntimeError", self.message, line, column)

    def __str__(self) -> str:
        return format_diagnostic(self.diagnostic)


class LoxErrorHandler:
    """Turns pyparsing failures into Lox parse errors for one source text"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def enhance_parse_exception(self, exc: ParseBaseException) -> LoxParseError:
        """Convert pyparsing exception to an enhanced Lox error"""
        diagnostic = parse_exception_to_diagnostic(exc, self.source_text)
        return LoxParseError(
            message=diagnostic['message'],
            line=diagnostic['line'],
            column=diagnostic['column'],
            diagnostic=diagnostic
        )

    def context(self, line_num: int, col_num: int, context_lines: int = 2) -> str:
        return get_context_lines(self.source_text, line_num, col_num, context_lines)
