"""
Lox Programming Language Parser
pyparsing grammar that builds the syntax tree with source positions on every token
"""

from dataclasses import fields, is_dataclass
from typing import List, Any, Callable, Optional
import re
import sys

from pyparsing import (
    Keyword, Literal as PPLiteral, Regex, QuotedString, Forward, Group,
    Optional as PPOptional, ZeroOrMore, Suppress, StringEnd,
    ParserElement, ParseElementEnhance, ParseBaseException, ParseException,
    ParseFatalException, dbl_slash_comment,
    one_of, lineno, col
)

import ast_nodes as ast
from error_handling import LoxErrorHandler, LoxParseError, format_diagnostic

# Enable packrat parsing for performance
ParserElement.enable_packrat()


RESERVED_WORDS = [
    "and", "class", "else", "false", "for", "fun", "if", "nil", "or",
    "print", "return", "super", "this", "true", "var", "while",
]

MAX_ARGUMENTS = 255

# A name that is not a whole reserved word ("classy" is fine, "class" is not)
IDENTIFIER_PATTERN = rf"(?!(?:{'|'.join(RESERVED_WORDS)})\b)[A-Za-z_][A-Za-z0-9_]*"

# Keywords that begin a statement; error recovery resumes in front of them
STATEMENT_KEYWORDS = ("class", "fun", "var", "for", "if", "while", "print", "return")

_TRIVIA = re.compile(r"(?:\s|//[^\n]*)*")
_LEXEME = re.compile(r'"[^"]*"?|[A-Za-z_][A-Za-z0-9_]*|\d+(?:\.\d+)?|\S')


def _token(kind: str) -> Callable:
    """Parse action turning the matched text into a positioned Token"""
    def action(s, loc, toks):
        return ast.Token(kind, toks[0], lineno(loc, s), col(loc, s), loc)
    return action


def _fold_binary(node_type: type) -> Callable:
    """Parse action folding ``operand (op operand)*`` into left-associative nodes"""
    def action(s, loc, toks):
        expr = toks[0]
        for i in range(1, len(toks), 2):
            expr = node_type(expr, toks[i], toks[i + 1])
        return expr
    return action


def _make_call_chain(s, loc, toks):
    expr = toks[0]
    for suffix in toks[1:]:
        if suffix[0] == "CALL":
            expr = ast.Call(expr, suffix[2], tuple(suffix[1]))
        else:
            expr = ast.Get(expr, suffix[1])
    return expr


def _make_call_suffix(s, loc, toks):
    arguments = list(toks[0])
    if len(arguments) > MAX_ARGUMENTS:
        raise ParseFatalException(s, loc, f"Can't have more than {MAX_ARGUMENTS} arguments.")
    return ("CALL", arguments, toks[1])


def _make_assignment(s, loc, toks):
    if len(toks) == 1:
        return toks[0]

    target, equals, value = toks[0], toks[1], toks[2]
    if isinstance(target, ast.Variable):
        return ast.Assign(target.name, value)
    if isinstance(target, ast.Get):
        return ast.Set(target.obj, target.name, value)
    raise ParseFatalException(s, equals.offset, "Invalid assignment target.")


def _make_function(s, loc, toks):
    name, params, body = toks[0], list(toks[1]), list(toks[2])
    if len(params) > MAX_ARGUMENTS:
        raise ParseFatalException(s, loc, f"Can't have more than {MAX_ARGUMENTS} parameters.")
    return ast.Function(name, tuple(params), tuple(body))


def _make_class(s, loc, toks):
    name = toks[0]
    superclass = toks[1] if len(toks) == 3 else None
    return ast.Class(name, superclass, tuple(toks[-1]))


def _make_for(s, loc, toks):
    """Desugar ``for (init; cond; incr) body`` into blocks and a while loop"""
    initializer = toks[0][0] if len(toks[0]) else None
    condition = toks[1][0] if len(toks[1]) else ast.Literal(True)
    increment = toks[2][0] if len(toks[2]) else None
    body = toks[3]

    if increment is not None:
        body = ast.Block((body, ast.Expression(increment)))
    body = ast.While(condition, body)
    if initializer is not None:
        body = ast.Block((initializer, body))
    return body


def skip_trivia(text: str, loc: int) -> int:
    """First offset at or after ``loc`` that is not whitespace or a comment"""
    return _TRIVIA.match(text, loc).end()


def synchronize(text: str, loc: int) -> int:
    """
    Panic-mode recovery: discard lexemes from ``loc`` until just past a ';'
    or just before a keyword that starts a statement.

    Always consumes at least one lexeme when any input is left.
    """
    loc = skip_trivia(text, loc)
    while loc < len(text):
        lexeme = _LEXEME.match(text, loc).group(0)
        loc = skip_trivia(text, loc + len(lexeme))
        if lexeme == ";" or loc >= len(text):
            return loc
        if _LEXEME.match(text, loc).group(0) in STATEMENT_KEYWORDS:
            return loc
    return loc


class Synchronizing(ParseElementEnhance):
    """
    Parse one declaration, recovering from syntax errors.

    A failure is handed to ``on_error`` and parsing resumes at the next
    statement boundary, so one run reports every syntax error. Matching stops
    (without an error) at end of input or at one of ``closers``.
    """

    def __init__(self, expr: ParserElement, on_error: Callable, closers: str = ""):
        super().__init__(expr)
        self.on_error = on_error
        self.closers = closers

    def parseImpl(self, instring, loc, do_actions=True):
        start = skip_trivia(instring, loc)
        if start >= len(instring) or instring[start] in self.closers:
            raise ParseException(instring, start, "Expected declaration", self)

        try:
            return self.expr._parse(instring, loc, do_actions, callPreParse=False)
        except ParseBaseException as exc:
            self.on_error(exc)
            return synchronize(instring, max(exc.loc, start)), []


class LoxGrammar:
    """Lox grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._errors: List[dict] = []
        self._handler: Optional[LoxErrorHandler] = None
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the Lox grammar; precedence is encoded one level per rule"""

        # Forward declarations for recursive structures
        expression = Forward()
        assignment = Forward()
        unary = Forward()
        declaration = Forward()
        statement = Forward()

        # Punctuation
        LPAREN, RPAREN, LBRACE, RBRACE, SEMI, COMMA, DOT = map(Suppress, "(){};,.")
        LESS = Suppress("<")
        closing_paren = PPLiteral(")").set_parse_action(_token("RIGHT_PAREN"))

        # Keywords
        CLASS, ELSE, FOR, FUN, IF, PRINT, VAR, WHILE = (
            Suppress(Keyword(word))
            for word in ("class", "else", "for", "fun", "if", "print", "var", "while")
        )
        return_kw = Keyword("return").set_parse_action(_token("KEYWORD"))
        this_kw = Keyword("this").set_parse_action(_token("KEYWORD"))
        super_kw = Keyword("super").set_parse_action(_token("KEYWORD"))
        and_op = Keyword("and").set_parse_action(_token("AND"))
        or_op = Keyword("or").set_parse_action(_token("OR"))

        # Identifiers
        identifier = Regex(IDENTIFIER_PATTERN).set_name("identifier").set_parse_action(_token("IDENTIFIER"))
        variable = identifier.copy().add_parse_action(lambda s, l, t: ast.Variable(t[0]))

        # Literals
        number = Regex(r"\d+(\.\d+)?").set_name("number").set_parse_action(
            lambda s, l, t: ast.Literal(float(t[0]), _token("NUMBER")(s, l, t))
        )
        string = QuotedString('"', multiline=True, convert_whitespace_escapes=False).set_name("string")
        string.set_parse_action(lambda s, l, t: ast.Literal(t[0], _token("STRING")(s, l, t)))
        true_lit = Keyword("true").set_parse_action(lambda s, l, t: ast.Literal(True, _token("KEYWORD")(s, l, t)))
        false_lit = Keyword("false").set_parse_action(lambda s, l, t: ast.Literal(False, _token("KEYWORD")(s, l, t)))
        nil_lit = Keyword("nil").set_parse_action(lambda s, l, t: ast.Literal(None, _token("KEYWORD")(s, l, t)))

        # Operators
        assign_op = Regex(r"=(?!=)").set_parse_action(_token("EQUAL"))
        unary_op = (PPLiteral("!") | PPLiteral("-")).set_parse_action(_token("OPERATOR"))
        factor_op = one_of("* /").set_parse_action(_token("OPERATOR"))
        term_op = one_of("+ -").set_parse_action(_token("OPERATOR"))
        comparison_op = one_of(">= <= > <").set_parse_action(_token("OPERATOR"))
        equality_op = one_of("== !=").set_parse_action(_token("OPERATOR"))

        # Primary expressions
        this_expr = this_kw.copy().add_parse_action(lambda s, l, t: ast.This(t[0]))
        super_expr = (super_kw - DOT + identifier).set_parse_action(lambda s, l, t: ast.Super(t[0], t[1]))
        grouping = (LPAREN - expression + RPAREN).set_parse_action(lambda s, l, t: ast.Grouping(t[0]))

        primary = (
            number | string | true_lit | false_lit | nil_lit |
            this_expr | super_expr | variable | grouping
        ).set_name("expression")

        # Calls and property access
        arguments = expression + ZeroOrMore(COMMA + expression)
        call_suffix = (LPAREN + Group(PPOptional(arguments)) + closing_paren).set_parse_action(_make_call_suffix)
        get_suffix = (DOT + identifier).set_parse_action(lambda s, l, t: ("GET", t[0]))
        call = (primary + ZeroOrMore(call_suffix | get_suffix)).set_parse_action(_make_call_chain)

        # Operator precedence, tightest first
        unary <<= (
            (unary_op + unary).set_parse_action(lambda s, l, t: ast.Unary(t[0], t[1])) | call
        ).set_name("expression")
        factor = (unary + ZeroOrMore(factor_op + unary)).set_parse_action(_fold_binary(ast.Binary))
        term = (factor + ZeroOrMore(term_op + factor)).set_parse_action(_fold_binary(ast.Binary))
        comparison = (term + ZeroOrMore(comparison_op + term)).set_parse_action(_fold_binary(ast.Binary))
        equality = (comparison + ZeroOrMore(equality_op + comparison)).set_parse_action(_fold_binary(ast.Binary))
        logic_and = (equality + ZeroOrMore(and_op + equality)).set_parse_action(_fold_binary(ast.Logical))
        logic_or = (logic_and + ZeroOrMore(or_op + logic_and)).set_parse_action(_fold_binary(ast.Logical))

        assignment <<= (logic_or + PPOptional(assign_op + assignment)).set_parse_action(_make_assignment)
        expression <<= assignment

        # Statements
        block_body = LBRACE - Group(ZeroOrMore(Synchronizing(declaration, self._record_error, closers="}"))) + RBRACE
        block = block_body.copy().set_parse_action(lambda s, l, t: ast.Block(tuple(t[0])))

        expr_stmt = (expression - SEMI).set_parse_action(lambda s, l, t: ast.Expression(t[0]))
        print_stmt = (PRINT - expression + SEMI).set_parse_action(lambda s, l, t: ast.Print(t[0]))
        return_stmt = (return_kw - PPOptional(expression) + SEMI).set_parse_action(
            lambda s, l, t: ast.Return(t[0], t[1] if len(t) > 1 else None)
        )
        var_decl = (VAR - identifier + PPOptional(Suppress(assign_op) + expression) + SEMI).set_parse_action(
            lambda s, l, t: ast.Var(t[0], t[1] if len(t) > 1 else None)
        )
        if_stmt = (IF - LPAREN + expression + RPAREN + statement + PPOptional(ELSE + statement)).set_parse_action(
            lambda s, l, t: ast.If(t[0], t[1], t[2] if len(t) > 2 else None)
        )
        while_stmt = (WHILE - LPAREN + expression + RPAREN + statement).set_parse_action(
            lambda s, l, t: ast.While(t[0], t[1])
        )
        for_init = Group(SEMI | var_decl | expr_stmt)
        for_stmt = (
            FOR - LPAREN + for_init +
            Group(PPOptional(expression)) + SEMI +
            Group(PPOptional(expression)) + RPAREN +
            statement
        ).set_parse_action(_make_for)

        statement <<= (
            for_stmt | if_stmt | print_stmt | return_stmt | while_stmt | block | expr_stmt
        ).set_name("statement")

        # Declarations
        parameters = Group(PPOptional(identifier + ZeroOrMore(COMMA + identifier)))
        function = (identifier + LPAREN + parameters + RPAREN + block_body).set_parse_action(_make_function)
        fun_decl = FUN - function
        class_decl = (
            CLASS - identifier + PPOptional(LESS + variable) +
            LBRACE + Group(ZeroOrMore(function)) + RBRACE
        ).set_parse_action(_make_class)

        declaration <<= (class_decl | fun_decl | var_decl | statement).set_name("declaration")

        program = ZeroOrMore(Synchronizing(declaration, self._record_error)) + StringEnd()

        # Comments may appear between any two tokens
        comment = Suppress(dbl_slash_comment)
        program.ignore(comment)
        program.parse_with_tabs()

        single_expression = expression + StringEnd()
        single_expression.ignore(comment)
        single_expression.parse_with_tabs()

        # Store the main parsers
        self.program = program
        self.declaration = declaration
        self.statement = statement
        self.expression = expression
        self.single_expression = single_expression
        self.function = function
        self.identifier = identifier

    def _record_error(self, exc: ParseBaseException):
        """Keep a syntax error from a declaration that recovery skipped over"""
        diagnostic = self._handler.enhance_parse_exception(exc).diagnostic
        self._errors.append(diagnostic)
        if self.debug:
            print(f"Recovered from: {format_diagnostic(diagnostic)}", file=sys.stderr)

    def parse_program(self, text: str, filename: str = "<input>") -> List[ast.Stmt]:
        """Parse a complete Lox program, reporting every syntax error at once"""
        self._errors = []
        self._handler = LoxErrorHandler(text, filename)
        try:
            result = self.program.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            self._errors.append(self._handler.enhance_parse_exception(e).diagnostic)

        if self._errors:
            raise LoxParseError("", diagnostics=self._errors)

        statements = list(result)
        if self.debug:
            print(f"Parsed {len(statements)} top-level statements from {filename}", file=sys.stderr)
        return statements

    def parse_expression(self, text: str, filename: str = "<input>") -> ast.Expr:
        """Parse a single Lox expression"""
        try:
            result = self.single_expression.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise LoxErrorHandler(text, filename).enhance_parse_exception(e) from e
        return result[0]


class LoxParser:
    """Main Lox parser: source text in, statement list out"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = LoxGrammar(debug)

    def parse_file(self, filepath: str) -> List[ast.Stmt]:
        """Parse a Lox source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise LoxParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise LoxParseError(f"Cannot decode file {filepath}: {e}")
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[ast.Stmt]:
        """Parse Lox source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> ast.Expr:
        """Parse a single Lox expression"""
        return self.grammar.parse_expression(text, filename)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> LoxParser:
    """Create a Lox parser"""
    return LoxParser(debug=debug)


def create_debug_parser() -> LoxParser:
    """Create a Lox parser with debug enabled"""
    return LoxParser(debug=True)


# Utility functions for working with syntax trees
def iter_children(node: Any) -> List[ast.Node]:
    """Direct child nodes of a syntax tree node, in field order"""
    children = []
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, ast.Node):
            children.append(value)
        elif isinstance(value, tuple):
            children.extend(v for v in value if isinstance(v, ast.Node))
    return children


def find_nodes_by_type(root: Any, node_type: type) -> List[ast.Node]:
    """Find all nodes of a specific type, pre-order"""
    result = []

    def search(node):
        if isinstance(node, node_type):
            result.append(node)
        if is_dataclass(node):
            for child in iter_children(node):
                search(child)

    if isinstance(root, (list, tuple)):
        for item in root:
            search(item)
    else:
        search(root)
    return result


def _parenthesize(name: str, *parts: Any) -> str:
    inner = " ".join(pretty_print_ast(p) if isinstance(p, ast.Node) else str(p) for p in parts)
    return f"({name} {inner})" if inner else f"({name})"


def pretty_print_ast(node: Optional[ast.Node]) -> str:
    """Lisp-style rendering of a syntax tree node for debugging"""
    if node is None:
        return "nil"
    if isinstance(node, ast.Literal):
        if node.value is None:
            return "nil"
        if isinstance(node.value, bool):
            return "true" if node.value else "false"
        if isinstance(node.value, str):
            return f'"{node.value}"'
        return repr(node.value)
    if isinstance(node, ast.Variable):
        return node.name.lexeme
    if isinstance(node, ast.Assign):
        return _parenthesize(f"assign {node.name.lexeme}", node.value)
    if isinstance(node, (ast.Binary, ast.Logical)):
        return _parenthesize(node.operator.lexeme, node.left, node.right)
    if isinstance(node, ast.Unary):
        return _parenthesize(node.operator.lexeme, node.right)
    if isinstance(node, ast.Grouping):
        return _parenthesize("group", node.expression)
    if isinstance(node, ast.Call):
        return _parenthesize("call", node.callee, *node.arguments)
    if isinstance(node, ast.Get):
        return _parenthesize("get", node.obj, node.name.lexeme)
    if isinstance(node, ast.Set):
        return _parenthesize("set", node.obj, node.name.lexeme, node.value)
    if isinstance(node, ast.This):
        return "this"
    if isinstance(node, ast.Super):
        return _parenthesize("super", node.method.lexeme)
    if isinstance(node, ast.Expression):
        return _parenthesize(";", node.expression)
    if isinstance(node, ast.Print):
        return _parenthesize("print", node.expression)
    if isinstance(node, ast.Var):
        if node.initializer is None:
            return _parenthesize("var", node.name.lexeme)
        return _parenthesize("var", node.name.lexeme, "=", node.initializer)
    if isinstance(node, ast.Block):
        return _parenthesize("block", *node.statements)
    if isinstance(node, ast.If):
        if node.else_branch is None:
            return _parenthesize("if", node.condition, node.then_branch)
        return _parenthesize("if-else", node.condition, node.then_branch, node.else_branch)
    if isinstance(node, ast.While):
        return _parenthesize("while", node.condition, node.body)
    if isinstance(node, ast.Function):
        params = " ".join(p.lexeme for p in node.params)
        return _parenthesize(f"fun {node.name.lexeme}({params})", *node.body)
    if isinstance(node, ast.Return):
        return _parenthesize("return", *([node.value] if node.value is not None else []))
    if isinstance(node, ast.Class):
        name = node.name.lexeme
        if node.superclass is not None:
            name += f" < {node.superclass.name.lexeme}"
        return _parenthesize(f"class {name}", *node.methods)
    raise ValueError(f"Unable to print node: {node!r}")


if __name__ == "__main__":
    parser = create_debug_parser()

    try:
        test_program = """
        // Simple Lox program
        fun add(a, b) { return a + b; }
        print add(3, 4);
        """
        for statement in parser.parse_string(test_program):
            print(pretty_print_ast(statement))
    except LoxParseError as e:
        print(f"Parse error: {e}")
