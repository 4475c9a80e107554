"""
Parsing tests for the Lox front end
Tests precedence, desugaring, positions and syntax errors
"""

import pytest
import ast_nodes as ast
from parsing import LoxGrammar, find_nodes_by_type, pretty_print_ast
from error_handling import LoxParseError


class TestExpressions:
  """Test expression parsing and precedence"""

  def test_factor_binds_tighter_than_term(self, parser):
    statements = parser.parse_string("1 + 2 * 3;")
    assert pretty_print_ast(statements[0]) == "(; (+ 1.0 (* 2.0 3.0)))"

  def test_term_is_left_associative(self, parser):
    expr = parser.parse_expression("1 - 2 - 3")
    assert pretty_print_ast(expr) == "(- (- 1.0 2.0) 3.0)"

  def test_grouping_overrides_precedence(self, parser):
    expr = parser.parse_expression("(1 + 2) * 3")
    assert pretty_print_ast(expr) == "(* (group (+ 1.0 2.0)) 3.0)"

  def test_comparison_and_equality(self, parser):
    expr = parser.parse_expression("1 < 2 == true")
    assert pretty_print_ast(expr) == "(== (< 1.0 2.0) true)"

  def test_logical_operators(self, parser):
    expr = parser.parse_expression("a or b and c")
    assert isinstance(expr, ast.Logical)
    assert expr.operator.lexeme == "or"
    assert isinstance(expr.right, ast.Logical)
    assert expr.right.operator.lexeme == "and"

  def test_unary_nesting(self, parser):
    expr = parser.parse_expression("!-x")
    assert pretty_print_ast(expr) == "(! (- x))"

  def test_literals(self, parser):
    assert parser.parse_expression("nil").value is None
    assert parser.parse_expression("true").value is True
    assert parser.parse_expression("false").value is False
    assert parser.parse_expression("2.5").value == 2.5
    assert parser.parse_expression('"hi there"').value == "hi there"

  def test_call_and_get_chain(self, parser):
    expr = parser.parse_expression("a.b(1, 2).c")
    assert isinstance(expr, ast.Get)
    assert expr.name.lexeme == "c"

    call = expr.obj
    assert isinstance(call, ast.Call)
    assert len(call.arguments) == 2
    assert call.paren.lexeme == ")"
    assert isinstance(call.callee, ast.Get)
    assert call.callee.obj.name.lexeme == "a"

  def test_assignment_is_right_associative(self, parser):
    expr = parser.parse_expression("a = b = 1")
    assert isinstance(expr, ast.Assign)
    assert isinstance(expr.value, ast.Assign)
    assert expr.value.name.lexeme == "b"

  def test_property_assignment_becomes_set(self, parser):
    expr = parser.parse_expression("a.b.c = 1")
    assert isinstance(expr, ast.Set)
    assert expr.name.lexeme == "c"
    assert isinstance(expr.obj, ast.Get)

  def test_super_and_this(self, parser):
    expr = parser.parse_expression("super.method")
    assert isinstance(expr, ast.Super)
    assert expr.method.lexeme == "method"
    assert isinstance(parser.parse_expression("this"), ast.This)

  def test_keyword_prefix_is_identifier(self, parser):
    statements = parser.parse_string("var orchid = 1; var classy = 2;")
    assert [s.name.lexeme for s in statements] == ["orchid", "classy"]


class TestStatements:
  """Test statement parsing"""

  def test_var_without_initializer(self, parser):
    statement = parser.parse_string("var a;")[0]
    assert isinstance(statement, ast.Var)
    assert statement.initializer is None

  def test_if_else(self, parser):
    statement = parser.parse_string("if (a) print 1; else print 2;")[0]
    assert isinstance(statement, ast.If)
    assert isinstance(statement.else_branch, ast.Print)

  def test_for_desugars_to_while(self, parser):
    statement = parser.parse_string("for (var i = 0; i < 3; i = i + 1) print i;")[0]

    assert isinstance(statement, ast.Block)
    initializer, loop = statement.statements
    assert isinstance(initializer, ast.Var)
    assert isinstance(loop, ast.While)
    body, increment = loop.body.statements
    assert isinstance(body, ast.Print)
    assert isinstance(increment.expression, ast.Assign)

  def test_empty_for_clauses(self, parser):
    statement = parser.parse_string("for (;;) print 1;")[0]
    assert isinstance(statement, ast.While)
    assert statement.condition.value is True

  def test_function_declaration(self, parser):
    statement = parser.parse_string("fun add(a, b) { return a + b; }")[0]
    assert isinstance(statement, ast.Function)
    assert [p.lexeme for p in statement.params] == ["a", "b"]
    assert isinstance(statement.body[0], ast.Return)

  def test_class_declaration(self, parser):
    statement = parser.parse_string("class B < A { init() {} f(x) { return x; } }")[0]
    assert isinstance(statement, ast.Class)
    assert statement.superclass.name.lexeme == "A"
    assert [m.name.lexeme for m in statement.methods] == ["init", "f"]
    assert pretty_print_ast(statement).startswith("(class B < A")

  def test_comments_are_ignored(self, parser):
    source = "// leading comment\nprint 1; // trailing\n// last line"
    statements = parser.parse_string(source)
    assert len(statements) == 1
    assert isinstance(statements[0], ast.Print)

  def test_token_positions(self, parser):
    statements = parser.parse_string("var x = 1;\nprint x;")
    variable = find_nodes_by_type(statements, ast.Variable)[0]
    assert variable.name.line == 2
    assert variable.name.column == 7

  def test_node_ids_are_distinct(self, parser):
    statements = parser.parse_string("print a; print a;")
    first, second = find_nodes_by_type(statements, ast.Variable)
    assert first.node_id != second.node_id


class TestParseErrors:
  """Test syntax error reporting"""

  def test_invalid_assignment_target(self, parser):
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("1 = 2;")
    assert exc_info.value.message == "Invalid assignment target."
    assert exc_info.value.line == 1
    assert exc_info.value.column == 3

  def test_invalid_grouped_target(self, parser):
    with pytest.raises(LoxParseError):
      parser.parse_string("(a) = 2;")

  def test_missing_semicolon(self, parser):
    with pytest.raises(LoxParseError):
      parser.parse_string("print 1")

  def test_unterminated_block(self, parser):
    with pytest.raises(LoxParseError):
      parser.parse_string("{ print 1;")

  def test_keyword_is_not_an_identifier(self, parser):
    with pytest.raises(LoxParseError):
      parser.parse_string("var class = 1;")

  def test_error_carries_diagnostic(self, parser):
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("var x = 1;\nvar = 2;")
    diagnostic = exc_info.value.diagnostics[0]
    assert diagnostic['line'] == 2
    assert diagnostic['kind'] == "Error"

  def test_grammar_exposes_rules(self):
    grammar = LoxGrammar()
    result = grammar.expression.parse_string("1 + 2")
    assert isinstance(result[0], ast.Binary)

  def test_reports_every_syntax_error(self, parser):
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("var = 1;\nprint ;\n")
    diagnostics = exc_info.value.diagnostics
    assert len(diagnostics) == 2
    assert [d['line'] for d in diagnostics] == [1, 2]
    assert "Expected identifier" in str(exc_info.value)

  def test_recovers_inside_block(self, parser):
    source = "{\n  var = 1;\n  print 2;\n}\nprint ;"
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string(source)
    assert [d['line'] for d in exc_info.value.diagnostics] == [2, 5]

  def test_recovery_keeps_fatal_message(self, parser):
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("1 = 2;\nprint ;")
    messages = [d['message'] for d in exc_info.value.diagnostics]
    assert messages == ["Invalid assignment target.", "Expected expression"]

  def test_messages_name_grammar_rules(self, parser):
    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("var 1 = 2;")
    assert exc_info.value.message == "Expected identifier"
    assert (exc_info.value.line, exc_info.value.column) == (1, 5)

    with pytest.raises(LoxParseError) as exc_info:
      parser.parse_string("print ;")
    assert exc_info.value.message == "Expected expression"
    assert "Re:" not in str(exc_info.value)

  def test_identifier_column_after_indentation(self, parser):
    statement = parser.parse_string("{\n    print   value;\n}")[0]
    variable = statement.statements[0].expression
    assert (variable.name.line, variable.name.column) == (2, 13)

  def test_identifier_may_start_with_keyword(self, parser):
    statement = parser.parse_string("var classy = 1;")[0]
    assert statement.name.lexeme == "classy"
