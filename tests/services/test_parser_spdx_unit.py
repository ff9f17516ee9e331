"""
test: services/policy/parser_spdx.py

Test unitari per il tokenizer e il parser delle espressioni di licenza SPDX.
Verificano la gestione degli spazi, la precedenza degli operatori
(WITH > AND > OR), le parentesi e gli errori di sintassi, che devono sempre
produrre un `ParseError` con token e posizione.
"""

import pytest
from sbom_policy.services.policy import ParseError
from sbom_policy.services.policy import parser_spdx as ps

# ==================================================================================
#                                   TEST: TOKENIZER
# ==================================================================================

def test_tokenize_whitespace_removal():
    """
    Verifica che spazi, tab e newline vengano trattati come separatori
    e che le parentesi diventino token separati.
    """
    expr = " Apache-2.0\tAND (\tMIT OR GPL-2.0-only )\n"
    assert ps.tokenize(expr) == ["Apache-2.0", "AND", "(", "MIT", "OR", "GPL-2.0-only", ")"]


def test_tokenize_parens_without_spaces():
    """Le parentesi sono isolate anche quando attaccate agli identificatori."""
    assert ps.tokenize("(MIT OR Apache-2.0)AND(BSD-3-Clause)") == [
        "(", "MIT", "OR", "Apache-2.0", ")", "AND", "(", "BSD-3-Clause", ")"
    ]


def test_tokenize_empty_input():
    assert ps.tokenize("") == []
    assert ps.tokenize(" \t\n") == []


def test_tokenize_preserves_case():
    """Il testo dei token non viene normalizzato (operatori inclusi)."""
    assert ps.tokenize("mit and apache-2.0") == ["mit", "and", "apache-2.0"]


@pytest.mark.parametrize("expr", [
    " Apache-2.0\tAND (\tMIT OR GPL-2.0-only )\n",
    "((MIT))",
    "GPL-2.0-or-later WITH Classpath-exception-2.0 OR MIT",
])
def test_tokenize_idempotent(expr):
    """Riunire i token con spazi singoli e ritokenizzare restituisce la stessa sequenza."""
    tokens = ps.tokenize(expr)
    assert ps.tokenize(" ".join(tokens)) == tokens

# ==================================================================================
#                                   TEST: PARSER
# ==================================================================================

def test_parse_simple_leaf():
    node = ps.parse_spdx("MIT")
    assert isinstance(node, ps.Leaf)
    assert node.is_simple
    assert node.valid
    assert node.value == "MIT"


def test_parse_and_binds_tighter_than_or():
    """`A OR B AND C` deve essere letto come `A OR (B AND C)`."""
    node = ps.parse_spdx("MIT OR Apache-2.0 AND GPL-2.0-only")
    assert isinstance(node, ps.Or)
    assert isinstance(node.left, ps.Leaf)
    assert isinstance(node.right, ps.And)
    assert not node.is_simple


def test_parse_parentheses_override_precedence():
    node = ps.parse_spdx("(MIT OR Apache-2.0) AND GPL-2.0-only")
    assert isinstance(node, ps.And)
    assert isinstance(node.left, ps.Or)


def test_parse_with_binds_tightest():
    node = ps.parse_spdx("GPL-2.0-or-later WITH Classpath-exception-2.0 AND MIT")
    assert isinstance(node, ps.And)
    assert isinstance(node.left, ps.With)
    assert node.left.left.value == "GPL-2.0-or-later"
    assert node.left.exception == "Classpath-exception-2.0"


def test_parse_chain_is_left_associative():
    node = ps.parse_spdx("A AND B AND C")
    assert isinstance(node, ps.And)
    assert isinstance(node.left, ps.And)
    assert node.right.value == "C"


def test_parse_invalid_id_is_recorded_not_rejected():
    """Un id con sintassi non valida non interrompe il parsing: la foglia viene marcata."""
    node = ps.parse_spdx("MIT OR Foo?Bar")
    leaves = list(ps.iter_leaves(node))
    assert [leaf.value for leaf in leaves] == ["MIT", "Foo?Bar"]
    assert leaves[0].valid
    assert not leaves[1].valid


def test_parse_unary_plus():
    node = ps.parse_spdx("GPL-2.0+")
    assert node.has_plus
    assert node.valid


@pytest.mark.parametrize("expr,token,position", [
    ("", None, 0),
    ("MIT AND", None, 2),
    ("AND MIT", "AND", 0),
    ("MIT OR OR Apache-2.0", "OR", 2),
    ("(MIT OR Apache-2.0", None, 4),
    ("MIT OR Apache-2.0)", ")", 3),
    ("MIT Apache-2.0", "Apache-2.0", 1),
    ("MIT WITH", None, 2),
    ("MIT WITH )", ")", 2),
    ("()", ")", 1),
    ("(MIT) WITH Classpath-exception-2.0", "WITH", 3),
    ("MIT and Apache-2.0", "and", 1),
])
def test_parse_errors_report_token_and_position(expr, token, position):
    """Ogni input malformato produce un ParseError con il token incriminato e la sua posizione."""
    with pytest.raises(ParseError) as exc_info:
        ps.parse_spdx(expr)
    assert exc_info.value.token == token
    assert exc_info.value.position == position


def test_parse_depth_limit():
    """Una nidificazione patologica fallisce subito con ParseError invece di esaurire lo stack."""
    expr = "(" * 100 + "MIT" + ")" * 100
    with pytest.raises(ParseError) as exc_info:
        ps.parse_spdx(expr, max_depth=10)
    assert exc_info.value.token == "("
    assert exc_info.value.position == 10

    assert ps.parse_spdx("(" * 10 + "MIT" + ")" * 10, max_depth=10).value == "MIT"


def test_parse_long_chain_does_not_recurse():
    """Catene lunghissime AND/OR restano gestibili (parsing e rendering iterativi)."""
    expr = " AND ".join(f"Lic-{i}" for i in range(5000))
    node = ps.parse_spdx(expr)
    assert str(node) == expr
    assert len(list(ps.iter_leaves(node))) == 5000

# ==================================================================================
#                                   TEST: RENDERING
# ==================================================================================

@pytest.mark.parametrize("expr,expected", [
    ("  MIT  ", "MIT"),
    ("(MIT OR Apache-2.0) AND GPL-2.0-only", "(MIT OR Apache-2.0) AND GPL-2.0-only"),
    ("((MIT AND Apache-2.0)) OR Zlib", "MIT AND Apache-2.0 OR Zlib"),
    ("GPL-2.0-only WITH\tClasspath-exception-2.0", "GPL-2.0-only WITH Classpath-exception-2.0"),
])
def test_render_canonical_expression(expr, expected):
    assert str(ps.parse_spdx(expr)) == expected


def test_repr():
    assert repr(ps.parse_spdx("MIT AND Apache-2.0")) == "And(Leaf(MIT), Leaf(Apache-2.0))"
