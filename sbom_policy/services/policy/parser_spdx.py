"""
This module implements the SPDX license expression tokenizer and parser.
It constructs an Abstract Syntax Tree (AST) composed of Leaf, And, Or and
With nodes.

Grammar (WITH binds tightest, then AND, then OR; parentheses override):

    expr     := orTerm
    orTerm   := andTerm ("OR" andTerm)*
    andTerm  := unary ("AND" unary)*
    unary    := simpleId ["WITH" exceptionId] | "(" expr ")"

Operators are matched case-sensitively. Malformed input raises `ParseError`;
a syntactically invalid license id does not: the leaf is kept and flagged
(`Leaf.valid`) so that it evaluates to UNDEFINED.
"""

import logging
from typing import Iterator, List, Optional

from sbom_policy.models.schemas import UsagePolicy
from .errors import ParseError
from .spdx_utils import AND, OR, WITH, PLUS_OPERATOR, has_unary_plus_operator, is_valid_spdx_id

logger = logging.getLogger(__name__)

LEFT_PARENS = "("
RIGHT_PARENS = ")"

_RESERVED_TOKENS = {AND, OR, WITH, LEFT_PARENS, RIGHT_PARENS}

DEFAULT_MAX_DEPTH = 64


class Node:
    """Base node. `usage_policy` is filled (once) by the evaluator."""
    is_simple = False

    def __init__(self):
        self.usage_policy: Optional[UsagePolicy] = None

    def children(self) -> List["Node"]:
        return []

    def __str__(self):
        return render(self)


class Leaf(Node):
    """
    Leaf node that represents a single license id, e.g. `MIT` or `GPL-2.0+`.
    """
    is_simple = True

    def __init__(self, value: str):
        super().__init__()
        self.value = value
        self.has_plus = has_unary_plus_operator(value)
        base = value[:-len(PLUS_OPERATOR)] if self.has_plus else value
        self.valid = is_valid_spdx_id(base)

    def __repr__(self):
        return f"Leaf({self.value})"


class With(Node):
    """
    A license id followed by a license exception (`<id> WITH <exception>`).
    """
    def __init__(self, left: Leaf, exception: str):
        super().__init__()
        self.left = left
        self.exception = exception

    def children(self) -> List[Node]:
        return [self.left]

    def __repr__(self):
        return f"With({self.left!r}, {self.exception})"


class _Binary(Node):
    operator = ""

    def __init__(self, left: Node, right: Node):
        super().__init__()
        self.left = left
        self.right = right

    def children(self) -> List[Node]:
        return [self.left, self.right]

    def __repr__(self):
        return f"{type(self).__name__}({self.left!r}, {self.right!r})"


class And(_Binary):
    operator = AND


class Or(_Binary):
    operator = OR


def walk_post_order(root: Node) -> Iterator[Node]:
    """
    Yields every node after its children, without recursion: AND/OR chains
    are left-deep and can be as long as the expression itself.
    """
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(node.children()):
            stack.append((child, False))


def render(root: Node) -> str:
    """Canonical text of a tree: single spaces, parentheses only where needed."""
    text = {}
    for node in walk_post_order(root):
        if isinstance(node, Leaf):
            text[id(node)] = node.value
        elif isinstance(node, With):
            text[id(node)] = f"{text[id(node.left)]} {WITH} {node.exception}"
        else:
            parts = []
            for child in node.children():
                part = text.pop(id(child))
                # OR binds looser than AND
                if isinstance(node, And) and isinstance(child, Or):
                    part = f"({part})"
                parts.append(part)
            text[id(node)] = f" {node.operator} ".join(parts)
    return text[id(root)]


def tokenize(expr: str) -> List[str]:
    """
    Splits an expression into ids, operators and parentheses.

    Any whitespace separates tokens; '(' and ')' are always tokens of their own.
    Token text is preserved verbatim.
    """
    if not expr:
        return []
    tokens: List[str] = []
    buf: List[str] = []
    for ch in expr:
        if ch in "()" or ch.isspace():
            if buf:
                tokens.append("".join(buf))
                buf = []
            if not ch.isspace():
                tokens.append(ch)
        else:
            buf.append(ch)
    if buf:
        tokens.append("".join(buf))
    return tokens


class _Parser:
    def __init__(self, tokens: List[str], max_depth: int):
        self.tokens = tokens
        self.max_depth = max_depth
        self.idx = 0
        self.depth = 0

    def peek(self) -> Optional[str]:
        return self.tokens[self.idx] if self.idx < len(self.tokens) else None

    def consume(self) -> str:
        t = self.tokens[self.idx]
        self.idx += 1
        return t

    def fail(self, message: str):
        raise ParseError(message, self.peek(), self.idx)

    def parse(self) -> Node:
        if not self.tokens:
            self.fail("empty license expression")
        node = self.parse_or()
        if self.peek() is not None:
            if self.peek() == RIGHT_PARENS:
                self.fail("unmatched closing parenthesis")
            self.fail("unexpected token")
        return node

    def parse_or(self) -> Node:
        left = self.parse_and()
        while self.peek() == OR:
            self.consume()
            left = Or(left, self.parse_and())
        return left

    def parse_and(self) -> Node:
        left = self.parse_unary()
        while self.peek() == AND:
            self.consume()
            left = And(left, self.parse_unary())
        return left

    def parse_unary(self) -> Node:
        t = self.peek()
        if t is None:
            self.fail("missing operand")
        if t == LEFT_PARENS:
            if self.depth >= self.max_depth:
                self.fail(f"parentheses nested deeper than {self.max_depth} levels")
            self.depth += 1
            self.consume()
            node = self.parse_or()
            if self.peek() != RIGHT_PARENS:
                self.fail("missing closing parenthesis")
            self.consume()
            self.depth -= 1
            return node
        if t in _RESERVED_TOKENS:
            self.fail("missing operand")

        leaf = Leaf(self.consume())
        if not leaf.valid:
            logger.debug("Invalid SPDX id `%s` at token %d", leaf.value, self.idx - 1)
        if self.peek() != WITH:
            return leaf
        self.consume()
        exception = self.peek()
        if exception is None or exception in _RESERVED_TOKENS:
            self.fail("missing license exception after WITH")
        return With(leaf, self.consume())


def parse_tokens(tokens: List[str], max_depth: int = DEFAULT_MAX_DEPTH) -> Node:
    """Builds the expression tree from a token list (see `tokenize`)."""
    return _Parser(tokens, max_depth).parse()


def parse_spdx(expr: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Node:
    """
    Tokenizes and parses an SPDX license expression.

    Raises:
        ParseError: on unmatched parentheses, missing operands, operators in
            leading/trailing position or nesting beyond `max_depth`.
    """
    tokens = tokenize(expr)
    logger.debug("Tokens: %s", tokens)
    root = parse_tokens(tokens, max_depth)
    logger.debug("Parsed expression `%s` (%d tokens)", expr, len(tokens))
    return root


def iter_leaves(node: Node) -> Iterator[Leaf]:
    """Yields the leaves of a tree from left to right."""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Leaf):
            yield current
        else:
            stack.extend(reversed(current.children()))
