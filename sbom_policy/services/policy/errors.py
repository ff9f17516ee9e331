"""
Exceptions raised by the license policy engine.

- ConfigError: the policy configuration cannot be read or decoded.
- IndexBuildError: the configuration decodes but cannot be indexed
  (e.g. two different policies for the same SPDX id).
- ParseError: a license expression was rejected by the tokenizer/parser.

The first two stop the startup; ParseError only affects the single
expression being evaluated.
"""

from typing import Optional


class PolicyError(Exception):
    """Base class for every error of the policy engine."""


class ConfigError(PolicyError):
    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{message}: `{source}`"
        super().__init__(message)


class IndexBuildError(PolicyError):
    def __init__(self, message: str, policy=None):
        # offending record, reported back to the caller
        self.policy = policy
        super().__init__(message)


class ParseError(PolicyError):
    def __init__(self, message: str, token: Optional[str], position: int):
        self.token = token
        self.position = position
        where = f"`{token}`" if token is not None else "end of expression"
        super().__init__(f"{message} at token {position} ({where})")
