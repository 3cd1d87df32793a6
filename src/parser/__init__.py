"""Interfaces for parsing JavaScript source code."""

from .es_parser import ParseError, ParseResult, parse_js

__all__ = ["ParseError", "ParseResult", "parse_js"]
