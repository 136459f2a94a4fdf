"""
Feat — Configuration parsing.

Public API::

    from parsing import ConfigFileParser, ParsedSpec
"""
from parsing.config_parser import ConfigFileParser, ParsedSpec, parse_parameter

__all__ = ["ConfigFileParser", "ParsedSpec", "parse_parameter"]
