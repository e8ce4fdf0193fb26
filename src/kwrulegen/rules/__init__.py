"""Rules domain: keyword line grammar, input expansion, and the rule store."""

from kwrulegen.rules.line_parser import (
    GLOBAL_GROUP,
    LOCAL_GROUP,
    KeywordDeclaration,
    format_declaration,
    is_skippable,
    parse_line,
)
from kwrulegen.rules.store import FileRuleSet, GlobalConflict, IngestError, RuleStore
from kwrulegen.rules.traversal import ExpandedInputs, expand_inputs

__all__ = [
    "GLOBAL_GROUP",
    "LOCAL_GROUP",
    "ExpandedInputs",
    "FileRuleSet",
    "GlobalConflict",
    "IngestError",
    "KeywordDeclaration",
    "RuleStore",
    "expand_inputs",
    "format_declaration",
    "is_skippable",
    "parse_line",
]
