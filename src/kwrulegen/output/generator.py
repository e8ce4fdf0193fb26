"""Rule generator: emit SpamAssassin directives from a populated rule store.

For each input file, three kinds of rules are produced, in this order:

1. Component rules, once per distinct word::

       body        __KW_FILE_WORD_BODY /\\bword\\b/i
       header      __KW_FILE_WORD_SUBJ Subject =~ /\\bword\\b/i
       meta        __KW_FILE_WORD ( __KW_FILE_WORD_BODY || __KW_FILE_WORD_SUBJ )

2. Scored words, a public alias of the component rule::

       meta        KW_FILE_WORD ( __KW_FILE_WORD )
       describe    KW_FILE_WORD Keyword 'word' found
       score       KW_FILE_WORD 2

3. Group thresholds, one per achievable match count::

       meta        KW_FILE_GROUP_2 ( __KW_FILE_WORD + __KW_FILE_OTHER ) >= 2
       describe    KW_FILE_GROUP_2 Found 2 GROUP words from KW_FILE
       score       KW_FILE_GROUP_2 0.01

GLOBAL thresholds come last, after every file, because they reference
component rules from several files.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from kwrulegen.output.paths import NamingError, file_segment
from kwrulegen.output.writer import OutputBuffers
from kwrulegen.rules.line_parser import LOCAL_GROUP

if TYPE_CHECKING:
    from kwrulegen.config import GeneratorConfig
    from kwrulegen.output.paths import PathResolver
    from kwrulegen.rules.line_parser import Score
    from kwrulegen.rules.store import RuleStore

logger = logging.getLogger(__name__)

DIRECTIVE_WIDTH = 12

_NON_WORD_RE = re.compile(r"\W", re.ASCII)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def rule_segment(text: str) -> str:
    """Upper-case *text* and replace anything not valid in a rule name with ``_``."""
    return _NON_WORD_RE.sub("_", text.upper())


def word_pattern(word: str) -> str:
    """Case-insensitive whole-word regex literal for *word*."""
    escaped = re.escape(word).replace("/", r"\/")
    return rf"/\b{escaped}\b/i"


def directive(kind: str, name: str, body: str) -> str:
    return f"{kind:<{DIRECTIVE_WIDTH}}{name} {body}\n"


def format_score(score: Score) -> str:
    return str(score)


def banner(title: str) -> list[str]:
    bar = "#" * (len(title) + 2)
    return [f"{bar}\n", f"# {title}\n", f"{bar}\n", "\n"]


def _claim(defined: dict[str, str], name: str, owner: str) -> None:
    if name in defined:
        msg = f"Rule name {name} is defined by both {defined[name]} and {owner}"
        raise NamingError(msg)
    defined[name] = owner


def threshold_rules(
    name: str, refs: list[str], describe: str, score: Score
) -> tuple[list[str], list[str]]:
    """Build ``>= k`` meta rules for k in 1..len(refs).

    Returns ``(rule_lines, score_lines)``; *describe* is formatted with
    ``count`` and ``plural``.
    """
    rules: list[str] = []
    scores: list[str] = []
    total = f"( {' + '.join(refs)} )"
    for count in range(1, len(refs) + 1):
        rule_name = f"{name}_{count}"
        rules.extend([directive("meta", rule_name, f"{total} >= {count}"), "\n"])
        text = describe.format(count=count, plural="s" if count > 1 else "")
        scores.extend(
            [
                directive("describe", rule_name, text),
                directive("score", rule_name, format_score(score)),
                "\n",
            ]
        )
    return rules, scores


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class RuleGenerator:
    """Walk a :class:`RuleStore` and fill output buffers.

    Per file the steps run metas -> scored -> groups; :meth:`generate_globals`
    runs once after every file.
    """

    def __init__(
        self, store: RuleStore, resolver: PathResolver, config: GeneratorConfig
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.config = config
        self.buffers = OutputBuffers()

    # -- naming -------------------------------------------------------------

    def prefix(self, source: str | None = None) -> str:
        """Rule name prefix: ``<ID>`` for GLOBAL, ``<ID>_<FILE>`` otherwise."""
        if source is None:
            return self.config.id
        return rule_segment(f"{self.config.id}_{file_segment(source)}")

    def component_name(self, source: str, word: str) -> str:
        return f"__{self.prefix(source)}_{rule_segment(word)}"

    def _check_names(self, sources: list[str]) -> None:
        prefixes: dict[str, str] = {}
        defined: dict[str, str] = {}
        for source in sources:
            prefix = self.prefix(source)
            if prefix in prefixes:
                msg = f"Input files {prefixes[prefix]} and {source} share rule prefix {prefix}"
                raise NamingError(msg)
            prefixes[prefix] = source

            segments: dict[str, str] = {}
            for word in self.store.component_words(source):
                segment = rule_segment(word)
                if segment in segments:
                    msg = (
                        f"Words '{segments[segment]}' and '{word}' in {source} "
                        f"share rule name {prefix}_{segment}"
                    )
                    raise NamingError(msg)
                segments[segment] = word

            rules = self.store.files[source]
            for word in segments.values():
                name = self.component_name(source, word)
                for rule_name in (name, f"{name}_BODY", f"{name}_SUBJ"):
                    _claim(defined, rule_name, f"word '{word}' in {source}")
            for word in rules.scored:
                _claim(
                    defined,
                    f"{prefix}_{rule_segment(word)}",
                    f"scored word '{word}' in {source}",
                )
            for group, members in rules.groups.items():
                name = prefix if group == LOCAL_GROUP else f"{prefix}_{group}"
                for count in range(1, len(members) + 1):
                    _claim(defined, f"{name}_{count}", f"group {group} in {source}")

        for count in range(1, len(self.store.global_index) + 1):
            _claim(defined, f"{self.prefix()}_{count}", "GLOBAL")

    def _rules_output(self, source: str) -> list[str]:
        return self.buffers.for_path(self.resolver.outfile(source))

    def _scores_output(self, source: str) -> list[str]:
        return self.buffers.for_path(self.resolver.scores_outfile(source))

    # -- per-file steps -----------------------------------------------------

    def generate_metas(self, source: str) -> None:
        """Component rules for every distinct word of *source*."""
        prefix = self.prefix(source)
        output = self._rules_output(source)
        logger.debug("Writing metas for %s", source)
        rules = self.store.files.get(source)
        comments = rules.comments if rules is not None else {}

        if self.config.single_outfile:
            output.extend(banner(f"Metas for {prefix}"))
        for word in self.store.component_words(source):
            name = self.component_name(source, word)
            if comments.get(word):
                output.append(f"# {comments[word]}\n")
            pattern = word_pattern(word)
            output.extend(
                [
                    directive("body", f"{name}_BODY", pattern),
                    directive("header", f"{name}_SUBJ", f"Subject =~ {pattern}"),
                    directive("meta", name, f"( {name}_BODY || {name}_SUBJ )"),
                    "\n",
                ]
            )

    def generate_scored(self, source: str) -> None:
        """Public rules for words with a standalone score."""
        rules = self.store.files.get(source)
        if rules is None or not rules.scored:
            return
        prefix = self.prefix(source)
        output = self._rules_output(source)
        scores = self._scores_output(source)

        if self.config.single_outfile:
            output.extend(banner(f"Scored words for {prefix}"))
        for word in sorted(rules.scored):
            name = f"{prefix}_{rule_segment(word)}"
            output.append(directive("meta", name, f"( {self.component_name(source, word)} )"))
            description = rules.comments.get(word) or f"Keyword '{word}' found"
            scores.extend(
                [
                    directive("describe", name, description),
                    directive("score", name, format_score(rules.scored[word])),
                    "\n",
                ]
            )

    def generate_groups(self, source: str) -> None:
        """Threshold rules for every group of *source*."""
        rules = self.store.files.get(source)
        if rules is None or not rules.groups:
            return
        prefix = self.prefix(source)
        output = self._rules_output(source)
        scores = self._scores_output(source)

        if self.config.single_outfile:
            output.extend(banner(f"Groups for {prefix}"))
        for group in sorted(rules.groups):
            name = prefix if group == LOCAL_GROUP else f"{prefix}_{group}"
            refs = [self.component_name(source, w) for w in rules.groups[group]]
            output.append(f"# {group}\n")
            rule_lines, score_lines = threshold_rules(
                name,
                refs,
                f"Found {{count}} {group} word{{plural}} from {prefix}",
                self.config.group_score,
            )
            output.extend(rule_lines)
            scores.extend(score_lines)

    # -- terminal step ------------------------------------------------------

    def generate_globals(self) -> None:
        """Threshold rules over GLOBAL words, referencing each word's origin file."""
        index = self.store.global_index
        if not index:
            return
        output = self.buffers.for_path(self.resolver.global_outfile())
        scores = self.buffers.for_path(self.resolver.global_scores_outfile())
        prefix = self.prefix()

        if self.config.single_outfile:
            output.extend(banner("Globals"))
        refs = [self.component_name(index[word], word) for word in sorted(index)]
        rule_lines, score_lines = threshold_rules(
            prefix,
            refs,
            f"Found {{count}} GLOBAL word{{plural}} from {prefix}",
            self.config.group_score,
        )
        output.extend(rule_lines)
        scores.extend(score_lines)

    def generate(self) -> OutputBuffers:
        """Run every step for every file, then GLOBAL.

        Raises
        ------
        NamingError
            When artifacts or rule names cannot be made unique.
        """
        sources = sorted(self.store.files)
        self._check_names(sources)
        self.resolver.resolve_all(
            sources,
            include_global=bool(self.store.global_index) or self.config.single_outfile,
        )
        for source in sources:
            self.generate_metas(source)
            self.generate_scored(source)
            self.generate_groups(source)
        self.generate_globals()
        return self.buffers
