"""kwrulegen CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from kwrulegen import __version__
from kwrulegen.config import ConfigError, GeneratorConfig, load_config
from kwrulegen.rules.store import GlobalConflict


def _setup_logging(*, debug: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=debug)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _load(
    config_path: Path | None, root: Path, **overrides: object
) -> GeneratorConfig:
    """Read the config file and apply command-line overrides, exiting 2 on bad values."""
    try:
        return load_config(config_path, root=root).with_overrides(**overrides)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)


_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: ./kwrulegen.yml if present).",
)


_single_outfile_option = click.option(
    "--single-outfile/--multi-outfile",
    default=None,
    help="Write every input's rules to one file.",
)

_join_scores_option = click.option(
    "--join-scores/--separate-scores",
    default=None,
    help="Keep scores beside rule definitions or in *_SCORES.cf files.",
)


@click.group()
@click.version_option(version=__version__, prog_name="kwrulegen")
@click.option("--debug", is_flag=True, help="Verbose diagnostics.")
@click.pass_context
def main(ctx: click.Context, *, debug: bool) -> None:
    """kwrulegen - SpamAssassin keyword rule generator."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    _setup_logging(debug=debug)


@main.command()
@click.argument("inputs", nargs=-1, required=True)
@_config_option
@click.option("--id", "rule_id", default=None, help="Rule name prefix (default: KW).")
@click.option("--priority", type=int, default=None, help="Load-order number (default: 50).")
@click.option(
    "--dir",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: ./<ID>).",
)
@_single_outfile_option
@_join_scores_option
@click.option(
    "--global-conflict",
    type=click.Choice([c.value for c in GlobalConflict]),
    default=None,
    help="Handling of a word declared GLOBAL in several files.",
)
@click.option("--strict", is_flag=True, default=False, help="Exit 1 on any input failure.")
@click.option("--verify", is_flag=True, default=False, help="Lint output with spamassassin.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.pass_context
def generate(
    ctx: click.Context,
    inputs: tuple[str, ...],
    *,
    config_path: Path | None,
    rule_id: str | None,
    priority: int | None,
    out_dir: Path | None,
    single_outfile: bool | None,
    join_scores: bool | None,
    global_conflict: str | None,
    strict: bool,
    verify: bool,
    fmt: str | None,
) -> None:
    """Generate rule files from keyword lists, directories or globs.

    Exit codes: 0 = success, 1 = input/write/verify problems with --strict
    (verify failures always), 2 = configuration or naming error.
    """
    from kwrulegen.builder import GenerationError, build
    from kwrulegen.builder import format_json as _format_json
    from kwrulegen.builder import format_porcelain as _format_porcelain
    from kwrulegen.builder import format_rich as _format_rich

    config = _load(
        config_path,
        Path.cwd(),
        id=rule_id,
        priority=priority,
        dir=out_dir,
        single_outfile=single_outfile,
        join_scores=join_scores,
        global_conflict=global_conflict,
        debug=True if ctx.obj.get("debug") else None,
    )
    if config.debug and not ctx.obj.get("debug"):
        _setup_logging(debug=True)

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = build(list(inputs), config, verify=verify)
    except GenerationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if result.verification is not None and not result.verification.ok:
        sys.exit(1)
    if strict and not result.ok:
        sys.exit(1)


@main.command("parse")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def parse_cmd(*, file: Path, as_json: bool) -> None:
    """Show how each line of FILE is understood."""
    from kwrulegen.rules.line_parser import is_skippable, parse_line

    parsed = [
        (lineno, line, parse_line(line))
        for lineno, line in enumerate(file.read_text(encoding="utf-8").splitlines(), start=1)
        if not is_skippable(line)
    ]

    if as_json:
        rows = [
            {
                "line": lineno,
                "text": line,
                "valid": decl is not None,
                "word": decl.word if decl else None,
                "score": decl.score if decl else None,
                "groups": list(decl.groups) if decl else [],
                "comment": decl.comment if decl else None,
            }
            for lineno, line, decl in parsed
        ]
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2))
    else:
        from rich.console import Console
        from rich.table import Table
        from rich.text import Text

        table = Table(title=str(file))
        table.add_column("line", justify="right")
        table.add_column("word", style="cyan")
        table.add_column("score", justify="right")
        table.add_column("groups")
        table.add_column("comment")
        for lineno, line, decl in parsed:
            if decl is None:
                table.add_row(str(lineno), Text(f"invalid: {line}", style="red"), "", "", "")
                continue
            table.add_row(
                str(lineno),
                decl.word,
                str(decl.score) if decl.score else "",
                ", ".join(decl.groups),
                decl.comment,
            )
        Console().print(table)

    if any(decl is None for _, _, decl in parsed):
        sys.exit(1)


@main.command("verify")
@click.argument(
    "directory",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@_config_option
def verify_cmd(*, directory: Path | None, config_path: Path | None) -> None:
    """Lint generated rules in DIRECTORY with spamassassin."""
    from kwrulegen.verify import verify_output

    target = directory or _load(config_path, Path.cwd()).output_dir
    result = verify_output(target)
    if result.output:
        click.echo(result.output)
    if not result.ok:
        click.echo(f"Verification failed for {target}", err=True)
        sys.exit(1)
    click.echo(f"✓ {target} passed lint")


@main.command("clean")
@click.argument("inputs", nargs=-1, required=True)
@_config_option
@click.option("--id", "rule_id", default=None, help="Rule name prefix (default: KW).")
@click.option("--priority", type=int, default=None, help="Load-order number (default: 50).")
@click.option(
    "--dir",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: ./<ID>).",
)
@_single_outfile_option
@_join_scores_option
def clean_cmd(
    inputs: tuple[str, ...],
    *,
    config_path: Path | None,
    rule_id: str | None,
    priority: int | None,
    out_dir: Path | None,
    single_outfile: bool | None,
    join_scores: bool | None,
) -> None:
    """Remove the files a generation from INPUTS would write.

    Exit codes: 0 = success, 1 = a file could not be removed,
    2 = configuration or naming error.
    """
    from kwrulegen.builder import GenerationError, KeywordRuleGenerator

    config = _load(
        config_path,
        Path.cwd(),
        id=rule_id,
        priority=priority,
        dir=out_dir,
        single_outfile=single_outfile,
        join_scores=join_scores,
    )
    kw = KeywordRuleGenerator(config)
    for failure in kw.read_all(list(inputs)):
        click.echo(f"  [warn] {failure}", err=True)
    try:
        removed, errors = kw.clean_dir()
    except GenerationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    for path in removed:
        click.echo(f"Removed {path}")
    for error in errors:
        click.echo(f"Error: {error}", err=True)
    if not removed and not errors:
        click.echo("Nothing to remove.")
    if errors:
        sys.exit(1)
