import json
import logging
import sys
from pathlib import Path

import click

from .pipeline import ConfigurationError, GeneratorConfig, PipelineGenerator


def collect_sources(paths, companion_suffix):
    """Expand directories into the Python files below them, skipping generated companions."""
    sources = []
    for path in map(Path, paths):
        candidates = sorted(path.rglob("*.py")) if path.is_dir() else [path]
        for candidate in candidates:
            if candidate.stem.endswith(companion_suffix) and path.is_dir():
                continue
            if candidate not in sources:
                sources.append(candidate)
    return sources


@click.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option(
    "--add-json-methods",
    is_flag=True,
    default=False,
    help="Add to_json/from_json members to the annotated classes in place",
)
@click.option("--no-companion", is_flag=True, default=False, help="Do not write the <stem>_json.py companion modules")
@click.option("--verbose", "-v", is_flag=True, default=False)
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, resolve_path=True))
def class_to_json_code(config, add_json_methods, no_companion, verbose, paths):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if config is not None:
        with open(config) as f:
            try:
                config = GeneratorConfig.from_dict(json.load(f))
            except json.JSONDecodeError as e:
                raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--config") from e
            except ConfigurationError as e:
                raise click.BadParameter(str(e), param_hint="--config") from e
    else:
        config = GeneratorConfig()

    # CLI flags override the config file
    if add_json_methods:
        config.add_json_methods = True
    if no_companion:
        config.output.write_companion = False

    codegen = PipelineGenerator(config)
    report = codegen.run(collect_sources(paths, config.output.companion_suffix))

    for diagnostic in report.diagnostics:
        click.echo(str(diagnostic), err=True)
    for unit in report.units:
        if unit.companion_written:
            click.echo(f"wrote {unit.companion_path}")
    for path in report.patches.changed_paths:
        click.echo(f"patched {path}")
    for outcome in report.patches.failed:
        click.echo(f"{outcome.path}: error: {outcome.error}", err=True)

    if not report.ok:
        sys.exit(1)
