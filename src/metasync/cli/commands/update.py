"""Commands for reconciling configured rules."""

import typer

from metasync.cli.common.context import AppContext
from metasync.cli.common.exits import die, exit_from_exc, warn_exit
from metasync.cli.common.options import KeepWorkdirOpt, StrictOpt
from metasync.cli.common.output import out
from metasync.cli.common.progress import RichRunProgress
from metasync.cli.tui import select_rule
from metasync.core.config import Rule, find_rule
from metasync.core.errors import ConfigurationError, MetasyncError
from metasync.core.sync import run_rule


def _resolve_rule(appctx: AppContext, name: str | None) -> Rule:
    """Find the named rule, or prompt for one when no name was given."""
    if name:
        try:
            return find_rule(appctx.rules, name)
        except ConfigurationError as exc:
            exit_from_exc(exc, message=str(exc), code=1)

    if not appctx.rules:
        die(f"No rules defined in {appctx.config_path}", code=1)
    if not any(r.metadata for r in appctx.rules):
        die(f"No rule in {appctx.config_path} lists metadata types", code=1)
    selected = select_rule(appctx.rules)
    if selected is None:
        warn_exit("No rule selected", code=0)
    return selected


def update(
    ctx: typer.Context,
    rule: str | None = typer.Argument(None, help="Name of the rule to update"),
    strict: bool | None = StrictOpt,
    keep_workdir: bool = KeepWorkdirOpt,
):
    """
    Build and update a given rule.
    """
    appctx: AppContext = ctx.obj
    selected = _resolve_rule(appctx, rule)

    out.header(f"Updating {selected.name}")
    out.kv({"origin": selected.origin_url, "repo": selected.repo, "branch": selected.branch})
    if keep_workdir or selected.debug:
        out.info("The working tree will be kept after the run")
    try:
        with RichRunProgress() as progress:
            result = run_rule(
                selected,
                progress=progress,
                keep_workdir=keep_workdir,
                strict=strict,
            )
    except MetasyncError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if result.passes:
        out.pass_results_table(result.passes)
    if result.skipped_types:
        out.warn(f"Unknown metadata types skipped: {', '.join(result.skipped_types)}")
    if result.failed_passes:
        out.warn(f"{len(result.failed_passes)} pass(es) failed, see debug.log")
    out.success(f"Published commit {result.commit_id} to {selected.branch}")


def rules(ctx: typer.Context):
    """
    List the rules defined in the config file.
    """
    appctx: AppContext = ctx.obj
    if not appctx.rules:
        warn_exit(f"No rules defined in {appctx.config_path}", code=0)
    out.rules_table(appctx.rules, title=f"Rules ({appctx.config_path})")
