"""qb-dev CLI — build and maintain Quickbase apps as code."""

import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from qbdev import __version__
from qbdev.errors import NotFoundError, QbDevError

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--project-dir",
    "-C",
    default=None,
    type=click.Path(file_okay=False),
    help="Project root (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every API call")
@click.pass_context
def main(ctx: click.Context, project_dir: str | None, verbose: bool):
    """qb-dev — Quickbase Development Tools.

    Describe Quickbase applications as YAML documents under apps/, then
    deploy, pull, validate and diff them against the live realm.
    """
    from qbdev.config import load_settings

    _configure_logging(verbose)
    try:
        ctx.obj = load_settings(project_dir)
    except QbDevError as e:
        _fail("Configuration", e)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("qbdev")
    logger.handlers[:] = [
        RichHandler(console=err_console, show_time=False, show_path=False, markup=False)
    ]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _fail(action: str, error: Exception):
    console.print(f"[red]{action} failed:[/] {escape(str(error))}", highlight=False)
    sys.exit(1)


def _client(settings):
    from qbdev.api.client import QuickbaseClient

    if not settings.realm or not settings.user_token:
        raise QbDevError(
            "Quickbase credentials missing. Set QB_REALM and QB_USER_TOKEN "
            "(or run 'qb-dev init')."
        )
    return QuickbaseClient.from_settings(settings)


# ── Init ─────────────────────────────────────────────────────────────


def _check_realm(ctx, param, value: str) -> str:
    if not value:
        raise click.BadParameter("Realm is required")
    if ".quickbase.com" not in value:
        raise click.BadParameter("Realm must end with .quickbase.com")
    return value


@main.command()
@click.option("--project-name", prompt="Project name", default="my-quickbase-app")
@click.option(
    "--realm",
    prompt="Quickbase realm (e.g., company.quickbase.com)",
    callback=_check_realm,
)
@click.option("--user-token", prompt="Quickbase user token", hide_input=True)
@click.option("--force", is_flag=True, help="Overwrite an existing configuration without asking")
@click.pass_obj
def init(settings, project_name: str, realm: str, user_token: str, force: bool):
    """Initialize a new Quickbase development project."""
    from qbdev.scaffold import ProjectScaffold

    scaffold = ProjectScaffold(settings.root)
    if scaffold.is_initialized and not force:
        if not click.confirm(
            "Project already initialized. Overwrite existing configuration?", default=False
        ):
            console.print("[yellow]Initialization cancelled[/]")
            return

    result = scaffold.initialize(project_name, realm, user_token)
    for path in result["files"]:
        console.print(f"  [green]+[/] {path.relative_to(settings.root)}")

    console.print("\n[green]Project initialized successfully![/]\n")
    console.print("[cyan]Next steps:[/]")
    console.print("1. Review and modify the example app schema in apps/example-app.yaml")
    console.print("2. Run 'qb-dev validate example-app' to check it")
    console.print("3. Run 'qb-dev deploy example-app' to deploy the example app")


# ── Deploy ───────────────────────────────────────────────────────────


@main.command()
@click.argument("app_name", required=False)
@click.option("--dry-run", "-d", is_flag=True, help="Show what would change without deploying")
@click.pass_obj
def deploy(settings, app_name: str | None, dry_run: bool):
    """Deploy an app to Quickbase (all apps when APP_NAME is omitted)."""
    from qbdev.store import SchemaStore

    store = SchemaStore(settings)
    try:
        names = [app_name] if app_name else store.list_names()
        if not names:
            console.print("[yellow]No app schemas found in apps/.[/]")
            return

        with _client(settings) as client:
            for name in names:
                if dry_run:
                    _plan_one(store, client, name)
                else:
                    _deploy_one(store, client, name)
    except QbDevError as e:
        _fail("Deployment", e)


def _deploy_one(store, client, name: str) -> None:
    from qbdev.sync.deploy import Deployer, DeployOp

    local = store.load(name)
    console.print(f"\n[bold blue]qb-dev[/] — Deploying: {name}\n")

    deployer = Deployer(client, persist=lambda app: store.save(name, app))
    try:
        app = deployer.apply(local)
    finally:
        # Ids captured before a failure are still worth keeping.
        if local.id:
            store.save(name, local)

    log = deployer.log
    console.print(
        f"\n[green]Deployed[/] {app.get('name', local.name)} ({local.id}): "
        f"{log.count(DeployOp.CREATED)} created, "
        f"{log.count(DeployOp.UPDATED)} updated, "
        f"{log.count(DeployOp.REPLACED)} replaced"
    )
    for action in log.unsupported:
        console.print(f"  [yellow]![/] {action.entity} '{action.key}' skipped (not supported)")


def _plan_one(store, client, name: str) -> None:
    from qbdev.sync.diff import diff
    from qbdev.sync.fetch import SchemaFetcher

    local = store.load(name)
    console.print(f"\n[bold yellow]Dry run[/] — no changes will be made for: {name}\n")

    if local.id:
        try:
            remote = SchemaFetcher(client).fetch(local.id)
        except NotFoundError:
            remote = None
    else:
        remote = None

    if remote is None:
        console.print(f"App '{local.name}' does not exist remotely and would be created with:")
        for table in local.tables:
            console.print(f"  [green]+[/] {table.name} ({len(table.fields)} fields)")
        return

    _print_delta(diff(local, remote))


# ── Pull ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("app_id")
@click.argument("app_name", required=False)
@click.option("--overwrite", "-o", is_flag=True, help="Overwrite existing local schema")
@click.pass_obj
def pull(settings, app_id: str, app_name: str | None, overwrite: bool):
    """Pull an existing app from Quickbase into apps/."""
    from qbdev.store import SchemaStore
    from qbdev.sync.fetch import SchemaFetcher

    store = SchemaStore(settings)
    try:
        with _client(settings) as client:
            fetcher = SchemaFetcher(client)
            remote = fetcher.fetch(app_id)

        name = app_name or remote.name
        if store.exists(name) and not overwrite:
            raise QbDevError(f"apps/{name}.yaml already exists (use --overwrite to replace it)")

        store.save(name, remote)
    except QbDevError as e:
        _fail("Pull", e)

    for warning in fetcher.warnings:
        console.print(f"  [yellow]![/] {warning.warning}", highlight=False)
    console.print(
        f"[green]Pulled[/] {remote.name} ({len(remote.tables)} tables) into apps/{name}.yaml"
    )


# ── Validate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("app_name", required=False)
@click.pass_obj
def validate(settings, app_name: str | None):
    """Validate app schemas (all apps when APP_NAME is omitted)."""
    from qbdev.store import SchemaStore

    store = SchemaStore(settings)
    try:
        names = [app_name] if app_name else store.list_names()
        results = [store.validate(name) for name in names]
    except QbDevError as e:
        _fail("Validation", e)

    if not results:
        console.print("[yellow]No app schemas found in apps/.[/]")
        return

    failed = False
    for result in results:
        if result.passed:
            console.print(f"  [green]v[/] {result.name} schema is valid")
            continue
        failed = True
        console.print(f"  [red]x[/] {result.name} schema has errors:")
        for issue in result.issues:
            console.print(f"      {issue}", highlight=False, markup=False)

    if failed:
        sys.exit(1)


# ── Diff ─────────────────────────────────────────────────────────────


@main.command(name="diff")
@click.argument("app_name")
@click.option("--json", "as_json", is_flag=True, help="Print the differences as JSON")
@click.pass_obj
def diff_command(settings, app_name: str, as_json: bool):
    """Compare local and remote app schemas."""
    from qbdev.store import SchemaStore
    from qbdev.sync.diff import diff
    from qbdev.sync.fetch import SchemaFetcher

    store = SchemaStore(settings)
    try:
        local = store.load(app_name)
        if not local.id:
            console.print("[yellow]App has not been deployed yet[/]")
            return

        with _client(settings) as client:
            remote = SchemaFetcher(client).fetch(local.id)
    except QbDevError as e:
        _fail("Diff", e)

    delta = diff(local, remote)
    if as_json:
        click.echo(json.dumps(delta.to_dict(), indent=2))
    else:
        _print_delta(delta)


def _print_delta(delta) -> None:
    console.print("[bold]Schema Differences[/]\n")
    if not delta.has_changes:
        console.print("[green]Local and remote schemas match.[/]")
        return

    if delta.app:
        console.print("[yellow]App Configuration:[/]")
        for key, change in delta.app.items():
            _print_property(key, change, indent="  ")
        console.print()

    if delta.tables.added:
        console.print("[green]New Tables:[/]")
        for table in delta.tables.added:
            console.print(f"  + {table.name}")
        console.print()

    if delta.tables.removed:
        console.print("[red]Removed Tables:[/]")
        for table in delta.tables.removed:
            console.print(f"  - {table.name}")
        console.print()

    if delta.tables.modified:
        console.print("[yellow]Modified Tables:[/]")
        for change in delta.tables.modified:
            console.print(f"  ~ {change.name}")
            for key, prop in change.changes.items():
                _print_property(key, prop, indent="      ")
            _print_children("Fields", change.fields, lambda f: f"{f.label} ({f.field_type})")
            _print_children("Reports", change.reports, lambda r: r.name)
        console.print()

    if delta.webhooks.has_changes:
        console.print("[bold]Webhooks:[/]")
        _print_children("Webhooks", delta.webhooks, lambda w: w.name, indent="  ")

    console.print(f"[dim]{delta.summary()}[/]")


def _print_children(title: str, delta, label, indent: str = "    ") -> None:
    if delta.added:
        console.print(f"{indent}[green]New {title}:[/]")
        for entity in delta.added:
            console.print(f"{indent}  + {label(entity)}", highlight=False)
    if delta.removed:
        console.print(f"{indent}[red]Removed {title}:[/]")
        for entity in delta.removed:
            console.print(f"{indent}  - {label(entity)}", highlight=False)
    if delta.modified:
        console.print(f"{indent}[yellow]Modified {title}:[/]")
        for change in delta.modified:
            console.print(f"{indent}  ~ {change.key}: {', '.join(change.changes)}", highlight=False)


def _print_property(key: str, change, indent: str) -> None:
    if change.type == "added":
        console.print(f"{indent}[green]+ {key}: {json.dumps(change.local)}[/]", highlight=False)
    elif change.type == "removed":
        console.print(f"{indent}[red]- {key}: {json.dumps(change.remote)}[/]", highlight=False)
    else:
        console.print(f"{indent}[yellow]~ {key}:[/]")
        console.print(f"{indent}  [red]- {json.dumps(change.remote)}[/]", highlight=False)
        console.print(f"{indent}  [green]+ {json.dumps(change.local)}[/]", highlight=False)


# ── Schema ───────────────────────────────────────────────────────────


@main.command(name="schema")
def dump_schema():
    """Print the shape of an app schema document as JSON."""
    from qbdev.schema.shape import get_shape

    click.echo(json.dumps(get_shape(), indent=2))


@main.command(name="list")
@click.pass_obj
def list_apps(settings):
    """List the app schemas in apps/."""
    from qbdev.store import SchemaStore

    store = SchemaStore(settings)
    names = store.list_names()
    if not names:
        console.print("[yellow]No app schemas found in apps/.[/]")
        return

    table = Table(title=f"App Schemas ({len(names)})")
    table.add_column("Name", style="cyan")
    table.add_column("App ID")
    table.add_column("Tables", justify="right")
    table.add_column("Status")

    for name in names:
        result = store.validate(name)
        if result.passed:
            table.add_row(name, result.app.id or "-", str(len(result.app.tables)), "[green]valid[/]")
        else:
            table.add_row(name, "-", "-", f"[red]{len(result.issues)} issue(s)[/]")

    console.print(table)


if __name__ == "__main__":
    main()
