import sys
import os
import click
from pathlib import Path
from rich import print
from rich.markup import escape

from voido import __version__
from voido.controller import Controller
from voido.errors import StartupError, VoidoError
from voido.import_export import export_json, export_xlsx, import_json, import_xlsx
from voido.item import Status, make_task, parse_subtask_spec
from voido.model import DatabaseManager
from voido.search import match
from voido.view import VoidoApp, build_table
from voido.voido_env import VoidoEnvironment

VERSION = __version__

FORMATS = ("json", "xlsx")


def ensure_database(db_path: Path):
    print(f"[yellow]⚠️ [/yellow]Database not found. Creating new database at {db_path}")
    DatabaseManager(db_path).close()


def startup_failed(e: StartupError):
    print(f"[red]✘ Cannot start voido:[/red] {escape(str(e))}")
    sys.exit(1)


def report(e: Exception):
    print(f"[red]✘ {escape(str(e))}[/red]")


def open_controller(ctx) -> Controller:
    try:
        return Controller(ctx.obj["DB"], ctx.obj["ENV"])
    except StartupError as e:
        startup_failed(e)


def format_for(path: Path, fmt: str | None) -> str:
    if fmt:
        return fmt
    suffix = path.suffix.lower().lstrip(".")
    if suffix in FORMATS:
        return suffix
    raise click.BadParameter(
        f"Cannot tell the format of {path}; use --format json or xlsx."
    )


def mask_key(key: str) -> str:
    """Only the last four characters of a long key are shown; short keys not at all."""
    if len(key) <= 8:
        return "*" * len(key)
    return "*" * (len(key) - 4) + key[-4:]


def print_table(ctrl: Controller, tasks, title: str | None = None):
    if not tasks:
        print("[yellow]No todos found.[/yellow]")
        return
    print(
        build_table(
            tasks, ctrl.columns, date_format=ctrl.date_format, title=title
        )
    )


@click.group(invoke_without_command=True)
@click.version_option(VERSION, prog_name="voido", message="%(prog)s version %(version)s")
@click.option(
    "--home",
    help="Override the voido workspace directory (equivalent to setting $VOIDO_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """voido: a terminal todo list with subtasks, notes and fuzzy search."""
    if home:
        os.environ["VOIDO_HOME"] = home  # Must be set before VoidoEnvironment is instantiated

    env = VoidoEnvironment()
    try:
        env.ensure(init_config=True, init_db_fn=ensure_database)
    except StartupError as e:
        startup_failed(e)
    config = env.load_config()
    if verbose:
        for msg in env.config_messages:
            print(f"[blue]{escape(msg)}[/blue]")

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["DB"] = env.db_path
    ctx.obj["CONFIG"] = config
    ctx.obj["VERBOSE"] = verbose

    if ctx.invoked_subcommand is None:
        ctx.invoke(ui)


@cli.command()
@click.pass_context
def ui(ctx):
    """Launch the interactive todo list."""
    db = ctx.obj["DB"]
    if ctx.obj["VERBOSE"]:
        print(f"[blue]Launching UI with database:[/blue] {db}")

    controller = open_controller(ctx)
    VoidoApp(controller).run()


@cli.command()
@click.argument("text", nargs=-1, required=True)
@click.option("--topic", "-t", help="Topic (default: General).")
@click.option("--priority", "-p", help="low, medium or high (default: medium).")
@click.option("--owner", "-o", help="Who owns it (default: You).")
@click.option("--due", "-d", help="Due date, e.g. 2025-06-01 or 'jun 1'.")
@click.option("--desc", "-w", help="A longer description.")
@click.option(
    "--sub", "-s", multiple=True, help="A subtask; repeat for more than one."
)
@click.pass_context
def add(ctx, text, topic, priority, owner, due, desc, sub):
    """Add a new todo."""
    try:
        task = make_task(
            " ".join(text),
            topic=topic,
            priority=priority,
            owner=owner,
            due=due,
            description=desc,
            subtasks=sub,
        )
    except VoidoError as e:
        report(e)
        return

    ctrl = open_controller(ctx)
    try:
        task = ctrl.add_task(task)
    except VoidoError as e:
        report(e)
        return
    print(f"[green]✔ Added todo {task.id}:[/green] {escape(task.title)}")


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def remove(ctx, task_id):
    """Delete a todo and its subtasks."""
    ctrl = open_controller(ctx)
    try:
        ctrl.delete_task(task_id)
    except VoidoError as e:
        report(e)
        return
    print(f"[green]✔ Deleted todo {task_id}.[/green]")


@cli.command()
@click.argument("task_id", type=int)
@click.option("--status", help="pending, ongoing or done.")
@click.option("--priority", help="low, medium or high.")
@click.pass_context
def update(ctx, task_id, status, priority):
    """Change the status and/or priority of a todo."""
    if not status and not priority:
        print("[yellow]Nothing to update; pass --status and/or --priority.[/yellow]")
        return
    ctrl = open_controller(ctx)
    try:
        if status:
            task = ctrl.set_status(task_id, status)
            print(f"[green]✔ Todo {task_id} is now {task.status.value}.[/green]")
        if priority:
            task = ctrl.set_priority(task_id, priority)
            print(f"[green]✔ Todo {task_id} priority is now {task.priority.value}.[/green]")
    except VoidoError as e:
        report(e)


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def done(ctx, task_id):
    """Mark a todo as done."""
    ctrl = open_controller(ctx)
    try:
        ctrl.set_status(task_id, Status.DONE)
    except VoidoError as e:
        report(e)
        return
    print(f"[green]✔ Todo {task_id} is done.[/green]")


@cli.command()
@click.argument("specs", nargs=-1, required=True, metavar="ID:TEXT...")
@click.pass_context
def subtask(ctx, specs):
    """
    Append subtasks to existing todos.

    Examples:
      voido subtask 2:"call the plumber"
      voido subtask 2:milk 3:eggs
    """
    try:
        parsed = [parse_subtask_spec(spec) for spec in specs]
    except VoidoError as e:
        report(e)
        return

    ctrl = open_controller(ctx)
    for task_id, text in parsed:
        try:
            ctrl.add_subtask(task_id, text)
        except VoidoError as e:
            report(e)
            continue
        print(f"[green]✔ Added subtask to todo {task_id}:[/green] {escape(text)}")


@cli.command(name="print")
@click.pass_context
def print_(ctx):
    """Print every todo as a table."""
    ctrl = open_controller(ctx)
    stats = ctrl.stats()
    print_table(
        ctrl,
        ctrl.tasks,
        title=(
            f"Total: {stats.total}  Done: {stats.done}  "
            f"Ongoing: {stats.ongoing}  Pending: {stats.pending}"
        ),
    )


@cli.command(name="list")
@click.argument("query", nargs=-1)
@click.pass_context
def list_(ctx, query):
    """Print the todos that fuzzy-match QUERY."""
    ctrl = open_controller(ctx)
    query = " ".join(query)
    tasks = [ctrl.tasks[i] for i in match(ctrl.tasks, query)]
    print_table(ctrl, tasks, title=f"matching '{escape(query)}'" if query else None)


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.option("--format", "fmt", type=click.Choice(FORMATS), help="json or xlsx.")
@click.pass_context
def export(ctx, path, fmt):
    """
    Export every todo to PATH.

    Without PATH the file name from config.toml is used in the current
    directory (json unless --format xlsx).
    """
    config = ctx.obj["CONFIG"]
    if path is None:
        fmt = fmt or "json"
        name = config.export.xlsx_name if fmt == "xlsx" else config.export.json_name
        path = Path(name)
    try:
        fmt = format_for(path, fmt)
    except click.BadParameter as e:
        report(e)
        return

    ctrl = open_controller(ctx)
    try:
        if fmt == "xlsx":
            count = export_xlsx(ctrl.tasks, path)
        else:
            count = export_json(ctrl.tasks, path)
    except OSError as e:
        report(e)
        return
    print(f"[green]✔ Exported {count} todos to[/green] {path}")


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=click.Choice(FORMATS), help="json or xlsx.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before replacing.")
@click.pass_context
def import_(ctx, path, fmt, yes):
    """Replace every stored todo with the contents of PATH."""
    config = ctx.obj["CONFIG"]
    try:
        fmt = format_for(path, fmt)
        tasks = import_xlsx(path) if fmt == "xlsx" else import_json(path)
    except (click.BadParameter, VoidoError, OSError) as e:
        report(e)
        return

    if config.ui.confirm_import and not yes:
        if not click.confirm(
            f"Importing will replace all existing todos with {len(tasks)} from {path}. Continue?",
            default=False,
        ):
            print("[yellow]✘ Import cancelled.[/yellow]")
            return

    ctrl = open_controller(ctx)
    try:
        count = ctrl.import_tasks(tasks)
    except VoidoError as e:
        report(e)
        return
    print(f"[green]✔ Imported {count} todos.[/green]")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask first.")
@click.pass_context
def clear(ctx, yes):
    """Delete every todo and subtask."""
    if not yes and not click.confirm("Delete all todos?", default=False):
        print("[yellow]✘ Cancelled.[/yellow]")
        return
    ctrl = open_controller(ctx)
    try:
        removed = ctrl.clear_all()
    except VoidoError as e:
        report(e)
        return
    print(f"[green]✔ Removed {removed} todos.[/green]")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask first.")
@click.pass_context
def flush(ctx, yes):
    """Recreate the database file from scratch, stored API key included."""
    db = ctx.obj["DB"]
    if not yes and not click.confirm(f"Recreate {db}?", default=False):
        print("[yellow]✘ Cancelled.[/yellow]")
        return
    try:
        DatabaseManager(db, reset=True).close()
    except StartupError as e:
        startup_failed(e)
    print(f"[green]✔ Recreated[/green] {db}")


@cli.command()
@click.argument("key", required=False)
@click.pass_context
def apikey(ctx, key):
    """Store the API key, or show the stored one (masked) without KEY."""
    ctrl = open_controller(ctx)
    try:
        if key:
            ctrl.set_credential(key)
            print("[green]✔ API key stored.[/green]")
        else:
            stored = ctrl.get_credential()
            print(f"API key: {mask_key(stored)}")
    except VoidoError as e:
        report(e)


if __name__ == "__main__":
    cli()
