import inspect
import textwrap
import shutil
from rich import print as rich_print
from rich.markup import escape
from datetime import date, datetime
from pathlib import Path

from voido.voido_env import VoidoEnvironment

ELLIPSIS_CHAR = "…"
NONE_DUE = "none due"
DATE_FMT = "%Y-%m-%d"


def today_str() -> str:
    return date.today().strftime(DATE_FMT)


def capitalize_first(s: str) -> str:
    """Upper-case only the first character, leaving the rest as typed."""
    s = s.strip()
    return s[:1].upper() + s[1:]


def truncate_string(s: str, max_length: int) -> str:
    if len(s) > max_length:
        return f"{s[: max_length - 2]} {ELLIPSIS_CHAR}"
    else:
        return s


def format_date(date_str: str, fmt: str = DATE_FMT) -> str:
    """
    Re-render a stored ISO date with the user's configured format.
    Sentinels and anything unparseable are shown unchanged.
    """
    if not date_str or date_str == NONE_DUE or fmt == DATE_FMT:
        return date_str
    try:
        return datetime.strptime(date_str, DATE_FMT).strftime(fmt)
    except ValueError:
        return date_str


def log_path(kind: str, file_path: str | Path | None = None) -> Path:
    """
    Where a `kind` entry ("log" or "bug") goes: `<home>/logs/<kind>_<YYMMDD>.md`
    unless `file_path` says otherwise. Relative paths are taken from the home
    directory, which is looked up on every call so --home and $VOIDO_HOME apply.
    """
    env = VoidoEnvironment()
    if file_path is None:
        return env.log_dir / f"{kind}_{datetime.now():%y%m%d}.md"
    path = Path(file_path).expanduser()
    return path if path.is_absolute() else env.home / path


def _caller_name(frame) -> str:
    name = frame.f_code.co_name
    owner = frame.f_locals.get("self")
    if owner is not None:
        return f"{type(owner).__name__}.{name}"
    klass = frame.f_locals.get("cls")
    if isinstance(klass, type):
        return f"{klass.__name__}.{name}"
    return name


def _entry(kind: str, caller: str, msg: str) -> str:
    body = textwrap.fill(
        msg.strip(),
        width=max(shutil.get_terminal_size().columns - 6, 20),
        initial_indent="   ",
        subsequent_indent="   ",
    )
    return f"- {datetime.now():%H:%M:%S} {kind}_msg ({caller}):  \n{body}\n\n"


def _write(kind: str, caller: str, msg: str, file_path, print_output: bool):
    entry = _entry(kind, caller, msg)
    target = log_path(kind, file_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError:
        # unwritable log: show it instead
        print_output = True
    if print_output:
        rich_print(escape(entry))


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Append a markdown entry for `msg` to today's log, tagged with the caller.

    Args:
        msg: what happened.
        file_path: write here instead of ``logs/log_<YYMMDD>.md``.
        print_output: also show the entry on the console.
    """
    _write("log", _caller_name(inspect.stack()[1].frame), msg, file_path, print_output)


def bug_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """Like log_msg, for things that should not happen; goes to ``logs/bug_<YYMMDD>.md``."""
    _write("bug", _caller_name(inspect.stack()[1].frame), msg, file_path, print_output)
