from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional, Callable
from jinja2 import Template

from voido.errors import StartupError


# ─── Config Schema ─────────────────────────────────────────────────
DEFAULT_COLUMNS = [
    "ID",
    "PRIORITY",
    "TOPIC",
    "TODO",
    "SUBs",
    "CREATED",
    "DUE DATE",
    "STATUS",
    "OWNER",
]


class UIConfig(BaseModel):
    theme: str = Field("dark", pattern="^(dark|light)$")
    date_format: str = "%Y-%m-%d"
    confirm_import: bool = True
    columns: list[str] = Field(default_factory=lambda: list(DEFAULT_COLUMNS))


class ExportConfig(BaseModel):
    json_name: str = "Voido - Todos.json"
    xlsx_name: str = "Voido - Todos Export.xlsx"


class VoidoConfig(BaseModel):
    title: str = "Voido Configuration"
    ui: UIConfig = UIConfig()
    export: ExportConfig = ExportConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[ui]
# theme: str = 'dark' | 'light'
theme = "{{ ui.theme }}"

# date_format: strftime pattern used when showing created and due dates
date_format = "{{ ui.date_format }}"

# confirm_import: bool = true | false
# ask before an import replaces every stored task
confirm_import = {{ ui.confirm_import | lower }}

# columns: list of table headings shown in the task list, in order.
# Any of ID, PRIORITY, TOPIC, TODO, SUBs, CREATED, DUE DATE, STATUS, OWNER
columns = [{% for c in ui.columns %}"{{ c }}"{% if not loop.last %}, {% endif %}{% endfor %}]

[export]
# default file names used by `voido export` when no path is given
json_name = "{{ export.json_name }}"
xlsx_name = "{{ export.xlsx_name }}"
"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: VoidoConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: VoidoConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")


# ─── Main Environment Class ───────────────────────────────


class VoidoEnvironment:
    def __init__(self, home: Optional[Path] = None):
        self._home = Path(home).expanduser() if home else self._resolve_home()
        self._config: Optional[VoidoConfig] = None
        self.config_messages: list[str] = []

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def db_path(self) -> Path:
        return self.home / "todos.db"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    def ensure(
        self,
        init_config: bool = True,
        init_db_fn: Optional[Callable[[Path], None]] = None,
    ):
        """
        Create the home directory (and optionally config and database).
        Anything that keeps the store from being opened is a StartupError.
        """
        if self.home.exists() and not self.home.is_dir():
            raise StartupError(
                f"Expected a directory at '{self.home}', but found a file. "
                "Please remove or rename the file."
            )
        try:
            self.home.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StartupError(f"Cannot create {self.home}: {e}") from e

        if self.db_path.exists() and self.db_path.is_dir():
            raise StartupError(
                f"Expected a file at '{self.db_path}', but found a directory. "
                "Please remove or rename the directory."
            )

        if init_config and not self.config_path.exists():
            save_config_from_template(VoidoConfig(), self.config_path)

        if init_db_fn and not self.db_path.exists():
            init_db_fn(self.db_path)

    def load_config(self) -> VoidoConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            config = VoidoConfig()
            if self.home.is_dir():
                save_config_from_template(config, self.config_path)
                self.config_messages.append(
                    f"Created new config file at {self.config_path}"
                )
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = VoidoConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            self.config_messages.append(
                f"Config error in {self.config_path}: {e}\nUsing defaults."
            )
            config = VoidoConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)
        current_text = self.config_path.read_text(encoding="utf-8")
        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            self.config_messages.append(
                f"Updated {self.config_path} with any missing defaults."
            )

        self._config = config
        return config

    @property
    def config(self) -> VoidoConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _resolve_home(self) -> Path:
        env_home = os.getenv("VOIDO_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "voido"
        else:
            return Path.home() / ".config" / "voido"
