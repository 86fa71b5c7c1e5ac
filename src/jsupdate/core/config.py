"""Configuration and runtime state.

``State`` is what every command and workflow node receives. Its
``config`` half comes from YAML files, the environment and the command
line; its ``runtime`` half is filled in as an update run progresses.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from jsupdate.core.base import BaseConfig, BaseState
from jsupdate.core.log import ConsoleSink, Logger, logger, setup_logger
from jsupdate.core.yaml_settings import (
    CONFIG_FILENAME,
    YamlWithIncludesSettingsSource,
    _cleanup_bootstrap_logger,
)

# Names usable as the first part of a {template} besides "config",
# e.g. "{platformdirs.user_cache_dir}/jsupdate"
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

_TEMPLATE = re.compile(r'\{([a-z._]+)\}')


class ProjectConfig(BaseConfig):
    """The JavaScript project being updated."""

    root_dir: Path = Field(
        default=Path("."),
        description="Root directory of the module to update",
    )
    manifest_file: str = Field(
        default="package.json",
        description="Manifest file name, relative to root_dir",
    )

    @property
    def manifest_path(self) -> Path:
        return self.root_dir / self.manifest_file

    @property
    def name(self) -> str:
        """Project directory name, used to name log directories."""
        return self.root_dir.resolve().name or "project"


class CheckConfig(BaseConfig):
    """How an update is judged: the project's own test command."""

    test_command: str = Field(
        default="yarn test",
        description="Shell command that decides whether an update works",
    )
    verbose: bool = Field(
        default=False,
        description="Stream the test command's output to the terminal",
    )
    output_dir: Path = Field(
        default=Path("{config.log_root}/checks"),
        description="Where each test run's output is saved",
    )
    timeout: int | None = Field(
        default=None,
        description=(
            "Optional limit for one test run in seconds. "
            "Unset means the test command bounds itself"
        ),
    )


class Config(BaseConfig):
    """Everything read from YAML, the environment and the CLI."""

    logger: Logger = Field(
        default=None,
        description="Log sinks; built from log-level when absent",
    )
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
    commit: bool = Field(
        default=False,
        description="Create a git commit when updates were applied",
    )

    log_level: str = Field(
        default="info",
        alias="log-level",
        description="Console level when no logger section is given",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "jsupdate"
        ),
        description="Directory under which log files and test output go",
    )

    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "Shell command templates by category and name, "
            "e.g. commands.package.install"
        ),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Install the configured logger as the global one."""
        sinks = self.logger or Logger(
            level=self.log_level,
            console=ConsoleSink(level=self.log_level),
        )
        self.logger = sinks

        setup_logger(
            log_root=self.log_root,
            run_name=self.project.name,
            level=sinks.level,
            console=sinks.console,
            otlp=sinks.otlp,
            file=sinks.file,
            logfire=sinks.logfire,
        )
        _cleanup_bootstrap_logger()
        return self

    def command(self, category: str, name: str) -> str:
        """Look up a command template.

        Raises:
            KeyError: If the template is not configured
        """
        try:
            return self.commands[category][name]
        except KeyError:
            raise KeyError(
                f"Command '{category}.{name}' is not configured"
            ) from None

    def close(self):
        """Close the global logger, then any closeable children."""
        logger.close()
        super().close()


class UpdateState(BaseState):
    """What an update run has found and done so far."""

    manifest_file: Any = Field(
        default=None,
        description="ManifestFile handle for the project's package.json",
    )
    installer: Any = Field(
        default=None,
        description="Installer used to materialize manifest states",
    )
    validator: Any = Field(
        default=None,
        description="Validator running the test command",
    )
    baseline: Any = Field(
        default=None,
        description="Baseline Manifest read at run start",
    )
    candidates: list = Field(
        default_factory=list,
        description="Candidate updates reported by discovery",
    )
    accepted: list = Field(
        default_factory=list,
        description="Candidate updates that passed validation",
    )
    attempts: int = Field(
        default=0,
        description="Number of candidate subsets tried",
    )
    manifest_dirty: bool = Field(
        default=False,
        description="Whether the manifest on disk differs from baseline",
    )
    final_passed: bool | None = Field(
        default=None,
        description="Outcome of the final validation, once run",
    )
    committed: bool = Field(
        default=False,
        description="Whether a commit was created",
    )
    status: str = Field(
        default="pending",
        description=(
            "pending, running, no-updates, baseline-failed, "
            "final-failed, complete or failed"
        ),
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Mutable state, one section per workflow."""

    update: UpdateState = Field(default_factory=UpdateState)


class State(BaseSettings):
    """Configuration plus runtime state, passed through the workflow.

    String and Path values anywhere under ``config`` may contain
    ``{config.some.field}`` or ``{platformdirs.some_dir}`` templates;
    they are expanded once after loading. Templates that do not
    resolve, such as ``{message}`` in the git commit command, are left
    for the code that formats them later.
    """

    config: Config = Field(
        default_factory=Config,
        description="Settings from YAML files, environment and CLI",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Filled in while the workflow runs",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Extra YAML files merged over jsupdate.yaml, in order. "
            "Repeat --include to give several"
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file=CONFIG_FILENAME,
        env_file=".env",
        env_prefix="JSUPDATE_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        # .env may hold variables meant for other tools
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Init args beat YAML, YAML beats .env and the environment."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def expand_templates(self) -> "State":
        _expand_in(self.config, self)
        return self

    def lookup(self, reference: str) -> str | None:
        """Value of a dotted template reference, or None if unknown.

        Only ``config`` and the TEMPLATE_NAMESPACE names can start a
        reference; unset values do not resolve either.

        Examples:
            "config.log_root" -> "/home/user/.local/state/jsupdate"
            "platformdirs.user_log_dir"
            -> "/home/user/.local/state/jsupdate/log"
        """
        head, *rest = reference.split(".")
        if not rest:
            return None
        if head == "config":
            target = self.config
        elif head in TEMPLATE_NAMESPACE:
            target = TEMPLATE_NAMESPACE[head]
        else:
            return None

        try:
            for part in rest:
                target = getattr(target, part)
            if callable(target):
                target = target('jsupdate', appauthor=False)
        except (AttributeError, TypeError):
            return None
        return None if target is None else str(target)

    def render(self, text: str) -> str:
        """Expand every resolvable {reference} in ``text``."""
        def _replace(match):
            value = self.lookup(match.group(1))
            return match.group(0) if value is None else value
        return _TEMPLATE.sub(_replace, text)


def _expand(value: Any, state: State) -> Any:
    if isinstance(value, str):
        return state.render(value)
    if isinstance(value, Path):
        return Path(state.render(str(value)))
    _expand_in(value, state)
    return value


def _expand_in(container: Any, state: State) -> None:
    """Expand templates in place inside a model, dict or list."""
    if isinstance(container, BaseModel):
        for name in type(container).model_fields:
            old = getattr(container, name)
            new = _expand(old, state)
            if new is not old:
                setattr(container, name, new)
    elif isinstance(container, dict):
        for key, item in container.items():
            container[key] = _expand(item, state)
    elif isinstance(container, list):
        container[:] = [_expand(item, state) for item in container]


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
