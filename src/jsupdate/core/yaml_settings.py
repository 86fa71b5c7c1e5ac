"""jsupdate.yaml loading: layered files, ``include:`` and ``--include``."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from jsupdate.core.log import ConsoleSink, Logger

CONFIG_FILENAME = "jsupdate.yaml"

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"

# Console-only logger for messages emitted while the configuration
# that describes the real logger is still being read
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        _bootstrap_logger = Logger(console=ConsoleSink(level="warn"))
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Drop the bootstrap logger; Config calls this after its own setup."""
    global _bootstrap_logger
    if _bootstrap_logger is not None:
        _bootstrap_logger.close()
    _bootstrap_logger = None


def cli_includes(argv: list[str]) -> list[str]:
    """Values of every ``--include FILE`` pair in argv, in order."""
    return [
        value
        for flag, value in zip(argv[1:], argv[2:])
        if flag == "--include"
    ]


def config_search_path() -> list[Path]:
    """Files always consulted, lowest priority first."""
    return [
        DEFAULTS_FILE,
        Path(user_config_dir("jsupdate", appauthor=False)) / CONFIG_FILENAME,
        Path(CONFIG_FILENAME),
    ]


def merge_config(base: dict, override: dict) -> dict:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge key by key; any other value in ``override``
    (lists included) replaces the one in ``base``.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = value
    return merged


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """pydantic-settings YAML source that layers several files.

    Files merge in this order, later ones winning: the package
    defaults, jsupdate.yaml in the user config directory,
    ./jsupdate.yaml, the ``yaml_file`` passed in (when it is none of
    those), then each ``--include`` file from the command line. A file
    can list its own ``include:`` files, relative to itself; it
    overrides what it includes.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        # Read --include straight from argv: pydantic has not parsed
        # the command line yet when sources are built
        extra = cli_includes(sys.argv)

        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base is None:
            files = extra
        elif isinstance(base, (str, os.PathLike)):
            files = [base, *extra]
        else:
            files = [*base, *extra]

        super().__init__(settings_cls, files or None)

    def _read_files(self, files, deep_merge: bool = True):  # noqa: ARG002
        # Layers always deep-merge, whatever pydantic-settings asks for
        if isinstance(files, (str, os.PathLike)):
            files = [files]

        paths = config_search_path()
        for name in files or []:
            path = Path(name).expanduser()
            if path not in paths:
                paths.append(path)

        log = _get_bootstrap_logger()
        merged: dict = {}
        for path in paths:
            if not path.is_file():
                log.debug("No configuration file here", file=str(path))
                continue
            with log.span("Loading configuration", file=str(path)):
                merged = merge_config(merged, self._load(path, ()))
        return merged

    def _load(self, path: Path, chain: tuple[Path, ...]) -> dict:
        """Read one file with its ``include:`` files merged underneath.

        Raises:
            ValueError: If the file (indirectly) includes itself
            FileNotFoundError: If an included file does not exist
        """
        path = path.resolve()
        if path in chain:
            raise ValueError(f"Circular include: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        included = data.pop("include", None) or []
        if isinstance(included, str):
            included = [included]

        merged: dict = {}
        for name in included:
            merged = merge_config(
                merged, self._load(self._resolve(name, path), chain + (path,))
            )
        return merge_config(merged, data)

    @staticmethod
    def _resolve(name: str, including_file: Path) -> Path:
        path = Path(name).expanduser()
        if path.is_absolute():
            return path
        return (including_file.parent / path).resolve()
