# Oikonomia - Bookkeeping ledger & reconciliation engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Oikonomia.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application,
- providing defaults when no configuration file is present.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DEFAULT_CONFIG_FILE = "oikonomia_config.toml"
DEFAULT_DB_PATH = "data/db/oikonomia.sqlite"
DEFAULT_OUTPUT_DIR = "data/output"
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class ImportConfig:
    """
    Options for the import commands.

    Attributes
    ----------
    default_account:
        Name of the account a statement is attached to when the command
        line does not name one. Empty means "ask for --account".
    preview_rows:
        Number of staged candidates printed before committing.
    """

    default_account: str
    preview_rows: int


@dataclass(frozen=True)
class DisplayConfig:
    """Output options for the CLI tables and CSV files."""

    mode: str
    output_dir: Path


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Oikonomia.

    This aggregates:
    - the organisation name and the presentation currency,
    - the database configuration (where the ledger is stored),
    - import options,
    - display options for tables and CSV exports.
    """

    organisation: str
    currency: str
    database: DatabaseConfig
    imports: ImportConfig
    display: DisplayConfig


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a TOML table, or an empty mapping if missing or not a table."""
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _parse_import_config(section: Mapping[str, Any]) -> ImportConfig:
    raw_rows = section.get("preview_rows", 20)
    try:
        preview_rows = int(raw_rows)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'import.preview_rows' in the configuration. "
            "Expected an integer."
        ) from exc
    if preview_rows < 0:
        raise ValueError("'import.preview_rows' cannot be negative.")

    return ImportConfig(
        default_account=str(section.get("default_account") or ""),
        preview_rows=preview_rows,
    )


def _parse_display_config(section: Mapping[str, Any], base_dir: Path) -> DisplayConfig:
    mode = str(section.get("mode", "table"))
    if mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display mode {mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    output_raw = section.get("output_dir") or DEFAULT_OUTPUT_DIR
    return DisplayConfig(mode=mode, output_dir=(base_dir / str(output_raw)).resolve())


def build_app_config(raw: Mapping[str, Any], base_dir: Path) -> AppConfig:
    """
    Build an AppConfig from parsed TOML data.

    All relative paths are resolved against ``base_dir``.
    """
    ledger_section = _section(raw, "ledger")
    organisation = str(ledger_section.get("organisation") or "")
    currency = str(ledger_section.get("currency") or "BRL")

    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or DEFAULT_DB_PATH
    database_config = DatabaseConfig(
        engine=db_engine, path=(base_dir / str(db_path_raw)).resolve()
    )

    return AppConfig(
        organisation=organisation,
        currency=currency,
        database=database_config,
        imports=_parse_import_config(_section(raw, "import")),
        display=_parse_display_config(_section(raw, "display"), base_dir),
    )


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Configuration used when no TOML file is available."""
    return build_app_config({}, (base_dir or Path.cwd()).resolve())


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Oikonomia application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [ledger]
        ``organisation`` (display only) and ``currency`` (default "BRL").

    [database]
        Database engine and SQLite file path
        (default ``data/db/oikonomia.sqlite``).

    [import]
        ``default_account``: account name used for statement imports when
        ``--account`` is omitted; ``preview_rows``: number of staged rows
        printed before commit.

    [display]
        ``mode`` ("table", "csv" or "both") and ``output_dir`` for CSV files.

    Every section is optional. All file paths in the TOML are resolved
    relative to the directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``oikonomia_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file is not valid TOML or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    return build_app_config(raw, config_file.parent)
