"""
Migration discovery - build ``Migration`` lists from SQL files on disk.

A project declares its migration groups in a ``schemaledger.json`` file.
Each entry names a group and a schema directory (relative to the file)
holding one ``.sql`` file per version::

    {
      "packages": [
        {"group": "accounts", "schema": "schema/accounts"},
        {"group": "billing",  "schema": "schema/billing"}
      ]
    }

The version of a file is every digit of its name concatenated:
``0001_init.sql`` → 1, ``v2_add_index.sql`` → 2, ``2020_01_05.sql`` →
20200105. A name without digits is rejected.

Examples:
    >>> extract_version("0003_add_users.sql")
    3
    >>> migrations = scan(Path("db"))  # doctest: +SKIP

Tags:
    discovery, filesystem, migrations, schemaledger

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from schemaledger.core.errors import ConfigError, StatementSyntaxError
from schemaledger.core.logging import get_logger
from schemaledger.core.models import MAX_VERSION, Migration
from schemaledger.core.statements import split_statements

logger = get_logger(__name__)

GROUP_FILE = "schemaledger.json"
SQL_SUFFIX = ".sql"


class GroupPackage(BaseModel):
    """One migration group declared in a group file."""

    model_config = ConfigDict(extra="ignore")

    group: str = Field(min_length=1)
    schema_dir: str = Field(alias="schema", min_length=1)


class GroupFile(BaseModel):
    """Contents of a ``schemaledger.json`` file."""

    model_config = ConfigDict(extra="ignore")

    packages: list[GroupPackage] = Field(default_factory=list)


def extract_version(name: str) -> int:
    """Concatenate every digit in ``name`` into a version number.

    Raises:
        ConfigError: If ``name`` contains no digits or the version exceeds
            ``MAX_VERSION``.
    """
    digits = "".join(ch for ch in name if "0" <= ch <= "9")
    if not digits:
        raise ConfigError(f"invalid migration file name: {name}", context={"script": name})
    significant = digits.lstrip("0") or "0"
    # Length first: int() refuses very long digit strings.
    if len(significant) > len(str(MAX_VERSION)) or int(significant) > MAX_VERSION:
        raise ConfigError(
            f"migration version out of range: {name}",
            context={"script": name, "max": MAX_VERSION},
        )
    return int(significant)


def parse_file(path: Path) -> list[str]:
    """Read a SQL file and split it into statements."""
    text = path.read_text(encoding="utf-8")
    try:
        return split_statements(text)
    except StatementSyntaxError as exc:
        raise StatementSyntaxError(
            f"cannot parse {path}: {exc.message}",
            context={**exc.context, "script": str(path)},
            cause=exc,
        ) from exc


def load_directory(directory: Path | str, group: str) -> list[Migration]:
    """Load every ``.sql`` file in ``directory`` as a migration of ``group``.

    Raises:
        ConfigError: On a file name without version or a file without statements.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ConfigError(f"schema directory not found: {directory}", context={"group": group})

    logger.debug("discovery.reading_schema_dir", group=group, path=str(directory))
    migrations: list[Migration] = []
    for path in sorted(p for p in directory.iterdir() if p.suffix == SQL_SUFFIX and p.is_file()):
        version = extract_version(path.name)
        statements = parse_file(path)
        if not statements:
            raise ConfigError(
                f"migration file without statements: {path}",
                context={"group": group, "script": path.name},
            )
        logger.debug("discovery.migration_found", group=group, script=path.name,
                     statements=len(statements))
        migrations.append(
            Migration(group=group, version=version, statements=tuple(statements),
                      script_name=path.name)
        )
    return migrations


def load_group_file(path: Path) -> GroupFile:
    """Parse and validate a ``schemaledger.json`` file."""
    try:
        return GroupFile.model_validate_json(path.read_text(encoding="utf-8"))
    except PydanticValidationError as exc:
        raise ConfigError(f"invalid group file {path}: {exc}", cause=exc) from exc


def scan(root: Path | str) -> list[Migration]:
    """Find every group file under ``root`` and load the migrations it declares."""
    root = Path(root)
    migrations: list[Migration] = []
    for group_file in sorted(root.rglob(GROUP_FILE)):
        config = load_group_file(group_file)
        for package in config.packages:
            schema_dir = group_file.parent / package.schema_dir
            migrations.extend(load_directory(schema_dir, package.group))
    logger.info("discovery.complete", root=str(root), migrations=len(migrations))
    return migrations


__all__ = [
    "GROUP_FILE",
    "GroupPackage",
    "GroupFile",
    "extract_version",
    "parse_file",
    "load_directory",
    "load_group_file",
    "scan",
]
