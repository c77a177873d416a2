"""
CLI entry point for bracket store.

Parses arguments, builds the store config, and inspects or rewrites a
bracket instance's snapshot.
"""

import argparse
import asyncio
import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any, TypedDict

from prettytable import PrettyTable

from .config import DEFAULT_COLLECTION, StoreConfig
from .exceptions import ConfigurationError, PersistenceError, ValidationError
from .logging_config import get_logger, setup_logging
from .models import TABLE_NAMES, Database, Record, empty_database
from .storage.snapshot_database import SnapshotDatabase


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    command: str
    backend: str
    instance_id: str | None
    data_dir: str
    credentials: str | None
    project_id: str | None
    collection: str
    addressing: str
    table: str | None
    output: str | None
    input: str | None
    debug: bool
    log_level: str
    log_file: str | None


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bracket Store - inspect and manage bracket snapshots"
    )

    _ = parser.add_argument(
        "--backend",
        choices=["json", "firestore"],
        default="json",
        help="Where snapshots live (default: json)"
    )
    _ = parser.add_argument(
        "--instance-id",
        required=True,
        help="Bracket instance (stage) identifier"
    )
    _ = parser.add_argument(
        "--data-dir",
        default="brackets",
        help="Directory of snapshot files for the json backend (default: brackets)"
    )
    _ = parser.add_argument(
        "--credentials",
        help="Firebase service-account JSON (default: application-default credentials)"
    )
    _ = parser.add_argument(
        "--project-id",
        help="Google Cloud project id for the firestore backend"
    )
    _ = parser.add_argument(
        "--collection",
        default=DEFAULT_COLLECTION,
        help=f"Firestore collection holding snapshots (default: {DEFAULT_COLLECTION})"
    )
    _ = parser.add_argument(
        "--addressing",
        choices=["query", "document"],
        default="query",
        help="Find documents by stageId field or by document id (default: query)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)"
    )
    _ = parser.add_argument(
        "--log-file",
        help="Also write INFO and above to this file (rotated at 10 MB)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the bracket's tables")
    _ = show.add_argument("--table", choices=list(TABLE_NAMES), help="Only print this table")

    export = subparsers.add_parser("export", help="Write the bracket's state to a JSON file")
    _ = export.add_argument("--output", required=True, help="Destination file")

    import_ = subparsers.add_parser("import", help="Replace the bracket's state from a JSON file")
    _ = import_.add_argument("--input", required=True, help="Source file")

    _ = subparsers.add_parser("reset", help="Clear every table of the bracket")

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        command=ns.command,
        backend=ns.backend,
        instance_id=ns.instance_id,
        data_dir=ns.data_dir,
        credentials=ns.credentials,
        project_id=ns.project_id,
        collection=ns.collection,
        addressing=ns.addressing,
        table=getattr(ns, "table", None),
        output=getattr(ns, "output", None),
        input=getattr(ns, "input", None),
        debug=ns.debug,
        log_level=ns.log_level,
        log_file=ns.log_file,
    )


def build_config(args: CLIArgs) -> StoreConfig:
    """Validate arguments into a StoreConfig."""
    return StoreConfig(
        instance_id=args["instance_id"],
        backend=args["backend"],
        collection=args["collection"],
        addressing=args["addressing"],
        data_dir=Path(args["data_dir"]),
        credentials_path=Path(args["credentials"]) if args["credentials"] else None,
        project_id=args["project_id"],
    )


def render_table(name: str, records: list[Record]) -> PrettyTable:
    """Lay out one table's records, one column per field seen."""
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    table = PrettyTable()
    table.title = f"{name} ({len(records)})"
    table.field_names = columns or ["id"]
    table.align = "l"

    def cell(value: Any) -> str:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return "" if value is None else str(value)

    for record in records:
        table.add_row([cell(record.get(column)) for column in table.field_names])
    return table


def load_import_file(path: Path) -> Database:
    """Read a state file written by export (or a bracket manager's JSON dump)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a JSON object of tables")

    database = empty_database()
    for name, records in data.items():
        if name not in TABLE_NAMES:
            raise ValidationError(f"Unknown table in {path}: {name}")
        if not isinstance(records, list):
            raise ValidationError(f"Table {name} in {path} must be a list")
        database[name] = records
    return database


async def run_command(args: CLIArgs, config: StoreConfig) -> None:
    """Open the store and run the requested subcommand."""
    logger = get_logger("run_command")
    store = await SnapshotDatabase.from_config(config)

    if args["command"] == "show":
        data = store.get_data()
        names = [args["table"]] if args["table"] else list(TABLE_NAMES)
        for name in names:
            print(render_table(name, data.get(name, [])))

    elif args["command"] == "export":
        assert args["output"] is not None
        output = Path(args["output"])
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            json.dump(store.get_data(), f, ensure_ascii=False, indent=2)
        logger.info(f"Exported {config.instance_id} to {output}")
        print(f"Exported {config.instance_id} to {output}")

    elif args["command"] == "import":
        assert args["input"] is not None
        store.set_data(load_import_file(Path(args["input"])))
        await store.flush(force=True)
        logger.info(f"Imported {args['input']} into {config.instance_id}")
        print(f"Imported {args['input']} into {config.instance_id}")

    elif args["command"] == "reset":
        store.reset()
        await store.flush(force=True)
        logger.info(f"Reset {config.instance_id}")
        print(f"Reset {config.instance_id}")

    else:
        raise ValueError(f"Unknown command: {args['command']}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    raw_args = parse_args(argv)
    args = args_to_typed(raw_args)

    setup_logging(
        level=args["log_level"],
        debug=args["debug"],
        log_file=Path(args["log_file"]) if args["log_file"] else None,
    )
    logger = get_logger("main")

    try:
        config = build_config(args)
        asyncio.run(run_command(args, config))
    except (ConfigurationError, ValidationError, PersistenceError, OSError) as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
