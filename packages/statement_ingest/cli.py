# ruff: noqa: I001
"""CLI for the ``statement_ingest`` package.

A thin harness over :mod:`statement_ingest.workflows.import_flow` for trying
the pipeline on real exports. Environment variables are loaded from a local
``.env`` with ``python-dotenv`` in the root callback, which also configures
logging. Command handlers (``cmd_*``) return a process exit code; the Typer
commands raise ``typer.Exit`` with it.

Remembered mappings go to the database when ``--database-url`` (or
``STATEMENT_INGEST_DATABASE_URL``/``DATABASE_URL``) is set, and live only for
the invocation otherwise.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .errors import IngestError
from .ingest.decoders import make_decoder
from .logging_setup import configure_logging, get_logger, level_for_verbosity
from .merge import MergeCoordinator
from .models import HeaderMapping, SourceFile, Transaction
from .signatures import mapping_signature
from .store import InMemoryMappingStore, MappingRegistry, SqlMappingStore
from .workflows.import_flow import confirm, decode_many, preview

_logger = get_logger("statement_ingest.cli")

TSV_COLUMNS = (
    "id",
    "date",
    "description",
    "category",
    "income",
    "expenses",
    "currency",
    "fileName",
    "sourceRow",
)


class OutputFormat(StrEnum):
    TSV = "tsv"
    JSON = "json"


@dataclass(slots=True)
class CliState:
    settings: Settings
    database_url: str | None = None

    def registry(self) -> MappingRegistry:
        if self.database_url:
            store = SqlMappingStore(self.database_url)
            store.create_schema()
            return MappingRegistry(store)
        _logger.info("cli:memory_store reason=no_database_url")
        return MappingRegistry(InMemoryMappingStore())


# ---- Small helpers -------------------------------------------------------------


def _read_source(path: Path) -> SourceFile:
    return SourceFile(name=path.name, content=path.read_bytes())


def _cell_text(value: object) -> str:
    return "" if value is None else str(value).replace("\t", " ").replace("\n", " ")


def _format_tsv(transactions: tuple[Transaction, ...] | list[Transaction]) -> str:
    lines = ["\t".join(TSV_COLUMNS)]
    for tx in transactions:
        record = tx.to_record()
        lines.append("\t".join(_cell_text(record[c]) for c in TSV_COLUMNS))
    return "\n".join(lines)


def _format_json(transactions: tuple[Transaction, ...] | list[Transaction]) -> str:
    return json.dumps([tx.to_record() for tx in transactions], ensure_ascii=False, indent=2)


# ---- Command handlers ----------------------------------------------------------


def cmd_preview(path: Path, *, state: CliState, rows: int = 10) -> int:
    try:
        source = _read_source(path)
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return 1

    try:
        session = preview(source, registry=state.registry())
    except IngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SQLAlchemyError as e:
        print(f"Error: mapping store failed: {e}", file=sys.stderr)
        return 1

    mapping = session.mapping
    print(f"file\t{session.source_name}")
    print(f"kind\t{session.kind.value}")
    print(f"rows\t{len(session.raw_table)}")
    print(f"structure_sig\t{session.signature.structure_sig}")
    print(f"mapping_sig\t{mapping_signature(session.kind, mapping)}")
    print(f"known\t{'yes' if session.is_known else 'no'}")
    print(f"mapping\t{','.join(mapping.labels())}")
    print(f"data_row\t{session.data_row_index}")
    print()
    for row in session.raw_table.rows[: max(rows, 0)]:
        print("\t".join(_cell_text(c) for c in row))
    return 0


def cmd_import(
    paths: list[Path],
    *,
    state: CliState,
    mapping: str | None = None,
    data_row: int | None = None,
    currency: str | None = None,
    output: OutputFormat = OutputFormat.TSV,
) -> int:
    try:
        sources = [_read_source(p) for p in paths]
    except OSError as e:
        print(f"Error: cannot read input: {e}", file=sys.stderr)
        return 1

    try:
        chosen = HeaderMapping.parse(mapping) if mapping else None
    except ValueError as e:
        print(f"Error: invalid --mapping: {e}", file=sys.stderr)
        return 1

    coordinator = MergeCoordinator()
    skipped = 0
    try:
        registry = state.registry()
        with make_decoder(state.settings) as decoder:
            tables = decode_many(sources, decoder=decoder, settings=state.settings)
        for source, table in zip(sources, tables, strict=True):
            session = preview(source, registry=registry, table=table)
            _, added = confirm(
                session,
                coordinator,
                mapping=chosen,
                data_row_index=data_row,
                currency=currency,
                registry=registry,
                settings=state.settings,
            )
            skipped += 0 if added else 1
    except IngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SQLAlchemyError as e:
        print(f"Error: mapping store failed: {e}", file=sys.stderr)
        return 1

    if output is OutputFormat.JSON:
        print(_format_json(coordinator.transactions))
    else:
        print(_format_tsv(coordinator.transactions))
    print(
        f"Imported {len(coordinator)} file(s), skipped {skipped} duplicate(s), "
        f"{len(coordinator.transactions)} transaction(s).",
        file=sys.stderr,
    )
    return 0


def cmd_forget(signature: str, *, state: CliState) -> int:
    if not state.database_url:
        print("Error: forget needs a database (set --database-url)", file=sys.stderr)
        return 1
    try:
        state.registry().forget(signature)
    except SQLAlchemyError as e:
        print(f"Error: mapping store failed: {e}", file=sys.stderr)
        return 1
    print(f"Forgot {signature}")
    return 0


# ---- Typer-based console interface ---------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Decode financial exports (CSV/TSV, XML, XLSX/XLS), infer column mappings, "
        "and print the merged canonical transactions."
    ),
)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    assert state is not None  # set by the root callback
    return state


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("preview")
def preview_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="File to decode", dir_okay=False)],
    rows: Annotated[int, typer.Option(help="Number of decoded rows to show.")] = 10,
) -> None:
    """Show the decoded table, signatures and the mapping that would be used."""

    _exit(cmd_preview(path, state=_state(ctx), rows=rows))


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    paths: Annotated[list[Path], typer.Argument(help="Files to import, in order")],
    mapping: Annotated[
        str | None,
        typer.Option(help="Comma-separated tags, e.g. 'Date,Description,Expenses,-'."),
    ] = None,
    data_row: Annotated[
        int | None, typer.Option("--data-row", help="0-based index of the first data row.")
    ] = None,
    currency: Annotated[str | None, typer.Option(help="ISO currency code for these files.")] = None,
    output: Annotated[OutputFormat, typer.Option(help="Output format.")] = OutputFormat.TSV,
) -> None:
    """Import files and print the rebuilt canonical transaction set."""

    _exit(
        cmd_import(
            paths,
            state=_state(ctx),
            mapping=mapping,
            data_row=data_row,
            currency=currency,
            output=output,
        )
    )


@app.command("forget")
def forget_cmd(
    ctx: typer.Context,
    signature: Annotated[str, typer.Argument(help="Structure signature to forget")],
) -> None:
    """Delete a remembered mapping."""

    _exit(cmd_forget(signature, state=_state(ctx)))


@app.callback()
def _root(
    ctx: typer.Context,
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="Repeat for more logging.")
    ] = 0,
    database_url: Annotated[
        str | None,
        typer.Option(help="Override STATEMENT_INGEST_DATABASE_URL / DATABASE_URL."),
    ] = None,
) -> None:
    """Load ``.env``, configure logging, and resolve settings for subcommands."""

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(level_for_verbosity(verbose) if verbose else None)

    settings = Settings.from_env()
    ctx.obj = CliState(settings=settings, database_url=database_url or settings.database_url)


if __name__ == "__main__":  # pragma: no cover
    app()
