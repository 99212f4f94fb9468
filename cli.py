#!/usr/bin/env python3
"""
Command line entry points for local indexing and matrix queries.

Usage:
    python cli.py ingest resumes/ --recursive
    python cli.py search pills.txt --syn synonyms.json --topk-resumes 10

pills.txt holds one pill per line, optionally "text|weight".
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer

from config.settings import settings
from config.wiring import build_container
from core.canon import flatten_for_preview
from core.engine import SearchOptions
from core.entities import Pill
from core.variants import load_synonyms, synonyms_for
from util.errors import AppError
from util.functions import clip_words
from util.logger import init_logger

app = typer.Typer(add_completion=False)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="DEBUG logging"),
):
    init_logger("DEBUG" if verbose else None)


def read_pills(path: Path, synonyms: Optional[Path] = None) -> List[Pill]:
    table = load_synonyms(synonyms) if synonyms else {}
    pills: List[Pill] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        text, _, weight = line.partition("|")
        text = text.strip()
        try:
            w = float(weight) if weight.strip() else None
        except ValueError:
            raise typer.BadParameter(f"bad weight in line: {line!r}")
        pills.append(
            Pill(
                text=text,
                weight=w,
                synonyms=synonyms_for(text, table),
            )
        )
    return pills


async def _ingest(path: Path, recursive: bool):
    container = build_container(settings)
    try:
        return await container.pipeline.ingest_folder(path, recursive=recursive)
    finally:
        await container.aclose()


async def _search(pills: List[Pill], options: SearchOptions):
    container = build_container(settings)
    try:
        return await container.engine.search(pills, options)
    finally:
        await container.aclose()


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="PDF file or folder of PDFs"),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="Include subdirectories"
    ),
):
    """Index PDFs into the configured store."""
    try:
        report = asyncio.run(_ingest(path, recursive))
    except FileNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo("\nSUMMARY")
    typer.echo(f"✅ Success: {len(report.success)}")
    typer.echo(f"❌ Failed: {len(report.failed)}")
    for f in report.failed:
        typer.echo(f"   {f['file']}: {f['error']}")
    typer.echo(f"Total chunks: {report.total_chunks}")
    if report.failed and not report.success:
        raise typer.Exit(code=1)


@app.command()
def search(
    pills_file: Path = typer.Argument(..., help="One pill per line"),
    syn: Optional[Path] = typer.Option(None, "--syn", help="Synonyms JSON file"),
    topk_resumes: Optional[int] = typer.Option(None, "--topk-resumes"),
    offset: int = typer.Option(0, "--offset"),
    results_per_pill: Optional[int] = typer.Option(None, "--results-per-pill"),
    weighted: bool = typer.Option(False, "--weighted"),
    include_chunk_ids: bool = typer.Option(False, "--include-chunk-ids"),
    pretty: bool = typer.Option(False, "--pretty", help="Readable table output"),
):
    """Score indexed resumes against the pills and print the matrix."""
    pills = read_pills(pills_file, syn)
    options = SearchOptions(
        limit=topk_resumes,
        offset=offset,
        include_chunk_ids=include_chunk_ids,
        results_per_pill=results_per_pill,
        weighted=weighted,
    )
    try:
        matrix = asyncio.run(_search(pills, options))
    except AppError as e:
        typer.echo(f"❌ {e.message}", err=True)
        raise typer.Exit(code=1)

    if not pretty:
        typer.echo(json.dumps(matrix.to_dict(), ensure_ascii=False, indent=2))
        return

    for row in matrix.resumes:
        typer.echo(f"{row.score:.3f}  {row.resume_name}  ({row.resume_id})")
        for label, entries in zip(matrix.pills, row.scores):
            best = entries[0]
            evidence = clip_words(flatten_for_preview(best.evidence_text), max_words=20)
            typer.echo(f"    {label}: {best.similarity:.3f}  {evidence}")
    if matrix.has_more:
        typer.echo("… more results available (use --offset)")


if __name__ == "__main__":
    app()
