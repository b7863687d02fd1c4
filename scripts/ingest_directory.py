"""
Ingest every JPEG and PNG image of a directory into the database store.

Usage:
    python scripts/ingest_directory.py DIR [--source TAG] [--recursive]
"""
from __future__ import annotations

import sys
import asyncio
import mimetypes
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table
from rich.panel import Panel

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from image_similarity.core.config import settings
from image_similarity.core.database import close_db, get_session_factory, init_db
from image_similarity.core.exceptions import SimilarityException
from image_similarity.extractors import get_feature_extractor
from image_similarity.repositories import create_database_backend
from image_similarity.services import IngestionService

console = Console()


class DirectoryIngester:
    """Ingest image files found in a directory."""

    def __init__(self, directory: Path, source: Optional[str] = None, recursive: bool = False):
        self.directory = directory
        self.source = source
        self.recursive = recursive
        self.stats = {
            "total": 0,
            "ingested": 0,
            "rejected": 0,
            "errors": 0
        }

    def discover(self) -> List[Path]:
        """List candidate files in a stable order."""
        pattern = "**/*" if self.recursive else "*"
        return sorted(path for path in self.directory.glob(pattern) if path.is_file())

    async def run(self):
        """Run the ingestion."""
        console.print(Panel.fit(
            "[bold cyan]Directory Ingestion[/bold cyan]\n"
            f"Directory: {self.directory}\n"
            f"Recursive: {'yes' if self.recursive else 'no'}\n"
            f"Source tag: {self.source or 'user-upload'}\n"
            f"Extractor: {settings.feature_extractor}\n"
            f"Database: {settings.database_url}",
            border_style="cyan"
        ))

        if not settings.uses_database:
            console.print(
                "[yellow]STORAGE_BACKEND is 'memory'; images are written to DATABASE_URL "
                "and only the 'database' backend will serve them.[/yellow]"
            )

        files = self.discover()
        self.stats["total"] = len(files)
        if not files:
            console.print("\n[yellow]No files found![/yellow]")
            return

        await init_db()
        images, _ = create_database_backend(get_session_factory())
        ingestion = IngestionService(images, get_feature_extractor(settings.feature_extractor))

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task("Ingesting images...", total=len(files))

                for path in files:
                    progress.update(task, description=f"Processing: {path.name[:40]}...")
                    mime_type, _ = mimetypes.guess_type(path.name)

                    try:
                        await ingestion.ingest(path.read_bytes(), mime_type, path.name, self.source)
                        self.stats["ingested"] += 1
                    except SimilarityException as e:
                        if e.is_client_error:
                            self.stats["rejected"] += 1
                        else:
                            self.stats["errors"] += 1
                            console.print(f"[red]✗[/red] {path.name}: {e.message}")

                    progress.update(task, advance=1)
        finally:
            await close_db()

        self.display_summary()

    def display_summary(self):
        """Display ingestion summary."""
        table = Table(title="\n[bold]Ingestion Summary[/bold]")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")

        table.add_row("Files found", str(self.stats["total"]))
        table.add_row("Images ingested", str(self.stats["ingested"]))
        table.add_row("Rejected (type or size)", str(self.stats["rejected"]))
        table.add_row("Errors", str(self.stats["errors"]), style="red" if self.stats["errors"] > 0 else "green")

        console.print(table)


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Ingest a directory of images")
    parser.add_argument("directory", type=Path, help="Directory containing images")
    parser.add_argument("--source", default=None, help="Provenance tag for ingested images")
    parser.add_argument("--recursive", action="store_true", help="Include subdirectories")

    args = parser.parse_args()

    if not args.directory.is_dir():
        console.print(f"[red]Not a directory: {args.directory}[/red]")
        sys.exit(1)

    ingester = DirectoryIngester(
        directory=args.directory,
        source=args.source,
        recursive=args.recursive
    )
    asyncio.run(ingester.run())


if __name__ == "__main__":
    main()
