from __future__ import annotations

import logging
import queue
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import AppConfig, parse_args
from .controller import Controller
from .downloads import DownloadManager
from .feeds import FeedError, fetch_feed
from .messages import MainMessage, Message
from .storage import Storage
from .types import LockVec, Podcast
from .ui.app import spawn_ui

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def configure_logging(config: AppConfig) -> None:
    root = logging.getLogger("podterm")
    root.handlers.clear()
    root.propagate = False
    if config.log_level == "off" or config.log_file is None:
        root.addHandler(logging.NullHandler())
        return
    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(config.log_level.upper())


def render_sync_table(rows: list[tuple[str, int, str]]) -> Table:
    table = Table(title="Podcast sync", expand=True)
    table.add_column("Podcast", style="bold", overflow="fold")
    table.add_column("New", justify="right", width=5)
    table.add_column("Status", overflow="fold")
    for title, new_count, status in rows:
        table.add_row(title, str(new_count), status)
    return table


def run_sync(config: AppConfig, storage: Storage, podcasts: LockVec[Podcast], console: Console) -> int:
    ignored: queue.Queue[MainMessage] = queue.Queue()
    controller = Controller(config, podcasts, storage, ignored, queue.Queue())
    rows: list[tuple[str, int, str]] = []
    failures = 0
    for podcast in podcasts.items(filtered=False):
        try:
            data = fetch_feed(podcast.url, max_retries=config.max_retries)
        except FeedError as exc:
            failures += 1
            rows.append((escape(podcast.title), 0, f"[red]{escape(str(exc))}[/red]"))
            continue
        new_episodes = controller.sync_podcast(podcast.id, data)
        rows.append((escape(data.title), len(new_episodes), "[green]ok[/green]"))

    if not rows:
        console.print("[bold]No podcasts to sync.[/bold]")
        return 0
    console.print(render_sync_table(rows))
    return 1 if failures else 0


def run(config: AppConfig, storage: Storage, podcasts: LockVec[Podcast], console: Console) -> int:
    to_ui: queue.Queue[MainMessage] = queue.Queue()
    to_main: queue.Queue[Message] = queue.Queue()

    downloader = DownloadManager(
        to_main,
        config.download_path,
        n_workers=config.simultaneous_downloads,
        max_retries=config.max_retries,
    )
    controller = Controller(config, podcasts, storage, to_ui, to_main, downloader)

    downloader.start()
    controller.ui_thread = spawn_ui(config, podcasts, to_ui, to_main)
    try:
        controller.run()
    except KeyboardInterrupt:
        controller.shutdown()
    if controller.ui_failed:
        console.print("[red]The interface stopped unexpectedly.[/red] See the log file for details.")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    console = Console()
    try:
        config = parse_args(argv if argv is not None else sys.argv[1:])
        configure_logging(config)
    except (ValueError, OSError) as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    storage = Storage(config.data_path)
    loaded, load_error = storage.load()
    if load_error:
        # never overwrite a data file we could not read
        console.print(f"[red]Configuration error:[/red] {load_error}")
        return 2
    podcasts = LockVec(sorted(loaded, key=lambda pod: pod.sort_title))
    logger.info("loaded %s podcast(s) from %s", len(loaded), config.data_path)

    if config.sync_only:
        return run_sync(config, storage, podcasts, console)

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        console.print("[red]podterm needs an interactive terminal.[/red] Use --sync for a one-shot sync.")
        return 1
    return run(config, storage, podcasts, console)
