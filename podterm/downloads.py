from __future__ import annotations

import logging
import queue
import re
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import urlparse

import requests

from .feeds import USER_AGENT
from .messages import Message

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024
MAX_NAME_LENGTH = 100

UNSAFE_CHARS_RE = re.compile(r"[^\w\-. ]+")
WHITESPACE_RE = re.compile(r"\s+")

CONTENT_TYPE_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "audio/opus": "opus",
    "audio/flac": "flac",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
}


@dataclass(frozen=True)
class EpData:
    pod_id: int
    ep_id: int
    title: str
    url: str
    pod_title: str
    pubdate: datetime | None = None


class DownloadMessage(Message):
    pass


@dataclass(frozen=True)
class DownloadComplete(DownloadMessage):
    pod_id: int
    ep_id: int
    path: Path


@dataclass(frozen=True)
class DownloadFailed(DownloadMessage):
    pod_id: int
    ep_id: int
    title: str
    error: str


def sanitize_filename(value: str) -> str:
    cleaned = UNSAFE_CHARS_RE.sub("_", value)
    cleaned = WHITESPACE_RE.sub(" ", cleaned).strip(" .")
    return cleaned[:MAX_NAME_LENGTH] or "untitled"


def extension_for(content_type: str | None, url: str) -> str:
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime in CONTENT_TYPE_EXTENSIONS:
            return CONTENT_TYPE_EXTENSIONS[mime]
    suffix = Path(urlparse(url).path).suffix.lstrip(".").lower()
    if suffix and suffix.isalnum() and len(suffix) <= 5:
        return suffix
    return "mp3"


def episode_file_stem(job: EpData) -> str:
    title = sanitize_filename(job.title)
    if job.pubdate is None:
        return title
    return f"{job.pubdate:%Y-%m-%d}_{title}"


def download_episode(
    job: EpData,
    download_path: Path,
    max_retries: int = 3,
    session: requests.Session | None = None,
) -> DownloadComplete | DownloadFailed:
    http = session or requests.Session()
    target_dir = download_path / sanitize_filename(job.pod_title)
    last_error = "no attempts made"

    for attempt in range(1, max(max_retries, 1) + 1):
        partial: Path | None = None
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with http.get(
                job.url,
                stream=True,
                timeout=DOWNLOAD_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                response.raise_for_status()
                ext = extension_for(response.headers.get("Content-Type"), job.url)
                target = target_dir / f"{episode_file_stem(job)}.{ext}"
                partial = target.with_name(f"{target.name}.part")
                with partial.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
            partial.replace(target)
        except (requests.RequestException, OSError) as exc:
            last_error = str(exc)
            logger.warning(
                "download of %s failed (attempt %s/%s): %s", job.url, attempt, max_retries, exc
            )
            if partial is not None:
                partial.unlink(missing_ok=True)
            continue
        logger.info("downloaded %s to %s", job.url, target)
        return DownloadComplete(job.pod_id, job.ep_id, target)

    return DownloadFailed(job.pod_id, job.ep_id, job.title, last_error)


class DownloadManager:
    """Fixed pool of worker threads fed from one job queue."""

    def __init__(
        self,
        tx: queue.Queue[Message],
        download_path: Path,
        n_workers: int = 3,
        max_retries: int = 3,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.tx = tx
        self.download_path = download_path
        self.n_workers = max(n_workers, 1)
        self.max_retries = max_retries
        self.session_factory = session_factory
        self.jobs: queue.Queue[EpData] = queue.Queue()
        self.stop_event = threading.Event()
        self.workers: list[threading.Thread] = []

    def start(self) -> None:
        for index in range(self.n_workers):
            worker = threading.Thread(
                target=self._worker,
                name=f"podterm-download-{index}",
                daemon=True,
            )
            worker.start()
            self.workers.append(worker)

    def enqueue(self, jobs: Iterable[EpData]) -> int:
        count = 0
        for job in jobs:
            self.jobs.put(job)
            count += 1
        return count

    def stop(self, timeout: float = 2.0) -> None:
        self.stop_event.set()
        for worker in self.workers:
            worker.join(timeout=timeout)
        self.workers = []

    def _worker(self) -> None:
        session = self.session_factory()
        while not self.stop_event.is_set():
            try:
                job = self.jobs.get(timeout=0.25)
            except queue.Empty:
                continue
            result = download_episode(job, self.download_path, self.max_retries, session)
            self.tx.put(result)
