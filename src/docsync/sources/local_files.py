"""Directory scanners for document folders and source-code trees."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from docsync.config import CodeSource, LocalDirectorySource
from docsync.documents.loader import SUPPORTED_EXTENSIONS, DocumentLoader
from docsync.errors import SourceError

logger = logging.getLogger(__name__)

FileCallback = Callable[[str, str], None]

DEFAULT_CODE_EXTENSIONS: tuple[str, ...] = (
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".go", ".rs", ".java", ".kt", ".kts", ".swift",
    ".c", ".cc", ".cpp", ".h", ".hpp", ".cs",
    ".rb", ".php", ".scala", ".sql", ".sh", ".bash", ".zsh",
    ".html", ".css", ".scss", ".sass", ".less",
    ".json", ".yaml", ".yml", ".md",
)

_ALWAYS_SKIPPED_DIRS = {".git"}


@dataclass
class ScanResult:
    processed: int = 0
    skipped: int = 0
    max_mtime: float = 0.0
    processed_files: set[str] = field(default_factory=set)
    # Files that exist but could not be read; their stored records are kept
    failed_files: set[str] = field(default_factory=set)
    # A directory listing failed, so the scan did not see every file
    incomplete: bool = False

    @property
    def live_files(self) -> set[str]:
        return self.processed_files | self.failed_files


def file_url(file_path: str, base_path: str, rewrite_prefix: str | None = None) -> str:
    """Stable URL for a scanned file.

    With ``rewrite_prefix`` files under ``base_path`` become
    ``<prefix>/<relative/path>``; otherwise (and for files outside the base)
    ``file://<path>``.
    """
    if rewrite_prefix:
        try:
            rel = Path(file_path).relative_to(base_path).as_posix()
        except ValueError:
            logger.debug("File outside configured path, using default URL: %s", file_path)
            return f"file://{file_path}"
        return f"{rewrite_prefix.rstrip('/')}/{rel}"
    return f"file://{file_path}"


def url_scope(base_path: str, rewrite_prefix: str | None = None) -> str:
    """URL prefix covering every file that ``file_url`` produces for a directory."""
    if rewrite_prefix:
        return f"{rewrite_prefix.rstrip('/')}/"
    base = Path(base_path).as_posix()
    if base == ".":
        return "file://"
    return f"file://{base.rstrip('/')}/"


def _iter_entries(dir_path: Path, result: ScanResult) -> list[Path]:
    try:
        return sorted(dir_path.iterdir())
    except OSError as exc:
        logger.error("Error reading directory %s: %s", dir_path, exc)
        result.incomplete = True
        return []


def _extension_allowed(ext: str, include: list[str] | tuple[str, ...], exclude: list[str]) -> bool:
    if ext in exclude:
        return False
    return not include or ext in include


# ---------------------------------------------------------------------------
# Document directories
# ---------------------------------------------------------------------------


def scan_directory(
    cfg: LocalDirectorySource,
    on_file: FileCallback,
    loader: DocumentLoader | None = None,
) -> ScanResult:
    """Convert every matching file under ``cfg.path`` to markdown.

    ``on_file`` receives ``(file_path, markdown)``. A failure in one file is
    logged and does not stop the scan.

    Raises:
        SourceError: If ``cfg.path`` is not a directory.
    """
    loader = loader or DocumentLoader()
    include = [e.lower() for e in cfg.include_extensions]
    exclude = [e.lower() for e in cfg.exclude_extensions]
    result = ScanResult()
    visited: set[Path] = set()

    def walk(dir_path: Path) -> None:
        logger.info("Processing directory: %s", dir_path)
        for entry in _iter_entries(dir_path, result):
            real = entry.resolve()
            if real in visited:
                logger.debug("Skipping already visited path: %s", entry)
                continue
            visited.add(real)

            if entry.is_dir():
                if entry.name in _ALWAYS_SKIPPED_DIRS:
                    continue
                if cfg.recursive:
                    walk(entry)
                else:
                    logger.debug("Skipping directory %s (recursive=false)", entry)
                continue
            if not entry.is_file():
                continue

            ext = entry.suffix.lower()
            if not _extension_allowed(ext, include, exclude):
                logger.debug("Skipping file with filtered extension: %s", entry)
                result.skipped += 1
                continue

            try:
                logger.info("Reading file: %s", entry)
                if ext in SUPPORTED_EXTENSIONS:
                    content = loader.load_file(entry, encoding=cfg.encoding).text
                else:
                    content = entry.read_text(encoding=cfg.encoding)
            except Exception as exc:
                logger.error("Error processing file %s: %s", entry, exc)
                result.failed_files.add(str(entry))
                continue

            if len(content) > cfg.max_size:
                logger.warning(
                    "Processed content (%d chars) exceeds max size (%d). Skipping %s.",
                    len(content), cfg.max_size, entry,
                )
                result.skipped += 1
                continue

            path_str = str(entry)
            result.processed_files.add(path_str)
            try:
                on_file(path_str, content)
                result.processed += 1
            except Exception as exc:
                logger.error("Error processing file %s: %s", entry, exc)

    root = Path(cfg.path)
    if not root.is_dir():
        raise SourceError(f"Local directory does not exist: {root}")
    walk(root)
    logger.info("Directory processed. Processed: %d, Skipped: %d", result.processed, result.skipped)
    return result


# ---------------------------------------------------------------------------
# Code trees
# ---------------------------------------------------------------------------


def scan_code_directory(
    root: str | Path,
    cfg: CodeSource,
    on_file: FileCallback,
    allowed_files: set[str] | None = None,
    mtime_cutoff: float | None = None,
    track_files: set[str] | None = None,
) -> ScanResult:
    """Read matching source files under ``root`` and hand them to ``on_file``.

    Args:
        allowed_files: When given, only these paths are read (others are
            still tracked).
        mtime_cutoff: Skip files whose mtime is not newer than this.
        track_files: Filled with every path that passes the extension
            filters, read or not.
    """
    include = [e.lower() for e in (cfg.include_extensions or DEFAULT_CODE_EXTENSIONS)]
    exclude = [e.lower() for e in cfg.exclude_extensions]
    result = ScanResult()
    visited: set[Path] = set()

    def walk(dir_path: Path) -> None:
        logger.info("Processing code directory: %s", dir_path)
        for entry in _iter_entries(dir_path, result):
            real = entry.resolve()
            if real in visited:
                continue
            visited.add(real)

            if entry.is_dir():
                if entry.name in _ALWAYS_SKIPPED_DIRS:
                    continue
                if cfg.recursive:
                    walk(entry)
                else:
                    logger.debug("Skipping directory %s (recursive=false)", entry)
                continue
            if not entry.is_file():
                continue

            if not _extension_allowed(entry.suffix.lower(), include, exclude):
                result.skipped += 1
                continue

            path_str = str(entry)
            mtime = entry.stat().st_mtime
            if track_files is not None:
                track_files.add(path_str)
            result.max_mtime = max(result.max_mtime, mtime)

            if allowed_files is not None and path_str not in allowed_files:
                result.skipped += 1
                continue
            if mtime_cutoff is not None and mtime <= mtime_cutoff:
                result.skipped += 1
                continue

            try:
                logger.info("Reading file: %s", entry)
                content = entry.read_text(encoding=cfg.encoding)
            except (OSError, UnicodeDecodeError) as exc:
                logger.error("Error processing file %s: %s", entry, exc)
                result.failed_files.add(path_str)
                continue

            if len(content) > cfg.max_size:
                logger.warning(
                    "File content (%d chars) exceeds max size (%d). Skipping %s.",
                    len(content), cfg.max_size, entry,
                )
                result.skipped += 1
                continue

            result.processed_files.add(path_str)
            try:
                on_file(path_str, content)
                result.processed += 1
            except Exception as exc:
                logger.error("Error processing file %s: %s", entry, exc)

    root = Path(root)
    if not root.is_dir():
        raise SourceError(f"Code directory does not exist: {root}")
    walk(root)
    logger.info("Code directory processed. Processed: %d, Skipped: %d", result.processed, result.skipped)
    return result
