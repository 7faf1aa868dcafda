"""Inbox folder scanning, frontmatter parsing into queries, and archive logic."""

import shutil
from datetime import datetime
from pathlib import Path

import frontmatter

from synapse.models import Complexity, Length, Level, Persona, Query, Tone


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, sorted by mtime ascending (oldest first)."""
    files = list(inbox_dir.glob("*.md"))
    return sorted(files, key=lambda p: p.stat().st_mtime)


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown file with optional YAML frontmatter.

    Returns:
        (content, metadata) where content is the body text and metadata
        may hold: complexity, level, tone, length.
        If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    content = post.content.strip()
    metadata = dict(post.metadata)
    return content, metadata


def query_from_file(
    file_path: Path,
    complexity: Complexity | None = None,
    persona: Persona | None = None,
) -> Query:
    """Build a Query from an inbox file. CLI values win over frontmatter.

    Raises:
        ValueError: when a frontmatter value is not a recognised option.
    """
    text, meta = parse_file(file_path)

    if complexity is None and "complexity" in meta:
        complexity = Complexity(str(meta["complexity"]).lower())

    if persona is None and any(k in meta for k in ("level", "tone", "length")):
        persona = Persona(
            level=Level(str(meta.get("level", "intermediate")).lower()),
            tone=Tone(str(meta.get("tone", "formal")).lower()),
            length=Length(str(meta.get("length", "detailed")).lower()),
        )

    return Query(text=text, requested_complexity=complexity, persona=persona, source=str(file_path))


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix.

    Args:
        file_path: Source file to archive.
        archive_dir: Destination directory.
        failed: If True, prefix filename with "FAILED_".

    Returns:
        Path to the archived file.
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest = archive_dir / f"{prefix}{timestamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
