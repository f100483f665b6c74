"""Local copies of rendered recap documents."""

import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    def save(self, filename: str, content: bytes) -> Optional[str]: ...


class LocalDocumentSink:
    """Writes documents under ``directory``, never overwriting an earlier copy."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def save(self, filename: str, content: bytes) -> Optional[str]:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / filename
        stem, suffix = target.stem, target.suffix
        idx = 1
        while target.exists():
            target = self.directory / f"{stem}({idx}){suffix}"
            idx += 1
        target.write_bytes(content)
        logger.info("Recap document saved: %s (%d bytes)", target, len(content))
        return str(target)


class MemoryDocumentSink:
    def __init__(self):
        self.documents: dict[str, bytes] = {}

    def save(self, filename: str, content: bytes) -> Optional[str]:
        self.documents[filename] = content
        return filename
