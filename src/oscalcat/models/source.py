"""Raw source download models."""

from __future__ import annotations

from .control import CamelModel


class SourceFile(CamelModel):
    name: str
    filename: str
    url: str
    description: str = ""


class ManifestEntry(CamelModel):
    name: str
    filename: str
    url: str
    checksum: str
    size: int
    downloaded_at: str


class Manifest(CamelModel):
    version: str = "1.0"
    generated_at: str
    source: str
    files: list[ManifestEntry] = []

    def entry_for(self, filename: str) -> ManifestEntry | None:
        return next((f for f in self.files if f.filename == filename), None)
