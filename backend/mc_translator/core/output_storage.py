"""Output tree management.

output_path/
├── assets/<module>/lang/<target file>   # translated language files
├── config/ftbquests/...                  # translated quest files
├── pack.mcmeta                           # resource pack descriptor
└── raw_content/
    ├── untranslated/<relpath>.json       # ids written with source-text fallback
    └── snapshots/<relpath>.json          # quest source texts at last write
"""

import json
import logging
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)

RAW_CONTENT_DIR = "raw_content"
UNTRANSLATED_DIR = "untranslated"
SNAPSHOTS_DIR = "snapshots"

PACK_FORMAT = 3
PACK_DESCRIPTION = "§aAI translated resource pack§r, generated by §bmc translator§r"


class OutputStorage:
    """Writes output documents and their bookkeeping sidecars."""

    def __init__(self, output_root: Path):
        self.output_root = Path(output_root)

    def path_for(self, relpath: PurePosixPath) -> Path:
        return self.output_root.joinpath(*relpath.parts)

    def exists(self, relpath: PurePosixPath) -> bool:
        return self.path_for(relpath).is_file()

    def read_text(self, relpath: PurePosixPath) -> Optional[str]:
        path = self.path_for(relpath)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8-sig")

    def write_atomic(self, relpath: PurePosixPath, content: str) -> Path:
        """Write via a temporary file so readers never see a partial document."""
        return self._write(self.path_for(relpath), content)

    @staticmethod
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    # Sidecars

    def _sidecar_path(self, kind: str, relpath: PurePosixPath) -> Path:
        return self.output_root.joinpath(RAW_CONTENT_DIR, kind, *relpath.parts).with_name(
            f"{relpath.name}.json"
        )

    def _read_sidecar(self, kind: str, relpath: PurePosixPath) -> dict[str, str]:
        path = self._sidecar_path(kind, relpath)
        if not path.is_file():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[Storage] Ignoring unreadable sidecar {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"[Storage] Ignoring malformed sidecar {path}")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_sidecar(self, kind: str, relpath: PurePosixPath, entries: dict[str, str]) -> None:
        path = self._sidecar_path(kind, relpath)
        if not entries:
            path.unlink(missing_ok=True)
            return
        self._write(path, json.dumps(entries, indent=2, ensure_ascii=False))

    def read_untranslated(self, relpath: PurePosixPath) -> dict[str, str]:
        return self._read_sidecar(UNTRANSLATED_DIR, relpath)

    def write_untranslated(self, relpath: PurePosixPath, entries: dict[str, str]) -> None:
        """Record ids written with their source text; cleared when empty."""
        self._write_sidecar(UNTRANSLATED_DIR, relpath, entries)
        if entries:
            logger.info(
                f"[Storage] Backed up {len(entries)} untranslated entries for {relpath}"
            )

    def read_snapshot(self, relpath: PurePosixPath) -> dict[str, str]:
        return self._read_sidecar(SNAPSHOTS_DIR, relpath)

    def write_snapshot(self, relpath: PurePosixPath, entries: dict[str, str]) -> None:
        self._write_sidecar(SNAPSHOTS_DIR, relpath, entries)

    def write_pack_meta(
        self, pack_format: int = PACK_FORMAT, description: str = PACK_DESCRIPTION
    ) -> Path:
        """Write pack.mcmeta so the output tree loads as a resource pack."""
        meta = {"pack": {"pack_format": pack_format, "description": description}}
        return self._write(
            self.output_root / "pack.mcmeta", json.dumps(meta, indent=2, ensure_ascii=False)
        )
