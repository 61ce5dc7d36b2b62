from __future__ import annotations

import shutil
import sys
from pathlib import Path
from typing import BinaryIO, Iterable, TextIO

from retdec_client.models import OutputKind, Phase
from retdec_client.services.delivery import DefaultDecompilationResult


class FileSaveDecompilationResult(DefaultDecompilationResult):
    """Saves accepted outputs into ``out_dir`` and prints progress to ``log``."""

    def __init__(
        self,
        out_dir: Path,
        kinds: Iterable[OutputKind] | None = None,
        log: TextIO | None = None,
    ):
        super().__init__()
        self.out_dir = out_dir
        self.kinds = frozenset(kinds) if kinds is not None else None
        self.log = log if log is not None else sys.stderr
        self.saved: list[Path] = []
        self._fallback_name: str | None = None

    def _print(self, line: str) -> None:
        print(line, file=self.log)

    def started(self) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self._print(f"Started decompilation with unique identifier {self.id}")

    def phase_change(self, phase: Phase) -> None:
        super().phase_change(phase)
        line = f"[{phase.completion:3d}] {phase.name}"
        if phase.description and phase.description != phase.name:
            line += f" {phase.description}"
        if phase.warnings:
            line += " ! warnings"
        self._print(line)

    def accept_output(self, kind: OutputKind, name: str | None = None) -> bool:
        if self.kinds is not None and kind not in self.kinds:
            return False
        self._fallback_name = f"{self.id}.{kind.value}" if name is None else f"{self.id}.{kind.value}.{name}"
        return True

    def target_path(self, file_name: str | None) -> Path:
        safe_name = Path(file_name).name if file_name else ""
        if not safe_name:
            safe_name = Path(self._fallback_name or f"{self.id}.out").name
        return self.out_dir / safe_name

    def consume_output(self, file_name: str | None, media_type: str, stream: BinaryIO) -> None:
        dst = self.target_path(file_name)
        self._print(f"Consuming {dst.name}")
        try:
            with dst.open("wb") as fh:
                shutil.copyfileobj(stream, fh)
        finally:
            stream.close()
        self.saved.append(dst)

    def finished(self) -> None:
        super().finished()
        self._print("Decompilation finished.")

    def failed(self, exc: BaseException) -> None:
        super().failed(exc)
        self._print(f"Decompilation failed: {exc}")
