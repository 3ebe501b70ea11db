"""Output artifact writer.

Writes the three plain-text artifacts of a successful run (extracted
symbols, normalized reference list, matched symbols), one symbol per line.

The three files are replaced together: each is staged as a ``.tmp``
sibling and the staged files are only moved into place once all three
have been written. Previous artifacts are backed up during the swap and
restored if any move fails, so a failure part-way leaves them intact.
"""

import os
import shutil
from pathlib import Path

from config.settings import GlobalConfig, get_config
from src.exceptions import OutputWriteError
from src.logger import get_logger
from src.models import ReconciliationResult

log = get_logger(__name__)


class ArtifactWriter:
    """Persists a ReconciliationResult as newline-joined text files.

    Attributes:
        config: GlobalConfig for the output directory and file names.

    Example:
        writer = ArtifactWriter(config)
        paths = writer.write(result)
        print(paths["matched"].read_text())
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def artifact_paths(self) -> dict[str, Path]:
        output_dir = self.config.output_dir
        return {
            "extracted": output_dir / self.config.extracted_filename,
            "reference": output_dir / self.config.reference_filename,
            "matched": output_dir / self.config.matched_filename,
        }

    def write(self, result: ReconciliationResult) -> dict[str, Path]:
        """Write all three artifacts, overwriting previous ones.

        Args:
            result: Sequences to persist.

        Returns:
            Mapping of artifact key to written path.

        Raises:
            OutputWriteError: If any artifact cannot be written.
        """
        paths = self.artifact_paths()
        contents = {
            "extracted": result.extracted,
            "reference": result.reference,
            "matched": result.matched,
        }
        staged: dict[str, Path] = {}

        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            for key, target in paths.items():
                tmp_path = target.with_name(target.name + ".tmp")
                tmp_path.write_text("\n".join(contents[key]), encoding="utf-8")
                staged[key] = tmp_path

            self._commit(staged, paths)
        except OSError as exc:
            for tmp_path in staged.values():
                tmp_path.unlink(missing_ok=True)
            raise OutputWriteError(
                output_dir=str(self.config.output_dir), reason=str(exc)
            ) from exc

        log.info(
            "Artifacts written",
            **{key: str(path) for key, path in paths.items()},
        )
        return paths

    def _commit(self, staged: dict[str, Path], paths: dict[str, Path]) -> None:
        """Move staged files over their targets as one unit.

        Existing targets are copied to ``.bak`` siblings first. If any move
        fails, already committed targets are restored from those copies
        (or removed when there was no previous artifact).
        """
        backups: dict[str, Path] = {}
        committed: list[str] = []
        try:
            for key, target in paths.items():
                if target.exists():
                    backup = target.with_name(target.name + ".bak")
                    shutil.copy2(target, backup)
                    backups[key] = backup

            for key, tmp_path in staged.items():
                os.replace(tmp_path, paths[key])
                committed.append(key)
        except OSError:
            self._rollback(paths, backups, committed)
            raise
        finally:
            for backup in backups.values():
                backup.unlink(missing_ok=True)

    def _rollback(
        self, paths: dict[str, Path], backups: dict[str, Path], committed: list[str]
    ) -> None:
        for key in committed:
            target = paths[key]
            try:
                if key in backups:
                    os.replace(backups[key], target)
                else:
                    target.unlink(missing_ok=True)
            except OSError as exc:
                log.error("Failed to restore artifact", path=str(target), error=str(exc))

        if committed:
            log.warning("Partial artifact commit rolled back", restored=committed)
