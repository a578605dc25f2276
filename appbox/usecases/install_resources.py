from __future__ import annotations

import logging
import shutil
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import IO, Iterator, List, Optional, Tuple

from appbox.domain.errors import SyncError
from appbox.domain.progress import PercentProgress
from appbox.domain.reconciler import UpdatePlan
from appbox.domain.runtime import RuntimeContext

from appbox.usecases.stage_reporter import StageReporter

_log = logging.getLogger(__name__)

ZIP_SUFFIXES = (".zip",)
TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")
_HIDDEN_DIRS = {"__MACOSX"}


def archive_kind(path: Path) -> Optional[str]:
    """Return ``"zip"``, ``"tar"``, or ``None`` for files copied verbatim."""
    name = path.name.lower()
    if name.endswith(ZIP_SUFFIXES):
        return "zip"
    if name.endswith(TAR_SUFFIXES):
        return "tar"
    return None


def normalize_member_path(value: str) -> Optional[PurePosixPath]:
    """Canonicalize an archive member path.

    Returns ``None`` for hidden entries; raises ``SyncError`` for unsafe paths.
    """
    text = str(value or "").strip().replace("\\", "/")
    pure = PurePosixPath(text)
    if not text or pure.is_absolute() or ".." in pure.parts:
        raise SyncError(
            "Archive contains unsafe path",
            stage="extract",
            hint=f"Unsafe member path: {value}",
        )
    parts = [part for part in pure.parts if part not in {"", "."}]
    if not parts:
        return None
    if any(part.startswith(".") or part in _HIDDEN_DIRS for part in parts):
        return None
    return PurePosixPath(*parts)


@dataclass
class InstallResources:
    """Expand or copy staged resources into the application directory.

    The staged metadata file is installed last; it marks the new version as
    current.
    """

    def __call__(self, ctx: RuntimeContext, plan: UpdatePlan, reporter: StageReporter) -> List[Path]:
        stale = list(plan.stale_resources)
        total = len(stale)
        ctx.app_dir.mkdir(parents=True, exist_ok=True)
        installed: List[Path] = []
        for index, resource in enumerate(stale):
            staged = ctx.staged_resource_path(index, resource)
            if not staged.is_file():
                raise SyncError(
                    f"Staged resource missing: {resource.name}",
                    stage="extract",
                    context=str(staged),
                )
            reporter.message(f"Extracting {resource.name}")
            tracker = PercentProgress(100, reporter.item_sink(index, total))
            try:
                kind = archive_kind(staged)
                if kind == "zip":
                    installed.extend(self._extract_zip(staged, ctx.app_dir, tracker))
                elif kind == "tar":
                    installed.extend(self._extract_tar(staged, ctx.app_dir, tracker))
                else:
                    destination = ctx.app_dir / staged.name
                    shutil.copyfile(staged, destination)
                    installed.append(destination)
            except SyncError:
                raise
            except (OSError, zipfile.BadZipFile, tarfile.TarError) as exc:
                raise SyncError(
                    f"Failed to install {resource.name}",
                    stage="extract",
                    hint=str(exc),
                    context=str(staged),
                ) from exc
            tracker.finish()

        self._install_metadata(ctx)
        reporter.items_done(total, total)
        _log.info("Installed %d files into %s", len(installed), ctx.app_dir)
        return installed

    @staticmethod
    def _install_metadata(ctx: RuntimeContext) -> None:
        if not ctx.staged_metadata_path.is_file():
            raise SyncError(
                "Staged version information missing",
                stage="extract",
                context=str(ctx.staged_metadata_path),
            )
        try:
            shutil.copyfile(ctx.staged_metadata_path, ctx.metadata_path)
        except OSError as exc:
            raise SyncError(
                "Could not record the installed version",
                stage="extract",
                hint=str(exc),
            ) from exc

    def _extract_zip(self, archive_path: Path, target_dir: Path, tracker: PercentProgress) -> List[Path]:
        written: List[Path] = []
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()
            tracker.total = len(members)
            for count, info in enumerate(members, start=1):
                relative = normalize_member_path(info.filename)
                if relative is not None and not info.is_dir() and info.file_size > 0:
                    with archive.open(info, "r") as source:
                        written.append(self._write_member(source, target_dir, relative))
                elif relative is not None and info.is_dir():
                    (target_dir / relative).mkdir(parents=True, exist_ok=True)
                else:
                    _log.debug("Skipping archive entry %s", info.filename)
                tracker.update(count)
        return written

    def _extract_tar(self, archive_path: Path, target_dir: Path, tracker: PercentProgress) -> List[Path]:
        written: List[Path] = []
        with tarfile.open(archive_path, "r:*") as tar:
            members = tar.getmembers()
            tracker.total = len(members)
            for count, (member, relative) in enumerate(self._tar_members(members), start=1):
                if relative is None:
                    _log.debug("Skipping archive entry %s", member.name)
                elif member.isdir():
                    (target_dir / relative).mkdir(parents=True, exist_ok=True)
                elif member.isfile() and member.size > 0:
                    source = tar.extractfile(member)
                    if source is not None:
                        with source:
                            written.append(self._write_member(source, target_dir, relative))
                tracker.update(count)
        return written

    @staticmethod
    def _tar_members(members) -> Iterator[Tuple[tarfile.TarInfo, Optional[PurePosixPath]]]:
        for member in members:
            if member.issym() or member.islnk():
                raise SyncError(
                    "Archive contains link entries",
                    stage="extract",
                    hint=f"Unsupported link member: {member.name}",
                )
            yield member, normalize_member_path(member.name)

    @staticmethod
    def _write_member(source: IO[bytes], target_dir: Path, relative: PurePosixPath) -> Path:
        destination = target_dir.joinpath(*relative.parts)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with destination.open("wb") as handle:
            shutil.copyfileobj(source, handle)
        return destination


__all__ = ["InstallResources", "archive_kind", "normalize_member_path"]
