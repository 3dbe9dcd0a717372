"""Tarball unpacking."""

from __future__ import annotations

import io
import logging
import tarfile
import zlib
from pathlib import Path, PurePosixPath

from decaff.errors import UnpackError

logger = logging.getLogger(__name__)


def unpack_tarball(contents: bytes, destination: Path) -> int:
    """Decompress a gzip tarball and unpack it into `destination`.

    Hosts wrap archives in a single top-level directory (e.g. `repo-<hash>/`),
    which is stripped. Links and special files are skipped.

    Returns:
        Number of files written.

    Raises:
        UnpackError: If the archive is invalid or a member would be written
            outside of `destination`.
    """
    destination = Path(destination)
    root = destination.resolve()
    written = 0

    try:
        archive = tarfile.open(fileobj=io.BytesIO(contents), mode="r:gz")
    except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
        raise UnpackError("Couldn't decompress the tarball.") from e

    with archive:
        try:
            members = archive.getmembers()
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise UnpackError("Couldn't read the tarball.") from e

        for member in members:
            parts = PurePosixPath(member.name).parts[1:]
            if not parts:
                continue

            out_path = destination.joinpath(*parts)
            if ".." in parts or not out_path.resolve().is_relative_to(root):
                raise UnpackError(f"Refusing to unpack `{member.name}` outside of {destination}.")

            if member.isdir():
                out_path.mkdir(parents=True, exist_ok=True)
                continue

            if not member.isfile():
                logger.debug(f"Skipping non-regular member {member.name}")
                continue

            try:
                source = archive.extractfile(member)
            except (tarfile.TarError, OSError) as e:
                raise UnpackError(f"Couldn't read `{member.name}` from the tarball.") from e
            if source is None:
                continue

            try:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                with source, open(out_path, "wb") as dst:
                    dst.write(source.read())
                out_path.chmod((member.mode & 0o777) | 0o600)
            except (tarfile.TarError, EOFError, zlib.error) as e:
                raise UnpackError(f"Couldn't read `{member.name}` from the tarball.") from e
            except OSError as e:
                raise UnpackError(f"Couldn't write {out_path}.") from e
            written += 1

    destination.mkdir(parents=True, exist_ok=True)
    logger.info(f"Unpacked {written} files into {destination}")
    return written
