import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from .adapters import ScratchSession
from .interfaces import ConvertedArtifact, ConverterGateway, UploadArtifact, UploadTooLargeError

logger = logging.getLogger(__name__)

PRESENTATION_SUFFIXES = (".pptx", ".ppt", ".ppsx", ".pps", ".potx", ".odp")


def download_filename(original: str, target_ext: str = ".pdf") -> str:
    """Name offered to the client for the converted file.

    A known presentation suffix is replaced (case-insensitively); any other
    name keeps its full text and gets the target extension appended.
    """
    name = original or "upload"
    lower = name.lower()
    for suffix in PRESENTATION_SUFFIXES:
        if lower.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)] + target_ext
    return name + target_ext


class ConversionService:
    """Core domain service for one upload-convert-respond cycle.

    This service is framework-agnostic. The HTTP layer opens a scratch
    session per request, feeds the upload through `receive_upload`, then
    calls `convert`; the session owns every file created along the way.
    """

    def __init__(
        self,
        converter: ConverterGateway,
        scratch_dir: Path,
        *,
        max_upload_bytes: int,
        target_format: str = "pdf",
    ) -> None:
        self._converter = converter
        self._scratch_dir = Path(scratch_dir)
        self._max_upload_bytes = max_upload_bytes
        self._target_format = target_format.lstrip(".")

    @property
    def scratch_dir(self) -> Path:
        return self._scratch_dir

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def prepare(self) -> None:
        self._scratch_dir.mkdir(parents=True, exist_ok=True)

    def scratch(self) -> ScratchSession:
        return ScratchSession(self._scratch_dir)

    async def receive_upload(
        self,
        session: ScratchSession,
        filename: str | None,
        reader: Callable[[int], Awaitable[bytes]],
    ) -> UploadArtifact:
        """Stream the upload into a fresh scratch file, enforcing the size ceiling."""
        input_path = session.new_path()
        size_bytes = 0
        CHUNK = 1024 * 1024
        with input_path.open("wb") as f_out:
            while True:
                chunk = await reader(CHUNK)
                if not chunk:
                    break
                size_bytes += len(chunk)
                if size_bytes > self._max_upload_bytes:
                    raise UploadTooLargeError(self._max_upload_bytes)
                f_out.write(chunk)
        return UploadArtifact(path=input_path, filename=filename or "upload", size_bytes=size_bytes)

    async def convert(self, session: ScratchSession, upload: UploadArtifact) -> ConvertedArtifact:
        """Run the converter once on the upload and store its output in scratch.

        ConversionError from the converter propagates unchanged; no retry.
        """
        data = await asyncio.to_thread(upload.path.read_bytes)
        output = await asyncio.to_thread(self._converter.convert, data, self._target_format)

        output_path = session.track(upload.path.with_name(f"{upload.path.name}.{self._target_format}"))
        await asyncio.to_thread(output_path.write_bytes, output)

        return ConvertedArtifact(
            path=output_path,
            filename=download_filename(upload.filename, f".{self._target_format}"),
            size_bytes=len(output),
        )
