import logging
import subprocess
import tempfile
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Callable

from .interfaces import ConversionError, ConverterGateway

logger = logging.getLogger(__name__)


def _unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.error("Cleanup error for %s", path, exc_info=True)


class ScratchSession:
    """Scratch files owned by a single request.

    Every path handed out by `new_path` is removed when the session closes.
    `release` moves that obligation to the caller (for example a response that
    still has to stream one of the files) and returns the callable that
    performs the removal.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base = Path(base_dir)
        self._stack = ExitStack()
        self._paths: list[Path] = []

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def new_path(self, suffix: str = "") -> Path:
        return self.track(self._base / f"{uuid.uuid4().hex}{suffix}")

    def track(self, path: Path) -> Path:
        self._paths.append(path)
        self._stack.callback(_unlink, path)
        return path

    def release(self) -> Callable[[], None]:
        return self._stack.pop_all().close

    def close(self) -> None:
        self._stack.close()

    def __enter__(self) -> "ScratchSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class LibreOfficeConverter(ConverterGateway):
    """Runs headless LibreOffice in a private working directory per call."""

    def __init__(self, soffice_path: str = "soffice", *, timeout: float | None = None) -> None:
        self._binary = soffice_path
        self._timeout = timeout

    def convert(self, data: bytes, target_format: str) -> bytes:
        fmt = target_format.lstrip(".").lower()
        with tempfile.TemporaryDirectory(prefix="soffice-") as work:
            work_dir = Path(work)
            source = work_dir / "source"
            source.write_bytes(data)
            # Separate profile so concurrent soffice processes do not lock each other out
            profile = work_dir / "profile"
            cmd = [
                self._binary,
                f"-env:UserInstallation={profile.as_uri()}",
                "--headless",
                "--norestore",
                "--convert-to", fmt,
                "--outdir", str(work_dir),
                str(source),
            ]
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
            except FileNotFoundError as e:
                raise ConversionError(f"LibreOffice executable not found: {self._binary}") from e
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"conversion timed out after {self._timeout} seconds") from e

            output = work_dir / f"source.{fmt}"
            if result.returncode != 0 or not output.exists():
                message = (result.stderr or "").strip() or (result.stdout or "").strip()
                raise ConversionError(message or f"soffice exited with code {result.returncode} without output")
            return output.read_bytes()
