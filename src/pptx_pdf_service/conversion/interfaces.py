from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class ConversionError(RuntimeError):
    """Raised when the conversion engine reports a failure."""


class UploadTooLargeError(ValueError):
    def __init__(self, max_bytes: int) -> None:
        super().__init__(f"upload exceeds {max_bytes} bytes")
        self.max_bytes = max_bytes


class ConverterGateway(Protocol):
    def convert(self, data: bytes, target_format: str) -> bytes:
        """Convert the given document bytes into `target_format` synchronously.
        This is a blocking call; callers should offload to threads if needed.
        Raises ConversionError when the engine fails.
        """


@dataclass(frozen=True)
class UploadArtifact:
    path: Path
    filename: str
    size_bytes: int


@dataclass(frozen=True)
class ConvertedArtifact:
    path: Path
    filename: str
    size_bytes: int
