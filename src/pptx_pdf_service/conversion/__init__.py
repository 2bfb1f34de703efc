"""
Domain layer for presentation conversion.
Provides the converter gateway, scratch-file handling and a service that
orchestrates one upload-convert-respond cycle, so front-ends (HTTP or others)
can share the same core logic.
"""

from .interfaces import (
    ConversionError,
    ConvertedArtifact,
    ConverterGateway,
    UploadArtifact,
    UploadTooLargeError,
)
from .adapters import LibreOfficeConverter, ScratchSession
from .service import ConversionService, download_filename
