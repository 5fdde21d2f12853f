"""
Image Transfer Preprocessor.

Shrinks a picked image below an upload size budget before it is
attached to a multipart request. Each round re-compresses the previous
round's output at a lower quality and a smaller bounding box, so the
file size never grows; quality loss is cumulative.

Compression is best-effort: any failure returns the original uri.
"""

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from baraya.utils.multipart import FILE_URI_PREFIX, extension_for, uri_to_path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 200 * 1024  # 200KB

PIL_FORMAT_BY_MIME = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


@dataclass(frozen=True)
class CompressionPolicy:
    max_bytes: int = MAX_FILE_SIZE
    max_rounds: int = 5
    initial_quality: float = 0.8
    quality_step: float = 0.15
    min_quality: float = 0.1
    initial_max_dimension: int = 1280
    dimension_factor: float = 0.8


class ImageCompressor:
    """
    Iterative size-budget compressor backed by Pillow.

    Usage:
        compressor = ImageCompressor()
        uri = compressor.compress("file:///tmp/photo.jpg", "image/jpeg")
    """

    def __init__(self, policy: Optional[CompressionPolicy] = None, output_dir: Optional[str] = None):
        self.policy = policy or CompressionPolicy()
        self.output_dir = output_dir or tempfile.gettempdir()

    def compress(self, uri: str, mime_type: str = "image/jpeg") -> str:
        """
        Compress an image until it fits the size budget.

        Args:
            uri: Local path or file:// uri of the source image
            mime_type: Source mime type; decides the output encoder

        Returns:
            Uri of the compressed image, the same uri if it already fits,
            or the original uri if compression failed
        """
        policy = self.policy
        try:
            current_size = os.path.getsize(uri_to_path(uri))
            logger.info(f"Initial image size: {current_size / 1024:.2f} KB")

            if current_size <= policy.max_bytes:
                return uri

            current_path = uri_to_path(uri)
            quality = policy.initial_quality
            max_dimension = policy.initial_max_dimension
            rounds = 0

            while current_size > policy.max_bytes and rounds < policy.max_rounds and quality > policy.min_quality:
                logger.debug(f"Compressing round {rounds + 1}: quality={quality:.2f}, max_dimension={max_dimension}")

                output_path = self._compress_once(current_path, quality, max_dimension, mime_type)
                output_size = os.path.getsize(output_path)

                if output_size < current_size:
                    if current_path != uri_to_path(uri):
                        self._discard(current_path)
                    current_path, current_size = output_path, output_size
                else:
                    # Re-encoding grew the file; keep the smaller previous output
                    self._discard(output_path)
                logger.debug(f"New size: {current_size / 1024:.2f} KB")

                quality -= policy.quality_step
                max_dimension = int(max_dimension * policy.dimension_factor)
                rounds += 1

            logger.info(f"Final image size after {rounds} round(s): {current_size / 1024:.2f} KB")
            if uri.startswith(FILE_URI_PREFIX):
                return f"{FILE_URI_PREFIX}{current_path}"
            return current_path

        except Exception as e:
            logger.error(f"Image compression error: {e}", exc_info=True)
            return uri

    def _compress_once(self, path: str, quality: float, max_dimension: int, mime_type: str) -> str:
        """Write one re-encoded, downscaled copy of `path` and return its path."""
        image_format = PIL_FORMAT_BY_MIME.get((mime_type or "").lower(), "JPEG")
        output_path = os.path.join(self.output_dir, f"compressed_{uuid.uuid4().hex}{extension_for(mime_type)}")

        with Image.open(path) as image:
            image.thumbnail((max_dimension, max_dimension))
            if image_format == "JPEG" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")

            if image_format == "PNG":
                # PNG is lossless; only the bounding box shrinks it
                image.save(output_path, format="PNG", optimize=True)
            else:
                image.save(output_path, format=image_format, quality=max(1, int(quality * 100)), optimize=True)

        return output_path

    def release(self, compressed_uri: str, source_uri: str) -> None:
        """Delete a compressed copy once it has been sent; the source is never touched."""
        path = uri_to_path(compressed_uri)
        if path != uri_to_path(source_uri):
            self._discard(path)

    def _discard(self, path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            logger.debug(f"Could not remove intermediate file {path}: {e}")
