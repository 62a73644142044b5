# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from __future__ import annotations

import io
import logging
from typing import Protocol

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_HERO_EDGE = 1200
JPEG_QUALITY = 85
HERO_IMAGE_PREFIX = "hero"


class StorageClient(Protocol):
    """Defines the minimal storage operations used for hero images."""

    def upload_bytes(self, data: bytes, dest_path: str, content_type: str) -> None:
        ...


def normalize_hero_image(data: bytes, max_edge: int = MAX_HERO_EDGE) -> bytes:
    """
    Re-encodes a downloaded product image as an RGB JPEG.

    Images larger than `max_edge` on their long side are downscaled.

    Raises:
        ValueError: If the bytes are not a decodable image or exceed
            Pillow's decompression bomb limit.
    """
    if not data:
        raise ValueError("Empty image data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode != "RGB":
                img = img.convert("RGB")
            if max(img.size) > max_edge:
                img.thumbnail((max_edge, max_edge))
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=JPEG_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValueError(f"Invalid image data: {e}") from e
    return out.getvalue()


def hero_storage_path(user_id: str, image_id: str) -> str:
    return f"{HERO_IMAGE_PREFIX}/{user_id}/{image_id}.jpg"


def store_hero_image(
    data: bytes, user_id: str, image_id: str, storage_client: StorageClient
) -> str:
    """Normalizes and uploads a hero image, returning its storage path."""
    path = hero_storage_path(user_id, image_id)
    storage_client.upload_bytes(normalize_hero_image(data), path, "image/jpeg")
    logger.info("Stored hero image at %s", path)
    return path
