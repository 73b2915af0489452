"""Doge-speak photo manipulation."""

import hashlib
import io
import random
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

_MODIFIERS = ("such", "very", "much", "so", "many")
_NOUNS = ("photo", "upload", "doge", "pixels", "spring", "amaze")
_COLOURS = (
    (255, 0, 0),
    (0, 255, 0),
    (0, 128, 255),
    (255, 0, 255),
    (255, 255, 0),
    (0, 255, 255),
)


class InvalidPhotoError(ValueError):
    """Raised when uploaded bytes cannot be decoded as an image."""


@dataclass
class DogePhotoManipulator:
    """Adds doge captions to a photo and re-encodes it as JPEG."""

    max_edge: int = 1024
    caption_count: int = 4
    jpeg_quality: int = 85

    def manipulate(self, data: bytes) -> bytes:
        """Return the dogified JPEG bytes for an uploaded image."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidPhotoError("Uploaded file is not a readable image") from exc
        image = ImageOps.exif_transpose(image).convert("RGB")
        image.thumbnail((self.max_edge, self.max_edge))

        # Seeded from the content so the same upload always gets the same captions.
        rng = random.Random(hashlib.sha256(data).digest())
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default(size=max(12, image.height // 14))
        width, height = image.size
        captions = [
            f"{rng.choice(_MODIFIERS)} {rng.choice(_NOUNS)}"
            for _ in range(self.caption_count)
        ]
        captions.append("wow")
        for index, caption in enumerate(captions):
            x = int(width * rng.uniform(0.05, 0.6))
            y = int(height * (index + 0.5) / (len(captions) + 1))
            draw.text(
                (x, y),
                caption,
                fill=rng.choice(_COLOURS),
                font=font,
                stroke_width=1,
                stroke_fill=(0, 0, 0),
            )

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=self.jpeg_quality)
        return output.getvalue()
