import logging
import os
from typing import Dict, Optional

from fastapi import UploadFile

from storefront import config
from storefront.errors import ValidationFailure

logger = logging.getLogger("storefront.uploads")


def save_product_image(image: Optional[UploadFile]) -> Dict[str, str]:
    if image is None or not image.filename:
        raise ValidationFailure("No file uploaded")
    if not (image.content_type or "").startswith("image"):
        raise ValidationFailure("Please upload an image")

    data = image.file.read(config.MAX_UPLOAD_BYTES + 1)
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise ValidationFailure("Please upload an image smaller than 1MB")

    # Base name only, so the client cannot pick the directory
    filename = os.path.basename(image.filename.replace("\\", "/"))
    if not filename or filename in (".", ".."):
        raise ValidationFailure("Invalid file name")

    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(config.UPLOAD_DIR, filename), "wb") as fh:
        fh.write(data)
    logger.info("Stored product image %s (%d bytes)", filename, len(data))
    return {"src": f"{config.UPLOAD_URL_PREFIX}/{filename}"}
