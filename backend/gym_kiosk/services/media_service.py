import base64
import logging
import os
import re
from typing import Optional

import cloudinary
import cloudinary.uploader
from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:image/[\w.+-]+;base64,")


def decode_data_url(image: str) -> bytes:
    """Decode a ``data:image/...;base64,`` string (or bare base64) to bytes."""
    payload = DATA_URL_RE.sub("", image.strip())
    return base64.b64decode(payload, validate=True)


class MediaService:

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None
    ):
        cloud_name = cloud_name or os.getenv("CLOUD_NAME")
        api_key = api_key or os.getenv("CLOUD_API_KEY")
        api_secret = api_secret or os.getenv("CLOUD_API_SECRET")

        self.enabled = bool(cloud_name and api_key and api_secret)
        if self.enabled:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret
            )
            logger.info("Cloudinary configured for profile images")
        else:
            logger.warning("Cloudinary credentials missing, profile images kept inline")

    def upload_image(self, image_bytes: bytes, filename: str) -> str:
        try:
            result = cloudinary.uploader.upload(
                image_bytes,
                public_id=filename.rsplit('.', 1)[0],
                resource_type="image"
            )
            return result["secure_url"]
        except Exception as e:
            logger.error(f"Cloudinary upload failed: {str(e)}")
            raise

    def store_profile_image(self, image: Optional[str], member_id: str) -> Optional[str]:
        """Return the value to persist as the member's profile image."""
        if not image:
            return None
        if not self.enabled:
            return image
        return self.upload_image(decode_data_url(image), f"members/{member_id}/profile.jpg")
