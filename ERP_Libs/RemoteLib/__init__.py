"""
RemoteLib - Remote collaborators of the image editor

AI image edit, source image fetch and edited image upload.
"""

from ERP_Libs.RemoteLib.remote_config import RemoteConfig
from ERP_Libs.RemoteLib.ai_image_edit import AiEditResult, GeminiImageEditor
from ERP_Libs.RemoteLib.image_transfer import (
    ImageFetchError,
    ImageHostClient,
    UploadError,
    fetch_image_bytes,
    upload_image_bytes,
)

__all__ = [
    "RemoteConfig",
    "AiEditResult",
    "GeminiImageEditor",
    "ImageFetchError",
    "ImageHostClient",
    "UploadError",
    "fetch_image_bytes",
    "upload_image_bytes",
]
