"""
Configuration for the remote collaborators.

Classes:
    RemoteConfig: Credentials, endpoints and timeouts for AI edit, upload and fetch
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from ERP_Libs.constants import (
    AI_EDIT_ENDPOINT,
    AI_EDIT_MODEL,
    AI_EDIT_TIMEOUT_S,
    CORS_PROXY,
    ENV_AI_MODEL,
    ENV_API_KEY,
    ENV_API_KEY_FALLBACK,
    ENV_CORS_PROXY,
    ENV_UPLOAD_HOST,
    FETCH_TIMEOUT_S,
    IMAGE_HOST_DOMAIN,
    IMAGE_UPLOAD_PATH,
    UPLOAD_TIMEOUT_S,
)


@dataclass
class RemoteConfig:
    """Configuration for remote services.

    Attributes:
        api_key: AI image-edit credential (None disables the remote path)
        ai_model: Model name used for image edits
        ai_endpoint: Endpoint template with a {model} placeholder
        ai_timeout_s: Timeout for the AI call
        image_host: Base URL of the image host (public URLs are built from it)
        upload_path: Upload path on the image host
        cors_proxy: Prefix prepended to remote URLs ('' to disable)
        upload_timeout_s: Timeout for uploads
        fetch_timeout_s: Timeout for source image fetches
    """
    api_key: Optional[str] = None
    ai_model: str = AI_EDIT_MODEL
    ai_endpoint: str = AI_EDIT_ENDPOINT
    ai_timeout_s: float = AI_EDIT_TIMEOUT_S
    image_host: str = IMAGE_HOST_DOMAIN
    upload_path: str = IMAGE_UPLOAD_PATH
    cors_proxy: str = CORS_PROXY
    upload_timeout_s: float = UPLOAD_TIMEOUT_S
    fetch_timeout_s: float = FETCH_TIMEOUT_S

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key) and self.api_key != "undefined"

    @property
    def upload_url(self) -> str:
        return f"{self.image_host.rstrip('/')}{self.upload_path}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RemoteConfig":
        """
        Build a config from environment variables.

        Reads GEMINI_API_KEY (falling back to API_KEY), ERP_AI_EDIT_MODEL,
        ERP_IMAGE_HOST and ERP_CORS_PROXY. Missing variables keep defaults.
        """
        env = os.environ if environ is None else environ
        config = cls(api_key=env.get(ENV_API_KEY) or env.get(ENV_API_KEY_FALLBACK) or None)
        if env.get(ENV_AI_MODEL):
            config.ai_model = env[ENV_AI_MODEL]
        if env.get(ENV_UPLOAD_HOST):
            config.image_host = env[ENV_UPLOAD_HOST]
        if ENV_CORS_PROXY in env:
            config.cors_proxy = env[ENV_CORS_PROXY]
        return config
