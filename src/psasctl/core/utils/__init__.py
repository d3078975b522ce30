"""Utility functions and helpers."""

from psasctl.core.utils.i18n import UiText
from psasctl.core.utils.utils import mask_secret, new_secure_token, short_text

__all__ = ["mask_secret", "new_secure_token", "short_text", "UiText"]
