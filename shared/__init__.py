from shared.config import shared_settings

__all__ = ["shared_settings"]
