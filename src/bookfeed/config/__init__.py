# ABOUTME: Configuration layer for catalog generation.
# ABOUTME: Exports the CatalogProfile dataclass and profile loading helpers.

from bookfeed.config.profile import (
    CatalogProfile,
    DeviceMode,
    ProfileError,
    load_profile,
    profile_from_dict,
)

__all__ = [
    "CatalogProfile",
    "DeviceMode",
    "ProfileError",
    "load_profile",
    "profile_from_dict",
]
