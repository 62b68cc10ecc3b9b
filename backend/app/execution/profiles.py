"""
Resolution profiles.

Fixed mapping from the three user-selectable quality tiers to explicit
output frame sizes.

Orientation is portrait (width < height). The same profile is applied to the
primary clip and the outro clip so concatenated segments always share frame
geometry.

Unknown or missing selectors fall back to 1080p silently.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union


class Resolution(str, Enum):
    """User-selectable output tiers."""

    HD_720 = "720p"
    FHD_1080 = "1080p"
    UHD_4K = "4K"

    @classmethod
    def parse(cls, value: Optional[Union[str, "Resolution"]]) -> "Resolution":
        """Exact-match a selector string, falling back to DEFAULT_RESOLUTION."""
        if isinstance(value, Resolution):
            return value
        if not isinstance(value, str):
            return DEFAULT_RESOLUTION
        try:
            return cls(value)
        except ValueError:
            return DEFAULT_RESOLUTION


@dataclass(frozen=True)
class ResolutionProfile:
    """Canonical frame size for one resolution tier."""

    resolution: Resolution
    width: int
    height: int

    @property
    def size(self) -> str:
        """WxH form, as used by ffmpeg -s."""
        return f"{self.width}x{self.height}"

    @property
    def scale_expr(self) -> str:
        """W:H form, as used by the scale filter."""
        return f"{self.width}:{self.height}"


DEFAULT_RESOLUTION = Resolution.FHD_1080

RESOLUTION_PROFILES: Dict[Resolution, ResolutionProfile] = {
    Resolution.HD_720: ResolutionProfile(Resolution.HD_720, 720, 1280),
    Resolution.FHD_1080: ResolutionProfile(Resolution.FHD_1080, 1080, 1920),
    Resolution.UHD_4K: ResolutionProfile(Resolution.UHD_4K, 2160, 3840),
}


def resolve_profile(value: Optional[Union[str, Resolution]]) -> ResolutionProfile:
    """
    Resolve a selector to its profile.

    Args:
        value: "720p", "1080p", "4K", a Resolution, or anything else

    Returns:
        The matching ResolutionProfile; the 1080p profile for unknown values.
    """
    return RESOLUTION_PROFILES[Resolution.parse(value)]
