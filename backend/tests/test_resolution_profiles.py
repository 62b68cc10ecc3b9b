"""
Tests for resolution profiles.

Verifies:
1. Each tier maps to exactly one canonical portrait frame size
2. Unknown, empty and missing selectors fall back to 1080p silently
3. The request model applies the same fallback at ingress
"""

import pytest

from app.execution.models import TranscodeRequest
from app.execution.profiles import (
    DEFAULT_RESOLUTION,
    RESOLUTION_PROFILES,
    Resolution,
    ResolutionProfile,
    resolve_profile,
)


class TestProfileTable:
    """The fixed table itself."""

    @pytest.mark.parametrize(
        "selector,width,height",
        [
            ("720p", 720, 1280),
            ("1080p", 1080, 1920),
            ("4K", 2160, 3840),
        ],
    )
    def test_known_selectors(self, selector, width, height):
        profile = resolve_profile(selector)
        assert (profile.width, profile.height) == (width, height)
        assert profile.resolution.value == selector

    def test_one_profile_per_tier(self):
        assert set(RESOLUTION_PROFILES) == set(Resolution)
        for resolution, profile in RESOLUTION_PROFILES.items():
            assert profile.resolution is resolution

    def test_orientation_is_consistent(self):
        """All tiers share the same orientation, so clips never mismatch."""
        for profile in RESOLUTION_PROFILES.values():
            assert profile.width < profile.height

    def test_profiles_are_immutable(self):
        profile = resolve_profile("720p")
        with pytest.raises(AttributeError):
            profile.width = 1  # type: ignore

    def test_ffmpeg_forms(self):
        profile = ResolutionProfile(Resolution.HD_720, 720, 1280)
        assert profile.size == "720x1280"
        assert profile.scale_expr == "720:1280"


class TestResolutionFallback:
    """Unrecognized selectors degrade to 1080p without error."""

    @pytest.mark.parametrize("selector", ["SuperHD", "", "1080", "4k", "720P", None])
    def test_unknown_selector_falls_back(self, selector):
        assert resolve_profile(selector) == resolve_profile("1080p")

    def test_default_is_1080p(self):
        assert DEFAULT_RESOLUTION is Resolution.FHD_1080

    @pytest.mark.parametrize("selector", [" 720p ", "4K ", "\t1080p", "720p\n"])
    def test_padded_selector_falls_back(self, selector):
        """Selectors are matched exactly; padding makes them unknown."""
        assert Resolution.parse(selector) is Resolution.FHD_1080
        assert resolve_profile(selector) == resolve_profile("1080p")

    @pytest.mark.parametrize("selector", [720, 1080.0, True, b"4K", ["720p"]])
    def test_non_string_selector_falls_back(self, selector):
        assert Resolution.parse(selector) is Resolution.FHD_1080

    def test_enum_passthrough(self):
        assert Resolution.parse(Resolution.HD_720) is Resolution.HD_720


class TestRequestResolution:
    """TranscodeRequest parses the selector at construction."""

    def test_unknown_selector_on_request(self):
        request = TranscodeRequest(resolution="SuperHD")
        assert request.resolution is Resolution.FHD_1080

    def test_padded_selector_on_request(self):
        request = TranscodeRequest(resolution=" 720p ")
        assert request.resolution is Resolution.FHD_1080

    def test_integer_selector_on_request(self):
        request = TranscodeRequest(resolution=720)
        assert request.resolution is Resolution.FHD_1080

    def test_missing_selector_on_request(self):
        request = TranscodeRequest(resolution=None)
        assert request.resolution is Resolution.FHD_1080

    def test_known_selector_on_request(self):
        request = TranscodeRequest(resolution="4K")
        assert request.resolution is Resolution.UHD_4K
