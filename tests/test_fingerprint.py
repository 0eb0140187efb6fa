"""
Tests for region fingerprints and the overlay filter
"""

import numpy as np

from diceautobet.adapters.screen.mock_sampler import solid_frame
from diceautobet.orchestrator.contracts import ScreenSample
from diceautobet.orchestrator.fingerprint import DIGEST_SIZE, fingerprint, short
from diceautobet.orchestrator.overlay import OverlayFilter, bright_share, color_shares


def _sample(pixels):
    return ScreenSample(pixels=pixels, timestamp=0.0)


class TestFingerprint:

    def test_identical_pixels_share_fingerprint(self):
        a = _sample(solid_frame(40))
        b = _sample(solid_frame(40))
        assert fingerprint(a) == fingerprint(b)
        assert len(fingerprint(a)) == DIGEST_SIZE

    def test_single_pixel_difference_changes_fingerprint(self):
        px = solid_frame(40)
        px[3, 7, 1] = 41
        assert fingerprint(_sample(px)) != fingerprint(_sample(solid_frame(40)))

    def test_shape_is_part_of_fingerprint(self):
        a = np.zeros((10, 20, 3), dtype=np.uint8)
        b = np.zeros((20, 10, 3), dtype=np.uint8)
        assert a.tobytes() == b.tobytes()
        assert fingerprint(_sample(a)) != fingerprint(_sample(b))

    def test_timestamp_is_ignored(self):
        px = solid_frame(90)
        assert fingerprint(ScreenSample(px.copy(), 1.0)) == fingerprint(ScreenSample(px.copy(), 2.0))

    def test_short(self):
        fp = fingerprint(_sample(solid_frame(1)))
        assert short(fp) == fp.hex()[:8]
        assert short(None) == "-"

    def test_sample_pixels_are_read_only(self):
        sample = _sample(solid_frame(5))
        assert not sample.pixels.flags.writeable


class TestOverlayFilter:

    def setup_method(self):
        self.overlay = OverlayFilter()

    def test_plain_gray_is_not_an_overlay(self):
        assert not self.overlay(_sample(solid_frame(60)))

    def test_green_countdown_digits(self):
        px = solid_frame(30)
        px[15:25, 30:50] = (20, 200, 20)
        assert color_shares(px)["green"] > 3.0
        assert self.overlay.is_countdown(px)
        assert self.overlay(_sample(px))

    def test_red_countdown_digits(self):
        px = solid_frame(30)
        px[15:25, 30:50] = (220, 20, 20)
        assert self.overlay.is_countdown(px)

    def test_blue_die_vetoes_countdown(self):
        px = solid_frame(30)
        px[15:25, 30:40] = (220, 20, 20)
        px[15:25, 40:50] = (20, 20, 220)
        assert not self.overlay.is_countdown(px)

    def test_bright_banner(self):
        px = solid_frame(240)
        assert bright_share(px) == 100.0
        assert self.overlay.is_banner(px)
        assert self.overlay(_sample(px))

    def test_banner_check_can_be_disabled(self):
        overlay = OverlayFilter(check_banner=False)
        assert not overlay(_sample(solid_frame(240)))
