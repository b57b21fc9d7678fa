"""
Entry Point Tests
=================

Argument parsing and overlay drawing; no windows are opened.
"""

import numpy as np
import pytest

from led_calibrator import config
from led_calibrator.main import draw_hud, draw_regions, no_signal_frame, parse_args
from led_calibrator.pipeline import PipelineHealth
from led_calibrator.results import DetectedRegion, DetectionResult

from conftest import blank_frame


class TestParseArgs:
    """Tests for the command line."""

    def test_defaults(self):
        args = parse_args([])
        assert args.source == config.STREAM_URL
        assert args.interval == config.DETECTION_INTERVAL
        assert args.min_area == config.MIN_REGION_AREA
        assert args.channel_order == config.CHANNEL_ORDER
        assert args.log_level == "INFO"

    def test_overrides(self):
        args = parse_args([
            "--source", "rtsp://10.0.0.5/live",
            "--interval", "0.25",
            "--min-area", "4",
            "--channel-order", "rgb",
        ])
        assert args.source == "rtsp://10.0.0.5/live"
        assert args.interval == 0.25
        assert args.min_area == 4.0
        assert args.channel_order == "rgb"

    def test_rejects_non_positive_interval(self):
        with pytest.raises(SystemExit):
            parse_args(["--interval", "0"])

    def test_rejects_unknown_channel_order(self):
        with pytest.raises(SystemExit):
            parse_args(["--channel-order", "hsv"])


class TestOverlay:
    """Tests for region and HUD drawing."""

    def test_draw_regions_outlines_box(self):
        frame = blank_frame(100, 100)
        result = DetectionResult(
            sequence=1,
            regions=(DetectedRegion(center_x=50.0, center_y=50.0, width=20.0, height=10.0),),
        )

        draw_regions(frame, result)

        assert tuple(frame[45, 40]) == config.REGION_COLOR
        assert tuple(frame[55, 60]) == config.REGION_COLOR
        # Unfilled
        assert tuple(frame[50, 50]) == (0, 0, 0)

    def test_draw_regions_without_results(self):
        frame = blank_frame(50, 50)
        draw_regions(frame, DetectionResult())
        assert not frame.any()

    def test_draw_hud_writes_text(self):
        frame = blank_frame(320, 240)
        health = PipelineHealth(last_error="timeout")
        draw_hud(frame, "STALE FRAME", 12, DetectionResult(sequence=3), health)
        assert frame.any()

    def test_no_signal_frame(self):
        width, height = config.NO_SIGNAL_SIZE
        frame = no_signal_frame()
        assert frame.shape == (height, width, 3)
        assert frame.dtype == np.uint8


class TestConfig:
    """Tests for relationships between settings."""

    def test_join_outlasts_blocked_read(self):
        # A capture thread stuck in a read must be able to finish before shutdown gives up on it
        assert config.THREAD_JOIN_TIMEOUT > config.READ_TIMEOUT_MS / 1000
        assert config.THREAD_JOIN_TIMEOUT > config.OPEN_TIMEOUT_MS / 1000
