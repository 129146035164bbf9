"""
Tests for sketch_shell.py - Imperative Shell

Tests the frame loop wiring: input slot, state ticks, rendering, recording
and scripted keys. Uses small canvases and a fast progress increment
(4 frames per year, 2-frame pause) to keep runs short.
"""

import pytest
import numpy as np

from config_shell import ExportConfig, SketchConfig
from extent_core import extent_to_shrink
from ice_types import SEA_ICE_EXTENT, StepCommand, YearRecord
from transition_core import is_settled, ticks_to_settle
from sketch_shell import (
    IceSketch,
    cv2_key_to_event,
    load_font,
    parse_key_script,
    render_scripted,
)


BACKGROUND_BGR = [50, 15, 5]


def small_config(**changes):
    values = dict(
        width=120,
        height=130,
        seed_count=20,
        progress_increment=0.25,
        step_pause_ticks=2,
        show_year_label=False,
    )
    values.update(changes)
    return SketchConfig(**values)


def advance(sketch, count):
    for _ in range(count):
        sketch.tick()


# ============================================================================
# Construction
# ============================================================================

class TestConstruction:
    """Tests for sketch set-up"""

    def test_starts_at_first_year(self):
        """Settled on 1979"""
        sketch = IceSketch(small_config())
        assert sketch.current_year.year == 1979
        assert is_settled(sketch.state)
        assert sketch.frame_count == 0

    def test_builds_field_from_config(self):
        """One cell per seed"""
        assert len(IceSketch(small_config()).cells) == 20

    def test_empty_year_table_rejected(self):
        """At least one year"""
        with pytest.raises(ValueError):
            IceSketch(small_config(), years=[])

    def test_invalid_config_rejected(self):
        """Config is validated"""
        with pytest.raises(ValueError):
            IceSketch(small_config(fps=0))

    def test_verbose_summary(self, capsys):
        """Verbose start-up reports the data"""
        IceSketch(small_config(), verbose=True)
        out = capsys.readouterr().out
        assert "46 years (1979-2024)" in out
        assert "3.566-7.667" in out


# ============================================================================
# Input Slot
# ============================================================================

class TestInput:
    """Tests for the depth-1 command slot"""

    def test_first_key_accepted(self):
        """Idle sketch takes a key"""
        sketch = IceSketch(small_config())
        assert sketch.submit_key('right')
        assert sketch.pending_command == StepCommand(direction=1)

    def test_second_key_same_frame_dropped(self):
        """Slot holds one command"""
        sketch = IceSketch(small_config())
        assert sketch.submit_key('right')
        assert not sketch.submit_key('left')
        assert sketch.pending_command.direction == 1

    def test_key_during_transition_dropped(self):
        """In-flight gestures ignore new keys"""
        sketch = IceSketch(small_config())
        sketch.submit_key('right')
        sketch.tick()
        assert sketch.state.is_transitioning
        assert not sketch.submit_key('right')
        assert sketch.pending_command is None

    def test_key_during_pause_dropped(self):
        """Pause between queued steps counts as in flight"""
        sketch = IceSketch(small_config())
        sketch.submit_key('right', modifier=True)
        advance(sketch, 4)
        assert sketch.state.pause_ticks > 0
        assert not sketch.submit_key('left')

    def test_unknown_key_ignored(self):
        """Non-arrow keys do nothing"""
        sketch = IceSketch(small_config())
        assert not sketch.submit_key('x')
        assert sketch.pending_command is None

    def test_request_step_validates_direction(self):
        """Direction must be -1 or +1"""
        with pytest.raises(ValueError):
            IceSketch(small_config()).request_step(0)


# ============================================================================
# Frame Loop
# ============================================================================

class TestFrameLoop:
    """Tests for ticking the state through the shell"""

    def test_single_step_forward(self):
        """Right arrow moves to 1980 after one step's frames"""
        sketch = IceSketch(small_config())
        sketch.submit_key('right')
        advance(sketch, 3)
        assert sketch.current_year.year == 1979
        advance(sketch, 1)
        assert sketch.current_year.year == 1980
        assert is_settled(sketch.state)
        assert sketch.frame_count == 4

    def test_backward_wraps_to_last_year(self):
        """Left from 1979 lands on 2024"""
        sketch = IceSketch(small_config())
        sketch.request_step(-1)
        advance(sketch, 4)
        assert sketch.current_year.year == 2024

    def test_five_year_jump_visits_each_year(self):
        """Modifier jump commits five single-year steps"""
        sketch = IceSketch(small_config())
        sketch.submit_key('right', modifier=True)

        seen = []
        for _ in range(ticks_to_settle(5, 0.25, 2)):
            sketch.tick()
            if not seen or seen[-1] != sketch.current_year.year:
                seen.append(sketch.current_year.year)

        assert seen == [1979, 1980, 1981, 1982, 1983, 1984]
        assert is_settled(sketch.state)

    def test_custom_years_wrap(self):
        """Any year table works"""
        years = [YearRecord(2000, 6.246), YearRecord(2001, 6.732)]
        sketch = IceSketch(small_config(), years=years)
        sketch.request_step(1)
        advance(sketch, 4)
        sketch.request_step(1)
        advance(sketch, 4)
        assert sketch.current_year.year == 2000

    def test_autoplay_keeps_stepping(self):
        """Autoplay injects a forward step whenever settled"""
        sketch = IceSketch(small_config(autoplay=True))
        advance(sketch, 8)
        assert sketch.current_year.year == 1981

    def test_toggle_autoplay(self):
        """Toggle flips and reports the new value"""
        sketch = IceSketch(small_config())
        assert sketch.toggle_autoplay() is True
        assert sketch.toggle_autoplay() is False

    def test_shrink_follows_extent(self):
        """Settled shrink is the current year's; mid-step is between"""
        sketch = IceSketch(small_config())
        start = extent_to_shrink(SEA_ICE_EXTENT[0].extent)
        end = extent_to_shrink(SEA_ICE_EXTENT[1].extent)
        assert sketch.shrink_factor == pytest.approx(start)

        sketch.request_step(1)
        advance(sketch, 2)
        assert sketch.shrink_factor == pytest.approx((start + end) / 2)


# ============================================================================
# Rendering
# ============================================================================

class TestRendering:
    """Tests for frame rendering"""

    def test_frame_shape(self):
        """BGR frame at canvas size"""
        frame = IceSketch(small_config()).render()
        assert frame.shape == (130, 120, 3)
        assert frame.dtype == np.uint8

    def test_background_only(self):
        """No layers, no label → flat deep-blue background"""
        frame = IceSketch(small_config(layers=())).render()
        assert np.all(frame == BACKGROUND_BGR)

    def test_no_cells(self):
        """Empty flake field draws just the background"""
        frame = IceSketch(small_config(), cells=()).render()
        assert np.all(frame == BACKGROUND_BGR)

    def test_flakes_drawn(self):
        """Default layers change the upper part of the canvas"""
        frame = IceSketch(small_config()).render()
        top = frame[:80]
        assert np.any(top != BACKGROUND_BGR)

    def test_year_label(self):
        """Label draws on an otherwise empty canvas"""
        frame = IceSketch(small_config(layers=(), show_year_label=True)).render()
        assert np.any(frame != BACKGROUND_BGR)

    def test_deterministic(self):
        """Same config, same frames"""
        a = IceSketch(small_config())
        b = IceSketch(small_config())
        for _ in range(5):
            frame_a = a.advance()
            frame_b = b.advance()
        assert np.array_equal(frame_a, frame_b)

    def test_frames_generator(self):
        """frames(n) yields n frames and advances the counter"""
        sketch = IceSketch(small_config())
        frames = list(sketch.frames(3))
        assert len(frames) == 3
        assert sketch.frame_count == 3

    def test_timings_collected(self):
        """enable_timing records build and draw times"""
        sketch = IceSketch(small_config(), enable_timing=True)
        sketch.advance()
        assert 'build_flakes' in sketch.timings.get_summary()

    def test_font_fallback(self):
        """Some font is always available"""
        assert load_font(12) is not None


class TestRecording:
    """Tests for the record action"""

    def test_record_gif(self, tmp_path):
        """Recording captures the next frames and writes a GIF"""
        sketch = IceSketch(small_config(autoplay=True))
        target = tmp_path / "ice.gif"
        assert sketch.start_recording(3, str(target))
        list(sketch.frames(3))
        assert target.exists()
        assert sketch.recorder.is_idle

    def test_recording_does_not_touch_state(self, tmp_path):
        """State after recorded frames equals state after plain frames"""
        plain = IceSketch(small_config(autoplay=True))
        recorded = IceSketch(small_config(autoplay=True))
        recorded.start_recording(2, str(tmp_path / "ice.gif"))
        list(plain.frames(2))
        list(recorded.frames(2))
        assert plain.state == recorded.state

    def test_stop_recording_drops_frames(self, tmp_path, capsys):
        """Stopping mid-recording exports nothing"""
        sketch = IceSketch(small_config(), verbose=True)
        target = tmp_path / "ice.gif"
        sketch.start_recording(5, str(target))
        list(sketch.frames(2))
        assert sketch.stop_recording()
        assert sketch.recorder.is_idle
        assert not target.exists()
        assert "2 of 5 frames" in capsys.readouterr().out

    def test_stop_recording_when_idle(self):
        """Nothing to stop"""
        assert not IceSketch(small_config()).stop_recording()

    def test_default_frame_count(self, tmp_path):
        """Without a count the configured export length is used"""
        sketch = IceSketch(small_config(export=ExportConfig(frames=2, output_dir=str(tmp_path))))
        sketch.start_recording()
        assert sketch.recorder.frames_wanted == 2


# ============================================================================
# Scripted Input
# ============================================================================

class TestKeyScript:
    """Tests for scripted key parsing and headless runs"""

    def test_parse(self):
        """Frames, keys and modifiers"""
        assert parse_key_script("0:right, 40:ctrl+left,40:ArrowRight") == {
            0: [('right', False)],
            40: [('left', True), ('arrowright', False)],
        }

    def test_parse_empty(self):
        """Empty script, no events"""
        assert parse_key_script(None) == {}
        assert parse_key_script("") == {}

    @pytest.mark.parametrize("script", ["right", "x:right", "-1:right", "3:", "3:up"])
    def test_parse_errors(self, script):
        """Malformed entries raise ValueError"""
        with pytest.raises(ValueError):
            parse_key_script(script)

    def test_render_scripted(self):
        """Scripted keys drive the sketch; keys mid-step are dropped"""
        sketch = IceSketch(small_config(layers=()))
        frames = render_scripted(sketch, 6, {0: [('right', False)], 2: [('right', False)]})
        assert len(frames) == 6
        assert sketch.current_year.year == 1980


class TestPreviewKeys:
    """Tests for cv2 key code mapping"""

    def test_arrows(self):
        """GTK and Windows arrow codes"""
        assert cv2_key_to_event(65361) == ('left', False)
        assert cv2_key_to_event(2555904) == ('right', False)

    def test_letters(self):
        """a/d single step, A/D five years"""
        assert cv2_key_to_event(ord('a')) == ('left', False)
        assert cv2_key_to_event(ord('D')) == ('right', True)

    def test_other_keys(self):
        """Anything else is not a step"""
        assert cv2_key_to_event(ord('z')) is None
        assert cv2_key_to_event(-1) is None
