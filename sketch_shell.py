"""
Arctic Ice Sketch - Imperative Shell

Owns the single AnimationState, the flake field and the frame counter, and
drives the functional cores once per frame:

    input slot → transition_core.tick → extent_core → flake_core
        → flake_effects (draw commands) → OpenCV canvas → FrameRecorder

Input uses a command slot of depth 1: a key press is stored only when the
slot is empty and no gesture is in flight, otherwise it is dropped. Within
a frame the pending command is applied before the tick.
"""

import time
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import cv2  # type: ignore
import numpy as np  # type: ignore
from PIL import ImageFont  # type: ignore

from ice_types import AnimationState, FlakeCell, SEA_ICE_EXTENT, StepCommand, YearRecord, validate_years
from transition_core import (
    apply_command,
    create_animation_state,
    is_settled,
    key_to_command,
    tick,
)
from extent_core import extent_range, shrink_factor_for_state
from tessellation_core import build_flake_field
from noise_core import make_noise
from flake_core import FlakeTransform, build_frame_flakes
from flake_effects.core import LayerContext, resolve_layers
from flake_effects.shell import RenderTimings, render_flakes, time_operation
from render_video_core import create_cv2_canvas, create_text_overlay, cv2_composite_layer
from config_shell import SketchConfig, validate_config
from export_shell import FrameRecorder


FONT_PATHS = [
    '/usr/share/fonts/truetype/poppins/Poppins-Regular.ttf',  # Linux (Poppins installed)
    '/Library/Fonts/Poppins-Regular.ttf',  # macOS (Poppins installed)
    '/System/Library/Fonts/Supplemental/Arial.ttf',  # macOS
    '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf',  # Linux
    'C:\\Windows\\Fonts\\arial.ttf',  # Windows
]

KeyEvent = Tuple[str, bool]


def load_font(size: int) -> ImageFont.ImageFont:
    """Load system font or fall back to default"""
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    return ImageFont.load_default()


class IceSketch:
    """Year-stepping ice flake animation

    Args:
        config: Sketch configuration (defaults if None)
        years: Year table (defaults to the Arctic extent series)
        cells: Precomputed flake field (computed from config if None)
        verbose: Print status lines
        enable_timing: Collect per-operation render timings
    """

    def __init__(
        self,
        config: Optional[SketchConfig] = None,
        years: Sequence[YearRecord] = SEA_ICE_EXTENT,
        cells: Optional[Sequence[FlakeCell]] = None,
        verbose: bool = False,
        enable_timing: bool = False
    ):
        self.config = validate_config(config or SketchConfig())
        self.years = validate_years(years)
        self.verbose = verbose

        if cells is None:
            cells = build_flake_field(
                self.config.width,
                self.config.height,
                self.config.seed_count,
                self.config.random_seed
            )
        self.cells: Tuple[FlakeCell, ...] = tuple(cells)

        self.noise = make_noise(self.config.random_seed)
        self.layers = resolve_layers(self.config.layers)
        self.autoplay = self.config.autoplay

        self.state: AnimationState = create_animation_state()
        self.frame_count = 0
        self.pending_command: Optional[StepCommand] = None

        self.font = load_font(self.config.font_size) if self.config.show_year_label else None
        self.timings = RenderTimings() if enable_timing else None
        self.recorder = FrameRecorder(
            fps=self.config.fps,
            export_format=self.config.export.format,
            output_dir=self.config.export.output_dir,
            verbose=verbose
        )

        if verbose:
            drawn = sum(1 for cell in self.cells if cell.polygon is not None)
            low, high = extent_range(self.years)
            print(f"✓ {len(self.years)} years ({self.years[0].year}-{self.years[-1].year})")
            print(f"✓ Extent range {low:.3f}-{high:.3f} million km²")
            print(f"✓ {drawn} of {len(self.cells)} Voronoi cells non-empty")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_year(self) -> YearRecord:
        return self.years[self.state.current_index]

    @property
    def shrink_factor(self) -> float:
        return shrink_factor_for_state(self.years, self.state)

    @property
    def is_busy(self) -> bool:
        """A gesture is in flight or a command is waiting"""
        return self.pending_command is not None or not is_settled(self.state)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit_command(self, command: StepCommand) -> bool:
        """Store a command in the depth-1 slot

        Returns:
            True if accepted, False if dropped (slot full or gesture in flight)
        """
        if self.is_busy:
            return False
        self.pending_command = command
        return True

    def submit_key(self, key: str, modifier: bool = False) -> bool:
        """Translate a key press and submit it (unknown keys are ignored)"""
        command = key_to_command(key, modifier)
        if command is None:
            return False
        return self.submit_command(command)

    def request_step(self, direction: int, modifier: bool = False) -> bool:
        """Submit a step in direction (-1/+1), 5 years with modifier"""
        if direction not in (-1, 1):
            raise ValueError(f"Direction must be -1 or +1, got {direction}")
        return self.submit_command(StepCommand(direction=direction, modifier=modifier))

    def toggle_autoplay(self) -> bool:
        self.autoplay = not self.autoplay
        return self.autoplay

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def tick(self) -> AnimationState:
        """Advance one frame of state: pending input first, then the tick"""
        if self.autoplay and self.pending_command is None and is_settled(self.state):
            self.pending_command = StepCommand(direction=1)

        self.state = apply_command(self.state, self.pending_command)
        self.pending_command = None

        self.state = tick(
            self.state,
            len(self.years),
            self.config.progress_increment,
            self.config.step_pause_ticks
        )
        self.frame_count += 1
        return self.state

    def build_flakes(self) -> Tuple[FlakeTransform, ...]:
        """Flake transforms for the current frame"""
        return build_frame_flakes(
            self.cells,
            self.shrink_factor,
            self.frame_count,
            self.config.width,
            self.config.height,
            self.noise
        )

    def render(self) -> np.ndarray:
        """Draw the current frame

        Side effects:
        - Offers the frame to the recorder

        Returns:
            BGR frame (height, width, 3)
        """
        width, height = self.config.width, self.config.height
        r, g, b = self.config.background
        canvas = create_cv2_canvas(width, height, channels=3, fill_color=(b, g, r))

        with time_operation(self.timings, "build_flakes"):
            flakes = self.build_flakes()

        ctx = LayerContext(
            frame=self.frame_count,
            width=width,
            height=height,
            noise=self.noise,
            random_seed=self.config.random_seed
        )
        render_flakes(canvas, flakes, ctx, self.layers, self.timings)

        if self.font is not None:
            with time_operation(self.timings, "year_label"):
                overlay = create_text_overlay(width, height, str(self.current_year.year), self.font)
                cv2_composite_layer(canvas, overlay)

        self.recorder.capture(canvas)
        return canvas

    def advance(self) -> np.ndarray:
        """One full frame: tick then render"""
        self.tick()
        return self.render()

    def frames(self, count: int) -> Iterator[np.ndarray]:
        """Render count consecutive frames"""
        for _ in range(count):
            yield self.advance()

    def start_recording(self, frame_count: Optional[int] = None, output_path: Optional[str] = None) -> bool:
        """Start capturing the next frames for export (the UI record action)"""
        return self.recorder.start(frame_count or self.config.export.frames, output_path)

    def stop_recording(self) -> bool:
        """Abandon a recording in progress

        Returns:
            True if captured frames were dropped
        """
        if self.recorder.is_idle:
            return False
        if self.verbose:
            print(f"⚠️  Recording stopped after {self.recorder.frames_captured} of "
                  f"{self.recorder.frames_wanted} frames, nothing exported")
        self.recorder.cancel()
        return True


# ============================================================================
# Scripted Input
# ============================================================================

def parse_key_script(script: Optional[str]) -> Dict[int, List[KeyEvent]]:
    """Parse a scripted key sequence

    Format: comma separated 'frame:key' entries, key optionally prefixed
    with 'ctrl+', 'cmd+' or 'shift+' for the 5-year modifier.

    Examples:
        >>> parse_key_script("0:right,40:ctrl+left")
        {0: [('right', False)], 40: [('left', True)]}

    Raises:
        ValueError: For a malformed entry
    """
    events: Dict[int, List[KeyEvent]] = {}
    if not script:
        return events

    for entry in script.split(','):
        entry = entry.strip()
        if not entry:
            continue
        frame_text, sep, key_text = entry.partition(':')
        if not sep or not key_text.strip():
            raise ValueError(f"Malformed key entry {entry!r}, expected 'frame:key'")
        try:
            frame = int(frame_text)
        except ValueError as e:
            raise ValueError(f"Malformed frame number in {entry!r}") from e
        if frame < 0:
            raise ValueError(f"Frame number must be >= 0 in {entry!r}")

        parts = [p.strip().lower() for p in key_text.split('+')]
        key = parts[-1]
        modifier = any(p in ('ctrl', 'cmd', 'meta', 'shift') for p in parts[:-1])
        if key_to_command(key) is None:
            raise ValueError(f"Unknown key {key!r} in {entry!r}")
        events.setdefault(frame, []).append((key, modifier))

    return events


def render_scripted(
    sketch: IceSketch,
    total_frames: int,
    key_events: Optional[Dict[int, List[KeyEvent]]] = None,
    verbose: bool = False
) -> List[np.ndarray]:
    """Render frames headless, feeding scripted key events

    Events for frame n are submitted before frame n is ticked.

    Returns:
        Rendered BGR frames
    """
    key_events = key_events or {}
    frames = []
    report_every = max(total_frames // 10, 1)

    for frame_num in range(total_frames):
        for key, modifier in key_events.get(frame_num, []):
            accepted = sketch.submit_key(key, modifier)
            if verbose and not accepted:
                print(f"  frame {frame_num}: '{key}' dropped (transition in flight)")

        frames.append(sketch.advance())

        if verbose and (frame_num + 1) % report_every == 0:
            progress = (frame_num + 1) / total_frames * 100
            print(f"Progress: {progress:.1f}% (year {sketch.current_year.year})")

    return frames


# ============================================================================
# Interactive Preview
# ============================================================================

# cv2.waitKeyEx codes for arrow keys (GTK, Windows, macOS)
LEFT_ARROW_CODES = {65361, 2424832, 63234}
RIGHT_ARROW_CODES = {65363, 2555904, 63235}


def cv2_key_to_event(code: int) -> Optional[KeyEvent]:
    """Map a cv2.waitKeyEx code to a sketch key event

    Arrow keys and a/d step one year; A/D (shift) jump five.
    Returns None for keys that are not steps.
    """
    if code in LEFT_ARROW_CODES:
        return ('left', False)
    if code in RIGHT_ARROW_CODES:
        return ('right', False)
    if 0 <= code < 256:
        char = chr(code)
        if char in ('a', 'A'):
            return ('left', char.isupper())
        if char in ('d', 'D'):
            return ('right', char.isupper())
    return None


def run_preview(sketch: IceSketch, window_name: str = "Arctic Ice Extent") -> None:
    """Interactive window: arrows/a/d step, A/D jump 5, g records, p autoplay, q quits

    Side effects:
    - Opens an OpenCV window and blocks until closed
    """
    delay_ms = max(1, int(1000 / sketch.config.fps))
    print("Controls: ←/→ or a/d = 1 year, A/D = 5 years, g = record, p = autoplay, q = quit")

    try:
        while True:
            start = time.perf_counter()
            frame = sketch.advance()
            cv2.imshow(window_name, frame)

            elapsed_ms = int((time.perf_counter() - start) * 1000)
            code = cv2.waitKeyEx(max(1, delay_ms - elapsed_ms))
            if code == -1:
                continue
            if code in (27, ord('q')):
                break
            if code == ord('g'):
                sketch.start_recording()
                continue
            if code == ord('p'):
                state = "on" if sketch.toggle_autoplay() else "off"
                print(f"Autoplay {state}")
                continue

            event = cv2_key_to_event(code)
            if event is not None:
                sketch.submit_key(*event)
    finally:
        sketch.stop_recording()
        cv2.destroyWindow(window_name)
