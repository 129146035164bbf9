"""
Frame Export - Imperative Shell

Captures rendered frames and encodes them to an animated GIF (Pillow) or an
MP4 (FFmpeg subprocess). Triggered by a UI action, never by the state
machine.

Failures raise ExportError; FrameRecorder catches them, reports them and
goes back to idle so the animation keeps running untouched.
"""

import shutil
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np  # type: ignore

from render_video_core import cv2_to_pil


RECORDER_IDLE = 'idle'
RECORDER_RECORDING = 'recording'
RECORDER_ENCODING = 'encoding'


class ExportError(RuntimeError):
    """Raised when frames cannot be encoded or written"""


# ============================================================================
# Encoders
# ============================================================================

def gif_frame_duration_ms(fps: int) -> int:
    """Per-frame display time for a GIF at fps"""
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    return max(1, int(round(1000.0 / fps)))


def encode_gif(frames: Sequence[np.ndarray], output_path: str, fps: int = 30) -> Path:
    """Write BGR frames to a looping animated GIF

    Side effects:
    - Writes output_path (parent directories are created)

    Raises:
        ExportError: If there are no frames or Pillow cannot write the file
    """
    if len(frames) == 0:
        raise ExportError("No frames to export")

    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        images = [cv2_to_pil(frame) for frame in frames]
        images[0].save(
            output_path,
            format='GIF',
            save_all=True,
            append_images=images[1:],
            duration=gif_frame_duration_ms(fps),
            loop=0,
            optimize=False
        )
    except (OSError, ValueError) as e:
        raise ExportError(f"Failed to write GIF {output_path}: {e}") from e

    return output_path


def build_ffmpeg_command(width: int, height: int, fps: int, output_path: str) -> List[str]:
    """FFmpeg command reading raw BGR frames from stdin"""
    return [
        'ffmpeg',
        '-y',  # Overwrite output
        '-f', 'rawvideo',
        '-vcodec', 'rawvideo',
        '-s', f'{width}x{height}',
        '-pix_fmt', 'bgr24',
        '-r', str(fps),
        '-i', '-',  # Read from stdin
        '-c:v', 'libx264',
        '-pix_fmt', 'yuv420p',
        '-movflags', '+faststart',
        str(output_path)
    ]


def encode_mp4(frames: Sequence[np.ndarray], output_path: str, fps: int = 30) -> Path:
    """Pipe BGR frames through FFmpeg into an H.264 MP4

    Side effects:
    - Spawns an ffmpeg process
    - Writes output_path

    Raises:
        ExportError: If ffmpeg is missing, the pipe breaks or encoding fails
    """
    if len(frames) == 0:
        raise ExportError("No frames to export")
    if shutil.which('ffmpeg') is None:
        raise ExportError("ffmpeg not found on PATH (required for mp4 export)")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    height, width = frames[0].shape[:2]

    try:
        process = subprocess.Popen(
            build_ffmpeg_command(width, height, fps, str(output_path)),
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE
        )
    except OSError as e:
        raise ExportError(f"Failed to start ffmpeg: {e}") from e

    try:
        for frame in frames:
            process.stdin.write(np.ascontiguousarray(frame).tobytes())
        process.stdin.close()
    except (BrokenPipeError, OSError) as e:
        process.kill()
        process.wait()
        raise ExportError(f"FFmpeg pipe broke while writing frames: {e}") from e

    stderr_output = process.stderr.read().decode(errors='replace') if process.stderr else ''
    returncode = process.wait()
    if returncode != 0:
        raise ExportError(f"FFmpeg failed with return code {returncode}: {stderr_output[-500:]}")

    return output_path


def export_frames(
    frames: Sequence[np.ndarray],
    output_path: str,
    fps: int = 30,
    export_format: str = 'gif'
) -> Path:
    """Encode frames in the requested format

    Raises:
        ExportError: For an unknown format or any encoder failure
    """
    if export_format == 'gif':
        return encode_gif(frames, output_path, fps)
    if export_format == 'mp4':
        return encode_mp4(frames, output_path, fps)
    raise ExportError(f"Unsupported export format: {export_format!r}")


def default_output_path(output_dir: str, export_format: str, prefix: str = 'arctic_ice') -> Path:
    """Timestamped file name inside output_dir"""
    stamp = time.strftime('%Y%m%d_%H%M%S')
    return Path(output_dir) / f"{prefix}_{stamp}.{export_format}"


# ============================================================================
# Recorder
# ============================================================================

class FrameRecorder:
    """Captures the next N rendered frames and exports them

    States: idle → recording → encoding → idle. Any failure is reported and
    the recorder returns to idle; the frames it was given are never modified.
    """

    def __init__(
        self,
        fps: int = 30,
        export_format: str = 'gif',
        output_dir: str = 'exports',
        verbose: bool = True
    ):
        self.fps = fps
        self.export_format = export_format
        self.output_dir = output_dir
        self.verbose = verbose

        self.status = RECORDER_IDLE
        self.frames_wanted = 0
        self.output_path: Optional[Path] = None
        self.last_export: Optional[Path] = None
        self.last_error: Optional[str] = None
        self._frames: List[np.ndarray] = []

    @property
    def is_idle(self) -> bool:
        return self.status == RECORDER_IDLE

    @property
    def frames_captured(self) -> int:
        return len(self._frames)

    def start(self, frame_count: int, output_path: Optional[str] = None) -> bool:
        """Begin capturing frame_count frames

        Returns:
            True if recording started, False if the recorder is busy

        Raises:
            ValueError: If frame_count is not positive
        """
        if frame_count <= 0:
            raise ValueError(f"frame_count must be positive, got {frame_count}")
        if not self.is_idle:
            if self.verbose:
                print(f"⚠️  Recorder busy ({self.status}), ignoring start request")
            return False

        self.frames_wanted = frame_count
        self.output_path = Path(output_path) if output_path else default_output_path(
            self.output_dir, self.export_format
        )
        self.last_error = None
        self._frames = []
        self.status = RECORDER_RECORDING

        if self.verbose:
            print(f"Recording {frame_count} frames → {self.output_path}")
        return True

    def capture(self, frame: np.ndarray) -> Optional[Path]:
        """Offer a rendered frame to the recorder

        Returns:
            The exported path on the frame that completes a recording,
            otherwise None
        """
        if self.status != RECORDER_RECORDING:
            return None

        self._frames.append(frame.copy())
        if len(self._frames) < self.frames_wanted:
            return None

        return self._finish()

    def cancel(self) -> None:
        """Drop captured frames and return to idle"""
        self._reset()

    def _finish(self) -> Optional[Path]:
        self.status = RECORDER_ENCODING
        if self.verbose:
            print(f"Encoding {len(self._frames)} frames ({self.export_format})...")

        try:
            path = export_frames(self._frames, str(self.output_path), self.fps, self.export_format)
        except ExportError as e:
            self.last_error = str(e)
            if self.verbose:
                print(f"⚠️  Export failed: {e}")
            self._reset()
            return None

        self.last_export = path
        if self.verbose:
            print(f"✓ Exported to {path}")
        self._reset()
        return path

    def _reset(self) -> None:
        self._frames = []
        self.frames_wanted = 0
        self.status = RECORDER_IDLE
