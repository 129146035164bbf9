#!/usr/bin/env python3
"""
Arctic Sea-Ice Extent Sketch Renderer

Renders the 1979-2024 September Arctic sea-ice extent as a field of
shrinking Voronoi "ice flakes". Step through the years interactively, or
render a scripted sequence headless and export it as a GIF or MP4.

Usage:
    python render_ice_sketch.py --preview                      # Interactive window
    python render_ice_sketch.py --frames 300 --autoplay        # Headless tour to GIF
    python render_ice_sketch.py --keys "0:right,60:ctrl+right" --frames 400
    python render_ice_sketch.py --config iceconfig.yaml --format mp4
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from config_shell import DEFAULT_CONFIG_PATH, EXPORT_FORMATS, apply_overrides, load_config
from export_shell import default_output_path
from sketch_shell import IceSketch, parse_key_script, render_scripted, run_preview


def parse_layers(value: Optional[str]) -> Optional[tuple]:
    """Comma separated layer names; 'none' disables every layer"""
    if value is None:
        return None
    if value.strip().lower() == 'none':
        return ()
    return tuple(name.strip() for name in value.split(',') if name.strip())


def output_format(output: Optional[str], requested: Optional[str]) -> Optional[str]:
    """Export format implied by --output, checked against --format

    Returns:
        The format to use, or None to keep the configured one

    Raises:
        ValueError: If the extension is not gif/mp4 or disagrees with --format
    """
    if output is None:
        return requested
    suffix = Path(output).suffix.lower().lstrip('.')
    if suffix not in EXPORT_FORMATS:
        raise ValueError(f"--output must end in .gif or .mp4, got {output}")
    if requested is not None and requested != suffix:
        raise ValueError(f"--output {output} does not match --format {requested}")
    return suffix


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Render the Arctic sea-ice extent series as animated Voronoi ice flakes',
        epilog="""
Examples:
  python render_ice_sketch.py --preview                  # Interactive window
  python render_ice_sketch.py --frames 300 --autoplay    # Headless autoplay to GIF
  python render_ice_sketch.py --keys "0:ctrl+right"      # Scripted 5-year jump
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', type=str, default=None,
                        help=f'YAML config file (default: {DEFAULT_CONFIG_PATH.name} if present)')
    parser.add_argument('--width', type=int, default=None,
                        help='Canvas width (default: 550)')
    parser.add_argument('--height', type=int, default=None,
                        help='Canvas height (default: 600)')
    parser.add_argument('--fps', type=int, default=None,
                        help='Frames per second (default: 30)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for the flake field and effects')
    parser.add_argument('--layers', type=str, default=None,
                        help="Comma separated decorative layers, or 'none'")
    parser.add_argument('--no-label', action='store_true',
                        help='Hide the year label')
    parser.add_argument('--autoplay', action='store_true',
                        help='Step forward one year whenever the animation settles')
    parser.add_argument('--preview', action='store_true',
                        help='Open an interactive preview window')
    parser.add_argument('--frames', type=int, default=None,
                        help='Frames to render and export headless (default: export.frames)')
    parser.add_argument('--keys', type=str, default=None,
                        help="Scripted key presses, e.g. '0:right,40:ctrl+left'")
    parser.add_argument('--format', choices=['gif', 'mp4'], default=None,
                        help='Export format (default: gif)')
    parser.add_argument('--output', type=str, default=None,
                        help='Export file path, .gif or .mp4 (default: timestamped file in export.output_dir)')
    parser.add_argument('--timing', action='store_true',
                        help='Print a render timing summary')
    parser.add_argument('--quiet', action='store_true',
                        help='Only print errors')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = str(DEFAULT_CONFIG_PATH)

    try:
        export_format = output_format(args.output, args.format)
        config = load_config(config_path)
        config = apply_overrides(
            config,
            width=args.width,
            height=args.height,
            fps=args.fps,
            random_seed=args.seed,
            layers=parse_layers(args.layers),
            show_year_label=False if args.no_label else None,
            autoplay=True if args.autoplay else None,
            export_format=export_format,
            export_frames=args.frames
        )
        key_events = parse_key_script(args.keys)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if verbose:
        print("=" * 60)
        print("Arctic Ice Flakes")
        print("=" * 60)
        if config_path:
            print(f"Config: {config_path}")
        print(f"Canvas: {config.width}x{config.height} @ {config.fps} FPS")
        print(f"Layers: {', '.join(config.layers) if config.layers else 'none'}")
        print()

    sketch = IceSketch(config, verbose=verbose, enable_timing=args.timing)

    if args.preview:
        run_preview(sketch)
    else:
        total_frames = config.export.frames
        output_path = args.output or str(default_output_path(config.export.output_dir, config.export.format))

        sketch.start_recording(total_frames, output_path)
        if verbose:
            print(f"\nRendering {total_frames} frames...")
        render_scripted(sketch, total_frames, key_events, verbose=verbose)

        if sketch.recorder.last_error is not None:
            print(f"ERROR: {sketch.recorder.last_error}")
            return 1

    if args.timing and sketch.timings is not None:
        sketch.timings.print_summary()

    return 0


if __name__ == '__main__':
    sys.exit(main())
