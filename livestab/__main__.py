"""
livestab Command Line Interface

Usage:
    livestab <command> [options]

Commands:
    stabilize   Stabilize a video file
    analyze     Report tracking quality for a video file
    config      Create a configuration file
    version     Show version information

Examples:
    livestab stabilize input.mp4 -o stable.mp4 -r 20 -c 8
    livestab stabilize input.mp4 -o debug.mp4 --test-mode
    livestab analyze input.mp4 --preview trackers.mp4
    livestab config --create stabilizer.json
"""

import sys
import argparse
import logging

from livestab import __version__


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='livestab',
        description='Real-time video stabilization',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'livestab {__version__}',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Stabilize command
    stab_parser = subparsers.add_parser(
        'stabilize',
        help='Stabilize a video file',
    )
    stab_parser.add_argument('input', help='Input video file')
    stab_parser.add_argument(
        '-o', '--output',
        required=True,
        help='Output video file',
    )
    stab_parser.add_argument(
        '-r', '--radius',
        type=int,
        default=None,
        help='Smoothing radius in frames, even and at least 2 (default: 14)',
    )
    stab_parser.add_argument(
        '-c', '--crop',
        type=float,
        default=None,
        metavar='PERCENT',
        help='Crop percentage, 1-25 (default: 5)',
    )
    stab_parser.add_argument(
        '--test-mode',
        action='store_true',
        help='Write full frames with the crop region and frame time drawn on',
    )
    stab_parser.add_argument(
        '--config',
        help='JSON configuration file',
    )
    _add_range_arguments(stab_parser)
    stab_parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Suppress progress output',
    )
    _add_verbose_argument(stab_parser)

    # Analyze command
    analyze_parser = subparsers.add_parser(
        'analyze',
        help='Report tracking quality for a video file',
    )
    analyze_parser.add_argument('input', help='Input video file')
    analyze_parser.add_argument(
        '--preview',
        metavar='FILE',
        help='Write the input with tracked points drawn on',
    )
    analyze_parser.add_argument(
        '--config',
        help='JSON configuration file',
    )
    _add_range_arguments(analyze_parser)
    _add_verbose_argument(analyze_parser)

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Create a configuration file',
    )
    config_parser.add_argument(
        '--create',
        metavar='FILE',
        required=True,
        help='Write the default configuration to FILE',
    )

    # Version command
    subparsers.add_parser('version', help='Show version information')

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    # Dispatch to appropriate command
    if args.command == 'stabilize':
        return run_stabilize(args)
    elif args.command == 'analyze':
        return run_analyze(args)
    elif args.command == 'config':
        return run_config(args)
    elif args.command == 'version':
        return run_version(args)
    else:
        parser.print_help()
        return 1


def _add_range_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-fs', '--frame-start',
        type=int,
        default=1,
        help='First frame to process (default: 1)',
    )
    parser.add_argument(
        '-fe', '--frame-end',
        type=int,
        default=None,
        help='Last frame to process (default: end of video)',
    )


def _add_verbose_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging',
    )


def build_config(args):
    """Assemble the stabilizer settings from file, environment and flags."""
    from livestab.core.config import StabilizerConfig, apply_env_overrides, load_config

    config = load_config(args.config) if args.config else StabilizerConfig()
    config = apply_env_overrides(config)

    changes = {}
    if getattr(args, 'radius', None) is not None:
        changes['smoothing_radius'] = args.radius
    if getattr(args, 'crop', None) is not None:
        if not 1.0 <= args.crop <= 25.0:
            raise ValueError(f"Crop percentage must be between 1 and 25, got {args.crop}")
        changes['crop_proportion'] = args.crop / 100.0
    if getattr(args, 'test_mode', False):
        changes['test_mode'] = True

    config = config.copy(**changes)
    config.validate()
    return config


def run_stabilize(args):
    """Run video stabilization command."""
    from livestab.core.video import VideoReader, VideoWriter, fourcc_for
    from livestab.stabilization import VideoStabilizer

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    stabilizer = VideoStabilizer(config)
    if not args.quiet:
        print(f"Stabilizing {args.input}")
        print(f"  Smoothing radius: {config.smoothing_radius}")
        print(f"  Crop:             {config.crop_proportion * 100:.1f}%")

    try:
        with VideoReader(args.input, args.frame_start, args.frame_end) as reader:
            props = reader.properties
            stabilizer.initialize(props.to_dict())
            out_size = stabilizer.output_size((props.width, props.height))
            out_props = props.resized(out_size, fourcc_for(args.output))

            if not args.quiet and props.fps > 0:
                print(f"  Frame delay:      {stabilizer.frame_delay} frames "
                      f"({stabilizer.frame_delay_ms(props.fps):.0f}ms)")

            with VideoWriter(args.output, out_props) as writer:
                for frame_num, frame in reader:
                    output = stabilizer.process_frame(frame_num, frame)
                    if output is not None:
                        writer.write(output)
                    if not args.quiet:
                        print(f"\rFrame {frame_num}: quality {stabilizer.tracking_quality:.2f}, "
                              f"stability {stabilizer.scene_stability:.2f}", end='')

                for output in stabilizer.finalize():
                    writer.write(output)
                written = writer.frames_written
    except (FileNotFoundError, RuntimeError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"\nWrote {written} frames to {args.output}")
    return 0


def run_analyze(args):
    """Run tracking analysis command."""
    import numpy as np

    from livestab.core.video import VideoReader, VideoWriter, fourcc_for
    from livestab.tracking import FrameTracker

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    tracker = FrameTracker(config.tracker)
    qualities = []
    stabilities = []
    degraded = 0

    print(f"Analyzing {args.input}")
    try:
        with VideoReader(args.input, args.frame_start, args.frame_end) as reader:
            writer = None
            if args.preview:
                props = reader.properties
                preview_props = props.resized((props.width, props.height), fourcc_for(args.preview))
                writer = VideoWriter(args.preview, preview_props).open()

            try:
                for frame_num, frame in reader:
                    motion = tracker.track(frame)
                    if motion is not None:
                        qualities.append(tracker.tracking_quality)
                        stabilities.append(tracker.scene_stability)
                        degraded += int(tracker.degraded)
                        tx, ty = motion.as_matrix()[:, 2]
                        print(f"Frame {frame_num}: quality {tracker.tracking_quality:.2f}, "
                              f"stability {tracker.scene_stability:.2f}, "
                              f"shift ({tx:+.2f}, {ty:+.2f})"
                              f"{' [degraded]' if tracker.degraded else ''}")
                    if writer is not None:
                        writer.write(tracker.draw_trackers(frame.copy()))
            finally:
                if writer is not None:
                    writer.close()
    except (FileNotFoundError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\nSummary")
    print("=" * 40)
    print(f"  Frames tracked:    {len(qualities)}")
    if qualities:
        print(f"  Mean quality:      {np.mean(qualities):.3f}")
        print(f"  Mean stability:    {np.mean(stabilities):.3f}")
        print(f"  Degraded frames:   {degraded}")
    return 0


def run_config(args):
    """Write the default configuration file."""
    from livestab.core.config import StabilizerConfig

    StabilizerConfig().save(args.create)
    print(f"Created configuration file: {args.create}")
    return 0


def run_version(args):
    """Print version and acceleration information."""
    from livestab.core.hardware import print_acceleration_status

    print(f"livestab {__version__}")
    print_acceleration_status()
    return 0


if __name__ == '__main__':
    sys.exit(main())
