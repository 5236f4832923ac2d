#!/usr/bin/env python3
"""
Minimal Example: livestab API Usage
===================================

Shows the essential API calls without extra boilerplate.
This is the "quick reference" version.
"""

from livestab import StabilizerConfig, TrackerConfig, VideoStabilizer
from livestab.core.video import VideoReader, VideoWriter, fourcc_for


# =============================================================================
# STEP 1: CONFIGURATION
# Equivalent to: livestab stabilize input.mp4 -o stable.mp4 -r 20 -c 8
# =============================================================================

input_video = "input.mp4"
output_video = "stable.mp4"

config = StabilizerConfig(
    smoothing_radius=20,
    crop_proportion=0.08,
    tracker=TrackerConfig(motion_resolution=(1, 1)),
)
stabilizer = VideoStabilizer(config)


# =============================================================================
# STEP 2: STREAMING
# Frames go in as they arrive; stabilized frames come out frame_delay later
# =============================================================================

reader = VideoReader(input_video)
reader.open()
props = reader.properties

stabilizer.initialize(props.to_dict())
out_props = props.resized(
    stabilizer.output_size((props.width, props.height)),
    fourcc_for(output_video),
)
print(f"Output lags input by {stabilizer.frame_delay_ms(props.fps):.0f}ms")

with VideoWriter(output_video, out_props) as writer:
    for frame_num, frame in reader:
        result = stabilizer.process(frame)
        if result is not None:
            writer.write(result.cropped)

        if frame_num % 30 == 0:
            print(f"Frame {frame_num}: quality {stabilizer.tracking_quality:.2f}")

    # Drain the frames still waiting in the delay line
    for result in stabilizer.flush():
        writer.write(result.cropped)

reader.close()


# =============================================================================
# STEP 3: LIVE RECONFIGURATION
# A new radius releases the buffered frames and restarts the trajectory
# =============================================================================

result = stabilizer.reconfigure(config.copy(smoothing_radius=10))
print(f"Radius {result.previous_radius} -> {result.radius}, "
      f"{result.released} frames released")
