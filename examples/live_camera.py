#!/usr/bin/env python3
"""
Example: Live Camera Stabilization
==================================

Stabilizes a camera feed in real time and shows the raw and stabilized
views side by side. Press 't' to toggle test mode, '+'/'-' to change the
smoothing radius and 'q' to quit.

Each frame is pushed with a handle (its capture number) and a release hook,
the way a host application would hand over its own frame buffers: a handle
comes back either attached to its stabilized output or through the hook,
never both.
"""

import sys

import cv2

from livestab import ConfigurationError, StabilizerConfig, VideoStabilizer


def main(device: int = 0) -> int:
    cap = cv2.VideoCapture(device)
    if not cap.isOpened():
        print(f"Could not open camera {device}", file=sys.stderr)
        return 1

    config = StabilizerConfig(smoothing_radius=10)
    stabilizer = VideoStabilizer(config)
    released = []

    capture_num = 0
    while True:
        ret, frame = cap.read()
        if not ret:
            break
        capture_num += 1

        result = stabilizer.process(frame, handle=capture_num, release=released.append)
        if result is not None:
            view = result.frame if stabilizer.config.test_mode else result.cropped
            cv2.imshow("stabilized", view)
        cv2.imshow("raw", frame)

        key = cv2.waitKey(1) & 0xFF
        if key == ord('q'):
            break
        elif key == ord('t'):
            stabilizer.reconfigure(stabilizer.config.copy(test_mode=not stabilizer.config.test_mode))
        elif key in (ord('+'), ord('-')):
            step = 2 if key == ord('+') else -2
            try:
                stabilizer.reconfigure(
                    stabilizer.config.copy(smoothing_radius=stabilizer.config.smoothing_radius + step)
                )
            except ConfigurationError as e:
                print(e)
            print(f"Radius {stabilizer.config.smoothing_radius}, "
                  f"delay {stabilizer.frame_delay} frames")

    stabilizer.flush()
    cap.release()
    cv2.destroyAllWindows()
    print(f"{capture_num} frames captured, {len(released)} dropped by reconfiguration")
    return 0


if __name__ == '__main__':
    sys.exit(main(int(sys.argv[1]) if len(sys.argv) > 1 else 0))
