"""
Delayed sliding-window trajectory smoothing.

Stabilization applies a windowed low-pass filter to the camera path to
remove high-frequency shake. A useful window needs both past and future
motion, which is obtained by delaying the stream: frames wait in a queue of
radius + 2 while their motion samples sit in a trajectory window of
2 * radius + 1, arranged so that the oldest queued frame lines up with the
centre of the window.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

import cv2
import numpy as np

from livestab.core.config import (
    SMOOTHING_RADIUS_DEFAULT,
    validate_smoothing_radius,
)
from livestab.geometry import BoundingBox, CropRegion, Transform, lerp
from livestab.stabilization.delay_line import DelayLine

logger = logging.getLogger(__name__)

CROP_STEPS = 100


@dataclass(frozen=True)
class MotionSample:
    """
    One entry of the camera trajectory.

    Attributes:
        velocity: Motion from the previous frame to this one
        displacement: Running sum of velocities since the last reset
        frame_index: Index of the frame the velocity starts from
    """
    velocity: Any
    displacement: Any
    frame_index: int = 0

    def __add__(self, other: "MotionSample") -> "MotionSample":
        return MotionSample(
            self.velocity + other.velocity,
            self.displacement + other.displacement,
            self.frame_index,
        )

    def __mul__(self, factor: float) -> "MotionSample":
        return MotionSample(self.velocity * factor, self.displacement * factor, self.frame_index)


class FrameBuffer:
    """
    A queued frame: an owned copy of the pixels plus a borrowed host handle.

    The host's release hook is called at most once. Once the frame is
    emitted the handle belongs to the caller again and is never released
    by the smoother.
    """

    def __init__(
        self,
        frame: np.ndarray,
        index: int,
        handle: Any = None,
        release: Callable[[Any], None] | None = None,
        synthetic: bool = False,
    ):
        self.frame = frame
        self.index = index
        self.handle = handle
        self.synthetic = synthetic
        self.emitted = False
        self._release = release
        self._held = handle is not None or release is not None

    @property
    def holds_handle(self) -> bool:
        return self._held

    def release(self) -> bool:
        """
        Give the handle back through the host's release hook.

        Returns:
            True if a handle was released by this call
        """
        if not self._held:
            return False
        self._held = False
        if self._release is not None:
            self._release(self.handle)
        return True

    def relinquish(self) -> Any:
        """Transfer the handle to the caller on output."""
        self._held = False
        self.emitted = True
        return self.handle


@dataclass
class StabilizedFrame:
    """A delayed frame warped onto the smoothed trajectory."""
    frame: np.ndarray
    handle: Any
    warp: Any
    crop: CropRegion | None
    frame_index: int

    @property
    def cropped(self) -> np.ndarray:
        """The output rectangle cut from the warped frame."""
        if self.crop is None:
            return self.frame
        return self.crop.slice(self.frame)


@dataclass
class ReconfigureResult:
    """Outcome of changing the smoothing radius."""
    changed: bool
    previous_radius: int
    radius: int
    released: int = 0


def gaussian_kernel(window: int) -> np.ndarray:
    """
    Normalised Gaussian low-pass kernel.

    Sigma is window / 6 so that about 99.7% of the mass fits in the window.
    """
    return cv2.getGaussianKernel(window, window / 6.0, cv2.CV_64F).ravel()


def enclose_crop(
    frame_size: tuple[int, int],
    warp: Any,
    crop: CropRegion,
    steps: int = CROP_STEPS,
) -> Any:
    """
    Attenuate a warp until the warped frame fully contains the crop region.

    The warp is interpolated towards identity in `steps` equal increments;
    the first one that encloses the crop is returned. If none does, the
    identity is returned.

    Args:
        frame_size: (width, height) of the frame being warped
        warp: Transform or WarpField to attenuate
        crop: Output rectangle that must stay covered
        steps: Number of interpolation steps

    Returns:
        The attenuated warp (same type as the input)
    """
    identity = warp * 0.0
    bounds = BoundingBox(frame_size, warp)
    if bounds.encloses(crop):
        return warp

    for step in range(1, steps + 1):
        reduced = lerp(warp, identity, step / steps)
        if bounds.transform(reduced).encloses(crop):
            return reduced

    return identity


class TrajectorySmoother:
    """
    Turn a noisy per-frame motion stream into a smoothed, delayed one.

    Two delay lines are kept in lock-step: a frame queue of radius + 2 and
    a trajectory window of 2 * radius + 1. The trajectory is pre-seeded with
    radius - 1 still samples on every reset; the tracker reports motion from
    the previous frame to the current one, so the window is lagged by one
    sample to centre on the oldest queued frame.

    Example:
        >>> smoother = TrajectorySmoother(smoothing_radius=14)
        >>> for frame, velocity in stream:
        ...     smoother.push(frame, velocity)
        ...     if smoother.ready:
        ...         output = smoother.stabilize(crop).cropped
    """

    def __init__(self, smoothing_radius: int = SMOOTHING_RADIUS_DEFAULT):
        """
        Initialize the smoother.

        Args:
            smoothing_radius: Even window radius, at least 2

        Raises:
            ConfigurationError: If the radius is invalid
        """
        validate_smoothing_radius(smoothing_radius)

        self._radius = 0
        self._pushed = 0
        self._kernel = np.empty(0)
        self.frame_queue: DelayLine[FrameBuffer] = DelayLine(smoothing_radius + 2)
        self.trajectory: DelayLine[MotionSample] = DelayLine(2 * smoothing_radius + 1)

        self.configure(smoothing_radius)

    @property
    def radius(self) -> int:
        return self._radius

    @property
    def kernel(self) -> np.ndarray:
        return self._kernel

    @property
    def frame_delay(self) -> int:
        """Output latency in frames."""
        return self.frame_queue.capacity

    @property
    def ready(self) -> bool:
        """True once both delay lines are full."""
        full = self.frame_queue.full()
        assert full == self.trajectory.full(), "Frame queue and trajectory are out of sync"
        return full

    def configure(self, smoothing_radius: int) -> int:
        """
        Resize the window for a new smoothing radius.

        Buffered frames are released before the delay lines are truncated.
        An invalid radius is rejected and the current one stays in force.

        Returns:
            Number of buffered frame handles released

        Raises:
            ConfigurationError: If the radius is odd or below the minimum
        """
        validate_smoothing_radius(smoothing_radius)
        if smoothing_radius == self._radius:
            return 0

        released = self._release_frames()

        self._radius = smoothing_radius
        window = 2 * smoothing_radius + 1
        self.frame_queue.resize(smoothing_radius + 2)
        self.trajectory.resize(window)
        self._kernel = gaussian_kernel(window)

        self.reset()
        logger.info(
            "Smoothing radius set to %d (delay %d frames, %d frames released)",
            smoothing_radius, self.frame_delay, released,
        )
        return released

    def reconfigure(self, smoothing_radius: int) -> ReconfigureResult:
        """configure() with a report of what changed."""
        previous = self._radius
        released = self.configure(smoothing_radius)
        return ReconfigureResult(
            changed=previous != smoothing_radius,
            previous_radius=previous,
            radius=smoothing_radius,
            released=released,
        )

    def _release_frames(self) -> int:
        return sum(1 for buffer in self.frame_queue if buffer.release())

    def reset(self) -> int:
        """
        Release all buffered frames and reseed the trajectory.

        Returns:
            Number of buffered frame handles released
        """
        released = self._release_frames()
        self.frame_queue.clear()
        self.trajectory.clear()
        self._pushed = 0

        identity = Transform.identity()
        self.trajectory.push(MotionSample(identity, identity, frame_index=-self._radius))
        while len(self.trajectory) < self._radius - 1:
            newest = self.trajectory.newest()
            self.trajectory.push(MotionSample(
                identity,
                newest.displacement + identity,
                newest.frame_index + 1,
            ))
        return released

    def push(
        self,
        frame: np.ndarray,
        velocity: Any,
        handle: Any = None,
        release: Callable[[Any], None] | None = None,
        synthetic: bool = False,
    ) -> None:
        """
        Advance both delay lines by one frame.

        Args:
            frame: Frame pixels; a copy is kept
            velocity: Motion from the previous frame to this one
            handle: Host resource tied to this frame, returned on output
            release: Hook that gives the handle back if the frame is dropped
            synthetic: True for padding frames that are never output
        """
        buffer = FrameBuffer(frame.copy(), self._pushed, handle, release, synthetic)
        evicted = self.frame_queue.push(buffer)
        if evicted is not None and evicted.release():
            logger.debug("Released frame %d evicted before output", evicted.index)

        previous = self.trajectory.newest()
        self.trajectory.push(MotionSample(
            velocity,
            previous.displacement + velocity,
            self._pushed - 1,
        ))
        self._pushed += 1

    def pad(self) -> None:
        """Push a still copy of the newest frame to drain the queue."""
        newest = self.frame_queue.newest()
        self.push(newest.frame, Transform.identity(), synthetic=True)

    def pending_frames(self) -> int:
        """Number of real frames buffered but not yet output."""
        return sum(1 for b in self.frame_queue if not b.emitted and not b.synthetic)

    def smoothed_displacement(self) -> Any:
        """The trajectory window convolved with the Gaussian kernel."""
        assert self.ready, "Trajectory window is not full"
        return self.trajectory.convolve(self._kernel).displacement

    def correction(self) -> Any:
        """Offset from the centre sample's path to the smoothed path."""
        return self.smoothed_displacement() - self.trajectory.centre().displacement

    def smooth_warp(self) -> Any:
        """Warp that moves the oldest queued frame onto the smoothed path."""
        return self.trajectory.centre().velocity + self.correction()

    def stabilize(self, crop: CropRegion | None = None) -> StabilizedFrame:
        """
        Warp the oldest queued frame onto the smoothed trajectory.

        Args:
            crop: Output rectangle the warped frame must keep covered.
                  Without a crop the warp is not attenuated.

        Returns:
            The stabilized frame; its handle now belongs to the caller
        """
        assert self.ready, "Trajectory window is not full"

        buffer = self.frame_queue.oldest()
        assert self.trajectory.centre().frame_index == buffer.index, (
            "Trajectory window is not centred on the oldest frame"
        )

        frame = buffer.frame
        size = (frame.shape[1], frame.shape[0])
        warp = self.smooth_warp()
        if crop is not None:
            warp = enclose_crop(size, warp, crop)

        return StabilizedFrame(
            frame=warp.warp(frame, size),
            handle=buffer.relinquish(),
            warp=warp,
            crop=crop,
            frame_index=buffer.index,
        )
