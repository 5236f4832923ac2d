"""
Video file I/O for the command line tools.

Thin wrappers over cv2.VideoCapture and cv2.VideoWriter with frame range
support. The stabilizer itself never touches files; hosts feed it frames.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Codecs that the stock OpenCV builds can encode, by container
FOURCC_BY_SUFFIX = {
    ".avi": "MJPG",
    ".mp4": "mp4v",
    ".mov": "mp4v",
    ".mkv": "mp4v",
}


def fourcc_for(path: str | Path) -> str:
    """Pick an output codec from the file extension."""
    return FOURCC_BY_SUFFIX.get(Path(path).suffix.lower(), "mp4v")


@dataclass
class VideoProperties:
    """Properties of a video file."""
    width: int
    height: int
    fps: float
    frame_count: int
    fourcc: str = "mp4v"

    @classmethod
    def from_capture(cls, cap: cv2.VideoCapture) -> "VideoProperties":
        """Create VideoProperties from an OpenCV VideoCapture."""
        return cls(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )

    def to_dict(self) -> dict:
        """Convert to the dictionary passed to BaseProcessor.initialize()."""
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
        }

    def resized(self, size: tuple[int, int], fourcc: str | None = None) -> "VideoProperties":
        """Copy with a different (width, height), e.g. for cropped output."""
        return replace(self, width=size[0], height=size[1], fourcc=fourcc or self.fourcc)

    @property
    def frame_time_ms(self) -> float:
        """Duration of one frame in milliseconds (0 when fps is unknown)."""
        return 1000.0 / self.fps if self.fps > 0 else 0.0


class VideoReader:
    """
    Video reader with frame range support.

    Example:
        with VideoReader("input.mp4", first_frame=100, last_frame=500) as reader:
            for frame_num, frame in reader:
                process(frame)
    """

    def __init__(
        self,
        path: str | Path,
        first_frame: int = 1,
        last_frame: int | None = None,
    ):
        """
        Initialize the video reader.

        Args:
            path: Path to video file
            first_frame: First frame to read (1-indexed)
            last_frame: Last frame to read (None = end of video)
        """
        self.path = Path(path)
        self.first_frame = first_frame
        self.last_frame = last_frame

        self._cap: cv2.VideoCapture | None = None
        self._props: VideoProperties | None = None

    def open(self) -> "VideoReader":
        """Open the video file."""
        if not self.path.exists():
            raise FileNotFoundError(f"Video file not found: {self.path}")

        self._cap = cv2.VideoCapture(str(self.path))
        if not self._cap.isOpened():
            raise RuntimeError(f"Failed to open video: {self.path}")

        self._props = VideoProperties.from_capture(self._cap)

        if self.last_frame is None or self.last_frame > self._props.frame_count:
            self.last_frame = self._props.frame_count

        # Seek to first frame (convert to 0-indexed)
        if self.first_frame > 1:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, self.first_frame - 1)

        logger.debug("Opened %s: %s", self.path, self._props)
        return self

    def close(self) -> None:
        """Close the video file."""
        if self._cap:
            self._cap.release()
            self._cap = None

    @property
    def properties(self) -> VideoProperties:
        """Get video properties."""
        if self._props is None:
            raise RuntimeError("Video not opened. Call open() first.")
        return self._props

    @property
    def frame_range(self) -> tuple[int, int]:
        """Get the frame range being processed."""
        return (self.first_frame, self.last_frame or self.properties.frame_count)

    @property
    def frame_count(self) -> int:
        """Get number of frames in the processing range."""
        start, end = self.frame_range
        return max(0, end - start + 1)

    def read_frame(self) -> tuple[bool, np.ndarray | None]:
        """Read the next frame."""
        if self._cap is None:
            raise RuntimeError("Video not opened. Call open() first.")
        ret, frame = self._cap.read()
        return ret, frame if ret else None

    def __iter__(self) -> Iterator[tuple[int, np.ndarray]]:
        """Iterate over frames in the range."""
        if self._cap is None:
            self.open()

        current_frame = self.first_frame
        while current_frame <= (self.last_frame or self.properties.frame_count):
            ret, frame = self.read_frame()
            if not ret:
                break
            yield current_frame, frame
            current_frame += 1

    def __enter__(self) -> "VideoReader":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class VideoWriter:
    """
    Video writer over cv2.VideoWriter.

    Example:
        with VideoWriter("output.mp4", props) as writer:
            for frame in frames:
                writer.write(frame)
    """

    def __init__(self, path: str | Path, props: VideoProperties):
        """
        Initialize the video writer.

        Args:
            path: Output video path
            props: Video properties (dimensions, fps, fourcc)
        """
        self.path = Path(path)
        self.props = props
        self.frames_written = 0
        self._writer: cv2.VideoWriter | None = None

    def open(self) -> "VideoWriter":
        """Open the video writer."""
        fourcc = cv2.VideoWriter_fourcc(*self.props.fourcc)
        self._writer = cv2.VideoWriter(
            str(self.path),
            fourcc,
            self.props.fps,
            (self.props.width, self.props.height),
        )
        if not self._writer.isOpened():
            raise RuntimeError(f"Failed to open video writer: {self.path}")
        return self

    def write(self, frame: np.ndarray) -> None:
        """Write a frame to the video."""
        if self._writer is None:
            raise RuntimeError("Writer not opened. Call open() first.")
        h, w = frame.shape[:2]
        if (w, h) != (self.props.width, self.props.height):
            raise ValueError(
                f"Frame size {(w, h)} does not match writer size "
                f"{(self.props.width, self.props.height)}"
            )
        if not frame.flags["C_CONTIGUOUS"]:
            frame = np.ascontiguousarray(frame)
        self._writer.write(frame)
        self.frames_written += 1

    def close(self) -> None:
        """Close the video writer."""
        if self._writer:
            self._writer.release()
            self._writer = None

    def __enter__(self) -> "VideoWriter":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


def get_video_properties(path: str | Path) -> VideoProperties:
    """Get properties of a video file without opening a reader."""
    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video: {path}")
    try:
        return VideoProperties.from_capture(cap)
    finally:
        cap.release()
