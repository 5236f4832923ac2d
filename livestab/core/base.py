"""
Base classes for livestab frame processors.

Frame processors share a three-step lifecycle: initialize() with the
stream properties, process_frame() once per frame, finalize() at the end.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np


class BaseProcessor(ABC):
    """
    Abstract base class for streaming frame processors.

    Used as a context manager, finalize() runs on exit even when processing
    fails part-way.
    """

    def __init__(self):
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    def initialize(self, video_props: dict[str, Any]) -> None:
        """
        Initialize the processor with stream properties.

        Args:
            video_props: Dictionary containing 'width', 'height', 'fps', 'frame_count'
        """
        pass

    @abstractmethod
    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        **kwargs
    ) -> np.ndarray | None:
        """
        Process a single frame.

        Args:
            frame_num: Current frame number (1-indexed)
            frame: BGR frame as numpy array
            **kwargs: Additional processing data

        Returns:
            Processed frame, or None if nothing is ready for output yet
        """
        pass

    @abstractmethod
    def finalize(self) -> Any:
        """
        Finalize processing and release resources.

        Returns:
            Any final output
        """
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures finalize is called."""
        self.finalize()
        return False
