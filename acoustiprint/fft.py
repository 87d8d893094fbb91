"""Windowed short-time power spectrum of 16-bit audio."""

from __future__ import annotations

from collections.abc import Callable, Iterable

import numpy as np

INT16_MAX = 32767

FrameConsumer = Callable[[np.ndarray], None]


def prepare_hamming_window(size: int, scale: float = 1.0) -> np.ndarray:
    """Return a Hamming window of ``size`` points multiplied by ``scale``."""
    if size < 2:
        raise ValueError("window size must be at least 2")
    index = np.arange(size, dtype=np.float64)
    return scale * (0.54 - 0.46 * np.cos(2.0 * np.pi * index / (size - 1)))


def apply_window(samples: Iterable[float], window: Iterable[float]) -> np.ndarray:
    """Multiply ``samples`` element-wise by ``window``."""
    data = np.asarray(samples, dtype=np.float64)
    weights = np.asarray(window, dtype=np.float64)
    if data.shape != weights.shape:
        raise ValueError(
            f"samples and window differ in length ({data.size} != {weights.size})"
        )
    return data * weights


class FFT:
    """Slice audio into overlapping frames and emit each frame's power spectrum.

    Every complete frame is windowed with a Hamming window scaled to the
    16-bit sample range, transformed, and passed to ``consumer`` as an array
    of ``frame_size // 2 + 1`` squared magnitudes.
    """

    def __init__(self, frame_size: int, overlap: int, consumer: FrameConsumer) -> None:
        if frame_size < 2:
            raise ValueError("frame size must be at least 2")
        if not 0 <= overlap < frame_size:
            raise ValueError("overlap must be non-negative and smaller than the frame size")
        self._frame_size = frame_size
        self._increment = frame_size - overlap
        self._window = prepare_hamming_window(frame_size, 1.0 / INT16_MAX)
        self._consumer = consumer
        self._pending = np.empty(0, dtype=np.float64)

    @property
    def frame_size(self) -> int:
        return self._frame_size

    @property
    def increment(self) -> int:
        return self._increment

    @property
    def overlap(self) -> int:
        return self._frame_size - self._increment

    def reset(self) -> None:
        """Drop any buffered samples that have not formed a full frame yet."""
        self._pending = np.empty(0, dtype=np.float64)

    def consume(self, samples: Iterable[int]) -> None:
        """Feed samples; every frame completed by them is sent to the consumer."""
        data = np.asarray(samples, dtype=np.float64).ravel()
        buffer = np.concatenate((self._pending, data))
        start = 0
        while buffer.size - start >= self._frame_size:
            self._consumer(self._power_spectrum(buffer[start:start + self._frame_size]))
            start += self._increment
        self._pending = buffer[start:].copy()

    def _power_spectrum(self, frame: np.ndarray) -> np.ndarray:
        spectrum = np.fft.rfft(apply_window(frame, self._window))
        return spectrum.real ** 2 + spectrum.imag ** 2