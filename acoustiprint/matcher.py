"""Locate matching stretches between two raw fingerprints."""

from __future__ import annotations

import math
import random
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

DEFAULT_MATCH_THRESHOLD = 10.0

_ALIGN_BITS = 12
_HASH_SHIFT = 32 - _ALIGN_BITS
_OFFSET_LIMIT = (1 << (32 - _ALIGN_BITS - 1)) - 1
_UINT32_MASK = 0xFFFFFFFF

_SMOOTHING_SIGMA = 8.0
_SMOOTHING_PASSES = 3
_GRADIENT_PEAK_THRESHOLD = 0.15
_MERGE_SCORE_DIFFERENCE = 0.7
_NOISE_AMPLITUDE = 0.001


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two 32-bit values."""
    return bin((a ^ b) & _UINT32_MASK).count("1")


@dataclass
class Segment:
    """A run of aligned items: ``duration`` items from ``pos1`` and ``pos2``."""

    pos1: int
    pos2: int
    duration: int
    score: float
    left_score: float | None = None
    right_score: float | None = None

    def __post_init__(self) -> None:
        if self.left_score is None:
            self.left_score = self.score
        if self.right_score is None:
            self.right_score = self.score

    def public_score(self) -> int:
        """Score scaled to an integer percentage, rounded half up."""
        return int(self.score * 100 + 0.5)

    def merged(self, other: Segment) -> Segment:
        """Join with a segment that directly follows this one."""
        if self.pos1 + self.duration != other.pos1 or self.pos2 + self.duration != other.pos2:
            raise ValueError("segments are not contiguous")
        duration = self.duration + other.duration
        score = (self.score * self.duration + other.score * other.duration) / duration
        return Segment(self.pos1, self.pos2, duration, score, self.score, other.score)


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _box_filter(data: np.ndarray, width: int) -> np.ndarray:
    size = data.size
    if width == 0 or size == 0:
        return data.copy()
    left = width // 2
    index = np.arange(-left, size - left + width - 1)
    folded = index % (2 * size)
    mapped = np.where(folded < size, folded, 2 * size - 1 - folded)
    padded = data[mapped]
    sums = np.concatenate(([0.0], np.cumsum(padded)))
    return (sums[width:width + size] - sums[:size]) / width


def _gaussian_filter(data: np.ndarray, sigma: float, passes: int) -> np.ndarray:
    width = math.floor(math.sqrt(12 * sigma * sigma / passes + 1))
    lower = width - (1 if width % 2 == 0 else 0)
    upper = lower + 2
    lower_passes = _round_half_away(
        (12 * sigma * sigma - passes * lower * lower - 4 * passes * lower - 3 * passes)
        / (-4 * lower - 4)
    )
    result = np.asarray(data, dtype=np.float64)
    for step in range(passes):
        result = _box_filter(result, lower if step < lower_passes else upper)
    return result


def _gradient(data: np.ndarray) -> np.ndarray:
    if data.size == 0:
        return data.copy()
    if data.size == 1:
        return np.zeros(1)
    return np.gradient(data)


class FingerprintMatcher:
    """Find segments where two fingerprints agree within a bit-error threshold."""

    def __init__(
        self,
        item_duration: float,
        delay: float = 0.0,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
    ) -> None:
        self.item_duration = item_duration
        self.delay = delay
        self.match_threshold = match_threshold
        self.segments: list[Segment] = []
        self._rng = random.Random()

    def hash_time(self, i: int) -> float:
        """Start time in seconds of item ``i``."""
        return self.item_duration * i

    def hash_duration(self, i: int) -> float:
        """Time in seconds covered up to the end of item ``i``."""
        return self.hash_time(i) + self.delay

    def match(self, fp1: Sequence[int], fp2: Sequence[int]) -> list[Segment]:
        """Align ``fp2`` against ``fp1`` and return the matching segments."""
        fp1 = [x & _UINT32_MASK for x in fp1]
        fp2 = [x & _UINT32_MASK for x in fp2]
        if len(fp1) + 1 >= _OFFSET_LIMIT:
            raise ValueError("fingerprint 1 too long")
        if len(fp2) + 1 >= _OFFSET_LIMIT:
            raise ValueError("fingerprint 2 too long")

        self.segments = []
        alignment = self._best_alignment(fp1, fp2)
        if alignment is None:
            return self.segments

        offset_diff = alignment - len(fp2)
        offset1 = max(offset_diff, 0)
        offset2 = max(-offset_diff, 0)
        size = min(len(fp1) - offset1, len(fp2) - offset2)
        if size <= 0:
            return self.segments

        bit_counts = np.array(
            [
                hamming_distance(a, b) + self._rng.random() * _NOISE_AMPLITUDE
                for a, b in zip(fp1[offset1:offset1 + size], fp2[offset2:offset2 + size])
            ],
            dtype=np.float64,
        )
        smoothed = _gaussian_filter(bit_counts, _SMOOTHING_SIGMA, _SMOOTHING_PASSES)
        gradient = np.abs(_gradient(smoothed))

        peaks: list[int] = []
        for i in range(1, size - 1):
            gi = gradient[i]
            if gi > _GRADIENT_PEAK_THRESHOLD and gi >= gradient[i - 1] and gi >= gradient[i + 1]:
                if not peaks or peaks[-1] + 1 < i:
                    peaks.append(i)
        peaks.append(size)

        begin = 0
        for end in peaks:
            duration = end - begin
            score = float(bit_counts[begin:end].sum()) / duration
            if score < self.match_threshold:
                segment = Segment(offset1 + begin, offset2 + begin, duration, score)
                if self.segments and abs(self.segments[-1].score - score) < _MERGE_SCORE_DIFFERENCE:
                    self.segments[-1] = self.segments[-1].merged(segment)
                else:
                    self.segments.append(segment)
            begin = end
        return self.segments

    @staticmethod
    def _best_alignment(fp1: list[int], fp2: list[int]) -> int | None:
        positions1: dict[int, list[int]] = defaultdict(list)
        positions2: dict[int, list[int]] = defaultdict(list)
        for i, item in enumerate(fp1):
            positions1[item >> _HASH_SHIFT].append(i)
        for i, item in enumerate(fp2):
            positions2[item >> _HASH_SHIFT].append(i)

        n2 = len(fp2)
        histogram = [0] * (len(fp1) + n2)
        for hash_value, indices1 in positions1.items():
            indices2 = positions2.get(hash_value)
            if not indices2:
                continue
            for i1 in indices1:
                for i2 in indices2:
                    histogram[i1 + n2 - i2] += 1

        last = len(histogram) - 1
        peaks = [
            (count, i)
            for i, count in enumerate(histogram)
            if count > 1
            and (i == 0 or histogram[i - 1] <= count)
            and (i == last or histogram[i + 1] <= count)
        ]
        if not peaks:
            return None
        return max(peaks)[1]