import math

import numpy as np
import pytest

from acoustiprint.fft import INT16_MAX, FFT, apply_window, prepare_hamming_window

HAMMING_10 = [
    0.08, 0.187619556165, 0.460121838273, 0.77, 0.972258605562,
    0.972258605562, 0.77, 0.460121838273, 0.187619556165, 0.08,
]

NFRAMES = 3
FRAME_SIZE = 32
OVERLAP = 8
INPUT_SIZE = FRAME_SIZE + (NFRAMES - 1) * (FRAME_SIZE - OVERLAP)


def _run(samples, chunk_size=100):
    frames = []
    fft = FFT(FRAME_SIZE, OVERLAP, frames.append)
    for start in range(0, len(samples), chunk_size):
        fft.consume(samples[start:start + chunk_size])
    return fft, frames


def _check_spectrum(frames, expected):
    assert len(frames) == NFRAMES
    for frame in frames:
        assert len(frame) == len(expected)
        magnitudes = np.sqrt(frame) / len(frame)
        assert magnitudes == pytest.approx(expected, abs=0.001)


def test_hamming_window():
    assert prepare_hamming_window(10) == pytest.approx(HAMMING_10, rel=1e-6)


def test_apply_window():
    window = prepare_hamming_window(10, 1.0 / INT16_MAX)
    output = apply_window([INT16_MAX] * 10, window)
    assert output == pytest.approx(HAMMING_10, rel=1e-6)


def test_apply_window_length_mismatch():
    with pytest.raises(ValueError):
        apply_window([1, 2, 3], [1.0, 1.0])


def test_hamming_window_too_small():
    with pytest.raises(ValueError):
        prepare_hamming_window(1)


def test_sine():
    sample_rate = 1000
    freq = 7 * (sample_rate // 2) // (FRAME_SIZE // 2)
    samples = [
        int(INT16_MAX * math.sin(i * freq * 2.0 * math.pi / sample_rate))
        for i in range(INPUT_SIZE)
    ]
    fft, frames = _run(samples)
    assert fft.frame_size == FRAME_SIZE
    assert fft.overlap == OVERLAP
    _check_spectrum(frames, [
        2.87005e-05, 0.00011901, 0.00029869, 0.000667172, 0.00166813,
        0.00605612, 0.228737, 0.494486, 0.210444, 0.00385322, 0.00194379,
        0.00124616, 0.000903851, 0.000715237, 0.000605707, 0.000551375,
        0.000534304,
    ])


def test_dc():
    samples = [int(INT16_MAX * 0.5)] * INPUT_SIZE
    fft, frames = _run(samples)
    assert fft.frame_size == FRAME_SIZE
    assert fft.overlap == OVERLAP
    _check_spectrum(frames, [
        0.494691, 0.219547, 0.00488079, 0.00178991, 0.000939219, 0.000576082,
        0.000385808, 0.000272904, 0.000199905, 0.000149572, 0.000112947,
        8.5041e-05, 6.28312e-05, 4.4391e-05, 2.83757e-05, 1.38507e-05, 0,
    ])


def test_chunking_does_not_change_frames():
    rng = np.random.default_rng(7)
    samples = rng.integers(-32768, 32767, size=200).tolist()
    _, whole = _run(samples, chunk_size=len(samples))
    _, pieces = _run(samples, chunk_size=3)
    assert len(whole) == len(pieces)
    for a, b in zip(whole, pieces):
        assert np.allclose(a, b)


def test_frame_count_follows_increment():
    frames = []
    fft = FFT(16, 4, frames.append)
    assert fft.increment == 12
    fft.consume([100] * (16 + 12 * 5 + 11))
    assert len(frames) == 6


def test_reset_discards_pending_samples():
    frames = []
    fft = FFT(16, 0, frames.append)
    fft.consume([1] * 10)
    fft.reset()
    fft.consume([1] * 10)
    assert frames == []
    fft.consume([1] * 6)
    assert len(frames) == 1


@pytest.mark.parametrize("frame_size, overlap", [(1, 0), (16, 16), (16, -1)])
def test_invalid_configuration(frame_size, overlap):
    with pytest.raises(ValueError):
        FFT(frame_size, overlap, lambda frame: None)