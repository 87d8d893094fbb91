# acoustiprint

Building blocks for acoustic fingerprinting of audio:

- `acoustiprint.fft` splits a stream of 16-bit samples into overlapping
  frames, applies a Hamming window and produces power spectra.
- `acoustiprint.compression` packs a list of 32-bit sub-fingerprints into
  a compact binary format and unpacks it again.
- `acoustiprint.matcher` aligns two raw fingerprints and finds the
  segments where they agree.

## Installation

```
pip install acoustiprint
```

For running the tests:

```
pip install "acoustiprint[test]"
pytest
```

## Spectral frames

```python
from acoustiprint.fft import FFT

frames = []
fft = FFT(frame_size=4096, overlap=4096 - 4096 // 3, consumer=frames.append)
fft.consume(samples)  # any iterable of int16 values, in as many calls as you like
# each item in `frames` is a power spectrum of frame_size // 2 + 1 values
```

Each complete frame is multiplied by a Hamming window scaled by `1 / 32767`
and the squared magnitudes of its real FFT are passed to `consumer`. Samples
that do not yet fill a frame are kept until the next `consume` call;
`reset()` drops them. `frame_size`, `increment` and `overlap` are available
as read-only properties. A frame size below 2, or an overlap that is negative
or not smaller than the frame size, raises `ValueError`.

`prepare_hamming_window(size, scale=1.0)` and `apply_window(samples, window)`
are available on their own as well; `apply_window` raises `ValueError` when
the lengths differ.

## Compressing fingerprints

```python
from acoustiprint.compression import (
    compress_fingerprint,
    decompress_fingerprint,
    decompress_fingerprint_header,
    DecompressionError,
)

data = compress_fingerprint([0xDEADBEEF, 0x12345678], 1)
header = decompress_fingerprint_header(data)   # FingerprintHeader(size=2, algorithm=1)
fingerprint, algorithm = decompress_fingerprint(data)
```

The data starts with a four-byte header: the algorithm number (one byte) and
the item count as a 24-bit big-endian number. Each item is XOR-ed with the
one before it and the positions of its set bits are stored as gaps in a
3-bit stream, with large gaps continued in a 5-bit stream. Items are taken
as unsigned 32-bit values; `algorithm` defaults to 0.

Malformed or truncated input raises `DecompressionError`, a subclass of
`ValueError`.

## Matching fingerprints

```python
from acoustiprint.matcher import FingerprintMatcher

matcher = FingerprintMatcher(item_duration, delay, 10.0)
for segment in matcher.match(fp1, fp2):
    start = matcher.hash_time(segment.pos1)
    print(start, segment.duration, segment.public_score())
```

`match` finds the most common alignment between the two fingerprints from
the top 12 bits of their items, then splits the aligned stretch into
segments by changes in the smoothed bit-error count. Segments whose average
bit-error score is below `match_threshold` (default 10.0) are returned and
also kept in `matcher.segments`; neighbouring segments with close scores are
merged. Lower scores mean closer matches. A tiny random amount is added to
each bit-error count, so scores vary slightly between runs.

Each `Segment` has `pos1`, `pos2`, `duration` (in items), `score`, and the
`left_score` and `right_score` of the parts it was merged from.
`public_score()` returns `score * 100` rounded to an integer, and
`merged(other)` joins a directly following segment.

`hamming_distance(a, b)` counts the differing bits of two 32-bit values.

## What this package does not do

It does not decode audio files, resample or mix down audio, or compute
fingerprints from audio: there is no chroma or classifier stage, and no
command-line tool. You supply the 16-bit samples to `FFT` and the raw
fingerprints to the compression and matching functions.