"""
Wearable codec transforms.

Each 80-byte sub-frame carries 40 little-endian int16 coefficients of a
low-rank representation. Reconstruction is two fixed linear maps:

    coefficients (1 x C) @ expand (C x F)  -> frequency vector (1 x F)
    frequency    (1 x F) @ inverse (F x S) -> time samples     (1 x S)

Matrices can be loaded from JSON (flat row-major list or nested lists).
Without files, the defaults are a truncated identity for `expand` and an
orthonormal inverse DCT basis for `inverse`.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from scipy import fft

from ambient_voice.constants import (
    CODEC_COEFFICIENT_SCALE,
    CODEC_COEFFICIENTS,
    CODEC_DEFAULT_FREQUENCY_BINS,
    WEARABLE_SUBFRAME_BYTES,
)


class CodecTransformError(ValueError):
    """Raised when transform matrices are missing, malformed, or mismatched."""


@dataclass(frozen=True)
class CodecTransforms:
    expand: np.ndarray
    inverse: np.ndarray

    def __post_init__(self) -> None:
        if self.expand.ndim != 2 or self.inverse.ndim != 2:
            raise CodecTransformError("transform matrices must be 2-D")
        if self.expand.shape[0] != CODEC_COEFFICIENTS:
            raise CodecTransformError(
                f"expand matrix has {self.expand.shape[0]} rows, "
                f"expected {CODEC_COEFFICIENTS}"
            )
        if self.expand.shape[1] != self.inverse.shape[0]:
            raise CodecTransformError(
                f"expand output width {self.expand.shape[1]} != "
                f"inverse input height {self.inverse.shape[0]}"
            )

    @property
    def samples_per_subframe(self) -> int:
        return int(self.inverse.shape[1])

    def reconstruct(self, subframe: bytes) -> np.ndarray:
        """Decode one sub-frame into float32 time-domain samples."""
        if len(subframe) != WEARABLE_SUBFRAME_BYTES:
            raise CodecTransformError(
                f"sub-frame length {len(subframe)} != {WEARABLE_SUBFRAME_BYTES}"
            )
        coefficients = (
            np.frombuffer(subframe, dtype="<i2").astype(np.float32)
            * CODEC_COEFFICIENT_SCALE
        )
        frequency = coefficients @ self.expand
        return (frequency @ self.inverse).astype(np.float32)


def default_transforms(frequency_bins: int = CODEC_DEFAULT_FREQUENCY_BINS) -> CodecTransforms:
    expand = np.zeros((CODEC_COEFFICIENTS, frequency_bins), dtype=np.float32)
    expand[:, :CODEC_COEFFICIENTS] = np.eye(CODEC_COEFFICIENTS, dtype=np.float32)

    # Row k is the k-th DCT-II basis function, so freq @ inverse == idct(freq)
    inverse = fft.idct(
        np.eye(frequency_bins), type=2, norm="ortho", axis=1
    ).astype(np.float32)

    return CodecTransforms(expand=expand, inverse=inverse)


def load_matrix(path: str | Path, *, rows: int | None = None) -> np.ndarray:
    """
    Load a matrix from JSON.

    A flat list is reshaped to `rows` rows, or to a square matrix when
    `rows` is None. Nested lists are used as-is.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CodecTransformError(f"cannot read matrix {path}: {e}") from e

    matrix = np.asarray(data, dtype=np.float32)
    if matrix.ndim == 1:
        if rows is None:
            side = math.isqrt(matrix.size)
            rows = side if side * side == matrix.size else None
        if rows is None or rows <= 0 or matrix.size % rows:
            raise CodecTransformError(
                f"flat matrix of {matrix.size} values cannot be split into {rows} rows"
            )
        matrix = matrix.reshape(rows, -1)
    return matrix


def load_transforms(
    *,
    expand_path: str | Path | None,
    inverse_path: str | Path | None,
) -> CodecTransforms:
    """
    Build transforms from JSON files, falling back to defaults for
    whichever matrix is not configured.
    """
    if expand_path is None and inverse_path is None:
        return default_transforms()

    if expand_path is not None:
        expand = load_matrix(expand_path, rows=CODEC_COEFFICIENTS)
    else:
        expand = None

    if inverse_path is not None:
        bins = expand.shape[1] if expand is not None else None
        inverse = load_matrix(inverse_path, rows=bins)
    else:
        inverse = None

    if expand is None:
        expand = default_transforms(inverse.shape[0]).expand
    if inverse is None:
        inverse = default_transforms(expand.shape[1]).inverse

    return CodecTransforms(expand=expand, inverse=inverse)
