from __future__ import annotations

import numpy as np

from src.domain.entities.operation import (
    Binarize,
    Brightness,
    ChannelToggle,
    Crop,
    EnlargeRegion,
    ExpContrast,
    GrayscaleAverage,
    GrayscaleLuminosity,
    GrayscaleMidgray,
    Invert,
    LogContrast,
    MergeImages,
    Operation,
    ReduceResolution,
    Rotate,
    Translate,
)
from src.domain.errors import InvalidParameter, UnknownOperation

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


class ProcessingService:
    """Pure NumPy image processing over 8-bit buffers.

    Channel convention:
    - Grayscale: (H, W) uint8
    - RGB: (H, W, 3) uint8

    Every function returns a new array; inputs are never modified.
    """

    def apply(
        self, matrix: np.ndarray, operation: Operation, overlay: np.ndarray | None = None
    ) -> np.ndarray:
        """Apply one operation. ``overlay`` is the second buffer for merge_images."""
        if isinstance(operation, Brightness):
            return self.adjust_brightness(matrix, operation.factor)
        if isinstance(operation, LogContrast):
            return self.adjust_log_contrast(matrix, operation.k)
        if isinstance(operation, ExpContrast):
            return self.adjust_exp_contrast(matrix, operation.k)
        if isinstance(operation, Invert):
            return self.invert_color(matrix)
        if isinstance(operation, GrayscaleAverage):
            return self.grayscale_average(matrix)
        if isinstance(operation, GrayscaleLuminosity):
            return self.grayscale_luminosity(matrix)
        if isinstance(operation, GrayscaleMidgray):
            return self.grayscale_midgray(matrix)
        if isinstance(operation, Binarize):
            return self.binarize(matrix, operation.threshold)
        if isinstance(operation, ChannelToggle):
            return self.toggle_channel(
                matrix, operation.index, operation.enabled, subtractive=operation.subtractive
            )
        if isinstance(operation, Translate):
            return self.translate(matrix, operation.dx, operation.dy)
        if isinstance(operation, Rotate):
            return self.rotate(matrix, operation.angle)
        if isinstance(operation, Crop):
            return self.crop(
                matrix, operation.x_start, operation.x_end, operation.y_start, operation.y_end
            )
        if isinstance(operation, ReduceResolution):
            return self.reduce_resolution(matrix, operation.factor)
        if isinstance(operation, EnlargeRegion):
            return self.enlarge_region(
                matrix,
                operation.x_start,
                operation.x_end,
                operation.y_start,
                operation.y_end,
                operation.factor,
            )
        if isinstance(operation, MergeImages):
            if overlay is None:
                raise InvalidParameter("merge_images requires the overlay image buffer")
            return self.merge_images(matrix, overlay, operation.transparency)
        raise UnknownOperation(f"Unsupported operation: {getattr(operation, 'name', operation)}")

    # Brightness: I_out = I_in * factor
    @staticmethod
    def adjust_brightness(matrix: np.ndarray, factor: float) -> np.ndarray:
        if factor <= 0:
            raise InvalidParameter("brightness factor must be > 0")
        return _to_uint8(matrix.astype(np.float64) * float(factor))

    # Logarithmic contrast: I_out = 255 * log(1 + k*I/255) / log(1 + k)
    @staticmethod
    def adjust_log_contrast(matrix: np.ndarray, k: float) -> np.ndarray:
        if k <= 0:
            raise InvalidParameter("log_contrast k must be > 0")
        norm = matrix.astype(np.float64) / 255.0
        return _to_uint8(255.0 * np.log1p(k * norm) / np.log1p(k))

    # Exponential contrast: I_out = 255 * ((1 + k)^(I/255) - 1) / k
    @staticmethod
    def adjust_exp_contrast(matrix: np.ndarray, k: float) -> np.ndarray:
        if k <= 0:
            raise InvalidParameter("exp_contrast k must be > 0")
        norm = matrix.astype(np.float64) / 255.0
        # same curve via expm1/log1p; tends to identity as k -> 0
        return _to_uint8(255.0 * np.expm1(norm * np.log1p(k)) / k)

    # Invert: I_out = 255 - I_in
    @staticmethod
    def invert_color(matrix: np.ndarray) -> np.ndarray:
        return (255 - matrix.astype(np.int16)).astype(np.uint8)

    # Grayscale (Average): (R + G + B) / 3
    @staticmethod
    def grayscale_average(matrix: np.ndarray) -> np.ndarray:
        if matrix.ndim == 3 and matrix.shape[2] >= 3:
            return _to_uint8(np.mean(matrix[..., :3].astype(np.float64), axis=2))
        return matrix.copy()

    # Grayscale (Luminosity): 0.299*R + 0.587*G + 0.114*B
    @staticmethod
    def grayscale_luminosity(matrix: np.ndarray) -> np.ndarray:
        return _to_uint8(_luma(matrix))

    # Grayscale (Midgray): (max(R,G,B) + min(R,G,B)) / 2
    @staticmethod
    def grayscale_midgray(matrix: np.ndarray) -> np.ndarray:
        if matrix.ndim == 3 and matrix.shape[2] >= 3:
            rgb = matrix[..., :3].astype(np.float64)
            return _to_uint8((np.max(rgb, axis=2) + np.min(rgb, axis=2)) / 2.0)
        return matrix.copy()

    # Binarize: 255 where luma / 255 > threshold, else 0
    @staticmethod
    def binarize(matrix: np.ndarray, threshold: float) -> np.ndarray:
        if not 0.0 <= threshold <= 1.0:
            raise InvalidParameter("binarize threshold must be in [0, 1]")
        luma = _luma(matrix) / 255.0
        return np.where(luma > float(threshold), 255, 0).astype(np.uint8)

    # Extract CMY channels from RGB: C=255-R, M=255-G, Y=255-B
    @staticmethod
    def rgb_to_cmy(matrix: np.ndarray) -> np.ndarray:
        return (255 - _as_rgb(matrix).astype(np.int16)).astype(np.uint8)

    @staticmethod
    def cmy_to_rgb(cmy: np.ndarray) -> np.ndarray:
        return (255 - cmy.astype(np.int16)).astype(np.uint8)

    # Disabling a channel removes its contribution. RGB channels zero the sample;
    # CMY channels zero the complement, which saturates the matching RGB sample.
    @staticmethod
    def toggle_channel(
        matrix: np.ndarray, index: int, enabled: bool, *, subtractive: bool = False
    ) -> np.ndarray:
        if index not in (0, 1, 2):
            raise InvalidParameter(f"Unsupported channel index: {index}")
        if enabled:
            return matrix.copy()
        if subtractive:
            cmy = ProcessingService.rgb_to_cmy(matrix)
            cmy[..., index] = 0
            return ProcessingService.cmy_to_rgb(cmy)
        rgb = _as_rgb(matrix)
        rgb[..., index] = 0
        return rgb

    # Translate image by (dx, dy). Positive dx moves right, dy moves down. Fill with zeros.
    @staticmethod
    def translate(matrix: np.ndarray, dx: int, dy: int) -> np.ndarray:
        h, w = matrix.shape[:2]
        out = np.zeros_like(matrix)
        x_src_start = max(0, -dx)
        y_src_start = max(0, -dy)
        x_dst_start = max(0, dx)
        y_dst_start = max(0, dy)
        x_len = min(w - x_dst_start, w - x_src_start)
        y_len = min(h - y_dst_start, h - y_src_start)
        if x_len <= 0 or y_len <= 0:
            return out
        out[y_dst_start : y_dst_start + y_len, x_dst_start : x_dst_start + x_len] = matrix[
            y_src_start : y_src_start + y_len, x_src_start : x_src_start + x_len
        ]
        return out

    # Rotate counter-clockwise by angle degrees around the image center using
    # nearest-neighbor sampling. The canvas grows to hold the rotated content.
    @staticmethod
    def rotate(matrix: np.ndarray, angle: float) -> np.ndarray:
        h, w = matrix.shape[:2]
        rad = np.deg2rad(float(angle) % 360.0)
        cos_a = _snap(np.cos(rad))
        sin_a = _snap(np.sin(rad))
        new_w = max(1, int(np.ceil(abs(w * cos_a) + abs(h * sin_a) - 1e-6)))
        new_h = max(1, int(np.ceil(abs(w * sin_a) + abs(h * cos_a) - 1e-6)))
        out = np.zeros((new_h, new_w) + matrix.shape[2:], dtype=matrix.dtype)

        cx, cy = (w - 1) / 2.0, (h - 1) / 2.0
        ncx, ncy = (new_w - 1) / 2.0, (new_h - 1) / 2.0
        # For each destination pixel, map back to source
        ys, xs = np.indices((new_h, new_w))
        x_rel = xs - ncx
        y_rel = ys - ncy
        x_src = np.rint(cos_a * x_rel - sin_a * y_rel + cx).astype(np.int64)
        y_src = np.rint(sin_a * x_rel + cos_a * y_rel + cy).astype(np.int64)
        valid = (x_src >= 0) & (x_src < w) & (y_src >= 0) & (y_src < h)
        out[valid] = matrix[y_src[valid], x_src[valid]]
        return out

    # Crop region [y_start:y_end, x_start:x_end]
    @staticmethod
    def crop(matrix: np.ndarray, x_start: int, x_end: int, y_start: int, y_end: int) -> np.ndarray:
        h, w = matrix.shape[:2]
        if not (0 <= x_start < x_end <= w and 0 <= y_start < y_end <= h):
            raise InvalidParameter(
                f"Crop bounds x {x_start}..{x_end}, y {y_start}..{y_end} "
                f"do not fit a {w}x{h} image"
            )
        return matrix[y_start:y_end, x_start:x_end].copy()

    # Reduce resolution by averaging factor x factor blocks
    @staticmethod
    def reduce_resolution(matrix: np.ndarray, factor: int) -> np.ndarray:
        factor = int(factor)
        if not 2 <= factor <= 10:
            raise InvalidParameter("reduce_resolution factor must be in [2, 10]")
        h, w = matrix.shape[:2]
        nh, nw = h // factor, w // factor
        if nh == 0 or nw == 0:
            raise InvalidParameter(
                f"Image of {w}x{h} is too small to reduce by a factor of {factor}"
            )
        trimmed = matrix[: nh * factor, : nw * factor].astype(np.float64)
        blocks = trimmed.reshape((nh, factor, nw, factor) + matrix.shape[2:])
        return _to_uint8(blocks.mean(axis=(1, 3)))

    # Enlarge region by integer factor using pixel replication
    @staticmethod
    def enlarge_region(
        matrix: np.ndarray, x_start: int, x_end: int, y_start: int, y_end: int, factor: int
    ) -> np.ndarray:
        factor = int(factor)
        if not 1 <= factor <= 10:
            raise InvalidParameter("enlarge_region factor must be in [1, 10]")
        region = ProcessingService.crop(matrix, x_start, x_end, y_start, y_end)
        return np.repeat(np.repeat(region, factor, axis=0), factor, axis=1)

    # Merge images with transparency: out = (1 - a) * base + a * overlay.
    # The overlay is resized to the base shape via nearest-neighbor if needed.
    @staticmethod
    def merge_images(base: np.ndarray, overlay: np.ndarray, transparency: float) -> np.ndarray:
        if not 0.0 <= transparency <= 1.0:
            raise InvalidParameter("merge transparency must be in [0, 1]")
        a = float(transparency)
        im2 = ProcessingService._resize_nearest(overlay, base.shape[:2])
        if base.ndim == 3 and im2.ndim == 2:
            im2 = _as_rgb(im2)
        elif base.ndim == 2 and im2.ndim == 3:
            im2 = ProcessingService.grayscale_luminosity(im2)
        elif base.ndim == 3 and im2.shape[2] != base.shape[2]:
            im2 = _as_rgb(im2)
        out = (1.0 - a) * base.astype(np.float64) + a * im2.astype(np.float64)
        return _to_uint8(out)

    # Per-channel 256-bin intensity counts.
    @staticmethod
    def calculate_histogram(matrix: np.ndarray) -> dict[str, np.ndarray]:
        if matrix.ndim == 2:
            return {"gray": np.bincount(matrix.ravel(), minlength=256).astype(np.int64)}
        names = ("red", "green", "blue")
        return {
            name: np.bincount(matrix[..., c].ravel(), minlength=256).astype(np.int64)
            for c, name in enumerate(names)
        }

    # --------- helpers ---------
    @staticmethod
    def _resize_nearest(img: np.ndarray, target_hw: tuple[int, int]) -> np.ndarray:
        th, tw = target_hw
        h, w = img.shape[:2]
        if h == th and w == tw:
            return img
        # create index grid mapping target->source
        ys = (np.arange(th) * (h / th)).astype(np.int64)
        xs = (np.arange(tw) * (w / tw)).astype(np.int64)
        ys = np.clip(ys, 0, h - 1)
        xs = np.clip(xs, 0, w - 1)
        return img[ys[:, None], xs[None, :]]


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _as_rgb(matrix: np.ndarray) -> np.ndarray:
    if matrix.ndim == 2:
        return np.repeat(matrix[..., None], 3, axis=2)
    return matrix[..., :3].copy()


def _luma(matrix: np.ndarray) -> np.ndarray:
    if matrix.ndim == 3 and matrix.shape[2] >= 3:
        return np.dot(matrix[..., :3].astype(np.float64), LUMA_WEIGHTS)
    return matrix.astype(np.float64)


def _snap(value: float) -> float:
    # cos/sin of multiples of 90 degrees come back as 6e-17 instead of 0
    for exact in (-1.0, 0.0, 1.0):
        if abs(value - exact) < 1e-12:
            return exact
    return float(value)
