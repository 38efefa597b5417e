"""Closed set of image operations.

Each operation kind is a frozen dataclass carrying its own validated
parameters. ``parse_operation`` turns the wire form used by the API,
``{"operation": "brightness", "params": {"factor": 1.2}}``, into one of these
values; anything outside the set raises ``UnknownOperation`` and bad
parameters raise ``InvalidParameter`` before any image is touched.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Iterable, Mapping

from src.domain.errors import InvalidParameter, UnknownOperation

_MISSING = object()


def _get(params: Mapping[str, Any], key: str, op: str, default: Any = _MISSING) -> Any:
    value = params.get(key, default)
    if value is _MISSING or value is None:
        if default is not _MISSING and default is not None:
            return default
        raise InvalidParameter(f"Missing parameter '{key}' for {op}")
    return value


def _float(params: Mapping[str, Any], key: str, op: str, default: Any = _MISSING) -> float:
    value = _get(params, key, op, default)
    if isinstance(value, bool):
        raise InvalidParameter(f"Parameter '{key}' for {op} must be a number")
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"Parameter '{key}' for {op} must be a number") from exc
    if not math.isfinite(out):
        raise InvalidParameter(f"Parameter '{key}' for {op} must be finite")
    return out


def _int(params: Mapping[str, Any], key: str, op: str, default: Any = _MISSING) -> int:
    value = _float(params, key, op, default)
    if not value.is_integer():
        raise InvalidParameter(f"Parameter '{key}' for {op} must be an integer")
    return int(value)


def _bool(params: Mapping[str, Any], key: str, op: str, default: Any = _MISSING) -> bool:
    value = params.get(key, default)
    if value is _MISSING:
        raise InvalidParameter(f"Missing parameter '{key}' for {op}")
    if not isinstance(value, bool):
        raise InvalidParameter(f"Parameter '{key}' for {op} must be a boolean")
    return value


def _in_range(value: float, low: float, high: float, key: str, op: str) -> None:
    if not low <= value <= high:
        raise InvalidParameter(f"Parameter '{key}' for {op} must be in [{low}, {high}]")


def _positive(value: float, key: str, op: str) -> None:
    if value <= 0:
        raise InvalidParameter(f"Parameter '{key}' for {op} must be > 0")


def _bounds(params: Mapping[str, Any], op: str) -> tuple[int, int, int, int]:
    x_start = _int(params, "x_start", op)
    x_end = _int(params, "x_end", op)
    y_start = _int(params, "y_start", op)
    y_end = _int(params, "y_end", op)
    if x_start < 0 or y_start < 0:
        raise InvalidParameter(f"Region start coordinates for {op} must be >= 0")
    if x_start >= x_end or y_start >= y_end:
        raise InvalidParameter(
            f"Invalid region for {op}: start must be lower than end "
            f"(x {x_start}..{x_end}, y {y_start}..{y_end})"
        )
    return x_start, x_end, y_start, y_end


@dataclass(frozen=True)
class Operation:
    name: ClassVar[str] = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Operation:
        return cls()

    def to_params(self) -> dict[str, Any]:
        return asdict(self)

    def to_dict(self) -> dict[str, Any]:
        return {"operation": self.name, "params": self.to_params()}


@dataclass(frozen=True)
class Brightness(Operation):
    name: ClassVar[str] = "brightness"
    factor: float = 1.0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Brightness:
        factor = _float(params, "factor", cls.name)
        _positive(factor, "factor", cls.name)
        return cls(factor=factor)


@dataclass(frozen=True)
class LogContrast(Operation):
    name: ClassVar[str] = "log_contrast"
    k: float = 1.0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> LogContrast:
        k = _float(params, "k", cls.name)
        _positive(k, "k", cls.name)
        return cls(k=k)


@dataclass(frozen=True)
class ExpContrast(Operation):
    name: ClassVar[str] = "exp_contrast"
    k: float = 1.0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ExpContrast:
        k = _float(params, "k", cls.name)
        _positive(k, "k", cls.name)
        return cls(k=k)


@dataclass(frozen=True)
class Invert(Operation):
    name: ClassVar[str] = "invert"


@dataclass(frozen=True)
class GrayscaleAverage(Operation):
    name: ClassVar[str] = "grayscale_average"


@dataclass(frozen=True)
class GrayscaleLuminosity(Operation):
    name: ClassVar[str] = "grayscale_luminosity"


@dataclass(frozen=True)
class GrayscaleMidgray(Operation):
    name: ClassVar[str] = "grayscale_midgray"


@dataclass(frozen=True)
class Binarize(Operation):
    name: ClassVar[str] = "binarize"
    threshold: float = 0.5

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Binarize:
        threshold = _float(params, "threshold", cls.name)
        _in_range(threshold, 0.0, 1.0, "threshold", cls.name)
        return cls(threshold=threshold)


@dataclass(frozen=True)
class ChannelToggle(Operation):
    # index into RGB; CMY channels are the complements of the same index
    index: ClassVar[int] = 0
    subtractive: ClassVar[bool] = False
    enabled: bool = True

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ChannelToggle:
        return cls(enabled=_bool(params, "enabled", cls.name, True))


class ChannelRed(ChannelToggle):
    name = "channel_red"
    index = 0


class ChannelGreen(ChannelToggle):
    name = "channel_green"
    index = 1


class ChannelBlue(ChannelToggle):
    name = "channel_blue"
    index = 2


class ChannelCyan(ChannelToggle):
    name = "channel_cyan"
    index = 0
    subtractive = True


class ChannelMagenta(ChannelToggle):
    name = "channel_magenta"
    index = 1
    subtractive = True


class ChannelYellow(ChannelToggle):
    name = "channel_yellow"
    index = 2
    subtractive = True


@dataclass(frozen=True)
class Translate(Operation):
    name: ClassVar[str] = "translate"
    dx: int = 0
    dy: int = 0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Translate:
        return cls(dx=_int(params, "dx", cls.name, 0), dy=_int(params, "dy", cls.name, 0))


@dataclass(frozen=True)
class Rotate(Operation):
    name: ClassVar[str] = "rotate"
    angle: float = 0.0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Rotate:
        return cls(angle=_float(params, "angle", cls.name))


@dataclass(frozen=True)
class Crop(Operation):
    name: ClassVar[str] = "crop"
    x_start: int = 0
    x_end: int = 0
    y_start: int = 0
    y_end: int = 0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Crop:
        x_start, x_end, y_start, y_end = _bounds(params, cls.name)
        return cls(x_start=x_start, x_end=x_end, y_start=y_start, y_end=y_end)


@dataclass(frozen=True)
class ReduceResolution(Operation):
    name: ClassVar[str] = "reduce_resolution"
    factor: int = 2

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ReduceResolution:
        factor = _int(params, "factor", cls.name)
        _in_range(factor, 2, 10, "factor", cls.name)
        return cls(factor=factor)


@dataclass(frozen=True)
class EnlargeRegion(Operation):
    name: ClassVar[str] = "enlarge_region"
    x_start: int = 0
    x_end: int = 0
    y_start: int = 0
    y_end: int = 0
    factor: int = 2

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> EnlargeRegion:
        x_start, x_end, y_start, y_end = _bounds(params, cls.name)
        # the single-operation endpoint calls it zoom_factor
        key = "zoom_factor" if "zoom_factor" in params and "factor" not in params else "factor"
        factor = _int(params, key, cls.name)
        _in_range(factor, 1, 10, key, cls.name)
        return cls(
            x_start=x_start, x_end=x_end, y_start=y_start, y_end=y_end, factor=factor
        )


@dataclass(frozen=True)
class MergeImages(Operation):
    name: ClassVar[str] = "merge_images"
    other_image_id: str = ""
    transparency: float = 0.5

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MergeImages:
        other_id = params.get("other_image_id")
        if not other_id or not isinstance(other_id, str):
            raise InvalidParameter("Missing other_image_id for merge operation")
        transparency = _float(params, "transparency", cls.name, 0.5)
        _in_range(transparency, 0.0, 1.0, "transparency", cls.name)
        return cls(other_image_id=other_id, transparency=transparency)


OPERATIONS: dict[str, type[Operation]] = {
    op.name: op
    for op in (
        Brightness,
        LogContrast,
        ExpContrast,
        Invert,
        GrayscaleAverage,
        GrayscaleLuminosity,
        GrayscaleMidgray,
        Binarize,
        ChannelRed,
        ChannelGreen,
        ChannelBlue,
        ChannelCyan,
        ChannelMagenta,
        ChannelYellow,
        Translate,
        Rotate,
        Crop,
        ReduceResolution,
        EnlargeRegion,
        MergeImages,
    )
}
OPERATIONS["negative"] = Invert


def parse_operation(name: str, params: Mapping[str, Any] | None = None) -> Operation:
    if not isinstance(name, str):
        raise UnknownOperation(f"Unsupported operation: {name!r}")
    key = name.strip().lower()
    op_cls = OPERATIONS.get(key)
    if op_cls is None:
        raise UnknownOperation(f"Unsupported operation: {name}")
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise InvalidParameter(f"Parameters for {key} must be an object")
    return op_cls.from_params(params)


def parse_operations(items: Iterable[Operation | Mapping[str, Any]]) -> list[Operation]:
    """Parse a batch in order, failing on the first bad entry."""
    out: list[Operation] = []
    for item in items:
        if isinstance(item, Operation):
            out.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidParameter("Each operation must be an object")
        out.append(parse_operation(item.get("operation", ""), item.get("params")))
    return out
