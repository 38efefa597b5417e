import pytest

from src.domain.entities.operation import (
    OPERATIONS,
    Brightness,
    ChannelCyan,
    ChannelMagenta,
    ChannelRed,
    EnlargeRegion,
    Invert,
    MergeImages,
    Translate,
    parse_operation,
    parse_operations,
)
from src.domain.errors import InvalidParameter, UnknownOperation


def test_registry_covers_all_operations():
    expected = {
        "brightness",
        "log_contrast",
        "exp_contrast",
        "invert",
        "negative",
        "grayscale_average",
        "grayscale_luminosity",
        "grayscale_midgray",
        "binarize",
        "channel_red",
        "channel_green",
        "channel_blue",
        "channel_cyan",
        "channel_magenta",
        "channel_yellow",
        "translate",
        "rotate",
        "crop",
        "reduce_resolution",
        "enlarge_region",
        "merge_images",
    }
    assert set(OPERATIONS) == expected


def test_parse_brightness():
    op = parse_operation("brightness", {"factor": 1.2})
    assert op == Brightness(factor=1.2)
    assert op.to_dict() == {"operation": "brightness", "params": {"factor": 1.2}}


def test_negative_is_invert():
    assert isinstance(parse_operation("negative"), Invert)


def test_unknown_operation():
    with pytest.raises(UnknownOperation, match="Unsupported operation: sharpen"):
        parse_operation("sharpen", {})


@pytest.mark.parametrize("name", [5, None, ["brightness"]])
def test_non_string_operation_name_is_unknown(name):
    with pytest.raises(UnknownOperation, match="Unsupported operation"):
        parse_operations([{"operation": name, "params": {}}])


def test_channel_toggle_serializes_only_enabled():
    op = parse_operation("channel_magenta", {"enabled": False})
    assert op.to_dict() == {"operation": "channel_magenta", "params": {"enabled": False}}
    assert ChannelMagenta.index == 1 and ChannelMagenta.subtractive
    assert ChannelCyan.index == 0 and not ChannelRed.subtractive


@pytest.mark.parametrize(
    "name, params",
    [
        ("brightness", {}),
        ("brightness", {"factor": 0}),
        ("brightness", {"factor": "bright"}),
        ("log_contrast", {"k": -1}),
        ("binarize", {"threshold": 1.5}),
        ("reduce_resolution", {"factor": 1}),
        ("reduce_resolution", {"factor": 2.5}),
        ("crop", {"x_start": 5, "x_end": 5, "y_start": 0, "y_end": 1}),
        ("crop", {"x_start": -1, "x_end": 5, "y_start": 0, "y_end": 1}),
        ("enlarge_region", {"x_start": 0, "x_end": 5, "y_start": 0, "y_end": 5, "factor": 11}),
        ("merge_images", {"transparency": 0.5}),
        ("merge_images", {"other_image_id": "img_b", "transparency": 2}),
        ("channel_red", {"enabled": "no"}),
    ],
)
def test_invalid_parameters(name, params):
    with pytest.raises(InvalidParameter):
        parse_operation(name, params)


def test_defaults():
    assert parse_operation("translate", {"dx": 3}) == Translate(dx=3, dy=0)
    assert parse_operation("channel_cyan", {}) == ChannelCyan(enabled=True)
    assert parse_operation("merge_images", {"other_image_id": "img_b"}).transparency == 0.5


def test_enlarge_region_accepts_zoom_factor():
    op = parse_operation(
        "enlarge_region", {"x_start": 0, "x_end": 4, "y_start": 0, "y_end": 4, "zoom_factor": 3}
    )
    assert op == EnlargeRegion(x_start=0, x_end=4, y_start=0, y_end=4, factor=3)


def test_parse_operations_keeps_order_and_accepts_values():
    ops = parse_operations(
        [
            {"operation": "invert", "params": {}},
            MergeImages(other_image_id="img_b", transparency=0.2),
            {"operation": "rotate", "params": {"angle": 90}},
        ]
    )
    assert [op.name for op in ops] == ["invert", "merge_images", "rotate"]


def test_parse_operations_fails_on_first_bad_entry():
    with pytest.raises(UnknownOperation):
        parse_operations([{"operation": "invert"}, {"operation": "blur", "params": {}}])
