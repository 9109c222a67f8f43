import pytest

from dither_studio.processing.buffer import PixelBuffer, clamp_byte


def test_geometry_is_validated():
    with pytest.raises(ValueError):
        PixelBuffer(2, 2, bytearray(15))
    with pytest.raises(ValueError):
        PixelBuffer(0, 1, bytearray())


def test_copy_is_independent():
    buffer = PixelBuffer.filled(2, 1, (1, 2, 3, 4))
    clone = buffer.copy()
    clone.data[0] = 99
    assert buffer.pixel(0, 0) == (1, 2, 3, 4)


def test_channel_round_trip():
    buffer = PixelBuffer.from_pixels(2, 1, [(1, 2, 3), (4, 5, 6, 7)])
    assert buffer.channel(0) == [1, 4]
    assert buffer.channel(3) == [255, 7]
    buffer.put_channel(1, [300.0, -4.0])
    assert buffer.pixels() == [(1, 255, 3, 255), (4, 0, 6, 7)]


@pytest.mark.parametrize(
    "value, expected",
    [(-1, 0), (0.4, 0), (0.5, 0), (1.5, 2), (2.5, 2), (254.6, 255), (999, 255)],
)
def test_clamp_byte_rounds_half_to_even(value, expected):
    assert clamp_byte(value) == expected


def test_image_round_trip(gradient):
    assert PixelBuffer.from_image(gradient.to_image()).data == gradient.data
