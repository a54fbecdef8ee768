import base64
import io

import pytest
from PIL import Image

from errors import InvalidImageError
from imaging import decode_image, strip_data_url


def _png_b64():
    buf = io.BytesIO()
    Image.new("RGBA", (4, 4)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


def test_jpeg_media_type(image_b64):
    decoded = decode_image(image_b64)
    assert decoded.media_type == "image/jpeg"
    assert decoded.data == image_b64


def test_png_media_type():
    assert decode_image(_png_b64()).media_type == "image/png"


def test_data_url_prefix_is_stripped(image_b64):
    decoded = decode_image(f"data:image/jpeg;base64,{image_b64}")
    assert decoded.data == image_b64


def test_strip_data_url_leaves_plain_base64_alone():
    assert strip_data_url("abcd") == "abcd"


@pytest.mark.parametrize("value", ["", "   "])
def test_empty_image_is_rejected(value):
    with pytest.raises(InvalidImageError) as exc:
        decode_image(value)
    assert exc.value.status_code == 400
    assert exc.value.message == "Image data is required"


def test_non_base64_is_rejected():
    with pytest.raises(InvalidImageError):
        decode_image("not base64 at all!!")


def test_base64_that_is_not_an_image_is_rejected():
    with pytest.raises(InvalidImageError):
        decode_image(base64.b64encode(b"hello world").decode("ascii"))
